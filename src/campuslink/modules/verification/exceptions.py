"""
Verification Errors

Service errors raised by the verification workflow and the email OTP flow.
"""

from uuid import UUID

from campuslink.core.exceptions import ServiceError
from campuslink.modules.principals.models import VerificationStatus


class InvalidVerificationInputError(ServiceError):
    """Raised when a submission or decision is missing required input."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_VERIFICATION_INPUT", status_code=400)


class OpenRequestExistsError(ServiceError):
    def __init__(self):
        super().__init__(
            message="You already have a verification request awaiting review.",
            error_code="OPEN_REQUEST_EXISTS",
            status_code=409,
        )


class AlreadyVerifiedError(ServiceError):
    def __init__(self):
        super().__init__(
            message="This account is already verified.",
            error_code="ALREADY_VERIFIED",
            status_code=409,
        )


class OtpNotConfirmedError(ServiceError):
    """Raised when an aspirant submits without a confirmed email code."""

    def __init__(self):
        super().__init__(
            message="Confirm the code sent to your email before submitting.",
            error_code="OTP_NOT_CONFIRMED",
            status_code=400,
        )


class UnauthorizedReviewerError(ServiceError):
    def __init__(self, reviewer_id: UUID):
        super().__init__(
            message=f"Principal {reviewer_id} is not allowed to review verification requests.",
            error_code="UNAUTHORIZED_REVIEWER",
            status_code=403,
        )


class VerificationRequestNotFoundError(ServiceError):
    def __init__(self, request_id: UUID):
        super().__init__(
            message=f"Verification request {request_id} not found",
            error_code="VERIFICATION_REQUEST_NOT_FOUND",
            status_code=404,
        )


class RequestAlreadyDecidedError(ServiceError):
    """Raised when a decided request is decided again with a different outcome."""

    def __init__(self, current_status: str):
        super().__init__(
            message=f"This request has already been {current_status}.",
            error_code="REQUEST_ALREADY_DECIDED",
            status_code=409,
        )


class InvalidVerificationTransitionError(ServiceError):
    """Raised when a principal's verification status change is not allowed."""

    def __init__(
        self,
        current_status: VerificationStatus,
        new_status: VerificationStatus,
        valid: set[VerificationStatus],
    ):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            message=(
                f"Invalid verification transition: {current_status.value} -> {new_status.value}. "
                f"Valid transitions: {sorted(s.value for s in valid)}"
            ),
            error_code="INVALID_VERIFICATION_TRANSITION",
            status_code=409,
        )


# ============================================================================
# Email OTP
# ============================================================================


class OtpNotFoundError(ServiceError):
    def __init__(self):
        super().__init__(
            message="No verification code found. Request a new code.",
            error_code="OTP_NOT_FOUND",
            status_code=404,
        )


class OtpAlreadyUsedError(ServiceError):
    def __init__(self):
        super().__init__(
            message="This code has already been used.",
            error_code="OTP_ALREADY_USED",
            status_code=409,
        )


class OtpExpiredError(ServiceError):
    def __init__(self):
        super().__init__(
            message="This code has expired. Request a new code.",
            error_code="OTP_EXPIRED",
            status_code=400,
        )


class OtpAttemptsExceededError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Too many incorrect attempts. Request a new code.",
            error_code="OTP_ATTEMPTS_EXCEEDED",
            status_code=400,
        )


class OtpMismatchError(ServiceError):
    def __init__(self, remaining_attempts: int):
        self.remaining_attempts = remaining_attempts
        super().__init__(
            message=f"Incorrect code. {remaining_attempts} attempt(s) remaining.",
            error_code="OTP_MISMATCH",
            status_code=400,
        )


class OtpRateLimitedError(ServiceError):
    def __init__(self, limit: int):
        super().__init__(
            message=f"Too many codes requested. At most {limit} codes can be sent per hour.",
            error_code="OTP_RATE_LIMITED",
            status_code=429,
        )
