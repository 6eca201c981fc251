"""
Verification Workflow Service

Moves principals through verification:

- Students and alumni validate their admission number against the registry,
  claim it, and submit an ID document for admin review.
- Aspirants confirm a one-time code sent to their email and are approved
  immediately.

Principal verification state machine:
    UNVERIFIED -> PENDING (document submitted) | APPROVED (aspirant OTP)
    PENDING -> APPROVED | REJECTED (admin decision)
    REJECTED -> PENDING (resubmitted) | APPROVED (aspirant OTP)
    APPROVED is terminal

Capabilities are recomputed in the same commit as every state change.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.email import send_verification_approved, send_verification_rejected
from campuslink.modules.admissions import service as admissions
from campuslink.modules.admissions.models import AdmissionRecord, normalize_admission_number
from campuslink.modules.admissions.name_matching import names_match
from campuslink.modules.lifecycle.service import clear_deactivation
from campuslink.modules.principals import access_policy
from campuslink.modules.principals import repository as principals_repository
from campuslink.modules.principals.models import Principal, Role, VerificationStatus
from campuslink.modules.principals.service import PrincipalNotFoundError
from campuslink.modules.verification import repository
from campuslink.modules.verification.exceptions import (
    AlreadyVerifiedError,
    InvalidVerificationInputError,
    InvalidVerificationTransitionError,
    OpenRequestExistsError,
    OtpNotConfirmedError,
    RequestAlreadyDecidedError,
    UnauthorizedReviewerError,
    VerificationRequestNotFoundError,
)
from campuslink.modules.verification.models import (
    DetailField,
    RequestStatus,
    VerificationMethod,
    VerificationRequest,
)
from campuslink.modules.verification.otp import has_pending_otp

logger = logging.getLogger(__name__)


VALID_STATUS_TRANSITIONS: dict[VerificationStatus, set[VerificationStatus]] = {
    VerificationStatus.UNVERIFIED: {
        VerificationStatus.PENDING,  # Document submitted
        VerificationStatus.APPROVED,  # Aspirant email confirmed
    },
    VerificationStatus.PENDING: {
        VerificationStatus.APPROVED,
        VerificationStatus.REJECTED,
    },
    VerificationStatus.REJECTED: {
        VerificationStatus.PENDING,  # Resubmission
        VerificationStatus.APPROVED,  # Aspirant email confirmed
    },
    VerificationStatus.APPROVED: set(),
}


class DecisionOutcome(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


_OUTCOME_STATUS = {
    DecisionOutcome.APPROVE: RequestStatus.APPROVED,
    DecisionOutcome.REJECT: RequestStatus.REJECTED,
}


@dataclass
class ValidationResult:
    valid: bool
    status: str
    message: str
    matched_record: AdmissionRecord | None = None
    suggested_name: str | None = None
    corrected_year: int | None = None


def _check_transition(principal: Principal, new_status: VerificationStatus) -> None:
    current = principal.verification_status
    valid = VALID_STATUS_TRANSITIONS.get(current, set())

    if new_status not in valid:
        raise InvalidVerificationTransitionError(current, new_status, valid)


def _transition(principal: Principal, new_status: VerificationStatus) -> None:
    """Set the principal's verification status if the state machine allows it."""
    _check_transition(principal, new_status)
    principal.verification_status = new_status


# ============================================================================
# Admission Validation
# ============================================================================


async def validate_admission(
    db: AsyncSession,
    admission_number: str,
    claimed_name: str | None = None,
    claimed_year: int | None = None,
    principal_id: UUID | None = None,
) -> ValidationResult:
    """
    Check an admission number and the claimed identity against the registry.

    Read-only. Checks run in order and the first failure wins: not found,
    claimed by someone else, name mismatch, then graduation year (a year
    mismatch is corrected, not rejected). A number already held by
    ``principal_id`` itself is not reported as used.
    """
    key = normalize_admission_number(admission_number)
    record = await admissions.get(db, key)

    if not record:
        return ValidationResult(
            valid=False,
            status="not_found",
            message="Admission number not found. Please check and try again.",
        )

    if record.claimed and record.claimed_by != principal_id:
        return ValidationResult(
            valid=False,
            status="already_used",
            message="This admission number is already linked to another account.",
        )

    if claimed_name and claimed_name.strip():
        if not names_match(claimed_name, record.full_name):
            return ValidationResult(
                valid=False,
                status="name_mismatch",
                message=f'Name doesn\'t match our records. Did you mean "{record.full_name}"?',
                suggested_name=record.full_name,
            )

    if (
        claimed_year is not None
        and record.graduation_year is not None
        and claimed_year != record.graduation_year
    ):
        return ValidationResult(
            valid=True,
            status="year_corrected",
            message=(
                f"Graduation year corrected to {record.graduation_year} based on our records."
            ),
            matched_record=record,
            corrected_year=record.graduation_year,
        )

    return ValidationResult(
        valid=True,
        status="valid",
        message="Admission number verified successfully!",
        matched_record=record,
    )


# ============================================================================
# Submission
# ============================================================================


async def _submit_document(
    db: AsyncSession,
    principal: Principal,
    evidence_ref: str | None,
    admission_number: str | None,
    details: dict[DetailField, str] | None,
    now: datetime,
) -> VerificationRequest:
    """Student/alumni path: claim the admission number, then open a pending request."""
    if not admission_number or not admission_number.strip():
        raise InvalidVerificationInputError("An admission number is required.")
    if not evidence_ref or not evidence_ref.strip():
        raise InvalidVerificationInputError("An ID document is required.")

    key = normalize_admission_number(admission_number)

    # Raises before any claim is taken
    _check_transition(principal, VerificationStatus.PENDING)

    previous_number = principal.admission_number
    already_held = previous_number == key

    await admissions.claim(db, key, principal.id, now=now)

    try:
        request = repository.stage_request(
            db,
            principal_id=principal.id,
            role=principal.role,
            method=VerificationMethod.ID_CARD,
            status=RequestStatus.PENDING,
            evidence_ref=evidence_ref.strip(),
            admission_number=key,
            details=details,
        )
        principal.verification_status = VerificationStatus.PENDING
        principal.admission_verified = True
        principal.admission_number = key
        access_policy.apply_capabilities(principal)

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        if not already_held:
            await admissions.release(db, key)
            logger.warning(f"Released claim on {key} after failed submission by {principal.id}")
        if isinstance(e, IntegrityError):
            raise OpenRequestExistsError() from e
        raise

    # A resubmission with a different number frees the old one
    if previous_number and not already_held:
        await admissions.release(db, previous_number)
        logger.info(f"Released previous admission number {previous_number} of {principal.id}")

    return request


async def _submit_email_otp(
    db: AsyncSession,
    principal: Principal,
    details: dict[DetailField, str] | None,
    now: datetime,
) -> VerificationRequest:
    """Aspirant path: a confirmed email code approves the account immediately."""
    otp = await repository.get_otp(db, principal.email)

    if (
        otp is None
        or otp.principal_id != principal.id
        or not otp.verified
        or otp.verified_at is None
        or otp.expires_at <= now
    ):
        raise OtpNotConfirmedError()

    _transition(principal, VerificationStatus.APPROVED)

    request = repository.stage_request(
        db,
        principal_id=principal.id,
        role=principal.role,
        method=VerificationMethod.EMAIL_OTP,
        status=RequestStatus.APPROVED,
        evidence_ref=f"email_otp:{otp.verified_at.isoformat()}",
        details=details,
        reviewed_at=now,
    )
    principal.email_verified = True
    clear_deactivation(principal)
    access_policy.apply_capabilities(principal)

    # The code is consumed by this submission
    await db.delete(otp)
    await db.commit()

    return request


async def submit(
    db: AsyncSession,
    principal_id: UUID,
    role: Role,
    method: VerificationMethod,
    evidence_ref: str | None = None,
    admission_number: str | None = None,
    details: dict[DetailField, str] | None = None,
    now: datetime | None = None,
) -> UUID:
    """
    Submit a verification request for a principal.

    The admission number is not re-checked against the claimed name here;
    callers run ``validate_admission`` first.

    Returns:
        The new request's ID

    Raises:
        PrincipalNotFoundError: If the principal doesn't exist
        InvalidVerificationInputError: Wrong method for the role or missing input
        AlreadyVerifiedError: If the principal is already approved
        OpenRequestExistsError: If a request is already awaiting review
        AdmissionNotFoundError / AdmissionAlreadyClaimedError: From the claim
        OtpNotConfirmedError: Aspirant without a confirmed email code
    """
    now = now or datetime.now(UTC)

    principal = await principals_repository.get_by_id_for_update(db, principal_id)
    if not principal:
        raise PrincipalNotFoundError(principal_id)

    if role != principal.role:
        raise InvalidVerificationInputError("Role does not match the account.")

    if principal.role == Role.ADMIN:
        raise InvalidVerificationInputError("Admin accounts do not need verification.")

    if principal.verification_status == VerificationStatus.APPROVED:
        raise AlreadyVerifiedError()

    if await repository.get_pending_for_principal(db, principal.id):
        raise OpenRequestExistsError()

    if principal.role == Role.ASPIRANT:
        if method != VerificationMethod.EMAIL_OTP:
            raise InvalidVerificationInputError("Aspirants verify with an email code.")
        request = await _submit_email_otp(db, principal, details, now)
    else:
        if method != VerificationMethod.ID_CARD:
            raise InvalidVerificationInputError(
                "Students and alumni verify with an ID document and admission number."
            )
        request = await _submit_document(
            db, principal, evidence_ref, admission_number, details, now
        )

    logger.info(
        f"Verification request {request.id} submitted by {principal.id} "
        f"({method.value}, status={request.status.value})"
    )
    return request.id


# ============================================================================
# Admin Decision
# ============================================================================


async def decide(
    db: AsyncSession,
    request_id: UUID,
    reviewer_id: UUID,
    outcome: DecisionOutcome,
    reason: str | None = None,
    now: datetime | None = None,
) -> VerificationRequest:
    """
    Approve or reject a pending request.

    Replaying a decision with the same outcome returns the request unchanged.
    Rejection keeps the admission number claimed by the principal.
    Approval reactivates an auto-deactivated account.

    Raises:
        InvalidVerificationInputError: Rejection without a reason
        UnauthorizedReviewerError: If the reviewer is not an admin
        VerificationRequestNotFoundError: If the request doesn't exist
        RequestAlreadyDecidedError: If decided with the other outcome
    """
    reason = reason.strip() if reason else None
    if outcome == DecisionOutcome.REJECT and not reason:
        raise InvalidVerificationInputError("A reason is required to reject a request.")

    now = now or datetime.now(UTC)

    reviewer = await principals_repository.get_by_id(db, reviewer_id)
    if not reviewer or reviewer.role != Role.ADMIN:
        logger.warning(f"Decision refused: {reviewer_id} is not an admin")
        raise UnauthorizedReviewerError(reviewer_id)

    request = await repository.get_request(db, request_id)
    if not request:
        raise VerificationRequestNotFoundError(request_id)

    target_status = _OUTCOME_STATUS[outcome]

    if request.status != RequestStatus.PENDING:
        if request.status == target_status:
            logger.info(f"Verification request {request_id} already {request.status.value}")
            return request
        raise RequestAlreadyDecidedError(request.status.value)

    principal = await principals_repository.get_by_id_for_update(db, request.principal_id)
    if not principal:
        raise PrincipalNotFoundError(request.principal_id)

    request.status = target_status
    request.reviewed_by = reviewer_id
    request.reviewed_at = now

    if outcome == DecisionOutcome.APPROVE:
        _transition(principal, VerificationStatus.APPROVED)
        if clear_deactivation(principal):
            logger.info(f"Principal {principal.id} reactivated by approval")
    else:
        request.rejection_reason = reason
        _transition(principal, VerificationStatus.REJECTED)

    access_policy.apply_capabilities(principal)

    await db.commit()
    await db.refresh(request)

    logger.info(
        f"Reviewer {reviewer_id} {target_status.value} verification request {request_id} "
        f"for principal {principal.id}"
    )

    await _notify_decision(principal, outcome, reason)
    return request


async def _notify_decision(
    principal: Principal,
    outcome: DecisionOutcome,
    reason: str | None,
) -> None:
    try:
        if outcome == DecisionOutcome.APPROVE:
            sent = await send_verification_approved(principal.email, principal.display_name)
        else:
            sent = await send_verification_rejected(
                principal.email, principal.display_name, reason or ""
            )
        if not sent:
            logger.error(f"Failed to send decision email to principal {principal.id}")
    except Exception as e:
        logger.error(f"Exception sending decision email to {principal.id}: {e}", exc_info=True)


# ============================================================================
# Read Paths
# ============================================================================


async def list_requests(
    db: AsyncSession,
    status: RequestStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[VerificationRequest], int]:
    """Requests newest first, optionally filtered by status."""
    return await repository.list_requests(db, status=status, skip=skip, limit=limit)


async def get_request(db: AsyncSession, request_id: UUID) -> VerificationRequest:
    """
    Get a request with its detail rows.

    Raises:
        VerificationRequestNotFoundError: If the request doesn't exist
    """
    request = await repository.get_request(db, request_id)
    if not request:
        raise VerificationRequestNotFoundError(request_id)
    return request


async def get_my_verification(
    db: AsyncSession,
    principal_id: UUID,
    now: datetime | None = None,
) -> dict:
    """Verification state of a principal plus its latest request."""
    principal = await principals_repository.get_by_id(db, principal_id)
    if not principal:
        raise PrincipalNotFoundError(principal_id)

    return {
        "verification_status": principal.verification_status,
        "admission_verified": principal.admission_verified,
        "email_verified": principal.email_verified,
        "admission_number": principal.admission_number,
        "account_status": principal.account_status,
        "verification_deadline": principal.verification_deadline,
        "latest_request": await repository.get_latest_for_principal(db, principal.id),
        "has_pending_otp": await has_pending_otp(db, principal.email, now),
    }
