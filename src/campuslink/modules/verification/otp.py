"""
Email OTP Service

Six-digit one-time codes that let aspirants prove they own their email
address. Codes live for ``otp_expiry_minutes`` and allow
``otp_max_attempts`` wrong guesses; only their SHA-256 hash is stored.
"""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.config import settings
from campuslink.core.email import send_otp_email
from campuslink.core.rate_limit import check_rate_limit
from campuslink.modules.principals import repository as principals_repository
from campuslink.modules.principals.models import Role, VerificationStatus
from campuslink.modules.principals.service import PrincipalNotFoundError
from campuslink.modules.verification import repository
from campuslink.modules.verification.exceptions import (
    AlreadyVerifiedError,
    InvalidVerificationInputError,
    OtpAlreadyUsedError,
    OtpAttemptsExceededError,
    OtpExpiredError,
    OtpMismatchError,
    OtpNotFoundError,
    OtpRateLimitedError,
)
from campuslink.modules.verification.models import EmailOTP

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
_OTP_PATTERN = re.compile(r"^\d{6}$")


def generate_code() -> str:
    """Random six-digit code, zero-padded."""
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def hash_code(code: str) -> str:
    """Hash a code using SHA-256 for storage."""
    return hashlib.sha256(code.encode()).hexdigest()


def mask_email(email: str) -> str:
    """Mask email for display: 'john.doe@gmail.com' -> 'j***e@gmail.com'."""
    if "@" not in email:
        return email

    local, domain = email.rsplit("@", 1)
    if len(local) <= 2:
        masked_local = local[0] + "*" * (len(local) - 1)
    else:
        masked_local = local[0] + "***" + local[-1]
    return f"{masked_local}@{domain}"


async def send_otp(
    db: AsyncSession,
    principal_id: UUID,
    now: datetime | None = None,
) -> dict:
    """
    Issue a new code to an aspirant's email, replacing any previous code.

    Returns:
        Dict with the masked email and the code's expiry

    Raises:
        PrincipalNotFoundError: If the principal doesn't exist
        InvalidVerificationInputError: If the principal is not an aspirant
        AlreadyVerifiedError: If the email is already verified
        OtpRateLimitedError: If too many codes were requested this hour
    """
    now = now or datetime.now(UTC)

    principal = await principals_repository.get_by_id(db, principal_id)
    if not principal:
        raise PrincipalNotFoundError(principal_id)

    if principal.role != Role.ASPIRANT:
        raise InvalidVerificationInputError(
            "Email code verification is only available for aspirant accounts."
        )

    if principal.email_verified and principal.verification_status == VerificationStatus.APPROVED:
        raise AlreadyVerifiedError()

    email = principal.email.lower()
    limit = settings.otp_send_limit_per_hour
    if not await check_rate_limit(f"otp_send:{email}", limit, 3600):
        logger.warning(f"OTP send rate limit hit for principal {principal_id}")
        raise OtpRateLimitedError(limit)

    code = generate_code()
    expires_at = now + timedelta(minutes=settings.otp_expiry_minutes)

    await repository.replace_otp(
        db,
        email=email,
        principal_id=principal.id,
        code_hash=hash_code(code),
        expires_at=expires_at,
        now=now,
    )
    logger.info(f"Issued email OTP for principal {principal_id}")

    try:
        sent = await send_otp_email(
            to_email=email,
            user_name=principal.display_name,
            code=code,
            expiry_minutes=settings.otp_expiry_minutes,
        )
        if not sent:
            logger.error(f"Failed to send OTP email for principal {principal_id}")
    except Exception as e:
        logger.error(f"Exception sending OTP email for principal {principal_id}: {e}")

    return {"email": mask_email(email), "expires_at": expires_at}


async def verify_otp(
    db: AsyncSession,
    email: str,
    code: str,
    now: datetime | None = None,
) -> EmailOTP:
    """
    Check a submitted code.

    Expired rows and rows that ran out of attempts are deleted, so the
    caller has to request a new code.

    Raises:
        InvalidVerificationInputError: If the code is not six digits
        OtpNotFoundError: If no code was issued for the email
        OtpAlreadyUsedError: If the code was already confirmed
        OtpExpiredError: If the code has expired
        OtpAttemptsExceededError: If too many wrong codes were tried
        OtpMismatchError: If the code is wrong
    """
    code = (code or "").strip()
    if not _OTP_PATTERN.match(code):
        raise InvalidVerificationInputError("The code must be exactly 6 digits.")

    now = now or datetime.now(UTC)
    otp = await repository.get_otp(db, email)

    if otp is None:
        raise OtpNotFoundError()

    if otp.verified:
        raise OtpAlreadyUsedError()

    if otp.expires_at <= now:
        await repository.delete_otp(db, otp)
        logger.info(f"Expired OTP removed for principal {otp.principal_id}")
        raise OtpExpiredError()

    if otp.attempts >= settings.otp_max_attempts:
        await repository.delete_otp(db, otp)
        logger.warning(f"OTP attempts exhausted for principal {otp.principal_id}")
        raise OtpAttemptsExceededError()

    if not hmac.compare_digest(otp.code_hash, hash_code(code)):
        otp.attempts += 1
        await repository.save_otp(db, otp)
        remaining = max(0, settings.otp_max_attempts - otp.attempts)
        logger.warning(
            f"Wrong OTP for principal {otp.principal_id}, {remaining} attempt(s) remaining"
        )
        raise OtpMismatchError(remaining)

    otp.verified = True
    otp.verified_at = now
    otp = await repository.save_otp(db, otp)

    logger.info(f"Email OTP confirmed for principal {otp.principal_id}")
    return otp


async def has_pending_otp(db: AsyncSession, email: str, now: datetime | None = None) -> bool:
    """Whether an unconfirmed, unexpired code exists for the email."""
    now = now or datetime.now(UTC)
    otp = await repository.get_otp(db, email)
    return otp is not None and not otp.verified and otp.expires_at > now
