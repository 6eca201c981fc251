"""
Verification Repository

Database operations for verification requests and email OTP rows.

Request creation only stages the rows; the service commits them together
with the principal's state change.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.modules.principals.models import Role

from .models import (
    DetailField,
    EmailOTP,
    RequestStatus,
    VerificationMethod,
    VerificationRequest,
    VerificationRequestDetail,
)

# ============================================================================
# Verification Requests
# ============================================================================


def stage_request(
    db: AsyncSession,
    *,
    principal_id: UUID,
    role: Role,
    method: VerificationMethod,
    status: RequestStatus,
    evidence_ref: str,
    admission_number: str | None = None,
    details: dict[DetailField, str] | None = None,
    reviewed_at: datetime | None = None,
) -> VerificationRequest:
    """Add a request (and its detail rows) to the session without committing."""
    request = VerificationRequest(
        principal_id=principal_id,
        role=role,
        method=method,
        status=status,
        evidence_ref=evidence_ref,
        admission_number=admission_number,
        reviewed_at=reviewed_at,
    )
    request.details = [
        VerificationRequestDetail(field=key, value=value) for key, value in (details or {}).items()
    ]

    db.add(request)
    return request


async def get_request(db: AsyncSession, request_id: UUID) -> VerificationRequest | None:
    """Get request by ID."""
    return await db.get(VerificationRequest, request_id)


async def get_pending_for_principal(
    db: AsyncSession,
    principal_id: UUID,
) -> VerificationRequest | None:
    """The principal's open request, if any."""
    result = await db.execute(
        select(VerificationRequest).where(
            VerificationRequest.principal_id == principal_id,
            VerificationRequest.status == RequestStatus.PENDING,
        )
    )
    return result.scalar_one_or_none()


async def get_latest_for_principal(
    db: AsyncSession,
    principal_id: UUID,
) -> VerificationRequest | None:
    """Most recent request submitted by the principal."""
    result = await db.execute(
        select(VerificationRequest)
        .where(VerificationRequest.principal_id == principal_id)
        .order_by(VerificationRequest.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_requests(
    db: AsyncSession,
    *,
    status: RequestStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[VerificationRequest], int]:
    """
    List requests, newest first.

    Returns:
        Tuple of (requests, total count before pagination)
    """
    query = select(VerificationRequest)
    count_query = select(func.count(VerificationRequest.id))

    if status is not None:
        query = query.where(VerificationRequest.status == status)
        count_query = count_query.where(VerificationRequest.status == status)

    total = (await db.execute(count_query)).scalar_one()

    result = await db.execute(
        query.order_by(VerificationRequest.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


# ============================================================================
# Email OTP
# ============================================================================


async def get_otp(db: AsyncSession, email: str) -> EmailOTP | None:
    """Get the OTP row for an email."""
    return await db.get(EmailOTP, email.lower())


async def replace_otp(
    db: AsyncSession,
    *,
    email: str,
    principal_id: UUID,
    code_hash: str,
    expires_at: datetime,
    now: datetime,
) -> EmailOTP:
    """Store a fresh code for the email, replacing any previous one, and commit."""
    otp = await get_otp(db, email)

    if otp is None:
        otp = EmailOTP(email=email.lower())
        db.add(otp)

    otp.principal_id = principal_id
    otp.code_hash = code_hash
    otp.expires_at = expires_at
    otp.verified = False
    otp.verified_at = None
    otp.attempts = 0
    otp.created_at = now

    await db.commit()
    await db.refresh(otp)
    return otp


async def delete_otp(db: AsyncSession, otp: EmailOTP) -> None:
    """Delete an OTP row and commit."""
    await db.delete(otp)
    await db.commit()


async def save_otp(db: AsyncSession, otp: EmailOTP) -> EmailOTP:
    await db.commit()
    await db.refresh(otp)
    return otp
