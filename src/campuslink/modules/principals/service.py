"""
Principals Service Layer

Signup and read paths for principals. Signup starts the verification clock:
every non-admin principal gets a deadline after which the lifecycle sweep
deactivates the account unless verification is complete.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.config import settings
from campuslink.core.exceptions import ServiceError
from campuslink.modules.principals import access_policy, repository
from campuslink.modules.principals.models import Principal, Role

logger = logging.getLogger(__name__)


class PrincipalNotFoundError(ServiceError):
    """Raised when a principal does not exist."""

    def __init__(self, principal_id: UUID | None = None):
        message = f"Principal {principal_id} not found" if principal_id else "Principal not found"
        super().__init__(message=message, error_code="PRINCIPAL_NOT_FOUND", status_code=404)


class PrincipalAlreadyExistsError(ServiceError):
    """Raised when signing up an ID or email that is already registered."""

    def __init__(self):
        super().__init__(
            message="An account with this ID or email already exists.",
            error_code="PRINCIPAL_ALREADY_EXISTS",
            status_code=409,
        )


def calculate_verification_deadline(now: datetime | None = None) -> datetime:
    """Deadline for a newly registered principal."""
    now = now or datetime.now(UTC)
    return now + timedelta(days=settings.verification_deadline_days)


async def register_principal(
    db: AsyncSession,
    *,
    email: str,
    display_name: str,
    role: Role,
    principal_id: UUID | None = None,
    now: datetime | None = None,
) -> Principal:
    """
    Create a principal in the ``unverified`` state.

    Admins get no deadline and full capabilities; everyone else starts with
    no capabilities and a deadline ``verification_deadline_days`` out.

    Raises:
        PrincipalAlreadyExistsError: If the ID or email is taken
    """
    email = email.strip().lower()

    if await repository.get_by_email(db, email):
        logger.warning("Signup rejected: email already registered")
        raise PrincipalAlreadyExistsError()

    deadline = None if role == Role.ADMIN else calculate_verification_deadline(now)

    principal = await repository.create(
        db,
        id=principal_id,
        email=email,
        display_name=display_name.strip(),
        role=role,
        verification_deadline=deadline,
    )
    access_policy.apply_capabilities(principal)

    try:
        principal = await repository.save(db, principal)
    except IntegrityError as e:
        await db.rollback()
        raise PrincipalAlreadyExistsError() from e

    logger.info(f"Registered principal {principal.id} with role {role.value}")
    return principal


async def get_principal(db: AsyncSession, principal_id: UUID) -> Principal:
    """
    Get a principal by ID.

    Raises:
        PrincipalNotFoundError: If the principal doesn't exist
    """
    principal = await repository.get_by_id(db, principal_id)

    if not principal:
        raise PrincipalNotFoundError(principal_id)

    return principal


async def get_access_summary(
    db: AsyncSession,
    principal_id: UUID,
    now: datetime | None = None,
) -> dict:
    """
    Capabilities computed fresh from the policy (never read from the cache
    columns), plus the verification banner for the UI.
    """
    principal = await get_principal(db, principal_id)
    caps = access_policy.compute_capabilities(principal)

    return {
        "principal_id": principal.id,
        "role": principal.role,
        "verification_status": principal.verification_status,
        "account_status": principal.account_status,
        "is_fully_verified": access_policy.is_fully_verified(principal),
        "is_deactivated": access_policy.is_deactivated(principal),
        "capabilities": caps.as_dict(),
        "verification_deadline": principal.verification_deadline,
        "days_until_deactivation": access_policy.days_until_deactivation(principal, now),
        "banner": access_policy.verification_message(principal, now),
    }
