"""
Account Lifecycle Service

State changes on a principal's account status: automatic deactivation when
the verification deadline passes, reactivation when verification completes,
admin deadline extensions and manual suspension.

Admins are never deactivated or suspended.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.config import settings
from campuslink.core.exceptions import ServiceError
from campuslink.modules.principals import access_policy, repository
from campuslink.modules.principals.models import AccountStatus, Principal, Role
from campuslink.modules.principals.service import PrincipalNotFoundError

logger = logging.getLogger(__name__)

DEACTIVATION_REASON = "Verification not completed before the deadline"

MIN_EXTENSION_DAYS = 1
MAX_EXTENSION_DAYS = 30


class AdminAccountProtectedError(ServiceError):
    """Raised when a lifecycle action targets an admin account."""

    def __init__(self):
        super().__init__(
            message="Admin accounts cannot be deactivated, suspended or given deadlines.",
            error_code="ADMIN_ACCOUNT_PROTECTED",
            status_code=400,
        )


class InvalidDeadlineExtensionError(ServiceError):
    def __init__(self, days: int):
        super().__init__(
            message=(
                f"Cannot extend by {days} days. "
                f"Extensions must be between {MIN_EXTENSION_DAYS} and {MAX_EXTENSION_DAYS} days."
            ),
            error_code="INVALID_DEADLINE_EXTENSION",
            status_code=400,
        )


class AccountNotSuspendedError(ServiceError):
    def __init__(self):
        super().__init__(
            message="This account is not suspended.",
            error_code="ACCOUNT_NOT_SUSPENDED",
            status_code=409,
        )


# ============================================================================
# In-session state changes (caller commits)
# ============================================================================


def clear_deactivation(principal: Principal) -> bool:
    """
    Return an auto-deactivated account to ``active``.

    Suspended accounts are left alone; only an admin can restore them.

    Returns:
        True if the account was reactivated
    """
    if principal.account_status != AccountStatus.AUTO_DEACTIVATED:
        return False

    principal.account_status = AccountStatus.ACTIVE
    principal.deactivation_reason = None
    principal.deactivated_at = None
    return True


# ============================================================================
# Committed operations
# ============================================================================


async def auto_deactivate(db: AsyncSession, principal_id: UUID, now: datetime) -> bool:
    """
    Deactivate for a missed deadline and drop every capability.

    The check and the write are one conditional statement, so an approval
    committed meanwhile wins and the account stays active.

    Returns:
        True if the principal was deactivated
    """
    return await repository.deactivate_if_unverified(
        db,
        principal_id,
        reason=DEACTIVATION_REASON,
        now=now,
        capabilities=access_policy.NO_CAPABILITIES.as_dict(),
    )


async def _get_principal(db: AsyncSession, principal_id: UUID) -> Principal:
    principal = await repository.get_by_id(db, principal_id)
    if not principal:
        raise PrincipalNotFoundError(principal_id)
    return principal


async def reactivate(db: AsyncSession, principal_id: UUID) -> Principal:
    """
    Reactivate an auto-deactivated account and recompute its capabilities.

    A no-op for accounts that are not auto-deactivated.
    """
    principal = await _get_principal(db, principal_id)

    if not clear_deactivation(principal):
        return principal

    access_policy.apply_capabilities(principal)
    principal = await repository.save(db, principal)
    logger.info(f"Reactivated principal {principal_id}")
    return principal


async def extend_deadline(
    db: AsyncSession,
    principal_id: UUID,
    days: int = 2,
    now: datetime | None = None,
) -> Principal:
    """
    Push a principal's verification deadline out by ``days``.

    The extension counts from the later of the current deadline and now, and
    re-arms the deactivation warning.

    Raises:
        InvalidDeadlineExtensionError: If days is outside 1-30
        AdminAccountProtectedError: If the principal is an admin
        PrincipalNotFoundError: If the principal doesn't exist
    """
    if not MIN_EXTENSION_DAYS <= days <= MAX_EXTENSION_DAYS:
        raise InvalidDeadlineExtensionError(days)

    now = now or datetime.now(UTC)
    principal = await _get_principal(db, principal_id)

    if principal.role == Role.ADMIN:
        raise AdminAccountProtectedError()

    base = max(principal.verification_deadline or now, now)
    principal.verification_deadline = base + timedelta(days=days)
    principal.deactivation_warning_sent = False

    principal = await repository.save(db, principal)
    logger.info(
        f"Extended verification deadline for {principal_id} by {days} days "
        f"to {principal.verification_deadline.isoformat()}"
    )
    return principal


async def suspend(
    db: AsyncSession,
    principal_id: UUID,
    reason: str,
    now: datetime | None = None,
) -> Principal:
    """
    Suspend an account. Suspension survives verification approval.

    Raises:
        AdminAccountProtectedError: If the principal is an admin
    """
    now = now or datetime.now(UTC)
    principal = await _get_principal(db, principal_id)

    if principal.role == Role.ADMIN:
        raise AdminAccountProtectedError()

    principal.account_status = AccountStatus.SUSPENDED
    principal.deactivation_reason = reason
    principal.deactivated_at = now
    access_policy.apply_capabilities(principal)

    principal = await repository.save(db, principal)
    logger.info(f"Suspended principal {principal_id}")
    return principal


async def restore(db: AsyncSession, principal_id: UUID) -> Principal:
    """
    Lift a suspension.

    Raises:
        AccountNotSuspendedError: If the account is not suspended
    """
    principal = await _get_principal(db, principal_id)

    if principal.account_status != AccountStatus.SUSPENDED:
        raise AccountNotSuspendedError()

    principal.account_status = AccountStatus.ACTIVE
    principal.deactivation_reason = None
    principal.deactivated_at = None
    access_policy.apply_capabilities(principal)

    principal = await repository.save(db, principal)
    logger.info(f"Restored suspended principal {principal_id}")
    return principal


async def pending_deactivation_stats(db: AsyncSession, now: datetime | None = None) -> dict:
    """
    Counts for the admin dashboard.

    Returns:
        Dict with ``expiring_24h``, ``expiring_48h`` (24-48h out) and
        ``already_deactivated``
    """
    now = now or datetime.now(UTC)
    in_24h = now + timedelta(hours=settings.deactivation_warning_hours)
    in_48h = in_24h + timedelta(hours=settings.deactivation_warning_hours)

    return {
        "expiring_24h": await repository.count_active_with_deadline_between(db, now, in_24h),
        "expiring_48h": await repository.count_active_with_deadline_between(db, in_24h, in_48h),
        "already_deactivated": await repository.count_by_account_status(
            db, AccountStatus.AUTO_DEACTIVATED
        ),
    }
