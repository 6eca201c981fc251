"""
Principals Repository

Database operations for principals. Only data access lives here; state
decisions are made in the services.

Design Principles:
- Async operations for non-blocking I/O
- Timezone-aware datetime handling (UTC)
- Sweep queries are idempotent: a processed principal no longer matches
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, not_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AccountStatus, Principal, Role, VerificationStatus


async def create(
    db: AsyncSession,
    *,
    email: str,
    display_name: str,
    role: Role,
    verification_deadline: datetime | None,
    id: UUID | None = None,
) -> Principal:
    """Create a new principal. Callers apply capability flags before this commit."""
    principal = Principal(
        email=email,
        display_name=display_name,
        role=role,
        verification_status=VerificationStatus.UNVERIFIED,
        admission_verified=False,
        email_verified=False,
        account_status=AccountStatus.ACTIVE,
        verification_deadline=verification_deadline,
        deactivation_warning_sent=False,
    )
    if id is not None:
        principal.id = id

    db.add(principal)
    return principal


async def get_by_id(db: AsyncSession, id: UUID) -> Principal | None:
    """Get principal by ID."""
    return await db.get(Principal, id)


async def get_by_id_for_update(db: AsyncSession, id: UUID) -> Principal | None:
    """
    Get principal by ID, holding a row lock until the transaction ends.

    Writers that change verification or account state load through this so
    they serialize with the lifecycle sweep.
    """
    result = await db.execute(
        select(Principal)
        .where(Principal.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_by_email(db: AsyncSession, email: str) -> Principal | None:
    """Get principal by (lower-cased) email."""
    result = await db.execute(select(Principal).where(Principal.email == email.lower()))
    return result.scalar_one_or_none()


async def save(db: AsyncSession, principal: Principal) -> Principal:
    """Commit pending changes on a principal and refresh it."""
    await db.commit()
    await db.refresh(principal)
    return principal


async def get_deactivation_candidates(db: AsyncSession, now: datetime) -> list[Principal]:
    """
    Active non-admin principals whose verification deadline has passed.

    Whether each one actually completed verification is decided by the
    access policy in the job, not in SQL.
    """
    result = await db.execute(
        select(Principal).where(
            and_(
                Principal.account_status == AccountStatus.ACTIVE,
                Principal.role != Role.ADMIN,
                Principal.verification_deadline.is_not(None),
                Principal.verification_deadline <= now,
            )
        )
    )
    return list(result.scalars().all())


async def get_warning_candidates(
    db: AsyncSession,
    now: datetime,
    window_end: datetime,
) -> list[Principal]:
    """
    Active non-admin principals with a deadline in ``(now, window_end]``
    that have not been warned yet.
    """
    result = await db.execute(
        select(Principal).where(
            and_(
                Principal.account_status == AccountStatus.ACTIVE,
                Principal.role != Role.ADMIN,
                Principal.verification_deadline > now,
                Principal.verification_deadline <= window_end,
                Principal.deactivation_warning_sent.is_(False),
            )
        )
    )
    return list(result.scalars().all())


async def count_active_with_deadline_between(
    db: AsyncSession,
    start: datetime,
    end: datetime,
) -> int:
    """Count active non-admin principals with a deadline in ``(start, end]``."""
    result = await db.execute(
        select(func.count(Principal.id)).where(
            and_(
                Principal.account_status == AccountStatus.ACTIVE,
                Principal.role != Role.ADMIN,
                Principal.verification_deadline > start,
                Principal.verification_deadline <= end,
            )
        )
    )
    return result.scalar_one()


async def count_by_account_status(db: AsyncSession, status: AccountStatus) -> int:
    """Count principals in an account status."""
    result = await db.execute(
        select(func.count(Principal.id)).where(Principal.account_status == status)
    )
    return result.scalar_one()


def _completed_verification():
    """SQL form of ``access_policy.has_completed_verification`` for active accounts."""
    return and_(
        Principal.verification_status == VerificationStatus.APPROVED,
        or_(
            Principal.admission_verified.is_(True),
            and_(Principal.role == Role.ASPIRANT, Principal.email_verified.is_(True)),
        ),
    )


def _sweep_target(principal_id: UUID):
    return and_(
        Principal.id == principal_id,
        Principal.account_status == AccountStatus.ACTIVE,
        Principal.role != Role.ADMIN,
        not_(_completed_verification()),
    )


async def deactivate_if_unverified(
    db: AsyncSession,
    principal_id: UUID,
    *,
    reason: str,
    now: datetime,
    capabilities: dict[str, bool],
) -> bool:
    """
    Auto-deactivate the principal unless it is no longer active or has
    completed verification at write time.

    Returns:
        True if the row was updated
    """
    result = await db.execute(
        update(Principal)
        .where(_sweep_target(principal_id))
        .values(
            account_status=AccountStatus.AUTO_DEACTIVATED,
            deactivation_reason=reason,
            deactivated_at=now,
            **capabilities,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def mark_warning_sent_if_pending(db: AsyncSession, principal_id: UUID) -> bool:
    """
    Set ``deactivation_warning_sent`` unless the principal was already warned,
    is no longer active or has completed verification.

    Returns:
        True if the row was updated
    """
    result = await db.execute(
        update(Principal)
        .where(
            and_(
                _sweep_target(principal_id),
                Principal.deactivation_warning_sent.is_(False),
            )
        )
        .values(deactivation_warning_sent=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1
