"""
Lifecycle Admin Router

Endpoints for administrators to manage account lifecycle:
- POST /admin/lifecycle/run - Run the deactivation/warning sweep now
- GET /admin/lifecycle/stats - Accounts approaching or past deactivation
- POST /admin/lifecycle/principals/{id}/extend-deadline - Extend verification deadline
- POST /admin/lifecycle/principals/{id}/reactivate - Reactivate an auto-deactivated account
- POST /admin/lifecycle/principals/{id}/suspend - Suspend an account
- POST /admin/lifecycle/principals/{id}/restore - Lift a suspension
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.auth import CurrentUser, get_current_admin_user
from campuslink.core.database import get_db
from campuslink.core.exceptions import ServiceError, internal_error, to_http_exception
from campuslink.modules.lifecycle import jobs, service
from campuslink.modules.lifecycle.schemas import (
    ExtendDeadlineRequest,
    LifecycleSweepResponse,
    PendingDeactivationStats,
    SuspendRequest,
)
from campuslink.modules.principals.schemas import PrincipalResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/run",
    response_model=LifecycleSweepResponse,
    summary="Run Lifecycle Sweep",
    description="""
Deactivate accounts past their verification deadline and warn accounts whose
deadline is within the warning window. Safe to run repeatedly.

**Access:** Admin only
""",
)
async def run_sweep(
    admin: CurrentUser = Depends(get_current_admin_user),
) -> LifecycleSweepResponse:
    logger.info(f"Admin {admin.id} triggered lifecycle sweep")
    try:
        results = await jobs.run_lifecycle_sweep()
    except Exception as e:
        logger.exception(f"Lifecycle sweep failed: {e}")
        raise internal_error() from e
    return LifecycleSweepResponse(**results)


@router.get("/stats", response_model=PendingDeactivationStats, summary="Deactivation Stats")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> PendingDeactivationStats:
    stats = await service.pending_deactivation_stats(db)
    return PendingDeactivationStats(**stats)


@router.post(
    "/principals/{principal_id}/extend-deadline",
    response_model=PrincipalResponse,
    summary="Extend Verification Deadline",
)
async def extend_deadline(
    principal_id: UUID,
    data: ExtendDeadlineRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> PrincipalResponse:
    try:
        principal = await service.extend_deadline(db, principal_id, days=data.days)
    except ServiceError as e:
        raise to_http_exception(e) from e

    logger.info(f"Admin {admin.id} extended deadline of {principal_id} by {data.days} days")
    return PrincipalResponse.model_validate(principal)


@router.post(
    "/principals/{principal_id}/reactivate",
    response_model=PrincipalResponse,
    summary="Reactivate Account",
)
async def reactivate(
    principal_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> PrincipalResponse:
    try:
        principal = await service.reactivate(db, principal_id)
    except ServiceError as e:
        raise to_http_exception(e) from e

    logger.info(f"Admin {admin.id} reactivated {principal_id}")
    return PrincipalResponse.model_validate(principal)


@router.post(
    "/principals/{principal_id}/suspend",
    response_model=PrincipalResponse,
    summary="Suspend Account",
)
async def suspend(
    principal_id: UUID,
    data: SuspendRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> PrincipalResponse:
    try:
        principal = await service.suspend(db, principal_id, data.reason)
    except ServiceError as e:
        raise to_http_exception(e) from e

    logger.info(f"Admin {admin.id} suspended {principal_id}")
    return PrincipalResponse.model_validate(principal)


@router.post(
    "/principals/{principal_id}/restore",
    response_model=PrincipalResponse,
    summary="Restore Suspended Account",
)
async def restore(
    principal_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> PrincipalResponse:
    try:
        principal = await service.restore(db, principal_id)
    except ServiceError as e:
        raise to_http_exception(e) from e

    logger.info(f"Admin {admin.id} restored {principal_id}")
    return PrincipalResponse.model_validate(principal)
