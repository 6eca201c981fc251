"""
Verification Admin Router

Endpoints for administrators to review verification requests.
All endpoints require the admin role; the service additionally checks
the reviewer's role in the database.

Endpoints:
- GET /admin/verifications - List requests (newest first)
- GET /admin/verifications/{id} - Request details
- POST /admin/verifications/{id}/approve - Approve
- POST /admin/verifications/{id}/reject - Reject with a reason
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.auth import CurrentUser, get_current_admin_user
from campuslink.core.database import get_db
from campuslink.core.exceptions import ServiceError, internal_error, to_http_exception
from campuslink.core.rate_limit import RateLimitExceeded, check_rate_limit
from campuslink.modules.verification import service
from campuslink.modules.verification.models import RequestStatus
from campuslink.modules.verification.schemas import (
    RejectVerificationRequest,
    VerificationRequestListResponse,
    VerificationRequestResponse,
)
from campuslink.modules.verification.service import DecisionOutcome

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_DECIDE = (30, 60)  # 30 decisions per minute


async def _check_admin_rate_limit(admin: CurrentUser, action: str) -> None:
    limit, window = RATE_LIMIT_DECIDE
    if not await check_rate_limit(f"admin:{action}:{admin.id}", limit, window):
        logger.warning(f"Rate limit exceeded for admin {admin.id} on action '{action}'")
        raise RateLimitExceeded(limit, window)


@router.get(
    "",
    response_model=VerificationRequestListResponse,
    summary="List Verification Requests",
)
async def list_requests(
    status: RequestStatus | None = Query(None, description="Filter by request status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> VerificationRequestListResponse:
    try:
        requests, total = await service.list_requests(db, status=status, skip=skip, limit=limit)
    except Exception as e:
        logger.exception(f"Error listing verification requests: {e}")
        raise internal_error() from e

    logger.info(f"Admin {admin.id} listed verification requests: total={total}")
    return VerificationRequestListResponse(
        items=[VerificationRequestResponse.model_validate(r) for r in requests],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/{request_id}",
    response_model=VerificationRequestResponse,
    summary="Get Verification Request",
)
async def get_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> VerificationRequestResponse:
    try:
        request = await service.get_request(db, request_id)
        return VerificationRequestResponse.model_validate(request)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{request_id}/approve",
    response_model=VerificationRequestResponse,
    summary="Approve Verification Request",
    description="""
Approve a pending request. The principal's features unlock for their role and
an auto-deactivated account is reactivated. Approving an already approved
request returns it unchanged.

**Access:** Admin only
""",
)
async def approve_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> VerificationRequestResponse:
    await _check_admin_rate_limit(admin, "approve_verification")

    try:
        request = await service.decide(db, request_id, admin.id, DecisionOutcome.APPROVE)
        return VerificationRequestResponse.model_validate(request)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error approving verification request {request_id}: {e}")
        raise internal_error() from e


@router.post(
    "/{request_id}/reject",
    response_model=VerificationRequestResponse,
    summary="Reject Verification Request",
    description="""
Reject a pending request with a reason shown to the principal. The admission
number stays linked to the principal so they can resubmit.

**Access:** Admin only
""",
)
async def reject_request(
    request_id: UUID,
    data: RejectVerificationRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> VerificationRequestResponse:
    await _check_admin_rate_limit(admin, "reject_verification")

    try:
        request = await service.decide(
            db, request_id, admin.id, DecisionOutcome.REJECT, reason=data.reason
        )
        return VerificationRequestResponse.model_validate(request)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error rejecting verification request {request_id}: {e}")
        raise internal_error() from e
