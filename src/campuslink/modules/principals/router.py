"""
Principals Router

Endpoints for the calling principal's own account:
- POST /principals/me - Complete signup (role + display name)
- GET /principals/me - Get own account
- GET /principals/me/access - Capabilities and verification banner
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.auth import CurrentUser, get_current_user
from campuslink.core.database import get_db
from campuslink.core.exceptions import ServiceError, to_http_exception
from campuslink.modules.principals import service
from campuslink.modules.principals.schemas import (
    AccessSummaryResponse,
    PrincipalRegisterRequest,
    PrincipalResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/me",
    response_model=PrincipalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Complete Signup",
)
async def register_me(
    data: PrincipalRegisterRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> PrincipalResponse:
    """
    Create the principal record for the authenticated identity.

    The account starts unverified with a verification deadline; features
    unlock as verification completes.
    """
    if not user.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "EMAIL_CLAIM_MISSING", "message": "Token has no email claim."},
        )

    try:
        principal = await service.register_principal(
            db,
            principal_id=user.id,
            email=user.email,
            display_name=data.display_name,
            role=data.role,
        )
        return PrincipalResponse.model_validate(principal)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/me", response_model=PrincipalResponse, summary="Get Own Account")
async def get_me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> PrincipalResponse:
    try:
        principal = await service.get_principal(db, user.id)
        return PrincipalResponse.model_validate(principal)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/me/access", response_model=AccessSummaryResponse, summary="Get Own Capabilities")
async def get_my_access(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> AccessSummaryResponse:
    """Capabilities recomputed from the current account state."""
    try:
        summary = await service.get_access_summary(db, user.id)
        return AccessSummaryResponse(**summary)
    except ServiceError as e:
        raise to_http_exception(e) from e
