"""
Verification Router

Endpoints used by principals to verify their account:
- POST /verification/validate-admission - Check an admission number and name
- POST /verification/submit - Submit a verification request
- POST /verification/otp/send - Email a one-time code (aspirants)
- POST /verification/otp/verify - Confirm the code (aspirants)
- GET /verification/me - Own verification state

Security:
- All endpoints require a valid JWT
- Admission validation is rate limited per principal to slow down
  enumeration of the registry
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campuslink.core.auth import CurrentUser, get_current_user
from campuslink.core.database import get_db
from campuslink.core.exceptions import ServiceError, internal_error, to_http_exception
from campuslink.core.rate_limit import RateLimitExceeded, check_rate_limit
from campuslink.modules.principals import service as principals_service
from campuslink.modules.verification import otp, service
from campuslink.modules.verification.models import RequestStatus
from campuslink.modules.verification.schemas import (
    MatchedRecord,
    MyVerificationResponse,
    OtpSendResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    SubmitVerificationRequest,
    SubmitVerificationResponse,
    ValidateAdmissionRequest,
    ValidationResultResponse,
    VerificationRequestResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_VALIDATE = (20, 60)  # 20 lookups per minute


@router.post(
    "/validate-admission",
    response_model=ValidationResultResponse,
    summary="Validate Admission Number",
    description="""
Check an admission number against the registry before submitting.

**Status values:**
- `valid`: Number and name match
- `year_corrected`: Valid; `corrected_year` holds the registry's year
- `not_found`: Number is not in the registry
- `already_used`: Number is linked to another account
- `name_mismatch`: Name is too different; `suggested_name` holds the registry's name
""",
)
async def validate_admission(
    data: ValidateAdmissionRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ValidationResultResponse:
    limit, window = RATE_LIMIT_VALIDATE
    if not await check_rate_limit(f"validate_admission:{user.id}", limit, window):
        logger.warning(f"Admission validation rate limit hit by {user.id}")
        raise RateLimitExceeded(limit, window)

    try:
        result = await service.validate_admission(
            db,
            data.admission_number,
            claimed_name=data.full_name,
            claimed_year=data.graduation_year,
            principal_id=user.id,
        )
    except Exception as e:
        logger.exception(f"Error validating admission number: {e}")
        raise internal_error() from e

    return ValidationResultResponse(
        valid=result.valid,
        status=result.status,
        message=result.message,
        matched_record=(
            MatchedRecord.model_validate(result.matched_record) if result.matched_record else None
        ),
        suggested_name=result.suggested_name,
        corrected_year=result.corrected_year,
    )


@router.post(
    "/submit",
    response_model=SubmitVerificationResponse,
    status_code=201,
    summary="Submit Verification",
)
async def submit_verification(
    data: SubmitVerificationRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> SubmitVerificationResponse:
    """
    Submit a verification request for the calling principal.

    Students and alumni get a pending request for admin review; aspirants
    with a confirmed email code are approved immediately.
    """
    try:
        principal = await principals_service.get_principal(db, user.id)
        request_id = await service.submit(
            db,
            principal_id=principal.id,
            role=principal.role,
            method=data.method,
            evidence_ref=data.evidence_ref,
            admission_number=data.admission_number,
            details=data.details,
        )
        request = await service.get_request(db, request_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error submitting verification for {user.id}: {e}")
        raise internal_error() from e

    if request.status == RequestStatus.APPROVED:
        message = "Your email is verified. Your account is now active."
    else:
        message = "Verification submitted. An administrator will review your documents."

    return SubmitVerificationResponse(request_id=request.id, status=request.status, message=message)


@router.post("/otp/send", response_model=OtpSendResponse, summary="Send Email Code")
async def send_otp(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> OtpSendResponse:
    try:
        result = await otp.send_otp(db, user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e

    return OtpSendResponse(
        message="A verification code has been sent to your email.",
        email=result["email"],
        expires_at=result["expires_at"],
    )


@router.post("/otp/verify", response_model=OtpVerifyResponse, summary="Confirm Email Code")
async def verify_otp(
    data: OtpVerifyRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> OtpVerifyResponse:
    """Confirm the emailed code. Submit with method ``email_otp`` afterwards."""
    try:
        principal = await principals_service.get_principal(db, user.id)
        await otp.verify_otp(db, principal.email, data.code)
    except ServiceError as e:
        raise to_http_exception(e) from e

    return OtpVerifyResponse(verified=True, message="Email verified successfully.")


@router.get("/me", response_model=MyVerificationResponse, summary="Get Own Verification State")
async def get_my_verification(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> MyVerificationResponse:
    try:
        state = await service.get_my_verification(db, user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e

    latest = state.pop("latest_request")
    return MyVerificationResponse(
        **state,
        latest_request=VerificationRequestResponse.model_validate(latest) if latest else None,
    )
