"""
Verification Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus
from campuslink.modules.verification.models import DetailField, RequestStatus, VerificationMethod

ValidationStatus = Literal["valid", "not_found", "already_used", "name_mismatch", "year_corrected"]


# ============================================
# Admission Validation
# ============================================


class ValidateAdmissionRequest(BaseModel):
    """Request body for POST /verification/validate-admission."""

    admission_number: str = Field(..., min_length=1, max_length=50)
    full_name: str | None = Field(None, max_length=200)
    graduation_year: int | None = Field(None, ge=1900, le=2200)


class MatchedRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    admission_number: str
    full_name: str
    graduation_year: int | None = None
    course: str | None = None
    department: str | None = None


class ValidationResultResponse(BaseModel):
    """
    Outcome of checking an admission number against the registry.

    ``valid`` is true for ``valid`` and ``year_corrected``; in the latter
    case ``corrected_year`` carries the registry's graduation year.
    """

    valid: bool
    status: ValidationStatus
    message: str
    matched_record: MatchedRecord | None = None
    suggested_name: str | None = None
    corrected_year: int | None = None


# ============================================
# Submission
# ============================================


class SubmitVerificationRequest(BaseModel):
    """
    Request body for POST /verification/submit.

    Students and alumni send ``id_card`` with the uploaded document
    reference and their admission number. Aspirants send ``email_otp``
    after confirming their code; no evidence is needed.
    """

    method: VerificationMethod
    evidence_ref: str | None = Field(None, min_length=1, max_length=1000)
    admission_number: str | None = Field(None, min_length=1, max_length=50)
    details: dict[DetailField, str] | None = None

    @field_validator("details")
    @classmethod
    def validate_details(cls, v: dict[DetailField, str] | None) -> dict[DetailField, str] | None:
        if v is None:
            return None
        cleaned = {}
        for key, value in v.items():
            value = value.strip()
            if len(value) > 500:
                raise ValueError(f"details.{key.value} must be at most 500 characters")
            if value:
                cleaned[key] = value
        return cleaned

    @model_validator(mode="after")
    def validate_method_fields(self) -> "SubmitVerificationRequest":
        if self.method == VerificationMethod.ID_CARD:
            if not self.evidence_ref:
                raise ValueError("evidence_ref is required for id_card verification")
            if not self.admission_number:
                raise ValueError("admission_number is required for id_card verification")
        return self


class SubmitVerificationResponse(BaseModel):
    request_id: UUID
    status: RequestStatus
    message: str


# ============================================
# Email OTP
# ============================================


class OtpSendResponse(BaseModel):
    message: str
    email: str  # masked
    expires_at: datetime


class OtpVerifyRequest(BaseModel):
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code from the email")


class OtpVerifyResponse(BaseModel):
    verified: bool
    message: str


# ============================================
# Requests
# ============================================


class VerificationDetailItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    field: DetailField
    value: str


class VerificationRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    principal_id: UUID
    role: Role
    method: VerificationMethod
    status: RequestStatus
    evidence_ref: str
    admission_number: str | None = None
    rejection_reason: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    details: list[VerificationDetailItem] = []


class VerificationRequestListResponse(BaseModel):
    items: list[VerificationRequestResponse]
    total: int
    skip: int
    limit: int


class RejectVerificationRequest(BaseModel):
    """Request body for rejecting a verification request."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Reason shown to the principal",
        json_schema_extra={"example": "The ID card photo is unreadable. Please upload a clearer image."},
    )

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be blank")
        return v


class MyVerificationResponse(BaseModel):
    """Response for GET /verification/me."""

    verification_status: VerificationStatus
    admission_verified: bool
    email_verified: bool
    admission_number: str | None = None
    account_status: AccountStatus
    verification_deadline: datetime | None = None
    latest_request: VerificationRequestResponse | None = None
    has_pending_otp: bool = False
