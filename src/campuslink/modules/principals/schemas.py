"""
Principals Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus


class PrincipalRegisterRequest(BaseModel):
    """Request body for POST /principals/me. Admins are created by seeding, not signup."""

    display_name: str = Field(..., min_length=1, max_length=200)
    role: Role

    @field_validator("role")
    @classmethod
    def reject_admin_signup(cls, role: Role) -> Role:
        if role == Role.ADMIN:
            raise ValueError("admin accounts cannot be created through signup")
        return role


class CapabilityFlags(BaseModel):
    can_post_jobs: bool
    can_post_feed: bool
    can_message: bool
    can_accept_mentorship: bool


class PrincipalResponse(BaseModel):
    """Principal as shown to the principal itself and to admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: str
    role: Role
    verification_status: VerificationStatus
    admission_verified: bool
    email_verified: bool
    admission_number: str | None = None
    account_status: AccountStatus
    verification_deadline: datetime | None = None
    deactivation_warning_sent: bool
    deactivation_reason: str | None = None
    deactivated_at: datetime | None = None
    can_post_jobs: bool
    can_post_feed: bool
    can_message: bool
    can_accept_mentorship: bool
    created_at: datetime


class VerificationBanner(BaseModel):
    message: str
    type: Literal["info", "warning", "error"]
    action: str | None = None


class AccessSummaryResponse(BaseModel):
    """Response for GET /principals/me/access."""

    principal_id: UUID
    role: Role
    verification_status: VerificationStatus
    account_status: AccountStatus
    is_fully_verified: bool
    is_deactivated: bool
    capabilities: CapabilityFlags
    verification_deadline: datetime | None = None
    days_until_deactivation: int | None = None
    banner: VerificationBanner
