"""
Lifecycle Schemas
"""

from pydantic import BaseModel, Field, field_validator


class ExtendDeadlineRequest(BaseModel):
    days: int = Field(2, ge=1, le=30, description="Days to add to the deadline")


class SuspendRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be blank")
        return v


class PendingDeactivationStats(BaseModel):
    expiring_24h: int
    expiring_48h: int
    already_deactivated: int


class LifecycleSweepError(BaseModel):
    principal_id: str
    step: str
    error: str


class LifecycleSweepResponse(BaseModel):
    """Report of one lifecycle sweep."""

    executed_at: str
    deactivated: list[dict]
    warned: list[dict]
    total_deactivated: int
    total_warned: int
    total_errors: int
    errors: list[LifecycleSweepError]
