"""
Admission Registry Schemas

Pydantic schemas for the admin registry endpoints.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from campuslink.modules.admissions.models import normalize_admission_number


class AdmissionRecordCreate(BaseModel):
    """A single registry entry to import."""

    admission_number: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=200)
    graduation_year: int | None = Field(None, ge=1900, le=2200)
    course: str | None = Field(None, max_length=200)
    department: str | None = Field(None, max_length=200)

    @field_validator("admission_number")
    @classmethod
    def normalize_number(cls, v: str) -> str:
        normalized = normalize_admission_number(v)
        if not normalized:
            raise ValueError("admission number cannot be blank")
        return normalized

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full name cannot be blank")
        return v


class AdmissionRecordUpdate(BaseModel):
    """Descriptive fields an admin may correct. Claim state is not editable."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    graduation_year: int | None = Field(None, ge=1900, le=2200)
    course: str | None = Field(None, max_length=200)
    department: str | None = Field(None, max_length=200)


class BulkImportRequest(BaseModel):
    """
    Rows are kept raw here and validated one by one during the import, so a
    malformed row is reported without rejecting the rest of the batch.
    """

    records: list[dict[str, Any]] = Field(..., min_length=1, max_length=5000)


class AdmissionRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    admission_number: str
    full_name: str
    graduation_year: int | None = None
    course: str | None = None
    department: str | None = None
    claimed: bool
    claimed_by: UUID | None = None
    claimed_at: datetime | None = None
    added_by: UUID | None = None
    created_at: datetime


class AdmissionRecordListResponse(BaseModel):
    items: list[AdmissionRecordResponse]
    total: int
    skip: int
    limit: int


class ImportErrorItem(BaseModel):
    admission_number: str
    reason: str


class ImportReportResponse(BaseModel):
    """Outcome of a bulk import. Failed rows never abort the batch."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    successful: int
    failed: int
    errors: list[ImportErrorItem]
