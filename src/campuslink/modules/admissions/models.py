"""
Admission Registry Models

Pre-issued admission/enrollment records. A record can be claimed by exactly
one principal; the claim columns always change together.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from campuslink.core.database import Base


def normalize_admission_number(value: str) -> str:
    """Registry keys are trimmed and upper-cased."""
    return value.strip().upper()


class AdmissionRecord(Base):
    """A pre-issued admission number with its canonical owner details."""

    __tablename__ = "admission_records"

    # Natural key, always normalized
    admission_number: Mapped[str] = mapped_column(String(50), primary_key=True)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    graduation_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    course: Mapped[str | None] = mapped_column(String(200), nullable=True)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Claim state
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Audit
    added_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "(claimed AND claimed_by IS NOT NULL) OR (NOT claimed AND claimed_by IS NULL)",
            name="ck_admission_records_claim_consistent",
        ),
        Index("ix_admission_records_claimed", "claimed"),
        Index("ix_admission_records_graduation_year", "graduation_year"),
        Index("ix_admission_records_claimed_by", "claimed_by"),
    )
