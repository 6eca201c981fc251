"""
Verification Models

Verification requests (one per submission attempt), their structured
onboarding details, and the email one-time codes used by aspirants.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campuslink.core.database import Base
from campuslink.modules.principals.models import Role


class VerificationMethod(str, enum.Enum):
    """How the principal proves who they are."""

    ID_CARD = "id_card"  # Student/alumni: document upload + admission number
    EMAIL_OTP = "email_otp"  # Aspirant: one-time code sent to email


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DetailField(str, enum.Enum):
    """Onboarding answers that may accompany a request."""

    COLLEGE = "college"
    DEPARTMENT = "department"
    GRADUATION_YEAR = "graduation_year"
    COURSE = "course"
    PHONE_NUMBER = "phone_number"
    CURRENT_COMPANY = "current_company"
    LINKEDIN_URL = "linkedin_url"
    NOTES = "notes"


class VerificationRequest(Base):
    """
    A single verification submission.

    At most one request per principal may be pending; decided requests are
    never modified again.
    """

    __tablename__ = "verification_requests"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    principal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Role at submission time
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="principal_role"), nullable=False
    )
    method: Mapped[VerificationMethod] = mapped_column(
        Enum(VerificationMethod, name="verification_method"), nullable=False
    )
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="verification_request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
    )

    # Document URL or OTP confirmation marker; written once
    evidence_ref: Mapped[str] = mapped_column(String(1000), nullable=False)
    admission_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Decision
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    details: Mapped[list["VerificationRequestDetail"]] = relationship(
        "VerificationRequestDetail",
        back_populates="request",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_verification_requests_status_created", "status", "created_at"),
        Index("ix_verification_requests_principal_id", "principal_id"),
        Index(
            "uq_verification_requests_one_pending",
            "principal_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
        ),
    )


class VerificationRequestDetail(Base):
    """One onboarding answer attached to a request."""

    __tablename__ = "verification_request_details"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("verification_requests.id", ondelete="CASCADE"),
        primary_key=True,
    )
    field: Mapped[DetailField] = mapped_column(
        Enum(DetailField, name="verification_detail_field"), primary_key=True
    )
    value: Mapped[str] = mapped_column(String(500), nullable=False)

    request: Mapped["VerificationRequest"] = relationship(
        "VerificationRequest", back_populates="details"
    )


class EmailOTP(Base):
    """
    One-time code for aspirant email verification.

    One row per email; a new send replaces the previous row. Only the
    SHA-256 hash of the code is stored.
    """

    __tablename__ = "email_otps"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    principal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
    )

    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_email_otps_principal_id", "principal_id"),)
