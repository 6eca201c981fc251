"""
Principal Models

The principal is the account that moves through verification. Capability
flags are stored for query convenience only; they are always overwritten
from the access policy in the same commit as the state change that caused them.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from campuslink.core.database import Base


class Role(str, enum.Enum):
    """Principal roles."""

    STUDENT = "student"
    ALUMNI = "alumni"
    ASPIRANT = "aspirant"
    ADMIN = "admin"


class VerificationStatus(str, enum.Enum):
    """Verification state of a principal."""

    UNVERIFIED = "unverified"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccountStatus(str, enum.Enum):
    """Soft account states. Principals are never hard-deleted."""

    ACTIVE = "active"
    AUTO_DEACTIVATED = "auto_deactivated"
    SUSPENDED = "suspended"


class Principal(Base):
    """A registered user of the campus network."""

    __tablename__ = "principals"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="principal_role"), nullable=False)

    # Verification state
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, name="verification_status"),
        nullable=False,
        default=VerificationStatus.UNVERIFIED,
    )
    admission_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admission_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Account lifecycle
    account_status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus, name="account_status"),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )
    verification_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deactivation_warning_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    deactivation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Materialised capability flags (see access_policy)
    can_post_jobs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_post_feed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_message: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_accept_mentorship: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # The lifecycle sweep filters on these
    __table_args__ = (
        Index("ix_principals_account_status_deadline", "account_status", "verification_deadline"),
        Index("ix_principals_verification_status", "verification_status"),
    )
