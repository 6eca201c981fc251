"""initial verification schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00.000000

This migration creates:
1. principals - accounts with verification and lifecycle state
2. admission_records - the admission registry with claim columns
3. verification_requests + verification_request_details
4. email_otps - aspirant email codes

The unique partial index on verification_requests allows at most one
PENDING request per principal, so concurrent submissions cannot both open
a request.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


principal_role = postgresql.ENUM(
    "STUDENT", "ALUMNI", "ASPIRANT", "ADMIN", name="principal_role", create_type=False
)
verification_status = postgresql.ENUM(
    "UNVERIFIED", "PENDING", "APPROVED", "REJECTED", name="verification_status", create_type=False
)
account_status = postgresql.ENUM(
    "ACTIVE", "AUTO_DEACTIVATED", "SUSPENDED", name="account_status", create_type=False
)
verification_method = postgresql.ENUM(
    "ID_CARD", "EMAIL_OTP", name="verification_method", create_type=False
)
verification_request_status = postgresql.ENUM(
    "PENDING", "APPROVED", "REJECTED", name="verification_request_status", create_type=False
)
verification_detail_field = postgresql.ENUM(
    "COLLEGE",
    "DEPARTMENT",
    "GRADUATION_YEAR",
    "COURSE",
    "PHONE_NUMBER",
    "CURRENT_COMPANY",
    "LINKEDIN_URL",
    "NOTES",
    name="verification_detail_field",
    create_type=False,
)

_ENUMS = (
    principal_role,
    verification_status,
    account_status,
    verification_method,
    verification_request_status,
    verification_detail_field,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the verification schema."""
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    # Principals
    op.create_table(
        "principals",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("role", principal_role, nullable=False),
        sa.Column("verification_status", verification_status, nullable=False),
        sa.Column("admission_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("admission_number", sa.String(length=50), nullable=True),
        sa.Column("account_status", account_status, nullable=False),
        sa.Column("verification_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "deactivation_warning_sent", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("deactivation_reason", sa.Text(), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("can_post_jobs", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("can_post_feed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("can_message", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "can_accept_mentorship", sa.Boolean(), nullable=False, server_default="false"
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_principals_email"),
    )
    op.create_index(
        "ix_principals_account_status_deadline",
        "principals",
        ["account_status", "verification_deadline"],
    )
    op.create_index("ix_principals_verification_status", "principals", ["verification_status"])

    # Admission registry
    op.create_table(
        "admission_records",
        sa.Column("admission_number", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("graduation_year", sa.Integer(), nullable=True),
        sa.Column("course", sa.String(length=200), nullable=True),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("claimed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("claimed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("added_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("admission_number"),
        sa.CheckConstraint(
            "(claimed AND claimed_by IS NOT NULL) OR (NOT claimed AND claimed_by IS NULL)",
            name="ck_admission_records_claim_consistent",
        ),
    )
    op.create_index("ix_admission_records_claimed", "admission_records", ["claimed"])
    op.create_index(
        "ix_admission_records_graduation_year", "admission_records", ["graduation_year"]
    )
    op.create_index("ix_admission_records_claimed_by", "admission_records", ["claimed_by"])

    # Verification requests
    op.create_table(
        "verification_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("principal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", principal_role, nullable=False),
        sa.Column("method", verification_method, nullable=False),
        sa.Column("status", verification_request_status, nullable=False),
        sa.Column("evidence_ref", sa.String(length=1000), nullable=False),
        sa.Column("admission_number", sa.String(length=50), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["principal_id"],
            ["principals.id"],
            name="fk_verification_requests_principal_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_verification_requests_status_created",
        "verification_requests",
        ["status", "created_at"],
    )
    op.create_index(
        "ix_verification_requests_principal_id", "verification_requests", ["principal_id"]
    )
    op.execute(
        """
        CREATE UNIQUE INDEX uq_verification_requests_one_pending
        ON verification_requests (principal_id)
        WHERE status = 'PENDING'
        """
    )

    op.create_table(
        "verification_request_details",
        sa.Column("request_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("field", verification_detail_field, nullable=False),
        sa.Column("value", sa.String(length=500), nullable=False),
        sa.PrimaryKeyConstraint("request_id", "field"),
        sa.ForeignKeyConstraint(
            ["request_id"],
            ["verification_requests.id"],
            name="fk_verification_request_details_request_id",
            ondelete="CASCADE",
        ),
    )

    # Email OTP
    op.create_table(
        "email_otps",
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("principal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("code_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("email"),
        sa.ForeignKeyConstraint(
            ["principal_id"],
            ["principals.id"],
            name="fk_email_otps_principal_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_email_otps_principal_id", "email_otps", ["principal_id"])


def downgrade() -> None:
    """Drop the verification schema."""
    op.drop_index("ix_email_otps_principal_id", table_name="email_otps")
    op.drop_table("email_otps")

    op.drop_table("verification_request_details")

    op.execute("DROP INDEX IF EXISTS uq_verification_requests_one_pending")
    op.drop_index("ix_verification_requests_principal_id", table_name="verification_requests")
    op.drop_index("ix_verification_requests_status_created", table_name="verification_requests")
    op.drop_table("verification_requests")

    op.drop_index("ix_admission_records_claimed_by", table_name="admission_records")
    op.drop_index("ix_admission_records_graduation_year", table_name="admission_records")
    op.drop_index("ix_admission_records_claimed", table_name="admission_records")
    op.drop_table("admission_records")

    op.drop_index("ix_principals_verification_status", table_name="principals")
    op.drop_index("ix_principals_account_status_deadline", table_name="principals")
    op.drop_table("principals")

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
