"""
Test object builders.

Principals and registry rows are MagicMocks with every column set, so the
access policy and services see real values rather than auto-created mocks.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

from campuslink.modules.admissions.models import AdmissionRecord
from campuslink.modules.principals.models import (
    AccountStatus,
    Principal,
    Role,
    VerificationStatus,
)
from campuslink.modules.verification.models import (
    EmailOTP,
    RequestStatus,
    VerificationMethod,
    VerificationRequest,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def make_principal(**overrides) -> MagicMock:
    """Principal in the freshly registered state (student, unverified, active)."""
    principal = MagicMock(spec=Principal)
    principal.id = uuid4()
    principal.email = "student@campus.edu"
    principal.display_name = "John Doe"
    principal.role = Role.STUDENT
    principal.verification_status = VerificationStatus.UNVERIFIED
    principal.admission_verified = False
    principal.email_verified = False
    principal.admission_number = None
    principal.account_status = AccountStatus.ACTIVE
    principal.verification_deadline = NOW + timedelta(days=2)
    principal.deactivation_warning_sent = False
    principal.deactivation_reason = None
    principal.deactivated_at = None
    principal.can_post_jobs = False
    principal.can_post_feed = False
    principal.can_message = False
    principal.can_accept_mentorship = False

    for key, value in overrides.items():
        setattr(principal, key, value)
    return principal


def make_admission_record(**overrides) -> MagicMock:
    """Unclaimed registry row for 2020CS001 / John Doe / 2024."""
    record = MagicMock(spec=AdmissionRecord)
    record.admission_number = "2020CS001"
    record.full_name = "John Doe"
    record.graduation_year = 2024
    record.course = "Computer Science"
    record.department = "Engineering"
    record.claimed = False
    record.claimed_by = None
    record.claimed_at = None
    record.added_by = None

    for key, value in overrides.items():
        setattr(record, key, value)
    return record


def make_request(**overrides) -> MagicMock:
    """Pending ID card request."""
    request = MagicMock(spec=VerificationRequest)
    request.id = uuid4()
    request.principal_id = uuid4()
    request.role = Role.STUDENT
    request.method = VerificationMethod.ID_CARD
    request.status = RequestStatus.PENDING
    request.evidence_ref = "https://files.campus.edu/ids/front.jpg"
    request.admission_number = "2020CS001"
    request.rejection_reason = None
    request.reviewed_by = None
    request.reviewed_at = None
    request.details = []

    for key, value in overrides.items():
        setattr(request, key, value)
    return request


def make_otp(**overrides) -> MagicMock:
    """Unconfirmed code row that expires ten minutes after NOW."""
    otp = MagicMock(spec=EmailOTP)
    otp.email = "aspirant@example.com"
    otp.principal_id = uuid4()
    otp.code_hash = ""
    otp.expires_at = NOW + timedelta(minutes=10)
    otp.verified = False
    otp.verified_at = None
    otp.attempts = 0

    for key, value in overrides.items():
        setattr(otp, key, value)
    return otp
