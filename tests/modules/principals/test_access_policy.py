"""
Unit tests for the access policy.

Capabilities are a pure function of role, verification state and account
state; these tests walk the role matrix and the admin override.
"""

from datetime import timedelta

import pytest
from factories import NOW, make_principal

from campuslink.modules.principals import access_policy
from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus


def _approved(role: Role, **overrides):
    fields = {
        "role": role,
        "verification_status": VerificationStatus.APPROVED,
        "admission_verified": role != Role.ASPIRANT,
        "email_verified": role == Role.ASPIRANT,
    }
    fields.update(overrides)
    return make_principal(**fields)


class TestAdminOverride:
    """Admins pass every check regardless of stored state."""

    def test_admin_has_everything(self):
        admin = make_principal(
            role=Role.ADMIN,
            verification_status=VerificationStatus.UNVERIFIED,
            account_status=AccountStatus.SUSPENDED,
        )

        assert access_policy.is_fully_verified(admin) is True
        assert access_policy.is_deactivated(admin) is False
        assert access_policy.compute_capabilities(admin) == access_policy.ALL_CAPABILITIES

    def test_apply_restores_admin_active_status(self):
        admin = make_principal(role=Role.ADMIN, account_status=AccountStatus.AUTO_DEACTIVATED)

        access_policy.apply_capabilities(admin)

        assert admin.account_status == AccountStatus.ACTIVE
        assert admin.can_post_jobs is True
        assert admin.can_accept_mentorship is True


class TestRoleMatrix:
    """Capabilities for approved, active principals of each role."""

    @pytest.mark.parametrize(
        "role,expected",
        [
            (Role.ALUMNI, (True, True, True, True)),
            (Role.STUDENT, (False, True, True, False)),
            (Role.ASPIRANT, (False, True, True, False)),
        ],
    )
    def test_approved_capabilities(self, role, expected):
        caps = access_policy.compute_capabilities(_approved(role))

        assert (
            caps.can_post_jobs,
            caps.can_post_feed,
            caps.can_message,
            caps.can_accept_mentorship,
        ) == expected

    @pytest.mark.parametrize("role", [Role.STUDENT, Role.ALUMNI, Role.ASPIRANT])
    def test_unverified_has_nothing(self, role):
        principal = make_principal(role=role)

        assert access_policy.compute_capabilities(principal) == access_policy.NO_CAPABILITIES

    def test_approval_without_admission_check_is_not_full(self):
        """Both stages are required for students and alumni."""
        principal = _approved(Role.ALUMNI, admission_verified=False)

        assert access_policy.is_fully_verified(principal) is False
        assert access_policy.can_post_jobs(principal) is False

    def test_pending_has_nothing(self):
        principal = make_principal(
            role=Role.ALUMNI,
            verification_status=VerificationStatus.PENDING,
            admission_verified=True,
        )

        assert access_policy.compute_capabilities(principal) == access_policy.NO_CAPABILITIES

    def test_aspirant_is_never_fully_verified(self):
        aspirant = _approved(Role.ASPIRANT)

        assert access_policy.is_fully_verified(aspirant) is False
        assert access_policy.is_verified_aspirant(aspirant) is True
        assert access_policy.has_completed_verification(aspirant) is True


class TestDeactivation:
    @pytest.mark.parametrize("status", [AccountStatus.AUTO_DEACTIVATED, AccountStatus.SUSPENDED])
    def test_deactivated_approved_principal_has_nothing(self, status):
        principal = _approved(Role.ALUMNI, account_status=status)

        assert access_policy.is_deactivated(principal) is True
        assert access_policy.is_fully_verified(principal) is False
        assert access_policy.compute_capabilities(principal) == access_policy.NO_CAPABILITIES

    def test_deactivated_aspirant_has_nothing(self):
        aspirant = _approved(Role.ASPIRANT, account_status=AccountStatus.AUTO_DEACTIVATED)

        assert access_policy.is_verified_aspirant(aspirant) is False
        assert access_policy.can_message(aspirant) is False

    def test_apply_overwrites_stale_flags(self):
        principal = _approved(Role.ALUMNI, account_status=AccountStatus.SUSPENDED)
        principal.can_post_jobs = True
        principal.can_message = True

        caps = access_policy.apply_capabilities(principal)

        assert caps == access_policy.NO_CAPABILITIES
        assert principal.can_post_jobs is False
        assert principal.can_message is False


class TestDaysUntilDeactivation:
    def test_no_deadline(self):
        principal = make_principal(verification_deadline=None)

        assert access_policy.days_until_deactivation(principal) is None

    def test_partial_days_round_up(self):
        principal = make_principal(verification_deadline=NOW + timedelta(hours=25))

        assert access_policy.days_until_deactivation(principal, NOW) == 2

    def test_past_deadline_is_zero(self):
        principal = make_principal(verification_deadline=NOW - timedelta(days=3))

        assert access_policy.days_until_deactivation(principal, NOW) == 0


class TestVerificationMessage:
    """Banner text for the UI."""

    def test_admin(self):
        banner = access_policy.verification_message(make_principal(role=Role.ADMIN), NOW)
        assert banner["type"] == "info"

    def test_auto_deactivated(self):
        principal = make_principal(account_status=AccountStatus.AUTO_DEACTIVATED)

        banner = access_policy.verification_message(principal, NOW)

        assert banner["type"] == "error"
        assert banner["action"] == "Complete Verification"

    def test_fully_verified(self):
        banner = access_policy.verification_message(_approved(Role.STUDENT), NOW)
        assert banner["message"] == "Your account is fully verified!"

    def test_last_day_is_urgent(self):
        principal = make_principal(verification_deadline=NOW + timedelta(hours=10))

        banner = access_policy.verification_message(principal, NOW)

        assert banner["type"] == "warning"
        assert banner["message"].startswith("Urgent")

    def test_pending_review(self):
        principal = make_principal(
            verification_status=VerificationStatus.PENDING,
            verification_deadline=NOW + timedelta(days=2),
        )

        banner = access_policy.verification_message(principal, NOW)

        assert "awaiting administrator review" in banner["message"]

    def test_aspirant_prompted_for_email(self):
        principal = make_principal(role=Role.ASPIRANT)

        banner = access_policy.verification_message(principal, NOW)

        assert banner["action"] == "Verify Email"
