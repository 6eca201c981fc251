"""
Unit tests for the principal verification state machine.
"""

from campuslink.modules.principals.models import VerificationStatus
from campuslink.modules.verification.service import VALID_STATUS_TRANSITIONS


class TestStatusTransitions:
    """Tests for status transition state machine."""

    def test_every_status_has_an_entry(self):
        assert set(VALID_STATUS_TRANSITIONS) == set(VerificationStatus)

    def test_valid_transitions_from_unverified(self):
        valid = VALID_STATUS_TRANSITIONS[VerificationStatus.UNVERIFIED]
        assert VerificationStatus.PENDING in valid
        assert VerificationStatus.APPROVED in valid
        # An admin can only reject what was submitted
        assert VerificationStatus.REJECTED not in valid

    def test_valid_transitions_from_pending(self):
        valid = VALID_STATUS_TRANSITIONS[VerificationStatus.PENDING]
        assert valid == {VerificationStatus.APPROVED, VerificationStatus.REJECTED}

    def test_rejected_can_resubmit(self):
        valid = VALID_STATUS_TRANSITIONS[VerificationStatus.REJECTED]
        assert VerificationStatus.PENDING in valid
        assert VerificationStatus.UNVERIFIED not in valid

    def test_approved_is_terminal(self):
        assert VALID_STATUS_TRANSITIONS[VerificationStatus.APPROVED] == set()
