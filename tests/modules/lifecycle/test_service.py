"""
Unit tests for account lifecycle operations.

These tests cover:
- Deadline extensions (bounds, base date, warning re-arm)
- Reactivation of auto-deactivated accounts
- Suspension and restore
- Admin protection
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from factories import NOW, make_principal

from campuslink.modules.lifecycle.service import (
    DEACTIVATION_REASON,
    AccountNotSuspendedError,
    AdminAccountProtectedError,
    InvalidDeadlineExtensionError,
    auto_deactivate,
    clear_deactivation,
    extend_deadline,
    pending_deactivation_stats,
    reactivate,
    restore,
    suspend,
)
from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus

REPOSITORY = "campuslink.modules.lifecycle.service.repository"


def _deactivated(**overrides):
    fields = {
        "account_status": AccountStatus.AUTO_DEACTIVATED,
        "deactivation_reason": DEACTIVATION_REASON,
        "deactivated_at": NOW - timedelta(hours=2),
    }
    fields.update(overrides)
    return make_principal(**fields)


class TestInSessionTransitions:
    def test_clear_only_touches_auto_deactivated(self):
        suspended = make_principal(account_status=AccountStatus.SUSPENDED)

        assert clear_deactivation(suspended) is False
        assert suspended.account_status == AccountStatus.SUSPENDED

        deactivated = _deactivated()
        assert clear_deactivation(deactivated) is True
        assert deactivated.account_status == AccountStatus.ACTIVE
        assert deactivated.deactivated_at is None


class TestExtendDeadline:
    """Tests for admin deadline extensions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [0, 31, -1])
    async def test_out_of_range(self, mock_db, days):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock()

            with pytest.raises(InvalidDeadlineExtensionError):
                await extend_deadline(mock_db, make_principal().id, days=days)

        mock_repo.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_extends_from_future_deadline(self, mock_db):
        principal = make_principal(
            verification_deadline=NOW + timedelta(days=1), deactivation_warning_sent=True
        )

        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=principal)
            mock_repo.save = AsyncMock(side_effect=lambda db, p: p)

            result = await extend_deadline(mock_db, principal.id, days=3, now=NOW)

        assert result.verification_deadline == NOW + timedelta(days=4)
        assert result.deactivation_warning_sent is False

    @pytest.mark.asyncio
    async def test_extends_from_now_when_deadline_passed(self, mock_db):
        """A lapsed deadline is extended from now; the account stays deactivated."""
        principal = _deactivated(verification_deadline=NOW - timedelta(days=5))

        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=principal)
            mock_repo.save = AsyncMock(side_effect=lambda db, p: p)

            result = await extend_deadline(mock_db, principal.id, days=2, now=NOW)

        assert result.verification_deadline == NOW + timedelta(days=2)
        assert result.account_status == AccountStatus.AUTO_DEACTIVATED

    @pytest.mark.asyncio
    async def test_admin_refused(self, mock_db, admin):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=admin)
            mock_repo.save = AsyncMock()

            with pytest.raises(AdminAccountProtectedError):
                await extend_deadline(mock_db, admin.id, days=2, now=NOW)

        mock_repo.save.assert_not_called()


class TestReactivate:
    @pytest.mark.asyncio
    async def test_reactivates_and_recomputes(self, mock_db):
        principal = _deactivated(
            role=Role.ALUMNI,
            verification_status=VerificationStatus.APPROVED,
            admission_verified=True,
        )

        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=principal)
            mock_repo.save = AsyncMock(side_effect=lambda db, p: p)

            result = await reactivate(mock_db, principal.id)

        assert result.account_status == AccountStatus.ACTIVE
        assert result.can_post_jobs is True
        mock_repo.save.assert_called_once()

    @pytest.mark.asyncio
    async def test_active_account_is_noop(self, mock_db, student):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=student)
            mock_repo.save = AsyncMock()

            result = await reactivate(mock_db, student.id)

        assert result is student
        mock_repo.save.assert_not_called()


class TestSuspendRestore:
    @pytest.mark.asyncio
    async def test_suspend_and_restore(self, mock_db):
        principal = make_principal(
            role=Role.ALUMNI,
            verification_status=VerificationStatus.APPROVED,
            admission_verified=True,
        )

        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=principal)
            mock_repo.save = AsyncMock(side_effect=lambda db, p: p)

            await suspend(mock_db, principal.id, "Spam reports", now=NOW)

            assert principal.account_status == AccountStatus.SUSPENDED
            assert principal.deactivation_reason == "Spam reports"
            assert principal.can_post_jobs is False

            await restore(mock_db, principal.id)

        assert principal.account_status == AccountStatus.ACTIVE
        assert principal.deactivation_reason is None
        assert principal.can_post_jobs is True

    @pytest.mark.asyncio
    async def test_suspend_admin_refused(self, mock_db, admin):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=admin)

            with pytest.raises(AdminAccountProtectedError):
                await suspend(mock_db, admin.id, "nope")

    @pytest.mark.asyncio
    async def test_restore_requires_suspension(self, mock_db):
        principal = _deactivated()

        with patch(REPOSITORY) as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=principal)

            with pytest.raises(AccountNotSuspendedError):
                await restore(mock_db, principal.id)


class TestStats:
    @pytest.mark.asyncio
    async def test_windows(self, mock_db):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.count_active_with_deadline_between = AsyncMock(side_effect=[3, 5])
            mock_repo.count_by_account_status = AsyncMock(return_value=7)

            stats = await pending_deactivation_stats(mock_db, now=NOW)

        assert stats == {"expiring_24h": 3, "expiring_48h": 5, "already_deactivated": 7}
        first, second = mock_repo.count_active_with_deadline_between.call_args_list
        assert first.args[1:] == (NOW, NOW + timedelta(hours=24))
        assert second.args[1:] == (NOW + timedelta(hours=24), NOW + timedelta(hours=48))


class TestAutoDeactivate:
    @pytest.mark.asyncio
    async def test_conditional_write_drops_capabilities(self, mock_db, student):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.deactivate_if_unverified = AsyncMock(return_value=True)

            assert await auto_deactivate(mock_db, student.id, NOW) is True

        mock_repo.deactivate_if_unverified.assert_awaited_once_with(
            mock_db,
            student.id,
            reason=DEACTIVATION_REASON,
            now=NOW,
            capabilities={
                "can_post_jobs": False,
                "can_post_feed": False,
                "can_message": False,
                "can_accept_mentorship": False,
            },
        )

    @pytest.mark.asyncio
    async def test_reports_when_row_no_longer_qualifies(self, mock_db, student):
        with patch(REPOSITORY) as mock_repo:
            mock_repo.deactivate_if_unverified = AsyncMock(return_value=False)

            assert await auto_deactivate(mock_db, student.id, NOW) is False
