"""
Unit tests for the lifecycle sweep jobs.

These tests cover:
- Deactivating principals past their deadline
- Warning principals inside the warning window
- Idempotence on repeated runs
- An approval landing between candidate selection and the write
- Per-principal error collection
- Job registration with the scheduler
"""

from contextlib import asynccontextmanager, contextmanager
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from factories import NOW, make_principal

from campuslink.core.scheduler import list_registered_jobs
from campuslink.modules.lifecycle.jobs import (
    JOB_ID_LIFECYCLE_SWEEP,
    deactivate_expired_accounts,
    register_lifecycle_jobs,
    run_lifecycle_sweep,
    send_deactivation_warnings,
)
from campuslink.modules.principals import access_policy
from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus

JOBS = "campuslink.modules.lifecycle.jobs"
LIFECYCLE_SERVICE = "campuslink.modules.lifecycle.service"


def _session_factory(db):
    @asynccontextmanager
    async def factory():
        yield db

    return factory


def _is_sweep_target(principal) -> bool:
    """Mirror of the WHERE clause of the conditional sweep writes."""
    return (
        principal is not None
        and principal.account_status == AccountStatus.ACTIVE
        and principal.role != Role.ADMIN
        and not access_policy.has_completed_verification(principal)
    )


def _build_repository(*principals, deactivation=(), warning=()) -> MagicMock:
    by_id = {p.id: p for p in principals}
    mock_repo = MagicMock()

    async def deactivate_if_unverified(db, principal_id, *, reason, now, capabilities):
        principal = by_id.get(principal_id)
        if not _is_sweep_target(principal):
            return False
        principal.account_status = AccountStatus.AUTO_DEACTIVATED
        principal.deactivation_reason = reason
        principal.deactivated_at = now
        for name, value in capabilities.items():
            setattr(principal, name, value)
        return True

    async def mark_warning_sent_if_pending(db, principal_id):
        principal = by_id.get(principal_id)
        if not _is_sweep_target(principal) or principal.deactivation_warning_sent:
            return False
        principal.deactivation_warning_sent = True
        return True

    mock_repo.get_by_id = AsyncMock(side_effect=lambda db, pid: by_id.get(pid))
    mock_repo.deactivate_if_unverified = AsyncMock(side_effect=deactivate_if_unverified)
    mock_repo.mark_warning_sent_if_pending = AsyncMock(side_effect=mark_warning_sent_if_pending)
    mock_repo.get_deactivation_candidates = AsyncMock(return_value=list(deactivation))
    mock_repo.get_warning_candidates = AsyncMock(return_value=list(warning))
    return mock_repo


@contextmanager
def _patched_repository(mock_db, mock_repo):
    """The jobs and the lifecycle service share one principals repository."""
    with (
        patch(f"{JOBS}.async_session_maker", _session_factory(mock_db)),
        patch(f"{JOBS}.repository", mock_repo),
        patch(f"{LIFECYCLE_SERVICE}.repository", mock_repo),
    ):
        yield mock_repo


class TestDeactivateExpiredAccounts:
    """Tests for the deactivation step."""

    @pytest.mark.asyncio
    async def test_deactivates_overdue_principal(self, mock_db):
        overdue = make_principal(
            verification_deadline=NOW - timedelta(hours=1), can_post_feed=True
        )
        mock_repo = _build_repository(overdue, deactivation=[overdue])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated") as mock_email,
        ):
            mock_email.return_value = True

            results = await deactivate_expired_accounts(now=NOW)

        assert results["total_deactivated"] == 1
        assert results["deactivated"][0]["principal_id"] == str(overdue.id)
        assert results["deactivated"][0]["email_sent"] is True
        assert overdue.account_status == AccountStatus.AUTO_DEACTIVATED
        assert overdue.deactivated_at == NOW
        assert overdue.can_post_feed is False
        mock_repo.deactivate_if_unverified.assert_awaited_once_with(
            mock_db,
            overdue.id,
            reason="Verification not completed before the deadline",
            now=NOW,
            capabilities=access_policy.NO_CAPABILITIES.as_dict(),
        )
        mock_email.assert_called_once_with(
            to_email=overdue.email, user_name=overdue.display_name
        )

    @pytest.mark.asyncio
    async def test_skips_completed_verification(self, mock_db):
        """An approved principal keeps its account after the deadline."""
        verified = make_principal(
            role=Role.ALUMNI,
            verification_status=VerificationStatus.APPROVED,
            admission_verified=True,
            verification_deadline=NOW - timedelta(days=1),
        )
        aspirant = make_principal(
            role=Role.ASPIRANT,
            verification_status=VerificationStatus.APPROVED,
            email_verified=True,
            verification_deadline=NOW - timedelta(days=1),
        )
        mock_repo = _build_repository(verified, aspirant, deactivation=[verified, aspirant])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated") as mock_email,
        ):
            results = await deactivate_expired_accounts(now=NOW)

        assert results["total_deactivated"] == 0
        assert verified.account_status == AccountStatus.ACTIVE
        assert aspirant.account_status == AccountStatus.ACTIVE
        mock_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_approval_after_selection_keeps_account_active(self, mock_db):
        """An approval committed between candidate selection and the write wins."""
        pending = make_principal(
            verification_status=VerificationStatus.PENDING,
            admission_verified=True,
            verification_deadline=NOW - timedelta(hours=1),
        )
        mock_repo = _build_repository(pending, deactivation=[pending])
        conditional_write = mock_repo.deactivate_if_unverified.side_effect

        async def approve_then_write(db, principal_id, **kwargs):
            pending.verification_status = VerificationStatus.APPROVED
            access_policy.apply_capabilities(pending)
            return await conditional_write(db, principal_id, **kwargs)

        mock_repo.deactivate_if_unverified.side_effect = approve_then_write

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated") as mock_email,
        ):
            results = await deactivate_expired_accounts(now=NOW)

        assert results["total_deactivated"] == 0
        assert results["total_errors"] == 0
        assert pending.account_status == AccountStatus.ACTIVE
        assert pending.verification_status == VerificationStatus.APPROVED
        assert pending.can_post_feed is True
        mock_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, mock_db):
        overdue = make_principal(verification_deadline=NOW - timedelta(hours=1))
        mock_repo = _build_repository(overdue, deactivation=[overdue])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated", AsyncMock(return_value=True)) as mock_email,
        ):
            first = await deactivate_expired_accounts(now=NOW)
            second = await deactivate_expired_accounts(now=NOW + timedelta(hours=1))

        assert first["total_deactivated"] == 1
        assert second["total_deactivated"] == 0
        assert mock_email.call_count == 1
        assert overdue.deactivated_at == NOW

    @pytest.mark.asyncio
    async def test_failures_are_collected(self, mock_db):
        """One broken principal does not stop the others."""
        broken = make_principal(email="broken@campus.edu")
        overdue = make_principal(verification_deadline=NOW - timedelta(hours=1))
        mock_repo = _build_repository(overdue, deactivation=[broken, overdue])
        conditional_write = mock_repo.deactivate_if_unverified.side_effect

        async def write(db, principal_id, **kwargs):
            if principal_id == broken.id:
                raise RuntimeError("row locked")
            return await conditional_write(db, principal_id, **kwargs)

        mock_repo.deactivate_if_unverified.side_effect = write

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated", AsyncMock(return_value=True)),
        ):
            results = await deactivate_expired_accounts(now=NOW)

        assert results["total_deactivated"] == 1
        assert results["total_errors"] == 1
        assert results["errors"][0] == {
            "principal_id": str(broken.id),
            "step": "deactivate",
            "error": "row locked",
        }


class TestSendDeactivationWarnings:
    """Tests for the warning step."""

    @pytest.mark.asyncio
    async def test_warns_once(self, mock_db):
        soon = make_principal(verification_deadline=NOW + timedelta(hours=10))
        mock_repo = _build_repository(soon, warning=[soon])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_deactivation_warning", AsyncMock(return_value=True)) as mock_email,
        ):
            first = await send_deactivation_warnings(now=NOW)
            second = await send_deactivation_warnings(now=NOW + timedelta(hours=1))

        assert first["total_warned"] == 1
        assert first["warned"][0]["status"] == "sent"
        assert second["total_warned"] == 0
        assert soon.deactivation_warning_sent is True
        mock_email.assert_called_once_with(
            to_email=soon.email,
            user_name=soon.display_name,
            deadline=soon.verification_deadline,
        )

    @pytest.mark.asyncio
    async def test_no_warning_after_approval(self, mock_db):
        soon = make_principal(verification_deadline=NOW + timedelta(hours=10))
        mock_repo = _build_repository(soon, warning=[soon])
        conditional_write = mock_repo.mark_warning_sent_if_pending.side_effect

        async def approve_then_write(db, principal_id):
            soon.verification_status = VerificationStatus.APPROVED
            soon.admission_verified = True
            return await conditional_write(db, principal_id)

        mock_repo.mark_warning_sent_if_pending.side_effect = approve_then_write

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_deactivation_warning", AsyncMock(return_value=True)) as mock_email,
        ):
            results = await send_deactivation_warnings(now=NOW)

        assert results["total_warned"] == 0
        assert soon.deactivation_warning_sent is False
        mock_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_flag_kept_when_email_fails(self, mock_db):
        soon = make_principal(verification_deadline=NOW + timedelta(hours=10))
        mock_repo = _build_repository(soon, warning=[soon])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_deactivation_warning", AsyncMock(return_value=False)),
        ):
            results = await send_deactivation_warnings(now=NOW)

        assert results["warned"][0]["status"] == "marked_sent_email_failed"
        assert soon.deactivation_warning_sent is True

    @pytest.mark.asyncio
    async def test_window_uses_warning_hours(self, mock_db):
        mock_repo = _build_repository()

        with _patched_repository(mock_db, mock_repo):
            await send_deactivation_warnings(now=NOW)

        mock_repo.get_warning_candidates.assert_called_once_with(
            mock_db, NOW, NOW + timedelta(hours=24)
        )


class TestRunLifecycleSweep:
    @pytest.mark.asyncio
    async def test_sweep_runs_both_steps(self, mock_db):
        overdue = make_principal(verification_deadline=NOW - timedelta(hours=1))
        soon = make_principal(
            email="soon@campus.edu", verification_deadline=NOW + timedelta(hours=5)
        )
        mock_repo = _build_repository(overdue, soon, deactivation=[overdue], warning=[soon])

        with (
            _patched_repository(mock_db, mock_repo),
            patch(f"{JOBS}.send_account_deactivated", AsyncMock(return_value=True)),
            patch(f"{JOBS}.send_deactivation_warning", AsyncMock(return_value=True)),
        ):
            results = await run_lifecycle_sweep(now=NOW)

        assert results["executed_at"] == NOW.isoformat()
        assert results["total_deactivated"] == 1
        assert results["total_warned"] == 1
        assert results["total_errors"] == 0
        assert soon.account_status == AccountStatus.ACTIVE


class TestRegisterLifecycleJobs:
    def test_registers_sweep(self):
        register_lifecycle_jobs()

        job_ids = [job["job_id"] for job in list_registered_jobs()]
        assert JOB_ID_LIFECYCLE_SWEEP in job_ids
