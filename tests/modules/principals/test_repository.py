"""
Unit tests for the principals repository writes used by the lifecycle sweep.

The sweep and admin decisions run concurrently; the sweep's writes carry
their own eligibility check so a decision committed in between wins.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from factories import NOW
from sqlalchemy.dialects import postgresql

from campuslink.modules.principals import repository
from campuslink.modules.principals.access_policy import NO_CAPABILITIES
from campuslink.modules.principals.models import AccountStatus, Role, VerificationStatus


def _executed(mock_db):
    statement = mock_db.execute.call_args.args[0]
    compiled = statement.compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params


class TestDeactivateIfUnverified:
    async def _deactivate(self, mock_db, principal_id, rowcount=1):
        mock_db.execute.return_value = MagicMock(rowcount=rowcount)
        return await repository.deactivate_if_unverified(
            mock_db,
            principal_id,
            reason="Verification not completed before the deadline",
            now=NOW,
            capabilities=NO_CAPABILITIES.as_dict(),
        )

    @pytest.mark.asyncio
    async def test_write_rechecks_eligibility(self, mock_db):
        principal_id = uuid4()

        await self._deactivate(mock_db, principal_id)

        sql, params = _executed(mock_db)
        assert sql.startswith("UPDATE principals SET")
        assert "principals.id = " in sql
        assert "principals.account_status = " in sql
        assert "principals.role != " in sql
        assert "NOT (principals.verification_status = " in sql
        assert "principals.admission_verified IS true" in sql
        assert "principals.email_verified IS true" in sql
        assert params["id_1"] == principal_id
        assert params["account_status_1"] == AccountStatus.ACTIVE
        assert params["verification_status_1"] == VerificationStatus.APPROVED
        assert Role.ADMIN in params.values()

    @pytest.mark.asyncio
    async def test_sets_deactivated_state_and_clears_capabilities(self, mock_db):
        await self._deactivate(mock_db, uuid4())

        _, params = _executed(mock_db)
        assert params["account_status"] == AccountStatus.AUTO_DEACTIVATED
        assert params["deactivated_at"] == NOW
        assert params["deactivation_reason"] == "Verification not completed before the deadline"
        for name in ("can_post_jobs", "can_post_feed", "can_message", "can_accept_mentorship"):
            assert params[name] is False

    @pytest.mark.asyncio
    async def test_rowcount_decides_result(self, mock_db):
        assert await self._deactivate(mock_db, uuid4(), rowcount=1) is True
        assert await self._deactivate(mock_db, uuid4(), rowcount=0) is False
        assert mock_db.commit.await_count == 2


class TestMarkWarningSentIfPending:
    @pytest.mark.asyncio
    async def test_write_requires_unwarned_eligible_principal(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=0)

        assert await repository.mark_warning_sent_if_pending(mock_db, uuid4()) is False

        sql, params = _executed(mock_db)
        assert "principals.deactivation_warning_sent IS false" in sql
        assert "NOT (principals.verification_status = " in sql
        assert params["deactivation_warning_sent"] is True
        mock_db.commit.assert_awaited_once()


class TestGetByIdForUpdate:
    @pytest.mark.asyncio
    async def test_takes_row_lock(self, mock_db):
        principal_id = uuid4()
        result = MagicMock()
        mock_db.execute.return_value = result

        found = await repository.get_by_id_for_update(mock_db, principal_id)

        sql, params = _executed(mock_db)
        assert sql.endswith("FOR UPDATE")
        assert params["id_1"] == principal_id
        assert found is result.scalar_one_or_none.return_value
