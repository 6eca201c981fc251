"""
Unit tests for the admission registry repository.

The conditional claim is the only thing standing between two concurrent
claimants, so these tests inspect the statement actually sent to the
database and the affected-row handling.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from factories import NOW
from sqlalchemy.dialects import postgresql

from campuslink.modules.admissions import repository


def _executed(mock_db):
    statement = mock_db.execute.call_args.args[0]
    return statement.compile(dialect=postgresql.dialect())


class TestClaimIfAvailable:
    @pytest.mark.asyncio
    async def test_write_is_conditional_on_claim_state(self, mock_db):
        principal_id = uuid4()
        mock_db.execute.return_value = MagicMock(rowcount=1)

        await repository.claim_if_available(mock_db, "2020CS001", principal_id, NOW)

        compiled = _executed(mock_db)
        sql = " ".join(str(compiled).split())
        assert sql.startswith("UPDATE admission_records SET")
        assert "WHERE admission_records.admission_number = " in sql
        assert "admission_records.claimed IS false OR admission_records.claimed_by = " in sql
        assert compiled.params["admission_number_1"] == "2020CS001"
        assert compiled.params["claimed_by_1"] == principal_id
        assert compiled.params["claimed"] is True
        assert compiled.params["claimed_by"] == principal_id
        assert compiled.params["claimed_at"] == NOW

    @pytest.mark.asyncio
    async def test_one_row_means_claimed(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=1)

        assert await repository.claim_if_available(mock_db, "2020CS001", uuid4(), NOW) is True
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_row_means_held_elsewhere_or_missing(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=0)

        assert await repository.claim_if_available(mock_db, "2020CS001", uuid4(), NOW) is False
        mock_db.commit.assert_awaited_once()


class TestDeleteIfUnclaimed:
    @pytest.mark.asyncio
    async def test_delete_requires_unclaimed_row(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=0)

        assert await repository.delete_if_unclaimed(mock_db, "2020CS001") is False

        sql = " ".join(str(_executed(mock_db)).split())
        assert sql.startswith("DELETE FROM admission_records")
        assert "admission_records.claimed IS false" in sql
