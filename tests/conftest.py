"""
Shared fixtures for CampusLink tests.

Services are tested against a mocked AsyncSession with repositories patched
per test, the same way for every module.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from factories import NOW, make_admission_record, make_principal

from campuslink.core import rate_limit, scheduler
from campuslink.modules.principals.models import Role


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.delete = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def student():
    return make_principal()


@pytest.fixture
def alumni():
    return make_principal(
        role=Role.ALUMNI,
        email="alumni@campus.edu",
        display_name="Jane Alumni",
    )


@pytest.fixture
def aspirant():
    return make_principal(
        role=Role.ASPIRANT,
        email="aspirant@example.com",
        display_name="Ama Aspirant",
    )


@pytest.fixture
def admin():
    return make_principal(
        role=Role.ADMIN,
        email="admin@campus.edu",
        display_name="Registry Admin",
        verification_deadline=None,
    )


@pytest.fixture
def admission_record():
    return make_admission_record()


@pytest.fixture(autouse=True)
def _isolate_module_state():
    """Reset the in-memory rate limiter and job registry between tests."""
    rate_limit.reset_memory_store()
    scheduler.clear_registry()
    yield
    rate_limit.reset_memory_store()
    scheduler.clear_registry()
