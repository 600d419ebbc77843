"""
Shared fixtures: mocked database session and callers for each role.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from app.core.auth import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, CurrentUser


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def admin_user():
    return CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        role=ROLE_ADMIN,
        email="admin@secretaria.dev",
        name="Admin",
    )


@pytest.fixture
def student_user():
    return CurrentUser(id=uuid4(), role=ROLE_STUDENT, email="aluno@secretaria.dev", name="Aluno")


@pytest.fixture
def other_student_user():
    return CurrentUser(id=uuid4(), role=ROLE_STUDENT, email="outro@secretaria.dev", name="Outro")


@pytest.fixture
def teacher_user():
    return CurrentUser(
        id=uuid4(), role=ROLE_TEACHER, email="professor@secretaria.dev", name="Professor"
    )
