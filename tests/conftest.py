"""Shared pytest fixtures for AgroFund tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta

import pytest
from agrofund.auth.service import AuthService
from agrofund.db.connection import init_memory_db
from agrofund.db.record_store import RecordStore
from agrofund.models import Investment, Project, ProjectStatus, to_iso
from agrofund.projects.investments import InvestmentRepository
from agrofund.projects.repository import ProjectRepository

# Keep hashing cheap in tests
FAST_ROUNDS = 4


@pytest.fixture
def now() -> datetime:
    """Provide a fixed reference time for deterministic analytics."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def store() -> Iterator[RecordStore]:
    conn = init_memory_db()
    yield RecordStore(conn)
    conn.close()


@pytest.fixture
def projects_repo(store: RecordStore) -> ProjectRepository:
    return ProjectRepository(store)


@pytest.fixture
def investments_repo(store: RecordStore) -> InvestmentRepository:
    return InvestmentRepository(store)


@pytest.fixture
def auth(store: RecordStore) -> AuthService:
    return AuthService(store, password_rounds=FAST_ROUNDS)


@pytest.fixture
def make_project(now: datetime) -> Callable[..., Project]:
    """Build a project created ``age_days`` before ``now``."""

    def _make(
        project_id: str = "p1",
        goal: float = 50_000,
        raised: float = 0,
        age_days: int = 30,
        category: str = "Crops",
        status: ProjectStatus = ProjectStatus.APPROVED,
        farmer_id: str = "farmer_1",
    ) -> Project:
        created = to_iso(now - timedelta(days=age_days))
        return Project(
            id=project_id,
            title=f"Project {project_id}",
            description="A test project",
            goal_amount=goal,
            raised_amount=raised,
            farmer_id=farmer_id,
            farmer_name="Test Farmer",
            category=category,
            status=status,
            created_at=created,
            updated_at=created,
        )

    return _make


@pytest.fixture
def make_investment(now: datetime) -> Callable[..., Investment]:
    """Build an investment made ``age_days`` before ``now``."""

    def _make(
        investment_id: str = "i1",
        project_id: str = "p1",
        amount: float = 1_000,
        age_days: int = 10,
        investor_id: str = "investor_1",
    ) -> Investment:
        return Investment(
            id=investment_id,
            project_id=project_id,
            investor_id=investor_id,
            amount=amount,
            created_at=to_iso(now - timedelta(days=age_days)),
        )

    return _make
