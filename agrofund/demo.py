"""Demo data for trying out the portfolio views.

Seeds three approved projects and five investments for
``demo_investor_1`` spread over the last four months. Timestamps are
relative to the seeding time.

"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from agrofund.db.schema import INVESTMENTS_KEY, PROJECTS_KEY
from agrofund.models import Investment, Project, ProjectStatus, to_iso, utcnow

if TYPE_CHECKING:
    from agrofund.db.record_store import RecordStore

logger = logging.getLogger(__name__)

DEMO_INVESTOR_ID = "demo_investor_1"

# id, title, description, goal, raised, farmer id, farmer name, category, age (days)
_DEMO_PROJECTS: list[tuple[str, str, str, float, float, str, str, str, int]] = [
    (
        "demo_project_1",
        "Organic Vegetable Farm Expansion",
        "Expanding our organic vegetable farm to include greenhouse facilities "
        "for year-round production.",
        50_000,
        35_000,
        "demo_farmer_1",
        "Sarah Thompson",
        "Organic",
        120,
    ),
    (
        "demo_project_2",
        "Smart Irrigation System",
        "Installing IoT-based smart irrigation system to optimize water usage "
        "and crop yields.",
        25_000,
        18_000,
        "demo_farmer_2",
        "Mike Rodriguez",
        "Technology",
        90,
    ),
    (
        "demo_project_3",
        "Heritage Breed Cattle Ranch",
        "Starting a heritage breed cattle ranch focused on sustainable and "
        "ethical livestock farming.",
        75_000,
        45_000,
        "demo_farmer_3",
        "Emma Johnson",
        "Livestock",
        60,
    ),
]

# id, project id, amount, age (days)
_DEMO_INVESTMENTS: list[tuple[str, str, float, int]] = [
    ("demo_inv_1", "demo_project_1", 5_000, 120),
    ("demo_inv_2", "demo_project_2", 3_000, 90),
    ("demo_inv_3", "demo_project_3", 7_500, 60),
    ("demo_inv_4", "demo_project_1", 2_500, 30),
    ("demo_inv_5", "demo_project_2", 1_500, 14),
]


def _demo_projects(now: datetime) -> list[dict[str, Any]]:
    return [
        Project(
            id=pid,
            title=title,
            description=description,
            goal_amount=goal,
            raised_amount=raised,
            farmer_id=farmer_id,
            farmer_name=farmer_name,
            status=ProjectStatus.APPROVED,
            category=category,
            image_url="",
            created_at=to_iso(now - timedelta(days=age)),
            updated_at=to_iso(now),
        ).to_dict()
        for pid, title, description, goal, raised, farmer_id, farmer_name, category, age in (
            _DEMO_PROJECTS
        )
    ]


def _demo_investments(now: datetime, investor_id: str) -> list[dict[str, Any]]:
    return [
        Investment(
            id=iid,
            project_id=pid,
            investor_id=investor_id,
            amount=amount,
            created_at=to_iso(now - timedelta(days=age)),
        ).to_dict()
        for iid, pid, amount, age in _DEMO_INVESTMENTS
    ]


def create_demo_data(
    store: RecordStore,
    investor_id: str = DEMO_INVESTOR_ID,
    now: datetime | None = None,
) -> bool:
    """Seed demo projects and investments.

    Does nothing if any investment already exists. Demo projects are
    only added when there are no projects at all.

    Args:
        store: Record store to seed.
        investor_id: Investor that owns the demo investments.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        True if demo investments were written.

    """
    now = now or utcnow()
    with store.transaction() as tx:
        investments = tx.get(INVESTMENTS_KEY, [])
        if investments:
            return False
        projects = tx.get(PROJECTS_KEY, [])
        if not projects:
            tx.set(PROJECTS_KEY, _demo_projects(now))
        tx.set(INVESTMENTS_KEY, _demo_investments(now, investor_id))
    logger.info("Seeded demo data for %s", investor_id)
    return True


def reset_demo_data(
    store: RecordStore,
    investor_id: str = DEMO_INVESTOR_ID,
    now: datetime | None = None,
) -> bool:
    """Drop all projects and investments, then seed the demo data."""
    with store.transaction() as tx:
        tx.delete(PROJECTS_KEY)
        tx.delete(INVESTMENTS_KEY)
    return create_demo_data(store, investor_id, now)
