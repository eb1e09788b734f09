"""Funding analytics for a farmer's own projects.

Per project: investor count, average and largest commitment, funding
velocity (raised per day of project age, age at least one day) and an
estimated number of days until the goal is reached at that pace.

"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import numpy as np

from agrofund.analytics.portfolio import days_since
from agrofund.models import Investment, Project, ProjectStatus, parse_iso, utcnow

_RECENT_INVESTMENTS = 5


@dataclass
class ProjectAnalytics:
    """Funding statistics for a single project.

    Attributes:
        project: The project analysed.
        total_investors: Distinct investors.
        average_investment: Mean commitment, 0 with none.
        funding_velocity: Raised amount per day since creation.
        time_to_goal: Estimated days to reach the goal, or None when
            nothing has been raised yet.
        largest_investment: Biggest single commitment, 0 with none.
        recent_investments: Up to five newest ``{"amount", "date"}``.

    """

    project: Project
    total_investors: int = 0
    average_investment: float = 0.0
    funding_velocity: float = 0.0
    time_to_goal: int | None = None
    largest_investment: float = 0.0
    recent_investments: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "totalInvestors": self.total_investors,
            "averageInvestment": self.average_investment,
            "fundingVelocity": self.funding_velocity,
            "timeToGoal": self.time_to_goal,
            "largestInvestment": self.largest_investment,
            "recentInvestments": self.recent_investments,
        }


def project_analytics(
    project: Project,
    investments: list[Investment],
    now: datetime | None = None,
) -> ProjectAnalytics:
    """Compute funding statistics for ``project``.

    Args:
        project: Project to analyse.
        investments: All investments; only those for this project count.
        now: Reference time. Defaults to the current UTC time.

    """
    now = now or utcnow()
    own = [inv for inv in investments if inv.project_id == project.id]
    amounts = np.array([inv.amount for inv in own], dtype=np.float64)

    age_days = max(1, days_since(project.created_at, now))
    velocity = project.raised_amount / age_days
    remaining = project.goal_amount - project.raised_amount
    time_to_goal = math.ceil(remaining / velocity) if velocity > 0 else None

    newest = sorted(own, key=lambda inv: parse_iso(inv.created_at), reverse=True)
    return ProjectAnalytics(
        project=project,
        total_investors=len({inv.investor_id for inv in own}),
        average_investment=float(amounts.mean()) if own else 0.0,
        funding_velocity=velocity,
        time_to_goal=time_to_goal,
        largest_investment=float(amounts.max()) if own else 0.0,
        recent_investments=[
            {"amount": inv.amount, "date": parse_iso(inv.created_at).strftime("%Y-%m-%d")}
            for inv in newest[:_RECENT_INVESTMENTS]
        ],
    )


def farmer_summary(
    projects: list[Project],
    investments: list[Investment],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Aggregate a farmer's projects into dashboard totals.

    Args:
        projects: The farmer's projects.
        investments: All investments on the platform.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        Dict with totalRaised, totalGoal, totalInvestors,
        averageProjectProgress (percent), approvedProjects and the
        per-project analytics under ``projects``.

    """
    now = now or utcnow()
    project_ids = {p.id for p in projects}
    total_raised = float(sum(p.raised_amount for p in projects))
    total_goal = float(sum(p.goal_amount for p in projects))
    progress = (
        float(np.mean([p.completion_rate for p in projects])) * 100.0 if projects else 0.0
    )
    investors = {inv.investor_id for inv in investments if inv.project_id in project_ids}

    return {
        "totalRaised": total_raised,
        "totalGoal": total_goal,
        "fundedPercentage": (total_raised / total_goal * 100.0) if total_goal > 0 else 0.0,
        "totalInvestors": len(investors),
        "averageProjectProgress": progress,
        "approvedProjects": sum(1 for p in projects if p.status is ProjectStatus.APPROVED),
        "projects": [project_analytics(p, investments, now).to_dict() for p in projects],
    }
