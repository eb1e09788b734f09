"""Portfolio analytics engine for a single investor.

Derives metrics, an annotated investment history, categorical
breakdowns and performance series from the investor's investments and
the current project list. Every function is a pure computation over
its inputs; ``PortfolioService`` re-reads the repositories on each
call so results never go stale.

Valuation uses a simulated appreciation model, not market data::

    growth_factor = 1 + completion_rate * 0.15 + years_held * 0.08

where ``completion_rate`` is raised / goal (uncapped) and
``years_held`` is whole days since the investment divided by 365.

An investment whose project no longer exists is tolerated: it adds
nothing to portfolio value, scores maximal risk and lands in the
"Unknown"/"High" buckets.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from agrofund.models import Investment, Project, parse_iso, utcnow

if TYPE_CHECKING:
    from agrofund.projects.investments import InvestmentRepository
    from agrofund.projects.repository import ProjectRepository

logger = logging.getLogger(__name__)

# Growth model
_COMPLETION_BONUS = 0.15
_ANNUAL_GROWTH = 0.08
_DAYS_PER_YEAR = 365

# Per-investment risk heuristic
_BASE_RISK = 0.3
_LOW_FUNDING_THRESHOLD = 0.3
_LOW_FUNDING_RISK = 0.4
_OLD_PROJECT_DAYS = 365
_OLD_PROJECT_RISK = 0.2
_LARGE_GOAL = 100_000
_LARGE_GOAL_RISK = 0.1
_MAX_RISK = 1.0

# History status / risk label thresholds
_ACTIVE_COMPLETION = 0.8
_AT_RISK_COMPLETION = 0.5
_AT_RISK_AGE_DAYS = 180

_TOP_PERFORMERS = 5

UNKNOWN_CATEGORY = "Unknown"
UNKNOWN_STAGE = "Unknown"

# (minimum completion rate, label), checked top to bottom
_FUNDING_STAGES: list[tuple[float, str]] = [
    (1.0, "Fully Funded"),
    (0.75, "Nearly Complete"),
    (0.5, "Half Funded"),
    (0.25, "Early Stage"),
]
_FIRST_STAGE = "Just Started"


# ── Result types ──


@dataclass
class PortfolioMetrics:
    """Headline numbers for an investor's portfolio.

    Attributes:
        total_invested: Sum of all investment amounts.
        total_active_projects: Distinct projects invested in.
        average_investment_size: Mean amount, 0 with no investments.
        total_portfolio_value: Sum of amount * growth factor.
        projected_returns: total_portfolio_value - total_invested.
        risk_score: Mean per-investment risk in [0, 1].

    """

    total_invested: float = 0.0
    total_active_projects: int = 0
    average_investment_size: float = 0.0
    total_portfolio_value: float = 0.0
    projected_returns: float = 0.0
    risk_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalInvested": self.total_invested,
            "totalActiveProjects": self.total_active_projects,
            "averageInvestmentSize": self.average_investment_size,
            "totalPortfolioValue": self.total_portfolio_value,
            "projectedReturns": self.projected_returns,
            "riskScore": self.risk_score,
        }


@dataclass
class HistoryEntry:
    """One investment annotated with its project's state and value."""

    investment: Investment
    project: Project | None
    status: str
    current_value: float
    expected_return: float
    time_in_market: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "investment": self.investment.to_dict(),
            "project": self.project.to_dict() if self.project else {},
            "status": self.status,
            "currentValue": self.current_value,
            "expectedReturn": self.expected_return,
            "timeInMarket": self.time_in_market,
        }


@dataclass
class BreakdownBucket:
    amount: float = 0.0
    count: int = 0
    percentage: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "count": self.count, "percentage": self.percentage}


@dataclass
class PortfolioBreakdown:
    """Holdings grouped three ways; buckets keep first-seen order."""

    by_category: dict[str, BreakdownBucket] = field(default_factory=dict)
    by_risk_level: dict[str, BreakdownBucket] = field(default_factory=dict)
    by_funding_stage: dict[str, BreakdownBucket] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "byCategory": {k: v.to_dict() for k, v in self.by_category.items()},
            "byRiskLevel": {k: v.to_dict() for k, v in self.by_risk_level.items()},
            "byFundingStage": {k: v.to_dict() for k, v in self.by_funding_stage.items()},
        }


@dataclass
class PerformanceMetrics:
    """Time series and leaderboards for the performance view.

    Attributes:
        monthly_investments: ``{"month", "amount", "count"}`` per
            calendar month, oldest first. Months read like "Jan 2025".
        top_performing: Up to five ``{"project", "investment",
            "performance"}`` entries by expected return, where
            performance is ROI in percent.
        portfolio_growth: ``{"date", "totalValue", "totalInvested"}``
            per investment in chronological order.

    """

    monthly_investments: list[dict[str, Any]] = field(default_factory=list)
    top_performing: list[dict[str, Any]] = field(default_factory=list)
    portfolio_growth: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthlyInvestments": self.monthly_investments,
            "topPerformingProjects": self.top_performing,
            "portfolioGrowth": self.portfolio_growth,
        }


# ── Building blocks ──


def days_since(timestamp: str, now: datetime | None = None) -> int:
    """Whole days elapsed between an ISO timestamp and ``now`` (floored)."""
    now = now or utcnow()
    seconds = (now - parse_iso(timestamp)).total_seconds()
    return int(seconds // 86_400)


def growth_factor(completion_rate: float, days_held: float) -> float:
    """Simulated appreciation multiplier for an investment's principal."""
    years_held = days_held / _DAYS_PER_YEAR
    return 1 + completion_rate * _COMPLETION_BONUS + years_held * _ANNUAL_GROWTH


def investment_value(
    investment: Investment,
    project: Project | None,
    now: datetime | None = None,
) -> float:
    """Current simulated value of one investment; 0 if the project is gone."""
    if project is None:
        return 0.0
    factor = growth_factor(project.completion_rate, days_since(investment.created_at, now))
    return investment.amount * factor


def investment_risk(project: Project | None, now: datetime | None = None) -> float:
    """Risk heuristic in [0, 1] for an investment in ``project``.

    Starts at 0.3 and adds 0.4 for a completion rate under 0.3, 0.2 for
    a project older than a year and 0.1 for a goal above 100,000.
    A missing project is maximal risk.
    """
    if project is None:
        return _MAX_RISK
    risk = _BASE_RISK
    if project.completion_rate < _LOW_FUNDING_THRESHOLD:
        risk += _LOW_FUNDING_RISK
    if days_since(project.created_at, now) > _OLD_PROJECT_DAYS:
        risk += _OLD_PROJECT_RISK
    if project.goal_amount > _LARGE_GOAL:
        risk += _LARGE_GOAL_RISK
    return min(risk, _MAX_RISK)


def risk_level(project: Project | None, now: datetime | None = None) -> str:
    """Discrete risk label: Low, Medium or High."""
    if project is None:
        return "High"
    rate = project.completion_rate
    if rate >= _ACTIVE_COMPLETION:
        return "Low"
    if rate >= _AT_RISK_COMPLETION and days_since(project.created_at, now) < _AT_RISK_AGE_DAYS:
        return "Medium"
    return "High"


def funding_stage(project: Project | None) -> str:
    """Funding stage label from the completion rate alone."""
    if project is None:
        return UNKNOWN_STAGE
    rate = project.completion_rate
    for threshold, label in _FUNDING_STAGES:
        if rate >= threshold:
            return label
    return _FIRST_STAGE


def history_status(project: Project, now: datetime | None = None) -> str:
    """Classify a holding as completed, active or at_risk.

    Order matters: a project at 80% or more is active regardless of age,
    and only then are old, under-funded projects flagged.
    """
    rate = project.completion_rate
    if rate >= 1:
        return "completed"
    if rate >= _ACTIVE_COMPLETION:
        return "active"
    if days_since(project.created_at, now) > _AT_RISK_AGE_DAYS and rate < _AT_RISK_COMPLETION:
        return "at_risk"
    return "active"


def _index_projects(projects: list[Project]) -> dict[str, Project]:
    index: dict[str, Project] = {}
    for project in projects:
        index.setdefault(project.id, project)
    return index


def _lookup(index: dict[str, Project], investment: Investment) -> Project | None:
    project = index.get(investment.project_id)
    if project is None:
        logger.warning(
            "Investment %s references missing project %s",
            investment.id,
            investment.project_id,
        )
    return project


# ── Entry points ──


def portfolio_metrics(
    investments: list[Investment],
    projects: list[Project],
    now: datetime | None = None,
) -> PortfolioMetrics:
    """Compute headline metrics for one investor's investments."""
    now = now or utcnow()
    if not investments:
        return PortfolioMetrics()

    index = _index_projects(projects)
    amounts = np.array([inv.amount for inv in investments], dtype=np.float64)
    related = [_lookup(index, inv) for inv in investments]
    values = np.array(
        [investment_value(inv, proj, now) for inv, proj in zip(investments, related, strict=True)],
        dtype=np.float64,
    )
    risks = np.array([investment_risk(proj, now) for proj in related], dtype=np.float64)

    total_invested = float(amounts.sum())
    total_value = float(values.sum())
    return PortfolioMetrics(
        total_invested=total_invested,
        total_active_projects=len({inv.project_id for inv in investments}),
        average_investment_size=total_invested / (len(investments) or 1),
        total_portfolio_value=total_value,
        projected_returns=total_value - total_invested,
        risk_score=float(risks.mean()),
    )


def investment_history(
    investments: list[Investment],
    projects: list[Project],
    now: datetime | None = None,
) -> list[HistoryEntry]:
    """Annotate each investment with status and value, newest first."""
    now = now or utcnow()
    index = _index_projects(projects)
    entries: list[HistoryEntry] = []

    for inv in investments:
        project = _lookup(index, inv)
        if project is None:
            entries.append(HistoryEntry(inv, None, "at_risk", 0.0, 0.0, 0))
            continue
        held = days_since(inv.created_at, now)
        current_value = inv.amount * growth_factor(project.completion_rate, held)
        entries.append(
            HistoryEntry(
                investment=inv,
                project=project,
                status=history_status(project, now),
                current_value=current_value,
                expected_return=current_value - inv.amount,
                time_in_market=held,
            )
        )

    entries.sort(key=lambda e: parse_iso(e.investment.created_at), reverse=True)
    return entries


def _group(
    investments: list[Investment],
    labels: list[str],
    total: float,
) -> dict[str, BreakdownBucket]:
    buckets: dict[str, BreakdownBucket] = {}
    for inv, label in zip(investments, labels, strict=True):
        bucket = buckets.setdefault(label, BreakdownBucket())
        bucket.amount += inv.amount
        bucket.count += 1
    for bucket in buckets.values():
        bucket.percentage = (bucket.amount / total * 100.0) if total > 0 else 0.0
    return buckets


def portfolio_breakdown(
    investments: list[Investment],
    projects: list[Project],
    now: datetime | None = None,
) -> PortfolioBreakdown:
    """Group holdings by category, risk level and funding stage."""
    now = now or utcnow()
    index = _index_projects(projects)
    related = [_lookup(index, inv) for inv in investments]
    total = float(sum(inv.amount for inv in investments))

    categories = [
        (proj.category or UNKNOWN_CATEGORY) if proj else UNKNOWN_CATEGORY for proj in related
    ]
    return PortfolioBreakdown(
        by_category=_group(investments, categories, total),
        by_risk_level=_group(investments, [risk_level(p, now) for p in related], total),
        by_funding_stage=_group(investments, [funding_stage(p) for p in related], total),
    )


def _monthly_totals(investments: list[Investment]) -> list[dict[str, Any]]:
    if not investments:
        return []
    frame = pd.DataFrame(
        {
            "created_at": pd.to_datetime(
                [parse_iso(inv.created_at) for inv in investments], utc=True
            ),
            "amount": [inv.amount for inv in investments],
        }
    )
    frame["month"] = frame["created_at"].dt.tz_convert(None).dt.to_period("M")
    grouped = frame.groupby("month", sort=True)["amount"].agg(["sum", "count"])
    return [
        {"month": period.strftime("%b %Y"), "amount": float(row["sum"]), "count": int(row["count"])}
        for period, row in grouped.iterrows()
    ]


def _growth_series(
    investments: list[Investment],
    index: dict[str, Project],
    now: datetime,
) -> list[dict[str, Any]]:
    ordered = sorted(investments, key=lambda inv: parse_iso(inv.created_at))
    if not ordered:
        return []
    times = np.array([parse_iso(inv.created_at).timestamp() for inv in ordered])
    values = np.array(
        [investment_value(inv, index.get(inv.project_id), now) for inv in ordered],
        dtype=np.float64,
    )
    invested = np.cumsum([inv.amount for inv in ordered], dtype=np.float64)

    series = []
    for pos, inv in enumerate(ordered):
        # Value of everything bought on or before this investment
        total_value = float(values[times <= times[pos]].sum())
        series.append(
            {
                "date": parse_iso(inv.created_at).strftime("%Y-%m-%d"),
                "totalValue": total_value,
                "totalInvested": float(invested[pos]),
            }
        )
    return series


def performance_metrics(
    investments: list[Investment],
    projects: list[Project],
    now: datetime | None = None,
) -> PerformanceMetrics:
    """Monthly totals, top performers and the portfolio growth series."""
    now = now or utcnow()
    history = investment_history(investments, projects, now)
    winners = sorted(
        (entry for entry in history if entry.expected_return > 0),
        key=lambda entry: entry.expected_return,
        reverse=True,
    )[:_TOP_PERFORMERS]

    return PerformanceMetrics(
        monthly_investments=_monthly_totals(investments),
        top_performing=[
            {
                "project": entry.project.to_dict() if entry.project else {},
                "investment": entry.investment.to_dict(),
                "performance": entry.expected_return / entry.investment.amount * 100.0,
            }
            for entry in winners
        ],
        portfolio_growth=_growth_series(investments, _index_projects(projects), now),
    )


class PortfolioService:
    """Per-investor analytics over live repository contents.

    Each call re-reads both repositories, so results always reflect
    the latest projects and investments.
    """

    def __init__(
        self,
        projects: ProjectRepository,
        investments: InvestmentRepository,
    ) -> None:
        self.projects = projects
        self.investments = investments

    def _inputs(self, investor_id: str) -> tuple[list[Investment], list[Project]]:
        return (
            self.investments.get_investments_by_investor(investor_id),
            self.projects.list_projects(),
        )

    def get_portfolio_metrics(
        self, investor_id: str, now: datetime | None = None
    ) -> PortfolioMetrics:
        return portfolio_metrics(*self._inputs(investor_id), now)

    def get_investment_history(
        self, investor_id: str, now: datetime | None = None
    ) -> list[HistoryEntry]:
        return investment_history(*self._inputs(investor_id), now)

    def get_portfolio_breakdown(
        self, investor_id: str, now: datetime | None = None
    ) -> PortfolioBreakdown:
        return portfolio_breakdown(*self._inputs(investor_id), now)

    def get_performance_metrics(
        self, investor_id: str, now: datetime | None = None
    ) -> PerformanceMetrics:
        return performance_metrics(*self._inputs(investor_id), now)
