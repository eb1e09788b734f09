"""Project repository: CRUD and funding for farmer projects.

Projects are stored as a list under the ``projects`` record, in
creation order. Every mutation is a single store transaction, so a
funding call writes the investment and the raised amount together or
not at all.

"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from agrofund.db.schema import PROJECTS_KEY
from agrofund.errors import (
    FundingCapExceeded,
    InvalidAmount,
    PermissionDenied,
    ProjectLocked,
    ProjectNotFound,
    ProjectNotOpen,
)
from agrofund.models import (
    PROJECT_FIELDS,
    Investment,
    Project,
    ProjectStatus,
    generate_id,
    to_iso,
    utcnow,
)
from agrofund.projects.investments import append_investment

if TYPE_CHECKING:
    from agrofund.db.record_store import RecordStore, StoreTransaction

logger = logging.getLogger(__name__)

# Fields a farmer supplies when submitting a project
_REQUIRED_FIELDS = ("title", "description", "goalAmount", "farmerId", "farmerName", "category")


def _is_valid_amount(value: float, *, allow_zero: bool = False) -> bool:
    if not math.isfinite(value):
        return False
    return value >= 0 if allow_zero else value > 0


def _find_index(projects: list[dict[str, Any]], project_id: str) -> int:
    for idx, project in enumerate(projects):
        if project.get("id") == project_id:
            return idx
    raise ProjectNotFound


def _merge(project: Project, updates: dict[str, Any]) -> Project:
    """Apply stored-key updates to a project, ignoring unknown keys."""
    changes: dict[str, Any] = {}
    for key, value in updates.items():
        attr = PROJECT_FIELDS.get(key)
        if attr is None:
            continue
        if attr == "status":
            value = ProjectStatus(value)
        elif attr in ("goal_amount", "raised_amount"):
            value = float(value)
            allow_zero = attr == "raised_amount"
            if not _is_valid_amount(value, allow_zero=allow_zero):
                bound = "non-negative" if allow_zero else "positive"
                msg = f"{key} must be a {bound}, finite amount, got {value}"
                raise ValueError(msg)
        changes[attr] = value
    changes["updated_at"] = to_iso(utcnow())
    return project.with_updates(**changes)


class ProjectRepository:
    """CRUD, status transitions and funding over the ``projects`` record.

    Args:
        store: Backing record store.
        enforce_funding_cap: Reject funding above a project's remaining goal.

    """

    def __init__(self, store: RecordStore, *, enforce_funding_cap: bool = True) -> None:
        self.store = store
        self.enforce_funding_cap = enforce_funding_cap

    # ── reads ─────────────────────────────────────────────────────

    def list_projects(self) -> list[Project]:
        return [Project.from_dict(p) for p in self.store.get(PROJECTS_KEY, [])]

    def get_project(self, project_id: str) -> Project:
        """Fetch a single project.

        Raises:
            ProjectNotFound: If no project has this ID.

        """
        for project in self.list_projects():
            if project.id == project_id:
                return project
        raise ProjectNotFound

    def get_projects_by_farmer(self, farmer_id: str) -> list[Project]:
        return [p for p in self.list_projects() if p.farmer_id == farmer_id]

    def get_approved_projects(self) -> list[Project]:
        return [p for p in self.list_projects() if p.status is ProjectStatus.APPROVED]

    def search_projects(self, term: str = "", category: str = "all") -> list[Project]:
        """Filter approved projects by free text and category.

        Args:
            term: Case-insensitive substring matched against title or
                description. Empty matches everything.
            category: Exact category, or "all".

        Returns:
            Matching approved projects in creation order.

        """
        needle = term.strip().lower()
        results = []
        for project in self.get_approved_projects():
            if category != "all" and project.category != category:
                continue
            if needle and needle not in project.title.lower() and needle not in (
                project.description.lower()
            ):
                continue
            results.append(project)
        return results

    # ── writes ────────────────────────────────────────────────────

    def create_project(self, data: dict[str, Any]) -> Project:
        """Submit a new project as pending with nothing raised.

        Args:
            data: Stored-key fields: title, description, goalAmount,
                farmerId, farmerName, category and optionally imageUrl.

        Returns:
            The created project.

        Raises:
            ValueError: If a required field is missing or the goal is
                not a positive finite number.

        """
        missing = [f for f in _REQUIRED_FIELDS if f not in data]
        if missing:
            msg = f"missing project fields: {', '.join(missing)}"
            raise ValueError(msg)
        goal = float(data["goalAmount"])
        if not _is_valid_amount(goal):
            msg = f"goalAmount must be a positive, finite amount, got {goal}"
            raise ValueError(msg)

        now = to_iso(utcnow())
        project = Project(
            id=generate_id("project"),
            title=data["title"],
            description=data["description"],
            goal_amount=goal,
            farmer_id=data["farmerId"],
            farmer_name=data["farmerName"],
            category=data["category"],
            image_url=data.get("imageUrl"),
            raised_amount=0.0,
            status=ProjectStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.store.update(PROJECTS_KEY, lambda current: [*current, project.to_dict()], [])
        logger.info("Created project %s for farmer %s", project.id, project.farmer_id)
        return project

    def _apply(self, tx: StoreTransaction, project_id: str, updates: dict[str, Any]) -> Project:
        projects = tx.get(PROJECTS_KEY, [])
        idx = _find_index(projects, project_id)
        updated = _merge(Project.from_dict(projects[idx]), updates)
        projects[idx] = updated.to_dict()
        tx.set(PROJECTS_KEY, projects)
        return updated

    def update_project(self, project_id: str, updates: dict[str, Any]) -> Project:
        """Merge ``updates`` into a project and refresh its ``updatedAt``.

        ``id`` and ``createdAt`` cannot be changed; unknown keys are
        ignored.

        Raises:
            ProjectNotFound: If no project has this ID.

        """
        with self.store.transaction() as tx:
            updated = self._apply(tx, project_id, updates)
        logger.info("Updated project %s", project_id)
        return updated

    def farmer_update_project(
        self, project_id: str, farmer_id: str, updates: dict[str, Any]
    ) -> Project:
        """Apply a farmer's own edit to their project.

        Farmers may not change status, raised amount or ownership.

        Raises:
            ProjectNotFound: If no project has this ID.
            PermissionDenied: If the farmer does not own the project.
            ProjectLocked: If the project is already approved.

        """
        editable = {
            k: v
            for k, v in updates.items()
            if k not in ("status", "raisedAmount", "farmerId")
        }
        with self.store.transaction() as tx:
            projects = tx.get(PROJECTS_KEY, [])
            current = Project.from_dict(projects[_find_index(projects, project_id)])
            if current.farmer_id != farmer_id:
                raise PermissionDenied
            if current.status is ProjectStatus.APPROVED:
                raise ProjectLocked
            updated = self._apply(tx, project_id, editable)
        logger.info("Farmer %s edited project %s", farmer_id, project_id)
        return updated

    def approve_project(self, project_id: str) -> Project:
        return self.update_project(project_id, {"status": ProjectStatus.APPROVED.value})

    def reject_project(self, project_id: str) -> Project:
        return self.update_project(project_id, {"status": ProjectStatus.REJECTED.value})

    def fund_project(
        self,
        project_id: str,
        investor_id: str,
        amount: float,
        *,
        enforce_cap: bool | None = None,
    ) -> Investment:
        """Commit funds to a project.

        Appends an investment and raises the project's ``raisedAmount``
        in one transaction.

        Args:
            project_id: Project to fund.
            investor_id: Investing user.
            amount: Positive, finite amount.
            enforce_cap: Override the repository's funding-cap setting.

        Returns:
            The recorded investment.

        Raises:
            ProjectNotFound: If no project has this ID. No investment
                is written.
            InvalidAmount: If amount is not a positive finite number.
            ProjectNotOpen: If the project is pending or rejected.
            FundingCapExceeded: If the cap is enforced and amount is more
                than the project still needs.

        """
        amount = float(amount)
        if enforce_cap is None:
            enforce_cap = self.enforce_funding_cap

        with self.store.transaction() as tx:
            projects = tx.get(PROJECTS_KEY, [])
            idx = _find_index(projects, project_id)
            if not _is_valid_amount(amount):
                raise InvalidAmount
            project = Project.from_dict(projects[idx])
            if project.status is not ProjectStatus.APPROVED:
                raise ProjectNotOpen
            if enforce_cap and amount > project.remaining_amount:
                raise FundingCapExceeded
            investment = append_investment(tx, project_id, investor_id, amount)
            self._apply(tx, project_id, {"raisedAmount": project.raised_amount + amount})

        logger.info("Investor %s funded %s with %s", investor_id, project_id, amount)
        return investment
