"""AgroFund sidecar entry point.

Serves the dashboard front end over stdin/stdout using
newline-delimited JSON messages.

Protocol:
    Request:  {"id": "uuid", "method": "string", "params": {}}
    Response: {"id": "uuid", "result": {}}
    Error:    {"id": "uuid", "error": {"type": "string", "message": "string"}}

The process holds one explicit ``Session``; ``auth.login`` and
``auth.register`` replace it and ``auth.logout`` clears it. Each method
declares which roles may call it.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np

from agrofund import log_config
from agrofund.analytics.admin import platform_stats
from agrofund.analytics.farmer import farmer_summary
from agrofund.analytics.portfolio import PortfolioService
from agrofund.auth.passwords import DEFAULT_ROUNDS
from agrofund.auth.service import AuthService, Session, require_role
from agrofund.config import Settings
from agrofund.db.connection import init_memory_db, init_store_db
from agrofund.db.record_store import RecordStore
from agrofund.demo import DEMO_INVESTOR_ID, create_demo_data, reset_demo_data
from agrofund.errors import AgroFundError
from agrofund.export.json_export import export_portfolio_json
from agrofund.models import User, UserRole
from agrofund.projects.investments import InvestmentRepository
from agrofund.projects.repository import ProjectRepository

logger = logging.getLogger(__name__)

ANYONE: tuple[UserRole, ...] = ()
FARMER = (UserRole.FARMER,)
INVESTOR = (UserRole.INVESTOR,)
ADMIN = (UserRole.ADMIN,)

# Methods callable without logging in
_PUBLIC_METHODS = {"auth.register", "auth.login", "auth.logout", "auth.session"}


def dashboard_for(role: UserRole) -> str:
    """Name of the dashboard a role lands on after login."""
    if role is UserRole.FARMER:
        return "farmer"
    if role is UserRole.INVESTOR:
        return "investor"
    if role is UserRole.ADMIN:
        return "admin"
    msg = f"Unhandled role: {role}"
    raise ValueError(msg)


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types."""

    def default(self, o: Any) -> Any:
        """Convert NumPy types to JSON-serializable Python types."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        return super().default(o)


class App:
    """Wires the store, repositories and services around one session.

    Args:
        store: Backing record store.
        enforce_funding_cap: Reject funding above a project's remaining goal.
        password_rounds: bcrypt cost factor for new password hashes.
        export_dir: Directory that saved portfolio exports go to. None
            means exports are only returned, never written.

    """

    def __init__(
        self,
        store: RecordStore,
        *,
        enforce_funding_cap: bool = True,
        password_rounds: int = DEFAULT_ROUNDS,
        export_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.export_dir = export_dir
        self.projects = ProjectRepository(store, enforce_funding_cap=enforce_funding_cap)
        self.investments = InvestmentRepository(store)
        self.auth = AuthService(store, password_rounds=password_rounds)
        self.portfolio = PortfolioService(self.projects, self.investments)
        self.session = Session()

        self.handlers: dict[str, tuple[tuple[UserRole, ...], Callable[..., Any]]] = {
            # Auth
            "auth.register": (ANYONE, self._register),
            "auth.login": (ANYONE, self._login),
            "auth.logout": (ANYONE, self._logout),
            "auth.session": (ANYONE, self._session_info),
            "auth.users": (ADMIN, self._users),
            # Projects
            "projects.create": (FARMER, self._create_project),
            "projects.update": ((UserRole.FARMER, UserRole.ADMIN), self._update_project),
            "projects.approve": (ADMIN, self._approve_project),
            "projects.reject": (ADMIN, self._reject_project),
            "projects.fund": (INVESTOR, self._fund_project),
            "projects.list": (ADMIN, self._list_projects),
            "projects.mine": (FARMER, self._my_projects),
            "projects.approved": (ANYONE, self._approved_projects),
            "projects.search": (ANYONE, self._search_projects),
            # Investments
            "investments.by_project": (ANYONE, self._investments_by_project),
            "investments.mine": (INVESTOR, self._my_investments),
            # Portfolio analytics
            "portfolio.metrics": (INVESTOR, self._portfolio_metrics),
            "portfolio.history": (INVESTOR, self._portfolio_history),
            "portfolio.breakdown": (INVESTOR, self._portfolio_breakdown),
            "portfolio.performance": (INVESTOR, self._portfolio_performance),
            # Dashboards
            "farmer.analytics": (FARMER, self._farmer_analytics),
            "admin.stats": (ADMIN, self._admin_stats),
            # Export
            "export.portfolio_json": (INVESTOR, self._export_portfolio),
            # Demo data (reset wipes every project and investment)
            "demo.seed": (ADMIN, self._demo_seed),
            "demo.reset": (ADMIN, self._demo_reset),
        }

    @property
    def user(self) -> User:
        """The logged-in user. Raises ``PermissionDenied`` if logged out."""
        return require_role(self.session)

    def dispatch(self, method: str, params: dict[str, Any]) -> Any:
        """Route a method call to the appropriate handler.

        Args:
            method: The method name (e.g., "portfolio.metrics").
            params: The parameters for the method.

        Returns:
            The result of the method call.

        Raises:
            ValueError: If the method is not recognized.
            PermissionDenied: If the session may not call the method.

        """
        if method not in self.handlers:
            msg = f"Unknown method: {method}"
            raise ValueError(msg)
        roles, handler = self.handlers[method]
        if method not in _PUBLIC_METHODS:
            require_role(self.session, *roles)
        return handler(**params)

    # ── auth ──────────────────────────────────────────────────────

    def _session_payload(self) -> dict[str, Any]:
        payload = self.session.to_dict()
        payload["dashboard"] = dashboard_for(self.session.user.role) if self.session.user else None
        return payload

    def _register(
        self, email: str, password: str, role: str, name: str | None = None
    ) -> dict[str, Any]:
        self.session = self.auth.register(email, password, role, name)
        return self._session_payload()

    def _login(self, email: str, password: str) -> dict[str, Any]:
        self.session = self.auth.login(email, password)
        return self._session_payload()

    def _logout(self) -> dict[str, Any]:
        self.session = self.auth.logout(self.session)
        return self._session_payload()

    def _session_info(self) -> dict[str, Any]:
        return self._session_payload()

    def _users(self) -> list[dict[str, Any]]:
        return [u.to_dict() for u in self.auth.list_users()]

    # ── projects ──────────────────────────────────────────────────

    def _create_project(
        self,
        title: str,
        description: str,
        goalAmount: float,  # noqa: N803
        category: str,
        imageUrl: str | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        farmer = self.user
        data: dict[str, Any] = {
            "title": title,
            "description": description,
            "goalAmount": goalAmount,
            "category": category,
            "farmerId": farmer.id,
            "farmerName": farmer.name or farmer.email,
        }
        if imageUrl is not None:
            data["imageUrl"] = imageUrl
        return self.projects.create_project(data).to_dict()

    def _update_project(self, projectId: str, updates: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        user = self.user
        if user.role is UserRole.ADMIN:
            return self.projects.update_project(projectId, updates).to_dict()
        return self.projects.farmer_update_project(projectId, user.id, updates).to_dict()

    def _approve_project(self, projectId: str) -> dict[str, Any]:  # noqa: N803
        return self.projects.approve_project(projectId).to_dict()

    def _reject_project(self, projectId: str) -> dict[str, Any]:  # noqa: N803
        return self.projects.reject_project(projectId).to_dict()

    def _fund_project(self, projectId: str, amount: float) -> dict[str, Any]:  # noqa: N803
        return self.projects.fund_project(projectId, self.user.id, amount).to_dict()

    def _list_projects(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.projects.list_projects()]

    def _my_projects(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.projects.get_projects_by_farmer(self.user.id)]

    def _approved_projects(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.projects.get_approved_projects()]

    def _search_projects(self, term: str = "", category: str = "all") -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.projects.search_projects(term, category)]

    # ── investments ───────────────────────────────────────────────

    def _investments_by_project(self, projectId: str) -> list[dict[str, Any]]:  # noqa: N803
        return [i.to_dict() for i in self.investments.get_investments_by_project(projectId)]

    def _my_investments(self) -> list[dict[str, Any]]:
        return [i.to_dict() for i in self.investments.get_investments_by_investor(self.user.id)]

    # ── analytics ─────────────────────────────────────────────────

    def _portfolio_metrics(self) -> dict[str, Any]:
        return self.portfolio.get_portfolio_metrics(self.user.id).to_dict()

    def _portfolio_history(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self.portfolio.get_investment_history(self.user.id)]

    def _portfolio_breakdown(self) -> dict[str, Any]:
        return self.portfolio.get_portfolio_breakdown(self.user.id).to_dict()

    def _portfolio_performance(self) -> dict[str, Any]:
        return self.portfolio.get_performance_metrics(self.user.id).to_dict()

    def _farmer_analytics(self) -> dict[str, Any]:
        return farmer_summary(
            self.projects.get_projects_by_farmer(self.user.id),
            self.investments.list_investments(),
        )

    def _admin_stats(self) -> dict[str, Any]:
        return platform_stats(
            self.projects.list_projects(),
            self.investments.list_investments(),
            self.auth.list_users(),
        )

    # ── export / demo ─────────────────────────────────────────────

    def _export_portfolio(self, save: bool = False) -> str:
        if save and self.export_dir is None:
            msg = "Saving exports is disabled: no export directory configured"
            raise ValueError(msg)
        return export_portfolio_json(
            self.user.to_dict(),
            metrics=self._portfolio_metrics(),
            history=self._portfolio_history(),
            breakdown=self._portfolio_breakdown(),
            performance=self._portfolio_performance(),
            output_dir=self.export_dir if save else None,
        )

    def _demo_seed(self, investorId: str = DEMO_INVESTOR_ID) -> bool:  # noqa: N803
        return create_demo_data(self.store, investorId)

    def _demo_reset(self, investorId: str = DEMO_INVESTOR_ID) -> bool:  # noqa: N803
        return reset_demo_data(self.store, investorId)


def handle_line(app: App, line: str) -> dict[str, Any]:
    """Process one request line and build the response object."""
    request: dict[str, Any] = {}
    try:
        request = json.loads(line)
        request_id = request.get("id", "unknown")
        method = request["method"]
        params = request.get("params", {})
        return {"id": request_id, "result": app.dispatch(method, params)}
    except AgroFundError as exc:
        # Expected failures carry a user-facing message; no traceback
        logger.info("%s: %s", type(exc).__name__, exc.message)
        return {
            "id": request.get("id", "unknown"),
            "error": {"type": type(exc).__name__, "message": exc.message},
        }
    except Exception as exc:  # noqa: BLE001
        request_id = request.get("id", "unknown") if isinstance(request, dict) else "unknown"
        return {
            "id": request_id,
            "error": {
                "type": type(exc).__name__,
                "message": str(exc),
                "traceback": traceback.format_exc(),
            },
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agrofund",
        description="AgroFund sidecar: newline-delimited JSON over stdin/stdout.",
    )
    parser.add_argument("--db", type=Path, default=None, help="Record store file")
    parser.add_argument(
        "--memory", action="store_true", help="Use a throwaway in-memory store"
    )
    parser.add_argument("--verbose", action="store_true", help="DEBUG logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the sidecar message loop.

    Reads newline-delimited JSON from stdin, dispatches to handlers,
    and writes JSON responses to stdout. Runs indefinitely until
    stdin is closed.
    """
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    log_config.setup(verbose=args.verbose or settings.verbose)

    conn = init_memory_db() if args.memory else init_store_db(args.db or settings.db_path)
    app = App(
        RecordStore(conn),
        enforce_funding_cap=settings.enforce_funding_cap,
        export_dir=settings.export_dir,
    )
    app.auth.initialize_default_admin()
    app.session = app.auth.restore_session()

    try:
        for raw_line in sys.stdin:
            stripped = raw_line.strip()
            if not stripped:
                continue
            response = handle_line(app, stripped)
            sys.stdout.write(json.dumps(response, cls=_NumpyEncoder) + "\n")
            sys.stdout.flush()
    finally:
        conn.close()


if __name__ == "__main__":
    main()
