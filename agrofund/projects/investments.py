"""Investment repository: append-only log of funding commitments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agrofund.db.schema import INVESTMENTS_KEY
from agrofund.models import Investment, generate_id

if TYPE_CHECKING:
    from agrofund.db.record_store import RecordStore, StoreTransaction

logger = logging.getLogger(__name__)


def append_investment(
    tx: StoreTransaction,
    project_id: str,
    investor_id: str,
    amount: float,
) -> Investment:
    """Append a new investment inside an open store transaction."""
    investment = Investment(
        id=generate_id("investment"),
        project_id=project_id,
        investor_id=investor_id,
        amount=float(amount),
    )
    investments: list[dict[str, Any]] = tx.get(INVESTMENTS_KEY, [])
    tx.set(INVESTMENTS_KEY, [*investments, investment.to_dict()])
    return investment


class InvestmentRepository:
    """Read access and appends for the ``investments`` record."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def create(self, project_id: str, investor_id: str, amount: float) -> Investment:
        """Record an investment without touching the project.

        ``ProjectRepository.fund_project`` is the normal entry point; it
        also bumps the project's raised amount.
        """
        with self.store.transaction() as tx:
            investment = append_investment(tx, project_id, investor_id, amount)
        logger.info(
            "Recorded investment %s: %s into %s", investment.id, amount, project_id
        )
        return investment

    def list_investments(self) -> list[Investment]:
        return [Investment.from_dict(i) for i in self.store.get(INVESTMENTS_KEY, [])]

    def get_investments_by_project(self, project_id: str) -> list[Investment]:
        return [i for i in self.list_investments() if i.project_id == project_id]

    def get_investments_by_investor(self, investor_id: str) -> list[Investment]:
        return [i for i in self.list_investments() if i.investor_id == investor_id]
