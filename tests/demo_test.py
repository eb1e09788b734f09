"""Tests for demo data seeding."""

from __future__ import annotations

import pytest
from agrofund.analytics.portfolio import portfolio_metrics
from agrofund.demo import DEMO_INVESTOR_ID, create_demo_data, reset_demo_data
from agrofund.projects.investments import InvestmentRepository
from agrofund.projects.repository import ProjectRepository


class TestCreateDemoData:
    def test_seeds_projects_and_investments(self, store, now):
        assert create_demo_data(store, now=now) is True
        projects = ProjectRepository(store).get_approved_projects()
        investments = InvestmentRepository(store).get_investments_by_investor(DEMO_INVESTOR_ID)
        assert len(projects) == 3
        assert len(investments) == 5

        metrics = portfolio_metrics(investments, projects, now)
        assert metrics.total_invested == 19_500
        assert metrics.total_active_projects == 3

    def test_noop_when_investments_exist(self, store, now):
        store.set("investments", [{"id": "x"}])
        assert create_demo_data(store, now=now) is False
        assert store.get("projects") is None

    def test_keeps_existing_projects(self, store, now, make_project):
        store.set("projects", [make_project("mine").to_dict()])
        create_demo_data(store, "investor_9", now=now)
        assert [p["id"] for p in store.get("projects")] == ["mine"]
        assert {i["investorId"] for i in store.get("investments")} == {"investor_9"}


class TestResetDemoData:
    def test_reset_replaces_everything(self, store, now, make_project):
        store.set("projects", [make_project("mine").to_dict()])
        store.set("investments", [{"id": "x"}])
        assert reset_demo_data(store, now=now) is True
        assert len(store.get("projects")) == 3
        assert len(store.get("investments")) == 5

    @pytest.mark.parametrize("investor_id", ["demo_investor_1", "user_123"])
    def test_investor_id(self, store, now, investor_id):
        reset_demo_data(store, investor_id, now=now)
        assert {i["investorId"] for i in store.get("investments")} == {investor_id}
