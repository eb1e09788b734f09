"""Tests for farmer project analytics."""

from __future__ import annotations

import pytest
from agrofund.analytics.farmer import farmer_summary, project_analytics
from agrofund.models import ProjectStatus


class TestProjectAnalytics:
    def test_velocity_and_time_to_goal(self, make_project, make_investment, now):
        project = make_project("p1", goal=10_000, raised=4_000, age_days=40)
        investments = [
            make_investment("i1", "p1", amount=1_000, age_days=30, investor_id="a"),
            make_investment("i2", "p1", amount=3_000, age_days=5, investor_id="b"),
            make_investment("i3", "p1", amount=500, age_days=2, investor_id="a"),
            make_investment("other", "p2", amount=9_000, age_days=1, investor_id="c"),
        ]
        stats = project_analytics(project, investments, now)

        assert stats.funding_velocity == pytest.approx(100.0)
        assert stats.time_to_goal == 60
        assert stats.total_investors == 2
        assert stats.average_investment == pytest.approx(1_500)
        assert stats.largest_investment == 3_000
        assert [r["amount"] for r in stats.recent_investments] == [500, 3_000, 1_000]

    def test_nothing_raised(self, make_project, now):
        stats = project_analytics(make_project(raised=0, age_days=0), [], now)
        assert stats.funding_velocity == 0
        assert stats.time_to_goal is None
        assert stats.average_investment == 0
        assert stats.largest_investment == 0
        assert stats.to_dict()["timeToGoal"] is None

    def test_age_floor_of_one_day(self, make_project, now):
        stats = project_analytics(make_project(goal=1_000, raised=300, age_days=0), [], now)
        assert stats.funding_velocity == 300
        assert stats.time_to_goal == 3

    def test_recent_capped_at_five(self, make_project, make_investment, now):
        investments = [make_investment(f"i{n}", "p1", age_days=n) for n in range(8)]
        stats = project_analytics(make_project("p1"), investments, now)
        assert len(stats.recent_investments) == 5
        assert stats.recent_investments[0]["date"] == "2025-06-15"


class TestFarmerSummary:
    def test_totals(self, make_project, make_investment, now):
        projects = [
            make_project("p1", goal=10_000, raised=5_000, status=ProjectStatus.APPROVED),
            make_project("p2", goal=30_000, raised=3_000, status=ProjectStatus.PENDING),
        ]
        investments = [
            make_investment("i1", "p1", investor_id="a"),
            make_investment("i2", "p1", investor_id="b"),
            make_investment("i3", "p2", investor_id="a"),
            make_investment("i4", "elsewhere", investor_id="z"),
        ]
        summary = farmer_summary(projects, investments, now)

        assert summary["totalRaised"] == 8_000
        assert summary["totalGoal"] == 40_000
        assert summary["fundedPercentage"] == pytest.approx(20.0)
        assert summary["totalInvestors"] == 2
        assert summary["averageProjectProgress"] == pytest.approx(30.0)
        assert summary["approvedProjects"] == 1
        assert len(summary["projects"]) == 2

    def test_no_projects(self, now):
        summary = farmer_summary([], [], now)
        assert summary["averageProjectProgress"] == 0
        assert summary["fundedPercentage"] == 0
        assert summary["projects"] == []
