"""Tests for platform statistics."""

from __future__ import annotations

from agrofund.analytics.admin import platform_stats
from agrofund.models import ProjectStatus, User, UserRole


class TestPlatformStats:
    def test_counts(self, make_project, make_investment):
        projects = [
            make_project("p1", status=ProjectStatus.APPROVED),
            make_project("p2", status=ProjectStatus.PENDING),
            make_project("p3", status=ProjectStatus.PENDING),
            make_project("p4", status=ProjectStatus.REJECTED),
        ]
        investments = [
            make_investment("i1", amount=1_000),
            make_investment("i2", amount=3_000),
        ]
        users = [
            User("u1", "f@example.com", UserRole.FARMER),
            User("u2", "i@example.com", UserRole.INVESTOR),
            User("u3", "j@example.com", UserRole.INVESTOR),
            User("admin_default", "admin@agrofund.com", UserRole.ADMIN),
        ]
        stats = platform_stats(projects, investments, users)

        assert stats["totalProjects"] == 4
        assert stats["approvedProjects"] == 1
        assert stats["pendingProjects"] == 2
        assert stats["rejectedProjects"] == 1
        assert stats["totalFunding"] == 4_000
        assert stats["totalInvestments"] == 2
        assert stats["averageInvestment"] == 2_000
        assert stats["usersByRole"] == {"Farmer": 1, "Investor": 2, "Admin": 1}

    def test_empty_platform(self):
        stats = platform_stats([], [], [])
        assert stats["averageInvestment"] == 0
        assert stats["totalUsers"] == 0
