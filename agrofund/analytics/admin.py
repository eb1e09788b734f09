"""Platform-wide statistics for the admin overview."""

from __future__ import annotations

from typing import Any

from agrofund.models import Investment, Project, ProjectStatus, User, UserRole


def platform_stats(
    projects: list[Project],
    investments: list[Investment],
    users: list[User],
) -> dict[str, Any]:
    """Count projects by status, sum funding and count users by role."""
    total_funding = float(sum(inv.amount for inv in investments))
    by_status = {status.value: 0 for status in ProjectStatus}
    for project in projects:
        by_status[project.status.value] += 1
    by_role = {role.value: 0 for role in UserRole}
    for user in users:
        by_role[user.role.value] += 1

    return {
        "totalProjects": len(projects),
        "approvedProjects": by_status[ProjectStatus.APPROVED.value],
        "pendingProjects": by_status[ProjectStatus.PENDING.value],
        "rejectedProjects": by_status[ProjectStatus.REJECTED.value],
        "totalFunding": total_funding,
        "totalInvestments": len(investments),
        "averageInvestment": total_funding / len(investments) if investments else 0.0,
        "totalUsers": len(users),
        "usersByRole": by_role,
    }
