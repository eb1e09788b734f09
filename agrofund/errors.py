"""Error taxonomy for AgroFund operations.

Every error carries a short user-facing ``message``. The sidecar
boundary in ``agrofund.main`` catches these and reports them as JSON,
so none of them terminate the process.
"""

from __future__ import annotations


class AgroFundError(Exception):
    """Base class for all recoverable AgroFund errors."""

    default_message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UserNotFound(AgroFundError):
    default_message = "User not found"


class InvalidPassword(AgroFundError):
    default_message = "Invalid password"


class DuplicateEmail(AgroFundError):
    default_message = "Email already registered"


class ProjectNotFound(AgroFundError):
    default_message = "Project not found"


class OperationFailed(AgroFundError):
    """Catch-all for unexpected record store failures."""

    default_message = "Operation failed"


class InvalidAmount(AgroFundError):
    default_message = "Please enter a valid amount"


class FundingCapExceeded(AgroFundError):
    default_message = "Amount exceeds remaining funding needed"


class ProjectLocked(AgroFundError):
    default_message = "Approved projects can no longer be edited"


class PermissionDenied(AgroFundError):
    default_message = "Permission denied"


class ProjectNotOpen(AgroFundError):
    """Funding attempted on a project that is not approved."""

    default_message = "Project is not open for funding"
