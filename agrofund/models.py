"""Domain records for AgroFund.

Records are persisted as JSON objects using camelCase keys; the
dataclasses below convert between that stored shape and Python
attributes.

"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 9


class UserRole(str, Enum):
    """The three roles a user can hold."""

    FARMER = "Farmer"
    INVESTOR = "Investor"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, value: str | UserRole) -> UserRole:
        """Convert a role name to a ``UserRole``.

        Raises:
            ValueError: If the name is not a known role.

        """
        if isinstance(value, UserRole):
            return value
        for role in cls:
            if role.value == value:
                return role
        msg = f"role must be one of {[r.value for r in cls]}, got '{value}'"
        raise ValueError(msg)


class ProjectStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def to_iso(moment: datetime) -> str:
    """Format a datetime as ISO-8601 with millisecond precision and ``Z``."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive timestamps are assumed to be UTC.
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def generate_id(prefix: str) -> str:
    """Generate a record ID of the form ``<prefix>_<epoch-ms>_<suffix>``.

    The suffix is nine random base-36 characters. Uniqueness is
    probabilistic only.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


@dataclass
class User:
    """A registered account.

    Attributes:
        id: Unique user identifier.
        email: Login email, unique across users.
        role: Farmer, Investor or Admin.
        name: Optional display name.

    """

    id: str
    email: str
    role: UserRole
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "email": self.email, "role": self.role.value}
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=data["id"],
            email=data["email"],
            role=UserRole.parse(data["role"]),
            name=data.get("name"),
        )


@dataclass
class Project:
    """A funding project submitted by a farmer.

    Attributes:
        id: Unique project identifier.
        title: Short project title.
        description: Free-text description.
        goal_amount: Funding goal, strictly positive.
        raised_amount: Total funded so far.
        farmer_id: ID of the submitting farmer.
        farmer_name: Display name of the submitting farmer.
        status: pending, approved or rejected.
        category: Free-form category such as "Crops" or "Livestock".
        image_url: Optional image link.
        created_at: ISO-8601 creation timestamp.
        updated_at: ISO-8601 last-update timestamp.

    """

    id: str
    title: str
    description: str
    goal_amount: float
    farmer_id: str
    farmer_name: str
    category: str
    raised_amount: float = 0.0
    status: ProjectStatus = ProjectStatus.PENDING
    image_url: str | None = None
    created_at: str = field(default_factory=lambda: to_iso(utcnow()))
    updated_at: str = field(default_factory=lambda: to_iso(utcnow()))

    @property
    def completion_rate(self) -> float:
        """Raised over goal, uncapped. Zero for a non-positive goal."""
        if self.goal_amount <= 0:
            return 0.0
        return self.raised_amount / self.goal_amount

    @property
    def remaining_amount(self) -> float:
        return max(self.goal_amount - self.raised_amount, 0.0)

    def with_updates(self, **changes: Any) -> Project:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "goalAmount": self.goal_amount,
            "raisedAmount": self.raised_amount,
            "farmerId": self.farmer_id,
            "farmerName": self.farmer_name,
            "status": self.status.value,
            "category": self.category,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            goal_amount=float(data["goalAmount"]),
            raised_amount=float(data.get("raisedAmount", 0)),
            farmer_id=data.get("farmerId", ""),
            farmer_name=data.get("farmerName", ""),
            status=ProjectStatus(data.get("status", ProjectStatus.PENDING.value)),
            category=data.get("category", ""),
            image_url=data.get("imageUrl"),
            created_at=data["createdAt"],
            updated_at=data.get("updatedAt", data["createdAt"]),
        )


# Stored (camelCase) key -> Project attribute, for partial updates
PROJECT_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "goalAmount": "goal_amount",
    "raisedAmount": "raised_amount",
    "farmerId": "farmer_id",
    "farmerName": "farmer_name",
    "status": "status",
    "category": "category",
    "imageUrl": "image_url",
}


@dataclass
class Investment:
    """A single funding commitment. Never mutated once written."""

    id: str
    project_id: str
    investor_id: str
    amount: float
    created_at: str = field(default_factory=lambda: to_iso(utcnow()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "investorId": self.investor_id,
            "amount": self.amount,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Investment:
        return cls(
            id=data["id"],
            project_id=data["projectId"],
            investor_id=data["investorId"],
            amount=float(data["amount"]),
            created_at=data["createdAt"],
        )
