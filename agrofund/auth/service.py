"""User registration, login and session handling.

Users live in the ``users`` record as a list; credentials live in the
separate ``passwords`` record keyed by user ID. Passwords are stored
as bcrypt hashes (see ``agrofund.auth.passwords``).

Sessions are explicit ``Session`` objects handed back to the caller.
The logged-in user is also written to ``current-user`` so a restarted
process can pick the session back up with ``restore_session``.

"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agrofund.auth.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from agrofund.db.schema import (
    AUTH_LOADING_KEY,
    CURRENT_USER_KEY,
    PASSWORDS_KEY,
    USERS_KEY,
)
from agrofund.errors import (
    DuplicateEmail,
    InvalidPassword,
    PermissionDenied,
    UserNotFound,
)
from agrofund.models import User, UserRole, generate_id

if TYPE_CHECKING:
    from agrofund.db.record_store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ID = "admin_default"
DEFAULT_ADMIN_EMAIL = "admin@agrofund.com"
DEFAULT_ADMIN_NAME = "System Administrator"
DEFAULT_ADMIN_PASSWORD = "admin123"  # noqa: S105

# Admin accounts are only ever seeded, never self-registered
SELF_SERVICE_ROLES = (UserRole.FARMER, UserRole.INVESTOR)


@dataclass
class Session:
    """The identity a caller acts as. An empty session is logged out."""

    user: User | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> UserRole | None:
        return self.user.role if self.user else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.to_dict() if self.user else None,
            "token": self.token,
        }


def require_role(session: Session, *roles: UserRole) -> User:
    """Return the session user if it holds one of ``roles``.

    Raises:
        PermissionDenied: If nobody is logged in or the role is not allowed.

    """
    if session.user is None:
        msg = "Login required"
        raise PermissionDenied(msg)
    if roles and session.user.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        msg = f"{session.user.role.value} accounts cannot do this (requires {allowed})"
        raise PermissionDenied(msg)
    return session.user


class AuthService:
    """Credential checks and session bookkeeping over a ``RecordStore``.

    Args:
        store: Backing record store.
        password_rounds: bcrypt cost factor for new hashes.

    """

    def __init__(self, store: RecordStore, *, password_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.password_rounds = password_rounds

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self.store.set(AUTH_LOADING_KEY, True)
        try:
            yield
        finally:
            self.store.set(AUTH_LOADING_KEY, False)

    def _start_session(self, user: User) -> Session:
        self.store.set(CURRENT_USER_KEY, user.to_dict())
        return Session(user=user, token=secrets.token_hex(16))

    def list_users(self) -> list[User]:
        return [User.from_dict(u) for u in self.store.get(USERS_KEY, [])]

    def find_user(self, email: str) -> User | None:
        """Look up a user by exact email match."""
        for user in self.list_users():
            if user.email == email:
                return user
        return None

    def initialize_default_admin(self) -> bool:
        """Seed the built-in admin account if no admin exists.

        Safe to call on every start-up.

        Returns:
            True if an admin account was created.

        """
        with self.store.transaction() as tx:
            users = tx.get(USERS_KEY, [])
            if any(u.get("role") == UserRole.ADMIN.value for u in users):
                return False
            admin = User(
                id=DEFAULT_ADMIN_ID,
                email=DEFAULT_ADMIN_EMAIL,
                role=UserRole.ADMIN,
                name=DEFAULT_ADMIN_NAME,
            )
            tx.set(USERS_KEY, [*users, admin.to_dict()])
            passwords = tx.get(PASSWORDS_KEY, {})
            passwords[admin.id] = hash_password(
                DEFAULT_ADMIN_PASSWORD, rounds=self.password_rounds
            )
            tx.set(PASSWORDS_KEY, passwords)
        logger.info("Seeded default admin account %s", DEFAULT_ADMIN_EMAIL)
        return True

    def register(
        self,
        email: str,
        password: str,
        role: UserRole | str,
        name: str | None = None,
    ) -> Session:
        """Create an account and log it in.

        Args:
            email: Login email. Must not already be registered.
            password: Plaintext password, stored hashed.
            role: Farmer or Investor.
            name: Optional display name.

        Returns:
            A session for the new user.

        Raises:
            DuplicateEmail: If the email is already registered.
            PermissionDenied: If the role is Admin.
            ValueError: If the role is unknown.

        """
        user_role = UserRole.parse(role)
        if user_role not in SELF_SERVICE_ROLES:
            msg = f"{user_role.value} accounts cannot be registered"
            raise PermissionDenied(msg)
        with self._loading():
            with self.store.transaction() as tx:
                users = tx.get(USERS_KEY, [])
                if any(u.get("email") == email for u in users):
                    raise DuplicateEmail
                user = User(id=generate_id("user"), email=email, role=user_role, name=name)
                tx.set(USERS_KEY, [*users, user.to_dict()])
                passwords = tx.get(PASSWORDS_KEY, {})
                passwords[user.id] = hash_password(
                    password, rounds=self.password_rounds
                )
                tx.set(PASSWORDS_KEY, passwords)
            logger.info("Registered %s account %s", user.role.value, user.id)
            return self._start_session(user)

    def login(self, email: str, password: str) -> Session:
        """Check credentials and start a session.

        Raises:
            UserNotFound: If no user has this email.
            InvalidPassword: If the password does not match.

        """
        with self._loading():
            user = self.find_user(email)
            if user is None:
                raise UserNotFound
            stored = self.store.get(PASSWORDS_KEY, {}).get(user.id)
            if stored is None or not verify_password(password, stored):
                logger.info("Rejected login for %s", user.id)
                raise InvalidPassword
            logger.info("User %s logged in", user.id)
            return self._start_session(user)

    def logout(self, session: Session | None = None) -> Session:
        """End the session and clear ``current-user``."""
        if session is not None and session.user is not None:
            logger.info("User %s logged out", session.user.id)
        self.store.set(CURRENT_USER_KEY, None)
        return Session()

    def restore_session(self) -> Session:
        """Rebuild a session from the persisted ``current-user`` record."""
        data = self.store.get(CURRENT_USER_KEY)
        if not data:
            return Session()
        return Session(user=User.from_dict(data), token=secrets.token_hex(16))
