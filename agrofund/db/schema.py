"""DuckDB schema definitions for the AgroFund record store.

Contains DDL statements for:
- records: JSON values keyed by name (users, projects, investments, ...)

"""

from __future__ import annotations

# ── Records ──

CREATE_RECORDS = """
CREATE TABLE IF NOT EXISTS records (
    key          VARCHAR PRIMARY KEY,
    value        VARCHAR NOT NULL,
    updated_at   TIMESTAMP DEFAULT current_timestamp
);
"""

# All DDL statements in creation order
ALL_TABLES: list[str] = [
    CREATE_RECORDS,
]

# ── Well-known record keys ──

USERS_KEY = "users"
PASSWORDS_KEY = "passwords"
PROJECTS_KEY = "projects"
INVESTMENTS_KEY = "investments"
CURRENT_USER_KEY = "current-user"
AUTH_LOADING_KEY = "auth-loading"
