"""Opening the DuckDB file behind the record store.

The file location comes from ``agrofund.config.Settings``; tests use
``init_memory_db`` instead.
"""

from __future__ import annotations

import logging
from pathlib import Path

import duckdb

from agrofund.db.schema import ALL_TABLES
from agrofund.errors import OperationFailed

logger = logging.getLogger(__name__)


def _create_tables(conn: duckdb.DuckDBPyConnection) -> duckdb.DuckDBPyConnection:
    for ddl in ALL_TABLES:
        conn.execute(ddl)
    return conn


def init_store_db(db_path: str | Path) -> duckdb.DuckDBPyConnection:
    """Open (or create) the store file and make sure the schema exists.

    Raises:
        OperationFailed: If DuckDB cannot open the file, e.g. because
            another process holds its lock.

    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = _create_tables(duckdb.connect(str(path)))
    except duckdb.Error as exc:
        logger.exception("Could not open record store at %s", path)
        raise OperationFailed from exc
    logger.info("Record store opened at %s", path)
    return conn


def init_memory_db() -> duckdb.DuckDBPyConnection:
    """Throwaway in-memory store with the schema applied."""
    return _create_tables(duckdb.connect(":memory:"))
