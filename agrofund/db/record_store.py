"""Record store: persisted key/value mapping over DuckDB.

Every value is JSON-encoded and stored under a string key. Reads
return freshly decoded copies, so callers can never mutate stored
state by accident. ``update`` and ``transaction`` give atomic
read-modify-write across one or several keys, so concurrent writers
cannot lose updates.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import duckdb

from agrofund.errors import OperationFailed

logger = logging.getLogger(__name__)


class StoreTransaction:
    """Key/value view bound to an open store transaction."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def get(self, key: str, default: Any = None) -> Any:
        row = self._conn.execute(
            "SELECT value FROM records WHERE key = ?", [key]
        ).fetchone()
        if row is None:
            return copy.deepcopy(default)
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        self._conn.execute(
            "INSERT OR REPLACE INTO records (key, value, updated_at) VALUES (?, ?, ?)",
            [key, payload, datetime.now(tz=UTC)],
        )

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM records WHERE key = ?", [key])


class RecordStore:
    """Thin wrapper around the ``records`` table.

    Args:
        conn: DuckDB connection with the store schema applied
            (see ``agrofund.db.connection.init_store_db``).

    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self.conn = conn
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Yield a ``StoreTransaction``; commit on success, roll back on error.

        Transactions are serialised by a store-wide lock. Database errors
        are wrapped in ``OperationFailed``; any other exception raised in
        the block propagates unchanged after rollback. Transactions do
        not nest.
        """
        with self._lock:
            try:
                self.conn.begin()
            except duckdb.Error as exc:
                logger.exception("Could not start store transaction")
                raise OperationFailed from exc
            try:
                yield StoreTransaction(self.conn)
                self.conn.commit()
            except duckdb.Error as exc:
                self.conn.rollback()
                logger.exception("Store transaction failed")
                raise OperationFailed from exc
            except Exception:
                self.conn.rollback()
                raise

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or a copy of ``default``."""
        with self.transaction() as tx:
            return tx.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            TypeError: If ``value`` is not JSON-serializable.

        """
        with self.transaction() as tx:
            tx.set(key, value)
        logger.debug("Stored record %s", key)

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is a no-op."""
        with self.transaction() as tx:
            tx.delete(key)
        logger.debug("Deleted record %s", key)

    def keys(self) -> list[str]:
        """List all stored keys in sorted order."""
        with self.transaction():
            rows = self.conn.execute("SELECT key FROM records ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def update(
        self,
        key: str,
        fn: Callable[[Any], Any],
        default: Any = None,
    ) -> Any:
        """Atomically replace the value under ``key`` with ``fn(current)``.

        ``fn`` receives the current value (or a copy of ``default``) and
        returns the new value. If ``fn`` raises, nothing is written and
        the exception propagates unchanged.

        Args:
            key: Record key.
            fn: Transformation of the current value.
            default: Value passed to ``fn`` when the key is absent.

        Returns:
            The newly stored value.

        """
        with self.transaction() as tx:
            new_value = fn(tx.get(key, default))
            tx.set(key, new_value)
        return new_value
