"""Tests for the key/value record store."""

from __future__ import annotations

import tempfile
import threading
from pathlib import Path

import pytest
from agrofund.db.connection import init_store_db
from agrofund.db.record_store import RecordStore
from agrofund.errors import OperationFailed


class TestGetSet:
    """Tests for basic reads and writes."""

    def test_missing_key_returns_default(self, store):
        assert store.get("users") is None
        assert store.get("users", []) == []

    def test_default_is_copied(self, store):
        default: list[int] = []
        value = store.get("missing", default)
        value.append(1)
        assert default == []

    def test_set_then_get(self, store):
        store.set("projects", [{"id": "p1", "goalAmount": 100}])
        assert store.get("projects") == [{"id": "p1", "goalAmount": 100}]

    def test_set_replaces(self, store):
        store.set("current-user", {"id": "u1"})
        store.set("current-user", None)
        assert store.get("current-user", "fallback") is None

    def test_reads_are_independent_copies(self, store):
        store.set("passwords", {"u1": "x"})
        first = store.get("passwords")
        first["u2"] = "y"
        assert store.get("passwords") == {"u1": "x"}

    def test_non_serializable_value_raises_and_writes_nothing(self, store):
        with pytest.raises(TypeError):
            store.set("bad", {"value": object()})
        assert store.get("bad") is None


class TestDeleteAndKeys:
    """Tests for deletion and key listing."""

    def test_delete(self, store):
        store.set("projects", [])
        store.delete("projects")
        assert store.get("projects") is None

    def test_delete_missing_is_noop(self, store):
        store.delete("never-set")
        assert store.keys() == []

    def test_keys_sorted(self, store):
        store.set("users", [])
        store.set("investments", [])
        store.set("auth-loading", False)
        assert store.keys() == ["auth-loading", "investments", "users"]


class TestUpdate:
    """Tests for atomic read-modify-write."""

    def test_update_uses_default_when_missing(self, store):
        result = store.update("investments", lambda cur: [*cur, {"id": "i1"}], [])
        assert result == [{"id": "i1"}]
        assert store.get("investments") == [{"id": "i1"}]

    def test_failed_update_writes_nothing(self, store):
        store.set("projects", [{"id": "p1"}])

        def boom(current):
            current.append({"id": "p2"})
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError, match="nope"):
            store.update("projects", boom, [])
        assert store.get("projects") == [{"id": "p1"}]

    def test_concurrent_updates_do_not_lose_writes(self, store):
        store.set("counter", 0)

        def bump():
            for _ in range(25):
                store.update("counter", lambda cur: cur + 1, 0)

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get("counter") == 100


class TestTransaction:
    """Tests for multi-key transactions."""

    def test_commit_writes_all_keys(self, store):
        with store.transaction() as tx:
            tx.set("users", [{"id": "u1"}])
            tx.set("passwords", {"u1": "hash"})
        assert store.get("users") == [{"id": "u1"}]
        assert store.get("passwords") == {"u1": "hash"}

    def test_rollback_on_error(self, store):
        store.set("users", [])
        with pytest.raises(ValueError, match="abort"):
            with store.transaction() as tx:
                tx.set("users", [{"id": "u1"}])
                raise ValueError("abort")
        assert store.get("users") == []

    def test_database_error_becomes_operation_failed(self, store):
        store.conn.execute("DROP TABLE records")
        with pytest.raises(OperationFailed):
            store.get("users")


class TestDurability:
    """Values survive closing and reopening the store file."""

    def test_reopen(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "store.duckdb"
            conn = init_store_db(db_path)
            RecordStore(conn).set("projects", [{"id": "p1"}])
            conn.close()

            conn = init_store_db(db_path)
            assert RecordStore(conn).get("projects") == [{"id": "p1"}]
            conn.close()
