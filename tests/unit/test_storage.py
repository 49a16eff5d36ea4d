"""Tests for the SQLite storage layer."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path

import pytest

from trustgate.audit.record import AuditRecord
from trustgate.errors import AuditWriteFailure


def run_async(coro):
    """Helper to run async functions in sync tests."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def _record(source: str = "203.0.113.42", reason: str = "no-rule-match", ts: float = 1000.0) -> AuditRecord:
    outcome = "not-required" if reason == "matched-trusted-network" else "required"
    return AuditRecord(timestamp=ts, source=source, outcome=outcome, reason=reason)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path: Path):
    from trustgate.storage.db import get_db

    conn = run_async(get_db(db_path))
    yield conn
    run_async(conn.close())


class TestAuditRepo:
    def test_append_and_get(self, db):
        from trustgate.storage.repos import AuditRepo

        repo = AuditRepo(db)
        record = _record()
        run_async(repo.append(record))

        row = run_async(repo.get(record.id))
        assert row is not None
        assert row["source"] == "203.0.113.42"
        assert row["outcome"] == "required"
        assert row["rule_label"] == "-"

    def test_list_recent_newest_first(self, db):
        from trustgate.storage.repos import AuditRepo

        repo = AuditRepo(db)
        for i in range(3):
            run_async(repo.append(_record(source=f"203.0.113.{i}")))

        rows = run_async(repo.list_recent())
        assert [r["source"] for r in rows] == ["203.0.113.2", "203.0.113.1", "203.0.113.0"]
        assert len(run_async(repo.list_recent(limit=1))) == 1

    def test_filter_by_reason_and_count(self, db):
        from trustgate.storage.repos import AuditRepo

        repo = AuditRepo(db)
        run_async(repo.append(_record(reason="no-rule-match")))
        run_async(repo.append(_record(source="absent", reason="no-source-address")))
        run_async(repo.append(_record(source="192.168.1.5", reason="matched-trusted-network")))
        run_async(repo.append(_record(reason="no-rule-match")))

        rows = run_async(repo.list_recent(reason="no-rule-match"))
        assert len(rows) == 2
        assert run_async(repo.count_by_reason()) == {
            "no-rule-match": 2,
            "no-source-address": 1,
            "matched-trusted-network": 1,
        }

    def test_duplicate_id_raises_write_failure(self, db):
        from trustgate.storage.repos import AuditRepo

        repo = AuditRepo(db)
        record = _record()
        run_async(repo.append(record))
        with pytest.raises(AuditWriteFailure):
            run_async(repo.append(record))


class TestAppendOnly:
    def test_update_rejected(self, db):
        from trustgate.storage.repos import AuditRepo

        run_async(AuditRepo(db).append(_record()))
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            run_async(db.execute("UPDATE audit_records SET outcome = 'not-required'"))

    def test_delete_rejected(self, db):
        from trustgate.storage.repos import AuditRepo

        run_async(AuditRepo(db).append(_record()))
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            run_async(db.execute("DELETE FROM audit_records"))


class TestMigrations:
    def test_fresh_database_version(self, db):
        from trustgate.storage.db import SCHEMA_VERSION

        cursor = run_async(db.execute("SELECT version FROM schema_version"))
        row = run_async(cursor.fetchone())
        assert row[0] == SCHEMA_VERSION

    def test_reopen_keeps_rows_and_triggers(self, db_path: Path):
        from trustgate.storage.db import get_db
        from trustgate.storage.repos import AuditRepo

        db = run_async(get_db(db_path))
        run_async(AuditRepo(db).append(_record()))
        run_async(db.close())

        db = run_async(get_db(db_path))
        try:
            assert len(run_async(AuditRepo(db).list_recent())) == 1
            cursor = run_async(
                db.execute("SELECT name FROM sqlite_master WHERE type='trigger'")
            )
            names = {row[0] for row in run_async(cursor.fetchall())}
            assert names == {"audit_records_no_update", "audit_records_no_delete"}
        finally:
            run_async(db.close())

    def test_unknown_schema_version_rejected(self, db_path: Path):
        from trustgate.storage.db import SCHEMA_SQL, get_db

        conn = sqlite3.connect(db_path)
        conn.executescript(SCHEMA_SQL)
        conn.execute("INSERT INTO schema_version (version) VALUES (99)")
        conn.commit()
        conn.close()

        with pytest.raises(RuntimeError, match="schema version 99"):
            run_async(get_db(db_path))
