"""SQLite database connection management and schema setup."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS audit_records (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    timestamp REAL NOT NULL,
    source TEXT NOT NULL,
    outcome TEXT NOT NULL,
    reason TEXT NOT NULL,
    rule_label TEXT NOT NULL DEFAULT '-',
    user TEXT NOT NULL DEFAULT '-',
    service TEXT NOT NULL DEFAULT '-'
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp
    ON audit_records(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_reason
    ON audit_records(reason);
"""

# The audit trail is append-only
APPEND_ONLY_SQL = """
CREATE TRIGGER IF NOT EXISTS audit_records_no_update
    BEFORE UPDATE ON audit_records
BEGIN
    SELECT RAISE(ABORT, 'audit_records is append-only');
END;

CREATE TRIGGER IF NOT EXISTS audit_records_no_delete
    BEFORE DELETE ON audit_records
BEGIN
    SELECT RAISE(ABORT, 'audit_records is append-only');
END;
"""


async def get_db(db_path: str | Path) -> aiosqlite.Connection:
    """Open (or create) the database and set up the schema."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(str(db_path))
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")

    try:
        await _migrate(db)
    except Exception:
        await db.close()
        raise
    return db


async def _migrate(db: aiosqlite.Connection) -> None:
    """Create the schema on a fresh database, or check an existing one."""
    cursor = await db.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    row = await cursor.fetchone()

    if row is None:
        # Fresh database, create everything
        await db.executescript(SCHEMA_SQL + APPEND_ONLY_SQL)
        await db.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        await db.commit()
        logger.info("Database initialized at schema version %d", SCHEMA_VERSION)
        return

    cursor = await db.execute("SELECT version FROM schema_version")
    row = await cursor.fetchone()
    current = row[0] if row else 0

    if current != SCHEMA_VERSION:
        raise RuntimeError(
            f"Audit database is at schema version {current}, "
            f"this build expects {SCHEMA_VERSION}"
        )
