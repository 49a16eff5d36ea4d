"""Repository for the append-only audit table."""

from __future__ import annotations

import sqlite3

import aiosqlite

from trustgate.audit.record import AuditRecord
from trustgate.errors import AuditWriteFailure


class AuditRepo:
    """Append and query audit records. There is no update or delete."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def append(self, record: AuditRecord) -> None:
        try:
            await self._db.execute(
                "INSERT INTO audit_records "
                "(id, timestamp, source, outcome, reason, "
                "rule_label, user, service) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.timestamp,
                    record.source,
                    record.outcome,
                    record.reason,
                    record.rule_label,
                    record.user,
                    record.service,
                ),
            )
            await self._db.commit()
        except sqlite3.Error as exc:
            raise AuditWriteFailure(f"Could not append audit record {record.id}: {exc}") from exc

    async def get(self, record_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT * FROM audit_records WHERE id = ?", (record_id,)
        )
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        reason: str | None = None,
    ) -> list[dict]:
        if reason:
            cursor = await self._db.execute(
                "SELECT * FROM audit_records WHERE reason = ? "
                "ORDER BY seq DESC LIMIT ? OFFSET ?",
                (reason, limit, offset),
            )
        else:
            cursor = await self._db.execute(
                "SELECT * FROM audit_records ORDER BY seq DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
        return [dict(row) async for row in cursor]

    async def count_by_reason(self) -> dict[str, int]:
        cursor = await self._db.execute(
            "SELECT reason, COUNT(*) AS n FROM audit_records GROUP BY reason"
        )
        return {row["reason"]: row["n"] async for row in cursor}
