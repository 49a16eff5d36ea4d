"""Helpers shared by the CLI commands."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator

from trustgate.audit.sinks import (
    AuditSink,
    FanoutAuditSink,
    LoggingAuditSink,
    SqliteAuditSink,
)
from trustgate.config import TrustGateConfig


@contextlib.contextmanager
def open_audit_sink(config: TrustGateConfig, to_db: bool | None = None) -> Iterator[AuditSink]:
    """Log sink, plus the SQLite trail when enabled. Drains on exit."""
    if to_db is None:
        to_db = config.audit_to_db
    if not to_db:
        yield LoggingAuditSink()
        return

    with SqliteAuditSink(config.db_path, max_queue=config.audit_queue_size) as db_sink:
        yield FanoutAuditSink(LoggingAuditSink(), db_sink)
