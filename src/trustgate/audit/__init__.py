"""Audit trail for second-factor decisions."""

from trustgate.audit.record import AuditRecord, parse_line
from trustgate.audit.sinks import (
    AuditSink,
    FanoutAuditSink,
    LoggingAuditSink,
    SqliteAuditSink,
)

__all__ = [
    "AuditRecord",
    "AuditSink",
    "FanoutAuditSink",
    "LoggingAuditSink",
    "SqliteAuditSink",
    "parse_line",
]
