"""Audit record — the immutable, grep-able trace of one decision.

Fields are written in a fixed order as space-separated key=value pairs on
one line, e.g. ``ts=2026-10-19T08:15:02.120000Z src=192.168.1.50
outcome=not-required reason=matched-trusted-network rule=home-lan user=alice
service=sshd``. Values never contain whitespace or ``=``.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from trustgate.policy.models import ConnectionContext, Decision, Reason

SOURCE_ABSENT = "absent"
SOURCE_MALFORMED = "malformed"
EMPTY = "-"

FIELD_ORDER = ("ts", "src", "outcome", "reason", "rule", "user", "service")

_UNSAFE = re.compile(r"[\s\x00-\x1f\x7f=]")


@dataclass(frozen=True)
class AuditRecord:
    """One decision as it is written to the audit trail."""

    timestamp: float
    source: str
    outcome: str
    reason: str
    rule_label: str = EMPTY
    user: str = EMPTY
    service: str = EMPTY
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @classmethod
    def from_decision(cls, decision: Decision, context: ConnectionContext) -> AuditRecord:
        if decision.reason is Reason.NO_SOURCE_ADDRESS:
            source = SOURCE_ABSENT
        elif decision.reason is Reason.MALFORMED_SOURCE_ADDRESS:
            source = SOURCE_MALFORMED
        else:
            source = str(context.source_address)

        label = decision.matched_rule.label if decision.matched_rule else EMPTY
        return cls(
            timestamp=context.timestamp,
            source=_clean(source),
            outcome=decision.outcome,
            reason=decision.reason.value,
            rule_label=_clean(label),
            user=_clean(context.user),
            service=_clean(context.service),
        )

    @property
    def second_factor_required(self) -> bool:
        return self.outcome == "required"

    def to_line(self) -> str:
        values = (
            format_timestamp(self.timestamp),
            self.source,
            self.outcome,
            self.reason,
            self.rule_label,
            self.user,
            self.service,
        )
        return " ".join(f"{key}={value}" for key, value in zip(FIELD_ORDER, values))


def parse_line(line: str) -> AuditRecord:
    """Parse a line produced by :meth:`AuditRecord.to_line`."""
    fields: dict[str, str] = {}
    for token in line.split():
        key, sep, value = token.partition("=")
        if not sep:
            raise ValueError(f"Malformed audit field: {token!r}")
        fields[key] = value

    missing = [key for key in FIELD_ORDER if key not in fields]
    if missing:
        raise ValueError(f"Audit line missing fields: {', '.join(missing)}")

    return AuditRecord(
        timestamp=parse_timestamp(fields["ts"]),
        source=fields["src"],
        outcome=fields["outcome"],
        reason=fields["reason"],
        rule_label=fields["rule"],
        user=fields["user"],
        service=fields["service"],
    )


def format_timestamp(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> float:
    dt = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _clean(value: str) -> str:
    # Keeps one token per field so the line stays splittable
    if not value:
        return EMPTY
    return _UNSAFE.sub("_", value)
