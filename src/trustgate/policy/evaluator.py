"""Policy evaluator — hot path, decides whether a connection needs a second factor."""

from __future__ import annotations

import ipaddress
import logging
import threading

from trustgate.audit.sinks import AuditSink, error_logger
from trustgate.policy.models import ConnectionContext, Decision, Policy, Reason

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class PolicyEvaluator:
    """Evaluates connections against a loaded policy. First-match-wins.

    Every path that is not an explicit trusted match requires the second
    factor. The evaluator holds no per-call state and can be shared between
    threads.
    """

    def __init__(self, policy: Policy, sink: AuditSink | None = None) -> None:
        if not isinstance(policy, Policy):
            raise TypeError(
                f"PolicyEvaluator needs a loaded Policy, got {type(policy).__name__}"
            )
        self.policy = policy
        self._sink = sink
        self._failures = 0
        self._failures_lock = threading.Lock()

    @property
    def audit_failures(self) -> int:
        """Number of decisions the sink raised on."""
        return self._failures

    def evaluate(self, context: ConnectionContext) -> Decision:
        """Decide, hand the decision to the audit sink once, and return it."""
        decision = self.decide(context)
        if self._sink is not None:
            try:
                self._sink.record(decision, context)
            except Exception:
                with self._failures_lock:
                    self._failures += 1
                error_logger.exception(
                    "Audit sink failed for source %r (decision kept: %s)",
                    context.source_address,
                    decision.outcome,
                )
        return decision

    def decide(self, context: ConnectionContext) -> Decision:
        """Pure decision: no I/O, same answer for the same context."""
        raw = context.source_address
        if raw is None or raw == "":
            return Decision(second_factor_required=True, reason=Reason.NO_SOURCE_ADDRESS)

        address = parse_address(raw)
        if address is None:
            return Decision(
                second_factor_required=True,
                reason=Reason.MALFORMED_SOURCE_ADDRESS,
            )

        for rule in self.policy.rules:
            if rule.contains(address):
                return Decision(
                    second_factor_required=False,
                    reason=Reason.MATCHED_TRUSTED_NETWORK,
                    matched_rule=rule,
                )

        logger.debug("No trust rule matched %s", address)
        return Decision(second_factor_required=True, reason=Reason.NO_RULE_MATCH)


def parse_address(raw: object) -> IPAddress | None:
    """Parse a transport-reported peer address, or return None if it isn't one.

    IPv4-mapped IPv6 addresses (``::ffff:192.168.1.5``) come back as IPv4 so
    they match IPv4 rules.
    """
    if not isinstance(raw, str):
        return None
    try:
        address = ipaddress.ip_address(raw)
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address
