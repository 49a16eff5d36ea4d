"""Policy data models — immutable dataclasses used across the entire codebase."""

from __future__ import annotations

import enum
import ipaddress
import time
from dataclasses import dataclass, field

from trustgate.errors import ConfigError

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


class Reason(enum.Enum):
    """Why a decision came out the way it did."""

    MATCHED_TRUSTED_NETWORK = "matched-trusted-network"
    NO_SOURCE_ADDRESS = "no-source-address"
    MALFORMED_SOURCE_ADDRESS = "malformed-source-address"
    NO_RULE_MATCH = "no-rule-match"


@dataclass(frozen=True)
class TrustRule:
    """A network range whose connections skip the second factor."""

    network: Network
    label: str

    def contains(self, address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
        return address in self.network


@dataclass(frozen=True)
class Policy:
    """A complete, loaded trust policy.

    ``default_requires_second_factor`` exists so the fail-secure default is
    visible on the object; anything other than ``True`` is rejected.
    """

    name: str
    rules: tuple[TrustRule, ...] = ()
    description: str = ""
    inherit: tuple[str, ...] = ()
    default_requires_second_factor: bool = True

    def __post_init__(self) -> None:
        if self.default_requires_second_factor is not True:
            raise ConfigError(
                f"Policy '{self.name}': default_requires_second_factor must be true"
            )


@dataclass(frozen=True)
class ConnectionContext:
    """What the login front-end knows about one connection attempt.

    ``source_address`` is the peer address reported by the transport, never a
    value supplied by the client. ``user`` and ``service`` are only carried
    through to the audit trail.
    """

    source_address: str | None
    timestamp: float = field(default_factory=time.time)
    user: str = ""
    service: str = ""


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one connection against a policy."""

    second_factor_required: bool
    reason: Reason
    matched_rule: TrustRule | None = None

    @property
    def outcome(self) -> str:
        return "required" if self.second_factor_required else "not-required"
