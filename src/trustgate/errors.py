"""Exception types shared across the package."""

from __future__ import annotations


class TrustGateError(Exception):
    """Base class for all trustgate errors."""


class ConfigError(TrustGateError):
    """The policy source is unusable. Fatal at startup."""


class AuditWriteFailure(TrustGateError):
    """An audit record could not be persisted."""
