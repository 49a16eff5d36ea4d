"""Shared test fixtures."""

from __future__ import annotations

import ipaddress
from pathlib import Path

import pytest

from trustgate.policy.models import ConnectionContext, Decision, Policy, TrustRule


class CollectingSink:
    """Audit sink that keeps every (decision, context) pair in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[Decision, ConnectionContext]] = []

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        self.records.append((decision, context))


class BrokenSink:
    """Audit sink whose backing store is always down."""

    def __init__(self) -> None:
        self.calls = 0

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        self.calls += 1
        raise OSError("disk full")


def make_rule(network: str, label: str) -> TrustRule:
    return TrustRule(network=ipaddress.ip_network(network), label=label)


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def simple_policy_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "simple_policy.yaml"


@pytest.fixture
def site_policy_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "site_policy.yaml"


@pytest.fixture
def home_policy() -> Policy:
    return Policy(name="home", rules=(make_rule("192.168.1.0/24", "home-lan"),))


@pytest.fixture
def overlapping_policy() -> Policy:
    return Policy(
        name="overlap",
        rules=(
            make_rule("10.0.0.0/8", "a"),
            make_rule("10.0.0.0/16", "b"),
        ),
    )


@pytest.fixture
def collecting_sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def broken_sink() -> BrokenSink:
    return BrokenSink()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real XDG dirs and TRUSTGATE_* settings."""
    for name in (
        "TRUSTGATE_POLICY",
        "TRUSTGATE_TRUSTED_NETWORKS",
        "TRUSTGATE_DATA_DIR",
        "TRUSTGATE_AUDIT_QUEUE_SIZE",
        "TRUSTGATE_AUDIT_DB",
        "TRUSTGATE_WEB_PORT",
        "PAM_RHOST",
        "PAM_USER",
        "PAM_SERVICE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
