"""Tests for the pam_exec hook command."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from trustgate.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_trusted_lan_exits_zero(runner: CliRunner, simple_policy_path: Path, monkeypatch):
    monkeypatch.setenv("PAM_RHOST", "192.168.1.50")
    monkeypatch.setenv("PAM_USER", "alice")
    monkeypatch.setenv("PAM_SERVICE", "sshd")
    result = runner.invoke(main, ["--policy", str(simple_policy_path), "pam"])
    assert result.exit_code == 0


def test_external_exits_one(runner: CliRunner, simple_policy_path: Path, monkeypatch):
    monkeypatch.setenv("PAM_RHOST", "203.0.113.42")
    result = runner.invoke(main, ["--policy", str(simple_policy_path), "pam"])
    assert result.exit_code == 1


def test_missing_rhost_exits_one(runner: CliRunner, simple_policy_path: Path):
    result = runner.invoke(main, ["--policy", str(simple_policy_path), "pam"])
    assert result.exit_code == 1


def test_hostname_rhost_exits_one(runner: CliRunner, simple_policy_path: Path, monkeypatch):
    # sshd with UseDNS yes reports a hostname, which is not a verified address
    monkeypatch.setenv("PAM_RHOST", "laptop.home.lan")
    result = runner.invoke(main, ["--policy", str(simple_policy_path), "pam"])
    assert result.exit_code == 1


def test_broken_policy_exits_one(runner: CliRunner, tmp_path: Path, monkeypatch):
    bad = tmp_path / "bad.yaml"
    bad.write_text("name: bad\ndefault_requires_second_factor: false\n")
    monkeypatch.setenv("PAM_RHOST", "192.168.1.50")
    result = runner.invoke(main, ["--policy", str(bad), "pam"])
    assert result.exit_code == 1


def test_env_network_list(runner: CliRunner, monkeypatch):
    monkeypatch.setenv("TRUSTGATE_TRUSTED_NETWORKS", "10.8.0.0/24=vpn")
    monkeypatch.setenv("PAM_RHOST", "10.8.0.7")
    result = runner.invoke(main, ["pam"])
    assert result.exit_code == 0


def test_decision_is_recorded(runner: CliRunner, simple_policy_path: Path, monkeypatch):
    monkeypatch.setenv("PAM_RHOST", "203.0.113.42")
    monkeypatch.setenv("PAM_USER", "alice")
    runner.invoke(main, ["--policy", str(simple_policy_path), "pam"])

    listing = runner.invoke(main, ["audit", "--lines"])
    assert "src=203.0.113.42" in listing.stdout
    assert "user=alice" in listing.stdout
