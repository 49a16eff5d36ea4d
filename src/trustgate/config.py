"""Global configuration — XDG paths, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from trustgate.errors import ConfigError


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "trustgate"
    return Path.home() / ".local" / "share" / "trustgate"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "trustgate"
    return Path.home() / ".config" / "trustgate"


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class TrustGateConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    config_dir: Path = field(default_factory=_default_config_dir)
    audit_queue_size: int = 1000
    audit_to_db: bool = True
    web_host: str = "127.0.0.1"  # Hardcoded — never 0.0.0.0
    web_port: int = 8471
    verbose: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / "audit.db"

    @classmethod
    def load(cls) -> TrustGateConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_data_dir = os.environ.get("TRUSTGATE_DATA_DIR")
        if env_data_dir:
            config.data_dir = Path(env_data_dir)

        env_queue = os.environ.get("TRUSTGATE_AUDIT_QUEUE_SIZE")
        if env_queue:
            config.audit_queue_size = _env_int("TRUSTGATE_AUDIT_QUEUE_SIZE", env_queue)

        env_audit_db = os.environ.get("TRUSTGATE_AUDIT_DB")
        if env_audit_db:
            config.audit_to_db = env_audit_db.lower() not in ("0", "false", "no", "off")

        env_port = os.environ.get("TRUSTGATE_WEB_PORT")
        if env_port:
            config.web_port = _env_int("TRUSTGATE_WEB_PORT", env_port)

        return config
