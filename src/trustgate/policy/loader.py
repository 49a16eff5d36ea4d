"""Load and resolve Policy objects from pairs, YAML files, and the environment.

Loading is all-or-nothing: any bad entry raises ConfigError and no Policy is
returned.
"""

from __future__ import annotations

import importlib.resources
import ipaddress
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from trustgate.errors import ConfigError
from trustgate.policy.models import Policy, TrustRule

if TYPE_CHECKING:
    from trustgate.config import TrustGateConfig

logger = logging.getLogger(__name__)

_PRESET_PREFIX = "preset:"

ENV_POLICY = "TRUSTGATE_POLICY"
ENV_TRUSTED_NETWORKS = "TRUSTGATE_TRUSTED_NETWORKS"


def load_policy(
    entries: Iterable[tuple[str, str]],
    name: str = "inline",
    description: str = "",
) -> Policy:
    """Build a Policy from ordered ``(network, label)`` pairs."""
    rules = _parse_pairs(list(entries), source=name)
    return Policy(name=name, rules=tuple(rules), description=description)


def load_policy_file(path: str | Path, _resolved: frozenset[str] = frozenset()) -> Policy:
    """Load a policy from a YAML file path."""
    path = Path(path)
    key = str(path.resolve())
    if key in _resolved:
        raise ConfigError(f"Circular policy inheritance detected: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read policy file {path}: {exc}") from exc
    data = _parse_yaml(text, source=str(path))
    return _build_policy(data, _resolved | {key}, base_dir=path.parent)


def load_policy_from_string(text: str) -> Policy:
    """Parse a YAML string into a Policy, resolving inheritance."""
    data = _parse_yaml(text, source="<string>")
    return _build_policy(data, frozenset(), base_dir=Path.cwd())


def parse_network_list(text: str) -> list[tuple[str, str]]:
    """Parse ``"192.168.1.0/24=home-lan,10.8.0.0/24=vpn"`` into pairs.

    A missing ``=label`` uses the network text as the label.
    """
    pairs: list[tuple[str, str]] = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        network, sep, label = item.partition("=")
        network = network.strip()
        label = label.strip() if sep else network
        pairs.append((network, label))
    return pairs


def resolve_policy(
    config: TrustGateConfig,
    policy_path: str | Path | None = None,
) -> Policy:
    """Pick the active policy source and load it.

    Order: explicit path, ``TRUSTGATE_POLICY``, ``<config_dir>/policy.yaml``,
    ``TRUSTGATE_TRUSTED_NETWORKS``. With none of them, every connection
    requires the second factor.
    """
    if policy_path:
        return load_policy_file(policy_path)

    env_path = os.environ.get(ENV_POLICY)
    if env_path:
        return load_policy_file(env_path)

    default_path = config.config_dir / "policy.yaml"
    if default_path.is_file():
        return load_policy_file(default_path)

    env_networks = os.environ.get(ENV_TRUSTED_NETWORKS)
    if env_networks:
        return load_policy(
            parse_network_list(env_networks),
            name="environment",
            description=f"From {ENV_TRUSTED_NETWORKS}",
        )

    logger.warning(
        "No policy configured — every connection will require a second factor"
    )
    return Policy(name="empty", description="No trusted networks configured")


def _parse_yaml(text: str, source: str) -> dict:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Policy YAML must be a mapping ({source})")
    return data


def _build_policy(data: dict, _resolved: frozenset[str], base_dir: Path) -> Policy:
    name = str(data.get("name", "unnamed"))

    if data.get("default_requires_second_factor", True) is not True:
        raise ConfigError(
            f"Policy '{name}': default_requires_second_factor cannot be disabled"
        )

    own_rules = _parse_rules(data.get("trusted_networks") or [], source=name)

    inherited_rules: list[TrustRule] = []
    inherit_list = data.get("inherit") or []
    if isinstance(inherit_list, str):
        inherit_list = [inherit_list]
    if not isinstance(inherit_list, list):
        raise ConfigError(f"Policy '{name}': inherit must be a list")

    for ref in inherit_list:
        parent = _load_ref(str(ref), _resolved, base_dir)
        inherited_rules.extend(parent.rules)

    # Own rules first (higher priority in first-match-wins)
    return Policy(
        name=name,
        rules=tuple(own_rules) + tuple(inherited_rules),
        description=str(data.get("description", "")),
        inherit=tuple(str(ref) for ref in inherit_list),
    )


def _parse_rules(rules_data: object, source: str) -> list[TrustRule]:
    if not isinstance(rules_data, list):
        raise ConfigError(f"Policy '{source}': trusted_networks must be a list")

    pairs: list[tuple[object, object]] = []
    for index, r in enumerate(rules_data):
        if not isinstance(r, dict) or "network" not in r:
            raise ConfigError(
                f"Policy '{source}': entry #{index} must be a mapping "
                f"with a 'network' key, got {r!r}"
            )
        network = r["network"]
        pairs.append((network, r.get("label", network)))
    return _parse_pairs(pairs, source)


def _parse_pairs(pairs: list[tuple[object, object]], source: str) -> list[TrustRule]:
    rules: list[TrustRule] = []
    for index, pair in enumerate(pairs):
        try:
            network_text, label = pair
        except (TypeError, ValueError):
            raise ConfigError(
                f"Policy '{source}': entry #{index} is not a (network, label) pair: "
                f"{pair!r}"
            ) from None
        rules.append(_parse_rule(network_text, label, index, source))
    return rules


def _parse_rule(network_text: object, label: object, index: int, source: str) -> TrustRule:
    if not isinstance(network_text, str):
        raise ConfigError(
            f"Policy '{source}': entry #{index} network must be a string, "
            f"got {network_text!r}"
        )
    try:
        network = ipaddress.ip_network(network_text.strip(), strict=True)
    except ValueError as exc:
        raise ConfigError(
            f"Policy '{source}': entry #{index} has invalid network "
            f"{network_text!r}: {exc}"
        ) from exc

    if not isinstance(label, str) or not label.strip():
        raise ConfigError(
            f"Policy '{source}': entry #{index} ({network_text}) needs a non-empty label"
        )
    return TrustRule(network=network, label=label.strip())


def _load_ref(ref: str, _resolved: frozenset[str], base_dir: Path) -> Policy:
    if ref.startswith(_PRESET_PREFIX):
        preset_name = ref[len(_PRESET_PREFIX) :]
        return _load_preset(preset_name, _resolved)
    # Treat as file path, relative to the inheriting file
    path = Path(ref)
    if not path.is_absolute():
        path = base_dir / path
    return load_policy_file(path, _resolved=_resolved)


def _load_preset(name: str, _resolved: frozenset[str]) -> Policy:
    key = f"{_PRESET_PREFIX}{name}"
    if key in _resolved:
        raise ConfigError(f"Circular policy inheritance detected: {key}")
    filename = f"{name}.yaml"
    pkg = importlib.resources.files("trustgate.policy.presets")
    resource = pkg.joinpath(filename)
    if not resource.is_file():
        raise ConfigError(f"Unknown policy preset: {name}")
    text = resource.read_text(encoding="utf-8")
    data = _parse_yaml(text, source=f"preset:{name}")
    return _build_policy(data, _resolved | {key}, base_dir=Path.cwd())
