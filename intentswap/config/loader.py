"""YAML config loading and persistence, with dotted-key access for the CLI."""

import hashlib
import logging
from pathlib import Path
from typing import Any

import yaml

from intentswap.config.defaults import DEFAULT_TOKENS
from intentswap.config.schema import EngineConfig

logger = logging.getLogger(__name__)


def load_config(path: str | Path) -> EngineConfig:
    """Load and validate config from a YAML file.

    A missing or empty file yields the defaults. The default token list is
    injected when the file lists no tokens.
    """
    path = Path(path)
    raw: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("Config %s not found, using defaults", path)

    if not raw.get("tokens"):
        raw["tokens"] = [t.model_dump() for t in DEFAULT_TOKENS]

    return EngineConfig(**raw)


def save_config(config: EngineConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False)


def config_hash(config: EngineConfig) -> str:
    """Short SHA-256 fingerprint of the effective config."""
    return hashlib.sha256(config.model_dump_json().encode()).hexdigest()[:16]


def _walk(node: Any, part: str) -> Any:
    if isinstance(node, list):
        return node[int(part)]
    if isinstance(node, dict):
        return node[part]
    if part in getattr(type(node), "model_fields", {}):
        return getattr(node, part)
    raise KeyError(part)


def get_config_value(config: EngineConfig, dotted_key: str) -> Any:
    """Value at a dotted key such as ``tracking.timeout_seconds``."""
    node: Any = config
    try:
        for part in dotted_key.split("."):
            node = _walk(node, part)
    except (KeyError, IndexError, ValueError) as e:
        raise KeyError(f"Config key not found: {dotted_key}") from e
    return node


def _coerce(value: Any, current: Any) -> Any:
    if not isinstance(value, str):
        return value
    if isinstance(current, bool):
        return value.lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


def set_config_value(config: EngineConfig, dotted_key: str, value: Any) -> EngineConfig:
    """Copy of ``config`` with one value replaced and re-validated.

    String values are coerced to the type of the current value, so CLI input
    like ``swap.auto_deposit=false`` works.
    """
    data = config.model_dump(mode="json")
    *parents, leaf = dotted_key.split(".")
    target: Any = data
    try:
        for part in parents:
            target = target[int(part)] if isinstance(target, list) else target[part]
    except (KeyError, IndexError, ValueError) as e:
        raise KeyError(f"Config key not found: {dotted_key}") from e
    if not isinstance(target, dict) or leaf not in target:
        raise KeyError(f"Config key not found: {dotted_key}")

    target[leaf] = _coerce(value, target[leaf])
    return EngineConfig(**data)
