"""Load and validate .livelist/config.yaml."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from livelist.errors import ConfigurationError
from livelist.live_list import MIN_POLL_INTERVAL, get_number_max_or_default


# Default config values
DEFAULTS: dict[str, Any] = {
    "min_poll_interval": MIN_POLL_INTERVAL,
    "viewport": {
        "visible_items": 10,
        "scroll_offset": 0,
    },
    "lists": [],
}

REQUIRED_LIST_KEYS = {"id", "snapshot", "max_items_per_page"}


class ConfigError(ConfigurationError):
    """Raised when config is invalid or missing."""


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_list(entry: Any, index: int, seen: set[str]) -> None:
    if not isinstance(entry, dict):
        raise ConfigError(f"'lists[{index}]' must be a mapping")
    missing = REQUIRED_LIST_KEYS - set(entry.keys())
    if missing:
        raise ConfigError(f"'lists[{index}]' missing required keys: {sorted(missing)}")

    list_id = entry["id"]
    if not isinstance(list_id, str) or not list_id.strip():
        raise ConfigError(f"'lists[{index}].id' must be a non-empty string")
    if list_id in seen:
        raise ConfigError(f"Duplicate list id '{list_id}'")
    seen.add(list_id)

    max_items = entry["max_items_per_page"]
    if isinstance(max_items, bool) or not isinstance(max_items, int) or max_items <= 0:
        raise ConfigError(
            f"'{list_id}.max_items_per_page' must be a positive integer, got {max_items!r}"
        )

    interval = entry.get("poll_interval")
    if interval is not None and (isinstance(interval, bool) or not isinstance(interval, (int, float))):
        raise ConfigError(f"'{list_id}.poll_interval' must be a number, got {interval!r}")

    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"'{list_id}.enabled' must be true or false")


def _validate(config: dict) -> None:
    """Validate required fields in config."""
    min_interval = config.get("min_poll_interval")
    if isinstance(min_interval, bool) or not isinstance(min_interval, int) or min_interval < 1:
        raise ConfigError("'min_poll_interval' must be a positive integer")

    viewport = config.get("viewport")
    if not isinstance(viewport, dict):
        raise ConfigError("'viewport' must be a mapping")
    visible = viewport.get("visible_items")
    if isinstance(visible, bool) or not isinstance(visible, int) or visible < 0:
        raise ConfigError("'viewport.visible_items' must be a non-negative integer")

    lists = config.get("lists")
    if not isinstance(lists, list):
        raise ConfigError("'lists' must be a list")
    seen: set[str] = set()
    for i, entry in enumerate(lists):
        _validate_list(entry, i, seen)


def load_config(project_root: Path | None = None) -> dict:
    """Load config from .livelist/config.yaml under project_root.

    Falls back to cwd if project_root is None. Merges with DEFAULTS
    so callers always get a full config dict.
    """
    root = Path(project_root) if project_root else Path.cwd()
    config_path = root / ".livelist" / "config.yaml"

    if not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__}")

    config = _deep_merge(DEFAULTS, raw)
    _validate(config)
    return config


def get_list_config(config: dict, list_id: str) -> dict[str, Any]:
    """Return the ``lists`` entry for *list_id*.

    ``poll_interval`` is floored to ``min_poll_interval`` and ``enabled``
    defaults to true.
    """
    for entry in config["lists"]:
        if entry["id"] == list_id:
            resolved = dict(entry)
            resolved["poll_interval"] = get_number_max_or_default(
                entry.get("poll_interval"), config["min_poll_interval"],
            )
            resolved.setdefault("enabled", True)
            return resolved
    raise ConfigError(f"Unknown list id '{list_id}'")


def resolve_snapshot_paths(config: dict, project_root: Path) -> dict[str, Path]:
    """Resolve every list's snapshot path relative to project_root.

    Returns ``{list_id: Path}``.
    """
    return {
        entry["id"]: project_root / entry["snapshot"]
        for entry in config["lists"]
    }
