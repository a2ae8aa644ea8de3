"""Read snapshot files into :class:`~livelist.page.Item` lists.

Accepted layouts:

- a JSON array of item objects
- a JSON object with an ``items`` array
- JSONL, one item object per line

Each item object carries ``id``, ``sort_time`` and optionally
``update_time`` and ``tombstone`` (``tombstoned`` is accepted as an
alias). Any other key becomes part of the item payload.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from livelist.errors import SnapshotError
from livelist.page import Item

log = logging.getLogger(__name__)


def parse_snapshot(text: str, source: str = "<snapshot>") -> list[Item]:
    """Parse snapshot *text*; *source* is only used in error messages."""
    stripped = text.strip()
    if not stripped:
        return []

    try:
        data: Any = json.loads(stripped)
    except json.JSONDecodeError:
        data = _parse_jsonl(stripped, source)

    if isinstance(data, dict):
        if "items" not in data:
            raise SnapshotError(f"{source}: JSON object must have an 'items' key")
        data = data["items"]

    if not isinstance(data, list):
        raise SnapshotError(f"{source}: expected a list of items, got {type(data).__name__}")

    items: list[Item] = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise SnapshotError(f"{source}: item {i} is not an object")
        items.append(Item.from_dict(raw))
    return items


def _parse_jsonl(text: str, source: str) -> list[Any]:
    rows: list[Any] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"{source}:{lineno}: invalid JSON ({exc.msg})") from exc
    return rows


def load_snapshot(path: Path) -> list[Item]:
    """Read and parse the snapshot file at *path*."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    items = parse_snapshot(text, str(path))
    log.debug("Loaded %d item(s) from %s", len(items), path)
    return items
