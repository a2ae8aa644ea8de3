"""Item records and the live ordered page they are materialized into.

The page is a plain ordered sequence of :class:`Item` values, head first.
Reconciliation never holds on to rendered nodes; a renderer observes the
page through directives (see :mod:`livelist.render`).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator

# Keys with meaning to the reconciler; everything else is payload.
ITEM_KEYS = ("id", "sort_time", "update_time", "tombstone", "tombstoned", "payload")


def _to_time(value: Any) -> float:
    """Coerce a raw time value to float; unparseable values become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class Item:
    """A single list entry as delivered by a snapshot or held on the page."""

    id: str
    sort_time: float
    update_time: float | None = None
    tombstoned: bool = False
    payload: dict[str, Any] = field(default_factory=dict)
    is_new: bool = False

    @property
    def effective_update_time(self) -> float:
        """``update_time`` when present, else ``sort_time``."""
        if self.update_time is None:
            return self.sort_time
        return self.update_time

    @property
    def has_update_time(self) -> bool:
        return self.update_time is not None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Item:
        """Build an item from a raw snapshot mapping.

        Missing ``id`` parses as ``""`` and missing ``sort_time`` as ``0``
        so that validation, not parsing, reports the problem.
        """
        payload = dict(raw.get("payload") or {})
        for key, val in raw.items():
            if key not in ITEM_KEYS:
                payload[key] = val

        raw_update = raw.get("update_time")
        return cls(
            id=str(raw.get("id") or ""),
            sort_time=_to_time(raw.get("sort_time")),
            update_time=None if raw_update is None else _to_time(raw_update),
            tombstoned=bool(raw.get("tombstone", raw.get("tombstoned", False))),
            payload=payload,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "sort_time": self.sort_time}
        if self.update_time is not None:
            data["update_time"] = self.update_time
        if self.tombstoned:
            data["tombstone"] = True
        if self.payload:
            data["payload"] = dict(self.payload)
        return data

    def as_tombstone(self) -> Item:
        """Return a retired copy with its content cleared."""
        return replace(self, tombstoned=True, payload={}, is_new=False)


class LivePage:
    """Ordered live structure, head (index 0) to tail.

    Parameters
    ----------
    items:
        Initial content, head first.
    """

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._items: list[Item] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Item:
        return self._items[index]

    @property
    def items(self) -> list[Item]:
        """Snapshot copy of the current content."""
        return list(self._items)

    def ids(self) -> list[str]:
        return [item.id for item in self._items]

    def index_of(self, item_id: str) -> int:
        """Return the position of *item_id*, or -1 when it is not on the page."""
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        return -1

    def find(self, item_id: str) -> Item | None:
        idx = self.index_of(item_id)
        return self._items[idx] if idx >= 0 else None

    def count_live(self) -> int:
        """Number of materialized items that are not tombstoned."""
        return sum(1 for item in self._items if not item.tombstoned)

    def iter_tail_to_head(self) -> Iterator[Item]:
        return reversed(self._items)

    # ------------------------------------------------------------------
    # Mutation (used by the merge engine and eviction only)
    # ------------------------------------------------------------------

    def prepend(self, block: list[Item]) -> None:
        """Insert *block* as one contiguous run at the head, order kept."""
        self._items[0:0] = block

    def set_at(self, index: int, item: Item) -> None:
        self._items[index] = item

    def clear_new_marks(self) -> None:
        for i, item in enumerate(self._items):
            if item.is_new:
                self._items[i] = replace(item, is_new=False)

    def remove_ids(self, ids: set[str]) -> int:
        """Physically remove every item whose id is in *ids*."""
        before = len(self._items)
        self._items = [item for item in self._items if item.id not in ids]
        return before - len(self._items)
