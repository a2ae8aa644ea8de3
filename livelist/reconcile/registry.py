"""Per-instance identity registry: item id -> last known update time.

Retired ids map to the :data:`TOMBSTONE` sentinel forever, which is what
stops a later snapshot from resurrecting them. Entries are never deleted,
not even when the item itself is evicted from the page.
"""

from __future__ import annotations

from typing import Iterator, Mapping

from livelist.errors import RegistryError
from livelist.page import Item

# Reserved value meaning "permanently retired"
TOMBSTONE = -1.0


class IdentityRegistry:
    """Source of truth for classifying snapshot items.

    Also tracks the running maximum update time observed, which the host
    hands to the poller as a "since" hint. That maximum only moves forward.
    """

    def __init__(self) -> None:
        self._known: dict[str, float] = {}
        self._max_update_time: float = 0.0

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._known

    def __len__(self) -> int:
        return len(self._known)

    def __iter__(self) -> Iterator[str]:
        return iter(self._known)

    @property
    def max_update_time(self) -> float:
        return self._max_update_time

    def get(self, item_id: str) -> float | None:
        return self._known.get(item_id)

    def is_tombstoned(self, item_id: str) -> bool:
        return self._known.get(item_id) == TOMBSTONE

    def observe(self, update_time: float) -> None:
        """Advance the running maximum; lower values are ignored."""
        if update_time > self._max_update_time:
            self._max_update_time = update_time

    def cache(self, item: Item) -> None:
        """Record *item* as seen (startup scan).

        Items delivered already tombstoned are cached as retired.
        """
        if item.tombstoned:
            self.retire(item.id)
            return
        if self.is_tombstoned(item.id):
            return
        update_time = item.effective_update_time
        self._known[item.id] = update_time
        self.observe(update_time)

    def set_update_time(self, item_id: str, update_time: float) -> None:
        if self.is_tombstoned(item_id):
            raise RegistryError(f"Cannot update retired item '{item_id}'")
        self._known[item_id] = update_time
        self.observe(update_time)

    def retire(self, item_id: str) -> None:
        self._known[item_id] = TOMBSTONE

    def entries(self) -> dict[str, float]:
        """Copy of the full mapping, sentinels included."""
        return dict(self._known)

    def restore(self, entries: Mapping[str, float]) -> None:
        """Merge persisted entries back in.

        A sentinel on either side wins; otherwise the later update time
        is kept.
        """
        for item_id, value in entries.items():
            value = float(value)
            current = self._known.get(item_id)
            if value == TOMBSTONE or current == TOMBSTONE:
                self._known[item_id] = TOMBSTONE
                continue
            if current is None or value > current:
                self._known[item_id] = value
            self.observe(value)
