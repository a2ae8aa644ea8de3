"""Pending batch accumulation across reconciliation cycles."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from livelist.page import Item


class PendingBatch:
    """Insert, replace and tombstone queues not yet merged into the page.

    - insert: concatenation of per-cycle contributions, each stably sorted
      ascending by ``sort_time``. Not re-sorted across cycles.
    - replace: de-duplicated by id; last write wins, first position kept.
    - tombstone: append-only, duplicates tolerated.
    """

    def __init__(self) -> None:
        self.insert: list[Item] = []
        self.replace: list[Item] = []
        self.tombstone: list[Item] = []

    @property
    def is_empty(self) -> bool:
        return not (self.insert or self.replace or self.tombstone)

    @property
    def has_inserts(self) -> bool:
        return bool(self.insert)

    def counts(self) -> dict[str, int]:
        return {
            "insert": len(self.insert),
            "replace": len(self.replace),
            "tombstone": len(self.tombstone),
        }

    def stage_insert(self, items: Iterable[Item]) -> None:
        # sorted() is stable, so equal sort times keep snapshot order.
        staged = sorted(items, key=lambda item: item.sort_time)
        self.insert.extend(replace(item, is_new=True) for item in staged)

    def stage_replace(self, items: Iterable[Item]) -> None:
        for item in items:
            idx = _index_by_id(self.replace, item.id)
            if idx == -1:
                self.replace.append(item)
            else:
                self.replace[idx] = item

    def stage_tombstone(self, items: Iterable[Item]) -> None:
        self.tombstone.extend(items)

    def clear(self) -> None:
        """Empty every queue in place."""
        self.insert.clear()
        self.replace.clear()
        self.tombstone.clear()


def _index_by_id(queue: list[Item], item_id: str) -> int:
    for i, queued in enumerate(queue):
        if queued.id == item_id:
            return i
    return -1
