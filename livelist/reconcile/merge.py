"""Apply an accumulated batch to the live page.

Phases run strictly in this order, each skipped when its queue is empty:

1. insert    -- prepend the insert queue as one contiguous block
2. replace   -- substitute live items in place, keeping their position
3. tombstone -- retire live items in place (never removed here)
4. eviction  -- always, even when nothing else happened

Replace and tombstone targets that are no longer live are skipped
silently. Every queue is cleared after its phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from livelist.page import LivePage
from livelist.reconcile.evict import VisibilityPredicate, apply_evictions, select_evictions
from livelist.reconcile.pending import PendingBatch
from livelist.render import Renderer

log = logging.getLogger(__name__)


@dataclass
class FlushResult:
    """Counts performed by one flush, plus the resulting live count."""

    inserted: int = 0
    replaced: int = 0
    tombstoned: int = 0
    evicted: int = 0
    live_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.inserted or self.replaced or self.tombstoned or self.evicted)

    def as_dict(self) -> dict[str, int]:
        return {
            "inserted": self.inserted,
            "replaced": self.replaced,
            "tombstoned": self.tombstoned,
            "evicted": self.evicted,
            "live_count": self.live_count,
        }


def _insert_phase(page: LivePage, batch: PendingBatch, renderer: Renderer | None) -> int:
    # Previously inserted items stop being "new" once fresh ones arrive.
    page.clear_new_marks()
    block = list(batch.insert)
    page.prepend(block)
    batch.insert.clear()
    if renderer is not None:
        renderer.apply_insert(block)
    return len(block)


def _replace_phase(page: LivePage, batch: PendingBatch, renderer: Renderer | None) -> int:
    count = 0
    for target in batch.replace:
        idx = page.index_of(target.id)
        if idx < 0 or page[idx].tombstoned:
            log.debug("Replace target %s not live, skipping", target.id)
            continue
        # sort_time is immutable once assigned
        updated = replace(target, sort_time=page[idx].sort_time, is_new=False)
        page.set_at(idx, updated)
        if renderer is not None:
            renderer.apply_replace(updated)
        count += 1
    batch.replace.clear()
    return count


def _tombstone_phase(page: LivePage, batch: PendingBatch, renderer: Renderer | None) -> int:
    count = 0
    for target in batch.tombstone:
        idx = page.index_of(target.id)
        if idx < 0 or page[idx].tombstoned:
            log.debug("Tombstone target %s not live, skipping", target.id)
            continue
        retired = page[idx].as_tombstone()
        page.set_at(idx, retired)
        if renderer is not None:
            renderer.apply_tombstone(retired)
        count += 1
    batch.tombstone.clear()
    return count


def flush(
    page: LivePage,
    batch: PendingBatch,
    live_count: int,
    max_items_per_page: int,
    is_below_viewing_region: VisibilityPredicate,
    renderer: Renderer | None = None,
) -> FlushResult:
    """Run every phase against *page* and return what was done.

    Parameters
    ----------
    page:
        The live page, mutated in place.
    batch:
        Pending queues; emptied by this call.
    live_count:
        Non-tombstoned item count before the flush.
    max_items_per_page:
        Capacity bound for eviction.
    is_below_viewing_region:
        Viewport predicate consulted by eviction.
    renderer:
        Optional collaborator receiving render directives.
    """
    result = FlushResult()

    if batch.insert:
        result.inserted = _insert_phase(page, batch, renderer)
        live_count += result.inserted

    if batch.replace:
        result.replaced = _replace_phase(page, batch, renderer)

    if batch.tombstone:
        result.tombstoned = _tombstone_phase(page, batch, renderer)
        live_count -= result.tombstoned

    selection = select_evictions(
        page, live_count, max_items_per_page, is_below_viewing_region,
    )
    result.evicted = apply_evictions(page, selection)
    live_count -= result.evicted
    if result.evicted and renderer is not None:
        renderer.apply_remove(selection)

    result.live_count = live_count

    if result.inserted and renderer is not None:
        renderer.scroll_to_new()

    log.debug(
        "Flush: +%d ~%d x%d -%d (live=%d)",
        result.inserted, result.replaced, result.tombstoned, result.evicted, live_count,
    )
    return result
