"""Capacity-bound eviction that never disturbs what the viewer can see.

Eviction is a two-step protocol. :func:`select_evictions` is a read pass
that measures every candidate before anything changes; :func:`apply_evictions`
is the write pass. The two never interleave, so visibility is never
measured against a partially mutated page.
"""

from __future__ import annotations

import logging
from typing import Callable

from livelist.page import Item, LivePage

log = logging.getLogger(__name__)

# Viewport collaborator: True when the item sits below the viewing region.
VisibilityPredicate = Callable[[Item], bool]


def collect_candidates(page: LivePage, overflow: int) -> list[Item]:
    """Up to *overflow* non-tombstoned items, walking tail to head."""
    candidates: list[Item] = []
    for item in page.iter_tail_to_head():
        if len(candidates) >= overflow:
            break
        if not item.tombstoned:
            candidates.append(item)
    return candidates


def select_evictions(
    page: LivePage,
    live_count: int,
    max_items_per_page: int,
    is_below_viewing_region: VisibilityPredicate,
) -> list[Item]:
    """Choose the items to remove, in tail-to-head order.

    Only an unbroken run of below-region candidates starting at the tail
    is accepted. The first candidate that is visible (or above the
    viewing region) stops the run, even if items nearer the head would
    themselves be off-region.
    """
    overflow = live_count - max_items_per_page
    if overflow < 1:
        return []

    candidates = collect_candidates(page, overflow)

    accepted: list[Item] = []
    for item in candidates:
        if not is_below_viewing_region(item):
            break
        accepted.append(item)

    if len(accepted) < overflow:
        log.debug(
            "Eviction capped at %d of %d overflow item(s) by viewport",
            len(accepted), overflow,
        )
    return accepted


def apply_evictions(page: LivePage, selection: list[Item]) -> int:
    """Remove exactly *selection* from *page*. Returns the number removed."""
    if not selection:
        return 0
    return page.remove_ids({item.id for item in selection})
