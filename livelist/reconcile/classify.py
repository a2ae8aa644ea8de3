"""Diff a snapshot against the identity registry.

Items are walked strictly in snapshot order and the registry is mutated
as classification proceeds, so a later item in the same snapshot sees
the effect of an earlier one. When an id appears twice in one snapshot
the last occurrence's effect therefore wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from livelist.page import Item
from livelist.reconcile.registry import IdentityRegistry

log = logging.getLogger(__name__)


@dataclass
class Classification:
    """Insert/replace/tombstone sets produced from one snapshot."""

    insert: list[Item] = field(default_factory=list)
    replace: list[Item] = field(default_factory=list)
    tombstone: list[Item] = field(default_factory=list)
    max_update_time: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (self.insert or self.replace or self.tombstone)


def is_new(item: Item, registry: IdentityRegistry) -> bool:
    # A never-seen item that arrives already tombstoned is not new.
    return not item.tombstoned and item.id not in registry


def is_update(item: Item, registry: IdentityRegistry) -> bool:
    if not item.has_update_time or item.tombstoned:
        return False
    known = registry.get(item.id)
    if known is None or registry.is_tombstoned(item.id):
        return False
    return item.effective_update_time > known


def is_retirement(item: Item, registry: IdentityRegistry) -> bool:
    return item.tombstoned and not registry.is_tombstoned(item.id)


def classify(items: Iterable[Item], registry: IdentityRegistry) -> Classification:
    """Classify *items* against *registry*, updating it in place.

    Returns
    -------
    Classification
        The three sets plus the running maximum update time, which never
        decreases across calls.
    """
    result = Classification()

    for item in items:
        if is_retirement(item, registry):
            registry.retire(item.id)
            result.tombstone.append(item)
        elif is_new(item, registry):
            registry.set_update_time(item.id, item.effective_update_time)
            result.insert.append(item)
        elif is_update(item, registry):
            registry.set_update_time(item.id, item.effective_update_time)
            result.replace.append(item)
        else:
            log.debug("Ignoring unchanged or retired item %s", item.id)

    result.max_update_time = registry.max_update_time
    return result
