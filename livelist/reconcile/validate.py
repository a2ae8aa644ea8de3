"""Structural preconditions on candidate items.

Runs before anything else touches a batch of items: once over the
existing page at startup (with caching), then over every snapshot.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from livelist.errors import ValidationError
from livelist.page import Item
from livelist.reconcile.registry import IdentityRegistry

log = logging.getLogger(__name__)


def is_valid_item(item: Item) -> bool:
    """True if *item* has a non-empty id and positive, finite times."""
    if not item.id or not _is_positive_time(item.sort_time):
        return False
    if item.update_time is not None and not _is_positive_time(item.update_time):
        return False
    return True


def _is_positive_time(value: float) -> bool:
    return math.isfinite(value) and value > 0


def validate_items(
    items: Sequence[Item],
    list_id: str,
    registry: IdentityRegistry | None = None,
) -> int:
    """Validate every item, optionally caching identities into *registry*.

    The whole sequence is checked before anything is cached, so a single
    invalid item leaves the registry untouched.

    Parameters
    ----------
    items:
        Candidate items, in delivery order.
    list_id:
        Owning list instance, used in the error message.
    registry:
        When given (startup scan only), every item is cached after the
        sequence has passed validation.

    Returns
    -------
    int
        Number of valid items (all of them, when this returns).

    Raises
    ------
    ValidationError
        If any item lacks an id, has a non-finite or non-positive
        ``sort_time``, or carries a non-finite or non-positive
        ``update_time``.
    """
    invalid = [item for item in items if not is_valid_item(item)]
    if invalid:
        labels = [item.id or "<missing id>" for item in invalid]
        raise ValidationError(
            f"All items under live list '{list_id}' must have an id and a "
            f"sort_time greater than 0 (update_time, when present, must also "
            f"be greater than 0). Invalid: {labels}",
            invalid_ids=[item.id for item in invalid],
        )

    if registry is not None:
        for item in items:
            registry.cache(item)
        log.debug("Cached %d item(s) for %s", len(items), list_id)

    return len(items)
