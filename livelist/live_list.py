"""A single live list instance: owns its registry, queues and live count.

:class:`LiveList` is the host binding around the reconciliation core.
Snapshots come in through :meth:`LiveList.update`; new items wait behind
the "updates available" indicator until :meth:`LiveList.apply` is called,
while replace/tombstone-only cycles are applied straight away.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from livelist.errors import ConfigurationError
from livelist.page import Item, LivePage
from livelist.reconcile import (
    FlushResult,
    IdentityRegistry,
    PendingBatch,
    classify,
    flush,
    validate_items,
)
from livelist.reconcile.evict import VisibilityPredicate
from livelist.render import IndexViewport, Renderer

log = logging.getLogger(__name__)

# Host floor for poll intervals, in seconds
MIN_POLL_INTERVAL = 15

DEFAULT_VISIBLE_ITEMS = 10


def get_number_max_or_default(value: Any, default: int) -> int:
    """Return *value* as an int if it exceeds *default*, else *default*.

    Unparseable values count as 0.
    """
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        number = 0
    return max(number, default)


def _parse_max_items(list_id: str, value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0
    if isinstance(value, bool) or number <= 0:
        raise ConfigurationError(
            f"Live list '{list_id}' must have a max_items_per_page with a "
            f"positive numeric value. Found {value!r}"
        )
    return get_number_max_or_default(value, 1)


class LiveList:
    """Keeps one live page in sync with incoming snapshots.

    Parameters
    ----------
    list_id:
        Instance identifier, unique among the host's lists.
    page:
        The live page. Its current content is validated and cached at
        construction; nothing already on it is truncated.
    max_items_per_page:
        Capacity bound, raised to the page's current live item count.
    poll_interval:
        Requested interval between snapshots, floored to
        *min_poll_interval* (or the manager's floor, when given).
    enabled:
        Disabled lists ignore incoming snapshots.
    is_below_viewing_region:
        Viewport predicate for eviction. Defaults to an
        :class:`IndexViewport` over *page*.
    renderer:
        Collaborator receiving render directives.
    known_items:
        Persisted registry entries to restore after the startup scan.
    restored_max_items:
        Effective bound saved by an earlier activation of this list. When
        given, the bound is not raised to the current live count again.
    manager:
        Optional :class:`~livelist.manager.LiveListManager` to register
        with.
    """

    def __init__(
        self,
        list_id: str,
        page: LivePage | None,
        *,
        max_items_per_page: Any,
        poll_interval: Any = None,
        min_poll_interval: int = MIN_POLL_INTERVAL,
        enabled: bool = True,
        is_below_viewing_region: VisibilityPredicate | None = None,
        renderer: Renderer | None = None,
        known_items: Mapping[str, float] | None = None,
        restored_max_items: int | None = None,
        manager: Any = None,
    ) -> None:
        if not isinstance(list_id, str) or not list_id.strip():
            raise ConfigurationError("Live list must have an id.")
        if page is None:
            raise ConfigurationError(f"Live list '{list_id}' must have an items page.")

        self.list_id = list_id
        self._page = page
        self._renderer = renderer if renderer is not None else Renderer()
        self._enabled = enabled
        if manager is not None:
            min_poll_interval = manager.min_poll_interval()
        self._poll_interval = get_number_max_or_default(poll_interval, min_poll_interval)

        requested_max = _parse_max_items(list_id, max_items_per_page)

        self._registry = IdentityRegistry()
        self._pending = PendingBatch()
        self.last_flush: FlushResult | None = None

        validate_items(page.items, list_id, registry=self._registry)
        if known_items:
            self._registry.restore(known_items)

        self._live_count = page.count_live()
        if restored_max_items is not None:
            # Bound was already raised when the list was first activated.
            self._max_items_per_page = max(requested_max, int(restored_max_items))
        else:
            self._max_items_per_page = max(requested_max, self._live_count)

        if is_below_viewing_region is None:
            is_below_viewing_region = IndexViewport(
                page, DEFAULT_VISIBLE_ITEMS,
            ).is_below_viewing_region
        self._is_below_viewing_region = is_below_viewing_region

        if manager is not None:
            manager.register(list_id, self)

        self._renderer.toggle_update_indicator(False)
        log.debug(
            "Live list %s ready (live=%d, max=%d, interval=%ds)",
            list_id, self._live_count, self._max_items_per_page, self._poll_interval,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def page(self) -> LivePage:
        return self._page

    @property
    def registry(self) -> IdentityRegistry:
        return self._registry

    @property
    def pending(self) -> PendingBatch:
        return self._pending

    @property
    def live_count(self) -> int:
        return self._live_count

    @property
    def max_items_per_page(self) -> int:
        return self._max_items_per_page

    @property
    def update_time(self) -> float:
        """Highest update time seen so far."""
        return self._registry.max_update_time

    @property
    def update_available(self) -> bool:
        """True exactly while new items are waiting to be inserted."""
        return self._pending.has_inserts

    def get_interval(self) -> int:
        return self._poll_interval

    def is_enabled(self) -> bool:
        return self._enabled

    def toggle(self, value: bool) -> None:
        self._enabled = bool(value)

    # ------------------------------------------------------------------
    # Reconciliation cycle
    # ------------------------------------------------------------------

    def update(self, snapshot: Sequence[Item]) -> float:
        """Fold one snapshot into the pending batch.

        Raises :class:`~livelist.errors.ValidationError` before touching
        any state when an item is invalid.

        Returns the highest update time seen, for scheduling the next
        fetch.
        """
        if not self._enabled:
            log.info("Live list %s is disabled, ignoring snapshot", self.list_id)
            return self.update_time

        validate_items(snapshot, self.list_id)
        changes = classify(snapshot, self._registry)

        self._pending.stage_insert(changes.insert)
        self._pending.stage_replace(changes.replace)
        self._pending.stage_tombstone(changes.tombstone)

        if not changes.is_empty:
            log.info(
                "Live list %s: %d new, %d updated, %d retired",
                self.list_id, len(changes.insert), len(changes.replace),
                len(changes.tombstone),
            )

        # New items wait for the viewer; in-place changes apply at once.
        if self._pending.has_inserts:
            self._renderer.toggle_update_indicator(True)
        elif not self._pending.is_empty:
            self.apply()

        return changes.max_update_time

    def apply(self) -> FlushResult:
        """Flush every pending change into the page ("apply now")."""
        result = flush(
            self._page,
            self._pending,
            self._live_count,
            self._max_items_per_page,
            self._is_below_viewing_region,
            self._renderer,
        )
        self._live_count = result.live_count
        self.last_flush = result
        self._renderer.toggle_update_indicator(False)
        if result.has_changes:
            log.info(
                "Live list %s flushed: +%d ~%d x%d -%d (live=%d)",
                self.list_id, result.inserted, result.replaced,
                result.tombstoned, result.evicted, result.live_count,
            )
        return result
