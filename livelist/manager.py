"""Directory of live list instances for one host.

Instances share nothing; the manager only maps ids to instances so the
host can route snapshots and enforce id uniqueness.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from livelist.errors import ConfigurationError

if TYPE_CHECKING:
    from livelist.live_list import LiveList


class LiveListManager:
    """Maps instance ids to :class:`~livelist.live_list.LiveList` objects.

    Parameters
    ----------
    min_poll_interval:
        Host floor for every registered list's poll interval, in seconds.
    """

    def __init__(self, min_poll_interval: int | None = None) -> None:
        from livelist.live_list import MIN_POLL_INTERVAL

        self._lists: dict[str, LiveList] = {}
        self._min_poll_interval = (
            MIN_POLL_INTERVAL if min_poll_interval is None else int(min_poll_interval)
        )

    def __len__(self) -> int:
        return len(self._lists)

    def __iter__(self) -> Iterator[LiveList]:
        return iter(list(self._lists.values()))

    def __contains__(self, list_id: object) -> bool:
        return list_id in self._lists

    def min_poll_interval(self) -> int:
        return self._min_poll_interval

    def register(self, list_id: str, live_list: LiveList) -> None:
        """Register *live_list* under *list_id*.

        Raises
        ------
        ConfigurationError
            If *list_id* is empty or already registered.
        """
        if not list_id:
            raise ConfigurationError("Live list must have an id.")
        if list_id in self._lists:
            raise ConfigurationError(f"Duplicate live list id '{list_id}'")
        self._lists[list_id] = live_list

    def unregister(self, list_id: str) -> None:
        self._lists.pop(list_id, None)

    def get(self, list_id: str) -> LiveList | None:
        return self._lists.get(list_id)

    def ids(self) -> list[str]:
        return list(self._lists)
