"""Exception hierarchy shared by the reconciliation core and its host."""

from __future__ import annotations


class LiveListError(Exception):
    """Base class for all livelist errors."""


class ConfigurationError(LiveListError):
    """Raised at construction when a live list cannot activate.

    Covers a missing items page, a missing or duplicate
    instance id, and a missing or non-positive ``max_items_per_page``.
    """


class ValidationError(LiveListError):
    """Raised when an item lacks an id or carries a non-positive time.

    Validation is atomic: when this is raised nothing has been cached
    and the triggering update cycle is abandoned.
    """

    def __init__(self, message: str, invalid_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.invalid_ids = invalid_ids or []


class RegistryError(LiveListError):
    """Raised on an attempt to revive a retired identity."""


class SnapshotError(LiveListError):
    """Raised when a snapshot source cannot be read or parsed."""
