"""Reconciliation core: validate, classify, accumulate, merge, evict.

Snapshot items flow through :func:`validate_items`, then :func:`classify`
against the :class:`IdentityRegistry`; the classified sets are staged on a
:class:`PendingBatch` and merged into the live page by :func:`flush`,
which finishes with eviction.
"""

from livelist.reconcile.classify import Classification, classify
from livelist.reconcile.evict import apply_evictions, select_evictions
from livelist.reconcile.merge import FlushResult, flush
from livelist.reconcile.pending import PendingBatch
from livelist.reconcile.registry import TOMBSTONE, IdentityRegistry
from livelist.reconcile.validate import is_valid_item, validate_items

__all__ = [
    "Classification",
    "FlushResult",
    "IdentityRegistry",
    "PendingBatch",
    "TOMBSTONE",
    "apply_evictions",
    "classify",
    "flush",
    "is_valid_item",
    "select_evictions",
    "validate_items",
]
