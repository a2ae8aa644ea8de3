"""Tests for livelist.reconcile.validate."""

from __future__ import annotations

import pytest

from livelist.errors import ValidationError
from livelist.page import Item
from livelist.reconcile.registry import TOMBSTONE, IdentityRegistry
from livelist.reconcile.validate import is_valid_item, validate_items
from livelist.snapshot import parse_snapshot


class TestIsValidItem:
    def test_valid(self) -> None:
        assert is_valid_item(Item("a", 1))

    def test_empty_id(self) -> None:
        assert not is_valid_item(Item("", 1))

    def test_zero_sort_time(self) -> None:
        assert not is_valid_item(Item("a", 0))

    def test_negative_sort_time(self) -> None:
        assert not is_valid_item(Item("a", -3))

    def test_non_positive_update_time(self) -> None:
        assert not is_valid_item(Item("a", 1, update_time=0))

    def test_nan_sort_time(self) -> None:
        assert not is_valid_item(Item("a", float("nan")))

    def test_infinite_sort_time(self) -> None:
        assert not is_valid_item(Item("a", float("inf")))

    def test_nan_update_time(self) -> None:
        assert not is_valid_item(Item("a", 1, update_time=float("nan")))


class TestValidateItems:
    def test_returns_count(self) -> None:
        assert validate_items([Item("a", 1), Item("b", 2)], "feed") == 2

    def test_empty_sequence(self) -> None:
        assert validate_items([], "feed") == 0

    def test_raises_on_missing_id(self) -> None:
        with pytest.raises(ValidationError, match="feed"):
            validate_items([Item("a", 1), Item("", 2)], "feed")

    def test_error_lists_invalid_ids(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            validate_items([Item("a", 1), Item("b", 0)], "feed")
        assert excinfo.value.invalid_ids == ["b"]

    def test_caches_when_registry_given(self) -> None:
        registry = IdentityRegistry()
        validate_items([Item("a", 1), Item("b", 2, update_time=5)], "feed", registry)
        assert registry.get("a") == 1
        assert registry.get("b") == 5
        assert registry.max_update_time == 5

    def test_no_caching_without_registry(self) -> None:
        registry = IdentityRegistry()
        validate_items([Item("a", 1)], "feed")
        assert len(registry) == 0

    def test_atomic_no_partial_caching(self) -> None:
        """Valid items before an invalid one are not cached."""
        registry = IdentityRegistry()
        with pytest.raises(ValidationError):
            validate_items([Item("a", 1), Item("b", 2), Item("", 3)], "feed", registry)
        assert len(registry) == 0
        assert registry.max_update_time == 0

    def test_tombstoned_items_cached_as_retired(self) -> None:
        registry = IdentityRegistry()
        validate_items([Item("a", 1, tombstoned=True)], "feed", registry)
        assert registry.get("a") == TOMBSTONE


class TestNonFiniteSnapshotTimes:
    def test_json_nan_rejected(self) -> None:
        items = parse_snapshot('[{"id": "x", "sort_time": NaN}]')
        with pytest.raises(ValidationError) as exc_info:
            validate_items(items, "feed")
        assert exc_info.value.invalid_ids == ["x"]

    def test_string_nan_rejected(self) -> None:
        items = parse_snapshot('[{"id": "x", "sort_time": 2, "update_time": "nan"}]')
        with pytest.raises(ValidationError):
            validate_items(items, "feed")
