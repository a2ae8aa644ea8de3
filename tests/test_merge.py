"""Tests for livelist.reconcile.merge."""

from __future__ import annotations

from livelist.page import Item, LivePage
from livelist.reconcile.merge import flush
from livelist.reconcile.pending import PendingBatch
from livelist.render import RecordingRenderer


def _never_below(item: Item) -> bool:
    return False


def _always_below(item: Item) -> bool:
    return True


def _page() -> LivePage:
    return LivePage([Item("id1", 1, payload={"text": "one"}), Item("id2", 2)])


class TestInsertPhase:
    def test_prepends_contiguous_block(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_insert([Item("a", 5), Item("b", 2), Item("c", 8)])
        result = flush(page, batch, 2, 10, _never_below)
        assert page.ids() == ["b", "a", "c", "id1", "id2"]
        assert result.inserted == 3
        assert result.live_count == 5
        assert batch.insert == []

    def test_previous_new_marks_cleared(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_insert([Item("a", 5)])
        flush(page, batch, 2, 10, _never_below)
        batch.stage_insert([Item("b", 6)])
        flush(page, batch, 3, 10, _never_below)
        assert page.find("b").is_new
        assert not page.find("a").is_new

    def test_scroll_only_when_inserted(self) -> None:
        renderer = RecordingRenderer()
        batch = PendingBatch()
        flush(_page(), batch, 2, 10, _never_below, renderer)
        assert "scroll" not in renderer.names()

        batch.stage_insert([Item("a", 5)])
        flush(_page(), batch, 2, 10, _never_below, renderer)
        assert renderer.names().count("scroll") == 1


class TestReplacePhase:
    def test_replaces_in_place(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_replace([Item("id1", 1, update_time=4, payload={"text": "edited"})])
        result = flush(page, batch, 2, 10, _never_below)
        assert page.ids() == ["id1", "id2"]
        assert page.find("id1").payload == {"text": "edited"}
        assert result.replaced == 1
        assert result.live_count == 2

    def test_keeps_original_sort_time(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_replace([Item("id1", 99, update_time=4)])
        flush(page, batch, 2, 10, _never_below)
        assert page.find("id1").sort_time == 1

    def test_missing_target_skipped(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_replace([Item("gone", 1, update_time=4)])
        result = flush(page, batch, 2, 10, _never_below)
        assert result.replaced == 0
        assert batch.replace == []
        assert page.ids() == ["id1", "id2"]


class TestTombstonePhase:
    def test_marks_in_place_and_clears_content(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_tombstone([Item("id1", 1, tombstoned=True)])
        result = flush(page, batch, 2, 10, _never_below)
        retired = page.find("id1")
        assert retired.tombstoned
        assert retired.payload == {}
        assert page.ids() == ["id1", "id2"]
        assert result.tombstoned == 1
        assert result.live_count == 1

    def test_duplicate_and_missing_targets_are_noops(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_tombstone([
            Item("id1", 1, tombstoned=True),
            Item("id1", 1, tombstoned=True),
            Item("gone", 1, tombstoned=True),
        ])
        result = flush(page, batch, 2, 10, _never_below)
        assert result.tombstoned == 1
        assert result.live_count == 1
        assert result.live_count == page.count_live()


class TestPhaseOrder:
    def test_directive_order(self) -> None:
        renderer = RecordingRenderer()
        page = _page()
        batch = PendingBatch()
        batch.stage_insert([Item("new", 3)])
        batch.stage_replace([Item("id1", 1, update_time=4)])
        batch.stage_tombstone([Item("id2", 2, tombstoned=True)])
        flush(page, batch, 2, 10, _never_below, renderer)
        assert renderer.names() == ["insert", "replace", "tombstone", "scroll"]

    def test_insert_then_tombstone_same_flush(self) -> None:
        page = _page()
        batch = PendingBatch()
        batch.stage_insert([Item("x", 3)])
        batch.stage_tombstone([Item("x", 3, tombstoned=True)])
        result = flush(page, batch, 2, 10, _never_below)
        assert page.find("x").tombstoned
        assert result.live_count == 2 == page.count_live()


class TestEvictionPhase:
    def test_runs_with_empty_queues(self) -> None:
        page = LivePage([Item(f"i{n}", n) for n in range(1, 6)])
        result = flush(page, PendingBatch(), 5, 3, _always_below)
        assert result.evicted == 2
        assert page.ids() == ["i1", "i2", "i3"]
        assert result.live_count == 3

    def test_insert_overflow_evicts_from_tail(self) -> None:
        renderer = RecordingRenderer()
        page = _page()
        batch = PendingBatch()
        batch.stage_insert([Item("a", 3), Item("b", 4)])
        result = flush(page, batch, 2, 3, _always_below, renderer)
        assert page.ids() == ["a", "b", "id1"]
        assert result.evicted == 1
        assert ("remove", ["id2"]) in renderer.directives

    def test_live_count_matches_page(self) -> None:
        page = LivePage([Item(f"i{n}", n) for n in range(1, 5)])
        batch = PendingBatch()
        batch.stage_insert([Item("n1", 10), Item("n2", 11)])
        batch.stage_tombstone([Item("i2", 2, tombstoned=True)])
        result = flush(page, batch, 4, 3, _always_below)
        assert result.live_count == page.count_live() == 3
