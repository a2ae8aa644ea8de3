"""Tests for livelist.render."""

from __future__ import annotations

from livelist.page import Item, LivePage
from livelist.render import (
    ITEM_CLASS,
    NEW_ITEM_CLASS,
    IndexViewport,
    RecordingRenderer,
    Renderer,
    render_page_html,
)


class TestIndexViewport:
    def test_items_beyond_region_are_below(self) -> None:
        page = LivePage([Item(f"i{n}", n) for n in range(1, 6)])
        viewport = IndexViewport(page, visible_items=3)
        assert [viewport.is_below_viewing_region(i) for i in page] == [
            False, False, False, True, True,
        ]

    def test_scroll_offset_moves_region(self) -> None:
        page = LivePage([Item(f"i{n}", n) for n in range(1, 6)])
        viewport = IndexViewport(page, visible_items=2, scroll_offset=2)
        assert not viewport.is_below_viewing_region(page[3])
        assert viewport.is_below_viewing_region(page[4])

    def test_unknown_item_not_below(self) -> None:
        viewport = IndexViewport(LivePage([Item("a", 1)]), visible_items=0)
        assert not viewport.is_below_viewing_region(Item("zzz", 1))


class TestRenderers:
    def test_base_renderer_is_noop(self) -> None:
        renderer = Renderer()
        renderer.apply_insert([Item("a", 1)])
        renderer.scroll_to_new()
        renderer.toggle_update_indicator(True)

    def test_recording_renderer(self) -> None:
        renderer = RecordingRenderer()
        renderer.apply_insert([Item("a", 1)])
        renderer.apply_tombstone(Item("b", 1))
        renderer.toggle_update_indicator(True)
        assert renderer.directives == [
            ("insert", ["a"]),
            ("tombstone", "b"),
            ("indicator", True),
        ]
        assert renderer.indicator_visible


class TestRenderPageHtml:
    def test_renders_items_in_order(self) -> None:
        page = LivePage([
            Item("n1", 3, payload={"title": "Fresh"}, is_new=True),
            Item("o1", 1, payload={"title": "Old"}),
        ])
        html = render_page_html("feed", page)
        assert 'id="feed"' in html
        assert html.index('id="n1"') < html.index('id="o1"')
        assert NEW_ITEM_CLASS in html
        assert ITEM_CLASS in html
        assert "Fresh" in html

    def test_tombstone_hidden_and_empty(self) -> None:
        page = LivePage([Item("t1", 1, tombstoned=True)])
        html = render_page_html("feed", page)
        assert "data-tombstone hidden" in html

    def test_escapes_payload(self) -> None:
        page = LivePage([Item("x", 1, payload={"body": "<script>"})])
        html = render_page_html("feed", page)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_update_slot_hidden_by_default(self) -> None:
        html = render_page_html("feed", LivePage())
        assert "live-list-update hidden" in html
        shown = render_page_html("feed", LivePage(), update_available=True)
        assert "live-list-update hidden" not in shown
