"""Rendering and viewport collaborators.

The reconciler emits directives to a :class:`Renderer`; it never touches
rendered output itself. :class:`IndexViewport` answers the one geometry
question eviction asks, using page positions in place of pixels.
"""

from __future__ import annotations

from abc import ABC
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from livelist.page import Item, LivePage

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# CSS classes applied to rendered items
ITEM_CLASS = "live-list-item"
NEW_ITEM_CLASS = "live-list-item-new"


class Renderer(ABC):
    """Base class for rendering collaborators. Every directive is a no-op."""

    def apply_insert(self, block: list[Item]) -> None:
        """New items were prepended to the page as one block."""

    def apply_replace(self, item: Item) -> None:
        """A live item's content was substituted in place."""

    def apply_tombstone(self, item: Item) -> None:
        """A live item was retired and its content cleared."""

    def apply_remove(self, items: list[Item]) -> None:
        """Items were evicted from the page."""

    def scroll_to_new(self) -> None:
        """Bring newly inserted content into view."""

    def toggle_update_indicator(self, visible: bool) -> None:
        """Show or hide the "updates available" affordance."""


class RecordingRenderer(Renderer):
    """Renderer that records every directive as ``(name, payload)``."""

    def __init__(self) -> None:
        self.directives: list[tuple[str, Any]] = []
        self.indicator_visible = False

    def apply_insert(self, block: list[Item]) -> None:
        self.directives.append(("insert", [item.id for item in block]))

    def apply_replace(self, item: Item) -> None:
        self.directives.append(("replace", item.id))

    def apply_tombstone(self, item: Item) -> None:
        self.directives.append(("tombstone", item.id))

    def apply_remove(self, items: list[Item]) -> None:
        self.directives.append(("remove", [item.id for item in items]))

    def scroll_to_new(self) -> None:
        self.directives.append(("scroll", None))

    def toggle_update_indicator(self, visible: bool) -> None:
        self.indicator_visible = visible
        self.directives.append(("indicator", visible))

    def names(self) -> list[str]:
        return [name for name, _ in self.directives]


class IndexViewport:
    """Viewport collaborator backed by page positions.

    An item is below the viewing region when its index is at or beyond
    ``scroll_offset + visible_items``. Items no longer on the page are
    treated as visible so they are never selected.

    Parameters
    ----------
    page:
        The live page being measured.
    visible_items:
        How many items fit in the viewing region.
    scroll_offset:
        Index of the first item in view.
    """

    def __init__(self, page: LivePage, visible_items: int, scroll_offset: int = 0) -> None:
        self._page = page
        self.visible_items = max(0, int(visible_items))
        self.scroll_offset = max(0, int(scroll_offset))

    def is_below_viewing_region(self, item: Item) -> bool:
        idx = self._page.index_of(item.id)
        if idx < 0:
            return False
        return idx >= self.scroll_offset + self.visible_items


def _get_env() -> Environment:
    """Create a Jinja2 environment loading from livelist/templates/."""
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_page_html(
    list_id: str,
    page: LivePage,
    *,
    update_available: bool = False,
) -> str:
    """Render *page* as a standalone HTML fragment.

    Tombstoned items render as empty hidden placeholders; items from the
    most recent insert carry the "new" class.
    """
    env = _get_env()
    template = env.get_template("page.html")
    return template.render(
        list_id=list_id,
        items=page.items,
        update_available=update_available,
        item_class=ITEM_CLASS,
        new_item_class=NEW_ITEM_CLASS,
    )
