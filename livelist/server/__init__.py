"""Livelist server: poll snapshots → reconcile → persist.

Entry point: :func:`run_server` starts the foreground server loop.
:func:`sync_list` runs a single reconciliation cycle for one list and
:func:`get_status` returns persisted state for CLI display.
"""

from __future__ import annotations

import logging
import signal
import time
from pathlib import Path
from typing import Any

from livelist.config import get_list_config, resolve_snapshot_paths
from livelist.errors import SnapshotError, ValidationError
from livelist.live_list import LiveList
from livelist.page import LivePage
from livelist.render import IndexViewport, RecordingRenderer, Renderer
from livelist.server.db import PageDB
from livelist.server.watcher import SnapshotPoller, SnapshotWatcher
from livelist.snapshot import load_snapshot

log = logging.getLogger(__name__)


def db_path_for(project_root: Path) -> Path:
    return project_root / ".livelist" / "livelist.db"


def load_live_list(
    config: dict[str, Any],
    list_id: str,
    db: PageDB,
    renderer: Renderer | None = None,
) -> LiveList:
    """Rebuild a :class:`LiveList` from its persisted page and registry.

    The capacity bound saved by the first activation is reused while the
    configured ``max_items_per_page`` is unchanged, so reloading a page
    the viewport kept from trimming does not raise the bound again.
    """
    list_cfg = get_list_config(config, list_id)
    state = db.get_list_state(list_id)
    restored_max_items = None
    if state.get("configured_max_items") == list_cfg["max_items_per_page"]:
        restored_max_items = state.get("max_items_per_page")
    page = LivePage(db.load_page(list_id))
    viewport_cfg = config.get("viewport", {})
    viewport = IndexViewport(
        page,
        viewport_cfg.get("visible_items", 10),
        viewport_cfg.get("scroll_offset", 0),
    )
    return LiveList(
        list_id,
        page,
        max_items_per_page=list_cfg["max_items_per_page"],
        poll_interval=list_cfg["poll_interval"],
        min_poll_interval=config["min_poll_interval"],
        enabled=list_cfg["enabled"],
        is_below_viewing_region=viewport.is_below_viewing_region,
        renderer=renderer,
        known_items=db.load_known_items(list_id),
        restored_max_items=restored_max_items,
    )


def sync_list(
    config: dict[str, Any],
    project_root: Path,
    list_id: str,
    db: PageDB,
    snapshot_path: Path | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Run one full reconciliation cycle for *list_id*.

    Loads the persisted page, folds in the snapshot, applies every
    pending change and saves the result. With *dry_run* nothing is
    saved.

    Raises
    ------
    ValidationError
        If the snapshot holds an invalid item. Nothing is saved.
    SnapshotError
        If the snapshot cannot be read.
    """
    list_cfg = get_list_config(config, list_id)
    if not list_cfg["enabled"]:
        log.info("List %s is disabled, skipping", list_id)
        return {"list_id": list_id, "skipped": "disabled"}

    if snapshot_path is None:
        snapshot_path = resolve_snapshot_paths(config, project_root)[list_id]
    items = load_snapshot(snapshot_path)

    renderer = RecordingRenderer()
    live = load_live_list(config, list_id, db, renderer)
    max_update_time = live.update(items)

    # The host applies once per cycle; in-place-only cycles already did.
    if live.update_available or live.last_flush is None:
        result = live.apply()
    else:
        result = live.last_flush

    summary: dict[str, Any] = {
        "list_id": list_id,
        **result.as_dict(),
        "max_items_per_page": live.max_items_per_page,
        "max_update_time": max_update_time,
        "known_items": len(live.registry),
        "directives": list(renderer.directives),
        "dry_run": dry_run,
    }

    if dry_run:
        return summary

    db.save_page(list_id, live.page.items)
    db.save_known_items(list_id, live.registry.entries())
    if result.has_changes:
        db.record_flush(list_id, result.as_dict())
    db.update_list_state(
        list_id,
        max_update_time=max_update_time,
        max_items_per_page=live.max_items_per_page,
        configured_max_items=list_cfg["max_items_per_page"],
        last_poll_time=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    )
    return summary


def run_server(config: dict[str, Any], project_root: Path) -> None:
    """Run the livelist server in the foreground.

    The server loop:
    1. Restores polling bookmarks for every configured list
    2. Starts a watchdog observer on the snapshot directories
    3. Runs a reconciliation cycle for each list whose interval elapsed
       and whose snapshot changed
    4. Logs and skips failed cycles without stopping the loop

    Parameters
    ----------
    config:
        Livelist config dict.
    project_root:
        Project root directory.
    """
    db = PageDB(db_path_for(project_root))
    snapshot_paths = resolve_snapshot_paths(config, project_root)

    pollers: list[SnapshotPoller] = []
    for entry in config["lists"]:
        list_cfg = get_list_config(config, entry["id"])
        if not list_cfg["enabled"]:
            log.info("List %s disabled, not polling", entry["id"])
            continue
        poller = SnapshotPoller(entry["id"], snapshot_paths[entry["id"]], list_cfg["poll_interval"])
        poller.set_last_mtime(db.get_list_state(entry["id"]).get("last_snapshot_mtime"))
        pollers.append(poller)

    watcher = SnapshotWatcher(snapshot_paths)
    watcher.start()

    # --- Signal handling ---
    running = True

    def _shutdown(signum: int, frame: object) -> None:
        nonlocal running
        log.info("Received signal %d, shutting down...", signum)
        running = False

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    log.info(
        "Livelist server started (%d list(s), project=%s)",
        len(pollers), project_root,
    )

    # --- Main loop ---
    while running:
        now = time.monotonic()
        dirty = watcher.drain()
        for poller in pollers:
            if not poller.is_due(now):
                continue
            poller.schedule_next(now)
            if not poller.poll(force=poller.list_id in dirty):
                continue
            _poll_once(config, project_root, poller, db)

        # Sleep in small increments to allow clean shutdown
        if running:
            time.sleep(1)

    # --- Cleanup ---
    watcher.stop()
    log.info("Livelist server stopped")


def _poll_once(
    config: dict[str, Any],
    project_root: Path,
    poller: SnapshotPoller,
    db: PageDB,
) -> None:
    """Run one cycle for *poller*'s list; failures are logged, not raised."""
    mtime = poller.current_mtime()
    try:
        summary = sync_list(config, project_root, poller.list_id, db, poller.path)
        log.info(
            "%s: +%d ~%d x%d -%d (live=%d)",
            poller.list_id, summary.get("inserted", 0), summary.get("replaced", 0),
            summary.get("tombstoned", 0), summary.get("evicted", 0),
            summary.get("live_count", 0),
        )
    except (ValidationError, SnapshotError) as exc:
        log.warning("%s: update cycle abandoned: %s", poller.list_id, exc)
    except Exception:
        log.exception("Error syncing %s", poller.list_id)
        return

    # Bookmark even abandoned snapshots so a bad file is not retried forever.
    poller.set_last_mtime(mtime)
    db.update_list_state(poller.list_id, last_snapshot_mtime=mtime)


def get_status(config: dict[str, Any], project_root: Path) -> dict[str, Any]:
    """Get current per-list state for CLI display."""
    db_path = db_path_for(project_root)

    if not db_path.exists():
        return {
            "error": "No database found. Run 'livelist sync' first.",
        }

    db = PageDB(db_path)
    lists: list[dict[str, Any]] = []
    for entry in config["lists"]:
        list_id = entry["id"]
        list_cfg = get_list_config(config, list_id)
        page = LivePage(db.load_page(list_id))
        lists.append({
            "list_id": list_id,
            "enabled": list_cfg["enabled"],
            "poll_interval": list_cfg["poll_interval"],
            "max_items_per_page": list_cfg["max_items_per_page"],
            "page_items": len(page),
            "live_count": page.count_live(),
            "known_items": len(db.load_known_items(list_id)),
            "state": db.get_list_state(list_id),
            "recent_flushes": db.get_recent_flushes(list_id, limit=5),
        })
    return {"lists": lists}
