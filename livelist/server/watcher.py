"""Snapshot change detection for the livelist server.

Two event sources:

1. **Snapshot poller** -- mtime bookmark per snapshot file, checked on
   each list's own poll interval.
2. **Snapshot watcher** -- ``watchdog`` observer on the snapshot
   directories that marks a list dirty as soon as its file changes, so
   the next due poll does not have to wait for an mtime tick.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

log = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Snapshot poller
# ------------------------------------------------------------------


class SnapshotPoller:
    """Tracks whether a list's snapshot file changed since the last poll.

    Parameters
    ----------
    list_id:
        Owning list instance.
    path:
        Snapshot file to watch.
    interval:
        Seconds between polls (already floored by the caller).
    """

    def __init__(self, list_id: str, path: Path, interval: int) -> None:
        self.list_id = list_id
        self.path = Path(path)
        self.interval = interval
        self._last_mtime: float | None = None
        self._next_due: float = 0.0

    def set_last_mtime(self, mtime: float | None) -> None:
        """Set the bookmark for last known mtime."""
        self._last_mtime = mtime

    def get_last_mtime(self) -> float | None:
        return self._last_mtime

    def is_due(self, now: float) -> bool:
        return now >= self._next_due

    def schedule_next(self, now: float) -> None:
        self._next_due = now + self.interval

    def poll(self, force: bool = False) -> bool:
        """Return True if the snapshot changed since the last bookmark.

        The bookmark itself is only advanced by :meth:`set_last_mtime`,
        once the host has processed the snapshot.
        """
        if not self.path.exists():
            return False
        try:
            current_mtime = self.path.stat().st_mtime
        except OSError:
            return False
        if force:
            return True
        return self._last_mtime is None or current_mtime > self._last_mtime

    def current_mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None


# ------------------------------------------------------------------
# Filesystem watcher (watchdog)
# ------------------------------------------------------------------


class _SnapshotEventHandler(FileSystemEventHandler):
    """Watchdog handler that marks lists dirty on snapshot writes."""

    def __init__(self, watcher: SnapshotWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.mark_path(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.mark_path(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic writers rename a temp file over the snapshot.
        if not event.is_directory:
            self._watcher.mark_path(event.dest_path)


class SnapshotWatcher:
    """Watchdog-based watcher over the configured snapshot files.

    Parameters
    ----------
    snapshot_paths:
        ``{list_id: Path}`` as returned by
        :func:`livelist.config.resolve_snapshot_paths`.
    """

    def __init__(self, snapshot_paths: dict[str, Path]) -> None:
        self._by_path = {
            str(Path(p).resolve()): list_id for list_id, p in snapshot_paths.items()
        }
        self._dirty: set[str] = set()
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    def mark_path(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = path.decode()
        list_id = self._by_path.get(str(Path(path).resolve()))
        if list_id is None:
            return
        with self._lock:
            self._dirty.add(list_id)
        log.debug("Snapshot changed: %s", list_id)

    def drain(self) -> set[str]:
        """Return and reset the set of list ids marked dirty."""
        with self._lock:
            dirty = self._dirty
            self._dirty = set()
        return dirty

    def start(self) -> None:
        """Start the filesystem observer on every existing snapshot dir."""
        watch_dirs = sorted({str(Path(p).parent) for p in self._by_path if Path(p).parent.exists()})
        if not watch_dirs:
            log.warning("No snapshot directories found to watch")
            return

        handler = _SnapshotEventHandler(self)
        self._observer = Observer()
        for d in watch_dirs:
            self._observer.schedule(handler, d, recursive=False)
            log.info("Watching: %s", d)

        self._observer.daemon = True
        self._observer.start()

    def stop(self) -> None:
        """Stop the filesystem observer."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
