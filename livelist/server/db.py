"""SQLite state management for the livelist host.

Manages four tables in ``.livelist/livelist.db``, all keyed by list id:

- ``page_items``: the materialized page, one row per item, by position
- ``known_items``: identity registry entries (tombstone sentinel included)
- ``flushes``: history of applied flushes with their counts
- ``list_state``: polling bookmarks and the running max update time
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from livelist.page import Item


class PageDB:
    """SQLite state manager for persisted live lists.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_tables()

    # ------------------------------------------------------------------
    # Connection helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.row_factory = sqlite3.Row
        return conn

    def _init_tables(self) -> None:
        conn = self._connect()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS page_items (
                    list_id     TEXT NOT NULL,
                    position    INTEGER NOT NULL,
                    item_id     TEXT NOT NULL,
                    sort_time   REAL NOT NULL,
                    update_time REAL,
                    tombstoned  INTEGER NOT NULL DEFAULT 0,
                    is_new      INTEGER NOT NULL DEFAULT 0,
                    payload     TEXT,
                    PRIMARY KEY (list_id, position)
                );

                CREATE TABLE IF NOT EXISTS known_items (
                    list_id     TEXT NOT NULL,
                    item_id     TEXT NOT NULL,
                    update_time REAL NOT NULL,
                    PRIMARY KEY (list_id, item_id)
                );

                CREATE TABLE IF NOT EXISTS flushes (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    list_id     TEXT NOT NULL,
                    inserted    INTEGER NOT NULL DEFAULT 0,
                    replaced    INTEGER NOT NULL DEFAULT 0,
                    tombstoned  INTEGER NOT NULL DEFAULT 0,
                    evicted     INTEGER NOT NULL DEFAULT 0,
                    live_count  INTEGER NOT NULL DEFAULT 0,
                    created_at  TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS list_state (
                    list_id             TEXT PRIMARY KEY,
                    max_update_time     REAL NOT NULL DEFAULT 0,
                    last_poll_time      TEXT,
                    last_snapshot_mtime REAL,
                    last_flush_time     TEXT,
                    max_items_per_page  INTEGER,
                    configured_max_items INTEGER
                );
            """)

            # Add capacity bound columns (idempotent)
            for column in ("max_items_per_page", "configured_max_items"):
                try:
                    conn.execute(f"ALTER TABLE list_state ADD COLUMN {column} INTEGER")
                except sqlite3.OperationalError:
                    pass  # Column already exists
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Page items
    # ------------------------------------------------------------------

    def load_page(self, list_id: str) -> list[Item]:
        """Return the persisted page for *list_id*, head first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM page_items WHERE list_id = ? ORDER BY position",
                (list_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_item(r) for r in rows]

    def save_page(self, list_id: str, items: list[Item]) -> None:
        """Replace the persisted page for *list_id* with *items*."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("DELETE FROM page_items WHERE list_id = ?", (list_id,))
            conn.executemany(
                """INSERT INTO page_items
                   (list_id, position, item_id, sort_time, update_time,
                    tombstoned, is_new, payload)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        list_id, pos, item.id, item.sort_time, item.update_time,
                        int(item.tombstoned), int(item.is_new),
                        json.dumps(item.payload) if item.payload else None,
                    )
                    for pos, item in enumerate(items)
                ],
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Known items (registry)
    # ------------------------------------------------------------------

    def load_known_items(self, list_id: str) -> dict[str, float]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT item_id, update_time FROM known_items WHERE list_id = ?",
                (list_id,),
            ).fetchall()
            return {r["item_id"]: r["update_time"] for r in rows}
        finally:
            conn.close()

    def save_known_items(self, list_id: str, entries: Mapping[str, float]) -> None:
        """Upsert registry entries. Rows are never deleted."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.executemany(
                """INSERT INTO known_items (list_id, item_id, update_time)
                   VALUES (?, ?, ?)
                   ON CONFLICT(list_id, item_id)
                   DO UPDATE SET update_time = excluded.update_time""",
                [(list_id, item_id, value) for item_id, value in entries.items()],
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Flush history
    # ------------------------------------------------------------------

    def record_flush(self, list_id: str, counts: Mapping[str, int]) -> int:
        """Record one applied flush. Returns the row id."""
        now = _now_iso()
        conn = self._connect()
        try:
            cur = conn.execute(
                """INSERT INTO flushes
                   (list_id, inserted, replaced, tombstoned, evicted, live_count, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    list_id,
                    counts.get("inserted", 0),
                    counts.get("replaced", 0),
                    counts.get("tombstoned", 0),
                    counts.get("evicted", 0),
                    counts.get("live_count", 0),
                    now,
                ),
            )
            conn.execute(
                """INSERT INTO list_state (list_id, last_flush_time) VALUES (?, ?)
                   ON CONFLICT(list_id) DO UPDATE SET last_flush_time = excluded.last_flush_time""",
                (list_id, now),
            )
            conn.commit()
            return cur.lastrowid  # type: ignore[return-value]
        finally:
            conn.close()

    def get_recent_flushes(self, list_id: str, limit: int = 5) -> list[dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM flushes WHERE list_id = ? ORDER BY id DESC LIMIT ?",
                (list_id, limit),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Per-list state
    # ------------------------------------------------------------------

    def get_list_state(self, list_id: str) -> dict[str, Any]:
        """Return the state row for *list_id* (defaults when absent)."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM list_state WHERE list_id = ?", (list_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return {
                "list_id": list_id,
                "max_update_time": 0.0,
                "last_poll_time": None,
                "last_snapshot_mtime": None,
                "last_flush_time": None,
                "max_items_per_page": None,
                "configured_max_items": None,
            }
        return dict(row)

    def update_list_state(self, list_id: str, **kwargs: Any) -> None:
        """Update arbitrary list_state columns for *list_id*."""
        allowed = {
            "max_update_time", "last_poll_time", "last_snapshot_mtime",
            "max_items_per_page", "configured_max_items",
        }
        invalid = set(kwargs) - allowed
        if invalid:
            raise ValueError(f"Invalid list_state columns: {invalid}")
        if not kwargs:
            return

        conn = self._connect()
        try:
            conn.execute("INSERT OR IGNORE INTO list_state (list_id) VALUES (?)", (list_id,))
            sets = ", ".join(f"{k} = ?" for k in kwargs)
            conn.execute(
                f"UPDATE list_state SET {sets} WHERE list_id = ?",
                (*kwargs.values(), list_id),
            )
            conn.commit()
        finally:
            conn.close()


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _row_to_item(row: sqlite3.Row) -> Item:
    payload = json.loads(row["payload"]) if row["payload"] else {}
    return Item(
        id=row["item_id"],
        sort_time=row["sort_time"],
        update_time=row["update_time"],
        tombstoned=bool(row["tombstoned"]),
        payload=payload,
        is_new=bool(row["is_new"]),
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
