from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (e.g. a bind mount), the journal is
    placed inside it.
    """
    p = os.path.abspath(settings.db_path)
    if os.path.isdir(p):
        p = os.path.join(p, "trafficrouter.db")
    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              rollout TEXT,
              route_table TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, rollout: str | None = None, route_table: str | None = None) -> None:
    """Append one journal row. A journal that cannot be written is logged and skipped."""
    if not settings.enable_journal:
        return
    try:
        init_db()
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, rollout, route_table, message) VALUES (?, ?, ?, ?, ?)",
                (utc_now(), level.upper(), rollout, route_table, message),
            )
    except (sqlite3.Error, OSError) as e:
        logger.warning("Failed to record event %r: %s", message, e)


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    if not settings.enable_journal:
        return []
    init_db()
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
