from __future__ import annotations

import sqlite3
from typing import Dict, List

from .log import get_logger

log = get_logger(__name__)

TABLES = (
    """
    CREATE TABLE IF NOT EXISTS bookmarks (
        id INTEGER PRIMARY KEY NOT NULL,
        url TEXT NOT NULL UNIQUE,
        title TEXT,
        note TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY NOT NULL,
        tag TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bookmark_tags (
        bookmark_id INTEGER,
        tag_id INTEGER,
        PRIMARY KEY (bookmark_id, tag_id),
        FOREIGN KEY (bookmark_id) REFERENCES bookmarks(id) ON DELETE CASCADE,
        FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
    )
    """,
)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_url ON bookmarks (url)",
    "CREATE INDEX IF NOT EXISTS idx_tag ON tags (tag)",
    "CREATE INDEX IF NOT EXISTS idx_bookmark_id ON bookmark_tags (bookmark_id)",
    "CREATE INDEX IF NOT EXISTS idx_tag_id ON bookmark_tags (tag_id)",
)


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the bookmark tables and indexes if they are missing.

    Only ``IF NOT EXISTS`` statements are issued, so running this against an
    existing store leaves its data untouched.
    """
    for stmt in TABLES:
        conn.execute(stmt)
    for stmt in INDEXES:
        conn.execute(stmt)
    log.debug("Schema ready (%d tables, %d indexes).", len(TABLES), len(INDEXES))


def schema_objects(conn: sqlite3.Connection) -> Dict[str, List[str]]:
    rows = conn.execute(
        "SELECT type, name FROM sqlite_master WHERE type IN ('table', 'index') AND name NOT LIKE 'sqlite_%' ORDER BY name"
    ).fetchall()
    out: Dict[str, List[str]] = {"table": [], "index": []}
    for kind, name in rows:
        out[kind].append(name)
    return out
