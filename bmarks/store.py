from __future__ import annotations

import queue
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .log import get_logger
from .model import Bookmark, Candidate
from .query import SELECT_BOOKMARKS, BookmarkQuery
from .schema import ensure_schema

log = get_logger(__name__)


class StoreError(RuntimeError):
    pass


class Store:
    """SQLite bookmark store with a single shared connection.

    The connection sits in a one-slot pool. Every caller, including import
    worker threads, checks it out for the length of one transaction or one
    read pass.
    """

    def __init__(self, db_path: Path | str, *, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=1)
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> "Store":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._conn is not None:
            return
        timeout_s = max(0.1, self.busy_timeout_ms / 1000.0)
        try:
            conn = sqlite3.connect(
                self.db_path.as_posix(),
                timeout=timeout_s,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open bookmark store {self.db_path}: {e}") from e
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute("PRAGMA foreign_keys = ON")
            ensure_schema(conn)
        except sqlite3.Error as e:
            conn.close()
            raise StoreError(f"Cannot initialize bookmark store {self.db_path}: {e}") from e
        self._conn = conn
        self._pool.put(conn)
        log.debug("Opened bookmark store: %s", self.db_path)

    def close(self) -> None:
        if self._conn is None:
            return
        conn = self._pool.get()
        conn.close()
        self._conn = None

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        if self._conn is None:
            raise StoreError("Store is not open")
        conn = self._pool.get()
        try:
            yield conn
        finally:
            self._pool.put(conn)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # -- writes ---------------------------------------------------------

    def upsert_bookmark(self, c: Candidate) -> int:
        """Insert ``c`` unless its URL is stored already, then link its tags.

        Returns the bookmark id. Existing rows keep their title, note and
        timestamps; only new tag associations are added.
        """
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO bookmarks (url, title, note, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (c.url, c.title, c.note, c.created_at, c.updated_at),
            )
            bookmark_id = _bookmark_id(conn, c.url)
            _link_tags(conn, bookmark_id, c.tags)
        return bookmark_id

    def add_bookmark(self, c: Candidate) -> int:
        if not c.url.strip():
            raise ValueError("Bookmark URL must not be empty")
        now = int(time.time())
        if not c.created_at:
            c.created_at = now
        if not c.updated_at:
            c.updated_at = c.created_at
        return self.upsert_bookmark(c)

    def update_bookmark(
        self,
        bookmark_id: int,
        *,
        url: Optional[str] = None,
        title: Optional[str] = None,
        note: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> bool:
        if url is not None and not url.strip():
            raise ValueError("Bookmark URL must not be empty")
        sets: List[str] = []
        params: List[object] = []
        for column, value in (("url", url), ("title", title), ("note", note)):
            if value is not None:
                sets.append(f"{column} = ?")
                params.append(value)
        sets.append("updated_at = ?")
        params.append(int(time.time()))

        with self.transaction() as conn:
            cur = conn.execute(f"UPDATE bookmarks SET {', '.join(sets)} WHERE id = ?", (*params, bookmark_id))
            if cur.rowcount == 0:
                return False
            if tags is not None:
                conn.execute("DELETE FROM bookmark_tags WHERE bookmark_id = ?", (bookmark_id,))
                _link_tags(conn, bookmark_id, tags)
        return True

    def delete_bookmark(self, bookmark_id: int) -> int:
        with self.transaction() as conn:
            return conn.execute("DELETE FROM bookmarks WHERE id = ?", (bookmark_id,)).rowcount

    def delete_bookmark_by_url(self, url: str) -> int:
        with self.transaction() as conn:
            return conn.execute("DELETE FROM bookmarks WHERE url = ?", (url,)).rowcount

    def delete_bookmarks_by_tag(self, tag: str) -> int:
        with self.transaction() as conn:
            return conn.execute(
                """
                DELETE FROM bookmarks WHERE id IN (
                    SELECT bt.bookmark_id FROM bookmark_tags bt
                    JOIN tags t ON t.id = bt.tag_id
                    WHERE t.tag = ?
                )
                """,
                (tag.strip(),),
            ).rowcount

    def delete_tag(self, tag: str) -> int:
        with self.transaction() as conn:
            return conn.execute("DELETE FROM tags WHERE tag = ?", (tag.strip(),)).rowcount

    # -- reads ----------------------------------------------------------

    def get_bookmark(self, url: str) -> Optional[Bookmark]:
        return self._fetch_one("WHERE b.url = ?\nGROUP BY b.id", (url,))

    def get_bookmark_by_id(self, bookmark_id: int) -> Optional[Bookmark]:
        return self._fetch_one("WHERE b.id = ?\nGROUP BY b.id", (bookmark_id,))

    def search(self, query: BookmarkQuery) -> List[Bookmark]:
        sql, params = query.render()
        with self.connection() as conn:
            return [_row_to_bookmark(r) for r in conn.execute(sql, params)]

    def list_tags(self) -> List[str]:
        with self.connection() as conn:
            return [r["tag"] for r in conn.execute("SELECT DISTINCT tag FROM tags ORDER BY tag")]

    def count_bookmarks(self) -> int:
        with self.connection() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM bookmarks").fetchone()[0])

    def iter_bookmarks(self) -> Iterator[Bookmark]:
        """Stream every bookmark with its tags.

        The connection stays checked out until the iterator is exhausted or
        closed.
        """
        with self.connection() as conn:
            cur = conn.execute(SELECT_BOOKMARKS + "GROUP BY b.id\nORDER BY b.id")
            try:
                for r in cur:
                    yield _row_to_bookmark(r)
            finally:
                cur.close()

    def _fetch_one(self, tail: str, params: tuple) -> Optional[Bookmark]:
        with self.connection() as conn:
            row = conn.execute(SELECT_BOOKMARKS + tail, params).fetchone()
        return _row_to_bookmark(row) if row else None


def _bookmark_id(conn: sqlite3.Connection, url: str) -> int:
    row = conn.execute("SELECT id FROM bookmarks WHERE url = ?", (url,)).fetchone()
    if row is None:
        raise StoreError(f"Bookmark vanished during upsert: {url}")
    return int(row["id"])


def _link_tags(conn: sqlite3.Connection, bookmark_id: int, tags: Sequence[str]) -> None:
    for tag in _tag_names(tags):
        conn.execute("INSERT OR IGNORE INTO tags (tag) VALUES (?)", (tag,))
        tag_id = conn.execute("SELECT id FROM tags WHERE tag = ?", (tag,)).fetchone()["id"]
        conn.execute(
            "INSERT OR IGNORE INTO bookmark_tags (bookmark_id, tag_id) VALUES (?, ?)",
            (bookmark_id, tag_id),
        )


def _tag_names(tags: Sequence[str]) -> List[str]:
    # Exports join tags with commas, so a stored tag never contains one.
    out: List[str] = []
    for value in tags:
        for t in value.split(","):
            t = t.strip()
            if t and t not in out:
                out.append(t)
    return out


def _row_to_bookmark(r: sqlite3.Row) -> Bookmark:
    tags = r["tags"]
    return Bookmark(
        id=int(r["id"]),
        url=r["url"],
        title=r["title"] or "",
        note=r["note"] or "",
        created_at=int(r["created_at"]),
        updated_at=int(r["updated_at"]),
        tags=[t for t in tags.split(",") if t] if tags else [],
    )
