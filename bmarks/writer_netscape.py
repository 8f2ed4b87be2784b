from __future__ import annotations

from contextlib import closing
from pathlib import Path
from typing import Iterable, List, TextIO

from .log import get_logger
from .model import Bookmark, ExportResult
from .parse_netscape import escape
from .store import Store

log = get_logger(__name__)

PREAMBLE = (
    "<!DOCTYPE NETSCAPE-Bookmark-file-1>",
    "<!-- This is an automatically generated file. DO NOT EDIT! -->",
    '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
    "<TITLE>Bookmarks</TITLE>",
    "<H1>Bookmarks</H1>",
    "<DL><p>",
)
CLOSING = "</DL><p>"


def export_bookmarks(store: Store, out_path: Path) -> ExportResult:
    """Write every stored bookmark to ``out_path`` as Netscape bookmark HTML.

    Rows are streamed from one read query straight into the file. Importing
    the result again reproduces the same URLs, titles, notes, tag sets and
    timestamps.
    """
    rows = store.iter_bookmarks()
    with out_path.open("w", encoding="utf-8") as f, closing(rows):
        count = write_bookmarks(f, rows)
    log.info("Wrote Netscape bookmarks HTML: %s (%d bookmarks)", out_path, count)
    return ExportResult(path=out_path, count=count)


def write_bookmarks(f: TextIO, bookmarks: Iterable[Bookmark]) -> int:
    for line in PREAMBLE:
        f.write(line + "\n")
    count = 0
    for b in bookmarks:
        f.write(format_bookmark(b) + "\n")
        count += 1
    f.write(CLOSING + "\n")
    return count


def format_bookmark(b: Bookmark) -> str:
    attrs: List[str] = [
        f'HREF="{escape(b.url)}"',
        f'ADD_DATE="{b.created_at}"',
        f'LAST_MODIFIED="{b.updated_at}"',
    ]
    if b.tags:
        attrs.append(f'TAGS="{escape(",".join(b.tags))}"')
    line = f"<DT><A {' '.join(attrs)}>{escape(b.title)}</A>"
    if b.note:
        line += f"<DD>{escape(b.note)}"
    return line
