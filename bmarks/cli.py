from __future__ import annotations

import argparse
import sqlite3
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import Settings, load_settings
from .importer import import_candidates
from .log import LogConfig, get_logger, setup_logging
from .model import Bookmark, Candidate
from .parse_netscape import BookmarkDocument, split_tags
from .query import BookmarkQuery
from .schema import schema_objects
from .store import Store, StoreError
from .writer_netscape import export_bookmarks

log = get_logger(__name__)
console = Console(soft_wrap=True)
# Diagnostics and the import progress bar share stderr so stdout stays clean.
err_console = Console(stderr=True)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="bmarks",
        description="Personal bookmark store with Netscape HTML import/export.",
    )
    p.add_argument("-V", "--version", action="version", version=f"bmarks {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--db", default=None, help="SQLite bookmark store (default: ~/.local/share/bookmarks/bookmark.db).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    imp = sub.add_parser("import", help="Import a Netscape bookmarks HTML file into the store.")
    imp.add_argument("file", help="Bookmarks HTML file to import.")
    imp.add_argument("--workers", type=int, default=None, help="Number of concurrent import workers (default: 5).")

    exp = sub.add_parser("export", help="Export the store as a Netscape bookmarks HTML file.")
    exp.add_argument("file", nargs="?", default=None, help="Output HTML path (default: exported_bookmarks.html).")

    add = sub.add_parser("add", help="Add a bookmark, or link tags to an existing one.")
    add.add_argument("url")
    add.add_argument("--title", default="")
    add.add_argument("--note", default="")
    add.add_argument("--tag", action="append", default=[], help="Tag (repeatable, or comma-separated).")

    edit = sub.add_parser("edit", help="Edit a bookmark by id.")
    edit.add_argument("id", type=int)
    edit.add_argument("--url", default=None)
    edit.add_argument("--title", default=None)
    edit.add_argument("--note", default=None)
    edit.add_argument("--tag", action="append", default=None, help="Replace tags (repeatable, or comma-separated).")

    rm = sub.add_parser("delete", help="Delete bookmarks by id, URL or tag.")
    target = rm.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", type=int, default=None)
    target.add_argument("--url", default=None)
    target.add_argument("--tag", default=None, help="Delete every bookmark carrying this tag.")
    target.add_argument("--drop-tag", default=None, help="Delete the tag itself; bookmarks are kept.")

    ls = sub.add_parser("list", help="List bookmarks, optionally filtered.")
    ls.add_argument("--url", action="append", default=[], help="Substring of the URL (repeatable).")
    ls.add_argument("--title", action="append", default=[], help="Substring of the title (repeatable).")
    ls.add_argument("--note", action="append", default=[], help="Substring of the note (repeatable).")
    ls.add_argument("--tag", action="append", default=[], help="Substring of a tag (repeatable).")
    ls.add_argument("--any", action="append", default=[], help="Substring of URL, title, note or tag (repeatable).")
    ls.add_argument("--or", dest="match_any", action="store_true", help="Match any filter instead of all.")

    sub.add_parser("tags", help="List distinct tags.")
    sub.add_parser("info", help="Show store location, schema objects and counts.")

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.db:
        cfg.db_path = args.db
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color), console=err_console)

    handler = _COMMANDS.get(args.cmd)
    if handler is None:
        return 2

    store = Store(cfg.db_file, busy_timeout_ms=cfg.busy_timeout_ms)
    try:
        store.open()
    except StoreError as e:
        log.error("%s", e)
        return 2
    try:
        return handler(args, cfg, store)
    finally:
        store.close()


def _cmd_import(args, cfg: Settings, store: Store) -> int:
    t0 = time.time()
    src = Path(args.file)
    if not src.is_file():
        log.error("Input file not found: %s", src)
        return 2
    try:
        doc = BookmarkDocument.from_path(src)
    except OSError as e:
        log.error("Failed to read bookmarks file %s: %s", src, e)
        return 2

    workers = args.workers if args.workers is not None else cfg.import_workers
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=err_console,
        transient=True,
        disable=not err_console.is_terminal,
    ) as progress:
        task = progress.add_task("Importing bookmarks...", total=None)
        result = import_candidates(
            store,
            doc,
            workers=workers,
            queue_size=cfg.queue_size,
            on_outcome=lambda _o: progress.advance(task),
        )

    console.print(f"{result.imported} bookmarks successfully imported!")
    if result.failed:
        console.print(f"[yellow]{result.failed} bookmarks failed to import (see log).[/yellow]")
    log.info("Done in %d ms.", int((time.time() - t0) * 1000))
    return 0


def _cmd_export(args, cfg: Settings, store: Store) -> int:
    out_path = Path(args.file or cfg.export_path)
    try:
        res = export_bookmarks(store, out_path)
    except OSError as e:
        log.error("Failed to write output file %s: %s", out_path, e)
        return 2
    if res.is_empty:
        console.print("No bookmarks found in database.")
    else:
        console.print(f"Exported {res.count} bookmarks to: {res.path}")
    return 0


def _cmd_add(args, cfg: Settings, store: Store) -> int:
    c = Candidate(url=args.url.strip(), title=args.title, note=args.note, tags=_tags_arg(args.tag))
    try:
        bookmark_id = store.add_bookmark(c)
    except ValueError as e:
        log.error("%s", e)
        return 2
    console.print(f"Saved bookmark {bookmark_id}: {c.url}")
    return 0


def _cmd_edit(args, cfg: Settings, store: Store) -> int:
    tags = _tags_arg(args.tag) if args.tag is not None else None
    try:
        found = store.update_bookmark(args.id, url=args.url, title=args.title, note=args.note, tags=tags)
    except ValueError as e:
        log.error("%s", e)
        return 2
    except sqlite3.IntegrityError as e:
        log.error("Cannot update bookmark %d: %s", args.id, e)
        return 2
    if not found:
        log.error("No bookmark with id %d", args.id)
        return 1
    console.print(f"Updated bookmark {args.id}.")
    return 0


def _cmd_delete(args, cfg: Settings, store: Store) -> int:
    if args.id is not None:
        n, what = store.delete_bookmark(args.id), f"id {args.id}"
    elif args.url is not None:
        n, what = store.delete_bookmark_by_url(args.url), args.url
    elif args.tag is not None:
        n, what = store.delete_bookmarks_by_tag(args.tag), f"tag {args.tag}"
    else:
        n = store.delete_tag(args.drop_tag)
        if not n:
            log.error("No tag named %s", args.drop_tag)
            return 1
        console.print(f"Deleted tag {args.drop_tag}.")
        return 0
    if not n:
        log.error("No bookmarks matched %s", what)
        return 1
    console.print(f"Deleted {n} bookmark(s).")
    return 0


def _cmd_list(args, cfg: Settings, store: Store) -> int:
    q = BookmarkQuery(match_any=args.match_any)
    for field_name in ("url", "title", "note", "tag", "any"):
        for value in getattr(args, field_name):
            q.where(field_name, value)
    bookmarks = store.search(q)
    if not bookmarks:
        console.print("No bookmarks found.")
        return 0
    console.print(_bookmark_table(bookmarks))
    return 0


def _cmd_tags(args, cfg: Settings, store: Store) -> int:
    tags = store.list_tags()
    if not tags:
        console.print("No tags found.")
        return 0
    for t in tags:
        console.print(t, markup=False, highlight=False)
    return 0


def _cmd_info(args, cfg: Settings, store: Store) -> int:
    with store.connection() as conn:
        objects = schema_objects(conn)
    console.print(f"Store: {store.db_path}")
    console.print(f"Tables: {', '.join(objects['table'])}")
    console.print(f"Indexes: {', '.join(objects['index'])}")
    console.print(f"Bookmarks: {store.count_bookmarks()}")
    console.print(f"Tags: {len(store.list_tags())}")
    return 0


_COMMANDS = {
    "import": _cmd_import,
    "export": _cmd_export,
    "add": _cmd_add,
    "edit": _cmd_edit,
    "delete": _cmd_delete,
    "list": _cmd_list,
    "tags": _cmd_tags,
    "info": _cmd_info,
}


def _tags_arg(values: List[str]) -> List[str]:
    out: List[str] = []
    for v in values:
        for t in split_tags(v):
            if t not in out:
                out.append(t)
    return out


def _bookmark_table(bookmarks: List[Bookmark]) -> Table:
    table = Table()
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("URL", style="blue")
    table.add_column("Tags", style="green")
    table.add_column("Added")
    for b in bookmarks:
        added = datetime.fromtimestamp(b.created_at, tz=timezone.utc).strftime("%Y-%m-%d")
        table.add_row(str(b.id), Text(b.title), Text(b.url), ", ".join(sorted(b.tags)), added)
    return table
