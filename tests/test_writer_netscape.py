from pathlib import Path

import pytest

from bmarks.importer import import_candidates
from bmarks.model import Bookmark, Candidate
from bmarks.parse_netscape import BookmarkDocument
from bmarks.store import Store
from bmarks.writer_netscape import export_bookmarks, format_bookmark


def _tuples(store):
    return {(b.url, b.title, b.note, frozenset(b.tags), b.created_at, b.updated_at) for b in store.iter_bookmarks()}


def test_export_empty_store_is_distinct_not_an_error(store, tmp_path: Path):
    out = tmp_path / "empty.html"
    res = export_bookmarks(store, out)
    assert res.count == 0
    assert res.is_empty
    text = out.read_text(encoding="utf-8")
    assert text.startswith("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    assert "<TITLE>Bookmarks</TITLE>" in text
    assert text.rstrip().endswith("</DL><p>")


def test_export_escapes_text_fields(store, tmp_path: Path):
    store.upsert_bookmark(
        Candidate(
            url="https://x.example/?a=1&b=2",
            title="Tom & Jerry <3",
            note='say "hi" & bye',
            created_at=10,
            updated_at=20,
            tags=["r&d"],
        )
    )
    out = tmp_path / "escaped.html"
    res = export_bookmarks(store, out)
    assert res.count == 1
    text = out.read_text(encoding="utf-8")
    assert (
        '<DT><A HREF="https://x.example/?a=1&amp;b=2" ADD_DATE="10" LAST_MODIFIED="20" TAGS="r&amp;d">'
        "Tom &amp; Jerry &lt;3</A><DD>say &quot;hi&quot; &amp; bye"
    ) in text

    reparsed = list(BookmarkDocument(text, now=0))
    assert len(reparsed) == 1
    assert reparsed[0].title == "Tom & Jerry <3"
    assert reparsed[0].url == "https://x.example/?a=1&b=2"
    assert reparsed[0].tags == ["r&d"]


def test_format_bookmark_omits_empty_tags_and_note():
    line = format_bookmark(Bookmark(id=1, url="https://a.example/", title="A", created_at=1, updated_at=2))
    assert line == '<DT><A HREF="https://a.example/" ADD_DATE="1" LAST_MODIFIED="2">A</A>'


def test_export_then_import_round_trips(store, tmp_path: Path):
    store.upsert_bookmark(Candidate(url="https://a.example/", title="A's <page>", note="first\nsecond", created_at=1, updated_at=5, tags=["x", "y"]))
    store.upsert_bookmark(Candidate(url="https://b.example/", title="", note="", created_at=2, updated_at=2))
    store.upsert_bookmark(Candidate(url="https://c.example/#frag", title="C", created_at=3, updated_at=4, tags=["y"]))

    out = tmp_path / "export.html"
    export_bookmarks(store, out)

    with Store(tmp_path / "fresh.db") as fresh:
        result = import_candidates(fresh, BookmarkDocument.from_path(out))
        assert result.imported == 3
        assert _tuples(fresh) == _tuples(store)


def test_export_fails_for_unwritable_path(store, tmp_path: Path):
    with pytest.raises(OSError):
        export_bookmarks(store, tmp_path / "no-such-dir" / "out.html")
    # The read connection was not left checked out.
    assert store.count_bookmarks() == 0
