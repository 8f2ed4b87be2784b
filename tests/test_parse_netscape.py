from pathlib import Path

from bmarks.parse_netscape import BookmarkDocument, escape, iter_candidates, parse_block, split_tags, unescape

FIREFOX_EXPORT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<!-- This is an automatically generated file. -->
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks Menu</H1>
<DL><p>
    <DT><H3 ADD_DATE="1600000000" LAST_MODIFIED="1600000001">Reading</H3>
    <DL><p>
        <DT><A HREF="https://a.example/" ADD_DATE="1600000100" LAST_MODIFIED="1600000200" TAGS="news,tech">Alpha</A>
        <DD>first note
        <DT><A HREF="https://b.example/" ADD_DATE="1600000300">Beta &amp; Co</A>
        <DT><A NAME="anchor-without-href">Nowhere</A>
        <DT><a href="https://lower.example/">lower-case attributes</a>
    </DL><p>
    <DT><A HREF="https://c.example/?q=1&amp;r=2" TAGS=" x , , y ">C</A>
</DL><p>
"""


def test_worked_example_block():
    block = '<A HREF="https://example.com" ADD_DATE="1000" TAGS="a, b">Example</A><DD>a note'
    c = parse_block(block, now=5000)
    assert c is not None
    assert c.url == "https://example.com"
    assert c.title == "Example"
    assert c.created_at == 1000
    assert c.updated_at == 1000
    assert c.tags == ["a", "b"]
    assert c.note == "a note"


def test_document_yields_one_candidate_per_linked_block():
    got = list(iter_candidates(FIREFOX_EXPORT, now=42))
    assert [c.url for c in got] == [
        "https://a.example/",
        "https://b.example/",
        "https://c.example/?q=1&r=2",
    ]

    alpha, beta, c = got
    assert alpha.created_at == 1600000100
    assert alpha.updated_at == 1600000200
    assert alpha.tags == ["news", "tech"]
    assert alpha.note == "first note"

    assert beta.title == "Beta & Co"
    assert beta.updated_at == 1600000300
    assert beta.note == ""
    assert beta.tags == []

    assert c.created_at == 42
    assert c.updated_at == 42
    assert c.tags == ["x", "y"]


def test_block_without_href_reduces_count_by_one():
    with_href = '<DT><A HREF="https://one.example/">One</A>\n<DT><A HREF="https://two.example/">Two</A>\n'
    without_href = '<DT><A HREF="https://one.example/">One</A>\n<DT><A ADD_DATE="1">Two</A>\n'
    assert len(list(iter_candidates(with_href))) == 2
    assert len(list(iter_candidates(without_href))) == 1


def test_blocks_without_anchor_are_dropped():
    text = "<DL><p>\n<DT><H3>Folder</H3>\n<DT>just text\n<DT><A HREF=\"https://ok.example/\">ok</A>\n</DL>"
    got = list(iter_candidates(text))
    assert [c.url for c in got] == ["https://ok.example/"]


def test_unparsable_timestamps_fall_back():
    c = parse_block('<A HREF="https://x.example/" ADD_DATE="soon" LAST_MODIFIED="later">X</A>', now=77)
    assert c.created_at == 77
    assert c.updated_at == 77

    c = parse_block('<A HREF="https://x.example/" ADD_DATE="10" LAST_MODIFIED="n/a">X</A>', now=77)
    assert c.created_at == 10
    assert c.updated_at == 10


def test_timestamps_beyond_int64_fall_back():
    c = parse_block('<A HREF="https://big.example/" ADD_DATE="99999999999999999999">Big</A>', now=77)
    assert c.created_at == 77
    assert c.updated_at == 77

    c = parse_block('<A HREF="https://big.example/" ADD_DATE="9223372036854775807" LAST_MODIFIED="9223372036854775808">Big</A>', now=77)
    assert c.created_at == 9223372036854775807
    assert c.updated_at == 9223372036854775807


def test_href_is_kept_verbatim():
    c = parse_block('<A HREF=" https://x.example/ ">X</A>', now=1)
    assert c.url == " https://x.example/ "

    assert parse_block('<A HREF="   ">blank</A>', now=1) is None


def test_attribute_names_are_case_sensitive_but_tag_name_is_not():
    c = parse_block('<a HREF="https://x.example/" add_date="10">X</a>', now=99)
    assert c.url == "https://x.example/"
    assert c.created_at == 99


def test_description_decodes_escapes_and_stops_at_next_tag():
    c = parse_block('<A HREF="https://x.example/">X</A>\n<DD>1 &lt; 2 &#39;ok&#39; &quot;q&quot;\n</DL><p>', now=1)
    assert c.note == "1 < 2 'ok' \"q\""


def test_document_is_restartable(tmp_path: Path):
    src = tmp_path / "bookmarks.html"
    src.write_text(FIREFOX_EXPORT, encoding="utf-8")
    doc = BookmarkDocument.from_path(src, now=1)
    first = [c.url for c in doc]
    second = [c.url for c in doc]
    assert first == second
    assert len(first) == 3


def test_document_is_lazy():
    it = iter(BookmarkDocument(FIREFOX_EXPORT, now=1))
    assert next(it).url == "https://a.example/"


def test_unescape_is_single_pass():
    assert unescape("&amp;lt;") == "&lt;"
    assert unescape("&amp;&lt;&gt;&quot;&#39;") == "&<>\"'"
    assert unescape("&nbsp;") == "&nbsp;"


def test_escape_covers_five_characters():
    assert escape("a<b>&\"'") == "a&lt;b&gt;&amp;&quot;&#39;"
    assert unescape(escape("<&>\"' plain")) == "<&>\"' plain"


def test_split_tags_trims_and_dedupes():
    assert split_tags(" a, b ,,a,  ") == ["a", "b"]
    assert split_tags("") == []
