from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Iterator, List, Optional

from .log import get_logger
from .model import Candidate

log = get_logger(__name__)

# Browsers emit a restricted dialect: one <DT> per entry, one <A> per link,
# attributes in upper case. This is pattern matching, not an HTML parser.
_DT_RE = re.compile(r"<DT>", re.IGNORECASE)
_ANCHOR_RE = re.compile(r"<A\s+([^>]+)>(.*?)</A>", re.IGNORECASE | re.DOTALL)
_HREF_RE = re.compile(r'HREF="([^"]+)"')
_ADD_DATE_RE = re.compile(r'ADD_DATE="(\d+)"')
_LAST_MODIFIED_RE = re.compile(r'LAST_MODIFIED="(\d+)"')
_TAGS_RE = re.compile(r'TAGS="([^"]+)"')
_DD_RE = re.compile(r"<DD>([^<]+)", re.IGNORECASE)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
}
_ENTITY_RE = re.compile("|".join(re.escape(k) for k in _ENTITIES))
_ESCAPES = str.maketrans({v: k for k, v in _ENTITIES.items()})


def unescape(text: str) -> str:
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(0)], text)


def escape(text: str) -> str:
    return text.translate(_ESCAPES)


class BookmarkDocument:
    """Netscape bookmark document as a re-iterable stream of candidates.

    Each iteration parses the text again from the start. Timestamps that are
    missing from a block default to ``now``, captured once per document.
    """

    def __init__(self, text: str, *, now: Optional[int] = None):
        self.text = text
        self.now = int(time.time()) if now is None else int(now)

    @classmethod
    def from_path(cls, path: Path, *, now: Optional[int] = None) -> "BookmarkDocument":
        return cls(path.read_text(encoding="utf-8", errors="replace"), now=now)

    def __iter__(self) -> Iterator[Candidate]:
        return iter_candidates(self.text, now=self.now)


def iter_candidates(text: str, *, now: Optional[int] = None) -> Iterator[Candidate]:
    if now is None:
        now = int(time.time())
    for block in _iter_blocks(text):
        c = parse_block(block, now=now)
        if c is not None:
            yield c


def parse_block(block: str, *, now: int) -> Optional[Candidate]:
    """Extract one candidate from a ``<DT>`` block, or None when it has no link."""
    m = _ANCHOR_RE.search(block)
    if m is None:
        return None
    attrs, inner = m.group(1), m.group(2)

    url = unescape(_attr(_HREF_RE, attrs) or "")
    if not url.strip():
        log.debug("Skipping anchor without HREF: %.80s", attrs)
        return None

    created_at = _maybe_int(_attr(_ADD_DATE_RE, attrs), now)
    updated_at = _maybe_int(_attr(_LAST_MODIFIED_RE, attrs), created_at)

    note = ""
    dd = _DD_RE.search(block, m.end())
    if dd is not None:
        note = unescape(dd.group(1).strip())

    return Candidate(
        url=url,
        title=unescape(inner.strip()),
        note=note,
        created_at=created_at,
        updated_at=updated_at,
        tags=split_tags(unescape(_attr(_TAGS_RE, attrs) or "")),
    )


def split_tags(value: str) -> List[str]:
    out: List[str] = []
    for t in value.split(","):
        t = t.strip()
        if t and t not in out:
            out.append(t)
    return out


def _iter_blocks(text: str) -> Iterator[str]:
    start = 0
    for m in _DT_RE.finditer(text):
        yield text[start : m.start()]
        start = m.end()
    yield text[start:]


def _attr(pattern: re.Pattern, attrs: str) -> Optional[str]:
    m = pattern.search(attrs)
    return m.group(1) if m else None


def _maybe_int(v: Optional[str], default: int) -> int:
    if v is None:
        return default
    try:
        n = int(v)
    except ValueError:
        return default
    # SQLite INTEGER is a signed 64-bit value.
    if not _INT64_MIN <= n <= _INT64_MAX:
        return default
    return n
