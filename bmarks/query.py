from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

_TAG_MATCH = (
    "b.id IN (SELECT bt.bookmark_id FROM bookmark_tags bt "
    "JOIN tags t ON t.id = bt.tag_id WHERE t.tag LIKE ? ESCAPE '\\')"
)

# field -> SQL fragment with exactly one placeholder
_FIELD_SQL = {
    "url": "b.url LIKE ? ESCAPE '\\'",
    "title": "COALESCE(b.title, '') LIKE ? ESCAPE '\\'",
    "note": "COALESCE(b.note, '') LIKE ? ESCAPE '\\'",
    "tag": _TAG_MATCH,
}

FIELDS = tuple(_FIELD_SQL) + ("any",)

SELECT_BOOKMARKS = """
    SELECT b.id, b.url, b.title, b.note, b.created_at, b.updated_at,
           GROUP_CONCAT(t.tag, ',') AS tags
    FROM bookmarks b
    LEFT JOIN bookmark_tags bt ON b.id = bt.bookmark_id
    LEFT JOIN tags t ON bt.tag_id = t.id
"""


@dataclass(frozen=True)
class Predicate:
    field: str
    value: str

    def render(self) -> Tuple[str, List[str]]:
        pattern = f"%{escape_like(self.value)}%"
        if self.field == "any":
            parts = [_FIELD_SQL[f] for f in ("url", "title", "note", "tag")]
            return "(" + " OR ".join(parts) + ")", [pattern] * len(parts)
        return _FIELD_SQL[self.field], [pattern]


@dataclass
class BookmarkQuery:
    """Composable substring filters over bookmarks.

    Predicates are joined with AND unless ``match_any`` is set. The rendered
    SQL only ever carries ``?`` placeholders; values travel as parameters.
    """

    match_any: bool = False
    predicates: List[Predicate] = field(default_factory=list)

    def where(self, field_name: str, value: str) -> "BookmarkQuery":
        if field_name not in FIELDS:
            raise ValueError(f"Unknown search field: {field_name!r} (expected one of {', '.join(FIELDS)})")
        self.predicates.append(Predicate(field_name, value))
        return self

    def render(self) -> Tuple[str, List[str]]:
        sql = SELECT_BOOKMARKS
        params: List[str] = []
        if self.predicates:
            clauses = []
            for p in self.predicates:
                clause, values = p.render()
                clauses.append(clause)
                params.extend(values)
            joiner = " OR " if self.match_any else " AND "
            sql += "WHERE " + joiner.join(clauses) + "\n"
        sql += "GROUP BY b.id\nORDER BY b.id"
        return sql, params


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
