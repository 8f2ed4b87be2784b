from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class Candidate:
    """A bookmark parsed from a document, not yet persisted."""

    url: str
    title: str = ""
    note: str = ""
    created_at: int = 0
    updated_at: int = 0
    tags: List[str] = field(default_factory=list)


@dataclass
class Bookmark:
    id: int
    url: str
    title: str = ""
    note: str = ""
    created_at: int = 0
    updated_at: int = 0
    tags: List[str] = field(default_factory=list)


@dataclass
class ImportOutcome:
    url: str
    ok: bool
    error: Optional[str] = None


@dataclass
class ImportResult:
    outcomes: List[ImportOutcome] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def failures(self) -> List[ImportOutcome]:
        return [o for o in self.outcomes if not o.ok]


@dataclass
class ExportResult:
    path: Path
    count: int

    @property
    def is_empty(self) -> bool:
        return self.count == 0
