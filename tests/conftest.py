import sys
from pathlib import Path

import pytest

# Allow `import bmarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from bmarks.store import Store  # noqa: E402


@pytest.fixture
def store(tmp_path: Path):
    """An open store on a fresh database file."""
    with Store(tmp_path / "bookmark.db") as s:
        yield s


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path: Path):
    """Tests must never touch the real ~/.local/share/bookmarks store."""
    for name in (
        "BMARKS_DB_PATH",
        "BMARKS_BUSY_TIMEOUT_MS",
        "BMARKS_IMPORT_WORKERS",
        "BMARKS_QUEUE_SIZE",
        "BMARKS_EXPORT_PATH",
        "BMARKS_LOG_LEVEL",
        "BMARKS_NO_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BMARKS_DB_PATH", str(tmp_path / "default-store.db"))
