from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    no_color: bool = False


def setup_logging(cfg: LogConfig, console: Optional[Console] = None) -> logging.Handler:
    """Route bmarks diagnostics to stderr.

    When ``console`` is given, rich output shares it with the CLI so log lines
    and the import progress bar do not overwrite each other. Without a
    terminal (or with NO_COLOR set) a plain timestamped handler is used.
    """
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    force_no_color = cfg.no_color or os.getenv("NO_COLOR") is not None
    is_tty = console.is_terminal if console is not None else sys.stderr.isatty()

    handler: logging.Handler
    if not force_no_color and is_tty:
        handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_time=False,
            show_level=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(console.file if console is not None else None)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    handler.setLevel(level)
    root.addHandler(handler)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
