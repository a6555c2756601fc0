from __future__ import annotations

import logging
from pathlib import Path

import click

from cctmux.config import Config, get_config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"


def configure_logging(
    level: str, log_file: Path | None = None, to_terminal: bool = True
) -> None:
    """Configure root logging for cctmux.

    Logs go to ``log_file`` when given, else to stderr. The TUI draws over
    the terminal, so it passes ``to_terminal=False`` and without a log file
    records are dropped.
    """
    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
    elif to_terminal:
        handler = logging.StreamHandler()
    else:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))


def _load_config() -> Config:
    """Load config, turning validation errors into a clean CLI error."""
    try:
        return get_config()
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid config: {e}") from e
