from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_DIR = Path.home() / ".config" / "cctmux"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
[detection]
# Command name of the process to look for in tmux panes.
process_name = "claude"
# Trailing non-blank lines captured from each pane for status detection.
capture_lines = 15
# Upper bound on parent-process hops when attributing a process to a pane.
max_ancestry_hops = 100

[loading]
# Parallel git lookups during background enrichment.
enrich_workers = 4
# Seconds between automatic full refreshes in the TUI.
refresh_interval = 5.0
# Seconds before a single git command is abandoned.
git_timeout = 10.0

[preview]
# Lines of pane content shown in the preview panel.
lines = 200

[logging]
level = "WARNING"
# The TUI owns the terminal, so logs only go somewhere useful with a file.
# file = "~/.local/state/cctmux/cctmux.log"
"""

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError(f"'{key}' must be a positive integer, got {value!r}.")
    return value


def _positive_float(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{key}' must be a positive number, got {value!r}.")
    return float(value)


@dataclass
class Config:
    process_name: str  # command name matched against the process snapshot
    capture_lines: int  # tail length fed to status detection
    max_ancestry_hops: int  # bound on the parent-process walk
    enrich_workers: int  # git enrichment thread pool size
    refresh_interval: float  # seconds between automatic refreshes
    git_timeout: float  # per git command timeout
    preview_lines: int  # lines captured for the preview panel
    log_level: str = "WARNING"
    log_file: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        detection = data.get("detection", {})
        loading = data.get("loading", {})
        preview = data.get("preview", {})
        logging_section = data.get("logging", {})

        process_name = detection.get("process_name", "claude")
        if not isinstance(process_name, str) or not process_name.strip():
            raise ValueError("'process_name' must be a non-empty string.")

        log_level = str(logging_section.get("level", "WARNING")).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                f"'level' must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}."
            )

        log_file = logging_section.get("file")

        return cls(
            process_name=process_name.strip(),
            capture_lines=_positive_int(detection, "capture_lines", 15),
            max_ancestry_hops=_positive_int(detection, "max_ancestry_hops", 100),
            enrich_workers=_positive_int(loading, "enrich_workers", 4),
            refresh_interval=_positive_float(loading, "refresh_interval", 5.0),
            git_timeout=_positive_float(loading, "git_timeout", 10.0),
            preview_lines=_positive_int(preview, "lines", 200),
            log_level=log_level,
            log_file=Path(log_file).expanduser() if log_file else None,
        )

    @classmethod
    def load(cls) -> Config:
        if CONFIG_FILE.exists():
            with open(CONFIG_FILE, "rb") as f:
                data = tomllib.load(f)
        else:
            data = {}
        return cls.from_dict(data)


def get_config() -> Config:
    return Config.load()


def ensure_config() -> Path:
    """Create default config file if it doesn't exist. Returns config path."""
    if not CONFIG_FILE.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        CONFIG_FILE.write_text(DEFAULT_CONFIG)
    return CONFIG_FILE
