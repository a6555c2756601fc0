"""Classify a Claude Code pane from its captured terminal text."""

from __future__ import annotations

import re

from cctmux.models import Status

WAITING_MARKERS = (
    "[y/n]",
    "[Y/n]",
    "Do you want to proceed?",
    "Enter to select",
)

INTERRUPT_PHRASE = "ctrl+c to interrupt"

PROMPT_GLYPHS = ("❯", ">")

# Non-blank lines allowed below the prompt (box bottom and hint lines)
MAX_FOOTER_LINES = 4

# CSI sequences (colours, cursor movement) and OSC sequences (titles, links)
_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")

# Box-drawing horizontals plus ASCII dashes, optionally with rounded corners
_BORDER_RE = re.compile(r"^[╭╰╮╯├┤┌└┐┘│]?[─━═\-]{3,}[╭╰╮╯├┤┌└┐┘│]?$")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def is_border_line(line: str) -> bool:
    return bool(_BORDER_RE.match(line.strip()))


def _prompt_follows_border(lines: list[str]) -> bool:
    """True if a prompt line near the bottom has a border directly above it."""
    rendered = [line.strip() for line in lines if line.strip()]
    lowest = max(len(rendered) - 1 - MAX_FOOTER_LINES, 0)
    for idx in range(len(rendered) - 1, lowest - 1, -1):
        if rendered[idx].startswith(PROMPT_GLYPHS):
            return idx > 0 and is_border_line(rendered[idx - 1])
    return False


def detect_status(content: str) -> Status:
    """Classify pane content. First matching rule wins:

    1. a confirmation or selection prompt is visible -> WAITING_INPUT
    2. input box is showing and the interrupt hint is visible -> WORKING
    3. input box is showing -> IDLE
    4. anything else -> UNKNOWN
    """
    text = strip_ansi(content)

    if any(marker in text for marker in WAITING_MARKERS):
        return Status.WAITING_INPUT

    if _prompt_follows_border(text.splitlines()):
        if INTERRUPT_PHRASE in text.lower():
            return Status.WORKING
        return Status.IDLE

    return Status.UNKNOWN
