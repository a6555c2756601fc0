from __future__ import annotations

import pytest

from cctmux.detection import detect_status, is_border_line, strip_ansi
from cctmux.models import Status

BORDER = "─" * 40


def test_working():
    content = f"{BORDER}\n❯ \n(ctrl+c to interrupt)"
    assert detect_status(content) == Status.WORKING


def test_idle():
    content = f"some earlier output\n{BORDER}\n❯ \n{BORDER}\n  ? for shortcuts"
    assert detect_status(content) == Status.IDLE


def test_waiting_input_wins():
    content = f"Do you want to proceed?\n{BORDER}\n❯ 1. Yes\n(ctrl+c to interrupt)"
    assert detect_status(content) == Status.WAITING_INPUT


@pytest.mark.parametrize(
    "marker", ["[y/n]", "[Y/n]", "Do you want to proceed?", "Enter to select"]
)
def test_waiting_markers(marker):
    assert detect_status(f"Overwrite file? {marker}") == Status.WAITING_INPUT


def test_interrupt_phrase_is_case_insensitive():
    content = f"{BORDER}\n> \nEsc / Ctrl+C to interrupt"
    assert detect_status(content) == Status.WORKING


def test_interrupt_without_prompt_is_unknown():
    assert detect_status("Thinking... (ctrl+c to interrupt)") == Status.UNKNOWN


def test_prompt_without_border_is_unknown():
    assert detect_status("$ ls\n> some quoted text") == Status.UNKNOWN


def test_empty_is_unknown():
    assert detect_status("") == Status.UNKNOWN
    assert detect_status("\n\n  \n") == Status.UNKNOWN


def test_ansi_is_ignored():
    content = (
        f"\x1b[2m{BORDER}\x1b[0m\n"
        "\x1b[1m❯\x1b[0m \n"
        "\x1b]0;claude\x07\x1b[38;5;246m(ctrl+c to interrupt)\x1b[0m"
    )
    assert detect_status(content) == Status.WORKING


def test_blank_lines_between_border_and_prompt():
    content = f"{BORDER}\n\n❯ hello\n"
    assert detect_status(content) == Status.IDLE


def test_rounded_box_border():
    content = "╭──────────╮\n│ > │\n╰──────────╯"
    # the prompt line starts with the box side, not a glyph
    assert detect_status(content) == Status.UNKNOWN
    assert detect_status("╭──────────╮\n> hi") == Status.IDLE


def test_classification_is_deterministic():
    content = f"{BORDER}\n❯ \n(ctrl+c to interrupt)"
    assert detect_status(content) == detect_status(content)
    assert detect_status(strip_ansi(content)) == detect_status(content)


@pytest.mark.parametrize(
    "line,expected",
    [
        ("────────", True),
        ("  ━━━━━  ", True),
        ("---", True),
        ("╭────╮", True),
        ("──", False),
        ("─ text ─", False),
        ("", False),
    ],
)
def test_is_border_line(line, expected):
    assert is_border_line(line) is expected


def test_strip_ansi():
    assert strip_ansi("\x1b[31mred\x1b[0m plain") == "red plain"
    assert strip_ansi("\x1b]8;;http://x\x1b\\link\x1b]8;;\x1b\\") == "link"


def test_minimal_working_pane():
    assert detect_status("───\n❯ \n(ctrl+c to interrupt)") == Status.WORKING


def test_minimal_idle_pane():
    assert detect_status("───\n❯ ") == Status.IDLE


@pytest.mark.parametrize(
    "extra",
    ["", f"{BORDER}\n❯ \n", f"{BORDER}\n❯ \n(ctrl+c to interrupt)\n", "garbage\n"],
)
def test_waiting_markers_take_precedence(extra):
    for marker in ("[y/n]", "[Y/n]", "Do you want to proceed?", "Enter to select"):
        assert detect_status(f"{extra}{marker}\n{extra}") == Status.WAITING_INPUT


def test_prompt_with_footer_hints():
    content = f"{BORDER}\n❯ \n{BORDER}\n  ? for shortcuts\n  model: opus\n  cost: $0.12"
    assert detect_status(content) == Status.IDLE


def test_old_prompt_scrolled_up_is_unknown():
    output = "\n".join(f"log line {n}" for n in range(10))
    content = f"{BORDER}\n❯ run the tests\n{output}"
    assert detect_status(content) == Status.UNKNOWN
    assert detect_status(f"{content}\n(ctrl+c to interrupt)") == Status.UNKNOWN
