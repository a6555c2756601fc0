from __future__ import annotations

import logging
import os
import re
import subprocess

from cctmux.models import PaneFact

logger = logging.getLogger(__name__)

PANE_FORMAT = "\t".join(
    [
        "#{session_name}",
        "#{session_attached}",
        "#{pane_id}",
        "#{pane_index}",
        "#{pane_pid}",
        "#{pane_current_path}",
        "#{window_index}",
        "#{window_name}",
    ]
)

# stderr fragments meaning "tmux works, there is just nothing to list"
_EMPTY_SERVER_MARKERS = ("no server running", "no sessions", "error connecting")


class TmuxError(Exception):
    """Raised when a tmux command cannot be run or exits with an error."""

    def __init__(self, command: list[str], stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr.strip()
        msg = f"tmux {command[1] if len(command) > 1 else ''} failed"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)


def _run(args: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
    return subprocess.run(args, capture_output=True, text=True, check=check)


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def parse_pane_line(line: str) -> PaneFact | None:
    """Parse one line of ``PANE_FORMAT`` output. Returns None if malformed."""
    parts = line.split("\t")
    if len(parts) < 8:
        return None
    return PaneFact(
        session_name=parts[0],
        # session_attached is a client count in recent tmux, 0/1 in older
        session_attached=_to_int(parts[1]) > 0,
        pane_id=parts[2],
        pane_index=_to_int(parts[3]),
        pid=_to_int(parts[4]),
        current_path=parts[5],
        window_index=_to_int(parts[6]),
        # window names may themselves contain tabs
        window_name="\t".join(parts[7:]),
    )


def list_all_panes() -> list[PaneFact]:
    """List every pane of every session in a single tmux call.

    A tmux without a running server yields an empty list. Any other failure
    raises TmuxError.
    """
    cmd = ["tmux", "list-panes", "-a", "-F", PANE_FORMAT]
    try:
        result = _run(cmd, check=False)
    except FileNotFoundError as e:
        raise TmuxError(cmd, "tmux is not installed") from e

    if result.returncode != 0:
        stderr = result.stderr or ""
        if any(marker in stderr for marker in _EMPTY_SERVER_MARKERS):
            return []
        raise TmuxError(cmd, stderr)

    panes: list[PaneFact] = []
    for line in result.stdout.splitlines():
        pane = parse_pane_line(line)
        if pane is None:
            logger.debug("Skipping malformed list-panes line: %r", line)
            continue
        panes.append(pane)
    return panes


def capture_pane(pane_id: str, lines: int, strip_empty: bool = True) -> str:
    """Capture the last ``lines`` lines of a pane, escape sequences included.

    With ``strip_empty`` blank lines are dropped before taking the tail, which
    is what status detection wants. Without it, internal blank lines are kept
    and only trailing ones are trimmed, which preserves the layout for preview.
    """
    cmd = ["tmux", "capture-pane", "-t", pane_id, "-p", "-J", "-e"]
    try:
        result = _run(cmd, check=False)
    except FileNotFoundError as e:
        raise TmuxError(cmd, "tmux is not installed") from e
    if result.returncode != 0:
        raise TmuxError(cmd, result.stderr or "")

    all_lines = result.stdout.splitlines()
    if strip_empty:
        kept = [line for line in all_lines if line.strip()]
    else:
        end = len(all_lines)
        while end and not all_lines[end - 1].strip():
            end -= 1
        kept = all_lines[:end]
    return "\n".join(kept[-lines:] if lines > 0 else [])


def sanitize_session_name(name: str) -> str:
    """Sanitize a name for use as a tmux session name (no dots, colons, or slashes)."""
    name = re.sub(r"[.:/ ]", "-", name)
    return name


def new_session(name: str, working_dir: str, start_claude: bool = True) -> str:
    """Create a detached tmux session, optionally launching claude in it.

    Returns the actual session name, suffixed with -2, -3, ... if taken.
    """
    name = sanitize_session_name(name)

    if session_exists(name):
        i = 2
        while session_exists(f"{name}-{i}"):
            i += 1
        name = f"{name}-{i}"

    _run(["tmux", "new-session", "-d", "-s", name, "-c", working_dir])
    if start_claude:
        send_keys(name, "claude")
    return name


def send_keys(target: str, keys: str) -> None:
    """Send keys to a tmux target (session:window.pane)."""
    _run(["tmux", "send-keys", "-t", target, keys, "Enter"])


def kill_session(name: str) -> None:
    """Kill a tmux session."""
    _run(["tmux", "kill-session", "-t", name], check=False)


def session_exists(name: str) -> bool:
    """Check if a tmux session exists."""
    result = _run(["tmux", "has-session", "-t", name], check=False)
    return result.returncode == 0


def rename_session(old_name: str, new_name: str) -> str:
    """Rename a tmux session. Returns the actual new name (may have suffix if taken)."""
    new_name = sanitize_session_name(new_name)

    candidate = new_name
    if session_exists(candidate) and candidate != old_name:
        i = 2
        while session_exists(f"{new_name}-{i}") and f"{new_name}-{i}" != old_name:
            i += 1
        candidate = f"{new_name}-{i}"

    _run(["tmux", "rename-session", "-t", old_name, candidate])
    return candidate


def switch_to_pane(target: str) -> None:
    """Switch the client to a pane, or attach when running outside tmux."""
    if os.environ.get("TMUX"):
        subprocess.run(["tmux", "switch-client", "-t", target])
    else:
        subprocess.run(["tmux", "attach-session", "-t", target])


def current_pane() -> str | None:
    """Return the session:window.pane target of the calling client, if any."""
    result = _run(
        [
            "tmux",
            "display-message",
            "-p",
            "#{session_name}:#{window_index}.#{pane_index}",
        ],
        check=False,
    )
    target = result.stdout.strip()
    if result.returncode != 0 or not target:
        return None
    return target


def is_available() -> bool:
    """Check if tmux is installed."""
    try:
        _run(["tmux", "-V"])
        return True
    except (FileNotFoundError, subprocess.CalledProcessError):
        return False
