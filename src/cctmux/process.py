"""System-wide process snapshot via ``ps``."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess

from cctmux.models import ProcessFact

logger = logging.getLogger(__name__)

# comm is left out: it may contain spaces ("Web Content"), which makes the
# columns after it unsplittable. The command name is taken from argv[0].
PS_COMMAND = ["ps", "-eo", "pid=,ppid=,args="]


class ProcessSnapshotError(Exception):
    """Raised when the process table cannot be read."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Process snapshot failed: {reason}")


def _run(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(args, capture_output=True, text=True, check=False)


def parse_ps_line(line: str) -> ProcessFact | None:
    """Parse one ``pid ppid args...`` line. Returns None if malformed."""
    parts = line.split(None, 2)
    if len(parts) < 3:
        return None
    try:
        pid = int(parts[0])
        ppid = int(parts[1])
    except ValueError:
        return None
    args = parts[2].strip()
    return ProcessFact(
        pid=pid,
        ppid=ppid,
        command=os.path.basename(args.split()[0]),
        args=args,
    )


def list_processes() -> list[ProcessFact]:
    """Return every process visible on the host.

    Raises ProcessSnapshotError if ``ps`` is missing or fails; a partial table
    would make ancestry resolution silently miss instances.
    """
    try:
        result = _run(PS_COMMAND)
    except FileNotFoundError as e:
        raise ProcessSnapshotError("ps is not installed") from e

    if result.returncode != 0:
        raise ProcessSnapshotError(result.stderr.strip() or f"exit {result.returncode}")

    processes: list[ProcessFact] = []
    for line in result.stdout.splitlines():
        fact = parse_ps_line(line)
        if fact is None:
            if line.strip():
                logger.debug("Skipping malformed ps line: %r", line)
            continue
        processes.append(fact)
    return processes


def _argv_head(args: str) -> list[str]:
    try:
        argv = shlex.split(args)
    except ValueError:
        argv = args.split()
    return argv[:2]


def _is_installed_script(arg: str, name: str) -> bool:
    return arg == f"bin/{name}" or arg.endswith(f"/bin/{name}")


def is_target_process(fact: ProcessFact, name: str) -> bool:
    """Check whether a process is an instance of the tool called ``name``.

    Matches the executable itself (``claude``, ``/usr/local/bin/claude``), or
    an interpreter running the installed script ``.../bin/<name>`` (claude
    is commonly ``node /usr/local/bin/claude``). A bare ``name`` as an
    argument, as in ``vim claude``, does not count.
    """
    if os.path.basename(fact.command) == name:
        return True
    argv = _argv_head(fact.args)
    if argv and os.path.basename(argv[0]) == name:
        return True
    return len(argv) > 1 and _is_installed_script(argv[1], name)
