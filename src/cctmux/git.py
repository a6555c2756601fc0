from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

from cctmux.models import GitContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_AB_RE = re.compile(r"^\+(\d+) -(\d+)$")


class GitError(Exception):
    """Raised when git cannot be run or a git command fails unexpectedly."""

    def __init__(self, command: list[str], stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr.strip()
        msg = f"{' '.join(command[:4])} failed"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)


def _git(
    path: str, *args: str, timeout: float = DEFAULT_TIMEOUT
) -> subprocess.CompletedProcess[str]:
    cmd = ["git", "-C", path, *args]
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise GitError(cmd, "git is not installed") from e
    except subprocess.TimeoutExpired as e:
        raise GitError(cmd, f"timed out after {timeout}s") from e


def _resolve(base: str, git_path: str) -> Path:
    p = Path(git_path)
    if not p.is_absolute():
        p = Path(base) / p
    return p.resolve()


@dataclass(frozen=True)
class StatusSummary:
    branch: str
    has_staged: bool
    has_unstaged: bool
    has_upstream: bool
    ahead: int
    behind: int


def parse_status_v2(output: str) -> StatusSummary:
    """Parse ``git status --porcelain=v2 --branch`` output."""
    oid = ""
    head = ""
    has_upstream = False
    ahead = behind = 0
    has_staged = has_unstaged = False

    for line in output.splitlines():
        if line.startswith("# branch.oid "):
            oid = line.split(" ", 2)[2]
        elif line.startswith("# branch.head "):
            head = line.split(" ", 2)[2]
        elif line.startswith("# branch.upstream "):
            has_upstream = True
        elif line.startswith("# branch.ab "):
            match = _AB_RE.match(line.split(" ", 2)[2])
            if match:
                ahead, behind = int(match.group(1)), int(match.group(2))
        elif line.startswith(("1 ", "2 ", "u ")):
            xy = line.split(" ", 2)[1]
            if line.startswith("u "):
                has_unstaged = True
                continue
            if xy[0] != ".":
                has_staged = True
            if xy[1] != ".":
                has_unstaged = True
        elif line.startswith("? "):
            has_unstaged = True

    if head and head != "(detached)":
        branch = head
    elif oid and oid != "(initial)":
        branch = oid[:7]
    else:
        branch = "HEAD"

    return StatusSummary(
        branch=branch,
        has_staged=has_staged,
        has_unstaged=has_unstaged,
        has_upstream=has_upstream,
        ahead=ahead,
        behind=behind,
    )


def detect_git_context(path: str, timeout: float = DEFAULT_TIMEOUT) -> GitContext | None:
    """Describe the git checkout containing ``path``.

    Returns None when ``path`` is not inside a work tree (including bare
    repositories and paths that no longer exist). Raises GitError when git
    itself is unavailable or hangs.
    """
    result = _git(
        path,
        "rev-parse",
        "--is-bare-repository",
        "--git-dir",
        "--git-common-dir",
        "--show-toplevel",
        timeout=timeout,
    )
    # --show-toplevel fails outside a work tree (bare repos, inside .git)
    if result.returncode != 0:
        return None

    lines = result.stdout.splitlines()
    if len(lines) < 4 or lines[0].strip() == "true":
        return None

    git_dir = _resolve(path, lines[1].strip())
    common_dir = _resolve(path, lines[2].strip())
    is_worktree = git_dir != common_dir

    status = _git(
        path, "status", "--porcelain=v2", "--branch", "--ignore-submodules",
        timeout=timeout,
    )
    if status.returncode != 0:
        # Not a work tree after all (e.g. inside the .git directory)
        logger.debug("git status failed in %s: %s", path, status.stderr.strip())
        return None
    info = parse_status_v2(status.stdout)

    remotes = _git(path, "remote", timeout=timeout)
    has_remote = remotes.returncode == 0 and bool(remotes.stdout.strip())

    return GitContext(
        branch=info.branch,
        has_staged=info.has_staged,
        has_unstaged=info.has_unstaged,
        is_worktree=is_worktree,
        main_repo_path=str(common_dir.parent) if is_worktree else None,
        toplevel=lines[3].strip(),
        has_upstream=info.has_upstream,
        has_remote=has_remote,
        ahead=info.ahead,
        behind=info.behind,
    )


def delete_worktree(worktree_path: str, main_repo_path: str, force: bool = False) -> None:
    """Remove a linked worktree and prune git's bookkeeping.

    Without ``force`` git refuses to remove a worktree with uncommitted
    changes. Raises GitError on failure.
    """
    args = ["worktree", "remove", worktree_path]
    if force:
        args.append("--force")
    result = _git(main_repo_path, *args)
    if result.returncode != 0:
        raise GitError(["git", "-C", main_repo_path, *args], result.stderr)

    _git(main_repo_path, "worktree", "prune")
