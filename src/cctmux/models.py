from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PaneFact:
    session_name: str
    session_attached: bool
    window_index: int
    window_name: str
    pane_id: str  # e.g. '%3', unique across the tmux server
    pane_index: int
    pid: int  # leaf process owning the pane
    current_path: str


@dataclass(frozen=True)
class ProcessFact:
    pid: int
    ppid: int
    command: str
    args: str = ""


class Status(enum.Enum):
    WORKING = "working"
    IDLE = "idle"
    WAITING_INPUT = "input"
    UNKNOWN = "unknown"

    @property
    def symbol(self) -> str:
        return _STATUS_SYMBOLS[self]

    @property
    def label(self) -> str:
        return self.value


_STATUS_SYMBOLS = {
    Status.WORKING: "●",
    Status.IDLE: "○",
    Status.WAITING_INPUT: "◐",
    Status.UNKNOWN: "?",
}


@dataclass(frozen=True)
class GitContext:
    branch: str  # branch name, or short commit hash when detached
    has_staged: bool = False
    has_unstaged: bool = False
    is_worktree: bool = False
    main_repo_path: str | None = None  # only set for linked worktrees
    toplevel: str | None = None  # root of the checkout containing the path
    has_upstream: bool = False
    has_remote: bool = False
    ahead: int = 0
    behind: int = 0

    @property
    def is_dirty(self) -> bool:
        return self.has_staged or self.has_unstaged


# -- Git enrichment state --
#
# An instance's git information is one of three things: not looked up yet,
# looked up and the path is not a repository, or looked up and resolved.
# ``None`` alone cannot tell the first two apart.


class GitPending:
    """Enrichment has not been attempted yet."""

    def __repr__(self) -> str:
        return "GIT_PENDING"


class GitNotRepo:
    """Enrichment ran and the path is not inside a git repository."""

    def __repr__(self) -> str:
        return "GIT_NOT_REPO"


@dataclass(frozen=True)
class GitResolved:
    """Enrichment ran and produced a context."""

    context: GitContext


GIT_PENDING = GitPending()
GIT_NOT_REPO = GitNotRepo()

GitState = GitPending | GitNotRepo | GitResolved


@dataclass(frozen=True)
class ClaudeInstance:
    session_name: str
    session_attached: bool
    window_index: int
    window_name: str
    pane_id: str
    pane_index: int
    pid: int  # the matched claude process, not the pane's shell
    working_directory: str
    status: Status = Status.UNKNOWN
    git: GitState = GIT_PENDING
    preview: str = ""

    @property
    def target(self) -> str:
        """tmux target string in session:window.pane form."""
        return f"{self.session_name}:{self.window_index}.{self.pane_index}"

    @property
    def git_context(self) -> GitContext | None:
        if isinstance(self.git, GitResolved):
            return self.git.context
        return None

    @property
    def branch(self) -> str | None:
        ctx = self.git_context
        return ctx.branch if ctx else None

    @property
    def display_path(self) -> str:
        """Working directory with the home directory collapsed to ~."""
        path = Path(self.working_directory)
        try:
            relative = path.relative_to(Path.home())
        except ValueError:
            return self.working_directory
        if relative == Path("."):
            return "~"
        return f"~/{relative}"


class LoadingPhase(enum.IntEnum):
    INITIAL = 0
    PANES_DISCOVERED = 1
    ENRICHING = 2
    COMPLETE = 3


@dataclass(frozen=True)
class LoadingState:
    phase: LoadingPhase = LoadingPhase.INITIAL
    completed: int = 0
    total: int = 0

    def advance(self, new: LoadingState) -> LoadingState:
        """Return ``new`` if it moves forward, otherwise keep the current state.

        A state moves forward when its phase is later, or when the phase is
        the same and ``completed`` did not decrease.
        """
        if new.phase < self.phase:
            return self
        if new.phase == self.phase and new.completed < self.completed:
            return self
        return new

    @property
    def is_loading(self) -> bool:
        return self.phase != LoadingPhase.COMPLETE
