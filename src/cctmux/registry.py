"""Authoritative store of discovered instances plus the UI mode machine.

A ``Registry`` belongs to the consumer's thread. Loader messages are merged
into it with ``apply()``; the presentation layer only ever reads from it.
"""

from __future__ import annotations

import enum
import logging
from collections import Counter
from dataclasses import dataclass, field, replace

from cctmux.loader import (
    EnrichmentProgress,
    EnrichmentReady,
    Failed,
    LoaderMessage,
    PanesReady,
)
from cctmux.models import (
    ClaudeInstance,
    GitResolved,
    LoadingPhase,
    LoadingState,
    Status,
)

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    NORMAL = "normal"
    FILTER = "filter"
    ACTION_MENU = "action_menu"
    CONFIRM_ACTION = "confirm_action"
    NEW_SESSION = "new_session"
    RENAME = "rename"
    HELP = "help"


TRANSITIONS: dict[Mode, frozenset[Mode]] = {
    Mode.NORMAL: frozenset(
        {
            Mode.FILTER,
            Mode.ACTION_MENU,
            Mode.CONFIRM_ACTION,
            Mode.NEW_SESSION,
            Mode.RENAME,
            Mode.HELP,
        }
    ),
    Mode.FILTER: frozenset({Mode.NORMAL}),
    Mode.ACTION_MENU: frozenset({Mode.NORMAL, Mode.CONFIRM_ACTION, Mode.RENAME}),
    Mode.CONFIRM_ACTION: frozenset({Mode.NORMAL}),
    Mode.NEW_SESSION: frozenset({Mode.NORMAL}),
    Mode.RENAME: frozenset({Mode.NORMAL}),
    Mode.HELP: frozenset({Mode.NORMAL}),
}

# Modes that act on the selected instance
SUBJECT_MODES = frozenset(
    {Mode.NORMAL, Mode.FILTER, Mode.ACTION_MENU, Mode.CONFIRM_ACTION, Mode.RENAME}
)


class Action(enum.Enum):
    SWITCH = "switch"
    RENAME = "rename"
    KILL = "kill"
    DELETE_WORKTREE = "delete_worktree"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]

    @property
    def needs_confirmation(self) -> bool:
        return self in (Action.KILL, Action.DELETE_WORKTREE)


_ACTION_LABELS = {
    Action.SWITCH: "Switch to pane",
    Action.RENAME: "Rename session",
    Action.KILL: "Kill session",
    Action.DELETE_WORKTREE: "Delete worktree",
}


class InvalidTransitionError(Exception):
    """Raised when a mode change is not in the transition table."""

    def __init__(self, current: Mode, target: Mode) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current.value} to {target.value}.")


@dataclass(frozen=True)
class DeletionCheck:
    """What the UI needs to know before offering to delete a worktree."""

    is_worktree: bool
    is_dirty: bool
    other_panes: tuple[str, ...]  # other instances working inside the same checkout
    worktree_path: str | None = None  # top level of the linked worktree


def sort_key(instance: ClaudeInstance) -> tuple[bool, str, int, int]:
    """Attached sessions first, then session name, window, pane."""
    return (
        not instance.session_attached,
        instance.session_name,
        instance.window_index,
        instance.pane_index,
    )


def sort_instances(instances: list[ClaudeInstance]) -> list[ClaudeInstance]:
    return sorted(instances, key=sort_key)


@dataclass
class Registry:
    instances: list[ClaudeInstance] = field(default_factory=list)
    generation: int = 0
    loading: LoadingState = field(default_factory=LoadingState)
    mode: Mode = Mode.NORMAL
    selected: int = 0
    filter_text: str = ""
    error: str | None = None
    pending_action: Action | None = None

    # -- Loading --

    def begin_cycle(self, generation: int) -> None:
        """Adopt ``generation`` as current. Keeps the instances on display."""
        if generation <= self.generation:
            raise ValueError(
                f"Generation {generation} is not newer than {self.generation}."
            )
        self.generation = generation
        self.loading = LoadingState()

    def apply(self, message: LoaderMessage) -> bool:
        """Merge one loader message. Returns True if anything changed."""
        if message.generation != self.generation:
            logger.debug(
                "Ignoring %s for generation %d (current %d)",
                type(message).__name__,
                message.generation,
                self.generation,
            )
            return False

        if isinstance(message, PanesReady):
            return self._apply_panes(message)
        if isinstance(message, EnrichmentReady):
            return self._apply_enrichment(message)
        if isinstance(message, EnrichmentProgress):
            return self._apply_progress(message)
        if isinstance(message, Failed):
            return self._apply_failed(message)
        raise TypeError(f"Unknown loader message: {message!r}")

    def apply_all(self, messages: list[LoaderMessage]) -> bool:
        changed = False
        for message in messages:
            changed = self.apply(message) or changed
        return changed

    def _advance(self, new: LoadingState) -> None:
        self.loading = self.loading.advance(new)

    def _apply_panes(self, message: PanesReady) -> bool:
        previous = self.selected_instance()
        self.instances = sort_instances(list(message.instances))
        self.error = None
        self._advance(
            LoadingState(LoadingPhase.PANES_DISCOVERED, 0, len(self.instances))
        )
        self._reselect(previous.pane_id if previous else None)
        return True

    def _apply_enrichment(self, message: EnrichmentReady) -> bool:
        for idx, inst in enumerate(self.instances):
            if inst.pane_id == message.pane_id:
                if inst.git == message.git:
                    return False
                previous = self.selected_instance()
                self.instances[idx] = replace(inst, git=message.git)
                # Branch names take part in filtering, so the visible set may change
                self._reselect(previous.pane_id if previous else None)
                return True
        logger.debug("Enrichment for vanished pane %s", message.pane_id)
        return False

    def _apply_progress(self, message: EnrichmentProgress) -> bool:
        before = self.loading
        if message.completed >= message.total:
            new = LoadingState(LoadingPhase.COMPLETE, message.completed, message.total)
        else:
            new = LoadingState(LoadingPhase.ENRICHING, message.completed, message.total)
        self._advance(new)
        return self.loading != before

    def _apply_failed(self, message: Failed) -> bool:
        self.error = message.reason
        self._advance(
            LoadingState(LoadingPhase.COMPLETE, self.loading.completed, self.loading.total)
        )
        return True

    @property
    def is_loading(self) -> bool:
        return self.loading.is_loading

    # -- Views --

    def visible(self) -> list[ClaudeInstance]:
        """Instances matching the current filter, in display order."""
        needle = self.filter_text.strip().lower()
        if not needle:
            return list(self.instances)
        return [inst for inst in self.instances if _matches(inst, needle)]

    def status_counts(self) -> dict[Status, int]:
        counts = Counter(inst.status for inst in self.instances)
        return {status: counts.get(status, 0) for status in Status}

    def find(self, pane_id: str) -> ClaudeInstance | None:
        for inst in self.instances:
            if inst.pane_id == pane_id:
                return inst
        return None

    # -- Selection --

    def _clamp(self) -> None:
        count = len(self.visible())
        if count == 0:
            self.selected = 0
        else:
            self.selected = max(0, min(self.selected, count - 1))

    def _reselect(self, pane_id: str | None) -> None:
        if pane_id is not None:
            for idx, inst in enumerate(self.visible()):
                if inst.pane_id == pane_id:
                    self.selected = idx
                    return
        self._clamp()

    def selected_instance(self) -> ClaudeInstance | None:
        visible = self.visible()
        if not visible:
            return None
        self.selected = max(0, min(self.selected, len(visible) - 1))
        return visible[self.selected]

    def select_next(self) -> None:
        count = len(self.visible())
        if count:
            self.selected = min(self.selected + 1, count - 1)

    def select_prev(self) -> None:
        self.selected = max(self.selected - 1, 0)
        self._clamp()

    def select_target(self, target: str) -> bool:
        """Select the visible instance at a session:window.pane target."""
        for idx, inst in enumerate(self.visible()):
            if inst.target == target:
                self.selected = idx
                return True
        return False

    def set_filter(self, text: str) -> None:
        previous = self.selected_instance()
        self.filter_text = text
        self._reselect(previous.pane_id if previous else None)

    # -- Modes --

    def set_mode(self, mode: Mode) -> None:
        if mode == self.mode:
            return
        if mode not in TRANSITIONS[self.mode]:
            raise InvalidTransitionError(self.mode, mode)
        if mode == Mode.NORMAL:
            self.pending_action = None
        self.mode = mode

    def choose_action(self, action: Action) -> Mode:
        """Move to the mode that follows picking ``action``.

        Rename and confirmed actions stay pending until the follow-up mode
        returns to NORMAL. Anything else runs immediately, so the registry
        goes straight back to NORMAL.
        """
        if action == Action.RENAME:
            self.set_mode(Mode.RENAME)
            self.pending_action = action
        elif action.needs_confirmation:
            self.set_mode(Mode.CONFIRM_ACTION)
            self.pending_action = action
        else:
            self.set_mode(Mode.NORMAL)
        return self.mode

    def subject(self) -> ClaudeInstance | None:
        """The instance the current mode operates on, if any."""
        if self.mode not in SUBJECT_MODES:
            return None
        return self.selected_instance()

    def available_actions(self, instance: ClaudeInstance | None = None) -> list[Action]:
        instance = instance or self.selected_instance()
        if instance is None:
            return []
        actions = [Action.SWITCH, Action.RENAME, Action.KILL]
        ctx = instance.git_context
        if ctx is not None and ctx.is_worktree:
            actions.append(Action.DELETE_WORKTREE)
        return actions

    # -- Safety checks --

    def deletion_check(self, pane_id: str) -> DeletionCheck | None:
        inst = self.find(pane_id)
        if inst is None:
            return None
        ctx = inst.git_context
        is_worktree = bool(ctx and ctx.is_worktree)
        root = ctx.toplevel if ctx and ctx.toplevel else inst.working_directory
        others = tuple(
            other.pane_id
            for other in self.instances
            if other.pane_id != pane_id and _is_within(other.working_directory, root)
        )
        return DeletionCheck(
            is_worktree=is_worktree,
            is_dirty=bool(ctx and ctx.is_dirty),
            other_panes=others,
            worktree_path=root if is_worktree else None,
        )


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip("/") + "/")


def _matches(inst: ClaudeInstance, needle: str) -> bool:
    haystacks = [inst.session_name, inst.working_directory]
    if isinstance(inst.git, GitResolved):
        haystacks.append(inst.git.context.branch)
    return any(needle in h.lower() for h in haystacks)
