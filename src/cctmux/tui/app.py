from __future__ import annotations

import logging
import os
import subprocess

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Header, Static

from cctmux import git, tmux
from cctmux.config import Config, get_config
from cctmux.loader import ProgressiveLoader
from cctmux.models import ClaudeInstance, GitNotRepo, GitPending, LoadingPhase, Status
from cctmux.registry import Action, DeletionCheck, Mode, Registry
from cctmux.tui.dialogs import (
    ActionsDialog,
    ConfirmDialog,
    HelpDialog,
    NewSessionDialog,
    TextInputDialog,
)

logger = logging.getLogger(__name__)

# Poll the loader quickly while results are streaming in, slowly otherwise.
FAST_POLL = 0.016
IDLE_POLL = 0.1

NORMAL_ONLY_ACTIONS = frozenset(
    {
        "help",
        "next",
        "prev",
        "switch",
        "actions",
        "filter",
        "new_session",
        "rename",
        "kill",
        "refresh",
    }
)

STATUS_STYLES = {
    Status.WORKING: "green",
    Status.IDLE: "dim",
    Status.WAITING_INPUT: "bold yellow",
    Status.UNKNOWN: "dim",
}


def branch_cell(instance: ClaudeInstance) -> Text:
    if isinstance(instance.git, GitPending):
        return Text("…", style="dim")
    if isinstance(instance.git, GitNotRepo):
        return Text("-", style="dim")
    ctx = instance.git.context
    text = Text(ctx.branch, style="cyan" if ctx.is_worktree else "")
    if ctx.is_dirty:
        text.append(" *", style="yellow")
    return text


class CctmuxApp(App):
    """Live view of Claude Code instances running in tmux."""

    TITLE = "cctmux"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main {
        height: 1fr;
    }

    #instances {
        width: 3fr;
    }

    #preview {
        width: 2fr;
        padding: 0 1;
        border-left: solid $secondary;
        overflow: hidden;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("question_mark", "help", "Help", show=True),
        Binding("j,down", "next", "Next", show=False),
        Binding("k,up", "prev", "Prev", show=False),
        Binding("enter", "switch", "Switch", show=True),
        Binding("a", "actions", "Actions", show=True),
        Binding("slash", "filter", "Filter", show=True),
        Binding("n", "new_session", "New", show=True),
        Binding("R", "rename", "Rename", show=False),
        Binding("x", "kill", "Kill", show=False),
        Binding("r", "refresh", "Refresh", show=True),
    ]

    def __init__(self, config: Config | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.config = config or get_config()
        self.registry = Registry()
        self.loader = ProgressiveLoader(self.config)
        self._poll_timer: Timer | None = None
        self._poll_fast = False
        self._preview_pane: str | None = None
        # pane the app was launched from, preselected on the first load
        self._origin: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main"):
            yield DataTable(id="instances", cursor_type="row")
            yield Static("", id="preview")
        yield Static("", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#instances", DataTable)
        table.can_focus = False
        table.add_columns("", "Session", "Pane", "Branch", "Directory")
        if os.environ.get("TMUX"):
            self._origin = tmux.current_pane()
        self.action_refresh()
        self.set_interval(self.config.refresh_interval, self._auto_refresh)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Board keys only apply while no dialog is open."""
        if action in NORMAL_ONLY_ACTIONS and self.registry.mode != Mode.NORMAL:
            return False
        return True

    # -- Loading --

    def _set_poll_rate(self, fast: bool) -> None:
        if self._poll_timer is not None and fast == self._poll_fast:
            return
        if self._poll_timer is not None:
            self._poll_timer.stop()
        self._poll_fast = fast
        self._poll_timer = self.set_interval(
            FAST_POLL if fast else IDLE_POLL, self._poll_loading
        )

    def _poll_loading(self) -> None:
        """Merge everything the loader has produced since the last tick."""
        messages = self.loader.poll()
        if messages and self.registry.apply_all(messages):
            if self._origin and self.registry.instances:
                self.registry.select_target(self._origin)
                self._origin = None
            self._render()
        if not self.registry.is_loading:
            self._set_poll_rate(fast=False)

    def _auto_refresh(self) -> None:
        if self.registry.is_loading or self.registry.mode != Mode.NORMAL:
            return
        self.action_refresh()

    def action_refresh(self) -> None:
        generation = self.loader.start()
        self.registry.begin_cycle(generation)
        self._set_poll_rate(fast=True)
        self._update_status_bar()

    # -- Rendering --

    def _render(self) -> None:
        table = self.query_one("#instances", DataTable)
        visible = self.registry.visible()
        table.clear()
        for inst in visible:
            table.add_row(
                Text(inst.status.symbol, style=STATUS_STYLES[inst.status]),
                Text(
                    inst.session_name,
                    style="bold" if inst.session_attached else "",
                ),
                f"{inst.window_index}.{inst.pane_index}",
                branch_cell(inst),
                inst.display_path,
                key=inst.pane_id,
            )
        if visible:
            table.move_cursor(row=self.registry.selected)
        self._update_status_bar()
        self._update_preview()

    def status_line(self) -> str:
        registry = self.registry
        counts = registry.status_counts()
        parts = [
            f"{counts[Status.WORKING]} working",
            f"{counts[Status.WAITING_INPUT]} input",
            f"{counts[Status.IDLE]} idle",
        ]
        if registry.filter_text:
            parts.append(f"filter: {registry.filter_text}")

        loading = registry.loading
        if loading.phase == LoadingPhase.INITIAL:
            parts.append("discovering...")
        elif loading.phase in (LoadingPhase.PANES_DISCOVERED, LoadingPhase.ENRICHING):
            parts.append(f"git {loading.completed}/{loading.total}")
        if registry.error:
            parts.append(f"error: {registry.error}")
        return " | ".join(parts)

    def _update_status_bar(self) -> None:
        self.query_one("#status-bar", Static).update(Text(self.status_line()))

    def _update_preview(self) -> None:
        inst = self.registry.selected_instance()
        preview = self.query_one("#preview", Static)
        if inst is None:
            self._preview_pane = None
            preview.update("")
            return
        if inst.pane_id != self._preview_pane:
            # Show the status tail right away, the full capture follows
            self._preview_pane = inst.pane_id
            preview.update(Text.from_ansi(inst.preview))
        self._capture_preview(inst.pane_id)

    @work(thread=True, exclusive=True, group="preview")
    def _capture_preview(self, pane_id: str) -> None:
        try:
            content = tmux.capture_pane(pane_id, self.config.preview_lines, False)
        except tmux.TmuxError as e:
            logger.debug("Preview capture failed for %s: %s", pane_id, e)
            return
        self.call_from_thread(self._apply_preview, pane_id, content)

    def _apply_preview(self, pane_id: str, content: str) -> None:
        if pane_id != self._preview_pane:
            return
        self.query_one("#preview", Static).update(Text.from_ansi(content))

    # -- Navigation --

    def action_next(self) -> None:
        self.registry.select_next()
        self._sync_cursor()

    def action_prev(self) -> None:
        self.registry.select_prev()
        self._sync_cursor()

    def _sync_cursor(self) -> None:
        table = self.query_one("#instances", DataTable)
        if table.row_count:
            table.move_cursor(row=self.registry.selected)
        self._update_preview()

    def _require_subject(self) -> ClaudeInstance | None:
        inst = self.registry.subject()
        if inst is None:
            self.notify("No instance selected", severity="warning")
        return inst

    # -- Actions --

    def action_switch(self) -> None:
        inst = self._require_subject()
        if inst is None:
            return
        self._switch_to(inst)

    def _switch_to(self, inst: ClaudeInstance) -> None:
        if os.environ.get("TMUX"):
            tmux.switch_to_pane(inst.target)
        else:
            with self.suspend():
                tmux.switch_to_pane(inst.target)
        self.action_refresh()

    def action_actions(self) -> None:
        inst = self._require_subject()
        if inst is None:
            return
        self.registry.set_mode(Mode.ACTION_MENU)
        self.push_screen(
            ActionsDialog(inst, self.registry.available_actions(inst)),
            lambda action: self._on_action_chosen(action, inst),
        )

    def _on_action_chosen(self, action: Action | None, inst: ClaudeInstance) -> None:
        if action is None:
            self.registry.set_mode(Mode.NORMAL)
            return
        mode = self.registry.choose_action(action)
        if mode == Mode.RENAME:
            self._open_rename(inst)
        elif mode == Mode.CONFIRM_ACTION:
            self._open_confirm(inst, action)
        elif action == Action.SWITCH:
            self._switch_to(inst)

    def action_filter(self) -> None:
        self.registry.set_mode(Mode.FILTER)
        self.push_screen(
            TextInputDialog(
                "Filter",
                value=self.registry.filter_text,
                placeholder="session, path or branch",
                allow_empty=True,
            ),
            self._on_filter,
        )

    def _on_filter(self, text: str | None) -> None:
        self.registry.set_mode(Mode.NORMAL)
        if text is not None:
            self.registry.set_filter(text)
            self._render()

    def action_rename(self) -> None:
        inst = self._require_subject()
        if inst is None:
            return
        self.registry.choose_action(Action.RENAME)
        self._open_rename(inst)

    def _open_rename(self, inst: ClaudeInstance) -> None:
        self.push_screen(
            TextInputDialog(f"Rename session {inst.session_name}", value=inst.session_name),
            lambda name: self._on_rename(name, inst),
        )

    def _on_rename(self, name: str | None, inst: ClaudeInstance) -> None:
        self.registry.set_mode(Mode.NORMAL)
        if not name or name == inst.session_name:
            return
        try:
            actual = tmux.rename_session(inst.session_name, name)
        except subprocess.CalledProcessError as e:
            self.notify(f"Rename failed: {e.stderr.strip()}", severity="error")
            return
        self.notify(f"Renamed to {actual}")
        self.action_refresh()

    def action_kill(self) -> None:
        inst = self._require_subject()
        if inst is None:
            return
        self.registry.choose_action(Action.KILL)
        self._open_confirm(inst, Action.KILL)

    def _open_confirm(self, inst: ClaudeInstance, action: Action) -> None:
        warnings: list[str] = []
        check = None
        if action == Action.DELETE_WORKTREE:
            check = self.registry.deletion_check(inst.pane_id)
            if check is None or check.worktree_path is None:
                self.registry.set_mode(Mode.NORMAL)
                self.notify("Not a worktree", severity="error")
                return
            message = (
                f"Kill {inst.session_name} and delete worktree\n{check.worktree_path}?"
            )
            if check.is_dirty:
                warnings.append("Worktree has uncommitted changes. They will be lost.")
            if check.other_panes:
                warnings.append(
                    f"Also in use by {len(check.other_panes)} other instance(s)."
                )
            label = "Force delete" if check.is_dirty else "Delete"
        else:
            message = f"Kill session {inst.session_name}?"
            label = "Kill"
        self.push_screen(
            ConfirmDialog(message, confirm_label=label, warnings=warnings),
            lambda confirmed: self._on_confirmed(confirmed, inst, check),
        )

    def _on_confirmed(
        self,
        confirmed: bool,
        inst: ClaudeInstance,
        check: DeletionCheck | None = None,
    ) -> None:
        action = self.registry.pending_action
        self.registry.set_mode(Mode.NORMAL)
        if not confirmed or action is None:
            return

        if action == Action.DELETE_WORKTREE:
            # the session stays alive when git refuses the removal
            if check is None or not self._delete_worktree(inst, check):
                return
        tmux.kill_session(inst.session_name)
        if action != Action.DELETE_WORKTREE:
            self.notify(f"Killed {inst.session_name}")
        self.action_refresh()

    def _delete_worktree(self, inst: ClaudeInstance, check: DeletionCheck) -> bool:
        ctx = inst.git_context
        if ctx is None or ctx.main_repo_path is None or check.worktree_path is None:
            self.notify("Not a worktree", severity="error")
            return False
        try:
            git.delete_worktree(
                check.worktree_path, ctx.main_repo_path, force=check.is_dirty
            )
        except git.GitError as e:
            self.notify(str(e), severity="error")
            return False
        self.notify(f"Deleted worktree {check.worktree_path}")
        return True

    def action_new_session(self) -> None:
        inst = self.registry.selected_instance()
        default_path = inst.working_directory if inst else os.getcwd()
        self.registry.set_mode(Mode.NEW_SESSION)
        self.push_screen(NewSessionDialog(default_path), self._on_new_session)

    def _on_new_session(self, result: dict | None) -> None:
        self.registry.set_mode(Mode.NORMAL)
        if result is None:
            return
        try:
            name = tmux.new_session(
                result["name"], result["path"], start_claude=result["start_claude"]
            )
        except subprocess.CalledProcessError as e:
            self.notify(f"Failed to create session: {e.stderr.strip()}", severity="error")
            return
        self.notify(f"Created {name}")
        self.action_refresh()

    def action_help(self) -> None:
        self.registry.set_mode(Mode.HELP)
        self.push_screen(HelpDialog(), lambda _: self.registry.set_mode(Mode.NORMAL))
