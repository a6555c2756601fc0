from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static

from cctmux.models import ClaudeInstance, GitNotRepo, GitResolved
from cctmux.registry import Action

ACTION_KEYS = {
    Action.SWITCH: "s",
    Action.RENAME: "r",
    Action.KILL: "k",
    Action.DELETE_WORKTREE: "d",
}


def describe_git(instance: ClaudeInstance) -> str:
    """One-line rich markup summary of an instance's git state."""
    git = instance.git
    if isinstance(git, GitNotRepo):
        return "[dim]not a git repository[/]"
    if not isinstance(git, GitResolved):
        return "[dim]git: loading...[/]"
    ctx = git.context
    parts = [f"[bold]{ctx.branch}[/]"]
    if ctx.is_worktree:
        parts.append("[cyan]worktree[/]")
    parts.append("[yellow]dirty[/]" if ctx.is_dirty else "[dim]clean[/]")
    if ctx.ahead:
        parts.append(f"[green]↑{ctx.ahead}[/]")
    if ctx.behind:
        parts.append(f"[red]↓{ctx.behind}[/]")
    if not ctx.has_upstream and ctx.has_remote:
        parts.append("[dim]no upstream[/]")
    return "  ".join(parts)


class ActionsDialog(ModalScreen[Action | None]):
    """Menu of actions for the selected instance."""

    BINDINGS = [
        Binding("s", "pick('switch')", "Switch", show=False, priority=True),
        Binding("r", "pick('rename')", "Rename", show=False, priority=True),
        Binding("k", "pick('kill')", "Kill", show=False, priority=True),
        Binding("d", "pick('delete_worktree')", "Delete", show=False, priority=True),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    ActionsDialog {
        align: center middle;
    }

    ActionsDialog #dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $accent;
        background: $surface;
    }

    ActionsDialog .git-info {
        margin: 0 0 1 0;
        color: $text-muted;
    }

    ActionsDialog .action {
        padding: 0 1;
    }

    ActionsDialog #cancel-btn {
        margin: 1 0 0 0;
        width: 100%;
    }
    """

    def __init__(
        self, instance: ClaudeInstance, actions: list[Action], **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self._instance = instance
        self._actions = actions

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(f"[bold]{self._instance.target}[/bold]")
            yield Static(describe_git(self._instance), classes="git-info")
            for action in self._actions:
                yield Static(
                    f"  [bold]\\[{ACTION_KEYS[action]}][/] {action.label}",
                    classes="action",
                )
            yield Button("Cancel (esc)", id="cancel-btn")

    def action_pick(self, value: str) -> None:
        action = Action(value)
        if action in self._actions:
            self.dismiss(action)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, _event: Button.Pressed) -> None:
        self.dismiss(None)
