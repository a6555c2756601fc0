from __future__ import annotations

from pathlib import Path

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label


class NewSessionDialog(ModalScreen[dict | None]):
    """Modal dialog for starting a new tmux session."""

    BINDINGS = [
        Binding("ctrl+enter", "submit", "Submit", show=False),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    NewSessionDialog {
        align: center middle;
    }

    NewSessionDialog #dialog {
        width: 75;
        height: auto;
        padding: 1 2;
        border: thick $accent;
        background: $surface;
    }

    NewSessionDialog #dialog Label {
        margin: 1 0 0 0;
    }

    NewSessionDialog #error {
        color: $error;
    }

    NewSessionDialog .buttons {
        height: auto;
        margin: 1 0 0 0;
        align: center middle;
    }

    NewSessionDialog .buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, default_path: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.default_path = default_path

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label("[bold]New Session[/bold]")
            yield Label("Name:")
            yield Input(value=Path(self.default_path).name, id="name-input")
            yield Label("Directory:")
            yield Input(value=self.default_path, id="path-input")
            yield Checkbox("Start claude", value=True, id="start-claude")
            yield Label("", id="error")
            with Horizontal(classes="buttons"):
                yield Button("Create", variant="primary", id="submit")
                yield Button("Cancel", id="cancel")

    def action_submit(self) -> None:
        name = self.query_one("#name-input", Input).value.strip()
        path_text = self.query_one("#path-input", Input).value.strip()
        if not name:
            self.query_one("#name-input", Input).focus()
            return
        path = Path(path_text).expanduser()
        if not path.is_dir():
            self.query_one("#error", Label).update(f"Not a directory: {path}")
            self.query_one("#path-input", Input).focus()
            return
        self.dismiss(
            {
                "name": name,
                "path": str(path),
                "start_claude": self.query_one("#start-claude", Checkbox).value,
            }
        )

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "submit":
            self.action_submit()
        elif event.button.id == "cancel":
            self.action_cancel()
