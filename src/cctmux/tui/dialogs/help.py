from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from cctmux.models import Status


class HelpDialog(ModalScreen[None]):
    """Help overlay showing keybindings and status symbols."""

    BINDINGS = [("escape", "close", "Close"), ("question_mark", "close", "Close")]

    DEFAULT_CSS = """
    HelpDialog {
        align: center middle;
    }

    HelpDialog #dialog {
        width: 56;
        height: auto;
        padding: 1 2;
        border: thick $accent;
        background: $surface;
    }

    HelpDialog Button {
        margin: 1 0 0 0;
        width: 100%;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label("[bold]Keybindings[/bold]")
            yield Label("")
            yield Label("j/Down    Next instance")
            yield Label("k/Up      Previous instance")
            yield Label("Enter     Switch to pane")
            yield Label("a         Actions for selected instance")
            yield Label("/         Filter by session, path or branch")
            yield Label("n         New session running claude")
            yield Label("R         Rename session")
            yield Label("x         Kill session")
            yield Label("r         Refresh")
            yield Label("q         Quit")
            yield Label("")
            yield Label("[bold]Status[/bold]")
            for status in Status:
                yield Label(f"{status.symbol}  {status.label}")
            yield Button("Close", id="close")

    def on_button_pressed(self, _event: Button.Pressed) -> None:
        self.dismiss(None)

    def action_close(self) -> None:
        self.dismiss(None)
