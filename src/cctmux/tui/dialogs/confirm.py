from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ConfirmDialog(ModalScreen[bool]):
    """Yes/no confirmation for destructive actions."""

    BINDINGS = [
        Binding("y", "confirm", "Confirm", show=False),
        Binding("ctrl+enter", "confirm", "Confirm", show=False),
        Binding("n,escape", "cancel", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    ConfirmDialog {
        align: center middle;
    }

    ConfirmDialog #dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }

    ConfirmDialog .warning {
        color: $warning;
        margin: 1 0 0 0;
    }

    ConfirmDialog .buttons {
        height: auto;
        margin: 1 0 0 0;
        align: center middle;
    }

    ConfirmDialog .buttons Button {
        margin: 0 1;
    }
    """

    def __init__(
        self,
        message: str,
        confirm_label: str = "Confirm",
        warnings: list[str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.message = message
        self.confirm_label = confirm_label
        self.warnings = warnings or []

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.message)
            for warning in self.warnings:
                yield Label(warning, classes="warning")
            with Horizontal(classes="buttons"):
                yield Button(self.confirm_label, variant="error", id="confirm")
                yield Button("Cancel", variant="primary", id="cancel")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "confirm":
            self.action_confirm()
        else:
            self.action_cancel()
