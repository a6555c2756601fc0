from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label


class TextInputDialog(ModalScreen[str | None]):
    """Single-line prompt used for filtering and renaming.

    Dismisses with the entered text on Enter, or None on Escape.
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    DEFAULT_CSS = """
    TextInputDialog {
        align: center middle;
    }

    TextInputDialog #dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $accent;
        background: $surface;
    }

    TextInputDialog #dialog Input {
        margin: 1 0 0 0;
    }
    """

    def __init__(
        self,
        title: str,
        value: str = "",
        placeholder: str = "",
        allow_empty: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.title_text = title
        self.value = value
        self.placeholder = placeholder
        self.allow_empty = allow_empty

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(f"[bold]{self.title_text}[/bold]")
            yield Input(value=self.value, placeholder=self.placeholder, id="text-input")

    def on_mount(self) -> None:
        self.query_one("#text-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if not text and not self.allow_empty:
            return
        self.dismiss(text)

    def action_cancel(self) -> None:
        self.dismiss(None)
