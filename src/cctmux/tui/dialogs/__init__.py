"""TUI modal dialogs, one per submodule."""

from cctmux.tui.dialogs.actions import ActionsDialog
from cctmux.tui.dialogs.confirm import ConfirmDialog
from cctmux.tui.dialogs.help import HelpDialog
from cctmux.tui.dialogs.new_session import NewSessionDialog
from cctmux.tui.dialogs.text_input import TextInputDialog

__all__ = [
    "ActionsDialog",
    "ConfirmDialog",
    "HelpDialog",
    "NewSessionDialog",
    "TextInputDialog",
]
