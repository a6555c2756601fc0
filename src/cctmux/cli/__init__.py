from __future__ import annotations

import sys
from pathlib import Path

import click

# Restore the default excepthook so Rich (installed by Textual) doesn't
# hijack tracebacks with fancy formatting that breaks CI and log parsing.
sys.excepthook = sys.__excepthook__

from cctmux.cli.admin import config, tui
from cctmux.cli.info import list_cmd, status
from cctmux.cli.utils import _load_config, configure_logging


@click.group(invoke_without_command=True)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to this file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: Path | None) -> None:
    """cctmux: find and watch Claude Code sessions running in tmux."""
    try:
        cfg = _load_config()
    except click.ClickException:
        # A broken config must still be fixable with `cctmux config --edit`
        if ctx.invoked_subcommand != "config":
            raise
        configure_logging(log_level or "WARNING", log_file)
        return
    ctx.obj = cfg
    configure_logging(
        log_level or cfg.log_level,
        log_file or cfg.log_file,
        to_terminal=ctx.invoked_subcommand not in (None, "tui"),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


cli.add_command(tui)
cli.add_command(list_cmd)
cli.add_command(status)
cli.add_command(config)

__all__ = ["cli"]
