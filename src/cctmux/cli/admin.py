from __future__ import annotations

import os
import subprocess

import click

from cctmux import tmux
from cctmux.config import Config, ensure_config


@click.command()
@click.pass_obj
def tui(cfg: Config) -> None:
    """Open the interactive instance browser."""
    from cctmux.tui.app import CctmuxApp

    if not tmux.is_available():
        raise click.ClickException("tmux is not installed")
    app = CctmuxApp(config=cfg)
    app.run()


@click.command()
@click.option("--edit", is_flag=True, help="Open config in $EDITOR.")
def config(edit: bool) -> None:
    """View or edit configuration."""
    config_path = ensure_config()

    if edit:
        editor = os.environ.get("EDITOR", "vi")
        subprocess.run([editor, str(config_path)])
    else:
        click.echo(config_path.read_text())
