from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import click

from cctmux.config import Config
from cctmux.loader import discover_instances, enrich
from cctmux.models import ClaudeInstance, GitResolved, Status
from cctmux.process import ProcessSnapshotError
from cctmux.registry import sort_instances
from cctmux.tmux import TmuxError


def _discover(config: Config, with_git: bool) -> list[ClaudeInstance]:
    try:
        instances = discover_instances(config)
    except (TmuxError, ProcessSnapshotError) as e:
        raise click.ClickException(str(e)) from e

    if with_git and instances:
        with ThreadPoolExecutor(max_workers=config.enrich_workers) as pool:
            states = pool.map(
                lambda inst: enrich(inst.working_directory, config.git_timeout),
                instances,
            )
            instances = [
                replace(inst, git=state) for inst, state in zip(instances, states)
            ]
    return sort_instances(instances)


@click.command("list")
@click.option("--no-git", is_flag=True, help="Skip git branch lookup.")
@click.pass_obj
def list_cmd(config: Config, no_git: bool) -> None:
    """List Claude Code instances running in tmux."""
    instances = _discover(config, with_git=not no_git)
    if not instances:
        click.echo("No Claude Code instances found.")
        return

    click.echo(f"{'':2}{'Status':<8}  {'Target':<28}  {'Branch':<25}  {'Directory'}")
    click.echo("-" * 90)
    for inst in instances:
        if isinstance(inst.git, GitResolved):
            ctx = inst.git.context
            branch = ctx.branch + (" *" if ctx.is_dirty else "")
        else:
            branch = "-"
        attached = "@" if inst.session_attached else " "
        click.echo(
            f"{inst.status.symbol} {inst.status.label:<8}  "
            f"{attached}{inst.target:<27}  {branch:<25}  {inst.display_path}"
        )


def _format_tmux_status(instances: list[ClaudeInstance]) -> str:
    """Format a compact status string for tmux status-right."""
    waiting = [i for i in instances if i.status == Status.WAITING_INPUT]
    if not waiting:
        return "cc: 0"

    names: list[str] = []
    for inst in waiting:
        if inst.session_name not in names:
            names.append(inst.session_name)

    count = len(waiting)
    max_len = 50  # leave room for "cc: N input []"
    shown: list[str] = []
    used = 0
    for name in names:
        entry_len = len(name) + (2 if shown else 0)
        if used + entry_len > max_len:
            shown.append(f"+{len(names) - len(shown)}")
            break
        shown.append(name)
        used += entry_len

    return f"cc: {count} input [{', '.join(shown)}]"


@click.command()
@click.option(
    "--tmux", "tmux_mode", is_flag=True, help="Compact output for tmux status bar."
)
@click.pass_obj
def status(config: Config, tmux_mode: bool) -> None:
    """Summarise instance statuses."""
    instances = _discover(config, with_git=False)
    if tmux_mode:
        click.echo(_format_tmux_status(instances))
        return

    counts = {s: 0 for s in Status}
    for inst in instances:
        counts[inst.status] += 1
    click.echo(f"{len(instances)} instances")
    for s in Status:
        click.echo(f"  {s.symbol} {s.label:<8} {counts[s]}")
