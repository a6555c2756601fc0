"""Attribute processes to tmux panes by walking their parent chain."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from cctmux.models import PaneFact, ProcessFact
from cctmux.process import is_target_process

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 100


def build_process_index(processes: Iterable[ProcessFact]) -> dict[int, ProcessFact]:
    """Index a process snapshot by pid."""
    return {p.pid: p for p in processes}


def find_pane_for_process(
    pid: int,
    index: dict[int, ProcessFact],
    pane_pids: Collection[int],
    max_hops: int = DEFAULT_MAX_HOPS,
) -> int | None:
    """Walk from ``pid`` up through its parents until a pane pid is reached.

    Returns the pane pid, or None when the chain ends (pid 1, unknown parent,
    a cycle) or ``max_hops`` parents were visited without a match.
    """
    current = pid
    visited: set[int] = set()

    while current > 1 and len(visited) < max_hops:
        if current in visited:
            logger.debug("Cycle in process ancestry of %d at %d", pid, current)
            return None
        visited.add(current)

        if current in pane_pids:
            return current

        parent = index.get(current)
        if parent is None:
            return None
        current = parent.ppid

    return None


def resolve_instances(
    processes: Iterable[ProcessFact],
    panes: Iterable[PaneFact],
    target: str,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> list[tuple[PaneFact, ProcessFact]]:
    """Pair each pane hosting ``target`` with the matching process.

    At most one pair per pane id; when several target processes live under
    the same pane the lowest pid wins. Pairs come back in pane order.
    """
    panes = list(panes)
    index = build_process_index(processes)

    panes_by_pid: dict[int, list[PaneFact]] = {}
    for pane in panes:
        if pane.pid > 0:
            panes_by_pid.setdefault(pane.pid, []).append(pane)

    matched: dict[str, ProcessFact] = {}
    for pid in sorted(index):
        proc = index[pid]
        if not is_target_process(proc, target):
            continue
        pane_pid = find_pane_for_process(pid, index, panes_by_pid, max_hops)
        if pane_pid is None:
            logger.debug("No pane owns %s process %d", target, pid)
            continue
        for pane in panes_by_pid[pane_pid]:
            matched.setdefault(pane.pane_id, proc)

    return [(pane, matched[pane.pane_id]) for pane in panes if pane.pane_id in matched]
