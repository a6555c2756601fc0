from __future__ import annotations

from cctmux.ancestry import (
    build_process_index,
    find_pane_for_process,
    resolve_instances,
)
from cctmux.models import PaneFact, ProcessFact


def _pane(pane_id: str, pid: int, session: str = "main") -> PaneFact:
    return PaneFact(
        session_name=session,
        session_attached=False,
        window_index=0,
        window_name="zsh",
        pane_id=pane_id,
        pane_index=0,
        pid=pid,
        current_path="/tmp",
    )


def _proc(pid: int, ppid: int, command: str = "zsh", args: str = "") -> ProcessFact:
    return ProcessFact(pid=pid, ppid=ppid, command=command, args=args or command)


def test_direct_child_of_pane_shell():
    index = build_process_index([_proc(100, 1), _proc(200, 100, "claude")])
    assert find_pane_for_process(200, index, {100}) == 100


def test_nested_under_wrapper():
    # pane shell 100 -> npx 150 -> node 200 running claude
    processes = [
        _proc(100, 1),
        _proc(150, 100, "npx"),
        _proc(200, 150, "node", "node /usr/local/bin/claude"),
    ]
    pairs = resolve_instances(processes, [_pane("%0", 100)], "claude")
    assert len(pairs) == 1
    pane, proc = pairs[0]
    assert pane.pane_id == "%0"
    assert proc.pid == 200


def test_process_outside_tmux_is_ignored():
    processes = [
        _proc(100, 1),
        _proc(300, 1, "sshd"),
        _proc(301, 300, "claude"),
    ]
    assert resolve_instances(processes, [_pane("%0", 100)], "claude") == []


def test_cycle_terminates():
    index = build_process_index([_proc(10, 11), _proc(11, 12), _proc(12, 10)])
    assert find_pane_for_process(10, index, {999}) is None


def test_missing_parent():
    index = build_process_index([_proc(10, 55)])
    assert find_pane_for_process(10, index, {999}) is None


def test_hop_bound():
    # chain 1000 -> 999 -> ... -> 2 -> 1, pane shell at 2
    processes = [_proc(pid, pid - 1) for pid in range(2, 1001)]
    index = build_process_index(processes)
    assert find_pane_for_process(1000, index, {2}, max_hops=10) is None
    assert find_pane_for_process(1000, index, {2}, max_hops=1000) == 2


def test_stops_at_init():
    index = build_process_index([_proc(10, 1)])
    assert find_pane_for_process(10, index, {1}) is None


def test_pane_pid_itself_is_target():
    # claude launched directly as the pane command
    processes = [_proc(100, 1, "claude")]
    pairs = resolve_instances(processes, [_pane("%5", 100)], "claude")
    assert [(p.pane_id, proc.pid) for p, proc in pairs] == [("%5", 100)]


def test_first_match_per_pane():
    processes = [
        _proc(100, 1),
        _proc(300, 100, "claude"),
        _proc(200, 100, "claude"),
    ]
    pairs = resolve_instances(processes, [_pane("%0", 100)], "claude")
    assert len(pairs) == 1
    assert pairs[0][1].pid == 200


def test_results_follow_pane_order():
    processes = [
        _proc(100, 1),
        _proc(101, 100, "claude"),
        _proc(200, 1),
        _proc(201, 200, "claude"),
        _proc(300, 1),
    ]
    panes = [_pane("%2", 200, "b"), _pane("%9", 300, "c"), _pane("%1", 100, "a")]
    pairs = resolve_instances(processes, panes, "claude")
    assert [p.pane_id for p, _ in pairs] == ["%2", "%1"]


def test_pane_without_pid_is_skipped():
    processes = [_proc(5, 0, "claude")]
    assert resolve_instances(processes, [_pane("%0", 0)], "claude") == []


def test_claude_under_pane_shell():
    processes = [_proc(50, 1), _proc(100, 50, "claude")]
    pairs = resolve_instances(processes, [_pane("%7", 50)], "claude")
    assert [(p.pane_id, proc.pid) for p, proc in pairs] == [("%7", 100)]


def test_unreachable_chain_is_no_instance():
    # a long chain that never reaches a pane within the bound
    processes = [_proc(pid, pid - 1) for pid in range(2, 500)]
    processes.append(_proc(500, 499, "claude"))
    panes = [_pane("%0", 9999)]
    assert resolve_instances(processes, panes, "claude", max_hops=50) == []
