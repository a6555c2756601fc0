from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cctmux import config as config_module
from cctmux.cli import cli
from cctmux.cli.info import _format_tmux_status
from cctmux.cli.utils import configure_logging
from cctmux.config import Config
from cctmux.models import GIT_NOT_REPO, GitContext, GitResolved, Status
from cctmux.tmux import TmuxError

from conftest import make_instance


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    config_dir = tmp_path / "cctmux"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_dir / "config.toml")
    with patch("cctmux.cli.configure_logging") as mock_logging:
        yield mock_logging


def test_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "cctmux" in result.output
    for name in ("list", "status", "tui", "config"):
        assert name in result.output


# -- list --


def test_list_empty(runner):
    with patch("cctmux.cli.info.discover_instances", return_value=[]):
        result = runner.invoke(cli, ["list"])
    assert result.exit_code == 0
    assert "No Claude Code instances found." in result.output


def test_list_with_git(runner):
    instances = [
        make_instance("%0", session_name="api", working_directory="/src/api"),
        make_instance(
            "%1",
            session_name="web",
            session_attached=True,
            status=Status.WORKING,
            working_directory="/src/web",
        ),
    ]

    def fake_enrich(path, timeout):
        if path == "/src/web":
            return GitResolved(GitContext(branch="feat/login", has_unstaged=True))
        return GIT_NOT_REPO

    with patch("cctmux.cli.info.discover_instances", return_value=instances), \
         patch("cctmux.cli.info.enrich", side_effect=fake_enrich):
        result = runner.invoke(cli, ["list"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    # attached session first
    assert "web:0.0" in lines[2]
    assert "feat/login *" in lines[2]
    assert "● working" in lines[2]
    assert "api:0.0" in lines[3]
    assert "/src/api" in lines[3]


def test_list_no_git(runner):
    with patch("cctmux.cli.info.discover_instances", return_value=[make_instance()]), \
         patch("cctmux.cli.info.enrich") as mock_enrich:
        result = runner.invoke(cli, ["list", "--no-git"])
    assert result.exit_code == 0
    mock_enrich.assert_not_called()
    assert "main:0.0" in result.output


def test_list_tmux_failure(runner):
    with patch(
        "cctmux.cli.info.discover_instances",
        side_effect=TmuxError(["tmux", "list-panes"], "protocol version mismatch"),
    ):
        result = runner.invoke(cli, ["list"])
    assert result.exit_code == 1
    assert "protocol version mismatch" in result.output


def test_invalid_config(runner):
    config_module.CONFIG_DIR.mkdir()
    config_module.CONFIG_FILE.write_text("[loading]\nenrich_workers = 0\n")
    result = runner.invoke(cli, ["list"])
    assert result.exit_code == 1
    assert "Invalid config" in result.output
    assert "enrich_workers" in result.output


# -- status --


def test_status_summary(runner):
    instances = [
        make_instance("%0", status=Status.WORKING),
        make_instance("%1", status=Status.WAITING_INPUT),
        make_instance("%2", status=Status.WAITING_INPUT),
    ]
    with patch("cctmux.cli.info.discover_instances", return_value=instances):
        result = runner.invoke(cli, ["status"])
    assert result.exit_code == 0
    assert "3 instances" in result.output
    assert "◐ input    2" in result.output
    assert "○ idle     0" in result.output


def test_status_tmux(runner):
    instances = [
        make_instance("%0", session_name="api", status=Status.WAITING_INPUT),
        make_instance("%1", session_name="web", status=Status.IDLE),
    ]
    with patch("cctmux.cli.info.discover_instances", return_value=instances):
        result = runner.invoke(cli, ["status", "--tmux"])
    assert result.exit_code == 0
    assert result.output.strip() == "cc: 1 input [api]"


def test_format_tmux_status_none_waiting():
    assert _format_tmux_status([make_instance(status=Status.WORKING)]) == "cc: 0"


def test_format_tmux_status_dedupes_sessions():
    instances = [
        make_instance("%0", session_name="api", status=Status.WAITING_INPUT),
        make_instance("%1", session_name="api", status=Status.WAITING_INPUT),
    ]
    assert _format_tmux_status(instances) == "cc: 2 input [api]"


def test_format_tmux_status_truncates():
    instances = [
        make_instance(
            f"%{n}", session_name=f"session-number-{n}", status=Status.WAITING_INPUT
        )
        for n in range(6)
    ]
    text = _format_tmux_status(instances)
    assert text.startswith("cc: 6 input [session-number-0, session-number-1")
    assert text.endswith(", +4]")


# -- config --


def test_config_creates_default(runner):
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    assert "[detection]" in result.output
    assert config_module.CONFIG_FILE.exists()


def test_config_works_with_broken_file(runner):
    config_module.CONFIG_DIR.mkdir()
    config_module.CONFIG_FILE.write_text("[detection\n")
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    assert "[detection" in result.output


def test_config_edit(runner, monkeypatch):
    monkeypatch.setenv("EDITOR", "nano")
    with patch("cctmux.cli.admin.subprocess.run") as mock_run:
        result = runner.invoke(cli, ["config", "--edit"])
    assert result.exit_code == 0
    mock_run.assert_called_once_with(["nano", str(config_module.CONFIG_FILE)])


# -- Logging --


def test_logging_options(runner, isolated):
    with patch("cctmux.cli.info.discover_instances", return_value=[]):
        result = runner.invoke(cli, ["--log-level", "debug", "list", "--no-git"])
    assert result.exit_code == 0
    isolated.assert_called_once_with("DEBUG", None, to_terminal=True)


def test_no_subcommand_runs_tui(runner, isolated):
    with patch("cctmux.tmux.is_available", return_value=True), \
         patch("cctmux.tui.app.CctmuxApp") as mock_app:
        result = runner.invoke(cli, [])
    assert result.exit_code == 0
    mock_app.return_value.run.assert_called_once()
    assert isolated.call_args.kwargs["to_terminal"] is False


def test_tui_requires_tmux(runner):
    with patch("cctmux.tmux.is_available", return_value=False), \
         patch("cctmux.tui.app.CctmuxApp") as mock_app:
        result = runner.invoke(cli, ["tui"])
    assert result.exit_code == 1
    assert "tmux is not installed" in result.output
    mock_app.assert_not_called()


def test_tui_loads_config_once(runner):
    cfg = Config.from_dict({})
    with patch("cctmux.cli.utils.get_config", return_value=cfg) as mock_get, \
         patch("cctmux.tmux.is_available", return_value=True), \
         patch("cctmux.tui.app.CctmuxApp") as mock_app:
        result = runner.invoke(cli, ["tui"])
    assert result.exit_code == 0
    mock_get.assert_called_once()
    assert mock_app.call_args.kwargs["config"] is cfg


def test_list_loads_config_once(runner):
    cfg = Config.from_dict({})
    with patch("cctmux.cli.utils.get_config", return_value=cfg) as mock_get, \
         patch("cctmux.cli.info.discover_instances", return_value=[]) as mock_discover:
        result = runner.invoke(cli, ["list", "--no-git"])
    assert result.exit_code == 0
    mock_get.assert_called_once()
    mock_discover.assert_called_once_with(cfg)


def test_configure_logging_to_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    log_file = tmp_path / "logs" / "cctmux.log"
    try:
        configure_logging("INFO", log_file)
        logging.getLogger("cctmux.test").info("hello from test")
        for handler in root.handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text()
        assert root.level == logging.INFO
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
