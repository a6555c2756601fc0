from __future__ import annotations

import pytest

from cctmux.config import Config
from cctmux.models import ClaudeInstance, GitState, GIT_PENDING, Status


def make_instance(
    pane_id: str = "%0",
    session_name: str = "main",
    session_attached: bool = False,
    window_index: int = 0,
    pane_index: int = 0,
    working_directory: str = "/tmp/project",
    status: Status = Status.IDLE,
    git: GitState = GIT_PENDING,
    pid: int = 1000,
) -> ClaudeInstance:
    return ClaudeInstance(
        session_name=session_name,
        session_attached=session_attached,
        window_index=window_index,
        window_name="zsh",
        pane_id=pane_id,
        pane_index=pane_index,
        pid=pid,
        working_directory=working_directory,
        status=status,
        git=git,
    )


@pytest.fixture
def config() -> Config:
    return Config.from_dict({})
