"""
Shared pytest fixtures.
"""
import logging
from pathlib import Path
from typing import Callable, Union

import pytest

from pcbuddy import system_info
from pcbuddy.config import Settings
from pcbuddy.execution.commands import ExecutionRequest, build_command
from pcbuddy.execution.executor import ExecutionResult, Executor

Step = Union[ExecutionResult, Exception, Callable[[ExecutionRequest], ExecutionResult]]


class FakeExecutor(Executor):
    """
    Executor that never spawns anything.

    Each run() consumes the next scripted step: an ExecutionResult is
    returned, an exception is raised, a callable is called with the request.
    Commands are still built so malformed requests fail as they would for real.
    """

    def __init__(self, settings: Settings, steps: list[Step] | None = None) -> None:
        super().__init__(settings, logger=logging.getLogger("pcbuddy.tests"))
        self.steps: list[Step] = list(steps or [])
        self.requests: list[ExecutionRequest] = []
        self.commands: list[str] = []

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        self.requests.append(request)
        self.commands.append(build_command(request))
        if not self.steps:
            raise AssertionError(f"unexpected request: {request}")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return step


def ok(stdout: str = "", stderr: str = "") -> ExecutionResult:
    return ExecutionResult(stdout=stdout, stderr=stderr, returncode=0)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        scripts_dir=tmp_path / "assets",
        startup_json_path=tmp_path / "startup_programs.json",
        home=tmp_path / "home",
        log_file=None,
    )


@pytest.fixture
def make_executor(settings: Settings):
    def _make(*steps: Step) -> FakeExecutor:
        return FakeExecutor(settings, list(steps))
    return _make


@pytest.fixture(autouse=True)
def clear_lru_caches():
    """Prevent lru_cache state from leaking between tests."""
    yield
    system_info.get_system_info.cache_clear()


@pytest.fixture(autouse=True)
def reset_pcbuddy_logger():
    """configure_logging() detaches the pcbuddy logger from root; undo it so caplog works."""
    yield
    logger = logging.getLogger("pcbuddy")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
