"""Tests for operations/cleanup.py."""

import pytest

from conftest import ok
from pcbuddy.errors import ExecutionFailedError
from pcbuddy.operations.cleanup import FAILURE_MESSAGE, SUCCESS_MESSAGE, DiskCleanup


@pytest.mark.asyncio
async def test_success(make_executor):
    executor = make_executor(ok())
    assert await DiskCleanup(executor).run() == SUCCESS_MESSAGE == "Disk cleanup completed successfully."


@pytest.mark.asyncio
async def test_failure_is_reported_not_raised(make_executor):
    executor = make_executor(ExecutionFailedError("Command timed out after 60s", timed_out=True))
    assert await DiskCleanup(executor).run() == FAILURE_MESSAGE == "Disk cleanup failed."


@pytest.mark.asyncio
async def test_runs_saved_profile_elevated(make_executor):
    executor = make_executor(ok())
    await DiskCleanup(executor).run()
    (request,) = executor.requests
    assert request.elevate is True
    assert executor.commands[0].endswith('-Command "cleanmgr /sagerun:1"')
