"""Disk cleanup — runs the saved cleanmgr profile 1 with elevation."""

from __future__ import annotations

import logging

from pcbuddy.errors import ExecutionFailedError
from pcbuddy.execution.executor import Executor

SUCCESS_MESSAGE = "Disk cleanup completed successfully."
FAILURE_MESSAGE = "Disk cleanup failed."


class DiskCleanup:
    def __init__(self, executor: Executor, logger: logging.Logger | None = None) -> None:
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    async def run(self) -> str:
        try:
            await self.executor.run(
                self.executor.request("disk_cleanup", mode="inline", elevate=True, tag="Disk Cleanup")
            )
        except ExecutionFailedError:
            return FAILURE_MESSAGE
        return SUCCESS_MESSAGE
