"""
System-file repair: sfc scan, then DISM only if sfc could not self-heal.

  idle → scanning ─┬─ scan_failed                       (terminal)
                   ├─ clean                             (terminal)
                   └─ needs_deep_repair ─┬─ done        (terminal)
                                         └─ deep_repair_failed (terminal)

No retries. Every call to run() starts again from idle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from pcbuddy.errors import ExecutionFailedError
from pcbuddy.execution.executor import Executor
from pcbuddy.operations.parsing import scan_needs_deep_repair


class RepairState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SCAN_FAILED = "scan_failed"
    CLEAN = "clean"
    NEEDS_DEEP_REPAIR = "needs_deep_repair"
    DONE = "done"
    DEEP_REPAIR_FAILED = "deep_repair_failed"


TERMINAL_STATES = frozenset((
    RepairState.SCAN_FAILED,
    RepairState.CLEAN,
    RepairState.DONE,
    RepairState.DEEP_REPAIR_FAILED,
))

MESSAGES: dict[RepairState, str] = {
    RepairState.SCAN_FAILED: "System scan failed. Please try again later.",
    RepairState.CLEAN: "SFC completed successfully.",
    RepairState.DONE: "SFC found problems. DISM repair attempted.",
    RepairState.DEEP_REPAIR_FAILED: "SFC found problems but DISM failed.",
}


@dataclass
class RepairOutcome:
    state: RepairState
    message: str
    transitions: list[RepairState] = field(default_factory=list)

    @property
    def problems_found(self) -> bool:
        return RepairState.NEEDS_DEEP_REPAIR in self.transitions


class RepairWorkflow:
    def __init__(self, executor: Executor, logger: logging.Logger | None = None) -> None:
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    async def run(self) -> RepairOutcome:
        """Run the scan and, if needed, the deep repair; return the terminal outcome."""
        transitions = [RepairState.IDLE]

        def finish(state: RepairState) -> RepairOutcome:
            transitions.append(state)
            self.logger.info("[Repair] %s", MESSAGES[state])
            return RepairOutcome(state, MESSAGES[state], transitions)

        transitions.append(RepairState.SCANNING)
        try:
            scan = await self.executor.run(
                self.executor.request("system_file_scan", mode="inline", elevate=True, tag="SFC")
            )
        except ExecutionFailedError:
            return finish(RepairState.SCAN_FAILED)

        if not scan_needs_deep_repair(scan.output):
            return finish(RepairState.CLEAN)

        transitions.append(RepairState.NEEDS_DEEP_REPAIR)
        self.logger.info("[Repair] SFC could not fix everything, running DISM")
        try:
            await self.executor.run(
                self.executor.request("deep_repair", mode="inline", elevate=True, tag="DISM")
            )
        except ExecutionFailedError:
            return finish(RepairState.DEEP_REPAIR_FAILED)

        return finish(RepairState.DONE)
