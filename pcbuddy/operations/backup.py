"""
Backup location resolution and the backup scripts that consume it.

The preferred location lives in HKCU\\Software\\PC-Buddy, value
BackupLocation. A missing value is normal: any query failure or unparsable
output falls back to {home}/Documents/PC-Buddy-Backups. Whatever comes out
is validated before it is embedded in a command.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from pcbuddy.config import Settings
from pcbuddy.errors import ExecutionFailedError, InvalidInputError
from pcbuddy.execution.commands import (
    SCRIPT_BACKUP_INFO,
    SCRIPT_CREATE_BACKUP,
    script_argument,
    script_path,
)
from pcbuddy.execution.executor import Executor
from pcbuddy.execution.validation import validate_and_sanitize_path, validate_path
from pcbuddy.operations.parsing import parse_registry_value

DEFAULT_BACKUP_DIR = ("Documents", "PC-Buddy-Backups")

# reg query prints a handful of lines; anything larger is not what we asked for
_REGISTRY_MAX_OUTPUT_BYTES = 1024 * 1024

# Only the mutating script needs administrator rights
_ELEVATED_SCRIPTS = frozenset((SCRIPT_CREATE_BACKUP,))


def default_backup_path(home: Path) -> str:
    return str(Path(home).joinpath(*DEFAULT_BACKUP_DIR))


class BackupPathResolver:
    def __init__(
        self,
        executor: Executor,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or executor.settings
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(self) -> str:
        """
        Return the backup directory, validated.

        Never raises for a missing or unreadable preference. Raises
        InvalidPathError only if the final path fails validation.
        """
        path = await self._query_registry()
        if path is None:
            path = default_backup_path(self.settings.home)
            self.logger.info("[Backup] No registry value found, using default: %s", path)
        else:
            self.logger.info("[Backup] Found registry path: %s", path)
        return validate_path(path)

    async def with_resolved_path(
        self,
        script_name: str,
        context: str,
        extra_args: Sequence[str] = (),
    ) -> str:
        """Run script_name with -BackupLocation "<resolved path>" prepended to extra_args."""
        backup_path = await self.resolve()
        sanitized = validate_and_sanitize_path(backup_path, context, self.logger)
        args = (script_argument("BackupLocation", sanitized), *extra_args)
        self.logger.info("[%s] Using backup path: %s", context, sanitized)

        result = await self.executor.run(
            self.executor.request(
                str(script_path(self.settings.scripts_dir, script_name)),
                arguments=args,
                elevate=script_name in _ELEVATED_SCRIPTS,
                tag=context,
            )
        )
        return result.stdout

    async def _query_registry(self) -> str | None:
        try:
            result = await self.executor.run(
                self.executor.request(
                    self.settings.registry_key,
                    arguments=(self.settings.registry_value,),
                    mode="registry",
                    max_output_bytes=_REGISTRY_MAX_OUTPUT_BYTES,
                    tag="Backup",
                )
            )
        except (ExecutionFailedError, InvalidInputError) as e:
            self.logger.info("[Backup] Registry query failed: %s", e.message)
            return None
        return parse_registry_value(result.output, self.settings.registry_value)


class BackupService:
    """Caller-facing backup operations."""

    def __init__(self, resolver: BackupPathResolver) -> None:
        self.resolver = resolver

    async def create(self) -> str:
        return await self.resolver.with_resolved_path(SCRIPT_CREATE_BACKUP, "Create Backup")

    async def info(self) -> str:
        return await self.resolver.with_resolved_path(SCRIPT_BACKUP_INFO, "Backup Info")
