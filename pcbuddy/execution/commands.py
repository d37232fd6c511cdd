"""
Command-line construction for PowerShell scripts and fixed inline commands.

The builder never decides trust. Script arguments must already have been
through validation.sanitize(); inline commands only ever come from the
hard-coded INLINE_COMMANDS table, never from user-supplied text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Sequence

from pcbuddy.config import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_S
from pcbuddy.errors import InvalidInputError

POWERSHELL_PREFIX = "powershell -NoProfile -ExecutionPolicy Bypass"

# ── Known operations ──────────────────────────────────────────────────────────

INLINE_COMMANDS: dict[str, str] = {
    "system_file_scan": "sfc /scannow",
    "deep_repair": "DISM /Online /Cleanup-Image /RestoreHealth",
    "disk_cleanup": "cleanmgr /sagerun:1",
    "open_task_manager": "Start-Process taskmgr.exe -ArgumentList '/0 /startup'",
}

SCRIPT_GET_STARTUP = "getStartupPrograms.ps1"
SCRIPT_TOGGLE_STARTUP = "toggleStartup.ps1"
SCRIPT_CREATE_BACKUP = "createBackup.ps1"
SCRIPT_BACKUP_INFO = "getBackupInfo.ps1"

KNOWN_SCRIPTS = frozenset((
    SCRIPT_GET_STARTUP,
    SCRIPT_TOGGLE_STARTUP,
    SCRIPT_CREATE_BACKUP,
    SCRIPT_BACKUP_INFO,
))

_REGISTRY_KEY = re.compile(r"^HK(?:CU|LM)(?:\\[\w .-]+)+$")
_REGISTRY_VALUE = re.compile(r"^[\w .-]{1,255}$")


# ── Request model ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExecutionRequest:
    target: str                           # script path or INLINE_COMMANDS key
    arguments: tuple[str, ...] = ()       # already-sanitized, already-formatted
    elevate: bool = False
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    mode: Literal["script", "inline", "registry"] = "script"
    tag: str = "PowerShell"


# ── Builders ──────────────────────────────────────────────────────────────────

def script_path(scripts_dir: Path, script_name: str) -> Path:
    """Resolve a known script name inside the configured scripts directory."""
    if script_name not in KNOWN_SCRIPTS:
        raise InvalidInputError(f"Unknown script: {script_name}")
    return scripts_dir / script_name


def quote_argument(value: str) -> str:
    """Wrap a sanitized value in double quotes."""
    if '"' in value:
        raise InvalidInputError("Argument contains a double quote")
    return f'"{value}"'


def script_argument(flag: str, value: str) -> str:
    """Return '-Flag "value"'."""
    return f"-{flag} {quote_argument(value)}"


def build_script_command(path: str | Path, args: Sequence[str] = ()) -> str:
    """Non-interactive, policy-bypassing invocation of a PowerShell script."""
    arg_string = f" {' '.join(args)}" if args else ""
    return f'{POWERSHELL_PREFIX} -File {quote_argument(str(path))}{arg_string}'


def build_inline_command(operation: str) -> str:
    """Wrap one of the hard-coded INLINE_COMMANDS in a PowerShell -Command call."""
    try:
        text = INLINE_COMMANDS[operation]
    except KeyError:
        raise InvalidInputError(f"Unknown inline operation: {operation}") from None
    return f'{POWERSHELL_PREFIX} -Command "{text}"'


def build_registry_query(key: str, value_name: str) -> str:
    """Read-only `reg query` for a single value under key."""
    if not _REGISTRY_KEY.match(key) or not _REGISTRY_VALUE.match(value_name):
        raise InvalidInputError("Invalid registry key or value name")
    return f'reg query "{key}" /v {quote_argument(value_name)}'


def build_command(request: ExecutionRequest) -> str:
    """Return the full command text for an ExecutionRequest."""
    if request.mode == "script":
        return build_script_command(request.target, request.arguments)
    if request.mode == "inline":
        return build_inline_command(request.target)
    if request.mode == "registry":
        if len(request.arguments) != 1:
            raise InvalidInputError("Registry query takes exactly one value name")
        return build_registry_query(request.target, request.arguments[0])
    raise InvalidInputError(f"Unknown execution mode: {request.mode}")
