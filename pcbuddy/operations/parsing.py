"""
Text scraping of external tool output.

sfc, reg and the PowerShell scripts are outside our control, so every
pattern we match against their output lives here where it can be tested
on its own.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pcbuddy.errors import ParseFailedError

# sfc /scannow: "Windows Resource Protection found corrupt files but was unable to fix some of them."
SCAN_UNRESOLVED_MARKER = re.compile(r"unable to fix", re.IGNORECASE)

# reg query output, e.g.
#   HKEY_CURRENT_USER\Software\PC-Buddy
#       BackupLocation    REG_SZ    D:\Backups
REGISTRY_VALUE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"BackupLocation\s+REG_SZ\s+(.+?)(?:\s*$|\r|\n)", re.MULTILINE),
    re.compile(r"REG_SZ\s+(.+?)(?:\s*$|\r|\n)", re.MULTILINE),
)

_BOM = "\ufeff"


def scan_needs_deep_repair(output: str) -> bool:
    """True if scanner output says it found corruption it could not repair."""
    # sfc writes UTF-16 when its output is redirected; drop the NUL bytes
    return bool(SCAN_UNRESOLVED_MARKER.search(output.replace("\x00", "")))


def registry_value_patterns(value_name: str) -> tuple[re.Pattern[str], ...]:
    """Key-prefixed pattern first, then the looser REG_SZ-only fallback."""
    if value_name == "BackupLocation":
        return REGISTRY_VALUE_PATTERNS
    return (
        re.compile(rf"{re.escape(value_name)}\s+REG_SZ\s+(.+?)(?:\s*$|\r|\n)", re.MULTILINE),
        REGISTRY_VALUE_PATTERNS[1],
    )


def parse_registry_value(output: str, value_name: str = "BackupLocation") -> str | None:
    """Return the REG_SZ data from reg query output, or None if absent/blank."""
    for pattern in registry_value_patterns(value_name):
        match = pattern.search(output)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def load_json_text(raw: str) -> Any:
    """json.loads with a leading byte-order mark stripped."""
    if raw.startswith(_BOM):
        raw = raw[len(_BOM):]
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseFailedError(f"Failed to parse JSON: {e.msg}") from e
