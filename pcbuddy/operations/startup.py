"""
Startup programs — enumerate, prioritise, toggle.

getStartupPrograms.ps1 writes a JSON array to <tmp>/startup_programs.json:

    [{"Name": "OneDrive", "RegistryName": "OneDrive", "Source": "HKCU Run",
      "Command": "...", "Safety": "safe"}, ...]

Nothing is cached. toggle() enumerates again so it always targets the entry
that exists right now, not the one that existed when the list was shown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pcbuddy.config import Settings
from pcbuddy.errors import EnumerationFailedError, ExecutionFailedError, NotFoundError, ParseFailedError
from pcbuddy.execution.commands import SCRIPT_GET_STARTUP, SCRIPT_TOGGLE_STARTUP, script_argument, script_path
from pcbuddy.execution.executor import Executor
from pcbuddy.execution.validation import sanitize, validate_string_input
from pcbuddy.operations.parsing import load_json_text

SAFETY_PRIORITY: dict[str, int] = {"danger": 3, "caution": 2, "safe": 1}
DEFAULT_NAME = "Unnamed"

_KNOWN_FIELDS = frozenset(("Name", "RegistryName", "Source", "Command", "Safety"))


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StartupItem:
    name: str
    registry_name: str
    source: str
    command: str
    safety: str                     # "safe" | "caution" | "danger" (others rank as safe)
    priority: int                   # 3 danger, 2 caution, 1 otherwise
    original_index: int
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def sort_key(self) -> tuple[int, int]:
        return self.priority, self.original_index

    def to_dict(self) -> dict[str, Any]:
        """Script-style field names, as the enumeration script emits them."""
        return {
            **self.extra,
            "Name": self.name,
            "RegistryName": self.registry_name,
            "Source": self.source,
            "Command": self.command,
            "Safety": self.safety,
            "priority": self.priority,
            "index": self.original_index,
        }

    @classmethod
    def from_raw(cls, raw: Any, index: int) -> "StartupItem":
        """
        Deserialize one enumeration record.

        Default rules:
          Name         empty/absent  → "Unnamed"
          Command      blank/absent  → "{Name}.exe"
          RegistryName absent        → Name
          Source       absent        → ""
          Safety       absent        → "safe"
        Records that are not objects, or whose known fields are not
        strings/null, raise ParseFailedError.
        """
        if not isinstance(raw, dict):
            raise ParseFailedError(f"Startup item {index} is not an object")

        for key in _KNOWN_FIELDS:
            value = raw.get(key)
            if value is not None and not isinstance(value, str):
                raise ParseFailedError(f"Startup item {index}: {key} must be a string")

        name = raw.get("Name") or DEFAULT_NAME
        command = raw.get("Command") or ""
        if not command.strip():
            command = f"{name}.exe"
        safety = (raw.get("Safety") or "safe").strip().lower()

        return cls(
            name=name,
            registry_name=raw.get("RegistryName") or name,
            source=raw.get("Source") or "",
            command=command,
            safety=safety,
            priority=SAFETY_PRIORITY.get(safety, 1),
            original_index=index,
            extra={k: v for k, v in raw.items() if k not in _KNOWN_FIELDS},
        )


def parse_startup_items(data: Any) -> list[StartupItem]:
    """
    Turn decoded script JSON into StartupItems, in enumeration order.

    ConvertTo-Json unwraps one-element arrays, so a single object is
    treated as a list of one.
    """
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ParseFailedError("Startup program data is not a JSON array")
    return [StartupItem.from_raw(raw, i) for i, raw in enumerate(data)]


def sort_startup_items(items: list[StartupItem]) -> list[StartupItem]:
    """Safe items first, ties kept in enumeration order."""
    return sorted(items, key=lambda item: item.sort_key)


# ── Registry ──────────────────────────────────────────────────────────────────

class StartupRegistry:
    def __init__(
        self,
        executor: Executor,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or executor.settings
        self.logger = logger or logging.getLogger(__name__)

    async def list(self) -> list[StartupItem]:
        """Enumerate startup programs, sorted by (priority, original index)."""
        return sort_startup_items(await self._enumerate())

    async def toggle(self, name: str, enable: bool) -> str:
        """
        Enable or disable the startup item called name (case-insensitive).

        Raises NotFoundError before any toggle command runs if there is no
        such item.
        """
        wanted = validate_string_input(name, 255, "Startup").lower()
        items = await self._enumerate()
        item = next((i for i in items if i.name.lower() == wanted), None)
        if item is None:
            raise NotFoundError(f"Startup item '{name}' not found", "Startup")

        args = (
            script_argument("Name", sanitize(item.registry_name)),
            script_argument("Source", sanitize(item.source)),
            f"-Enable {1 if enable else 0}",
        )
        self.logger.info(
            "[Startup] %s %s (%s)", "Enabling" if enable else "Disabling", item.name, item.source
        )
        result = await self.executor.run(
            self.executor.request(
                str(script_path(self.settings.scripts_dir, SCRIPT_TOGGLE_STARTUP)),
                arguments=args,
                elevate=True,
                tag="Startup",
            )
        )
        return result.stdout

    async def open_task_manager(self) -> bool:
        """Open Task Manager on the Startup tab. Failures are logged only."""
        try:
            await self.executor.run(
                self.executor.request("open_task_manager", mode="inline", tag="Task Manager")
            )
        except ExecutionFailedError as e:
            self.logger.warning("[Task Manager] Failed to open Task Manager: %s", e.message)
            return False
        return True

    # ── Internal ──────────────────────────────────────────────────────────────

    async def _enumerate(self) -> list[StartupItem]:
        json_path = self.settings.startup_json_path
        # a script that exits 0 without writing must not leave the last run's list behind
        try:
            json_path.unlink(missing_ok=True)
        except OSError as e:
            raise EnumerationFailedError(f"Could not clear previous startup list: {e}", "Startup") from e

        try:
            await self.executor.run(
                self.executor.request(
                    str(script_path(self.settings.scripts_dir, SCRIPT_GET_STARTUP)),
                    tag="Startup",
                )
            )
        except ExecutionFailedError as e:
            raise EnumerationFailedError(f"PowerShell script failed: {e.message}", "Startup") from e

        items = parse_startup_items(load_json_text(_read_json_file(json_path)))
        self.logger.debug("[Startup] Enumerated %d startup items", len(items))
        return items


def _read_json_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseFailedError(f"Failed to read JSON from file: {e}", "Startup") from e
