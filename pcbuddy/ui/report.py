"""
Result rendering for the CLI.

Every operation ends in either a short status string or a PCBuddyError;
both are printed here as one Panel or one line. Startup items get a table,
system info a two-column grid.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pcbuddy.errors import PCBuddyError
from pcbuddy.operations.repair import RepairOutcome, RepairState
from pcbuddy.operations.startup import StartupItem
from pcbuddy.ui.theme import (
    COLOR_BRAND,
    COLOR_DIM,
    COLOR_TEXT,
    ICON_ERROR,
    ICON_OK,
    ICON_WARNING,
    SAFETY_ICONS,
    SAFETY_STYLES,
    STYLE_DIM,
)

_REPAIR_BORDERS = {
    RepairState.CLEAN: "bright_green",
    RepairState.DONE: "yellow",
    RepairState.DEEP_REPAIR_FAILED: "bright_red",
    RepairState.SCAN_FAILED: "bright_red",
}

_INFO_LABELS = (
    ("os_type", "OS"),
    ("os_platform", "Platform"),
    ("os_release", "Release"),
    ("arch", "Architecture"),
    ("cpu", "CPU"),
    ("ram", "Memory"),
    ("hostname", "Hostname"),
    ("uptime", "Uptime"),
)


def print_status(console: Console, title: str, message: str, ok: bool = True) -> None:
    """One bordered panel holding a plain-language status line."""
    icon = ICON_OK if ok else ICON_WARNING
    body = Text(f"\n  {icon}  {message}\n", style=COLOR_TEXT)
    console.print()
    console.print(
        Panel(body, title=f"[bold]{title}[/bold]", title_align="left",
              border_style="bright_green" if ok else "yellow")
    )


def print_repair_outcome(console: Console, outcome: RepairOutcome) -> None:
    icon = ICON_OK if outcome.state == RepairState.CLEAN else (
        ICON_WARNING if outcome.state == RepairState.DONE else ICON_ERROR
    )
    body = Text()
    body.append(f"\n  {icon}  {outcome.message}\n", style=COLOR_TEXT)
    body.append(
        "\n  " + " → ".join(state.value for state in outcome.transitions) + "\n",
        style=COLOR_DIM,
    )
    console.print()
    console.print(
        Panel(body, title="[bold]System Repair[/bold]", title_align="left",
              border_style=_REPAIR_BORDERS.get(outcome.state, "dim"))
    )


def print_error(console: Console, error: PCBuddyError) -> None:
    """Print a one-line error. Never a traceback."""
    prefix = f"[{error.context}] " if error.context else ""
    # Text, not markup: messages carry "[context]" tags and raw stderr
    console.print(Text(f"\n  {ICON_ERROR}  {prefix}{error.message}\n", style="red"))


def build_startup_table(items: list[StartupItem]) -> Table:
    table = Table(
        title="Startup Programs",
        title_style=f"bold {COLOR_BRAND}",
        header_style="bold",
        border_style=COLOR_DIM,
        expand=False,
    )
    table.add_column("", width=2)
    table.add_column("Name", style=COLOR_TEXT)
    table.add_column("Source", style=STYLE_DIM)
    table.add_column("Command", style="command", overflow="fold")
    table.add_column("Safety")

    for item in items:
        table.add_row(
            SAFETY_ICONS.get(item.safety, "·"),
            # Text, not markup: these come straight from the registry
            Text(item.name),
            Text(item.source),
            Text(item.command),
            Text(item.safety, style=SAFETY_STYLES.get(item.safety, STYLE_DIM)),
        )
    return table


def print_startup_items(console: Console, items: list[StartupItem]) -> None:
    if not items:
        console.print("[dim]  No startup programs found.[/dim]")
        return
    console.print()
    console.print(build_startup_table(items))
    console.print()


def print_system_info(console: Console, info: dict[str, Any]) -> None:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style=f"bold {COLOR_TEXT}")
    grid.add_column(style=COLOR_DIM)
    for key, label in _INFO_LABELS:
        grid.add_row(label, str(info.get(key, "")))
    console.print()
    console.print(Panel(grid, title="[bold]System Information[/bold]", title_align="left",
                        border_style=COLOR_BRAND))
    console.print()
