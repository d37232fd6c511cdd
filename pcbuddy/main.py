"""
PC Buddy — entry point.

CLI groups and commands, one coroutine per command, result rendering.
Every command maps to exactly one caller-facing operation:

  repair              sfc, then DISM if needed        (elevated)
  cleanup             cleanmgr /sagerun:1             (elevated)
  startup list        enumerate startup programs
  startup enable/disable NAME                         (elevated)
  startup task-manager
  backup info         inspect the backup location
  backup create       create a backup                 (elevated)
  info                system information
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Optional, TypeVar

import click
from rich.console import Console
from rich.text import Text

from pcbuddy import __version__
from pcbuddy.config import Settings, load_settings
from pcbuddy.errors import PCBuddyError
from pcbuddy.execution.executor import Executor
from pcbuddy.log import configure_logging
from pcbuddy.operations.backup import BackupPathResolver, BackupService
from pcbuddy.operations.cleanup import SUCCESS_MESSAGE as CLEANUP_SUCCESS
from pcbuddy.operations.cleanup import DiskCleanup
from pcbuddy.operations.repair import RepairWorkflow
from pcbuddy.operations.startup import StartupRegistry
from pcbuddy.ui.report import (
    print_error,
    print_repair_outcome,
    print_startup_items,
    print_status,
    print_system_info,
)
from pcbuddy.ui.theme import ICON_LOCK, PCBUDDY_THEME


# ── Console (shared across the tool) ─────────────────────────────────────────

console = Console(theme=PCBUDDY_THEME)

T = TypeVar("T")


@dataclass
class AppContext:
    settings: Settings
    logger: logging.Logger
    executor: Executor


# ── CLI ───────────────────────────────────────────────────────────────────────

@click.group(name="pcbuddy", context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="pcbuddy")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every step to stderr.")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/pcbuddy/config.toml or $PCBUDDY_CONFIG).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Optional[Path]) -> None:
    """Windows maintenance assistant.

    System-file repair, disk cleanup, startup programs and backups.
    Commands marked (admin) show a Windows UAC prompt before they run.
    """
    settings = load_settings(config_file)
    logger = configure_logging(
        verbose=verbose,
        log_file=settings.log_file,
        console=Console(stderr=True),
    )
    logger.info("[App] pcbuddy %s", __version__)
    ctx.obj = AppContext(settings=settings, logger=logger, executor=Executor(settings, logger=logger))


# ── Repair / cleanup ─────────────────────────────────────────────────────────

@cli.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt.")
@click.pass_obj
def repair(app: AppContext, yes: bool) -> None:
    """Scan system files with SFC; run DISM if SFC cannot fix them. (admin)"""
    _confirm_elevation("System file repair can take a while.", yes)
    workflow = RepairWorkflow(app.executor, logger=app.logger)
    with console.status("[dim]Running system file check…[/dim]"):
        outcome = _run(workflow.run())
    print_repair_outcome(console, outcome)


@cli.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt.")
@click.pass_obj
def cleanup(app: AppContext, yes: bool) -> None:
    """Run Windows Disk Cleanup with saved profile 1. (admin)"""
    _confirm_elevation("Disk Cleanup removes temporary and cached files.", yes)
    with console.status("[dim]Running disk cleanup…[/dim]"):
        message = _run(DiskCleanup(app.executor, logger=app.logger).run())
    print_status(console, "Disk Cleanup", message, ok=message == CLEANUP_SUCCESS)


# ── Startup programs ──────────────────────────────────────────────────────────

@cli.group()
def startup() -> None:
    """List and toggle programs that run at sign-in."""


@startup.command("list")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output items as JSON.")
@click.pass_obj
def startup_list(app: AppContext, as_json: bool) -> None:
    """List startup programs, safest first."""
    registry = StartupRegistry(app.executor, logger=app.logger)
    items = _run(registry.list())
    if as_json:
        click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return
    print_startup_items(console, items)


@startup.command("enable")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt.")
@click.pass_obj
def startup_enable(app: AppContext, name: str, yes: bool) -> None:
    """Enable the startup program NAME. (admin)"""
    _toggle(app, name, True, yes)


@startup.command("disable")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt.")
@click.pass_obj
def startup_disable(app: AppContext, name: str, yes: bool) -> None:
    """Disable the startup program NAME. (admin)"""
    _toggle(app, name, False, yes)


@startup.command("task-manager")
@click.pass_obj
def startup_task_manager(app: AppContext) -> None:
    """Open Task Manager on the Startup tab."""
    opened = _run(StartupRegistry(app.executor, logger=app.logger).open_task_manager())
    if not opened:
        console.print("  [dim]Could not open Task Manager.[/dim]")


def _toggle(app: AppContext, name: str, enable: bool, yes: bool) -> None:
    verb = "Enable" if enable else "Disable"
    _confirm_elevation(f"{verb} '{name}' at sign-in.", yes)
    registry = StartupRegistry(app.executor, logger=app.logger)
    confirmation = _run(registry.toggle(name, enable))
    print_status(console, "Startup Programs", confirmation or f"{verb}d {name}.")


# ── Backups ───────────────────────────────────────────────────────────────────

@cli.group()
def backup() -> None:
    """Inspect or create backups in the configured location."""


@backup.command("info")
@click.pass_obj
def backup_info(app: AppContext) -> None:
    """Show backups in the resolved backup location."""
    service = BackupService(BackupPathResolver(app.executor, logger=app.logger))
    click.echo(_run(service.info()))


@backup.command("create")
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt.")
@click.pass_obj
def backup_create(app: AppContext, yes: bool) -> None:
    """Create a backup in the resolved backup location. (admin)"""
    _confirm_elevation("A backup will be written to your backup location.", yes)
    service = BackupService(BackupPathResolver(app.executor, logger=app.logger))
    with console.status("[dim]Creating backup…[/dim]"):
        output = _run(service.create())
    print_status(console, "Backup", output or "Backup completed.")


# ── System info ───────────────────────────────────────────────────────────────

@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
def info(as_json: bool) -> None:
    """Show OS, CPU, memory and uptime."""
    from pcbuddy.system_info import get_system_info

    data = get_system_info()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    print_system_info(console, data)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _run(coro: Awaitable[T]) -> T:
    """Run one operation to completion; PCBuddyError becomes exit code 1."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except PCBuddyError as e:
        print_error(console, e)
        raise SystemExit(1) from None


def _confirm_elevation(what: str, yes: bool) -> None:
    if yes:
        return
    console.print()
    console.print(Text(f"  {what}", style="text"))
    console.print(f"  {ICON_LOCK} [dim]A Windows UAC prompt will ask for administrator access.[/dim]\n")
    if not click.confirm("  Continue?", default=True):
        console.print("  [dim]Cancelled.[/dim]\n")
        raise SystemExit(0)


# ── Entry ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    cli()
