"""
Subprocess execution — unprivileged and elevated.

Every request ends one of three ways:
  success           — exit 0, ExecutionResult with trimmed stdout
  subprocess error  — non-zero exit, timeout, output over the ceiling
  elevation failure — the UAC prompt was cancelled or could not be shown
The last two both surface as ExecutionFailedError, logged before raising.

Elevated commands go through a PrivilegeGate so only one consent dialog
is ever on screen at a time; further elevated requests wait their turn.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from pcbuddy.config import Settings
from pcbuddy.errors import ExecutionFailedError, PCBuddyError
from pcbuddy.execution.commands import ExecutionRequest, build_command

_CHUNK_SIZE = 64 * 1024

_WINDOWS = sys.platform == "win32"

_CANCEL_MARKERS = ("canceled by the user", "cancelled by the user")


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    returncode: int

    @property
    def output(self) -> str:
        """stdout and stderr together, for marker scanning."""
        return self.stdout + self.stderr


# ── Single-flight gate ────────────────────────────────────────────────────────

class PrivilegeGate:
    """One asyncio.Lock per logical resource; default resource is 'elevation'."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def busy(self, resource: str = "elevation") -> bool:
        lock = self._locks.get(resource)
        return lock is not None and lock.locked()

    @contextlib.asynccontextmanager
    async def admit(self, resource: str = "elevation") -> AsyncIterator[None]:
        lock = self._locks.setdefault(resource, asyncio.Lock())
        async with lock:
            yield


# ── Low-level spawn ───────────────────────────────────────────────────────────

async def spawn_shell(command: str, timeout_s: float, max_output_bytes: int) -> ExecutionResult:
    """
    Run command through the system shell and collect its output.

    Returns an ExecutionResult for any exit code. Raises ExecutionFailedError
    only when the process cannot be started, runs past timeout_s, or writes
    more than max_output_bytes across stdout and stderr. In the last two
    cases the process is killed first.
    """
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            # own process group, so _kill() can take the whole tree down
            start_new_session=not _WINDOWS,
        )
    except OSError as e:
        raise ExecutionFailedError(f"Could not start process: {e}") from e

    try:
        stdout, stderr, overflowed = await asyncio.wait_for(
            _read_capped(proc, max_output_bytes), timeout=timeout_s
        )
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        raise ExecutionFailedError(
            f"Command timed out after {timeout_s:g}s", timed_out=True
        ) from None

    if overflowed:
        raise ExecutionFailedError(
            f"Command output exceeded {max_output_bytes} bytes",
            returncode=proc.returncode,
        )

    return ExecutionResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )


async def _read_capped(
    proc: asyncio.subprocess.Process, limit: int,
) -> tuple[bytes, bytes, bool]:
    """Drain both pipes concurrently; kill the process once limit is crossed."""
    out = bytearray()
    err = bytearray()
    overflowed = False

    async def drain(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
        nonlocal overflowed
        if stream is None:
            return
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                return
            if overflowed:
                continue
            if len(out) + len(err) + len(chunk) > limit:
                overflowed = True
                _kill(proc)
                continue
            sink.extend(chunk)

    await asyncio.gather(drain(proc.stdout, out), drain(proc.stderr, err))
    await proc.wait()
    return bytes(out), bytes(err), overflowed


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill proc and every process it started."""
    if _WINDOWS:
        try:
            subprocess.run(
                ["taskkill", "/T", "/F", "/PID", str(proc.pid)],
                capture_output=True, timeout=10, check=False,
            )
        except (OSError, subprocess.TimeoutExpired):
            pass
    else:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


# ── Executor ──────────────────────────────────────────────────────────────────

class Executor:
    """Runs ExecutionRequests, optionally behind a UAC consent prompt."""

    def __init__(
        self,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
        gate: PrivilegeGate | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.logger = logger or logging.getLogger(__name__)
        self.gate = gate or PrivilegeGate()

    def request(self, target: str, **kwargs) -> ExecutionRequest:
        """Build an ExecutionRequest carrying the configured limits."""
        kwargs.setdefault("timeout_s", self.settings.timeout_s)
        kwargs.setdefault("max_output_bytes", self.settings.max_output_bytes)
        return ExecutionRequest(target=target, **kwargs)

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute request and return its result on exit code 0.

        Raises ExecutionFailedError (non-zero exit, timeout, output ceiling,
        elevation denied) and lets InvalidInputError from command
        construction through; both are logged first.
        """
        name = Path(request.target).name if request.mode == "script" else request.target

        try:
            command = build_command(request)
            if request.elevate:
                if self.gate.busy():
                    self.logger.info("[%s] Waiting for another elevated command", request.tag)
                async with self.gate.admit():
                    self.logger.debug("[%s] Running elevated: %s", request.tag, name)
                    result = await self._run_elevated(command, request)
            else:
                self.logger.debug("[%s] Running: %s", request.tag, name)
                result = await spawn_shell(command, request.timeout_s, request.max_output_bytes)
        except PCBuddyError as e:
            self.logger.error("[%s] %s failed: %s", request.tag, name, e.message)
            if not e.context:
                e.context = request.tag
            raise

        if result.returncode != 0:
            message = result.stderr.strip() or f"Command failed with exit code {result.returncode}"
            self.logger.error(
                "[%s] %s failed (exit %s): %s", request.tag, name, result.returncode, message
            )
            raise ExecutionFailedError(message, request.tag, returncode=result.returncode)

        return ExecutionResult(
            stdout=result.stdout.strip(),
            stderr=result.stderr,
            returncode=result.returncode,
        )

    # ── Elevation ─────────────────────────────────────────────────────────────

    async def _run_elevated(self, command: str, request: ExecutionRequest) -> ExecutionResult:
        """
        Run command through a batch wrapper started with the RunAs verb.

        An elevated process cannot share pipes with us, so the wrapper
        redirects stdout and stderr to files and writes its exit code last.
        """
        with tempfile.TemporaryDirectory(prefix="pcbuddy-") as tmp:
            workdir = Path(tmp)
            out_file = workdir / "stdout.txt"
            err_file = workdir / "stderr.txt"
            code_file = workdir / "exitcode.txt"
            batch = workdir / "elevated.cmd"
            batch.write_text(
                _batch_script(self.settings.app_name, command, out_file, err_file, code_file),
                encoding="utf-8",
            )

            launcher = await spawn_shell(
                _runas_command(batch), request.timeout_s, request.max_output_bytes
            )
            if launcher.returncode != 0:
                reason = launcher.stderr.strip() or launcher.stdout.strip()
                if any(marker in reason.lower() for marker in _CANCEL_MARKERS):
                    raise ExecutionFailedError(
                        "User did not grant permission.", elevation_denied=True
                    )
                raise ExecutionFailedError(
                    reason or "Elevation request failed", elevation_denied=True
                )

            sizes = sum(f.stat().st_size for f in (out_file, err_file) if f.exists())
            if sizes > request.max_output_bytes:
                raise ExecutionFailedError(
                    f"Command output exceeded {request.max_output_bytes} bytes"
                )

            try:
                returncode = int(code_file.read_text(encoding="utf-8", errors="replace").strip())
            except (OSError, ValueError):
                raise ExecutionFailedError("Elevated command did not report an exit code") from None

            return ExecutionResult(
                stdout=_read_text(out_file),
                stderr=_read_text(err_file),
                returncode=returncode,
            )


def _batch_script(title: str, command: str, out_file: Path, err_file: Path, code_file: Path) -> str:
    # %VAR% expands inside .cmd files; escape literal percent signs
    escaped = command.replace("%", "%%")
    safe_title = "".join(ch for ch in title if ch.isalnum() or ch in " -_.")
    return "\r\n".join((
        "@echo off",
        f"title {safe_title}",
        "chcp 65001 >nul",
        f'{escaped} > "{out_file}" 2> "{err_file}"',
        # redirect first: "echo 1> file" would redirect handle 1
        f'>"{code_file}" echo %ERRORLEVEL%',
        "",
    ))


def _runas_command(batch: Path) -> str:
    # single quotes are doubled inside a PowerShell single-quoted string
    target = str(batch).replace("'", "''")
    return (
        "powershell -NoProfile -NonInteractive -ExecutionPolicy Bypass -Command "
        f"\"Start-Process -FilePath '{target}' -Verb RunAs -Wait -WindowStyle Hidden\""
    )


def _read_text(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return ""
