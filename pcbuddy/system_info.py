"""
Host detection — OS, architecture, CPU, memory, uptime.

Read-only and best-effort: every probe returns a placeholder on failure.
"""

import os
import platform
import subprocess
from functools import lru_cache
from typing import Any

IS_WINDOWS: bool = platform.system() == "Windows"


def _run(cmd: list[str], timeout: int = 5) -> str:
    """Run a command and return stdout. Returns '' on any error."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
        return result.stdout.strip()
    except Exception:
        return ""


def _powershell(expression: str) -> str:
    return _run(["powershell", "-NoProfile", "-NonInteractive", "-Command", expression])


@lru_cache(maxsize=1)
def get_system_info() -> dict[str, Any]:
    """
    Return a dict describing this machine.

    Keys:
        os_type      "Windows_NT" | "Linux" | "Darwin"
        os_platform  "win32" | "linux" | "darwin"
        os_release   "10.0.22631"
        arch         "x64" | "arm64"
        cpu          "Intel(R) Core(TM) i7-9700K CPU @ 3.60GHz"
        ram          "31.93 GB"
        hostname     "DESKTOP-1234"
        uptime       "5h 12m"
    """
    system = platform.system()
    return {
        "os_type": "Windows_NT" if system == "Windows" else system,
        "os_platform": _platform_name(system),
        "os_release": platform.version() if IS_WINDOWS else platform.release(),
        "arch": _arch(platform.machine()),
        "cpu": _cpu_model(),
        "ram": format_ram(_total_memory_bytes()),
        "hostname": platform.node(),
        "uptime": format_uptime(_uptime_seconds()),
    }


def format_uptime(seconds: float) -> str:
    """Format seconds as '{hours}h {minutes}m'."""
    seconds = max(0, int(seconds))
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def format_ram(total_bytes: int) -> str:
    """Format a byte count as GiB with two decimals, e.g. '15.89 GB'."""
    return f"{total_bytes / (1024 ** 3):.2f} GB"


# ── Internal helpers ──────────────────────────────────────────────────────────

_PLATFORM_NAMES = {"Windows": "win32", "Linux": "linux", "Darwin": "darwin"}

_ARCH_NAMES = {"amd64": "x64", "x86_64": "x64", "aarch64": "arm64", "arm64": "arm64", "x86": "ia32"}


def _platform_name(system: str) -> str:
    return _PLATFORM_NAMES.get(system, system.lower())


def _arch(machine: str) -> str:
    return _ARCH_NAMES.get(machine.lower(), machine.lower() or "unknown")


def _cpu_model() -> str:
    if IS_WINDOWS:
        name = _powershell("(Get-CimInstance Win32_Processor | Select-Object -First 1).Name")
        if name:
            return name
    else:
        try:
            with open("/proc/cpuinfo", encoding="utf-8") as f:
                for line in f:
                    if line.startswith("model name"):
                        return line.split(":", 1)[-1].strip()
        except OSError:
            pass
    return platform.processor() or "Unknown CPU"


def _total_memory_bytes() -> int:
    if IS_WINDOWS:
        raw = _powershell("(Get-CimInstance Win32_ComputerSystem).TotalPhysicalMemory")
    else:
        try:
            return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
        except (ValueError, OSError, AttributeError):
            return 0
    try:
        return int(raw)
    except (ValueError, TypeError):
        return 0


def _uptime_seconds() -> float:
    if IS_WINDOWS:
        raw = _powershell(
            "[int]((Get-Date) - (Get-CimInstance Win32_OperatingSystem).LastBootUpTime).TotalSeconds"
        )
        try:
            return float(raw)
        except ValueError:
            return 0.0
    try:
        with open("/proc/uptime", encoding="utf-8") as f:
            return float(f.read().split()[0])
    except (OSError, ValueError, IndexError):
        return 0.0
