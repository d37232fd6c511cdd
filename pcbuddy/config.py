"""
Config file loading for pcbuddy.

Reads ~/.config/pcbuddy/config.toml (or the file named by $PCBUDDY_CONFIG)
and returns a frozen Settings object that is passed explicitly into the
executor, the startup registry and the backup resolver.
Never raises — missing files, parse errors or bad values all fall back to
the defaults below, one key at a time.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

_CONFIG_DIR = Path.home() / ".config" / "pcbuddy"
_CONFIG_PATH = _CONFIG_DIR / "config.toml"
_ENV_VAR = "PCBUDDY_CONFIG"

DEFAULT_TIMEOUT_S = 60.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    app_name: str = "PC Buddy"
    scripts_dir: Path = Path(__file__).parent / "assets"
    startup_json_path: Path = Path(tempfile.gettempdir()) / "startup_programs.json"
    registry_key: str = r"HKCU\Software\PC-Buddy"
    registry_value: str = "BackupLocation"
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    home: Path = field(default_factory=Path.home)
    log_file: Path | None = _CONFIG_DIR / "pcbuddy.log"


def config_path() -> Path:
    """Return the config file location, honouring $PCBUDDY_CONFIG."""
    override = os.environ.get(_ENV_VAR)
    return Path(override).expanduser() if override else _CONFIG_PATH


def load_settings(path: Path | None = None) -> Settings:
    """
    Load and return pcbuddy settings from a TOML file.

    Always returns a valid Settings, never raises.
    """
    defaults = Settings()
    data = _read_toml(path or config_path())
    if not data:
        return defaults

    overrides: dict[str, Any] = {}

    for key in ("app_name", "registry_key", "registry_value"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            overrides[key] = value.strip()

    for key in ("scripts_dir", "startup_json_path", "home", "log_file"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            overrides[key] = Path(value.strip()).expanduser()

    timeout = data.get("timeout_seconds")
    # bool is an int subclass; reject it explicitly
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        overrides["timeout_s"] = float(timeout)

    max_bytes = data.get("max_output_bytes")
    if isinstance(max_bytes, int) and not isinstance(max_bytes, bool) and max_bytes > 0:
        overrides["max_output_bytes"] = max_bytes

    return replace(defaults, **overrides)


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}

    try:
        raw = path.read_bytes()
    except OSError:
        return {}

    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore[no-redef]
        except ModuleNotFoundError:
            return {}

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except Exception:
        return {}

    return data if isinstance(data, dict) else {}
