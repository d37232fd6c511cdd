"""
PC Buddy visual design system.

All colors, styles, and icons as named constants.
Import from here — never hardcode markup strings in other modules.

Palette is selected at import time from the Windows app theme
(AppsUseLightTheme); dark is the default everywhere else.
"""

import subprocess

from rich.style import Style
from rich.theme import Theme

from pcbuddy.system_info import IS_WINDOWS


# ── Dark/light detection ──────────────────────────────────────────────────────

_PERSONALIZE_KEY = r"HKCU\Software\Microsoft\Windows\CurrentVersion\Themes\Personalize"


def _is_dark_mode() -> bool:
    """
    Detect the Windows app theme.

    Returns False only when AppsUseLightTheme is explicitly 1.
    Falls back to True (dark palette) off Windows and on any error.
    """
    if not IS_WINDOWS:
        return True
    try:
        r = subprocess.run(
            ["reg", "query", _PERSONALIZE_KEY, "/v", "AppsUseLightTheme"],
            capture_output=True, text=True, timeout=2, check=False,
        )
        if r.returncode == 0:
            return not r.stdout.strip().endswith("0x1")
    except Exception:
        pass
    return True


DARK_MODE: bool = _is_dark_mode()


# ── Color palette ─────────────────────────────────────────────────────────────

if DARK_MODE:
    COLOR_DANGER  = "#E05252"
    COLOR_CAUTION = "#D4870A"
    COLOR_SAFE    = "#4DBD74"
    COLOR_INFO    = "#5BA3C9"
    COLOR_BRAND   = "#7B9FD4"
    COLOR_DIM     = "#787878"
    COLOR_COMMAND = "#C0C0C0"
    COLOR_TEXT    = "#F0F0F0"
else:
    # WCAG AA (≥ 4.5:1) on white
    COLOR_DANGER  = "#B91C1C"
    COLOR_CAUTION = "#92400E"
    COLOR_SAFE    = "#166534"
    COLOR_INFO    = "#0369A1"
    COLOR_BRAND   = "#1D4ED8"
    COLOR_DIM     = "#4B5563"
    COLOR_COMMAND = "#1F2937"
    COLOR_TEXT    = "#0F172A"


# ── Rich styles ───────────────────────────────────────────────────────────────

STYLE_DANGER  = Style(color=COLOR_DANGER,  bold=True)
STYLE_CAUTION = Style(color=COLOR_CAUTION, bold=True)
STYLE_SAFE    = Style(color=COLOR_SAFE,    bold=True)
STYLE_DIM     = Style(color=COLOR_DIM)


# ── Icons ─────────────────────────────────────────────────────────────────────

ICON_OK = "✅"
ICON_WARNING = "⚠️ "
ICON_ERROR = "❌"
ICON_LOCK = "🔐"

SAFETY_ICONS: dict[str, str] = {
    "safe": "🟢",
    "caution": "🟡",
    "danger": "🔴",
}

SAFETY_STYLES: dict[str, Style] = {
    "safe": STYLE_SAFE,
    "caution": STYLE_CAUTION,
    "danger": STYLE_DANGER,
}


# ── Rich Theme ────────────────────────────────────────────────────────────────

PCBUDDY_THEME = Theme(
    {
        "danger":  f"{COLOR_DANGER} bold",
        "caution": f"{COLOR_CAUTION} bold",
        "safe":    f"{COLOR_SAFE} bold",
        "info":    COLOR_INFO,
        "brand":   f"{COLOR_BRAND} bold",
        "dim":     COLOR_DIM,
        "command": COLOR_COMMAND,
        "text":    COLOR_TEXT,
    }
)
