"""
Input sanitization and path validation.

Two independent passes:
  sanitize()       — strips shell metacharacters and traversal sequences
  validate_path()  — accepts or rejects a path, never rewrites it

Anything that ends up inside a command line and came from outside this
package (registry values, script output, user input) must go through
sanitize(); paths go through validate_path() first and sanitize() second.
Pure functions, no I/O.
"""

from __future__ import annotations

import logging
import re

from pcbuddy.errors import InvalidInputError, InvalidPathError

MAX_SANITIZED_LENGTH = 500
MAX_PATH_LENGTH = 260

_SHELL_METACHARACTERS = re.compile(r"[;&|`$(){}\[\]<>]")
_TRAVERSAL = ".."

# (pattern, reason), checked in order; first match wins
_DANGEROUS_PATH_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\.\."), "directory traversal"),
    (re.compile(r'[<>"|?*]'), "invalid path character"),
    (re.compile(r":.*:"), "multiple colons"),
    (re.compile(r"^(?:|[^A-Za-z]|[^:]{2,}):"), "colon not after a drive letter"),
    (re.compile(r"^\\\\[^\\]+\\(?:admin|[a-z])\$", re.IGNORECASE), "administrative share"),
    (re.compile(r"(?:java|vb)?script:", re.IGNORECASE), "script protocol"),
    (re.compile(r"data:", re.IGNORECASE), "data protocol"),
)

_PATH_SEPARATORS = re.compile(r"[\\/]")
_RESERVED_NAMES = re.compile(r"^(?:con|prn|aux|nul|com[1-9]|lpt[1-9])$", re.IGNORECASE)


def sanitize(value: str) -> str:
    """
    Return value with shell metacharacters and '..' removed, trimmed and
    capped at 500 characters.

    Raises InvalidInputError if value is not a str.
    """
    if not isinstance(value, str):
        raise InvalidInputError("Input must be a string")

    cleaned = _SHELL_METACHARACTERS.sub("", value)
    while _TRAVERSAL in cleaned:
        cleaned = cleaned.replace(_TRAVERSAL, "")
    return cleaned.strip()[:MAX_SANITIZED_LENGTH]


def validate_path(value: str) -> str:
    """
    Return value unchanged if it is a structurally safe Windows path.

    Raises InvalidPathError on bad length, a dangerous pattern, or a
    reserved device name (con, prn, aux, nul, com1-9, lpt1-9) in any segment.
    """
    if not isinstance(value, str) or not 0 < len(value) <= MAX_PATH_LENGTH:
        raise InvalidPathError("Invalid path format")

    for segment in _PATH_SEPARATORS.split(value):
        # "nul.txt" is as reserved as "nul"
        if segment and _RESERVED_NAMES.match(segment.split(".")[0]):
            raise InvalidPathError("Path contains reserved Windows name")

    for pattern, reason in _DANGEROUS_PATH_PATTERNS:
        if pattern.search(value):
            raise InvalidPathError(f"Path contains potentially dangerous patterns ({reason})")

    return value


def validate_and_sanitize_path(
    value: str,
    context: str = "",
    logger: logging.Logger | None = None,
) -> str:
    """Validate then sanitize a path for embedding in a command line."""
    try:
        validate_path(value)
        return sanitize(value)
    except (InvalidPathError, InvalidInputError) as exc:
        if logger is not None:
            logger.warning("[%s] Invalid path: %s", context, exc.message)
        raise InvalidPathError("Invalid path specified", context) from exc


def validate_string_input(value: str, max_length: int = 1000, context: str = "") -> str:
    """Reject non-strings, empty strings and strings longer than max_length."""
    if not isinstance(value, str) or not 0 < len(value) <= max_length:
        raise InvalidInputError("Invalid input format", context)
    return value
