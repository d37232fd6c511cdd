"""
Error types raised by the execution layer and the operations built on it.

Every error carries an optional context tag (the operation that raised it)
so the CLI can print "[context] message" without a traceback.
"""

from __future__ import annotations


class PCBuddyError(Exception):
    """Base class for all PC Buddy errors."""

    def __init__(self, message: str, context: str = "") -> None:
        self.message = message
        self.context = context
        super().__init__(f"[{context}] {message}" if context else message)


class InvalidInputError(PCBuddyError):
    """A value handed to the sanitizer or command builder was malformed."""


class InvalidPathError(PCBuddyError):
    """A path matched a dangerous pattern or a reserved device name."""


class ExecutionFailedError(PCBuddyError):
    """A subprocess exited non-zero, timed out, overflowed, or was not elevated."""

    def __init__(
        self,
        message: str,
        context: str = "",
        returncode: int | None = None,
        timed_out: bool = False,
        elevation_denied: bool = False,
    ) -> None:
        super().__init__(message, context)
        self.returncode = returncode
        self.timed_out = timed_out
        self.elevation_denied = elevation_denied


class EnumerationFailedError(PCBuddyError):
    """The startup enumeration script failed."""


class ParseFailedError(PCBuddyError):
    """Script output could not be parsed into the expected shape."""


class NotFoundError(PCBuddyError):
    """A named startup item does not exist."""
