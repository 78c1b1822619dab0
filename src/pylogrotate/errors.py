"""Exception hierarchy shared across pylogrotate.

Each subsystem raises its own subclass so callers can decide per failure
class whether to abort the run, skip a file, or just log.
"""
from __future__ import annotations


class LogRotateError(Exception):
    """Base class for every error raised by pylogrotate."""


class ConfigError(LogRotateError):
    """Raised when a policy file cannot be parsed.

    Attributes
    ----------
    source:
        File the offending line came from (``"<string>"`` for in-memory text).
    line_number:
        1-based line number, or ``0`` when the error is not tied to a line.
    """

    def __init__(self, message: str, source: str = "<string>", line_number: int = 0) -> None:
        self.source = source
        self.line_number = line_number
        location = f"{source}:{line_number}" if line_number else source
        super().__init__(f"{location}: {message}")


class MissingLogFileError(LogRotateError):
    """Raised when a configured log file is absent and ``missingok`` is off."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"log file does not exist: {path}")


class RotationError(LogRotateError):
    """Raised when one file's rotation cannot be completed."""


class CompressionError(RotationError):
    """Raised when the external compressor exits with a failure status."""


class StateFileError(LogRotateError):
    """Raised when the rotation state ledger cannot be read or written."""


class ScriptError(LogRotateError):
    """Raised when a lifecycle script cannot be started at all.

    A script that runs and fails is reported through its result object
    instead; this error covers a missing shell or an unwritable temp dir.
    """
