"""Immutable per-section rotation policy.

A :class:`PolicyRecord` holds every directive that applies to the log
files matched by one configuration section.  The parser accumulates
directive values in a plain dict (seeded from the global defaults) and
validates that dict into a frozen record when the section closes, so a
record is never mutated after it has been handed to the engine.

Example
-------
>>> policy = PolicyRecord(rotate=4, schedule=Schedule.WEEKLY, compress=True)
>>> policy.compression_suffix
'.gz'
"""
from __future__ import annotations

import re
import socket
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SIZE_PATTERN = re.compile(r"^(?P<value>\d+)(?P<unit>[kKmMgG]?)$")
_SIZE_UNITS: dict[str, int] = {
    "": 1,
    "k": 1024,
    "m": 1024 * 1024,
    "g": 1024 * 1024 * 1024,
}


class Schedule(str, Enum):
    """Time-based rotation trigger.  Only one may be active per section."""

    NONE = "none"
    MINUTES = "minutes"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Disposition(str, Enum):
    """What happens to the live file when it is rotated."""

    RENAME = "rename"
    COPY = "copy"
    COPYTRUNCATE = "copytruncate"
    RENAMECOPY = "renamecopy"


def parse_size(text: str) -> int:
    """Convert a size directive value (``100``, ``10k``, ``5M``, ``1G``) to bytes.

    Raises
    ------
    ValueError
        If *text* is not a non-negative integer with an optional unit.
    """
    match = _SIZE_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"invalid size value '{text}'")
    return int(match.group("value")) * _SIZE_UNITS[match.group("unit").lower()]


def _default_mail_from() -> str:
    return f"logrotate@{socket.gethostname()}"


class PolicyRecord(BaseModel):
    """All directives for one configuration section.

    Field names follow the directive keywords of the policy file.  Pairs
    such as ``create``/``nocreate`` are a single field that the last
    directive seen overwrites.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Retention and numbering
    rotate: int = Field(default=0, ge=0)
    start: int = Field(default=1, ge=0)
    maxage: int = Field(default=0, ge=0)
    minage: int = Field(default=0, ge=0)

    # Triggers
    schedule: Schedule = Schedule.NONE
    minutes: int = Field(default=0, ge=0)
    weekday: int | None = Field(default=None, ge=0, le=6)
    monthday: int | None = Field(default=None, ge=1, le=31)
    size: int | None = Field(default=None, ge=0)
    minsize: int | None = Field(default=None, ge=0)
    maxsize: int | None = Field(default=None, ge=0)
    ifempty: bool = True
    missingok: bool = False

    # What to do with the live file
    disposition: Disposition = Disposition.RENAME
    create: bool = False

    # Naming
    dateext: bool = False
    dateformat: str = "-%Y%m%d"
    dateyesterday: bool = False
    datehourago: bool = False
    extension: str | None = None
    addextension: str | None = None

    # Compression
    compress: bool = False
    compressext: str = "gz"
    compresscmd: str | None = None
    compressoptions: tuple[str, ...] = ()
    delaycompress: bool = False

    # Destination
    olddir: str | None = None
    createolddir: bool = True

    # Deletion
    shred: bool = False
    shredcycles: int = Field(default=3, ge=1)

    # Lifecycle scripts
    prerotate: tuple[str, ...] = ()
    postrotate: tuple[str, ...] = ()
    preremove: tuple[str, ...] = ()
    firstaction: tuple[str, ...] = ()
    lastaction: tuple[str, ...] = ()
    sharedscripts: bool = False

    # Mail
    mail: str | None = None
    maillast: bool = True
    smtpserver: str | None = None
    smtpport: int = Field(default=25, ge=1, le=65535)
    smtpssl: bool = False
    smtpuser: str | None = None
    smtpuserpwd: str | None = None
    smtpfrom: str = Field(default_factory=_default_mail_from)

    ignoreduplicates: bool = False

    @field_validator("compressext")
    @classmethod
    def strip_leading_dot(cls, value: str) -> str:
        stripped = value.lstrip(".")
        if not stripped:
            raise ValueError("compressext must not be empty")
        return stripped

    @property
    def compression_suffix(self) -> str:
        """The suffix (with leading dot) appended to compressed files."""
        return f".{self.compressext}"

    @property
    def compresses_immediately(self) -> bool:
        return self.compress and not self.delaycompress

    @property
    def keeps_original(self) -> bool:
        """``True`` for dispositions that leave the live file in place."""
        return self.disposition in (Disposition.COPY, Disposition.COPYTRUNCATE)
