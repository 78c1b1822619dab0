"""Rotated file names.

A rotated file name is modelled as a :class:`RotatedName` with explicit
parts instead of being manipulated as a string::

    numeric:  <base>.<index>[<extension>][<addextension>][<compression>]
    date:     <base><date suffix>[<extension>][<addextension>][<compression>]

``base`` is the live file name with a configured ``extension`` removed,
so ``app.log`` with ``extension .log`` rotates to ``app.1.log``.

Example
-------
>>> from datetime import datetime
>>> policy = PolicyRecord(extension=".log")
>>> compute_rotated_name(policy, "app.log")
'app.1.log'
>>> RotatedName.parse("app.3.log.gz", "app.log", PolicyRecord(extension=".log", compress=True)).index
3
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from pylogrotate.policies.policy import PolicyRecord

_TOKEN_PATTERN = re.compile(r"%(.)")
_INDEX_PATTERN = re.compile(r"^\.(\d+)$")

_TOKEN_REGEX: dict[str, str] = {
    "Y": r"\d{4}",
    "m": r"\d{2}",
    "d": r"\d{2}",
    "H": r"\d{2}",
    "M": r"\d{2}",
    "s": r"\d+",
    "%": "%",
}


def format_date_suffix(dateformat: str, moment: datetime) -> str:
    """Expand the ``%Y %m %d %H %M %s`` tokens of *dateformat* for *moment*.

    Unknown tokens are kept literally.

    Example
    -------
    >>> format_date_suffix("-%Y%m%d", datetime(2024, 3, 7))
    '-20240307'
    """

    def expand(token: re.Match[str]) -> str:
        match token.group(1):
            case "Y":
                return f"{moment.year:04d}"
            case "m":
                return f"{moment.month:02d}"
            case "d":
                return f"{moment.day:02d}"
            case "H":
                return f"{moment.hour:02d}"
            case "M":
                return f"{moment.minute:02d}"
            case "s":
                return str(int(moment.timestamp()))
            case "%":
                return "%"
        return token.group(0)

    return _TOKEN_PATTERN.sub(expand, dateformat)


def date_suffix_pattern(dateformat: str) -> re.Pattern[str]:
    """Compile a regex that matches any expansion of *dateformat*."""
    parts: list[str] = []
    position = 0
    for match in _TOKEN_PATTERN.finditer(dateformat):
        parts.append(re.escape(dateformat[position : match.start()]))
        parts.append(_TOKEN_REGEX.get(match.group(1), re.escape(match.group(0))))
        position = match.end()
    parts.append(re.escape(dateformat[position:]))
    return re.compile("^" + "".join(parts) + "$")


def reference_instant(policy: PolicyRecord, now: datetime | None = None) -> datetime:
    """Instant used for date suffixes; ``dateyesterday`` beats ``datehourago``."""
    current = now or datetime.now()
    if policy.dateyesterday:
        return current - timedelta(days=1)
    if policy.datehourago:
        return current - timedelta(hours=1)
    return current


def split_extension(name: str, extension: str | None) -> tuple[str, str | None]:
    """Split a preserved *extension* off *name* when *name* ends with it."""
    if extension and name.endswith(extension) and len(name) > len(extension):
        return name[: -len(extension)], extension
    return name, None


@dataclass(frozen=True)
class RotatedName:
    """Structured form of a rotated file name.

    Exactly one of ``index`` and ``date_suffix`` is set.
    """

    base: str
    index: int | None = None
    date_suffix: str | None = None
    extension: str | None = None
    addextension: str | None = None
    compression: str | None = None

    @property
    def is_compressed(self) -> bool:
        return self.compression is not None

    def format(self) -> str:
        """Render the file name."""
        if self.index is not None:
            middle = f".{self.index}"
        else:
            middle = self.date_suffix or ""
        return "".join(
            (
                self.base,
                middle,
                self.extension or "",
                self.addextension or "",
                self.compression or "",
            )
        )

    def with_index(self, index: int) -> RotatedName:
        return replace(self, index=index, date_suffix=None)

    def with_compression(self, suffix: str) -> RotatedName:
        return replace(self, compression=suffix)

    @classmethod
    def parse(cls, candidate: str, log_name: str, policy: PolicyRecord) -> RotatedName | None:
        """Parse *candidate* as a rotated sibling of *log_name*.

        Parameters
        ----------
        candidate:
            File name found in the destination directory.
        log_name:
            Name of the live log file.
        policy:
            Supplies the naming mode, the extensions and the compression
            suffix.

        Returns
        -------
        RotatedName | None
            ``None`` when *candidate* is not a rotated file of *log_name*
            in the policy's naming mode.
        """
        base, extension = split_extension(log_name, policy.extension)
        if not candidate.startswith(base) or candidate == log_name:
            return None
        rest = candidate[len(base) :]

        compression = None
        if rest.endswith(policy.compression_suffix):
            compression = policy.compression_suffix
            rest = rest[: -len(compression)]

        addextension = None
        if policy.addextension and rest.endswith(policy.addextension):
            addextension = policy.addextension
            rest = rest[: -len(addextension)]

        if extension is not None:
            if not rest.endswith(extension):
                return None
            rest = rest[: -len(extension)]

        if policy.dateext:
            if not rest or date_suffix_pattern(policy.dateformat).match(rest) is None:
                return None
            return cls(
                base=base,
                date_suffix=rest,
                extension=extension,
                addextension=addextension,
                compression=compression,
            )

        index_match = _INDEX_PATTERN.match(rest)
        if index_match is None:
            return None
        return cls(
            base=base,
            index=int(index_match.group(1)),
            extension=extension,
            addextension=addextension,
            compression=compression,
        )


def new_rotated_name(policy: PolicyRecord, log_name: str, now: datetime | None = None) -> RotatedName:
    """Build the name for the file being rotated right now (never compressed)."""
    base, extension = split_extension(log_name, policy.extension)
    if policy.dateext:
        suffix = format_date_suffix(policy.dateformat, reference_instant(policy, now))
        return RotatedName(
            base=base,
            date_suffix=suffix,
            extension=extension,
            addextension=policy.addextension,
        )
    return RotatedName(
        base=base,
        index=policy.start,
        extension=extension,
        addextension=policy.addextension,
    )


def compute_rotated_name(policy: PolicyRecord, log_name: str, now: datetime | None = None) -> str:
    """Return the destination file name for rotating *log_name* now.

    The compression suffix is not included; it is added by the executor
    only when the file is compressed immediately.
    """
    return new_rotated_name(policy, log_name, now).format()
