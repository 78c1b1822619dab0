"""Persistent rotation state ledger.

The state file is plain UTF-8 text, compatible with the classic
logrotate status file::

    # logrotate state file created 2024-03-07 10:12:45
    logrotate state -- version 2
    "/var/log/app.log" 2024-3-7
    "/var/log/other.log" 2023-12-31

Dates carry no time of day and are written without zero padding.  The
whole file is rewritten on every update.  Lines that cannot be parsed are
kept verbatim and ignored on lookup.

Example
-------
>>> store = RotationStateStore(Path("/var/lib/logrotate.status"))
>>> store.get_last_rotation("/var/log/never-seen.log")
datetime.date(1970, 1, 1)
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from pylogrotate.errors import StateFileError

logger = logging.getLogger(__name__)

EPOCH: date = date(1970, 1, 1)
HEADER_VERSION_LINE: str = "logrotate state -- version 2"

_ENTRY_PATTERN = re.compile(r'^"(?P<path>.*)" (?P<year>\d+)-(?P<month>\d+)-(?P<day>\d+)\s*$')


@dataclass(frozen=True)
class StateEntry:
    """One tracked log path and the date it was last rotated."""

    path: str
    last_rotation: date


def normalize_state_path(path: str | Path) -> str:
    """Treat ``\\`` and ``/`` as the same separator."""
    return str(path).replace("\\", "/")


def format_state_date(day: date) -> str:
    return f"{day.year}-{day.month}-{day.day}"


class RotationStateStore:
    """Reads and updates the state file.

    Parameters
    ----------
    state_path:
        Location of the state file.  It is created with a two-line header
        when missing.
    dry_run:
        Never create or modify the file.
    """

    def __init__(self, state_path: str | Path, dry_run: bool = False) -> None:
        self._path = Path(state_path)
        self._dry_run = dry_run
        if not self._path.exists() and not dry_run:
            self._write_lines(self._header())
            logger.debug("Created state file %s", self._path)
        logger.info("State file location: %s", self._path.resolve())

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_last_rotation(self, path: str | Path) -> date:
        """Return the last rotation date recorded for *path*.

        Returns
        -------
        date
            The recorded date, or 1970-01-01 when *path* is not tracked.
        """
        wanted = normalize_state_path(path)
        for entry in self.entries():
            if normalize_state_path(entry.path) == wanted:
                return entry.last_rotation
        logger.info("No state entry for %s", path)
        return EPOCH

    def set_last_rotation(self, path: str | Path, when: date | None = None) -> None:
        """Record *when* (default today) as the last rotation of *path*.

        An existing line for *path* is replaced in place; otherwise a new
        line is appended.  The file is rewritten either way.
        """
        if self._dry_run:
            logger.debug("Dry run: not recording rotation of %s", path)
            return
        day = when or date.today()
        new_line = f'"{path}" {format_state_date(day)}'
        wanted = normalize_state_path(path)

        lines = self._read_lines()
        for index, line in enumerate(lines):
            entry = self._parse_line(line)
            if entry is not None and normalize_state_path(entry.path) == wanted:
                lines[index] = new_line
                break
        else:
            lines.append(new_line)
        self._write_lines(lines)

    def entries(self) -> list[StateEntry]:
        """All well-formed entries in file order."""
        result: list[StateEntry] = []
        for line in self._read_lines():
            entry = self._parse_line(line)
            if entry is not None:
                result.append(entry)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _header() -> list[str]:
        created = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return [f"# logrotate state file created {created}", HEADER_VERSION_LINE]

    @staticmethod
    def _parse_line(line: str) -> StateEntry | None:
        if not line.strip() or line.startswith("#") or line.strip() == HEADER_VERSION_LINE:
            return None
        match = _ENTRY_PATTERN.match(line)
        if match is None:
            logger.debug("Ignoring malformed state line: %r", line)
            return None
        try:
            day = date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
        except ValueError:
            logger.debug("Ignoring state line with invalid date: %r", line)
            return None
        return StateEntry(path=match.group("path"), last_rotation=day)

    def _read_lines(self) -> list[str]:
        if not self._path.exists():
            return []
        try:
            return self._path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise StateFileError(f"cannot read state file {self._path}: {exc}") from exc

    def _write_lines(self, lines: list[str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise StateFileError(f"cannot write state file {self._path}: {exc}") from exc
