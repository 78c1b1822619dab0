"""Rotation eligibility evaluator.

Decides whether a single log file is due for rotation given its current
size and age, its :class:`~pylogrotate.policies.policy.PolicyRecord` and
the date it was last rotated.  The evaluator only reads file metadata; it
never touches file contents.

Checks run in a fixed order:

1. missing file (``missingok``)
2. ``minage`` (not overridden by force)
3. empty file with ``notifempty`` (not overridden by force)
4. force
5. ``minsize`` / ``maxsize`` / ``size``
6. the time schedule

Example
-------
>>> from datetime import date
>>> evaluator = RotationEvaluator()
>>> evaluator.should_rotate("/var/log/app.log", policy, date(1970, 1, 1), force=True)
True
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from pathlib import Path

from pylogrotate.errors import MissingLogFileError
from pylogrotate.policies.policy import PolicyRecord, Schedule

logger = logging.getLogger(__name__)


def sunday_weekday(moment: date) -> int:
    """Weekday number with Sunday as ``0`` and Saturday as ``6``."""
    return (moment.weekday() + 1) % 7


class RotationEvaluator:
    """Pure eligibility decision for one file."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def should_rotate(
        self,
        path: str | Path,
        policy: PolicyRecord,
        last_rotation: date,
        force: bool = False,
        now: datetime | None = None,
    ) -> bool:
        """Return whether *path* should be rotated now.

        Parameters
        ----------
        path:
            The live log file.
        policy:
            Policy of the section that matched *path*.
        last_rotation:
            Date recorded in the state store (1970-01-01 when unknown).
        force:
            Skip the size and schedule checks.
        now:
            Override the current instant (useful for testing).

        Returns
        -------
        bool
            ``True`` when the file is due.

        Raises
        ------
        MissingLogFileError
            If *path* does not exist and ``missingok`` is not set.
        """
        log_path = Path(path)
        current = now or datetime.now()

        if not log_path.is_file():
            if policy.missingok:
                logger.debug("%s does not exist, skipping (missingok)", log_path)
                return False
            raise MissingLogFileError(log_path)

        stat = log_path.stat()
        size = stat.st_size

        if policy.minage > 0:
            age = current - datetime.fromtimestamp(stat.st_mtime)
            if age < timedelta(days=policy.minage):
                logger.info(
                    "%s is younger than minage %d days, not rotating", log_path, policy.minage
                )
                return False

        if size == 0 and not policy.ifempty:
            logger.info("%s is empty and notifempty is set, not rotating", log_path)
            return False

        if force:
            logger.debug("%s rotation forced", log_path)
            return True

        if policy.minsize is not None and size < policy.minsize:
            logger.debug("%s is below minsize (%d < %d)", log_path, size, policy.minsize)
            return False

        if policy.maxsize is not None and size >= policy.maxsize:
            logger.debug("%s reached maxsize (%d >= %d)", log_path, size, policy.maxsize)
            return True

        if policy.size is not None and size >= policy.size:
            logger.debug("%s reached size (%d >= %d)", log_path, size, policy.size)
            return True

        due = self.schedule_due(policy, last_rotation, current)
        logger.debug(
            "%s schedule %s due=%s (last rotation %s)",
            log_path,
            policy.schedule.value,
            due,
            last_rotation.isoformat(),
        )
        return due

    def schedule_due(self, policy: PolicyRecord, last_rotation: date, now: datetime) -> bool:
        """Evaluate only the time-based schedule of *policy*."""
        elapsed = now - datetime.combine(last_rotation, time.min)
        one_day = timedelta(days=1)

        match policy.schedule:
            case Schedule.NONE:
                return False
            case Schedule.MINUTES:
                return elapsed >= timedelta(minutes=policy.minutes)
            case Schedule.HOURLY:
                return elapsed > timedelta(hours=1)
            case Schedule.DAILY:
                return elapsed > one_day
            case Schedule.WEEKLY:
                if elapsed > timedelta(days=7):
                    return True
                today = sunday_weekday(now)
                if policy.weekday is not None:
                    return today == policy.weekday and elapsed >= one_day
                # Weekday number went backwards: a new week started.
                return today < sunday_weekday(last_rotation)
            case Schedule.MONTHLY:
                if policy.monthday is not None:
                    return now.day == policy.monthday and elapsed >= one_day
                return (now.year, now.month) != (last_rotation.year, last_rotation.month)
            case Schedule.YEARLY:
                return now.year != last_rotation.year
        return False
