"""Age-out and renumbering of previously rotated files.

Runs before a rotation event moves the live file, so it sees the rotated
set as it was before this event:

* files older than ``maxage`` days are removed first;
* in date mode the newest ``rotate - 1`` files are kept and the rest are
  removed (date-named files are never renamed);
* in numeric mode every file is shifted to ``index + 1``, highest index
  first, and files whose index reached ``rotate`` are removed.  A file
  shifted out of the newest slot is compressed at that point when the
  policy compresses and it is not gzip data yet, which is how
  ``delaycompress`` catches up one cycle later.

``rotate 0`` therefore removes every previously rotated file.

:meth:`AgeOutEngine.plan` runs the same selection without touching any
file, which lets the executor refuse a rotation before anything is lost.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from pylogrotate.policies.policy import PolicyRecord
from pylogrotate.rotation.compression import compress_file, is_gzip_file
from pylogrotate.rotation.naming import RotatedName

logger = logging.getLogger(__name__)

Remover = Callable[[Path, PolicyRecord], None]


def _unlink(path: Path, policy: PolicyRecord) -> None:
    path.unlink()


@dataclass
class AgeOutResult:
    """What one age-out pass did."""

    removed: list[Path] = field(default_factory=list)
    renamed: list[tuple[Path, Path]] = field(default_factory=list)
    compressed: list[Path] = field(default_factory=list)


class AgeOutEngine:
    """Enforces retention on the rotated siblings of one log file.

    Parameters
    ----------
    remover:
        Called for every file that has to go.  The executor passes its
        own remover, which runs ``preremove`` and honours ``shred``.
    dry_run:
        Log the planned changes without touching any file.
    """

    def __init__(self, remover: Remover | None = None, dry_run: bool = False) -> None:
        self._remover = remover or _unlink
        self._dry_run = dry_run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_rotated(
        self, policy: PolicyRecord, log_path: Path, dest_dir: Path
    ) -> list[tuple[Path, RotatedName]]:
        """Rotated files of *log_path* in *dest_dir* for the policy's naming mode."""
        if not dest_dir.is_dir():
            return []
        found: list[tuple[Path, RotatedName]] = []
        for entry in dest_dir.iterdir():
            if not entry.is_file():
                continue
            # parse() rejects the live file name itself
            parsed = RotatedName.parse(entry.name, log_path.name, policy)
            if parsed is not None:
                found.append((entry, parsed))
        return found

    def age_out(
        self,
        policy: PolicyRecord,
        log_path: Path,
        dest_dir: Path,
        now: datetime | None = None,
    ) -> AgeOutResult:
        """Remove and renumber the rotated files of *log_path*.

        Parameters
        ----------
        policy:
            Retention, naming and compression settings.
        log_path:
            The live log file (never touched here).
        dest_dir:
            Directory holding the rotated files (``olddir`` or the log's
            own directory).
        now:
            Override the current instant for the ``maxage`` check.

        Returns
        -------
        AgeOutResult
            Removed, renamed and compressed paths.
        """
        return self._run(policy, log_path, dest_dir, now, act=not self._dry_run)

    def plan(
        self,
        policy: PolicyRecord,
        log_path: Path,
        dest_dir: Path,
        now: datetime | None = None,
    ) -> AgeOutResult:
        """Report what :meth:`age_out` would remove and rename, touching nothing."""
        return self._run(policy, log_path, dest_dir, now, act=False)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        policy: PolicyRecord,
        log_path: Path,
        dest_dir: Path,
        now: datetime | None,
        act: bool,
    ) -> AgeOutResult:
        result = AgeOutResult()
        candidates = self.list_rotated(policy, log_path, dest_dir)

        if policy.maxage > 0:
            cutoff = (now or datetime.now()) - timedelta(days=policy.maxage)
            kept: list[tuple[Path, RotatedName]] = []
            for path, name in candidates:
                if datetime.fromtimestamp(path.stat().st_mtime) < cutoff:
                    logger.debug("%s is older than maxage %d days", path, policy.maxage)
                    self._remove(path, policy, result, act)
                else:
                    kept.append((path, name))
            candidates = kept

        if policy.dateext:
            self._prune_dated(policy, candidates, result, act)
        else:
            self._renumber(policy, dest_dir, candidates, result, act)
        return result

    def _prune_dated(
        self,
        policy: PolicyRecord,
        candidates: list[tuple[Path, RotatedName]],
        result: AgeOutResult,
        act: bool,
    ) -> None:
        keep = max(policy.rotate - 1, 0)
        ordered = sorted(candidates, key=lambda item: (item[1].date_suffix or "", item[0].name), reverse=True)
        for path, _ in ordered[keep:]:
            self._remove(path, policy, result, act)

    def _renumber(
        self,
        policy: PolicyRecord,
        dest_dir: Path,
        candidates: list[tuple[Path, RotatedName]],
        result: AgeOutResult,
        act: bool,
    ) -> None:
        ordered = sorted(candidates, key=lambda item: (item[1].index or 0, item[0].name), reverse=True)
        for path, name in ordered:
            index = name.index or 0
            if index >= policy.rotate:
                self._remove(path, policy, result, act)
                continue

            shifted = name.with_index(index + 1)
            target = dest_dir / shifted.format()
            if target.exists() and target not in result.removed:
                self._remove(target, policy, result, act)
            result.renamed.append((path, target))
            if not act:
                if self._dry_run:
                    logger.info("Would rename %s -> %s", path, target)
                continue
            path.rename(target)
            logger.debug("Renamed %s -> %s", path, target)

            if policy.compress and not shifted.is_compressed and not is_gzip_file(target):
                compressed = dest_dir / shifted.with_compression(policy.compression_suffix).format()
                compress_file(target, compressed, policy)
                result.compressed.append(compressed)

    def _remove(self, path: Path, policy: PolicyRecord, result: AgeOutResult, act: bool) -> None:
        if act:
            self._remover(path, policy)
        elif self._dry_run:
            logger.info("Would remove %s", path)
        result.removed.append(path)
