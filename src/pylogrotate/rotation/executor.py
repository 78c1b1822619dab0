"""Rotation of a single log file.

:class:`RotationExecutor` carries one rotation event end to end:

1. per-file ``prerotate`` (unless ``sharedscripts``)
2. destination directory (``olddir`` handling)
3. refusal when the destination name is taken and age-out would not free it
4. ``mailfirst`` delivery of the live file
5. age-out and renumbering of older rotated files
6. rename / copy / copytruncate / renamecopy of the live file
7. state update
8. immediate compression (unless ``delaycompress``)
9. ``maillast`` delivery of the rotated file
10. per-file ``postrotate`` (unless ``sharedscripts``)

A failing script is logged and counted but does not stop the rotation.
File system failures abort this file only and surface as
:class:`~pylogrotate.errors.RotationError`.

Example
-------
>>> executor = RotationExecutor(RotationStateStore(Path("logrotate.status")))
>>> outcome = executor.rotate_file(policy, Path("/var/log/app.log"))
>>> outcome.rotated_path
PosixPath('/var/log/app.log.1')
"""
from __future__ import annotations

import logging
import os
import shutil
import stat
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pylogrotate.errors import RotationError, ScriptError
from pylogrotate.hooks.runner import ScriptRunner
from pylogrotate.mail.notifier import MailNotifier
from pylogrotate.policies.policy import Disposition, PolicyRecord
from pylogrotate.rotation.ageout import AgeOutEngine
from pylogrotate.rotation.compression import compress_file
from pylogrotate.rotation.naming import new_rotated_name
from pylogrotate.rotation.shred import shred_file
from pylogrotate.state.store import RotationStateStore

logger = logging.getLogger(__name__)


@dataclass
class RotationOutcome:
    """Result of rotating one file."""

    log_path: Path
    rotated_path: Path | None = None
    removed: list[Path] = field(default_factory=list)
    script_failures: int = 0
    mailed: bool = False


class RotationExecutor:
    """Performs rotation events.

    Parameters
    ----------
    state:
        Ledger updated after every successful rotation.
    scripts:
        Runner for ``prerotate``/``postrotate``/``preremove`` bodies.
    mailer:
        Delivers rotated files when a section sets ``mail``.
    dry_run:
        Evaluate and log every step without changing anything.
    clock:
        Returns the current instant (useful for testing).
    """

    def __init__(
        self,
        state: RotationStateStore,
        scripts: ScriptRunner | None = None,
        mailer: MailNotifier | None = None,
        dry_run: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._state = state
        self._scripts = scripts or ScriptRunner(dry_run=dry_run)
        self._mailer = mailer or MailNotifier(dry_run=dry_run)
        self._dry_run = dry_run
        self._clock = clock
        self._ageout = AgeOutEngine(remover=self.remove_rotated_file, dry_run=dry_run)
        self._script_failures = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def rotate_file(self, policy: PolicyRecord, log_path: Path) -> RotationOutcome:
        """Rotate *log_path* according to *policy*.

        Parameters
        ----------
        policy:
            Policy of the section that matched the file.
        log_path:
            Absolute path of the live log file.

        Returns
        -------
        RotationOutcome
            Where the file went and what was removed on the way.

        Raises
        ------
        RotationError
            If a file operation fails or the destination already exists.
        """
        self._script_failures = 0
        outcome = RotationOutcome(log_path=log_path)
        now = self._clock()
        logger.info("Rotating %s", log_path)

        if not policy.sharedscripts:
            self.run_script(policy.prerotate, str(log_path), "prerotate")

        dest_dir = self.resolve_destination_dir(policy, log_path)

        name = new_rotated_name(policy, log_path.name, now)
        dest = dest_dir / name.format()
        compressed_dest = dest_dir / name.with_compression(policy.compression_suffix).format()
        if not self._dry_run:
            self._check_destination(policy, log_path, dest_dir, now, dest, compressed_dest)

        if policy.mail and not policy.maillast:
            outcome.mailed = self._mailer.send(policy, log_path, f"{log_path} (before rotation)")

        try:
            aged = self._ageout.age_out(policy, log_path, dest_dir, now=now)
        except OSError as exc:
            raise RotationError(f"age-out of {log_path} failed: {exc}") from exc
        outcome.removed.extend(aged.removed)

        try:
            self._dispose(policy, log_path, dest)
        except OSError as exc:
            raise RotationError(f"rotation of {log_path} failed: {exc}") from exc
        # The rotation counts once the live file has moved, even if compression fails.
        self._state.set_last_rotation(str(log_path), now.date())

        try:
            if policy.compresses_immediately:
                if self._dry_run:
                    logger.info("Would compress %s -> %s", dest, compressed_dest)
                else:
                    compress_file(dest, compressed_dest, policy)
                dest = compressed_dest
        except OSError as exc:
            raise RotationError(f"compression of {dest} failed: {exc}") from exc
        outcome.rotated_path = dest

        if policy.mail and policy.maillast:
            outcome.mailed = self._mailer.send(policy, dest, f"{log_path} rotated")

        if not policy.sharedscripts:
            self.run_script(policy.postrotate, str(log_path), "postrotate")

        outcome.script_failures = self._script_failures
        logger.info("Rotated %s -> %s", log_path, dest)
        return outcome

    def resolve_destination_dir(self, policy: PolicyRecord, log_path: Path) -> Path:
        """Directory that receives the rotated files of *log_path*.

        A relative ``olddir`` is taken relative to the log's directory.  A
        missing ``olddir`` is created unless ``nocreateolddir`` is set, in
        which case the log's own directory is used instead.
        """
        if not policy.olddir:
            return log_path.parent
        olddir = Path(policy.olddir)
        if not olddir.is_absolute():
            olddir = log_path.parent / olddir
        if olddir.is_dir():
            return olddir
        if not policy.createolddir:
            logger.info(
                "olddir %s does not exist and nocreateolddir is set; using %s",
                olddir,
                log_path.parent,
            )
            return log_path.parent
        if self._dry_run:
            logger.info("Would create olddir %s", olddir)
            return olddir
        try:
            olddir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RotationError(f"cannot create olddir {olddir}: {exc}") from exc
        logger.info("Created olddir %s", olddir)
        return olddir

    def remove_rotated_file(self, path: Path, policy: PolicyRecord) -> None:
        """Delete a rotated file, running ``preremove`` first and shredding when asked."""
        self.run_script(policy.preremove, str(path), "preremove")
        if policy.shred:
            shred_file(path, policy.shredcycles)
        else:
            path.unlink()
            logger.info("Removed %s", path)

    def run_script(self, lines: Sequence[str], arg: str, name: str) -> bool:
        """Run one script body; failures are logged and counted, never raised."""
        if not lines:
            return True
        try:
            result = self._scripts.execute(lines, arg, name)
        except ScriptError as exc:
            self._script_failures += 1
            logger.error("%s", exc)
            return False
        if not result.ok:
            self._script_failures += 1
            logger.error("%s script failed for %s", name, arg or "<global>")
        return result.ok

    @property
    def script_failures(self) -> int:
        """Failed scripts since the last :meth:`rotate_file` started."""
        return self._script_failures

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_destination(
        self,
        policy: PolicyRecord,
        log_path: Path,
        dest_dir: Path,
        now: datetime,
        dest: Path,
        compressed_dest: Path,
    ) -> None:
        """Refuse the rotation before anything is removed when the new name is taken."""
        taken = [dest]
        if policy.compress:
            taken.append(compressed_dest)
        taken = [path for path in taken if path.exists()]
        if not taken:
            return
        try:
            planned = self._ageout.plan(policy, log_path, dest_dir, now=now)
        except OSError as exc:
            raise RotationError(f"age-out of {log_path} failed: {exc}") from exc
        freed = set(planned.removed) | {source for source, _ in planned.renamed}
        for path in taken:
            if path not in freed:
                raise RotationError(f"destination {path} already exists, not rotating {log_path}")

    def _dispose(self, policy: PolicyRecord, log_path: Path, dest: Path) -> None:
        if self._dry_run:
            logger.info("Would %s %s -> %s", policy.disposition.value, log_path, dest)
            return

        mode = stat.S_IMODE(log_path.stat().st_mode)
        match policy.disposition:
            case Disposition.COPY:
                shutil.copy2(log_path, dest)
            case Disposition.COPYTRUNCATE:
                shutil.copy2(log_path, dest)
                with log_path.open("r+b") as fh:
                    fh.truncate(0)
                logger.debug("Truncated %s", log_path)
            case Disposition.RENAMECOPY:
                temporary = log_path.with_name(log_path.name + ".tmp")
                log_path.rename(temporary)
                shutil.copy2(temporary, dest)
                temporary.unlink()
            case Disposition.RENAME:
                shutil.move(str(log_path), str(dest))

        if policy.create and not policy.keeps_original:
            log_path.touch()
            os.chmod(log_path, mode)
            logger.debug("Created new empty %s", log_path)
