"""Lifecycle script execution.

Each script block (``prerotate``, ``postrotate``, ``preremove``,
``firstaction``, ``lastaction``) is written to a temporary shell script
and run synchronously with the affected log path as ``$1``.  There is no
timeout: a hanging script blocks the whole run.

Example
-------
>>> runner = ScriptRunner()
>>> result = runner.execute(["echo rotated $1"], "/var/log/app.log")
>>> result.ok
True
"""
from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pylogrotate.errors import ScriptError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScriptResult:
    """Outcome of one script invocation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """``True`` when the script exited 0 and wrote nothing to stderr."""
        return self.exit_code == 0 and not self.stderr.strip()


class ScriptRunner:
    """Runs script blocks through a POSIX shell.

    Parameters
    ----------
    shell:
        Interpreter used for the temporary script (default ``/bin/sh``).
    dry_run:
        Log what would run and return a successful result without
        spawning anything.
    """

    def __init__(self, shell: str = "/bin/sh", dry_run: bool = False) -> None:
        self._shell = shell
        self._dry_run = dry_run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, lines: Sequence[str], arg: str = "", name: str = "script") -> ScriptResult:
        """Run the script body *lines* with *arg* as its first argument.

        Parameters
        ----------
        lines:
            Script body, one shell line per item.
        arg:
            Value of ``$1``: a log path, or ``""`` for file-independent
            scripts.
        name:
            Label used in log messages (the directive name).

        Returns
        -------
        ScriptResult
            Exit status and captured output.  An empty body yields a
            successful result.

        Raises
        ------
        ScriptError
            If the temporary script cannot be written or the shell cannot
            be started.
        """
        if not lines:
            return ScriptResult(exit_code=0)
        if self._dry_run:
            logger.info("Would run %s script with argument %r", name, arg)
            return ScriptResult(exit_code=0)

        try:
            fd, script_name = tempfile.mkstemp(prefix="pylogrotate-", suffix=".sh")
        except OSError as exc:
            raise ScriptError(f"cannot create temporary {name} script: {exc}") from exc
        script_path = Path(script_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write("\n".join(lines) + "\n")
            logger.debug("Running %s script %s with argument %r", name, script_path, arg)
            completed = subprocess.run(
                [self._shell, str(script_path), arg],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ScriptError(f"cannot run {name} script: {exc}") from exc
        finally:
            script_path.unlink(missing_ok=True)

        result = ScriptResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
        if result.stdout.strip():
            logger.info("%s output: %s", name, result.stdout.strip())
        if result.stderr.strip():
            logger.error("%s error output: %s", name, result.stderr.strip())
        if result.exit_code != 0:
            logger.error("%s script exited with status %d", name, result.exit_code)
        return result
