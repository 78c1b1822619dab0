"""Run orchestration.

One invocation of the program is one :class:`LogRotateRunner` run:

1. parse every configuration path into sections
2. expand each section's patterns with :mod:`glob`
3. run ``firstaction`` bodies once
4. per section: evaluate every path, then rotate the due ones, with
   shared ``prerotate``/``postrotate`` around them under ``sharedscripts``
5. run ``lastaction`` bodies once

All per-run mutable state lives in a :class:`RunContext`, so several runs
can happen in one process.

Example
-------
>>> runner = LogRotateRunner(state_path=Path("logrotate.status"), force=True)
>>> result = runner.run([Path("/etc/logrotate.conf")])
>>> result.exit_code
<ExitCode.OK: 0>
"""
from __future__ import annotations

import glob
import logging
import os
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path

from pylogrotate.errors import ConfigError, LogRotateError, MissingLogFileError
from pylogrotate.hooks.runner import ScriptRunner
from pylogrotate.mail.notifier import MailNotifier
from pylogrotate.policies.evaluator import RotationEvaluator
from pylogrotate.policies.parser import ConfigParser, ConfigSection
from pylogrotate.rotation.executor import RotationExecutor, RotationOutcome
from pylogrotate.state.store import RotationStateStore

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit status.

    ``INVALID_ARGS`` is never returned by a run; click exits with it when
    it rejects the command line (``click.UsageError.exit_code``).
    """

    OK = 0
    ERROR = 1
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    NO_FILES = 4


@dataclass
class RunContext:
    """Mutable state of one run."""

    state: RotationStateStore
    sections: list[ConfigSection]
    force: bool = False
    dry_run: bool = False
    processed: set[str] = field(default_factory=set)


@dataclass
class RunResult:
    """Summary of one run."""

    exit_code: ExitCode = ExitCode.OK
    rotated: list[RotationOutcome] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    script_failures: int = 0


def expand_patterns(patterns: Iterable[str]) -> list[Path]:
    """Expand section patterns into absolute paths.

    A pattern with no match stays as a literal path so that missing-file
    handling still applies to it.  Directories matched by a wildcard are
    dropped.
    """
    paths: list[Path] = []
    for pattern in patterns:
        expanded = os.path.expanduser(pattern)
        matches = sorted(glob.glob(expanded))
        if matches:
            candidates = [Path(match) for match in matches if not Path(match).is_dir()]
        else:
            candidates = [Path(expanded)]
        for candidate in candidates:
            absolute = Path(os.path.abspath(candidate))
            if absolute not in paths:
                paths.append(absolute)
    return paths


class LogRotateRunner:
    """Drives a full rotation run.

    Parameters
    ----------
    state_path:
        State file location.
    force:
        Rotate every eligible file regardless of size and schedule.
    dry_run:
        Evaluate and log without changing files, state, or running scripts.
    parser:
        Configuration parser (default: a new :class:`ConfigParser`).
    scripts:
        Script runner shared by every section.
    mailer:
        Mail notifier shared by every section.
    clock:
        Returns the current instant (useful for testing).
    """

    def __init__(
        self,
        state_path: str | Path,
        force: bool = False,
        dry_run: bool = False,
        parser: ConfigParser | None = None,
        scripts: ScriptRunner | None = None,
        mailer: MailNotifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._state_path = Path(state_path)
        self._force = force
        self._dry_run = dry_run
        self._parser = parser or ConfigParser()
        self._scripts = scripts or ScriptRunner(dry_run=dry_run)
        self._mailer = mailer or MailNotifier(dry_run=dry_run)
        self._clock = clock
        self._evaluator = RotationEvaluator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, config_paths: Sequence[str | Path]) -> RunResult:
        """Parse *config_paths* and rotate everything that is due.

        Returns
        -------
        RunResult
            ``exit_code`` is ``CONFIG_ERROR`` when parsing fails (nothing is
            touched), ``NO_FILES`` when no section exists, ``ERROR`` when any
            rotation or script failed and ``OK`` otherwise.
        """
        try:
            config = self._parser.parse_all(config_paths)
        except ConfigError as exc:
            logger.error("Configuration error: %s", exc)
            return RunResult(exit_code=ExitCode.CONFIG_ERROR, errors=[str(exc)])

        if not config.sections:
            logger.error("No log file sections found in %s", ", ".join(map(str, config_paths)))
            return RunResult(exit_code=ExitCode.NO_FILES)

        try:
            state = RotationStateStore(self._state_path, dry_run=self._dry_run)
        except LogRotateError as exc:
            logger.error("%s", exc)
            return RunResult(exit_code=ExitCode.ERROR, errors=[str(exc)])

        context = RunContext(
            state=state,
            sections=config.sections,
            force=self._force,
            dry_run=self._dry_run,
        )
        return self.run_context(context)

    def run_context(self, context: RunContext) -> RunResult:
        """Process every section of an already prepared :class:`RunContext`."""
        result = RunResult()
        executor = RotationExecutor(
            context.state,
            scripts=self._scripts,
            mailer=self._mailer,
            dry_run=context.dry_run,
            clock=self._clock,
        )

        plan = [(section, expand_patterns(section.patterns)) for section in context.sections]
        has_candidates = any(path.exists() for _, paths in plan for path in paths)

        if has_candidates:
            for body in _distinct(section.policy.firstaction for section in context.sections):
                if not executor.run_script(body, "", "firstaction"):
                    result.script_failures += 1

        for section, paths in plan:
            self._process_section(context, executor, section, paths, result)

        if has_candidates:
            for body in _distinct(section.policy.lastaction for section in context.sections):
                if not executor.run_script(body, "", "lastaction"):
                    result.script_failures += 1

        if result.errors or result.script_failures:
            result.exit_code = ExitCode.ERROR
        logger.info(
            "Run finished: %d rotated, %d skipped, %d errors, %d script failures",
            len(result.rotated),
            len(result.skipped),
            len(result.errors),
            result.script_failures,
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _process_section(
        self,
        context: RunContext,
        executor: RotationExecutor,
        section: ConfigSection,
        paths: list[Path],
        result: RunResult,
    ) -> None:
        policy = section.policy
        due: list[Path] = []
        for path in paths:
            key = str(path)
            if key in context.processed and policy.ignoreduplicates:
                logger.info("%s was already handled in this run, skipping", path)
                continue
            context.processed.add(key)
            try:
                last_rotation = context.state.get_last_rotation(key)
                if self._evaluator.should_rotate(
                    path, policy, last_rotation, context.force, now=self._clock()
                ):
                    due.append(path)
                else:
                    result.skipped.append(path)
            except MissingLogFileError as exc:
                logger.error("%s", exc)
                result.skipped.append(path)
            except (LogRotateError, OSError) as exc:
                logger.error("Cannot inspect %s: %s", path, exc)
                result.errors.append(f"{path}: {exc}")

        if not due:
            return

        shared_arg = " ".join(section.patterns)
        if policy.sharedscripts and not executor.run_script(policy.prerotate, shared_arg, "prerotate"):
            result.script_failures += 1

        for path in due:
            try:
                outcome = executor.rotate_file(policy, path)
            except (LogRotateError, OSError) as exc:
                logger.error("Failed to rotate %s: %s", path, exc)
                result.errors.append(str(exc))
                result.script_failures += executor.script_failures
                continue
            result.rotated.append(outcome)
            result.script_failures += outcome.script_failures

        if policy.sharedscripts and not executor.run_script(policy.postrotate, shared_arg, "postrotate"):
            result.script_failures += 1


def _distinct(bodies: Iterable[tuple[str, ...]]) -> list[tuple[str, ...]]:
    return [body for body in dict.fromkeys(bodies) if body]
