"""Service mode: periodic rotation driven by a YAML settings file.

Example settings file::

    config_paths:
      - /etc/logrotate.conf
      - /etc/logrotate.d
    state_file: /var/lib/pylogrotate/status
    interval_seconds: 300
    verbose: true

Relative paths are resolved against the settings file's directory.  When
``config_paths`` is empty, ``logrotate.conf`` next to the settings file
is used.

Example
-------
>>> settings = SettingsLoader().load(Path("service.yaml"))
>>> run_service(settings, once=True)
0
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from pylogrotate.errors import ConfigError, LogRotateError
from pylogrotate.runner import ExitCode, LogRotateRunner

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "logrotate.conf"


class ServiceSettings(BaseModel):
    """Settings of the long-running rotation service."""

    model_config = {"extra": "forbid"}

    config_paths: list[Path] = Field(default_factory=list)
    state_file: Path = Field(default=Path("logrotate.status"))
    interval_seconds: int = Field(default=300, ge=1)
    force: bool = Field(default=False)
    dry_run: bool = Field(default=False)
    verbose: bool = Field(default=False)


class SettingsLoader:
    """Loads :class:`ServiceSettings` from YAML."""

    def load(self, settings_path: str | Path) -> ServiceSettings:
        """Load and validate a settings file.

        Raises
        ------
        ConfigError
            If the file is missing, is not valid YAML, or fails validation.
        """
        path = Path(settings_path)
        if not path.exists():
            raise ConfigError("service settings file not found", str(path))
        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML: {exc}", str(path)) from exc
        return self._resolve(self._validate(raw, str(path)), path.parent)

    def load_string(self, yaml_content: str, base_dir: Path | None = None) -> ServiceSettings:
        """Load settings from a YAML string (useful for testing)."""
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML: {exc}") from exc
        return self._resolve(self._validate(raw, "<string>"), base_dir or Path.cwd())

    def defaults(self) -> ServiceSettings:
        return ServiceSettings()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(raw: object, source: str) -> ServiceSettings:
        if not isinstance(raw, dict):
            raise ConfigError("service settings must be a mapping", source)
        try:
            return ServiceSettings.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"invalid service settings: {exc}", source) from exc

    @staticmethod
    def _resolve(settings: ServiceSettings, base_dir: Path) -> ServiceSettings:
        config_paths = [p if p.is_absolute() else base_dir / p for p in settings.config_paths]
        if not config_paths:
            config_paths = [base_dir / DEFAULT_CONFIG_NAME]
        state_file = settings.state_file
        if not state_file.is_absolute():
            state_file = base_dir / state_file
        return settings.model_copy(update={"config_paths": config_paths, "state_file": state_file})


def run_service(
    settings: ServiceSettings,
    once: bool = False,
    stop_event: threading.Event | None = None,
) -> int:
    """Run rotations every ``interval_seconds`` until *stop_event* is set.

    Failures of a single pass are logged and the loop keeps going.

    Parameters
    ----------
    settings:
        Validated service settings.
    once:
        Run a single pass and return its exit code.
    stop_event:
        Event that ends the loop when set.

    Returns
    -------
    int
        Exit code of the last pass.
    """
    stop = stop_event or threading.Event()
    exit_code = int(ExitCode.OK)
    logger.info(
        "Service started: %s every %ds",
        ", ".join(str(p) for p in settings.config_paths),
        settings.interval_seconds,
    )
    while True:
        runner = LogRotateRunner(
            state_path=settings.state_file,
            force=settings.force,
            dry_run=settings.dry_run,
        )
        try:
            exit_code = int(runner.run(settings.config_paths).exit_code)
        except LogRotateError as exc:
            logger.error("Rotation pass failed: %s", exc)
            exit_code = int(ExitCode.ERROR)
        if once or stop.wait(settings.interval_seconds):
            break
    logger.info("Service stopped")
    return exit_code
