"""pylogrotate: policy-driven log file rotation.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import pylogrotate
>>> pylogrotate.__version__
'0.1.0'
>>> config = pylogrotate.ConfigParser().parse_string("/var/log/app.log { rotate 3 }")
>>> config.sections[0].policy.rotate
3
"""
from __future__ import annotations

__version__: str = "0.1.0"

from pylogrotate.errors import (
    CompressionError,
    ConfigError,
    LogRotateError,
    MissingLogFileError,
    RotationError,
    ScriptError,
    StateFileError,
)

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
from pylogrotate.policies.evaluator import RotationEvaluator
from pylogrotate.policies.parser import ConfigParser, ConfigSection, ParsedConfig
from pylogrotate.policies.policy import Disposition, PolicyRecord, Schedule, parse_size

# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------
from pylogrotate.rotation.ageout import AgeOutEngine, AgeOutResult
from pylogrotate.rotation.executor import RotationExecutor, RotationOutcome
from pylogrotate.rotation.naming import RotatedName, compute_rotated_name

# ---------------------------------------------------------------------------
# State, hooks, mail
# ---------------------------------------------------------------------------
from pylogrotate.state.store import RotationStateStore, StateEntry
from pylogrotate.hooks.runner import ScriptResult, ScriptRunner
from pylogrotate.mail.notifier import MailNotifier

# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
from pylogrotate.runner import ExitCode, LogRotateRunner, RunContext, RunResult
from pylogrotate.service.settings import ServiceSettings, SettingsLoader, run_service

__all__ = [
    "__version__",
    # Errors
    "CompressionError",
    "ConfigError",
    "LogRotateError",
    "MissingLogFileError",
    "RotationError",
    "ScriptError",
    "StateFileError",
    # Policies
    "ConfigParser",
    "ConfigSection",
    "Disposition",
    "ParsedConfig",
    "PolicyRecord",
    "RotationEvaluator",
    "Schedule",
    "parse_size",
    # Rotation
    "AgeOutEngine",
    "AgeOutResult",
    "RotatedName",
    "RotationExecutor",
    "RotationOutcome",
    "compute_rotated_name",
    # State, hooks, mail
    "MailNotifier",
    "RotationStateStore",
    "ScriptResult",
    "ScriptRunner",
    "StateEntry",
    # Orchestration
    "ExitCode",
    "LogRotateRunner",
    "RunContext",
    "RunResult",
    "ServiceSettings",
    "SettingsLoader",
    "run_service",
]
