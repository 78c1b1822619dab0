"""Policy records, the policy file parser and the eligibility evaluator."""
from __future__ import annotations

from pylogrotate.policies.evaluator import RotationEvaluator
from pylogrotate.policies.parser import ConfigParser, ConfigSection, ParsedConfig
from pylogrotate.policies.policy import Disposition, PolicyRecord, Schedule, parse_size

__all__ = [
    "ConfigParser",
    "ConfigSection",
    "Disposition",
    "ParsedConfig",
    "PolicyRecord",
    "RotationEvaluator",
    "Schedule",
    "parse_size",
]
