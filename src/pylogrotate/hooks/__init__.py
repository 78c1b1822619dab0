"""Lifecycle script execution."""
from __future__ import annotations

from pylogrotate.hooks.runner import ScriptResult, ScriptRunner

__all__ = ["ScriptResult", "ScriptRunner"]
