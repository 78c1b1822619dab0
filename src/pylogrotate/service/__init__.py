"""Periodic rotation service driven by a YAML settings file."""
from __future__ import annotations

from pylogrotate.service.settings import ServiceSettings, SettingsLoader, run_service

__all__ = ["ServiceSettings", "SettingsLoader", "run_service"]
