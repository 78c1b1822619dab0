"""Rotation engine package for pylogrotate.

Provides rotated-name generation, age-out and renumbering, compression,
secure deletion, and the per-file rotation executor.
"""
from __future__ import annotations

from pylogrotate.rotation.ageout import AgeOutEngine, AgeOutResult
from pylogrotate.rotation.compression import compress_file, is_gzip_file
from pylogrotate.rotation.executor import RotationExecutor, RotationOutcome
from pylogrotate.rotation.naming import (
    RotatedName,
    compute_rotated_name,
    format_date_suffix,
    new_rotated_name,
)
from pylogrotate.rotation.shred import shred_file

__all__ = [
    "AgeOutEngine",
    "AgeOutResult",
    "RotatedName",
    "RotationExecutor",
    "RotationOutcome",
    "compress_file",
    "compute_rotated_name",
    "format_date_suffix",
    "is_gzip_file",
    "new_rotated_name",
    "shred_file",
]
