"""Rotation state ledger."""
from __future__ import annotations

from pylogrotate.state.store import EPOCH, RotationStateStore, StateEntry

__all__ = ["EPOCH", "RotationStateStore", "StateEntry"]
