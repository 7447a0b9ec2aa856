"""Timed player-state modifiers."""
from __future__ import annotations

from dataclasses import dataclass

from advscript.core.types import DurationType


@dataclass(slots=True)
class TemporaryModifier:
    """A named adjustment to one player stat, optionally applied every turn."""

    name: str
    state_type: str
    amount: int
    duration_type: DurationType = "Turns"
    remaining_duration: float = 0
    applied_at: float = 0.0
    is_recurring: bool = True

    def is_expired(self, now: float) -> bool:
        """Return True once the modifier should be removed.

        ``now`` is the world's logical clock in seconds.
        """
        if self.duration_type == "Permanent":
            return False
        if self.duration_type == "Turns":
            return self.remaining_duration <= 0
        return (now - self.applied_at) > self.remaining_duration
