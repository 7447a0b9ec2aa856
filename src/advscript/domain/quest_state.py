"""Quest progress state data structures."""
from __future__ import annotations

from dataclasses import dataclass

from advscript.core.types import QuestStatus


@dataclass(slots=True)
class QuestProgress:
    """Tracks the status of one quest in the running world."""

    quest_id: str
    status: QuestStatus = "NotStarted"
    current_objective_index: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == "Completed"
