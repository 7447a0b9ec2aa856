"""Quest definition data structures."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True)
class QuestDef:
    quest_id: str
    name: str
    description: str = ""
    is_main_quest: bool = True
    objectives: Tuple[str, ...] = ()
