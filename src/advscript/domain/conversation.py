"""Suspended execution and conversation state stored on the world."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from advscript.core.properties import CaseInsensitiveDict
from advscript.core.types import ContinuationKind, PropertyValue
from advscript.domain.defs.script_def import new_id


@dataclass(slots=True)
class ExecutionFrame:
    """One pending unit of work for the interpreter.

    An entering frame runs ``node_id`` as reached through input ``port``. A
    following frame walks the control edges leaving output ``port`` of
    ``node_id``.
    """

    script_id: str
    node_id: str
    port: str
    entering: bool = False
    params: CaseInsensitiveDict[PropertyValue] = field(default_factory=CaseInsensitiveDict)


@dataclass(slots=True)
class DialogueOption:
    index: int
    text: str
    port: str


@dataclass(slots=True)
class Continuation:
    """A walk parked at a Delay, player choice or shop node."""

    kind: ContinuationKind
    script_id: str
    node_id: str
    frames: List[ExecutionFrame] = field(default_factory=list)
    due_at: float | None = None
    options: List[DialogueOption] = field(default_factory=list)
    params: CaseInsensitiveDict[PropertyValue] = field(default_factory=CaseInsensitiveDict)
    id: str = field(default_factory=new_id)


@dataclass(slots=True)
class ConversationState:
    npc_id: str
    script_id: str
    current_node_id: str | None = None
    is_active: bool = True
    in_shop: bool = False
    visited_node_ids: List[str] = field(default_factory=list)
    current_options: List[DialogueOption] = field(default_factory=list)

    def has_visited(self, node_id: str) -> bool:
        folded = node_id.casefold()
        return any(visited.casefold() == folded for visited in self.visited_node_ids)
