"""Results and domain events produced by script execution."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from advscript.domain.conversation import DialogueOption


@dataclass(slots=True)
class DialogueLine:
    speaker: str
    text: str
    emotion: str = "Neutral"


@dataclass(slots=True)
class ScriptEvent:
    """Base class for events the host reacts to."""


@dataclass(slots=True)
class CombatRequested(ScriptEvent):
    npc_id: str


@dataclass(slots=True)
class CombatEnded(ScriptEvent):
    victory: bool


@dataclass(slots=True)
class TradeRequested(ScriptEvent):
    npc_id: str


@dataclass(slots=True)
class TradeClosed(ScriptEvent):
    npc_id: str | None


@dataclass(slots=True)
class ConversationStarted(ScriptEvent):
    npc_id: str


@dataclass(slots=True)
class ConversationEnded(ScriptEvent):
    npc_id: str


@dataclass(slots=True)
class ShopOpened(ScriptEvent):
    npc_id: str
    title: str
    welcome_message: str = ""


@dataclass(slots=True)
class PlayerTeleported(ScriptEvent):
    room_id: str


@dataclass(slots=True)
class SoundRequested(ScriptEvent):
    sound_id: str


@dataclass(slots=True)
class MusicChanged(ScriptEvent):
    room_id: str
    music_id: str | None


@dataclass(slots=True)
class PlayerDied(ScriptEvent):
    cause: str = ""


@dataclass(slots=True)
class AdventureCompleted(ScriptEvent):
    quest_id: str


@dataclass(slots=True)
class ExecutionResult:
    """Everything one interpreter call produced, in emission order."""

    messages: List[str] = field(default_factory=list)
    dialogue: List[DialogueLine] = field(default_factory=list)
    options: List[List[DialogueOption]] = field(default_factory=list)
    events: List[ScriptEvent] = field(default_factory=list)
    adventure_completed: bool = False
    suspended: bool = False
