"""Service layer exports."""

from .errors import InterpreterError
from .script_events import (
    AdventureCompleted,
    CombatEnded,
    CombatRequested,
    ConversationEnded,
    ConversationStarted,
    DialogueLine,
    ExecutionResult,
    MusicChanged,
    PlayerDied,
    PlayerTeleported,
    ScriptEvent,
    ShopOpened,
    SoundRequested,
    TradeClosed,
    TradeRequested,
)
from .script_interpreter import ScriptInterpreter
from .script_validator import EMPTY, IncompleteNode, Issue, ScriptValidator, ValidationResult, format_issue

__all__ = [
    "InterpreterError",
    "AdventureCompleted",
    "CombatEnded",
    "CombatRequested",
    "ConversationEnded",
    "ConversationStarted",
    "DialogueLine",
    "ExecutionResult",
    "MusicChanged",
    "PlayerDied",
    "PlayerTeleported",
    "ScriptEvent",
    "ShopOpened",
    "SoundRequested",
    "TradeClosed",
    "TradeRequested",
    "ScriptInterpreter",
    "EMPTY",
    "IncompleteNode",
    "Issue",
    "ScriptValidator",
    "ValidationResult",
    "format_issue",
]
