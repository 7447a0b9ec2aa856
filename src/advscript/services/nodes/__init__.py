"""Node handler tables, merged into one lookup for the interpreter."""

from .actions import table as _actions
from .base import DelayRequest, HandlerTable, NodeContext, Outcome, SuspendRequest, merge_tables
from .conditions import table as _conditions
from .dialogue import table as _dialogue
from .flow import table as _flow
from .variables import table as _variables

HANDLERS = merge_tables([_flow, _conditions, _variables, _actions, _dialogue])

__all__ = [
    "DelayRequest",
    "HANDLERS",
    "HandlerTable",
    "NodeContext",
    "Outcome",
    "SuspendRequest",
    "merge_tables",
]
