"""Shared type aliases for the core and domain layers."""
from typing import Literal, Union

NodeCategory = Literal["Event", "Condition", "Action", "Flow", "Variable", "Dialogue"]
PortType = Literal["Execution", "Data"]
RequiredFeature = Literal["None", "Combat", "BasicNeeds", "Magic"]
QuestStatus = Literal["NotStarted", "InProgress", "Completed", "Failed"]
DurationType = Literal["Turns", "Seconds", "Permanent"]
ContinuationKind = Literal["delay", "choice", "shop"]

PropertyValue = Union[None, bool, int, float, str]

NODE_CATEGORIES: tuple[NodeCategory, ...] = (
    "Event",
    "Condition",
    "Action",
    "Flow",
    "Variable",
    "Dialogue",
)
PORT_TYPES: tuple[PortType, ...] = ("Execution", "Data")
REQUIRED_FEATURES: tuple[RequiredFeature, ...] = ("None", "Combat", "BasicNeeds", "Magic")
QUEST_STATUSES: tuple[QuestStatus, ...] = ("NotStarted", "InProgress", "Completed", "Failed")
DURATION_TYPES: tuple[DurationType, ...] = ("Turns", "Seconds", "Permanent")

__all__ = [
    "ContinuationKind",
    "DurationType",
    "NodeCategory",
    "PortType",
    "PropertyValue",
    "QuestStatus",
    "RequiredFeature",
    "NODE_CATEGORIES",
    "PORT_TYPES",
    "REQUIRED_FEATURES",
    "QUEST_STATUSES",
    "DURATION_TYPES",
]
