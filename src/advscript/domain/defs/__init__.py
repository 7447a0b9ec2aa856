"""Domain definition exports."""

from .node_type_def import NodePort, NodePropertyDef, NodeTypeDef, NodeTypeLookup, OwnerType
from .quest_def import QuestDef
from .script_def import NodeConnection, ScriptDefinition, ScriptNode, new_id

__all__ = [
    "NodeConnection",
    "NodePort",
    "NodePropertyDef",
    "NodeTypeDef",
    "NodeTypeLookup",
    "OwnerType",
    "QuestDef",
    "ScriptDefinition",
    "ScriptNode",
    "new_id",
]
