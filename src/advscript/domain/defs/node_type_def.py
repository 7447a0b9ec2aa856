"""Node type catalog data structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Protocol, Tuple

from advscript.core.types import NodeCategory, PortType, PropertyValue, RequiredFeature


class OwnerType(IntFlag):
    """Entity kinds a node type may be attached to."""

    NONE = 0
    ALL = 1
    GAME = 2
    ROOM = 4
    DOOR = 8
    NPC = 16
    GAME_OBJECT = 32
    QUEST = 64

    @classmethod
    def from_name(cls, name: str) -> "OwnerType":
        """Return the flag for an owner name such as ``"GameObject"`` or ``"All"``."""
        key = name.strip().replace("_", "").casefold()
        if key in ("*", "all"):
            return cls.ALL
        for member in cls:
            if member.name is not None and member.name.replace("_", "").casefold() == key:
                return member
        raise ValueError(f"Unknown owner type '{name}'.")

    @classmethod
    def from_names(cls, names: "Tuple[str, ...] | list[str]") -> "OwnerType":
        flags = cls.NONE
        for name in names:
            flags |= cls.from_name(name)
        return flags

    def matches(self, owner_name: str) -> bool:
        """Return True when a node with these owner flags may attach to owner_name."""
        if OwnerType.ALL in self or owner_name.strip() == "*":
            return True
        try:
            owner = OwnerType.from_name(owner_name)
        except ValueError:
            return False
        return owner != OwnerType.NONE and owner in self

    def names(self) -> list[str]:
        """Return the canonical owner names set in this flag value."""
        return [_OWNER_NAMES[member] for member in _OWNER_NAMES if member in self]


_OWNER_NAMES = {
    OwnerType.ALL: "All",
    OwnerType.GAME: "Game",
    OwnerType.ROOM: "Room",
    OwnerType.DOOR: "Door",
    OwnerType.NPC: "Npc",
    OwnerType.GAME_OBJECT: "GameObject",
    OwnerType.QUEST: "Quest",
}


@dataclass(frozen=True, slots=True)
class NodePort:
    name: str
    port_type: PortType = "Execution"
    data_type: str | None = None
    default_value: PropertyValue = None
    label: str = ""

    @property
    def is_execution(self) -> bool:
        return self.port_type == "Execution"


@dataclass(frozen=True, slots=True)
class NodePropertyDef:
    name: str
    display_name: str
    data_type: str = "string"
    default_value: PropertyValue = None
    options: Tuple[str, ...] = ()
    entity_type: str | None = None
    is_required: bool = False

    @property
    def requires_value(self) -> bool:
        """A property is mandatory when flagged required or when it references an entity."""
        return self.is_required or bool(self.entity_type)


@dataclass(frozen=True, slots=True)
class NodeTypeDef:
    """Immutable catalog entry describing one kind of node."""

    type_id: str
    display_name: str
    category: NodeCategory
    owner_types: OwnerType
    description: str = ""
    required_feature: RequiredFeature = "None"
    input_ports: Tuple[NodePort, ...] = field(default_factory=tuple)
    output_ports: Tuple[NodePort, ...] = field(default_factory=tuple)
    properties: Tuple[NodePropertyDef, ...] = field(default_factory=tuple)

    def find_input(self, name: str) -> NodePort | None:
        return _find_port(self.input_ports, name)

    def find_output(self, name: str) -> NodePort | None:
        return _find_port(self.output_ports, name)

    def find_property(self, name: str) -> NodePropertyDef | None:
        folded = name.casefold()
        for prop in self.properties:
            if prop.name.casefold() == folded:
                return prop
        return None

    def execution_outputs(self) -> list[NodePort]:
        return [port for port in self.output_ports if port.is_execution]

    def has_execution_input(self) -> bool:
        return any(port.is_execution for port in self.input_ports)


class NodeTypeLookup(Protocol):
    """Anything that resolves node type ids, such as the node type registry."""

    def get_node_type(self, type_id: str | None) -> NodeTypeDef | None: ...


def _find_port(ports: Tuple[NodePort, ...], name: str) -> NodePort | None:
    folded = name.casefold()
    for port in ports:
        if port.name.casefold() == folded:
            return port
    return None
