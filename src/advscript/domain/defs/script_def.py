"""Script graph definitions: nodes, connections and the owning script."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from advscript.core.properties import PropertyBag
from advscript.core.types import NodeCategory

if TYPE_CHECKING:
    from advscript.domain.defs.node_type_def import NodeTypeLookup


def new_id() -> str:
    """Return a fresh unique identifier for nodes, connections and scripts."""
    return uuid.uuid4().hex


@dataclass(slots=True)
class ScriptNode:
    """One node instance inside a script graph."""

    node_type: str
    category: NodeCategory | str = ""
    id: str = field(default_factory=new_id)
    x: float = 0.0
    y: float = 0.0
    comment: str | None = None
    properties: PropertyBag = field(default_factory=PropertyBag)

    def __post_init__(self) -> None:
        if not isinstance(self.properties, PropertyBag):
            self.properties = PropertyBag(self.properties)


@dataclass(slots=True)
class NodeConnection:
    """Directed edge from an output port to an input port."""

    from_node_id: str
    from_port: str
    to_node_id: str
    to_port: str
    id: str = field(default_factory=new_id)

    def is_control_edge(self, registry: NodeTypeLookup, script: ScriptDefinition) -> bool:
        """Return True when both ends resolve to Execution ports.

        Dangling node ids, unknown node types and unknown port names never
        make a control edge.
        """
        source = script.find_node(self.from_node_id)
        target = script.find_node(self.to_node_id)
        if source is None or target is None:
            return False
        source_def = registry.get_node_type(source.node_type)
        target_def = registry.get_node_type(target.node_type)
        if source_def is None or target_def is None:
            return False
        out_port = source_def.find_output(self.from_port)
        in_port = target_def.find_input(self.to_port)
        return (
            out_port is not None
            and in_port is not None
            and out_port.is_execution
            and in_port.is_execution
        )


@dataclass(slots=True)
class ScriptDefinition:
    """A graph attached to one game entity."""

    owner_type: str
    owner_id: str
    name: str = "New Script"
    id: str = field(default_factory=new_id)
    nodes: List[ScriptNode] = field(default_factory=list)
    connections: List[NodeConnection] = field(default_factory=list)

    def find_node(self, node_id: str | None) -> ScriptNode | None:
        """Return the node with node_id, or None for dangling references."""
        if not node_id:
            return None
        folded = node_id.casefold()
        for node in self.nodes:
            if node.id.casefold() == folded:
                return node
        return None

    def connections_from(self, node_id: str, port: str) -> List[NodeConnection]:
        node_key = node_id.casefold()
        port_key = port.casefold()
        return [
            connection
            for connection in self.connections
            if connection.from_node_id.casefold() == node_key
            and connection.from_port.casefold() == port_key
        ]

    def connection_into(self, node_id: str, port: str) -> NodeConnection | None:
        """Return the first connection feeding an input port, if any."""
        node_key = node_id.casefold()
        port_key = port.casefold()
        for connection in self.connections:
            if (
                connection.to_node_id.casefold() == node_key
                and connection.to_port.casefold() == port_key
            ):
                return connection
        return None

    def is_owned_by(self, owner_type: str, owner_id: str) -> bool:
        return (
            self.owner_type.casefold() == owner_type.casefold()
            and self.owner_id.casefold() == owner_id.casefold()
        )

    def add_node(self, node: ScriptNode) -> ScriptNode:
        self.nodes.append(node)
        return node

    def connect(
        self, from_node: ScriptNode, from_port: str, to_node: ScriptNode, to_port: str
    ) -> NodeConnection:
        connection = NodeConnection(
            from_node_id=from_node.id,
            from_port=from_port,
            to_node_id=to_node.id,
            to_port=to_port,
        )
        self.connections.append(connection)
        return connection
