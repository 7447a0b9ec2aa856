from __future__ import annotations

from advscript.data.repositories import NodeTypeRegistry
from advscript.domain.defs import QuestDef, ScriptDefinition, ScriptNode
from advscript.domain.state import GameObject, Npc, Room, WorldState
from advscript.services import ScriptInterpreter

REGISTRY = NodeTypeRegistry()


def make_script(owner_type: str = "Room", owner_id: str = "hall", script_id: str | None = None) -> ScriptDefinition:
    script = ScriptDefinition(owner_type=owner_type, owner_id=owner_id, name="test script")
    if script_id is not None:
        script.id = script_id
    return script


def add_node(script: ScriptDefinition, node_type: str, node_id: str | None = None, **properties: object) -> ScriptNode:
    definition = REGISTRY.get_node_type(node_type)
    node = ScriptNode(
        node_type=node_type,
        category=definition.category if definition is not None else "",
        properties=properties,  # type: ignore[arg-type]
    )
    if node_id is not None:
        node.id = node_id
    return script.add_node(node)


def link(
    script: ScriptDefinition,
    source: ScriptNode,
    source_port: str,
    target: ScriptNode,
    target_port: str = "Exec",
) -> None:
    script.connect(source, source_port, target, target_port)


def chain(script: ScriptDefinition, *nodes: ScriptNode) -> None:
    """Wire nodes Exec -> Exec in order."""
    for source, target in zip(nodes, nodes[1:]):
        link(script, source, "Exec", target)


def make_world() -> WorldState:
    world = WorldState(game_id="test_game", title="Test")
    world.add_room(Room(id="hall", name="Hall"))
    world.add_room(Room(id="cellar", name="Cellar", is_illuminated=False))
    world.current_room_id = "hall"
    world.add_npc(Npc(id="keeper", name="Maren", room_id="hall", is_shopkeeper=True, money=50))
    world.rooms["hall"].npc_ids.append("keeper")
    world.add_object(GameObject(id="lamp", name="Lamp", room_id="hall", price=10))
    world.rooms["hall"].object_ids.append("lamp")
    world.add_object(GameObject(id="coin", name="Coin", price=1))
    world.add_quest(QuestDef(quest_id="main", name="Main Quest", objectives=("Begin", "End")))
    world.add_quest(QuestDef(quest_id="side", name="Side Quest", is_main_quest=False))
    return world


def make_interpreter(world: WorldState | None = None, **kwargs: object) -> ScriptInterpreter:
    return ScriptInterpreter(REGISTRY, world or make_world(), **kwargs)  # type: ignore[arg-type]


def install(world: WorldState, script: ScriptDefinition) -> ScriptDefinition:
    world.scripts.append(script)
    return script
