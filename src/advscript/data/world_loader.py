"""Build a WorldState from a world JSON file.

World files list entities with camelCase keys that mirror the dataclass
fields (``isIlluminated`` for ``is_illuminated``), plus the scripts attached
to them in the script record format.
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, TypeVar

from advscript.core.types import QUEST_STATUSES
from advscript.data.errors import DataReferenceError, DataValidationError
from advscript.data.json_loader import load_json
from advscript.data.script_codec import continuation_from_record, script_from_record
from advscript.domain.defs import QuestDef
from advscript.domain.quest_state import QuestProgress
from advscript.domain.state import (
    Door,
    FeatureFlags,
    GameObject,
    Npc,
    PlayerState,
    Room,
    WorldState,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")

_OWNER_COLLECTIONS = {
    "room": "rooms",
    "door": "doors",
    "npc": "npcs",
    "gameobject": "objects",
    "quest": "quests",
}


def load_world(path: Path) -> WorldState:
    """Load and validate a world file."""
    world = world_from_record(load_json(path), context=path.name)
    logger.info("Loaded world '%s' with %d scripts from %s", world.game_id, len(world.scripts), path)
    return world


def world_from_record(payload: object, context: str = "world") -> WorldState:
    data = _require_mapping(payload, context)
    world = WorldState(
        game_id=_optional_str(data.get("gameId"), f"{context}.gameId") or "game",
        title=_optional_str(data.get("title"), f"{context}.title") or "",
    )
    world.features = _apply_fields(
        FeatureFlags(), _require_mapping(data.get("features", {}), f"{context}.features"),
        f"{context}.features",
    )
    world.player = _apply_fields(
        PlayerState(), _require_mapping(data.get("player", {}), f"{context}.player"),
        f"{context}.player",
    )
    world.weather = _optional_str(data.get("weather"), f"{context}.weather") or "Clear"
    world.game_hour = _require_int(data.get("gameHour", 8), f"{context}.gameHour") % 24
    world.game_minute = _require_int(data.get("gameMinute", 0), f"{context}.gameMinute") % 60

    for room in _build_entities(data, "rooms", Room, context):
        world.add_room(room)
    for door in _build_entities(data, "doors", Door, context):
        world.add_door(door)
    for npc in _build_entities(data, "npcs", Npc, context):
        world.add_npc(npc)
    for game_object in _build_entities(data, "objects", GameObject, context):
        world.add_object(game_object)
    for quest in _build_quests(data.get("quests", []), f"{context}.quests"):
        world.add_quest(quest)

    for key, value in _require_mapping(data.get("flags", {}), f"{context}.flags").items():
        if not isinstance(value, bool):
            raise DataValidationError(f"{context}.flags.{key} must be a boolean.")
        world.flags[key] = value
    for key, value in _require_mapping(data.get("counters", {}), f"{context}.counters").items():
        world.counters[key] = _require_int(value, f"{context}.counters.{key}")
    for key, value in _require_mapping(data.get("questStates", {}), f"{context}.questStates").items():
        if value not in QUEST_STATUSES:
            raise DataValidationError(
                f"{context}.questStates.{key} must be one of {', '.join(QUEST_STATUSES)}."
            )
        world.quest_states[key] = QuestProgress(quest_id=key, status=value)

    start_room = _optional_str(data.get("startRoomId"), f"{context}.startRoomId")
    if start_room is not None:
        if start_room not in world.rooms:
            raise DataReferenceError(f"{context}.startRoomId '{start_room}' is not a known room.")
        world.current_room_id = start_room

    for index, record in enumerate(_require_list(data.get("scripts", []), f"{context}.scripts")):
        world.scripts.append(script_from_record(record, f"{context}.scripts[{index}]"))
    for index, record in enumerate(
        _require_list(data.get("continuations", []), f"{context}.continuations")
    ):
        world.continuations.append(
            continuation_from_record(record, f"{context}.continuations[{index}]")
        )

    _check_references(world, context)
    _place_entities(world)
    return world


def _build_entities(
    data: Mapping[str, object], key: str, factory: Callable[..., E], context: str
) -> List[E]:
    entities: List[E] = []
    for index, entry in enumerate(_require_list(data.get(key, []), f"{context}.{key}")):
        entry_ctx = f"{context}.{key}[{index}]"
        mapping = _require_mapping(entry, entry_ctx)
        entity_id = _require_str(mapping.get("id"), f"{entry_ctx}.id")
        entities.append(_apply_fields(factory(id=entity_id), mapping, f"{key} '{entity_id}'"))
    return entities


def _build_quests(value: object, context: str) -> List[QuestDef]:
    quests: List[QuestDef] = []
    for index, entry in enumerate(_require_list(value, context)):
        entry_ctx = f"{context}[{index}]"
        mapping = _require_mapping(entry, entry_ctx)
        quest_id = _require_str(mapping.get("id"), f"{entry_ctx}.id")
        objectives = _require_list(mapping.get("objectives", []), f"quest '{quest_id}' objectives")
        if not all(isinstance(item, str) for item in objectives):
            raise DataValidationError(f"quest '{quest_id}' objectives must be strings.")
        is_main = mapping.get("isMainQuest", True)
        if not isinstance(is_main, bool):
            raise DataValidationError(f"quest '{quest_id}' isMainQuest must be a boolean.")
        quests.append(
            QuestDef(
                quest_id=quest_id,
                name=_optional_str(mapping.get("name"), f"quest '{quest_id}' name") or quest_id,
                description=_optional_str(
                    mapping.get("description"), f"quest '{quest_id}' description"
                )
                or "",
                is_main_quest=is_main,
                objectives=tuple(objectives),  # type: ignore[arg-type]
            )
        )
    return quests


def _apply_fields(instance: E, mapping: Mapping[str, object], context: str) -> E:
    """Copy camelCase keys onto matching dataclass fields, checking value types."""
    for field in dataclasses.fields(instance):  # type: ignore[arg-type]
        if field.name == "id":
            continue
        key = _camel(field.name)
        if key not in mapping:
            continue
        value = mapping[key]
        current = getattr(instance, field.name)
        setattr(instance, field.name, _coerce(value, current, f"{context}.{key}"))
    return instance


def _coerce(value: object, current: object, context: str) -> Any:
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise DataValidationError(f"{context} must be a boolean.")
        return value
    if isinstance(current, int):
        return _require_int(value, context)
    if isinstance(current, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationError(f"{context} must be a number.")
        return float(value)
    if isinstance(current, list):
        items = _require_list(value, context)
        if not all(isinstance(item, str) for item in items):
            raise DataValidationError(f"{context} must be a list of strings.")
        return list(items)
    if isinstance(current, dict):
        mapping = _require_mapping(value, context)
        if not all(isinstance(item, str) for item in mapping.values()):
            raise DataValidationError(f"{context} values must be strings.")
        return dict(mapping)
    # str and optional str fields
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataValidationError(f"{context} must be a string.")
    return value


def _check_references(world: WorldState, context: str) -> None:
    for npc in world.npcs.values():
        if npc.room_id is not None and npc.room_id not in world.rooms:
            raise DataReferenceError(f"npc '{npc.id}' is in unknown room '{npc.room_id}'.")
    for game_object in world.objects.values():
        if game_object.room_id is not None and game_object.room_id not in world.rooms:
            raise DataReferenceError(
                f"object '{game_object.id}' is in unknown room '{game_object.room_id}'."
            )
        if game_object.container_id is not None and game_object.container_id not in world.objects:
            raise DataReferenceError(
                f"object '{game_object.id}' is in unknown container '{game_object.container_id}'."
            )
    for item_id in world.player.inventory:
        if item_id not in world.objects:
            raise DataReferenceError(f"{context}.player.inventory names unknown object '{item_id}'.")
    seen_scripts: set[str] = set()
    for script in world.scripts:
        folded = script.id.casefold()
        if folded in seen_scripts:
            raise DataValidationError(f"{context} has duplicate script id '{script.id}'.")
        seen_scripts.add(folded)
        collection_name = _OWNER_COLLECTIONS.get(script.owner_type.casefold())
        if collection_name is None:
            continue
        if script.owner_id not in getattr(world, collection_name):
            raise DataReferenceError(
                f"script '{script.id}' is attached to unknown {script.owner_type} '{script.owner_id}'."
            )


def _place_entities(world: WorldState) -> None:
    for npc in world.npcs.values():
        if npc.room_id is not None:
            room = world.rooms[npc.room_id]
            if npc.id not in room.npc_ids:
                room.npc_ids.append(npc.id)
    for game_object in world.objects.values():
        if game_object.room_id is not None:
            room = world.rooms[game_object.room_id]
            if game_object.id not in room.object_ids:
                room.object_ids.append(game_object.id)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _require_mapping(value: object, context: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DataValidationError(f"{context} must be an object/dict.")
    return value


def _require_list(value: object, context: str) -> List[Any]:
    if not isinstance(value, list):
        raise DataValidationError(f"{context} must be a list.")
    return value


def _require_str(value: object, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DataValidationError(f"{context} must be a non-empty string.")
    return value


def _optional_str(value: object, context: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataValidationError(f"{context} must be a string.")
    return value


def _require_int(value: object, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DataValidationError(f"{context} must be an integer.")
    return value
