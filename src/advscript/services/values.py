"""Value coercion, comparison and named access to world state."""
from __future__ import annotations

import math
from typing import Callable, Dict, Tuple

from advscript.core.types import PropertyValue
from advscript.domain.state import NEED_LIMIT, PlayerState, WorldState

FLOAT_TOLERANCE = 0.0001
OPERATORS = ("==", "!=", "<", "<=", ">", ">=")
TRUE_STRINGS = frozenset({"true", "1", "yes", "si"})

PLAYER_STATES: Dict[str, str] = {
    "health": "health",
    "maxhealth": "max_health",
    "hunger": "hunger",
    "thirst": "thirst",
    "energy": "energy",
    "sleep": "sleep",
    "sanity": "sanity",
    "mana": "mana",
    "maxmana": "max_mana",
    "strength": "strength",
    "constitution": "constitution",
    "intelligence": "intelligence",
    "dexterity": "dexterity",
    "charisma": "charisma",
    "money": "money",
}
_NEEDS = frozenset({"hunger", "thirst", "energy", "sleep", "sanity"})


def to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().casefold() in TRUE_STRINGS
    return default


def to_int(value: object, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return default
        return int(number) if math.isfinite(number) else default
    return default


def to_float(value: object, default: float = 0.0) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def compare(left: object, operator: str, right: object) -> bool:
    """Compare two dynamically typed values.

    Booleans and strings only support ``==`` and ``!=``; strings compare
    without regard to case. Numbers compare with a small tolerance for
    equality. Unknown operators and mixed kinds compare False.
    """
    if operator not in OPERATORS:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        if operator not in ("==", "!="):
            return False
        equal = to_bool(left) == to_bool(right)
        return equal if operator == "==" else not equal
    left_number = _as_number(left)
    right_number = _as_number(right)
    if left_number is not None and right_number is not None:
        close = abs(left_number - right_number) < FLOAT_TOLERANCE
        if operator == "==":
            return close
        if operator == "!=":
            return not close
        if operator == "<":
            return left_number < right_number and not close
        if operator == "<=":
            return left_number < right_number or close
        if operator == ">":
            return left_number > right_number and not close
        return left_number > right_number or close
    if isinstance(left, str) and isinstance(right, str):
        if operator not in ("==", "!="):
            return False
        equal = left.casefold() == right.casefold()
        return equal if operator == "==" else not equal
    return False


def time_of_day(hour: int) -> str:
    hour %= 24
    if 6 <= hour < 12:
        return "Morning"
    if 12 <= hour < 20:
        return "Afternoon"
    if hour >= 20:
        return "Night"
    return "Dawn"


# -- player stats ------------------------------------------------------------


def get_player_stat(player: PlayerState, state_type: str) -> int | None:
    attr = PLAYER_STATES.get(state_type.replace(" ", "").casefold())
    if attr is None:
        return None
    return getattr(player, attr)


def set_player_stat(player: PlayerState, state_type: str, value: int) -> int | None:
    """Write a stat through its clamp and return the stored value.

    Returns None for an unknown stat name.
    """
    key = state_type.replace(" ", "").casefold()
    attr = PLAYER_STATES.get(key)
    if attr is None:
        return None
    if key == "health":
        value = max(0, min(value, player.max_health))
    elif key == "maxhealth":
        value = max(1, value)
        player.health = min(player.health, value)
    elif key in _NEEDS:
        value = max(0, min(value, NEED_LIMIT))
    elif key == "mana":
        value = max(0, min(value, player.max_mana))
    elif key == "maxmana":
        value = max(0, value)
        player.mana = min(player.mana, value)
    else:
        value = max(0, value)
    setattr(player, attr, value)
    return value


def modify_player_stat(player: PlayerState, state_type: str, amount: int) -> int | None:
    current = get_player_stat(player, state_type)
    if current is None:
        return None
    return set_player_stat(player, state_type, current + amount)


# -- entity properties ---------------------------------------------------------

# Property name -> attribute name, per entity kind.
ENTITY_PROPERTIES: Dict[str, Dict[str, str]] = {
    "room": {
        "name": "name",
        "description": "description",
        "isinterior": "is_interior",
        "isilluminated": "is_illuminated",
        "musicid": "music_id",
    },
    "door": {
        "name": "name",
        "description": "description",
        "isopen": "is_open",
        "islocked": "is_locked",
        "visible": "visible",
        "keyobjectid": "key_object_id",
    },
    "npc": {
        "name": "name",
        "description": "description",
        "roomid": "room_id",
        "visible": "visible",
        "ispatrolling": "is_patrolling",
        "isfollowingplayer": "is_following_player",
        "money": "money",
        "iscorpse": "is_corpse",
        "isshopkeeper": "is_shopkeeper",
        "currenthealth": "current_health",
        "maxhealth": "max_health",
    },
    "gameobject": {
        "name": "name",
        "description": "description",
        "roomid": "room_id",
        "visible": "visible",
        "cantake": "can_take",
        "isopen": "is_open",
        "islocked": "is_locked",
        "price": "price",
        "weight": "weight",
        "durability": "durability",
        "islit": "is_lit",
        "contentsvisible": "contents_visible",
    },
    "game": {
        "weather": "weather",
        "title": "title",
        "gamehour": "game_hour",
        "gameminute": "game_minute",
        "turncounter": "turn_counter",
    },
}
_COLLECTIONS = {"room": "rooms", "door": "doors", "npc": "npcs", "gameobject": "objects"}


def _entity_target(world: WorldState, entity_type: str, entity_id: str | None) -> Tuple[str, object | None]:
    kind = entity_type.replace(" ", "").casefold()
    if kind == "player":
        return kind, world.player
    if kind == "game":
        return kind, world
    collection = _COLLECTIONS.get(kind)
    if collection is None or not entity_id:
        return kind, None
    return kind, getattr(world, collection).get(entity_id)


def get_entity_property(
    world: WorldState, entity_type: str, entity_id: str | None, property_name: str
) -> PropertyValue:
    """Read a whitelisted property; unknown entities or names yield None."""
    kind, target = _entity_target(world, entity_type, entity_id)
    if target is None:
        return None
    prop_key = property_name.replace(" ", "").casefold()
    if kind == "player":
        if prop_key == "name":
            return world.player.name
        return get_player_stat(world.player, prop_key)
    attr = ENTITY_PROPERTIES.get(kind, {}).get(prop_key)
    if attr is None:
        return None
    return getattr(target, attr)


def set_entity_property(
    world: WorldState,
    entity_type: str,
    entity_id: str | None,
    property_name: str,
    raw_value: PropertyValue,
) -> Tuple[PropertyValue, PropertyValue] | None:
    """Write a whitelisted property, converting raw_value to the attribute's type.

    Returns ``(old, new)`` or None when the entity or property is unknown.
    """
    kind, target = _entity_target(world, entity_type, entity_id)
    if target is None:
        return None
    prop_key = property_name.replace(" ", "").casefold()
    if kind == "player":
        if prop_key == "name":
            old_name = world.player.name
            world.player.name = to_text(raw_value)
            return old_name, world.player.name
        old_stat = get_player_stat(world.player, prop_key)
        if old_stat is None:
            return None
        new_stat = set_player_stat(world.player, prop_key, to_int(raw_value, old_stat))
        return old_stat, new_stat
    attr = ENTITY_PROPERTIES.get(kind, {}).get(prop_key)
    if attr is None:
        return None
    old = getattr(target, attr)
    new = _convert_like(old, raw_value)
    if kind == "game" and attr == "game_hour":
        new = to_int(new) % 24
    elif kind == "game" and attr == "game_minute":
        new = to_int(new) % 60
    setattr(target, attr, new)
    return old, new


def _convert_like(current: object, raw_value: PropertyValue) -> PropertyValue:
    converters: Dict[type, Callable[[object], PropertyValue]] = {
        bool: lambda value: to_bool(value),
        int: lambda value: to_int(value, current),  # type: ignore[arg-type]
        float: lambda value: to_float(value, current),  # type: ignore[arg-type]
    }
    converter = converters.get(type(current))
    if converter is not None:
        return converter(raw_value)
    if raw_value is None or (isinstance(raw_value, str) and not raw_value.strip()):
        return None if current is None else ""
    return to_text(raw_value)
