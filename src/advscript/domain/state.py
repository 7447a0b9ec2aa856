"""Domain-level world state read and written by scripts."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from advscript.core.properties import CaseInsensitiveDict
from advscript.core.types import RequiredFeature
from advscript.domain.conversation import Continuation, ConversationState
from advscript.domain.defs.quest_def import QuestDef
from advscript.domain.defs.script_def import ScriptDefinition
from advscript.domain.modifiers import TemporaryModifier
from advscript.domain.quest_state import QuestProgress

NEED_LIMIT = 100


@dataclass(slots=True)
class FeatureFlags:
    """World-level toggles that gate optional node kinds."""

    combat: bool = True
    basic_needs: bool = False
    magic: bool = False
    crafting: bool = False

    def is_enabled(self, feature: RequiredFeature | str | None) -> bool:
        if feature in (None, "", "None"):
            return True
        if feature == "Combat":
            return self.combat
        if feature == "BasicNeeds":
            return self.basic_needs
        if feature == "Magic":
            return self.magic
        return True


@dataclass(slots=True)
class PlayerState:
    name: str = "Player"
    health: int = 100
    max_health: int = 100
    mana: int = 0
    max_mana: int = 0
    hunger: int = 0
    thirst: int = 0
    energy: int = 100
    sleep: int = 0
    sanity: int = 100
    strength: int = 10
    constitution: int = 10
    intelligence: int = 10
    dexterity: int = 10
    charisma: int = 10
    weight: int = 70
    age: int = 25
    height: int = 170
    money: int = 0
    initial_money: int = 0
    inventory: List[str] = field(default_factory=list)
    equipment: Dict[str, str] = field(default_factory=dict)
    abilities: List[str] = field(default_factory=list)
    need_rates: Dict[str, str] = field(default_factory=dict)

    def has_item(self, object_id: str) -> bool:
        return _contains_id(self.inventory, object_id)

    def item_count(self, object_id: str) -> int:
        folded = object_id.casefold()
        return sum(1 for item in self.inventory if item.casefold() == folded)


@dataclass(slots=True)
class Room:
    id: str
    name: str = ""
    description: str = ""
    is_interior: bool = False
    is_illuminated: bool = True
    music_id: str | None = None
    object_ids: List[str] = field(default_factory=list)
    npc_ids: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Door:
    id: str
    name: str = ""
    description: str = ""
    is_open: bool = False
    is_locked: bool = False
    visible: bool = True
    key_object_id: str | None = None


@dataclass(slots=True)
class Npc:
    id: str
    name: str = ""
    description: str = ""
    room_id: str | None = None
    visible: bool = True
    is_patrolling: bool = False
    is_following_player: bool = False
    patrol_route: List[str] = field(default_factory=list)
    patrol_index: int = 0
    movement_mode: str = "Turns"
    movement_speed: int = 1
    money: int = -1
    is_shopkeeper: bool = False
    buy_multiplier: float = 0.5
    sell_multiplier: float = 1.0
    is_corpse: bool = False
    magic_enabled: bool = False
    current_health: int = 100
    max_health: int = 100
    attack: int = 10
    defense: int = 5
    inventory: List[str] = field(default_factory=list)
    equipment: Dict[str, str] = field(default_factory=dict)
    abilities: List[str] = field(default_factory=list)

    @property
    def has_infinite_money(self) -> bool:
        return self.money < 0

    def has_item(self, object_id: str) -> bool:
        return _contains_id(self.inventory, object_id)


@dataclass(slots=True)
class GameObject:
    id: str
    name: str = ""
    description: str = ""
    room_id: str | None = None
    container_id: str | None = None
    visible: bool = True
    can_take: bool = True
    is_container: bool = False
    is_open: bool = False
    is_locked: bool = False
    contents_visible: bool = True
    price: int = 0
    weight: int = 0
    durability: int = 100
    is_lit: bool = False
    light_turns: int = -1


@dataclass
class WorldState:
    """Mutable state of one running adventure.

    Entity maps and the flag/counter maps are keyed case-insensitively.
    """

    game_id: str = "game"
    title: str = ""
    features: FeatureFlags = field(default_factory=FeatureFlags)
    player: PlayerState = field(default_factory=PlayerState)
    current_room_id: str | None = None
    rooms: CaseInsensitiveDict[Room] = field(default_factory=CaseInsensitiveDict)
    doors: CaseInsensitiveDict[Door] = field(default_factory=CaseInsensitiveDict)
    npcs: CaseInsensitiveDict[Npc] = field(default_factory=CaseInsensitiveDict)
    objects: CaseInsensitiveDict[GameObject] = field(default_factory=CaseInsensitiveDict)
    quests: CaseInsensitiveDict[QuestDef] = field(default_factory=CaseInsensitiveDict)
    quest_states: CaseInsensitiveDict[QuestProgress] = field(default_factory=CaseInsensitiveDict)
    flags: CaseInsensitiveDict[bool] = field(default_factory=CaseInsensitiveDict)
    counters: CaseInsensitiveDict[int] = field(default_factory=CaseInsensitiveDict)
    modifiers: List[TemporaryModifier] = field(default_factory=list)
    weather: str = "Clear"
    game_hour: int = 8
    game_minute: int = 0
    turn_counter: int = 0
    clock: float = 0.0
    in_combat: bool = False
    trade_npc_id: str | None = None
    continuations: List[Continuation] = field(default_factory=list)
    active_conversation: ConversationState | None = None
    scripts: List[ScriptDefinition] = field(default_factory=list)

    def add_room(self, room: Room) -> Room:
        self.rooms[room.id] = room
        return room

    def add_door(self, door: Door) -> Door:
        self.doors[door.id] = door
        return door

    def add_npc(self, npc: Npc) -> Npc:
        self.npcs[npc.id] = npc
        return npc

    def add_object(self, game_object: GameObject) -> GameObject:
        self.objects[game_object.id] = game_object
        return game_object

    def add_quest(self, quest: QuestDef) -> QuestDef:
        self.quests[quest.quest_id] = quest
        return quest

    def find_script(self, script_id: str) -> ScriptDefinition | None:
        folded = script_id.casefold()
        for script in self.scripts:
            if script.id.casefold() == folded:
                return script
        return None

    def scripts_for(self, owner_type: str, owner_id: str) -> List[ScriptDefinition]:
        return [script for script in self.scripts if script.is_owned_by(owner_type, owner_id)]

    def main_quests_completed(self) -> bool:
        """Return True when at least one main quest exists and all of them are Completed."""
        main_quests = [quest for quest in self.quests.values() if quest.is_main_quest]
        if not main_quests:
            return False
        for quest in main_quests:
            progress = self.quest_states.get(quest.quest_id)
            if progress is None or not progress.is_completed:
                return False
        return True

    def pending_choice(self) -> Continuation | None:
        for continuation in self.continuations:
            if continuation.kind in ("choice", "shop"):
                return continuation
        return None


def _contains_id(ids: List[str], target: str) -> bool:
    folded = target.casefold()
    return any(item.casefold() == folded for item in ids)
