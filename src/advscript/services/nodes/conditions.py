"""Condition, Compare and Logic nodes."""
from __future__ import annotations

from advscript.core.types import PropertyValue
from advscript.domain.state import WorldState
from advscript.services.nodes.base import HandlerTable, NodeContext
from advscript.services.values import (
    compare,
    get_entity_property,
    get_player_stat,
    time_of_day,
)

table = HandlerTable()


def _same(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return left.casefold() == right.casefold()


def _contains(ids: list[str], target: str) -> bool:
    return any(_same(item, target) for item in ids)


def _stat(ctx: NodeContext) -> int:
    return get_player_stat(ctx.world.player, ctx.text("StateType", "Health")) or 0


def _room_is_lit(world: WorldState) -> bool:
    room = world.rooms.get(world.current_room_id or "")
    if room is None:
        return False
    if room.is_illuminated:
        return True
    for object_id in list(room.object_ids) + list(world.player.inventory):
        game_object = world.objects.get(object_id)
        if game_object is not None and game_object.is_lit:
            return True
    return False


# -- inventory, rooms and quests --------------------------------------------


@table.condition("Condition_HasItem")
def has_item(ctx: NodeContext) -> bool:
    return ctx.world.player.has_item(ctx.text("ObjectId"))


@table.condition("Condition_PlayerOwnsItem")
def player_owns_item(ctx: NodeContext) -> bool:
    return ctx.world.player.item_count(ctx.text("ObjectId")) >= max(1, ctx.integer("Quantity", 1))


@table.condition("Condition_IsInRoom")
def is_in_room(ctx: NodeContext) -> bool:
    return _same(ctx.world.current_room_id, ctx.text("RoomId"))


@table.condition("Condition_IsQuestStatus")
def is_quest_status(ctx: NodeContext) -> bool:
    progress = ctx.world.quest_states.get(ctx.text("QuestId"))
    status = progress.status if progress is not None else "NotStarted"
    return _same(status, ctx.text("Status", "InProgress"))


@table.condition("Condition_IsMainQuest")
def is_main_quest(ctx: NodeContext) -> bool:
    quest = ctx.world.quests.get(ctx.text("QuestId"))
    return quest is not None and quest.is_main_quest


@table.condition("Condition_HasFlag")
def has_flag(ctx: NodeContext) -> bool:
    return bool(ctx.world.flags.get(ctx.text("FlagName"), False))


@table.condition("Condition_CompareCounter")
def compare_counter(ctx: NodeContext) -> bool:
    current = ctx.world.counters.get(ctx.text("CounterName"), 0)
    return compare(current, ctx.text("Operator", "=="), ctx.integer("Value"))


@table.condition("Condition_IsTimeOfDay")
def is_time_of_day(ctx: NodeContext) -> bool:
    return _same(time_of_day(ctx.world.game_hour), ctx.text("TimeRange", "Morning"))


@table.condition("Condition_IsWeather")
def is_weather(ctx: NodeContext) -> bool:
    return _same(ctx.world.weather, ctx.text("Weather", "Clear"))


@table.condition("Condition_IsRoomLit")
def is_room_lit(ctx: NodeContext) -> bool:
    return _room_is_lit(ctx.world)


@table.condition("Condition_Random")
def random_check(ctx: NodeContext) -> bool:
    return ctx.rng.randint(0, 99) < ctx.integer("Probability", 50)


# -- doors, objects and containers ------------------------------------------


@table.condition("Condition_IsDoorOpen")
def is_door_open(ctx: NodeContext) -> bool:
    door = ctx.world.doors.get(ctx.text("DoorId"))
    return door is not None and door.is_open


@table.condition("Condition_IsDoorLocked")
def is_door_locked(ctx: NodeContext) -> bool:
    door = ctx.world.doors.get(ctx.text("DoorId"))
    return door is not None and door.is_locked


@table.condition("Condition_IsDoorVisible")
def is_door_visible(ctx: NodeContext) -> bool:
    door = ctx.world.doors.get(ctx.text("DoorId"))
    return door is not None and door.visible


@table.condition("Condition_IsObjectVisible")
def is_object_visible(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and game_object.visible


@table.condition("Condition_IsObjectTakeable")
def is_object_takeable(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and game_object.can_take


@table.condition("Condition_IsContainerOpen")
def is_container_open(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and game_object.is_open


@table.condition("Condition_IsContainerLocked")
def is_container_locked(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and game_object.is_locked


@table.condition("Condition_IsObjectLit")
def is_object_lit(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and game_object.is_lit


@table.condition("Condition_ObjectInContainer")
def object_in_container(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and _same(game_object.container_id, ctx.text("ContainerId"))


@table.condition("Condition_ObjectInRoom")
def object_in_room(ctx: NodeContext) -> bool:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    return game_object is not None and _same(game_object.room_id, ctx.text("RoomId"))


# -- NPCs ----------------------------------------------------------------------


@table.condition("Condition_IsNpcVisible")
def is_npc_visible(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.visible


@table.condition("Condition_NpcInRoom")
def npc_in_room(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and _same(npc.room_id, ctx.text("RoomId"))


@table.condition("Condition_IsPatrolling")
def is_patrolling(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.is_patrolling


@table.condition("Condition_IsFollowingPlayer")
def is_following_player(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.is_following_player


@table.condition("Condition_IsNpcAlive")
def is_npc_alive(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and not npc.is_corpse and npc.current_health > 0


@table.condition("Condition_NpcHealthBelow")
def npc_health_below(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.current_health < ctx.integer("Threshold", 50)


@table.condition("Condition_NpcHasItem")
def npc_has_item(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.has_item(ctx.text("ObjectId"))


@table.condition("Condition_NpcHasMoney")
def npc_has_money(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return False
    return npc.has_infinite_money or npc.money >= ctx.integer("Amount", 100)


@table.condition("Condition_NpcHasInfiniteMoney")
def npc_has_infinite_money(ctx: NodeContext) -> bool:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    return npc is not None and npc.has_infinite_money


# -- player state, combat and trade -------------------------------------------


@table.condition("Condition_PlayerStateAbove")
def player_state_above(ctx: NodeContext) -> bool:
    return _stat(ctx) > ctx.integer("Threshold", 50)


@table.condition("Condition_PlayerStateBelow")
def player_state_below(ctx: NodeContext) -> bool:
    return _stat(ctx) < ctx.integer("Threshold", 25)


@table.condition("Condition_PlayerStateEquals")
def player_state_equals(ctx: NodeContext) -> bool:
    return _stat(ctx) == ctx.integer("Value", 100)


@table.condition("Condition_PlayerStateBetween")
def player_state_between(ctx: NodeContext) -> bool:
    return ctx.integer("MinValue", 25) <= _stat(ctx) <= ctx.integer("MaxValue", 75)


@table.condition("Condition_HasModifier")
def has_modifier(ctx: NodeContext) -> bool:
    name = ctx.text("ModifierName")
    return any(_same(modifier.name, name) for modifier in ctx.world.modifiers)


@table.condition("Condition_HasModifierForState")
def has_modifier_for_state(ctx: NodeContext) -> bool:
    state_type = ctx.text("StateType", "Health")
    return any(_same(modifier.state_type, state_type) for modifier in ctx.world.modifiers)


@table.condition("Condition_IsPlayerAlive")
def is_player_alive(ctx: NodeContext) -> bool:
    return ctx.world.player.health > 0


@table.condition("Condition_IsInCombat")
def is_in_combat(ctx: NodeContext) -> bool:
    return ctx.world.in_combat


@table.condition("Condition_PlayerHealthBelow")
def player_health_below(ctx: NodeContext) -> bool:
    return ctx.world.player.health < ctx.integer("Threshold", 50)


@table.condition("Condition_PlayerHealthAbove")
def player_health_above(ctx: NodeContext) -> bool:
    return ctx.world.player.health > ctx.integer("Threshold", 50)


@table.condition("Condition_PlayerHasEquipped")
def player_has_equipped(ctx: NodeContext) -> bool:
    object_id = ctx.text("ObjectId")
    slot = ctx.text("Slot", "Any")
    equipment = ctx.world.player.equipment
    if _same(slot, "Any"):
        return any(_same(item, object_id) for item in equipment.values())
    return any(_same(key, slot) and _same(item, object_id) for key, item in equipment.items())


@table.condition("Condition_IsPlayerSlotEmpty")
def is_player_slot_empty(ctx: NodeContext) -> bool:
    slot = ctx.text("Slot", "MainHand")
    return not any(_same(key, slot) and item for key, item in ctx.world.player.equipment.items())


@table.condition("Condition_IsInTrade")
def is_in_trade(ctx: NodeContext) -> bool:
    return ctx.world.trade_npc_id is not None


@table.condition("Condition_PlayerHasMoney")
def player_has_money(ctx: NodeContext) -> bool:
    return ctx.world.player.money >= ctx.integer("Amount", 100)


@table.condition("Condition_HasAbility")
def has_ability(ctx: NodeContext) -> bool:
    return _contains(ctx.world.player.abilities, ctx.text("AbilityId"))


@table.condition("Condition_CompareProperty")
def compare_property(ctx: NodeContext) -> bool:
    current = get_entity_property(
        ctx.world, ctx.text("EntityType", "Player"), ctx.text("EntityId"), ctx.text("PropertyName")
    )
    if current is None:
        return False
    return compare(current, ctx.text("Operator", "=="), ctx.value("CompareValue"))


# -- data-only comparisons and logic ---------------------------------------------


@table.data("Compare_Int")
def compare_int(ctx: NodeContext, port: str) -> PropertyValue:
    return compare(ctx.integer("A"), ctx.text("Operator", "=="), ctx.integer("B"))


@table.data("Compare_PlayerMoney")
def compare_player_money(ctx: NodeContext, port: str) -> PropertyValue:
    return compare(ctx.world.player.money, ctx.text("Operator", ">="), ctx.integer("CompareValue"))


@table.data("Compare_Counter")
def compare_counter_value(ctx: NodeContext, port: str) -> PropertyValue:
    current = ctx.world.counters.get(ctx.text("CounterName"), 0)
    return compare(current, ctx.text("Operator", "=="), ctx.integer("CompareValue"))


@table.data("Logic_And")
def logic_and(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.flag("A") and ctx.flag("B")


@table.data("Logic_Or")
def logic_or(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.flag("A") or ctx.flag("B")


@table.data("Logic_Xor")
def logic_xor(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.flag("A") != ctx.flag("B")


@table.data("Logic_Not")
def logic_not(ctx: NodeContext, port: str) -> PropertyValue:
    return not ctx.flag("Value")
