"""Variable getters, constants and Math producers.

These nodes are never entered through execution edges; they are evaluated
when a consumer pulls one of their Data outputs.
"""
from __future__ import annotations

from advscript.core.types import PropertyValue
from advscript.services.nodes.base import HandlerTable, NodeContext
from advscript.services.values import get_entity_property, get_player_stat

table = HandlerTable()

_STAT_GETTERS = {
    "Variable_GetPlayerStrength": "Strength",
    "Variable_GetPlayerConstitution": "Constitution",
    "Variable_GetPlayerIntelligence": "Intelligence",
    "Variable_GetPlayerDexterity": "Dexterity",
    "Variable_GetPlayerCharisma": "Charisma",
    "Variable_GetPlayerHealth": "Health",
    "Variable_GetPlayerMaxHealth": "MaxHealth",
    "Variable_GetPlayerMana": "Mana",
    "Variable_GetPlayerHunger": "Hunger",
    "Variable_GetPlayerThirst": "Thirst",
    "Variable_GetPlayerEnergy": "Energy",
    "Variable_GetPlayerSleep": "Sleep",
    "Variable_GetPlayerSanity": "Sanity",
}


@table.data(*_STAT_GETTERS)
def get_named_stat(ctx: NodeContext, port: str) -> PropertyValue:
    return get_player_stat(ctx.world.player, _STAT_GETTERS[ctx.node_type.type_id])


@table.data("Variable_GetPlayerState")
def get_player_state(ctx: NodeContext, port: str) -> PropertyValue:
    return get_player_stat(ctx.world.player, ctx.text("StateType", "Health"))


@table.data("Variable_GetGameHour")
def get_game_hour(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.world.game_hour


@table.data("Variable_GetPlayerMoney")
def get_player_money(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.world.player.money


@table.data("Variable_GetCurrentRoom")
def get_current_room(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.world.current_room_id


@table.data("Variable_GetCurrentWeather")
def get_current_weather(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.world.weather


@table.data("Variable_GetFlag")
def get_flag(ctx: NodeContext, port: str) -> PropertyValue:
    return bool(ctx.world.flags.get(ctx.text("FlagName"), False))


@table.data("Variable_GetCounter")
def get_counter(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.world.counters.get(ctx.text("CounterName"), 0)


@table.data("Variable_ConstantInt")
def constant_int(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.integer("Value")


@table.data("Variable_ConstantBool")
def constant_bool(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.flag("Value")


@table.data("Variable_ConstantString")
def constant_string(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.text("Value")


@table.data("Variable_GetActiveModifiersCount")
def get_active_modifiers_count(ctx: NodeContext, port: str) -> PropertyValue:
    now = ctx.world.clock
    return sum(1 for modifier in ctx.world.modifiers if not modifier.is_expired(now))


@table.data("Variable_HasModifier")
def has_modifier(ctx: NodeContext, port: str) -> PropertyValue:
    name = ctx.text("ModifierName").casefold()
    return any(modifier.name.casefold() == name for modifier in ctx.world.modifiers)


@table.data("Variable_GetProperty")
def get_property(ctx: NodeContext, port: str) -> PropertyValue:
    return get_entity_property(
        ctx.world, ctx.text("EntityType", "Player"), ctx.text("EntityId"), ctx.text("PropertyName")
    )


# -- math ------------------------------------------------------------------------


@table.data("Math_Add")
def add(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.integer("A") + ctx.integer("B")


@table.data("Math_Subtract")
def subtract(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.integer("A") - ctx.integer("B")


@table.data("Math_Multiply")
def multiply(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.integer("A") * ctx.integer("B", 1)


@table.data("Math_Divide")
def divide(ctx: NodeContext, port: str) -> PropertyValue:
    divisor = ctx.integer("B", 1)
    if divisor == 0:
        return 0
    # Truncates toward zero.
    return int(ctx.integer("A") / divisor)


@table.data("Math_Modulo")
def modulo(ctx: NodeContext, port: str) -> PropertyValue:
    divisor = ctx.integer("B", 1)
    if divisor == 0:
        return 0
    return ctx.integer("A") % divisor


@table.data("Math_Negate")
def negate(ctx: NodeContext, port: str) -> PropertyValue:
    return -ctx.integer("Value")


@table.data("Math_Abs")
def absolute(ctx: NodeContext, port: str) -> PropertyValue:
    return abs(ctx.integer("Value"))


@table.data("Math_Min")
def minimum(ctx: NodeContext, port: str) -> PropertyValue:
    return min(ctx.integer("A"), ctx.integer("B"))


@table.data("Math_Max")
def maximum(ctx: NodeContext, port: str) -> PropertyValue:
    return max(ctx.integer("A"), ctx.integer("B"))


@table.data("Math_Clamp")
def clamp(ctx: NodeContext, port: str) -> PropertyValue:
    low = ctx.integer("Min")
    high = ctx.integer("Max", 100)
    if low > high:
        low, high = high, low
    return max(low, min(ctx.integer("Value"), high))


@table.data("Math_Random")
def random_int(ctx: NodeContext, port: str) -> PropertyValue:
    low = ctx.integer("Min")
    high = ctx.integer("Max", 100)
    if low > high:
        low, high = high, low
    return ctx.rng.randint(low, high)
