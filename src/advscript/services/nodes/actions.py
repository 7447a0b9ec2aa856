"""Action nodes: effects against the world state.

A missing entity turns the action into a no-op; the walk still continues
from the node's Exec output.
"""
from __future__ import annotations

from advscript.domain.modifiers import TemporaryModifier
from advscript.domain.quest_state import QuestProgress
from advscript.domain.state import Npc
from advscript.services.nodes.base import HandlerTable, NodeContext, Outcome
from advscript.services.script_events import (
    AdventureCompleted,
    CombatEnded,
    CombatRequested,
    MusicChanged,
    PlayerDied,
    PlayerTeleported,
    SoundRequested,
    TradeClosed,
    TradeRequested,
)
from advscript.services.values import (
    get_entity_property,
    modify_player_stat,
    set_entity_property,
    set_player_stat,
    to_float,
)

table = HandlerTable()

QUEST_START_EVENT = "Event_OnQuestStart"
QUEST_COMPLETE_EVENT = "Event_OnQuestComplete"
QUEST_FAIL_EVENT = "Event_OnQuestFail"

STATUS_MESSAGES = {
    "InProgress": "[New quest: {name}]",
    "Completed": "[Quest completed: {name}]",
    "Failed": "[Quest failed: {name}]",
}


def _missing(ctx: NodeContext, kind: str, entity_id: str) -> Outcome:
    ctx.debug(f"{ctx.node.node_type}: {kind} '{entity_id}' not found")
    return "Exec"


def _remove_id(ids: list[str], target: str) -> bool:
    folded = target.casefold()
    for index, item in enumerate(ids):
        if item.casefold() == folded:
            del ids[index]
            return True
    return False


def _game_owner(ctx: NodeContext) -> tuple[str, str]:
    return "Game", ctx.world.game_id


# -- shared effects, also used by conversation nodes -------------------------------


def give_item(ctx: NodeContext, object_id: str) -> bool:
    game_object = ctx.world.objects.get(object_id)
    if game_object is None:
        return False
    if game_object.room_id is not None:
        room = ctx.world.rooms.get(game_object.room_id)
        if room is not None:
            _remove_id(room.object_ids, game_object.id)
    game_object.room_id = None
    game_object.container_id = None
    ctx.world.player.inventory.append(game_object.id)
    ctx.say(f"[Item received: {game_object.name or game_object.id}]")
    return True


def remove_item(ctx: NodeContext, object_id: str) -> bool:
    if not _remove_id(ctx.world.player.inventory, object_id):
        return False
    for slot, equipped in list(ctx.world.player.equipment.items()):
        if equipped.casefold() == object_id.casefold() and not ctx.world.player.has_item(object_id):
            del ctx.world.player.equipment[slot]
    game_object = ctx.world.objects.get(object_id)
    name = game_object.name if game_object is not None and game_object.name else object_id
    ctx.say(f"[Item removed: {name}]")
    return True


def add_money(ctx: NodeContext, amount: int) -> None:
    if amount <= 0:
        return
    set_player_stat(ctx.world.player, "Money", ctx.world.player.money + amount)
    ctx.fire(*_game_owner(ctx), "Event_OnMoneyGained", {"Amount": amount})


def remove_money(ctx: NodeContext, amount: int) -> int:
    """Take up to ``amount``; returns what was actually removed."""
    if amount <= 0:
        return 0
    taken = min(amount, ctx.world.player.money)
    set_player_stat(ctx.world.player, "Money", ctx.world.player.money - taken)
    if taken:
        ctx.fire(*_game_owner(ctx), "Event_OnMoneyLost", {"Amount": taken})
    return taken


def start_quest(ctx: NodeContext, quest_id: str) -> bool:
    quest = ctx.world.quests.get(quest_id)
    if quest is None:
        return False
    progress = ctx.world.quest_states.get(quest.quest_id)
    if progress is None:
        progress = QuestProgress(quest_id=quest.quest_id)
        ctx.world.quest_states[quest.quest_id] = progress
    progress.status = "InProgress"
    progress.current_objective_index = 0
    ctx.say(f"[New quest: {quest.name}]")
    ctx.fire("Quest", quest.quest_id, QUEST_START_EVENT, {"QuestId": quest.quest_id})
    return True


def complete_quest(ctx: NodeContext, quest_id: str) -> bool:
    """Mark a started quest Completed and raise the adventure signal when due."""
    progress = ctx.world.quest_states.get(quest_id)
    if progress is None:
        return False
    quest = ctx.world.quests.get(quest_id)
    progress.status = "Completed"
    ctx.say(f"[Quest completed: {quest.name if quest is not None else quest_id}]")
    ctx.fire("Quest", progress.quest_id, QUEST_COMPLETE_EVENT, {"QuestId": progress.quest_id})
    check_adventure_completed(ctx, progress.quest_id)
    return True


def check_adventure_completed(ctx: NodeContext, quest_id: str) -> None:
    # Fires again on every completion once all main quests are done.
    if ctx.world.main_quests_completed():
        ctx.result.adventure_completed = True
        ctx.emit(AdventureCompleted(quest_id=quest_id))


# -- messages, items, rooms and time ---------------------------------------------------


@table.action("Action_ShowMessage")
def show_message(ctx: NodeContext) -> Outcome:
    message = ctx.text("Message")
    if message:
        ctx.say(message)
    return "Exec"


@table.action("Action_GiveItem")
def give_item_action(ctx: NodeContext) -> Outcome:
    object_id = ctx.text("ObjectId")
    if not give_item(ctx, object_id):
        return _missing(ctx, "object", object_id)
    return "Exec"


@table.action("Action_RemoveItem")
def remove_item_action(ctx: NodeContext) -> Outcome:
    object_id = ctx.text("ObjectId")
    if not remove_item(ctx, object_id):
        ctx.debug(f"player does not carry '{object_id}'")
    return "Exec"


@table.action("Action_TeleportPlayer")
def teleport_player(ctx: NodeContext) -> Outcome:
    room = ctx.world.rooms.get(ctx.text("RoomId"))
    if room is None:
        return _missing(ctx, "room", ctx.text("RoomId"))
    ctx.world.current_room_id = room.id
    ctx.emit(PlayerTeleported(room_id=room.id))
    return "Exec"


@table.action("Action_SetRoomIllumination")
def set_room_illumination(ctx: NodeContext) -> Outcome:
    room = ctx.world.rooms.get(ctx.text("RoomId"))
    if room is None:
        return _missing(ctx, "room", ctx.text("RoomId"))
    room.is_illuminated = ctx.flag("IsIlluminated", True)
    return "Exec"


@table.action("Action_SetRoomMusic")
def set_room_music(ctx: NodeContext) -> Outcome:
    room = ctx.world.rooms.get(ctx.text("RoomId"))
    if room is None:
        return _missing(ctx, "room", ctx.text("RoomId"))
    room.music_id = ctx.text("MusicId") or None
    ctx.emit(MusicChanged(room_id=room.id, music_id=room.music_id))
    return "Exec"


@table.action("Action_SetRoomDescription")
def set_room_description(ctx: NodeContext) -> Outcome:
    room = ctx.world.rooms.get(ctx.text("RoomId"))
    if room is None:
        return _missing(ctx, "room", ctx.text("RoomId"))
    room.description = ctx.text("Description")
    return "Exec"


@table.action("Action_SetWeather")
def set_weather(ctx: NodeContext) -> Outcome:
    weather = ctx.text("Weather", "Clear")
    if weather.casefold() != ctx.world.weather.casefold():
        ctx.world.weather = weather
        ctx.fire(*_game_owner(ctx), "Event_OnWeatherChange", {"NewWeather": weather})
    return "Exec"


@table.action("Action_SetGameHour")
def set_game_hour(ctx: NodeContext) -> Outcome:
    ctx.world.game_hour = ctx.integer("Hour", 12) % 24
    ctx.world.game_minute = 0
    return "Exec"


@table.action("Action_AdvanceTime")
def advance_time(ctx: NodeContext) -> Outcome:
    hours = max(0, ctx.integer("Hours", 1))
    ctx.world.game_hour = (ctx.world.game_hour + hours) % 24
    return "Exec"


@table.action("Action_PlaySound")
def play_sound(ctx: NodeContext) -> Outcome:
    sound_id = ctx.text("SoundId")
    if sound_id:
        ctx.emit(SoundRequested(sound_id=sound_id))
    return "Exec"


# -- flags, counters and quests ----------------------------------------------------------


@table.action("Action_SetFlag")
def set_flag(ctx: NodeContext) -> Outcome:
    name = ctx.text("FlagName")
    if name:
        ctx.world.flags[name] = ctx.flag("Value", True)
    return "Exec"


@table.action("Action_SetCounter")
def set_counter(ctx: NodeContext) -> Outcome:
    name = ctx.text("CounterName")
    if name:
        ctx.world.counters[name] = ctx.integer("Value")
    return "Exec"


@table.action("Action_IncrementCounter")
def increment_counter(ctx: NodeContext) -> Outcome:
    name = ctx.text("CounterName")
    if name:
        ctx.world.counters[name] = ctx.world.counters.get(name, 0) + ctx.integer("Amount", 1)
    return "Exec"


@table.action("Action_StartQuest")
def start_quest_action(ctx: NodeContext) -> Outcome:
    quest_id = ctx.text("QuestId")
    if not start_quest(ctx, quest_id):
        return _missing(ctx, "quest", quest_id)
    return "Exec"


@table.action("Action_CompleteQuest")
def complete_quest_action(ctx: NodeContext) -> Outcome:
    quest_id = ctx.text("QuestId")
    if not complete_quest(ctx, quest_id):
        return _missing(ctx, "quest state", quest_id)
    return "Exec"


@table.action("Action_FailQuest")
def fail_quest(ctx: NodeContext) -> Outcome:
    quest = ctx.world.quests.get(ctx.text("QuestId"))
    if quest is None:
        return _missing(ctx, "quest", ctx.text("QuestId"))
    progress = ctx.world.quest_states.get(quest.quest_id)
    if progress is None:
        progress = QuestProgress(quest_id=quest.quest_id)
        ctx.world.quest_states[quest.quest_id] = progress
    progress.status = "Failed"
    ctx.say(f"[Quest failed: {quest.name}]")
    ctx.fire("Quest", quest.quest_id, QUEST_FAIL_EVENT, {"QuestId": quest.quest_id})
    return "Exec"


@table.action("Action_SetQuestStatus")
def set_quest_status(ctx: NodeContext) -> Outcome:
    quest_id = ctx.text("QuestId")
    status = ctx.text("Status", "InProgress")
    if not quest_id or status not in ("NotStarted", "InProgress", "Completed", "Failed"):
        ctx.debug(f"invalid quest status '{status}' for '{quest_id}'")
        return "Exec"
    progress = ctx.world.quest_states.get(quest_id)
    if progress is None:
        progress = QuestProgress(quest_id=quest_id)
        ctx.world.quest_states[quest_id] = progress
    progress.status = status  # type: ignore[assignment]
    quest = ctx.world.quests.get(quest_id)
    name = quest.name if quest is not None else quest_id
    message = STATUS_MESSAGES.get(status)
    if message is not None:
        ctx.say(message.format(name=name))
    if status == "Completed":
        check_adventure_completed(ctx, quest_id)
    return "Exec"


@table.action("Action_AdvanceObjective")
def advance_objective(ctx: NodeContext) -> Outcome:
    """Move to the next objective; the last objective stays current."""
    quest_id = ctx.text("QuestId")
    progress = ctx.world.quest_states.get(quest_id)
    quest = ctx.world.quests.get(quest_id)
    if progress is None or quest is None:
        return _missing(ctx, "quest", quest_id)
    if progress.current_objective_index < len(quest.objectives) - 1:
        progress.current_objective_index += 1
        ctx.say(f"[New objective: {quest.objectives[progress.current_objective_index]}]")
    return "Exec"


# -- doors and visibility ------------------------------------------------------------------


def _door_action(ctx: NodeContext, *, is_open: bool | None, is_locked: bool | None, event: str) -> Outcome:
    door = ctx.world.doors.get(ctx.text("DoorId"))
    if door is None:
        return _missing(ctx, "door", ctx.text("DoorId"))
    changed = False
    if is_open is not None and door.is_open != is_open:
        door.is_open = is_open
        changed = True
    if is_locked is not None and door.is_locked != is_locked:
        door.is_locked = is_locked
        changed = True
    if changed:
        ctx.fire("Door", door.id, event)
    return "Exec"


@table.action("Action_OpenDoor")
def open_door(ctx: NodeContext) -> Outcome:
    return _door_action(ctx, is_open=True, is_locked=None, event="Event_OnDoorOpen")


@table.action("Action_CloseDoor")
def close_door(ctx: NodeContext) -> Outcome:
    return _door_action(ctx, is_open=False, is_locked=None, event="Event_OnDoorClose")


@table.action("Action_LockDoor")
def lock_door(ctx: NodeContext) -> Outcome:
    return _door_action(ctx, is_open=False, is_locked=True, event="Event_OnDoorLock")


@table.action("Action_UnlockDoor")
def unlock_door(ctx: NodeContext) -> Outcome:
    return _door_action(ctx, is_open=None, is_locked=False, event="Event_OnDoorUnlock")


@table.action("Action_SetDoorVisible")
def set_door_visible(ctx: NodeContext) -> Outcome:
    door = ctx.world.doors.get(ctx.text("DoorId"))
    if door is None:
        return _missing(ctx, "door", ctx.text("DoorId"))
    door.visible = ctx.flag("Visible", True)
    return "Exec"


@table.action("Action_SetNpcVisible")
def set_npc_visible(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.visible = ctx.flag("Visible", True)
    return "Exec"


@table.action("Action_SetObjectVisible")
def set_object_visible(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if game_object is None:
        return _missing(ctx, "object", ctx.text("ObjectId"))
    game_object.visible = ctx.flag("Visible", True)
    return "Exec"


@table.action("Action_SetObjectTakeable")
def set_object_takeable(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if game_object is None:
        return _missing(ctx, "object", ctx.text("ObjectId"))
    game_object.can_take = ctx.flag("CanTake", True)
    return "Exec"


# -- objects and containers --------------------------------------------------------------------


def _container_action(
    ctx: NodeContext, *, is_open: bool | None, is_locked: bool | None, event: str | None
) -> Outcome:
    container = ctx.world.objects.get(ctx.text("ObjectId"))
    if container is None:
        return _missing(ctx, "container", ctx.text("ObjectId"))
    changed = False
    if is_open is not None and container.is_open != is_open:
        container.is_open = is_open
        changed = True
    if is_locked is not None and container.is_locked != is_locked:
        container.is_locked = is_locked
        changed = True
    if changed and event is not None:
        ctx.fire("GameObject", container.id, event)
    return "Exec"


@table.action("Action_OpenContainer")
def open_container(ctx: NodeContext) -> Outcome:
    return _container_action(ctx, is_open=True, is_locked=None, event="Event_OnContainerOpen")


@table.action("Action_CloseContainer")
def close_container(ctx: NodeContext) -> Outcome:
    return _container_action(ctx, is_open=False, is_locked=None, event="Event_OnContainerClose")


@table.action("Action_LockContainer")
def lock_container(ctx: NodeContext) -> Outcome:
    return _container_action(ctx, is_open=False, is_locked=True, event=None)


@table.action("Action_UnlockContainer")
def unlock_container(ctx: NodeContext) -> Outcome:
    return _container_action(ctx, is_open=None, is_locked=False, event=None)


@table.action("Action_SetContentsVisible")
def set_contents_visible(ctx: NodeContext) -> Outcome:
    container = ctx.world.objects.get(ctx.text("ObjectId"))
    if container is None:
        return _missing(ctx, "container", ctx.text("ObjectId"))
    container.contents_visible = ctx.flag("Visible", True)
    return "Exec"


@table.action("Action_SetObjectPrice")
def set_object_price(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if game_object is None:
        return _missing(ctx, "object", ctx.text("ObjectId"))
    game_object.price = max(0, ctx.integer("Price"))
    return "Exec"


@table.action("Action_SetObjectDurability")
def set_object_durability(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if game_object is None:
        return _missing(ctx, "object", ctx.text("ObjectId"))
    game_object.durability = max(0, ctx.integer("Durability", 100))
    return "Exec"


@table.action("Action_MoveObjectToRoom")
def move_object_to_room(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    room = ctx.world.rooms.get(ctx.text("RoomId"))
    if game_object is None or room is None:
        return _missing(ctx, "object or room", f"{ctx.text('ObjectId')}/{ctx.text('RoomId')}")
    if game_object.room_id is not None:
        previous = ctx.world.rooms.get(game_object.room_id)
        if previous is not None:
            _remove_id(previous.object_ids, game_object.id)
    _remove_id(ctx.world.player.inventory, game_object.id)
    game_object.container_id = None
    game_object.room_id = room.id
    room.object_ids.append(game_object.id)
    return "Exec"


@table.action("Action_PutObjectInContainer")
def put_object_in_container(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    container = ctx.world.objects.get(ctx.text("ContainerId"))
    if game_object is None or container is None or not container.is_container:
        return _missing(ctx, "object or container", f"{ctx.text('ObjectId')}/{ctx.text('ContainerId')}")
    if game_object.room_id is not None:
        previous = ctx.world.rooms.get(game_object.room_id)
        if previous is not None:
            _remove_id(previous.object_ids, game_object.id)
    _remove_id(ctx.world.player.inventory, game_object.id)
    game_object.room_id = None
    game_object.container_id = container.id
    return "Exec"


@table.action("Action_RemoveObjectFromContainer")
def remove_object_from_container(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    container = ctx.world.objects.get(ctx.text("ContainerId"))
    if game_object is None or container is None:
        return _missing(ctx, "object or container", f"{ctx.text('ObjectId')}/{ctx.text('ContainerId')}")
    if (game_object.container_id or "").casefold() != container.id.casefold():
        ctx.debug(f"'{game_object.id}' is not inside '{container.id}'")
        return "Exec"
    game_object.container_id = None
    if container.room_id is not None and container.room_id in ctx.world.rooms:
        game_object.room_id = container.room_id
        ctx.world.rooms[container.room_id].object_ids.append(game_object.id)
    return "Exec"


@table.action("Action_SetObjectLit")
def set_object_lit(ctx: NodeContext) -> Outcome:
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if game_object is None:
        return _missing(ctx, "object", ctx.text("ObjectId"))
    game_object.is_lit = ctx.flag("IsLit", True)
    return "Exec"


# -- money ----------------------------------------------------------------------------------


@table.action("Action_AddMoney")
def add_money_action(ctx: NodeContext) -> Outcome:
    add_money(ctx, ctx.integer("Amount", 10))
    return "Exec"


@table.action("Action_RemoveMoney")
def remove_money_action(ctx: NodeContext) -> Outcome:
    remove_money(ctx, ctx.integer("Amount", 10))
    return "Exec"


@table.action("Action_RemovePlayerMoney")
def pay_money(ctx: NodeContext) -> Outcome:
    amount = ctx.integer("Amount", 100)
    if ctx.world.player.money < amount:
        return "OnInsufficient"
    remove_money(ctx, amount)
    return "Exec"


# -- NPC movement -------------------------------------------------------------------------


def _move_npc(ctx: NodeContext, npc: Npc, room_id: str) -> bool:
    room = ctx.world.rooms.get(room_id)
    if room is None:
        return False
    if npc.room_id is not None:
        previous = ctx.world.rooms.get(npc.room_id)
        if previous is not None:
            _remove_id(previous.npc_ids, npc.id)
    npc.room_id = room.id
    room.npc_ids.append(npc.id)
    return True


@table.action("Action_MoveNpc")
def move_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None or not _move_npc(ctx, npc, ctx.text("RoomId")):
        return _missing(ctx, "npc or room", f"{ctx.text('NpcId')}/{ctx.text('RoomId')}")
    return "Exec"


@table.action("Action_StartPatrol")
def start_patrol(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.is_patrolling = True
    npc.is_following_player = False
    return "Exec"


@table.action("Action_StopPatrol")
def stop_patrol(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.is_patrolling = False
    return "Exec"


@table.action("Action_SetPatrolRoute")
def set_patrol_route(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    route = [part.strip() for part in ctx.text("Route").split(",") if part.strip()]
    npc.patrol_route = [room_id for room_id in route if room_id in ctx.world.rooms]
    npc.patrol_index = 0
    return "Exec"


@table.action("Action_PatrolStep")
def patrol_step(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if npc.is_patrolling and npc.patrol_route:
        npc.patrol_index = (npc.patrol_index + 1) % len(npc.patrol_route)
        _move_npc(ctx, npc, npc.patrol_route[npc.patrol_index])
    return "Exec"


@table.action("Action_FollowPlayer")
def follow_player(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.is_following_player = True
    npc.is_patrolling = False
    npc.movement_speed = max(1, ctx.integer("Speed", 1))
    return "Exec"


@table.action("Action_StopFollowing")
def stop_following(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.is_following_player = False
    return "Exec"


# -- player state ---------------------------------------------------------------------------


@table.action("Action_SetPlayerState")
def set_player_state(ctx: NodeContext) -> Outcome:
    state_type = ctx.text("StateType", "Health")
    if set_player_stat(ctx.world.player, state_type, ctx.integer("Value", 100)) is None:
        ctx.debug(f"unknown player state '{state_type}'")
    return "Exec"


@table.action("Action_ModifyPlayerState")
def modify_player_state(ctx: NodeContext) -> Outcome:
    state_type = ctx.text("StateType", "Health")
    if modify_player_stat(ctx.world.player, state_type, ctx.integer("Amount", 10)) is None:
        ctx.debug(f"unknown player state '{state_type}'")
    return "Exec"


@table.action("Action_HealPlayer")
def heal_player(ctx: NodeContext) -> Outcome:
    modify_player_stat(ctx.world.player, "Health", max(0, ctx.integer("Amount", 25)))
    return "Exec"


@table.action("Action_DamagePlayer")
def damage_player(ctx: NodeContext) -> Outcome:
    health = modify_player_stat(ctx.world.player, "Health", -max(0, ctx.integer("Amount", 10)))
    if health == 0:
        ctx.emit(PlayerDied(cause="damage"))
        return "PlayerDied"
    return "Exec"


@table.action("Action_RestoreMana")
def restore_mana(ctx: NodeContext) -> Outcome:
    modify_player_stat(ctx.world.player, "Mana", max(0, ctx.integer("Amount", 25)))
    return "Exec"


@table.action("Action_ConsumeMana")
def consume_mana(ctx: NodeContext) -> Outcome:
    amount = max(0, ctx.integer("Amount", 10))
    if ctx.world.player.mana < amount:
        return "NotEnough"
    modify_player_stat(ctx.world.player, "Mana", -amount)
    return "Exec"


@table.action("Action_FeedPlayer")
def feed_player(ctx: NodeContext) -> Outcome:
    modify_player_stat(ctx.world.player, "Hunger", -max(0, ctx.integer("Amount", 25)))
    return "Exec"


@table.action("Action_HydratePlayer")
def hydrate_player(ctx: NodeContext) -> Outcome:
    modify_player_stat(ctx.world.player, "Thirst", -max(0, ctx.integer("Amount", 25)))
    return "Exec"


@table.action("Action_RestPlayer")
def rest_player(ctx: NodeContext) -> Outcome:
    amount = max(0, ctx.integer("Amount", 50))
    modify_player_stat(ctx.world.player, "Sleep", -amount)
    modify_player_stat(ctx.world.player, "Energy", amount)
    return "Exec"


@table.action("Action_SetNeedRate")
def set_need_rate(ctx: NodeContext) -> Outcome:
    ctx.world.player.need_rates[ctx.text("NeedType", "Hunger")] = ctx.text("Rate", "Normal")
    return "Exec"


@table.action("Action_RestoreAllStats")
def restore_all_stats(ctx: NodeContext) -> Outcome:
    player = ctx.world.player
    player.health = player.max_health
    player.mana = player.max_mana
    player.hunger = 0
    player.thirst = 0
    player.sleep = 0
    player.energy = 100
    player.sanity = 100
    return "Exec"


# -- combat ---------------------------------------------------------------------------------


@table.action("Action_StartCombat")
def start_combat(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if npc.is_corpse:
        ctx.debug(f"cannot fight corpse '{npc.id}'")
        return "Exec"
    ctx.world.in_combat = True
    ctx.emit(CombatRequested(npc_id=npc.id))
    ctx.fire("Npc", npc.id, "Event_OnCombatStart")
    return "Exec"


def _kill(ctx: NodeContext, npc: Npc) -> None:
    npc.current_health = 0
    npc.is_corpse = True
    npc.is_patrolling = False
    npc.is_following_player = False
    ctx.fire("Npc", npc.id, "Event_OnNpcDeath")


@table.action("Action_DamageNpc")
def damage_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if npc.is_corpse:
        return "Exec"
    npc.current_health = max(0, npc.current_health - max(0, ctx.integer("Amount", 10)))
    if npc.current_health == 0:
        _kill(ctx, npc)
        return "OnDeath"
    return "Exec"


@table.action("Action_HealNpc")
def heal_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if not npc.is_corpse:
        npc.current_health = min(npc.max_health, npc.current_health + max(0, ctx.integer("Amount", 10)))
    return "Exec"


@table.action("Action_ReviveNpc")
def revive_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    percent = max(1, min(100, ctx.integer("HealthPercent", 100)))
    npc.is_corpse = False
    npc.current_health = max(1, npc.max_health * percent // 100)
    return "Exec"


@table.action("Action_KillNpc")
def kill_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if not npc.is_corpse:
        _kill(ctx, npc)
    return "Exec"


@table.action("Action_SetNpcAttack")
def set_npc_attack(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.attack = max(0, ctx.integer("Attack", 10))
    return "Exec"


@table.action("Action_SetNpcDefense")
def set_npc_defense(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.defense = max(0, ctx.integer("Defense", 5))
    return "Exec"


@table.action("Action_EndCombatVictory")
def end_combat_victory(ctx: NodeContext) -> Outcome:
    ctx.world.in_combat = False
    ctx.emit(CombatEnded(victory=True))
    return "Exec"


@table.action("Action_EndCombatDefeat")
def end_combat_defeat(ctx: NodeContext) -> Outcome:
    ctx.world.in_combat = False
    ctx.emit(CombatEnded(victory=False))
    return "Exec"


# -- inventories, equipment and trade -----------------------------------------------------------


@table.action("Action_AddItemToNpcInventory")
def add_item_to_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if npc is None or game_object is None:
        return _missing(ctx, "npc or object", f"{ctx.text('NpcId')}/{ctx.text('ObjectId')}")
    npc.inventory.append(game_object.id)
    return "Exec"


@table.action("Action_RemoveItemFromNpcInventory")
def remove_item_from_npc(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    _remove_id(npc.inventory, ctx.text("ObjectId"))
    return "Exec"


@table.action("Action_EquipPlayerItem")
def equip_player_item(ctx: NodeContext) -> Outcome:
    object_id = ctx.text("ObjectId")
    if not ctx.world.player.has_item(object_id):
        ctx.debug(f"player does not carry '{object_id}'")
        return "Exec"
    slot = ctx.text("Slot", "MainHand")
    game_object = ctx.world.objects.get(object_id)
    ctx.world.player.equipment[slot] = game_object.id if game_object is not None else object_id
    return "Exec"


@table.action("Action_UnequipPlayerSlot")
def unequip_player_slot(ctx: NodeContext) -> Outcome:
    slot = ctx.text("Slot", "MainHand").casefold()
    equipment = ctx.world.player.equipment
    for key in [key for key in equipment if key.casefold() == slot]:
        del equipment[key]
    return "Exec"


@table.action("Action_OpenTrade")
def open_trade(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    if not npc.is_shopkeeper:
        ctx.debug(f"'{npc.id}' is not a shopkeeper")
        return "Exec"
    ctx.world.trade_npc_id = npc.id
    ctx.emit(TradeRequested(npc_id=npc.id))
    ctx.fire("Npc", npc.id, "Event_OnTradeStart")
    return "Exec"


@table.action("Action_CloseTrade")
def close_trade(ctx: NodeContext) -> Outcome:
    npc_id = ctx.world.trade_npc_id
    if npc_id is None:
        return "Exec"
    ctx.world.trade_npc_id = None
    ctx.emit(TradeClosed(npc_id=npc_id))
    ctx.fire("Npc", npc_id, "Event_OnTradeEnd")
    return "Exec"


@table.action("Action_SetNpcMoney")
def set_npc_money(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.money = max(-1, ctx.integer("Money", -1))
    return "Exec"


@table.action("Action_SetBuyMultiplier")
def set_buy_multiplier(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.buy_multiplier = max(0.0, ctx.number("Multiplier", 0.5))
    return "Exec"


@table.action("Action_SetSellMultiplier")
def set_sell_multiplier(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.sell_multiplier = max(0.0, ctx.number("Multiplier", 1.0))
    return "Exec"


# -- abilities and magic ------------------------------------------------------------------------


@table.action("Action_AddAbility")
def add_ability(ctx: NodeContext) -> Outcome:
    ability_id = ctx.text("AbilityId")
    abilities = ctx.world.player.abilities
    if ability_id and all(item.casefold() != ability_id.casefold() for item in abilities):
        abilities.append(ability_id)
    return "Exec"


@table.action("Action_RemoveAbility")
def remove_ability(ctx: NodeContext) -> Outcome:
    _remove_id(ctx.world.player.abilities, ctx.text("AbilityId"))
    return "Exec"


@table.action("Action_SetNpcMagicEnabled")
def set_npc_magic_enabled(ctx: NodeContext) -> Outcome:
    npc = ctx.world.npcs.get(ctx.text("NpcId"))
    if npc is None:
        return _missing(ctx, "npc", ctx.text("NpcId"))
    npc.magic_enabled = ctx.flag("Enabled", True)
    return "Exec"


# -- modifiers ----------------------------------------------------------------------------------


def _drop_modifier(ctx: NodeContext, modifier: TemporaryModifier, *, expired: bool) -> None:
    ctx.world.modifiers.remove(modifier)
    if not modifier.is_recurring:
        # One-shot modifiers are undone when they end.
        modify_player_stat(ctx.world.player, modifier.state_type, -modifier.amount)
    if expired:
        ctx.fire(*_game_owner(ctx), "Event_OnModifierExpired", {"ModifierName": modifier.name})


@table.action("Action_ApplyModifier")
def apply_modifier(ctx: NodeContext) -> Outcome:
    name = ctx.text("ModifierName")
    if not name:
        return "Exec"
    for existing in [item for item in ctx.world.modifiers if item.name.casefold() == name.casefold()]:
        _drop_modifier(ctx, existing, expired=False)
    duration_type = ctx.text("DurationType", "Turns")
    if duration_type not in ("Turns", "Seconds", "Permanent"):
        duration_type = "Turns"
    modifier = TemporaryModifier(
        name=name,
        state_type=ctx.text("StateType", "Health"),
        amount=ctx.integer("Amount", 5),
        duration_type=duration_type,  # type: ignore[arg-type]
        remaining_duration=max(0, ctx.integer("Duration", 5)),
        applied_at=ctx.world.clock,
        is_recurring=ctx.flag("IsRecurring", True),
    )
    ctx.world.modifiers.append(modifier)
    if not modifier.is_recurring:
        modify_player_stat(ctx.world.player, modifier.state_type, modifier.amount)
    ctx.fire(*_game_owner(ctx), "Event_OnModifierApplied", {"ModifierName": name})
    return "Exec"


@table.action("Action_RemoveModifier")
def remove_modifier(ctx: NodeContext) -> Outcome:
    name = ctx.text("ModifierName").casefold()
    for modifier in [item for item in ctx.world.modifiers if item.name.casefold() == name]:
        _drop_modifier(ctx, modifier, expired=False)
    return "Exec"


@table.action("Action_RemoveModifiersByState")
def remove_modifiers_by_state(ctx: NodeContext) -> Outcome:
    state_type = ctx.text("StateType", "Health").casefold()
    for modifier in [item for item in ctx.world.modifiers if item.state_type.casefold() == state_type]:
        _drop_modifier(ctx, modifier, expired=False)
    return "Exec"


@table.action("Action_RemoveAllModifiers")
def remove_all_modifiers(ctx: NodeContext) -> Outcome:
    for modifier in list(ctx.world.modifiers):
        _drop_modifier(ctx, modifier, expired=False)
    return "Exec"


@table.action("Action_ProcessModifiers")
def process_modifiers(ctx: NodeContext) -> Outcome:
    """Drop expired modifiers, apply recurring ones, then count down Turns."""
    now = ctx.world.clock
    for modifier in [item for item in ctx.world.modifiers if item.is_expired(now)]:
        _drop_modifier(ctx, modifier, expired=True)
    for modifier in ctx.world.modifiers:
        if modifier.is_recurring:
            modify_player_stat(ctx.world.player, modifier.state_type, modifier.amount)
        if modifier.duration_type == "Turns":
            modifier.remaining_duration -= 1
    if ctx.world.player.health <= 0:
        ctx.emit(PlayerDied(cause="modifier"))
        return "PlayerDied"
    return "Exec"


# -- conversations and generic properties ---------------------------------------------------------


@table.action("Action_StartConversation")
def start_conversation(ctx: NodeContext) -> Outcome:
    ctx.interpreter.queue_conversation(ctx.result, ctx.text("NpcId"))
    return "Exec"


def _property_changed(ctx: NodeContext, entity_type: str, entity_id: str, property_name: str, old, new) -> None:
    def accept(node) -> bool:
        watched_type = node.properties.get("EntityType")
        watched_name = node.properties.get("PropertyName")
        if isinstance(watched_type, str) and watched_type.strip():
            if watched_type.strip().casefold() != entity_type.casefold():
                return False
        if isinstance(watched_name, str) and watched_name.strip():
            if watched_name.strip().casefold() != property_name.casefold():
                return False
        return True

    ctx.broadcast(
        "Event_OnPropertyChanged",
        {"EntityId": entity_id, "OldValue": old, "NewValue": new},
        accept,
    )


@table.action("Action_SetProperty")
def set_property(ctx: NodeContext) -> Outcome:
    entity_type = ctx.text("EntityType", "Player")
    entity_id = ctx.text("EntityId")
    property_name = ctx.text("PropertyName")
    change = set_entity_property(ctx.world, entity_type, entity_id, property_name, ctx.value("Value"))
    if change is None:
        return _missing(ctx, f"{entity_type} property", f"{entity_id}.{property_name}")
    old, new = change
    if old != new:
        _property_changed(ctx, entity_type, entity_id, property_name, old, new)
    return "Exec"


@table.action("Action_ModifyProperty")
def modify_property(ctx: NodeContext) -> Outcome:
    entity_type = ctx.text("EntityType", "Player")
    entity_id = ctx.text("EntityId")
    property_name = ctx.text("PropertyName")
    current = get_entity_property(ctx.world, entity_type, entity_id, property_name)
    if isinstance(current, bool) or not isinstance(current, (int, float)):
        return _missing(ctx, f"numeric {entity_type} property", f"{entity_id}.{property_name}")
    amount = ctx.number("Amount", 1.0)
    operation = ctx.text("Operation", "Add").casefold()
    if operation == "subtract":
        updated = current - amount
    elif operation == "multiply":
        updated = current * amount
    elif operation == "divide":
        if amount == 0:
            ctx.debug("ModifyProperty: division by zero ignored")
            return "Exec"
        updated = current / amount
    else:
        updated = current + amount
    new_value = int(updated) if isinstance(current, int) else to_float(updated)
    change = set_entity_property(ctx.world, entity_type, entity_id, property_name, new_value)
    if change is not None and change[0] != change[1]:
        _property_changed(ctx, entity_type, entity_id, property_name, change[0], change[1])
    return "Exec"


