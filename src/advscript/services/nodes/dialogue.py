"""Conversation nodes attached to NPC scripts."""
from __future__ import annotations

from advscript.domain.conversation import DialogueOption
from advscript.domain.state import GameObject, Npc
from advscript.services.nodes.actions import (
    add_money,
    complete_quest,
    give_item,
    remove_item,
    remove_money,
    start_quest,
)
from advscript.services.nodes.base import HandlerTable, NodeContext, Outcome, SuspendRequest
from advscript.services.script_events import DialogueLine, ShopOpened

table = HandlerTable()

CHOICE_PORTS = ("Option1", "Option2", "Option3", "Option4")


def _npc(ctx: NodeContext) -> Npc | None:
    conversation = ctx.world.active_conversation
    if conversation is not None:
        return ctx.world.npcs.get(conversation.npc_id)
    if ctx.script.owner_type.casefold() == "npc":
        return ctx.world.npcs.get(ctx.script.owner_id)
    return None


@table.action("Conversation_NpcSay")
def npc_say(ctx: NodeContext) -> Outcome:
    speaker = ctx.text("SpeakerName").strip()
    if not speaker:
        npc = _npc(ctx)
        speaker = (npc.name or npc.id) if npc is not None else ctx.script.owner_id
    ctx.result.dialogue.append(
        DialogueLine(speaker=speaker, text=ctx.text("Text"), emotion=ctx.text("Emotion", "Neutral"))
    )
    return "Exec"


@table.action("Conversation_PlayerChoice")
def player_choice(ctx: NodeContext) -> Outcome:
    """Offer one option per connected output; nothing connected ends the path."""
    options = []
    for number, port in enumerate(CHOICE_PORTS, start=1):
        if not ctx.connected(port):
            continue
        text = ctx.text(f"Text{number}").strip() or f"Option {number}"
        options.append(DialogueOption(index=len(options), text=text, port=port))
    if not options:
        ctx.debug("player choice has no connected options")
        return None
    return SuspendRequest(kind="choice", options=tuple(options))


@table.condition("Conversation_Branch")
def conversation_branch(ctx: NodeContext) -> bool:
    condition = ctx.text("ConditionType", "HasFlag").casefold()
    world = ctx.world
    if condition == "hasflag":
        return bool(world.flags.get(ctx.text("FlagName"), False))
    if condition == "hasitem":
        return world.player.has_item(ctx.text("ItemId"))
    if condition == "hasmoney":
        return world.player.money >= ctx.integer("MoneyAmount")
    if condition == "queststatus":
        progress = world.quest_states.get(ctx.text("QuestId"))
        status = progress.status if progress is not None else "NotStarted"
        return status.casefold() == ctx.text("QuestStatus", "InProgress").casefold()
    if condition == "visitednode":
        conversation = world.active_conversation
        return conversation is not None and conversation.has_visited(ctx.text("NodeId"))
    ctx.debug(f"unknown conversation condition '{condition}'")
    return False


@table.action("Conversation_Action")
def conversation_action(ctx: NodeContext) -> Outcome:
    action = ctx.text("ActionType", "ShowMessage").casefold()
    if action == "giveitem":
        give_item(ctx, ctx.text("ObjectId"))
    elif action == "removeitem":
        remove_item(ctx, ctx.text("ObjectId"))
    elif action == "addmoney":
        add_money(ctx, ctx.integer("Amount"))
    elif action == "removemoney":
        remove_money(ctx, ctx.integer("Amount"))
    elif action == "setflag":
        if ctx.text("FlagName"):
            ctx.world.flags[ctx.text("FlagName")] = True
    elif action == "startquest":
        start_quest(ctx, ctx.text("QuestId"))
    elif action == "completequest":
        complete_quest(ctx, ctx.text("QuestId"))
    elif action == "showmessage":
        if ctx.text("Message"):
            ctx.say(ctx.text("Message"))
    else:
        ctx.debug(f"unknown conversation action '{action}'")
    return "Exec"


@table.action("Conversation_Shop")
def shop(ctx: NodeContext) -> Outcome:
    npc = _npc(ctx)
    npc_id = npc.id if npc is not None else ctx.script.owner_id
    title = ctx.text("ShopTitle", "Shop")
    welcome = ctx.text("WelcomeMessage")
    if ctx.world.active_conversation is not None:
        ctx.world.active_conversation.in_shop = True
    ctx.emit(ShopOpened(npc_id=npc_id, title=title, welcome_message=welcome))
    if welcome:
        ctx.say(welcome)
    options = []
    for port, text in (("OnBuy", "Buy"), ("OnSell", "Sell")):
        if ctx.connected(port):
            options.append(DialogueOption(index=len(options), text=text, port=port))
    options.append(DialogueOption(index=len(options), text="Leave", port="OnClose"))
    return SuspendRequest(kind="shop", options=tuple(options))


def _trade_price(ctx: NodeContext, game_object: GameObject, multiplier: float) -> int:
    price = ctx.integer("Price")
    if price > 0:
        return price
    return max(0, round(game_object.price * multiplier))


@table.action("Conversation_BuyItem")
def buy_item(ctx: NodeContext) -> Outcome:
    npc = _npc(ctx)
    game_object = ctx.world.objects.get(ctx.text("ObjectId"))
    if npc is None or game_object is None:
        return "Cancelled"
    price = _trade_price(ctx, game_object, npc.sell_multiplier)
    if ctx.world.player.money < price:
        return "NotEnoughMoney"
    remove_money(ctx, price)
    if not npc.has_infinite_money:
        npc.money += price
    for index, item in enumerate(npc.inventory):
        if item.casefold() == game_object.id.casefold():
            del npc.inventory[index]
            break
    give_item(ctx, game_object.id)
    ctx.fire("Npc", npc.id, "Event_OnItemBought", {"ObjectId": game_object.id, "Price": price})
    return "Success"


@table.action("Conversation_SellItem")
def sell_item(ctx: NodeContext) -> Outcome:
    npc = _npc(ctx)
    object_id = ctx.text("ObjectId")
    if not ctx.world.player.has_item(object_id):
        return "NoItem"
    game_object = ctx.world.objects.get(object_id)
    if npc is None or game_object is None:
        return "Cancelled"
    price = _trade_price(ctx, game_object, npc.buy_multiplier)
    if not npc.has_infinite_money and npc.money < price:
        return "Cancelled"
    remove_item(ctx, game_object.id)
    npc.inventory.append(game_object.id)
    if not npc.has_infinite_money:
        npc.money -= price
    add_money(ctx, price)
    ctx.fire("Npc", npc.id, "Event_OnItemSold", {"ObjectId": game_object.id, "Price": price})
    return "Success"


@table.action("Conversation_End")
def end(ctx: NodeContext) -> Outcome:
    ctx.interpreter.finish_conversation(ctx.result)
    return None
