import pytest

from advscript.services import (
    ConversationEnded,
    ConversationStarted,
    InterpreterError,
    ShopOpened,
)
from tests.helpers.script_builders import add_node, chain, install, link, make_interpreter, make_script, make_world


def _keeper_script(world):
    return install(world, make_script("Npc", "keeper"))


def _menu_world():
    """Start -> greet -> menu; Option1 loops back through a tip, Option2 ends."""
    world = make_world()
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start", "start")
    greet = add_node(script, "Conversation_NpcSay", "greet", Text="Hello there.", Emotion="Happy")
    menu = add_node(script, "Conversation_PlayerChoice", "menu", Text1="Any advice?", Text2="Goodbye")
    seen = add_node(script, "Conversation_Branch", "seen", ConditionType="VisitedNode", NodeId="tip")
    tip = add_node(script, "Conversation_NpcSay", "tip", Text="Mind the cellar stairs.")
    repeat = add_node(script, "Conversation_NpcSay", "repeat", Text="I told you all I know.")
    done = add_node(script, "Conversation_End", "done")
    chain(script, start, greet, menu)
    link(script, menu, "Option1", seen)
    link(script, seen, "False", tip)
    link(script, tip, "Exec", menu)
    link(script, seen, "True", repeat)
    link(script, repeat, "Exec", menu)
    link(script, menu, "Option2", done)
    return world


def test_start_conversation_suspends_at_choice() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)

    result = interpreter.start_conversation("keeper")

    assert result.events == [ConversationStarted(npc_id="keeper")]
    assert [(line.speaker, line.text, line.emotion) for line in result.dialogue] == [
        ("Maren", "Hello there.", "Happy")
    ]
    assert result.suspended
    assert [(option.index, option.text, option.port) for option in result.options[0]] == [
        (0, "Any advice?", "Option1"),
        (1, "Goodbye", "Option2"),
    ]
    conversation = world.active_conversation
    assert conversation is not None
    assert conversation.npc_id == "keeper"
    assert conversation.current_node_id == "menu"
    assert len(conversation.current_options) == 2
    assert world.pending_choice() is not None


def test_selecting_options_walks_and_tracks_visits() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    first = interpreter.select_option(0)
    second = interpreter.select_option(0)

    assert [line.text for line in first.dialogue] == ["Mind the cellar stairs."]
    assert [line.text for line in second.dialogue] == ["I told you all I know."]
    conversation = world.active_conversation
    assert conversation is not None
    assert conversation.visited_node_ids == ["start", "greet", "menu", "seen", "tip", "repeat"]


def test_end_node_closes_conversation() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    result = interpreter.select_option(1)

    assert result.events == [ConversationEnded(npc_id="keeper")]
    assert not result.suspended
    assert world.active_conversation is None
    assert world.continuations == []


def test_invalid_option_index_raises() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    with pytest.raises(InterpreterError):
        interpreter.select_option(2)
    with pytest.raises(InterpreterError):
        interpreter.select_option(-1)
    assert world.pending_choice() is not None


def test_second_conversation_is_rejected_while_one_is_active() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    result = interpreter.start_conversation("keeper")

    assert result.events == []
    assert result.dialogue == []
    assert world.active_conversation is not None
    assert len([item for item in world.continuations if item.kind == "choice"]) == 1


def test_end_conversation_drops_pending_choice() -> None:
    world = _menu_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    result = interpreter.end_conversation()

    assert result.events == [ConversationEnded(npc_id="keeper")]
    assert world.pending_choice() is None
    assert interpreter.end_conversation().events == []


def test_conversation_without_choice_ends_by_itself() -> None:
    world = make_world()
    script = _keeper_script(world)
    chain(
        script,
        add_node(script, "Conversation_Start"),
        add_node(script, "Conversation_NpcSay", Text="Busy. Go away.", SpeakerName="The keeper"),
    )

    result = make_interpreter(world).start_conversation("keeper")

    assert [line.speaker for line in result.dialogue] == ["The keeper"]
    assert result.events == [ConversationStarted(npc_id="keeper"), ConversationEnded(npc_id="keeper")]
    assert world.active_conversation is None


def test_unknown_npc_or_missing_script_does_nothing() -> None:
    world = make_world()
    interpreter = make_interpreter(world)

    assert interpreter.start_conversation("ghost").events == []
    assert interpreter.start_conversation("keeper").events == []
    assert world.active_conversation is None


def test_choice_offers_only_connected_outputs() -> None:
    world = make_world()
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start")
    menu = add_node(script, "Conversation_PlayerChoice", Text1="Hidden")
    leave = add_node(script, "Conversation_End")
    chain(script, start, menu)
    link(script, menu, "Option3", leave)

    result = make_interpreter(world).start_conversation("keeper")

    assert [(option.index, option.text, option.port) for option in result.options[0]] == [
        (0, "Option 3", "Option3")
    ]


def test_start_conversation_action_runs_graph() -> None:
    world = make_world()
    talk = _keeper_script(world)
    chain(talk, add_node(talk, "Conversation_Start"), add_node(talk, "Conversation_NpcSay", Text="Evening."))
    room = install(world, make_script())
    chain(
        room,
        add_node(room, "Event_OnEnter"),
        add_node(room, "Action_StartConversation", NpcId="keeper"),
        add_node(room, "Action_ShowMessage", Message="The fire crackles."),
    )

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert [line.text for line in result.dialogue] == ["Evening."]
    assert result.messages == ["The fire crackles."]
    assert result.events == [ConversationStarted(npc_id="keeper"), ConversationEnded(npc_id="keeper")]


def test_conversation_actions_and_branches() -> None:
    world = make_world()
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start")
    give = add_node(script, "Conversation_Action", ActionType="GiveItem", ObjectId="lamp")
    pay = add_node(script, "Conversation_Action", ActionType="AddMoney", Amount=5)
    quest = add_node(script, "Conversation_Action", ActionType="StartQuest", QuestId="main")
    check = add_node(script, "Conversation_Branch", ConditionType="QuestStatus", QuestId="main", QuestStatus="InProgress")
    rich = add_node(script, "Conversation_Branch", ConditionType="HasMoney", MoneyAmount=5)
    holding = add_node(script, "Conversation_Branch", ConditionType="HasItem", ItemId="lamp")
    say = add_node(script, "Conversation_NpcSay", Text="All set.")
    chain(script, start, give, pay, quest, check)
    link(script, check, "True", rich)
    link(script, rich, "True", holding)
    link(script, holding, "True", say)

    result = make_interpreter(world).start_conversation("keeper")

    assert world.player.inventory == ["lamp"]
    assert "lamp" not in world.rooms["hall"].object_ids
    assert world.player.money == 5
    assert world.quest_states["main"].status == "InProgress"
    assert result.messages == ["[Item received: Lamp]", "[New quest: Main Quest]"]
    assert [line.text for line in result.dialogue] == ["All set."]


def _shop_world():
    world = make_world()
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start")
    shop = add_node(script, "Conversation_Shop", ShopTitle="Maren's stores", WelcomeMessage="Take a look.")
    buy = add_node(script, "Conversation_BuyItem", ObjectId="lamp")
    thanks = add_node(script, "Conversation_NpcSay", Text="Enjoy.")
    poor = add_node(script, "Conversation_NpcSay", Text="Come back with coin.")
    bye = add_node(script, "Conversation_End")
    chain(script, start, shop)
    link(script, shop, "OnBuy", buy)
    link(script, buy, "Success", thanks)
    link(script, buy, "NotEnoughMoney", poor)
    link(script, thanks, "Exec", shop)
    link(script, poor, "Exec", shop)
    link(script, shop, "OnClose", bye)
    return world


def test_shop_offers_buy_and_leave() -> None:
    world = _shop_world()
    interpreter = make_interpreter(world)

    result = interpreter.start_conversation("keeper")

    assert ShopOpened(npc_id="keeper", title="Maren's stores", welcome_message="Take a look.") in result.events
    assert result.messages == ["Take a look."]
    assert [(option.text, option.port) for option in result.options[0]] == [("Buy", "OnBuy"), ("Leave", "OnClose")]
    assert world.active_conversation is not None
    assert world.active_conversation.in_shop
    assert world.pending_choice().kind == "shop"


def test_buy_without_money_then_with_money() -> None:
    world = _shop_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    poor = interpreter.select_option(0)
    assert [line.text for line in poor.dialogue] == ["Come back with coin."]
    assert world.player.inventory == []

    world.player.money = 15
    bought = interpreter.select_option(0)

    assert [line.text for line in bought.dialogue] == ["Enjoy."]
    assert world.player.money == 5
    assert world.npcs["keeper"].money == 60
    assert world.player.inventory == ["lamp"]
    assert "[Item received: Lamp]" in bought.messages
    assert bought.suspended


def test_close_shop_follows_on_close() -> None:
    world = _shop_world()
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    result = interpreter.close_shop()

    assert result.events == [ConversationEnded(npc_id="keeper")]
    assert world.active_conversation is None
    assert world.continuations == []


def test_sell_item_pays_player() -> None:
    world = make_world()
    world.player.inventory.append("coin")
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start")
    shop = add_node(script, "Conversation_Shop")
    sell = add_node(script, "Conversation_SellItem", ObjectId="coin", Price=3)
    sold = add_node(script, "Conversation_NpcSay", Text="A fair trade.")
    none = add_node(script, "Conversation_NpcSay", Text="You have none.")
    chain(script, start, shop)
    link(script, shop, "OnSell", sell)
    link(script, sell, "Success", sold)
    link(script, sell, "NoItem", none)
    interpreter = make_interpreter(world)
    opened = interpreter.start_conversation("keeper")
    assert [option.port for option in opened.options[0]] == ["OnSell", "OnClose"]

    first = interpreter.select_option(0)

    assert [line.text for line in first.dialogue] == ["A fair trade."]
    assert world.player.money == 3
    assert world.player.inventory == []
    assert world.npcs["keeper"].money == 47
    assert "coin" in world.npcs["keeper"].inventory
    assert first.events[-1] == ConversationEnded(npc_id="keeper")


def test_due_delay_waits_while_choice_is_open() -> None:
    world = make_world()
    for text in ("first", "second"):
        script = install(world, make_script())
        event = add_node(script, "Event_OnEnter")
        wait = add_node(script, "Flow_Delay", Seconds=1)
        menu = add_node(script, "Conversation_PlayerChoice", Text1=text)
        answer = add_node(script, "Action_ShowMessage", Message=f"picked {text}")
        chain(script, event, wait, menu)
        link(script, menu, "Option1", answer)
    interpreter = make_interpreter(world)
    interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    result = interpreter.advance_time(1)

    assert [[option.text for option in options] for options in result.options] == [["first"]]
    assert [item.kind for item in world.continuations] == ["delay", "choice"]
    assert interpreter.select_option(0).messages == ["picked first"]

    resumed = interpreter.advance_time(0)

    assert resumed.options[0][0].text == "second"
    assert interpreter.select_option(0).messages == ["picked second"]
    assert world.continuations == []


def test_new_walks_are_rejected_while_choice_is_open() -> None:
    world = _menu_world()
    room = install(world, make_script())
    event = add_node(room, "Event_OnEnter")
    before = add_node(room, "Action_SetFlag", FlagName="before")
    ask = add_node(room, "Conversation_PlayerChoice", Text1="Go on")
    after = add_node(room, "Action_SetFlag", FlagName="after")
    chain(room, event, before, ask)
    link(room, ask, "Option1", after)
    interpreter = make_interpreter(world)
    interpreter.start_conversation("keeper")

    rejected = interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert rejected.messages == [] and rejected.options == []
    assert "before" not in world.flags
    assert len(world.continuations) == 1

    interpreter.select_option(1)
    asked = interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert world.flags["before"]
    assert asked.suspended
    assert interpreter.start_conversation("keeper").events == []
    assert world.active_conversation is None

    interpreter.select_option(0)

    assert world.flags["after"]
    assert world.continuations == []


def test_delay_inside_conversation_keeps_it_open() -> None:
    world = make_world()
    script = _keeper_script(world)
    start = add_node(script, "Conversation_Start")
    wait = add_node(script, "Flow_Delay", Seconds=1)
    menu = add_node(script, "Conversation_PlayerChoice", "menu", Text1="Well?")
    seen = add_node(script, "Conversation_Branch", ConditionType="VisitedNode", NodeId="menu")
    again = add_node(script, "Conversation_NpcSay", Text="Back again.")
    chain(script, start, wait, menu)
    link(script, menu, "Option1", seen)
    link(script, seen, "True", again)
    interpreter = make_interpreter(world)

    opened = interpreter.start_conversation("keeper")

    assert opened.events == [ConversationStarted(npc_id="keeper")]
    assert not opened.suspended
    assert world.active_conversation is not None

    resumed = interpreter.advance_time(2)

    assert resumed.suspended
    assert resumed.events == []
    assert world.active_conversation is not None
    assert world.active_conversation.current_node_id == "menu"

    answered = interpreter.select_option(0)

    assert [(line.speaker, line.text) for line in answered.dialogue] == [("Maren", "Back again.")]
    assert answered.events == [ConversationEnded(npc_id="keeper")]
