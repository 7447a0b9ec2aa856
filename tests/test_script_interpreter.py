import pytest

from advscript.core.rng import RNG
from advscript.domain.defs import ScriptNode
from advscript.services import InterpreterError
from tests.helpers.script_builders import (
    add_node,
    chain,
    install,
    link,
    make_interpreter,
    make_script,
    make_world,
)


def _flag_branch_world():
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    condition = add_node(script, "Condition_HasFlag", FlagName="door_seen")
    yes = add_node(script, "Action_ShowMessage", Message="You have seen the door.")
    no = add_node(script, "Action_ShowMessage", Message="A door appears.")
    mark = add_node(script, "Action_SetFlag", FlagName="door_seen")
    link(script, event, "Exec", condition)
    link(script, condition, "True", yes)
    link(script, condition, "False", no)
    link(script, no, "Exec", mark)
    return world


def test_condition_routes_false_then_true() -> None:
    world = _flag_branch_world()
    interpreter = make_interpreter(world)

    first = interpreter.trigger_event("Room", "hall", "Event_OnEnter")
    second = interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert first.messages == ["A door appears."]
    assert world.flags["door_seen"] is True
    assert second.messages == ["You have seen the door."]


def test_trigger_matches_owner_and_event_case_insensitively() -> None:
    world = _flag_branch_world()
    interpreter = make_interpreter(world)

    result = interpreter.trigger_event("room", "HALL", "OnEnter")

    assert result.messages == ["A door appears."]


def test_trigger_without_matching_script_is_empty() -> None:
    world = _flag_branch_world()
    interpreter = make_interpreter(world)

    assert interpreter.trigger_event("Room", "cellar", "Event_OnEnter").messages == []
    assert interpreter.trigger_event("Room", "hall", "Event_OnExit").messages == []
    assert world.flags.get("door_seen") is None


def test_sequence_finishes_each_branch_in_order() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    sequence = add_node(script, "Flow_Sequence")
    first = add_node(script, "Action_ShowMessage", Message="a")
    first_next = add_node(script, "Action_ShowMessage", Message="a2")
    second = add_node(script, "Action_ShowMessage", Message="b")
    third = add_node(script, "Action_ShowMessage", Message="c")
    link(script, event, "Exec", sequence)
    link(script, sequence, "Then2", third)
    link(script, sequence, "Then0", first)
    link(script, first, "Exec", first_next)
    link(script, sequence, "Then1", second)

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["a", "a2", "b", "c"]


def test_fan_out_runs_connections_in_insertion_order() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    first = add_node(script, "Action_ShowMessage", Message="first")
    second = add_node(script, "Action_ShowMessage", Message="second")
    link(script, event, "Exec", first)
    link(script, event, "Exec", second)

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["first", "second"]


def test_every_owner_script_runs_in_list_order() -> None:
    world = make_world()
    for text in ("one", "two"):
        script = install(world, make_script())
        chain(script, add_node(script, "Event_OnEnter"), add_node(script, "Action_ShowMessage", Message=text))

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["one", "two"]


def test_only_first_matching_event_node_per_script_runs() -> None:
    world = make_world()
    script = install(world, make_script())
    chain(script, add_node(script, "Event_OnEnter"), add_node(script, "Action_ShowMessage", Message="first"))
    chain(script, add_node(script, "Event_OnEnter"), add_node(script, "Action_ShowMessage", Message="second"))

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["first"]


def test_data_inputs_resolve_from_producers() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    constant = add_node(script, "Variable_ConstantInt", Value=2)
    add = add_node(script, "Math_Add", B=3)
    pay = add_node(script, "Action_AddMoney")
    chain(script, event, pay)
    link(script, constant, "Value", add, "A")
    link(script, add, "Result", pay, "Amount")

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.player.money == 5


def test_property_default_used_when_nothing_connected() -> None:
    world = make_world()
    script = install(world, make_script())
    chain(script, add_node(script, "Event_OnEnter"), add_node(script, "Action_AddMoney"))

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.player.money == 10


def test_event_outputs_read_trigger_params() -> None:
    world = make_world()
    script = install(world, make_script("Game", "test_game"))
    event = add_node(script, "Event_OnMoneyGained")
    count = add_node(script, "Action_IncrementCounter", CounterName="gains")
    chain(script, event, count)
    link(script, event, "Amount", count, "Amount")
    interpreter = make_interpreter(world)

    interpreter.trigger_event("Game", "test_game", "Event_OnMoneyGained", {"amount": 7})
    assert world.counters["gains"] == 7

    # Without the param the node falls back to its own property default.
    interpreter.trigger_event("Game", "test_game", "Event_OnMoneyGained")
    assert world.counters["gains"] == 8


def test_cyclic_data_pull_falls_back_to_defaults() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    first = add_node(script, "Math_Add", "first", B=1)
    second = add_node(script, "Math_Add", "second", B=1)
    store = add_node(script, "Action_SetCounter", CounterName="loop")
    chain(script, event, store)
    link(script, first, "Result", second, "A")
    link(script, second, "Result", first, "A")
    link(script, first, "Result", store, "Value")

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.counters["loop"] == 2


def test_long_producer_chain_resolves() -> None:
    world = make_world()
    script = install(world, make_script())
    store = add_node(script, "Action_SetCounter", CounterName="total")
    chain(script, add_node(script, "Event_OnEnter"), store)
    previous = add_node(script, "Math_Add", B=1)
    for _ in range(399):
        current = add_node(script, "Math_Add", B=1)
        link(script, previous, "Result", current, "A")
        previous = current
    link(script, previous, "Result", store, "Value")

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.counters["total"] == 400


def test_shared_producer_is_evaluated_once_per_pull() -> None:
    world = make_world()
    script = install(world, make_script())
    store = add_node(script, "Action_SetCounter", CounterName="doubled")
    chain(script, add_node(script, "Event_OnEnter"), store)
    roll = add_node(script, "Math_Random", Min=1, Max=1000)
    total = add_node(script, "Math_Add")
    link(script, roll, "Result", total, "A")
    link(script, roll, "Result", total, "B")
    link(script, total, "Result", store, "Value")

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.counters["doubled"] % 2 == 0


def test_nested_trigger_runs_before_caller_continues() -> None:
    world = make_world()
    game = install(world, make_script("Game", "test_game"))
    chain(
        game,
        add_node(game, "Event_OnGameStart"),
        add_node(game, "Action_StartQuest", QuestId="main"),
        add_node(game, "Action_ShowMessage", Message="after start"),
    )
    quest = install(world, make_script("Quest", "main"))
    chain(quest, add_node(quest, "Event_OnQuestStart"), add_node(quest, "Action_ShowMessage", Message="quest began"))

    result = make_interpreter(world).trigger_event("Game", "test_game", "Event_OnGameStart")

    assert result.messages == ["[New quest: Main Quest]", "quest began", "after start"]


def test_nested_money_event_carries_amount() -> None:
    world = make_world()
    room = install(world, make_script())
    chain(room, add_node(room, "Event_OnEnter"), add_node(room, "Action_AddMoney", Amount=4))
    game = install(world, make_script("Game", "test_game"))
    event = add_node(game, "Event_OnMoneyGained")
    count = add_node(game, "Action_IncrementCounter", CounterName="gains")
    chain(game, event, count)
    link(game, event, "Amount", count, "Amount")

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.player.money == 4
    assert world.counters["gains"] == 4


def test_step_budget_stops_runaway_loop() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    echo = add_node(script, "Action_ShowMessage", Message="again")
    chain(script, event, echo)
    link(script, echo, "Exec", echo)
    interpreter = make_interpreter(world, max_steps=10)

    result = interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["again"] * 10
    # The budget is per call.
    assert len(interpreter.trigger_event("Room", "hall", "Event_OnEnter").messages) == 10


def test_revisiting_a_node_is_allowed() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    count = add_node(script, "Action_IncrementCounter", CounterName="laps")
    check = add_node(script, "Condition_CompareCounter", CounterName="laps", Operator="<", Value=3)
    chain(script, event, count, check)
    link(script, check, "True", count)

    make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert world.counters["laps"] == 3


def test_unknown_node_type_stops_only_that_path() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    mystery = add_node(script, "Action_DoesNotExist")
    after = add_node(script, "Action_ShowMessage", Message="never")
    other = add_node(script, "Action_ShowMessage", Message="still runs")
    link(script, event, "Exec", mystery)
    link(script, mystery, "Exec", after)
    link(script, event, "Exec", other)

    result = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")

    assert result.messages == ["still runs"]


def test_random_branch_only_picks_connected_outputs() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    pick = add_node(script, "Flow_RandomBranch")
    only = add_node(script, "Action_ShowMessage", Message="out1")
    link(script, event, "Exec", pick)
    link(script, pick, "Out1", only)
    interpreter = make_interpreter(world, rng=RNG(seed=7))

    for _ in range(10):
        assert interpreter.trigger_event("Room", "hall", "Event_OnEnter").messages == ["out1"]


def test_debug_mode_reports_condition_results() -> None:
    world = _flag_branch_world()

    quiet = make_interpreter(world).trigger_event("Room", "hall", "Event_OnEnter")
    world.flags["door_seen"] = False
    loud = make_interpreter(world, debug_mode=True).trigger_event("Room", "hall", "Event_OnEnter")

    assert not any(message.startswith("[Debug]") for message in quiet.messages)
    assert "[Debug] Condition_HasFlag -> False" in loud.messages


def test_execute_single_node_uses_properties_only() -> None:
    world = make_world()
    interpreter = make_interpreter(world)

    shown = interpreter.execute_single_node(ScriptNode(node_type="Action_ShowMessage", properties={"Message": "solo"}))
    interpreter.execute_single_node(ScriptNode(node_type="Action_AddMoney", properties={"Amount": 4}))

    assert shown.messages == ["solo"]
    assert world.player.money == 4
    assert world.scripts == []


def test_execute_single_node_unknown_type_is_noop() -> None:
    world = make_world()

    result = make_interpreter(world).execute_single_node(ScriptNode(node_type="Action_Nope"))

    assert result.messages == []
    assert result.events == []


def test_execute_single_delay_leaves_nothing_parked() -> None:
    world = make_world()

    make_interpreter(world).execute_single_node(ScriptNode(node_type="Flow_Delay", properties={"Seconds": 2}))

    assert world.continuations == []


def test_execute_follows_edges_from_a_port() -> None:
    world = make_world()
    script = make_script()
    condition = add_node(script, "Condition_HasFlag", FlagName="x")
    yes = add_node(script, "Action_ShowMessage", Message="yes branch")
    no = add_node(script, "Action_ShowMessage", Message="no branch")
    link(script, condition, "True", yes)
    link(script, condition, "False", no)

    result = make_interpreter(world).execute(script, condition, "True")

    assert result.messages == ["yes branch"]


def _delayed_world(seconds: float = 5):
    world = make_world()
    script = install(world, make_script())
    chain(
        script,
        add_node(script, "Event_OnEnter"),
        add_node(script, "Action_ShowMessage", Message="before"),
        add_node(script, "Flow_Delay", Seconds=seconds),
        add_node(script, "Action_ShowMessage", Message="after"),
    )
    return world


def test_delay_parks_until_time_advances() -> None:
    world = _delayed_world()
    interpreter = make_interpreter(world)

    first = interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert first.messages == ["before"]
    assert len(world.continuations) == 1
    assert world.continuations[0].due_at == 5

    assert interpreter.advance_time(2).messages == []
    assert interpreter.advance_time(3).messages == ["after"]
    assert world.continuations == []
    assert world.clock == 5


def test_delay_only_parks_its_own_path() -> None:
    world = make_world()
    script = install(world, make_script())
    event = add_node(script, "Event_OnEnter")
    sequence = add_node(script, "Flow_Sequence")
    wait = add_node(script, "Flow_Delay", Seconds=1)
    late = add_node(script, "Action_ShowMessage", Message="late")
    now = add_node(script, "Action_ShowMessage", Message="now")
    link(script, event, "Exec", sequence)
    link(script, sequence, "Then0", wait)
    link(script, wait, "Exec", late)
    link(script, sequence, "Then1", now)
    interpreter = make_interpreter(world)

    assert interpreter.trigger_event("Room", "hall", "Event_OnEnter").messages == ["now"]
    assert interpreter.advance_time(1).messages == ["late"]


def test_due_delays_resume_oldest_first() -> None:
    world = make_world()
    for seconds, text in ((4, "slow"), (1, "fast")):
        script = install(world, make_script())
        chain(
            script,
            add_node(script, "Event_OnEnter"),
            add_node(script, "Flow_Delay", Seconds=seconds),
            add_node(script, "Action_ShowMessage", Message=text),
        )
    interpreter = make_interpreter(world)
    interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert interpreter.advance_time(10).messages == ["fast", "slow"]


def test_zero_second_delay_still_waits_for_advance_time() -> None:
    world = _delayed_world(seconds=0)
    interpreter = make_interpreter(world)

    assert interpreter.trigger_event("Room", "hall", "Event_OnEnter").messages == ["before"]
    assert interpreter.advance_time(0).messages == ["after"]


def test_negative_delay_is_clamped_to_zero() -> None:
    world = _delayed_world(seconds=-5)
    interpreter = make_interpreter(world)
    interpreter.trigger_event("Room", "hall", "Event_OnEnter")

    assert world.continuations[0].due_at == world.clock
    assert interpreter.advance_time(0).messages == ["after"]


def test_advance_time_rejects_negative_seconds() -> None:
    interpreter = make_interpreter()

    with pytest.raises(InterpreterError):
        interpreter.advance_time(-1)


def test_select_option_without_pending_choice_raises() -> None:
    interpreter = make_interpreter()

    with pytest.raises(InterpreterError):
        interpreter.select_option(0)
    with pytest.raises(InterpreterError):
        interpreter.close_shop()
