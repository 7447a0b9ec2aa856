from advscript.domain.defs import NodeConnection
from advscript.services.script_validator import (
    CATEGORY_MISMATCH,
    DANGLING_CONNECTION,
    EMPTY,
    UNKNOWN_NODE_TYPE,
    IncompleteNode,
    Issue,
    ScriptValidator,
    format_issue,
)
from tests.helpers.script_builders import REGISTRY, add_node, chain, link, make_script


def _validator() -> ScriptValidator:
    return ScriptValidator(REGISTRY)


def _build_enter_message(message: str | None = "hi"):
    script = make_script()
    event = add_node(script, "Event_OnEnter", "enter")
    properties = {} if message is None else {"Message": message}
    action = add_node(script, "Action_ShowMessage", "show", **properties)
    chain(script, event, action)
    return script


def test_empty_script_is_empty_result() -> None:
    result = _validator().validate(make_script())

    assert result == EMPTY
    assert not result.has_event
    assert not result.has_action
    assert not result.is_connected
    assert not result.is_valid


def test_event_to_show_message_is_valid() -> None:
    result = _validator().validate(_build_enter_message())

    assert result.is_valid
    assert result.incomplete_nodes == []
    assert result.errors == []


def test_missing_message_is_incomplete() -> None:
    result = _validator().validate(_build_enter_message(message=None))

    assert result.has_event
    assert result.has_action
    assert result.is_connected
    assert len(result.incomplete_nodes) == 1
    assert result.incomplete_nodes[0] == IncompleteNode(
        node_id="show", display_name="Show Message", missing_properties=("Message",)
    )
    assert not result.is_valid
    assert any("INCOMPLETE_NODE" in error for error in result.errors)


def test_blank_values_count_as_missing() -> None:
    for blank in ("", "   "):
        result = _validator().validate(_build_enter_message(message=blank))
        assert [entry.node_id for entry in result.incomplete_nodes] == ["show"]


def test_property_lookup_is_case_insensitive_for_completeness() -> None:
    script = make_script()
    event = add_node(script, "Event_OnEnter")
    action = add_node(script, "Action_ShowMessage", message="lower case key")
    chain(script, event, action)

    assert _validator().validate(script).is_valid


def test_entity_reference_property_is_required() -> None:
    prop = REGISTRY.get_node_type("Condition_HasItem").find_property("ObjectId")
    assert prop is not None
    assert not prop.is_required
    assert prop.requires_value

    script = make_script()
    event = add_node(script, "Event_OnEnter")
    condition = add_node(script, "Condition_HasItem", "has")
    action = add_node(script, "Action_ShowMessage", Message="x")
    link(script, event, "Exec", condition)
    link(script, condition, "True", action)

    result = _validator().validate(script)

    assert [entry.node_id for entry in result.incomplete_nodes] == ["has"]


def test_disconnected_action() -> None:
    script = make_script()
    add_node(script, "Event_OnEnter")
    add_node(script, "Action_ShowMessage", Message="alone")

    result = _validator().validate(script)

    assert result.has_event and result.has_action
    assert not result.is_connected
    assert any("NOT_CONNECTED" in error for error in result.errors)


def test_no_event_and_no_action_errors() -> None:
    script = make_script()
    add_node(script, "Variable_ConstantInt", Value=3)

    result = _validator().validate(script)

    assert not result.has_event
    assert not result.has_action
    assert not result.is_connected
    assert len(result.errors) == 2


def test_condition_branch_connects() -> None:
    script = make_script()
    event = add_node(script, "Event_OnEnter")
    condition = add_node(script, "Condition_HasFlag", FlagName="door_seen")
    first = add_node(script, "Action_ShowMessage", Message="one")
    second = add_node(script, "Action_ShowMessage", Message="two")
    link(script, event, "Exec", condition)
    link(script, condition, "True", first)
    link(script, condition, "False", second)

    assert _validator().validate(script).is_valid


def test_long_chain_of_conditions_connects() -> None:
    script = make_script()
    previous = add_node(script, "Event_OnEnter")
    previous_port = "Exec"
    for index in range(100):
        condition = add_node(script, "Condition_HasFlag", f"cond_{index}", FlagName=f"flag_{index}")
        link(script, previous, previous_port, condition)
        previous, previous_port = condition, "True"
    action = add_node(script, "Action_ShowMessage", Message="end of the line")
    link(script, previous, previous_port, action)

    result = _validator().validate(script)

    assert result.is_connected
    assert result.is_valid


def test_long_sequence_chain_with_cycle_connects() -> None:
    script = make_script()
    event = add_node(script, "Event_OnEnter")
    nodes = [add_node(script, "Flow_Sequence", f"seq_{index}") for index in range(100)]
    link(script, event, "Exec", nodes[0])
    for source, target in zip(nodes, nodes[1:]):
        link(script, source, "Then0", target)
    # Loop back and a side cycle that never reaches an action.
    link(script, nodes[-1], "Then1", nodes[0])
    loop_a = add_node(script, "Flow_Sequence", "loop_a")
    loop_b = add_node(script, "Flow_Sequence", "loop_b")
    link(script, loop_a, "Then0", loop_b)
    link(script, loop_b, "Then0", loop_a)
    action = add_node(script, "Action_ShowMessage", Message="done")
    link(script, nodes[-1], "Then2", action)

    assert _validator().validate(script).is_connected


def test_cycle_without_action_terminates_unconnected() -> None:
    script = make_script()
    event = add_node(script, "Event_OnEnter")
    first = add_node(script, "Flow_Sequence")
    second = add_node(script, "Flow_Sequence")
    link(script, event, "Exec", first)
    link(script, first, "Then0", second)
    link(script, second, "Then0", first)
    add_node(script, "Action_ShowMessage", Message="unreached")

    assert not _validator().validate(script).is_connected


def test_data_edges_never_connect() -> None:
    script = make_script()
    add_node(script, "Event_OnEnter")
    constant = add_node(script, "Variable_ConstantInt", Value=5)
    action = add_node(script, "Action_AddMoney")
    link(script, constant, "Value", action, "Amount")

    result = _validator().validate(script)

    assert result.has_event and result.has_action
    assert not result.is_connected


def test_data_edge_from_event_does_not_connect() -> None:
    script = make_script("Game", "g")
    event = add_node(script, "Event_OnMoneyGained")
    action = add_node(script, "Action_IncrementCounter", CounterName="gains")
    link(script, event, "Amount", action, "Amount")

    assert not _validator().validate(script).is_connected


def test_unknown_types_are_skipped_with_warning() -> None:
    script = _build_enter_message()
    add_node(script, "Action_DoesNotExist", "mystery")

    result = _validator().validate(script)

    assert result.is_valid
    assert any(issue.code == UNKNOWN_NODE_TYPE for issue in result.issues)
    assert any("mystery" in warning for warning in result.warnings)


def test_dangling_connection_is_tolerated_and_warned() -> None:
    script = _build_enter_message()
    script.connections.append(NodeConnection("enter", "Exec", "ghost", "Exec"))
    script.connections.append(NodeConnection("enter", "NoSuchPort", "show", "Exec"))

    result = _validator().validate(script)

    assert result.is_valid
    assert [issue.code for issue in result.issues].count(DANGLING_CONNECTION) == 2


def test_category_mismatch_warns() -> None:
    script = _build_enter_message()
    script.nodes[1].category = "Condition"

    result = _validator().validate(script)

    assert result.is_valid
    assert any(issue.code == CATEGORY_MISMATCH for issue in result.issues)


def test_alias_type_ids_are_classified() -> None:
    script = make_script()
    event = add_node(script, "OnEnter")
    action = add_node(script, "showmessage", Message="alias")
    chain(script, event, action)

    assert _validator().validate(script).is_valid


def test_format_issue_includes_context() -> None:
    issue = Issue("WARN", "CODE", "Something odd.", {"node_id": "n1"})

    assert format_issue(issue) == "[WARN] CODE: Something odd. (node_id=n1)"
