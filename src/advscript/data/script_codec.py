"""Conversion between script/catalog dataclasses and their JSON records.

Records use camelCase field names (``nodeType``, ``fromNodeId``,
``portType`` ...). Property values are limited to None, bool, int, float and
str and are written back exactly as they were read.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from advscript.core.properties import CaseInsensitiveDict, PropertyBag
from advscript.core.types import (
    NODE_CATEGORIES,
    PORT_TYPES,
    REQUIRED_FEATURES,
    PropertyValue,
)
from advscript.data.errors import ScriptLoadError
from advscript.data.json_loader import load_json, write_json
from advscript.domain.conversation import Continuation, DialogueOption, ExecutionFrame
from advscript.domain.defs import (
    NodeConnection,
    NodePort,
    NodePropertyDef,
    NodeTypeDef,
    OwnerType,
    ScriptDefinition,
    ScriptNode,
)

_CONTINUATION_KINDS = ("delay", "choice", "shop")


# -- ports and node types -------------------------------------------------


def node_port_from_record(value: object, context: str) -> NodePort:
    """Build a port; a bare string is shorthand for an Execution port."""
    if isinstance(value, str):
        if not value.strip():
            raise ScriptLoadError(f"{context} must not be blank.")
        return NodePort(name=value)
    mapping = _require_mapping(value, context)
    name = _require_str(mapping.get("name"), f"{context}.name")
    port_type = mapping.get("portType", "Execution")
    if port_type not in PORT_TYPES:
        raise ScriptLoadError(f"{context}.portType must be one of {', '.join(PORT_TYPES)}.")
    data_type = _optional_str(mapping.get("dataType"), f"{context}.dataType")
    if port_type == "Data" and data_type is None:
        raise ScriptLoadError(f"{context} is a Data port and needs a dataType.")
    return NodePort(
        name=name,
        port_type=port_type,
        data_type=data_type if port_type == "Data" else None,
        default_value=_require_value(mapping.get("defaultValue"), f"{context}.defaultValue"),
        label=_optional_str(mapping.get("label"), f"{context}.label") or "",
    )


def node_port_to_record(port: NodePort) -> Dict[str, Any]:
    record: Dict[str, Any] = {"name": port.name, "portType": port.port_type}
    if port.data_type is not None:
        record["dataType"] = port.data_type
    if port.default_value is not None:
        record["defaultValue"] = port.default_value
    if port.label:
        record["label"] = port.label
    return record


def property_def_from_record(value: object, context: str) -> NodePropertyDef:
    mapping = _require_mapping(value, context)
    name = _require_str(mapping.get("name"), f"{context}.name")
    options = mapping.get("options", [])
    return NodePropertyDef(
        name=name,
        display_name=_optional_str(mapping.get("displayName"), f"{context}.displayName") or name,
        data_type=_optional_str(mapping.get("dataType"), f"{context}.dataType") or "string",
        default_value=_require_value(mapping.get("defaultValue"), f"{context}.defaultValue"),
        options=tuple(_require_str_list(options, f"{context}.options")),
        entity_type=_optional_str(mapping.get("entityType"), f"{context}.entityType"),
        is_required=_require_bool(mapping.get("isRequired", False), f"{context}.isRequired"),
    )


def property_def_to_record(prop: NodePropertyDef) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "name": prop.name,
        "displayName": prop.display_name,
        "dataType": prop.data_type,
    }
    if prop.default_value is not None:
        record["defaultValue"] = prop.default_value
    if prop.options:
        record["options"] = list(prop.options)
    if prop.entity_type:
        record["entityType"] = prop.entity_type
    if prop.is_required:
        record["isRequired"] = True
    return record


def node_type_from_record(type_id: str, value: object) -> NodeTypeDef:
    """Build a catalog entry from its record; ``type_id`` is the catalog key."""
    context = f"node type '{type_id}'"
    mapping = _require_mapping(value, context)
    category = mapping.get("category")
    if category not in NODE_CATEGORIES:
        raise ScriptLoadError(f"{context}.category must be one of {', '.join(NODE_CATEGORIES)}.")
    required_feature = mapping.get("requiredFeature", "None")
    if required_feature not in REQUIRED_FEATURES:
        raise ScriptLoadError(
            f"{context}.requiredFeature must be one of {', '.join(REQUIRED_FEATURES)}."
        )
    owner_names = _require_str_list(mapping.get("ownerTypes", []), f"{context}.ownerTypes")
    try:
        owner_types = OwnerType.from_names(owner_names)
    except ValueError as exc:
        raise ScriptLoadError(f"{context}.ownerTypes: {exc}") from exc
    inputs = _require_list(mapping.get("inputPorts", []), f"{context}.inputPorts")
    outputs = _require_list(mapping.get("outputPorts", []), f"{context}.outputPorts")
    props = _require_list(
        mapping.get("propertyDefinitions", []), f"{context}.propertyDefinitions"
    )
    return NodeTypeDef(
        type_id=type_id,
        display_name=_optional_str(mapping.get("displayName"), f"{context}.displayName")
        or type_id,
        description=_optional_str(mapping.get("description"), f"{context}.description") or "",
        category=category,
        owner_types=owner_types,
        required_feature=required_feature,
        input_ports=tuple(
            node_port_from_record(port, f"{context}.inputPorts[{index}]")
            for index, port in enumerate(inputs)
        ),
        output_ports=tuple(
            node_port_from_record(port, f"{context}.outputPorts[{index}]")
            for index, port in enumerate(outputs)
        ),
        properties=tuple(
            property_def_from_record(prop, f"{context}.propertyDefinitions[{index}]")
            for index, prop in enumerate(props)
        ),
    )


def node_type_to_record(node_type: NodeTypeDef) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "displayName": node_type.display_name,
        "category": node_type.category,
        "ownerTypes": node_type.owner_types.names(),
    }
    if node_type.description:
        record["description"] = node_type.description
    if node_type.required_feature != "None":
        record["requiredFeature"] = node_type.required_feature
    if node_type.input_ports:
        record["inputPorts"] = [node_port_to_record(port) for port in node_type.input_ports]
    if node_type.output_ports:
        record["outputPorts"] = [node_port_to_record(port) for port in node_type.output_ports]
    if node_type.properties:
        record["propertyDefinitions"] = [
            property_def_to_record(prop) for prop in node_type.properties
        ]
    return record


# -- script graphs ---------------------------------------------------------


def script_node_from_record(value: object, context: str) -> ScriptNode:
    mapping = _require_mapping(value, context)
    properties = PropertyBag()
    raw_properties = _require_mapping(mapping.get("properties", {}), f"{context}.properties")
    for key, prop_value in raw_properties.items():
        properties[key] = _require_value(prop_value, f"{context}.properties.{key}")
    position = _require_mapping(mapping.get("position", {}), f"{context}.position")
    return ScriptNode(
        id=_require_str(mapping.get("id"), f"{context}.id"),
        node_type=_require_str(mapping.get("nodeType"), f"{context}.nodeType"),
        category=_optional_str(mapping.get("category"), f"{context}.category") or "",
        x=_require_number(position.get("x", 0.0), f"{context}.position.x"),
        y=_require_number(position.get("y", 0.0), f"{context}.position.y"),
        comment=_optional_str(mapping.get("comment"), f"{context}.comment"),
        properties=properties,
    )


def script_node_to_record(node: ScriptNode) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": node.id,
        "nodeType": node.node_type,
        "category": node.category,
        "position": {"x": node.x, "y": node.y},
        "properties": dict(node.properties.items()),
    }
    if node.comment is not None:
        record["comment"] = node.comment
    return record


def connection_from_record(value: object, context: str) -> NodeConnection:
    mapping = _require_mapping(value, context)
    return NodeConnection(
        id=_require_str(mapping.get("id"), f"{context}.id"),
        from_node_id=_require_str(mapping.get("fromNodeId"), f"{context}.fromNodeId"),
        from_port=_require_str(mapping.get("fromPort"), f"{context}.fromPort"),
        to_node_id=_require_str(mapping.get("toNodeId"), f"{context}.toNodeId"),
        to_port=_require_str(mapping.get("toPort"), f"{context}.toPort"),
    )


def connection_to_record(connection: NodeConnection) -> Dict[str, Any]:
    return {
        "id": connection.id,
        "fromNodeId": connection.from_node_id,
        "fromPort": connection.from_port,
        "toNodeId": connection.to_node_id,
        "toPort": connection.to_port,
    }


def script_from_record(value: object, context: str = "script") -> ScriptDefinition:
    """Build a ScriptDefinition, rejecting duplicate node ids."""
    mapping = _require_mapping(value, context)
    script_id = _require_str(mapping.get("id"), f"{context}.id")
    context = f"script '{script_id}'"
    nodes = [
        script_node_from_record(node, f"{context}.nodes[{index}]")
        for index, node in enumerate(_require_list(mapping.get("nodes", []), f"{context}.nodes"))
    ]
    seen: set[str] = set()
    for node in nodes:
        folded = node.id.casefold()
        if folded in seen:
            raise ScriptLoadError(f"{context} has duplicate node id '{node.id}'.")
        seen.add(folded)
    connections = [
        connection_from_record(connection, f"{context}.connections[{index}]")
        for index, connection in enumerate(
            _require_list(mapping.get("connections", []), f"{context}.connections")
        )
    ]
    return ScriptDefinition(
        id=script_id,
        name=_optional_str(mapping.get("name"), f"{context}.name") or "New Script",
        owner_type=_require_str(mapping.get("ownerType"), f"{context}.ownerType"),
        owner_id=_require_str(mapping.get("ownerId"), f"{context}.ownerId"),
        nodes=nodes,
        connections=connections,
    )


def script_to_record(script: ScriptDefinition) -> Dict[str, Any]:
    return {
        "id": script.id,
        "name": script.name,
        "ownerType": script.owner_type,
        "ownerId": script.owner_id,
        "nodes": [script_node_to_record(node) for node in script.nodes],
        "connections": [connection_to_record(connection) for connection in script.connections],
    }


def load_script_file(path: Path) -> ScriptDefinition:
    """Read one script graph from a JSON file."""
    return script_from_record(load_json(path), f"script file {path.name}")


def save_script_file(path: Path, script: ScriptDefinition) -> None:
    write_json(path, script_to_record(script))


# -- continuations ---------------------------------------------------------


def continuation_from_record(value: object, context: str = "continuation") -> Continuation:
    mapping = _require_mapping(value, context)
    kind = mapping.get("kind")
    if kind not in _CONTINUATION_KINDS:
        raise ScriptLoadError(f"{context}.kind must be one of {', '.join(_CONTINUATION_KINDS)}.")
    due_at = mapping.get("dueAt")
    if due_at is not None:
        due_at = _require_number(due_at, f"{context}.dueAt")
    frames: List[ExecutionFrame] = []
    for index, entry in enumerate(_require_list(mapping.get("frames", []), f"{context}.frames")):
        frame_ctx = f"{context}.frames[{index}]"
        frame_map = _require_mapping(entry, frame_ctx)
        frames.append(
            ExecutionFrame(
                script_id=_require_str(frame_map.get("scriptId"), f"{frame_ctx}.scriptId"),
                node_id=_require_str(frame_map.get("nodeId"), f"{frame_ctx}.nodeId"),
                port=_require_str(frame_map.get("port"), f"{frame_ctx}.port"),
                entering=_require_bool(frame_map.get("entering", False), f"{frame_ctx}.entering"),
                params=_require_params(frame_map.get("params", {}), f"{frame_ctx}.params"),
            )
        )
    options: List[DialogueOption] = []
    for index, entry in enumerate(_require_list(mapping.get("options", []), f"{context}.options")):
        option_ctx = f"{context}.options[{index}]"
        option_map = _require_mapping(entry, option_ctx)
        option_index = option_map.get("index")
        if not isinstance(option_index, int) or isinstance(option_index, bool):
            raise ScriptLoadError(f"{option_ctx}.index must be an integer.")
        options.append(
            DialogueOption(
                index=option_index,
                text=_optional_str(option_map.get("text"), f"{option_ctx}.text") or "",
                port=_require_str(option_map.get("port"), f"{option_ctx}.port"),
            )
        )
    return Continuation(
        id=_require_str(mapping.get("id"), f"{context}.id"),
        kind=kind,
        script_id=_require_str(mapping.get("scriptId"), f"{context}.scriptId"),
        node_id=_require_str(mapping.get("nodeId"), f"{context}.nodeId"),
        frames=frames,
        due_at=due_at,
        options=options,
        params=_require_params(mapping.get("params", {}), f"{context}.params"),
    )


def continuation_to_record(continuation: Continuation) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": continuation.id,
        "kind": continuation.kind,
        "scriptId": continuation.script_id,
        "nodeId": continuation.node_id,
        "frames": [
            {
                "scriptId": frame.script_id,
                "nodeId": frame.node_id,
                "port": frame.port,
                "entering": frame.entering,
                "params": dict(frame.params.items()),
            }
            for frame in continuation.frames
        ],
    }
    if continuation.due_at is not None:
        record["dueAt"] = continuation.due_at
    if continuation.options:
        record["options"] = [
            {"index": option.index, "text": option.text, "port": option.port}
            for option in continuation.options
        ]
    if continuation.params:
        record["params"] = dict(continuation.params.items())
    return record


# -- validation helpers ----------------------------------------------------


def _require_mapping(value: object, context: str) -> dict[str, object]:
    if not isinstance(value, dict):
        raise ScriptLoadError(f"{context} must be an object/dict.")
    return value


def _require_list(value: object, context: str) -> list[object]:
    if not isinstance(value, list):
        raise ScriptLoadError(f"{context} must be a list.")
    return value


def _require_str(value: object, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ScriptLoadError(f"{context} must be a non-empty string.")
    return value


def _optional_str(value: object, context: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ScriptLoadError(f"{context} must be a string.")
    return value


def _require_str_list(value: object, context: str) -> list[str]:
    items = _require_list(value, context)
    for index, item in enumerate(items):
        if not isinstance(item, str):
            raise ScriptLoadError(f"{context}[{index}] must be a string.")
    return list(items)  # type: ignore[arg-type]


def _require_bool(value: object, context: str) -> bool:
    if not isinstance(value, bool):
        raise ScriptLoadError(f"{context} must be a boolean.")
    return value


def _require_number(value: object, context: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScriptLoadError(f"{context} must be a number.")
    return float(value)


def _require_value(value: object, context: str) -> PropertyValue:
    if value is not None and not isinstance(value, (bool, int, float, str)):
        raise ScriptLoadError(f"{context} must be null, a boolean, a number or a string.")
    return value  # type: ignore[return-value]


def _require_params(value: object, context: str) -> CaseInsensitiveDict[PropertyValue]:
    params: CaseInsensitiveDict[PropertyValue] = CaseInsensitiveDict()
    for key, param in _require_mapping(value, context).items():
        params[key] = _require_value(param, f"{context}.{key}")
    return params
