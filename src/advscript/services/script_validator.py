"""Static validation of script graphs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from advscript.core.properties import is_blank
from advscript.domain.defs import NodeTypeDef, NodeTypeLookup, ScriptDefinition

Severity = str

NO_EVENT = "NO_EVENT"
NO_ACTION = "NO_ACTION"
NOT_CONNECTED = "NOT_CONNECTED"
INCOMPLETE_NODE = "INCOMPLETE_NODE"
UNKNOWN_NODE_TYPE = "UNKNOWN_NODE_TYPE"
CATEGORY_MISMATCH = "CATEGORY_MISMATCH"
DANGLING_CONNECTION = "DANGLING_CONNECTION"
DUPLICATE_NODE_ID = "DUPLICATE_NODE_ID"


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


@dataclass(frozen=True, slots=True)
class IncompleteNode:
    node_id: str
    display_name: str
    missing_properties: tuple[str, ...]


@dataclass(slots=True)
class ValidationResult:
    has_event: bool = False
    has_action: bool = False
    is_connected: bool = False
    incomplete_nodes: List[IncompleteNode] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.has_event and self.has_action and self.is_connected and not self.incomplete_nodes


# Result for a script without nodes.
EMPTY = ValidationResult()


class ScriptValidator:
    """Answers whether a script graph is ready to run, without running it."""

    def __init__(self, registry: NodeTypeLookup) -> None:
        self._registry = registry

    def validate(self, script: ScriptDefinition) -> ValidationResult:
        if not script.nodes:
            return ValidationResult()
        issues: list[Issue] = []
        types = self._resolve_types(script, issues)
        self._check_connections(script, types, issues)

        event_ids = [node_id for node_id, node_type in types.items() if node_type.category == "Event"]
        action_ids = {node_id for node_id, node_type in types.items() if node_type.category == "Action"}
        has_event = bool(event_ids)
        has_action = bool(action_ids)
        is_connected = has_event and has_action and self._reaches_action(script, event_ids, action_ids)

        if not has_event:
            issues.append(Issue("ERROR", NO_EVENT, "Script has no event node.", {"script_id": script.id}))
        if not has_action:
            issues.append(Issue("ERROR", NO_ACTION, "Script has no action node.", {"script_id": script.id}))
        if has_event and has_action and not is_connected:
            issues.append(
                Issue(
                    "ERROR",
                    NOT_CONNECTED,
                    "No action is reachable from an event.",
                    {"script_id": script.id},
                )
            )
        incomplete = self._find_incomplete(script, types)
        for entry in incomplete:
            issues.append(
                Issue(
                    "ERROR",
                    INCOMPLETE_NODE,
                    f"'{entry.display_name}' is missing: {', '.join(entry.missing_properties)}.",
                    {"node_id": entry.node_id},
                )
            )
        return ValidationResult(
            has_event=has_event,
            has_action=has_action,
            is_connected=is_connected,
            incomplete_nodes=incomplete,
            errors=[format_issue(issue) for issue in issues if issue.severity == "ERROR"],
            warnings=[format_issue(issue) for issue in issues if issue.severity == "WARN"],
            issues=issues,
        )

    def _resolve_types(self, script: ScriptDefinition, issues: list[Issue]) -> Dict[str, NodeTypeDef]:
        """Map folded node ids to definitions; unknown types are reported and left out."""
        types: Dict[str, NodeTypeDef] = {}
        seen: Set[str] = set()
        for node in script.nodes:
            folded = node.id.casefold()
            if folded in seen:
                issues.append(
                    Issue("WARN", DUPLICATE_NODE_ID, "Node id is used more than once.", {"node_id": node.id})
                )
                continue
            seen.add(folded)
            node_type = self._registry.get_node_type(node.node_type)
            if node_type is None:
                issues.append(
                    Issue(
                        "WARN",
                        UNKNOWN_NODE_TYPE,
                        "Node type is not in the catalog.",
                        {"node_id": node.id, "node_type": str(node.node_type)},
                    )
                )
                continue
            types[folded] = node_type
            if not is_blank(node.category) and str(node.category).casefold() != node_type.category.casefold():
                issues.append(
                    Issue(
                        "WARN",
                        CATEGORY_MISMATCH,
                        "Node category disagrees with its type.",
                        {
                            "node_id": node.id,
                            "category": str(node.category),
                            "expected": node_type.category,
                        },
                    )
                )
        return types

    def _check_connections(
        self, script: ScriptDefinition, types: Dict[str, NodeTypeDef], issues: list[Issue]
    ) -> None:
        node_ids = {node.id.casefold() for node in script.nodes}
        for connection in script.connections:
            problem = None
            source_key = connection.from_node_id.casefold()
            target_key = connection.to_node_id.casefold()
            if source_key not in node_ids or target_key not in node_ids:
                problem = "Connection references a missing node."
            elif source_key in types and types[source_key].find_output(connection.from_port) is None:
                problem = f"Output port '{connection.from_port}' does not exist."
            elif target_key in types and types[target_key].find_input(connection.to_port) is None:
                problem = f"Input port '{connection.to_port}' does not exist."
            if problem is not None:
                issues.append(Issue("WARN", DANGLING_CONNECTION, problem, {"connection_id": connection.id}))

    def _reaches_action(
        self, script: ScriptDefinition, event_ids: List[str], action_ids: Set[str]
    ) -> bool:
        """Walk control edges from every event; data edges never count."""
        edges: Dict[str, List[str]] = {}
        for connection in script.connections:
            if connection.is_control_edge(self._registry, script):
                edges.setdefault(connection.from_node_id.casefold(), []).append(
                    connection.to_node_id.casefold()
                )
        visited: Set[str] = set()
        stack = list(event_ids)
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            if node_id in action_ids:
                return True
            stack.extend(edges.get(node_id, ()))
        return False

    def _find_incomplete(
        self, script: ScriptDefinition, types: Dict[str, NodeTypeDef]
    ) -> List[IncompleteNode]:
        incomplete: List[IncompleteNode] = []
        for node in script.nodes:
            node_type = types.get(node.id.casefold())
            if node_type is None:
                continue
            missing = tuple(
                prop.display_name or prop.name
                for prop in node_type.properties
                if prop.requires_value and is_blank(node.properties.get(prop.name))
            )
            if missing:
                incomplete.append(
                    IncompleteNode(node_id=node.id, display_name=node_type.display_name, missing_properties=missing)
                )
        return incomplete
