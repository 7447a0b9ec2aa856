"""Node type registry backed by the bundled node_types.json catalog."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

from advscript.data.errors import DataValidationError, ScriptLoadError
from advscript.data.repositories.base import RepositoryBase
from advscript.data.script_codec import node_type_from_record
from advscript.domain.defs import NodeTypeDef, OwnerType
from advscript.domain.state import FeatureFlags


class NodeTypeRegistry(RepositoryBase[NodeTypeDef]):
    """Loads the node catalog once and answers lookups against it.

    The registry is plain data: it is built at startup and passed by
    reference to the validator and the interpreter.
    """

    def __init__(self, base_path: Path | str | None = None, filename: str = "node_types.json") -> None:
        super().__init__(filename, base_path)
        self._folded: Dict[str, NodeTypeDef] = {}
        self._by_suffix: Dict[str, List[NodeTypeDef]] = {}

    @classmethod
    def from_definitions(cls, definitions: Iterable[NodeTypeDef]) -> "NodeTypeRegistry":
        """Build a registry from in-memory definitions, checking the same invariants."""
        registry = cls()
        built: Dict[str, NodeTypeDef] = {}
        seen: set[str] = set()
        for definition in definitions:
            folded = definition.type_id.casefold()
            if folded in seen:
                raise DataValidationError(f"Duplicate node type id '{definition.type_id}'.")
            seen.add(folded)
            _check_invariants(definition)
            built[definition.type_id] = definition
        registry._install(built)
        return registry

    def _build(self, raw: dict[str, object]) -> Dict[str, NodeTypeDef]:
        definitions: Dict[str, NodeTypeDef] = {}
        seen: set[str] = set()
        for type_id, payload in raw.items():
            if not isinstance(type_id, str) or not type_id.strip():
                raise DataValidationError("Node type ids must be non-empty strings.")
            folded = type_id.casefold()
            if folded in seen:
                raise DataValidationError(f"Duplicate node type id '{type_id}'.")
            seen.add(folded)
            try:
                definition = node_type_from_record(type_id, payload)
            except ScriptLoadError as exc:
                raise DataValidationError(str(exc)) from exc
            _check_invariants(definition)
            definitions[type_id] = definition
        return definitions

    def _ensure_loaded(self) -> Dict[str, NodeTypeDef]:
        if self._definitions is None:
            self._install(self._build(self._load_raw()))
        assert self._definitions is not None
        return self._definitions

    def _install(self, definitions: Dict[str, NodeTypeDef]) -> None:
        self._definitions = definitions
        self._folded = {type_id.casefold(): definition for type_id, definition in definitions.items()}
        self._by_suffix = {}
        for type_id, definition in definitions.items():
            _, sep, suffix = type_id.partition("_")
            if sep:
                self._by_suffix.setdefault(suffix.casefold(), []).append(definition)

    def get_node_type(self, type_id: str | None) -> NodeTypeDef | None:
        """Return the definition for type_id, or None.

        Lookup ignores case. A bare name such as ``"ShowMessage"`` resolves to
        ``Action_ShowMessage`` when exactly one catalog entry ends with it.
        """
        if not isinstance(type_id, str) or not type_id.strip():
            return None
        self._ensure_loaded()
        folded = type_id.strip().casefold()
        definition = self._folded.get(folded)
        if definition is not None:
            return definition
        candidates = self._by_suffix.get(folded, [])
        if len(candidates) == 1:
            return candidates[0]
        return None

    def get_nodes_by_category(self, category: str) -> list[NodeTypeDef]:
        folded = category.casefold()
        return [definition for definition in self.all() if definition.category.casefold() == folded]

    def get_nodes_for_owner_type(
        self, owner_name: str, features: FeatureFlags | None = None
    ) -> list[NodeTypeDef]:
        """Return the definitions offered for an owner kind.

        Definitions gated behind a disabled feature are dropped. With no
        feature context nothing is filtered.
        """
        results = []
        for definition in self.all():
            if not definition.owner_types.matches(owner_name):
                continue
            if features is not None and not features.is_enabled(definition.required_feature):
                continue
            results.append(definition)
        return results


def _check_invariants(definition: NodeTypeDef) -> None:
    context = f"node type '{definition.type_id}'"
    if definition.owner_types == OwnerType.NONE:
        raise DataValidationError(f"{context} must name at least one owner type.")
    for direction, ports in (("input", definition.input_ports), ("output", definition.output_ports)):
        names = [port.name.casefold() for port in ports]
        if len(names) != len(set(names)):
            raise DataValidationError(f"{context} has duplicate {direction} port names.")
    if definition.category == "Event":
        exec_out = definition.find_output("Exec")
        if exec_out is None or not exec_out.is_execution:
            raise DataValidationError(f"{context} is an Event and needs an Execution output 'Exec'.")
    elif definition.category == "Action":
        if not definition.has_execution_input():
            raise DataValidationError(f"{context} is an Action and needs an Execution input.")
    elif definition.category == "Condition":
        true_port = definition.find_output("True")
        false_port = definition.find_output("False")
        has_exec_pair = (
            true_port is not None
            and false_port is not None
            and true_port.is_execution
            and false_port.is_execution
        )
        has_bool_output = any(
            not port.is_execution and port.data_type == "bool" for port in definition.output_ports
        )
        if not has_exec_pair and not has_bool_output:
            raise DataValidationError(
                f"{context} is a Condition and needs True/False outputs or a bool Data output."
            )
