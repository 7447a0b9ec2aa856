"""Handler tables and the context object passed to node handlers.

Every node kind maps to a plain function. Execution handlers receive a
``NodeContext`` and return the output port(s) to continue from, or a
request to park the walk. Data handlers receive the context and the name of
the output being pulled and return a value.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Sequence, Tuple, Union

from advscript.core.properties import CaseInsensitiveDict
from advscript.core.rng import RNG
from advscript.core.types import PropertyValue
from advscript.domain.conversation import DialogueOption
from advscript.domain.defs import NodeTypeDef, ScriptDefinition, ScriptNode
from advscript.domain.state import WorldState
from advscript.services.script_events import ExecutionResult, ScriptEvent
from advscript.services.values import to_bool, to_float, to_int, to_text

if TYPE_CHECKING:
    from advscript.services.script_interpreter import ScriptInterpreter


@dataclass(frozen=True, slots=True)
class DelayRequest:
    """Park the current path for ``seconds`` of game time, then follow ``port``."""

    seconds: float
    port: str = "Exec"


@dataclass(frozen=True, slots=True)
class SuspendRequest:
    """Park the whole walk until the host picks one of ``options``."""

    kind: str
    options: Tuple[DialogueOption, ...] = ()


Outcome = Union[None, str, Sequence[str], DelayRequest, SuspendRequest]
ExecHandler = Callable[["NodeContext"], Outcome]
DataHandler = Callable[["NodeContext", str], PropertyValue]


class HandlerTable:
    """Per-type-id lookup of execution and data handlers."""

    def __init__(self) -> None:
        self.exec_handlers: Dict[str, ExecHandler] = {}
        self.data_handlers: Dict[str, DataHandler] = {}

    def action(self, *type_ids: str) -> Callable[[ExecHandler], ExecHandler]:
        def decorator(func: ExecHandler) -> ExecHandler:
            for type_id in type_ids:
                self._add(self.exec_handlers, type_id, func)
            return func

        return decorator

    def condition(
        self, *type_ids: str
    ) -> Callable[[Callable[["NodeContext"], bool]], Callable[["NodeContext"], bool]]:
        """Register a bool test that routes to the True or False output."""

        def decorator(
            func: Callable[["NodeContext"], bool]
        ) -> Callable[["NodeContext"], bool]:
            def route(ctx: "NodeContext") -> Outcome:
                passed = bool(func(ctx))
                ctx.debug(f"{ctx.node.node_type} -> {passed}")
                return "True" if passed else "False"

            for type_id in type_ids:
                self._add(self.exec_handlers, type_id, route)
            return func

        return decorator

    def data(self, *type_ids: str) -> Callable[[DataHandler], DataHandler]:
        def decorator(func: DataHandler) -> DataHandler:
            for type_id in type_ids:
                self._add(self.data_handlers, type_id, func)
            return func

        return decorator

    def update(self, other: "HandlerTable") -> None:
        for type_id, handler in other.exec_handlers.items():
            self._add(self.exec_handlers, type_id, handler)
        for type_id, data_handler in other.data_handlers.items():
            self._add(self.data_handlers, type_id, data_handler)

    @staticmethod
    def _add(table: Dict[str, Callable], type_id: str, func: Callable) -> None:
        key = type_id.casefold()
        if key in table:
            raise ValueError(f"Handler for '{type_id}' registered twice.")
        table[key] = func


class NodeContext:
    """What a handler may see and do while one node runs."""

    __slots__ = (
        "interpreter",
        "script",
        "node",
        "node_type",
        "params",
        "result",
        "guard",
        "pulled",
    )

    def __init__(
        self,
        interpreter: "ScriptInterpreter",
        script: ScriptDefinition,
        node: ScriptNode,
        node_type: NodeTypeDef,
        params: CaseInsensitiveDict[PropertyValue],
        result: ExecutionResult,
        guard: frozenset[tuple[str, str]] = frozenset(),
        pulled: Dict[tuple[str, str], PropertyValue] | None = None,
    ) -> None:
        self.interpreter = interpreter
        self.script = script
        self.node = node
        self.node_type = node_type
        self.params = params
        self.result = result
        self.guard = guard
        self.pulled = pulled

    @property
    def world(self) -> WorldState:
        return self.interpreter.world

    @property
    def rng(self) -> RNG:
        return self.interpreter.rng

    # -- inputs ---------------------------------------------------------

    def value(self, name: str, default: PropertyValue = None) -> PropertyValue:
        """Resolve an input: connected producer, then property, then defaults."""
        return self.interpreter.resolve_input(self, name, default)

    def text(self, name: str, default: str = "") -> str:
        value = self.value(name)
        return default if value is None else to_text(value)

    def integer(self, name: str, default: int = 0) -> int:
        return to_int(self.value(name), default)

    def number(self, name: str, default: float = 0.0) -> float:
        return to_float(self.value(name), default)

    def flag(self, name: str, default: bool = False) -> bool:
        return to_bool(self.value(name), default)

    def connected(self, port: str) -> bool:
        return bool(self.script.connections_from(self.node.id, port))

    # -- effects ----------------------------------------------------------

    def say(self, message: str) -> None:
        self.result.messages.append(message)

    def emit(self, event: ScriptEvent) -> None:
        self.result.events.append(event)

    def debug(self, message: str) -> None:
        self.interpreter.debug(self.result, message)

    def fire(
        self,
        owner_type: str,
        owner_id: str,
        event_type: str,
        params: dict[str, PropertyValue] | None = None,
    ) -> None:
        """Queue a nested trigger; it runs to completion before this path continues."""
        self.interpreter.queue_event(owner_type, owner_id, event_type, params)

    def broadcast(
        self,
        event_type: str,
        params: dict[str, PropertyValue] | None = None,
        accept: Callable[[ScriptNode], bool] | None = None,
    ) -> None:
        """Queue a nested trigger on every script holding the event node."""
        self.interpreter.queue_broadcast(event_type, params, accept)


def merge_tables(tables: Iterable[HandlerTable]) -> HandlerTable:
    merged = HandlerTable()
    for table in tables:
        merged.update(table)
    return merged
