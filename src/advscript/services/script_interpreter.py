"""Walks script graphs in response to game events."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping

from advscript.core.properties import CaseInsensitiveDict, is_blank
from advscript.core.rng import RNG
from advscript.core.types import PropertyValue
from advscript.data.repositories import NodeTypeRegistry
from advscript.domain.conversation import Continuation, ConversationState, ExecutionFrame
from advscript.domain.defs import ScriptDefinition, ScriptNode
from advscript.domain.state import WorldState
from advscript.services.errors import InterpreterError
from advscript.services.nodes import HANDLERS, DelayRequest, NodeContext, Outcome, SuspendRequest
from advscript.services.script_events import (
    ConversationEnded,
    ConversationStarted,
    ExecutionResult,
)

logger = logging.getLogger(__name__)

CONVERSATION_START = "Conversation_Start"

Params = Mapping[str, PropertyValue]


class _Unresolved(Exception):
    """A data pull reached a producer whose value is not known yet."""

    def __init__(self, node: ScriptNode, port: str, key: tuple[str, str]) -> None:
        super().__init__(f"{node.id}.{port}")
        self.node = node
        self.port = port
        self.key = key


class ScriptInterpreter:
    """Application service that runs script graphs against a world.

    Control flow uses an explicit frame stack. A frame either enters a node
    through one of its inputs or follows the control edges leaving one of its
    outputs. Handlers never recurse into the walk; nested triggers are queued
    and pushed above the caller's own continuation so they finish first.
    """

    def __init__(
        self,
        registry: NodeTypeRegistry,
        world: WorldState,
        *,
        rng: RNG | None = None,
        debug_mode: bool = False,
        max_steps: int | None = None,
    ) -> None:
        self.registry = registry
        self.world = world
        self.rng = rng or RNG()
        self.debug_mode = debug_mode
        self.max_steps = max_steps
        self._handlers = HANDLERS
        self._pending: List[ExecutionFrame] = []
        self._detached: Dict[str, ScriptDefinition] = {}
        self._steps = 0

    # -- public operations ---------------------------------------------------

    def trigger_event(
        self,
        owner_type: str,
        owner_id: str,
        event_type: str,
        params: Params | None = None,
    ) -> ExecutionResult:
        """Run every script of the owner that holds an event node of event_type."""
        self._begin()
        result = ExecutionResult()
        if self._choice_pending(f"{event_type} on {owner_type} '{owner_id}'"):
            return result
        frames = self._trigger_frames(self.world.scripts_for(owner_type, owner_id), event_type, params)
        if not frames:
            logger.debug("No script handles %s on %s '%s'", event_type, owner_type, owner_id)
            return result
        stack = list(reversed(frames))
        self._run(stack, result)
        self._settle_conversation(result)
        return result

    def execute_single_node(self, node: ScriptNode) -> ExecutionResult:
        """Run one node's effect on its own, with only its properties as inputs."""
        self._begin()
        result = ExecutionResult()
        node_type = self.registry.get_node_type(node.node_type)
        if node_type is None:
            logger.warning("Cannot execute unknown node type '%s'", node.node_type)
            return result
        entry = next((port.name for port in node_type.input_ports if port.is_execution), "Exec")
        detached = ScriptDefinition(
            owner_type="Game", owner_id=self.world.game_id, name="detached", nodes=[node]
        )
        self._detached[detached.id] = detached
        try:
            self._run([ExecutionFrame(detached.id, node.id, entry, entering=True)], result)
        finally:
            del self._detached[detached.id]
            kept = [item for item in self.world.continuations if item.script_id != detached.id]
            if len(kept) != len(self.world.continuations):
                self.world.continuations = kept
                result.suspended = False
        self._settle_conversation(result)
        return result

    def execute(
        self,
        script: ScriptDefinition,
        node: ScriptNode,
        port: str = "Exec",
        params: Params | None = None,
    ) -> ExecutionResult:
        """Follow the control edges leaving ``port`` of ``node``."""
        self._begin()
        result = ExecutionResult()
        if self._choice_pending(f"execution from '{node.id}'"):
            return result
        registered = self.world.find_script(script.id) is not None
        if not registered:
            self._detached[script.id] = script
        try:
            frame = ExecutionFrame(script.id, node.id, port, params=CaseInsensitiveDict(params or {}))
            self._run([frame], result)
        finally:
            if not registered:
                del self._detached[script.id]
        self._settle_conversation(result)
        return result

    def start_conversation(self, npc_id: str) -> ExecutionResult:
        """Enter the NPC's conversation graph at its Conversation_Start node."""
        self._begin()
        result = ExecutionResult()
        frame = self._open_conversation(result, npc_id)
        if frame is None:
            return result
        self._run([frame], result)
        self._settle_conversation(result)
        return result

    def select_option(self, index: int) -> ExecutionResult:
        """Resume the pending choice at the output of option ``index`` (0-based)."""
        continuation = self.world.pending_choice()
        if continuation is None:
            raise InterpreterError("No player choice is pending.")
        if not 0 <= index < len(continuation.options):
            raise InterpreterError(
                f"Option index {index} is invalid; {len(continuation.options)} options are offered."
            )
        option = continuation.options[index]
        if continuation.kind == "shop" and option.port.casefold() == "onclose":
            self._leave_shop()
        return self._resume(continuation, option.port)

    def close_shop(self) -> ExecutionResult:
        continuation = self.world.pending_choice()
        if continuation is None or continuation.kind != "shop":
            raise InterpreterError("No shop is open.")
        self._leave_shop()
        return self._resume(continuation, "OnClose")

    def end_conversation(self) -> ExecutionResult:
        result = ExecutionResult()
        self.finish_conversation(result)
        return result

    def advance_time(self, seconds: float) -> ExecutionResult:
        """Move the logical clock forward and resume every Delay that came due.

        Due delays resume once, oldest due time first. Delays created while
        resuming wait for the next call even when they are already due.
        While a choice is waiting for the player, due delays stay parked and
        resume on a later call.
        """
        if seconds < 0:
            raise InterpreterError("Time cannot move backwards.")
        self._begin()
        result = ExecutionResult()
        self.world.clock += seconds
        due = sorted(
            (
                item
                for item in self.world.continuations
                if item.kind == "delay" and item.due_at is not None and item.due_at <= self.world.clock
            ),
            key=lambda item: item.due_at or 0.0,
        )
        for continuation in due:
            if self.world.pending_choice() is not None:
                logger.debug("A choice is pending; remaining due delays stay parked")
                break
            if not any(item is continuation for item in self.world.continuations):
                continue
            self._remove_continuation(continuation)
            logger.debug("Resuming delay in script '%s' at node '%s'", continuation.script_id, continuation.node_id)
            self._run(list(continuation.frames), result)
        self._settle_conversation(result)
        return result

    # -- hooks used by node handlers -------------------------------------------

    def resolve_input(self, ctx: NodeContext, name: str, default: PropertyValue = None) -> PropertyValue:
        """Resolve a node input.

        Order: the producer wired into a Data input of that name, the node's
        own property, the property default, the port default, ``default``.
        A producer that is already being evaluated on this pull is skipped.
        """
        port = ctx.node_type.find_input(name)
        if port is not None and not port.is_execution:
            connection = ctx.script.connection_into(ctx.node.id, port.name)
            if connection is not None:
                key = (connection.from_node_id.casefold(), connection.from_port.casefold())
                producer = ctx.script.find_node(connection.from_node_id)
                if key in ctx.guard:
                    logger.debug("Cyclic data pull on %s.%s", connection.from_node_id, connection.from_port)
                elif producer is not None:
                    value = self._pull(ctx, producer, connection.from_port, key)
                    if value is not None:
                        return value
        value = ctx.node.properties.get(name)
        if not is_blank(value):
            return value
        prop_def = ctx.node_type.find_property(name)
        if prop_def is not None and prop_def.default_value is not None:
            return prop_def.default_value
        if port is not None and port.default_value is not None:
            return port.default_value
        return default

    def evaluate_output(
        self,
        script: ScriptDefinition,
        node: ScriptNode,
        port: str,
        params: CaseInsensitiveDict[PropertyValue],
        guard: frozenset[tuple[str, str]],
        result: ExecutionResult,
        pulled: Dict[tuple[str, str], PropertyValue] | None = None,
    ) -> PropertyValue:
        """Pull the value of a Data output; event nodes answer from the trigger params."""
        node_type = self.registry.get_node_type(node.node_type)
        if node_type is None:
            logger.debug("Data pull from unknown node type '%s'", node.node_type)
            return None
        if node_type.category == "Event":
            return params.get(port)
        handler = self._handlers.data_handlers.get(node_type.type_id.casefold())
        if handler is None:
            logger.debug("No data handler for '%s'", node_type.type_id)
            return None
        ctx = NodeContext(self, script, node, node_type, params, result, guard, pulled)
        return handler(ctx, port)

    def _pull(
        self, ctx: NodeContext, producer: ScriptNode, port: str, key: tuple[str, str]
    ) -> PropertyValue:
        """Value of ``producer.port`` for the consumer in ``ctx``.

        Inside a pull, a producer whose value is not known yet raises
        ``_Unresolved`` instead of recursing. The outermost pull evaluates that
        producer first and retries the consumer, so long producer chains never
        grow the Python stack. Each output is evaluated once per pull.
        """
        if ctx.pulled is not None:
            if key in ctx.pulled:
                return ctx.pulled[key]
            raise _Unresolved(producer, port, key)
        pulled: Dict[tuple[str, str], PropertyValue] = {}
        pending = [(producer, port, key, ctx.guard | {key})]
        while pending:
            node, out_port, node_key, guard = pending[-1]
            try:
                value = self.evaluate_output(ctx.script, node, out_port, ctx.params, guard, ctx.result, pulled)
            except _Unresolved as needed:
                pending.append((needed.node, needed.port, needed.key, guard | {needed.key}))
                continue
            pulled[node_key] = value
            pending.pop()
        return pulled[key]

    def queue_event(
        self, owner_type: str, owner_id: str, event_type: str, params: Params | None = None
    ) -> None:
        self._pending.extend(
            self._trigger_frames(self.world.scripts_for(owner_type, owner_id), event_type, params)
        )

    def queue_broadcast(
        self,
        event_type: str,
        params: Params | None = None,
        accept: Callable[[ScriptNode], bool] | None = None,
    ) -> None:
        self._pending.extend(self._trigger_frames(self.world.scripts, event_type, params, accept))

    def queue_conversation(self, result: ExecutionResult, npc_id: str) -> None:
        frame = self._open_conversation(result, npc_id)
        if frame is not None:
            self._pending.append(frame)

    def finish_conversation(self, result: ExecutionResult) -> None:
        """Drop the active conversation and any choice still waiting in it."""
        conversation = self.world.active_conversation
        if conversation is None:
            return
        self.world.active_conversation = None
        self.world.continuations = [
            item
            for item in self.world.continuations
            if not (
                item.kind in ("choice", "shop")
                and item.script_id.casefold() == conversation.script_id.casefold()
            )
        ]
        result.events.append(ConversationEnded(npc_id=conversation.npc_id))

    def debug(self, result: ExecutionResult, message: str) -> None:
        logger.debug("%s", message)
        if self.debug_mode:
            result.messages.append(f"[Debug] {message}")

    # -- traversal ---------------------------------------------------------------

    def _begin(self) -> None:
        self._steps = 0
        self._pending = []

    def _run(self, stack: List[ExecutionFrame], result: ExecutionResult) -> None:
        while stack:
            frame = stack.pop()
            script = self._script(frame.script_id)
            if script is None:
                logger.warning("Script '%s' is no longer loaded; frame dropped", frame.script_id)
                continue
            if not frame.entering:
                self._follow(stack, script, frame)
                continue
            self._steps += 1
            if self.max_steps is not None and self._steps > self.max_steps:
                logger.warning("Step budget of %d exhausted in script '%s'", self.max_steps, script.id)
                self.debug(result, f"step budget of {self.max_steps} exhausted")
                stack.clear()
                return
            self._enter(stack, script, frame, result)

    def _follow(self, stack: List[ExecutionFrame], script: ScriptDefinition, frame: ExecutionFrame) -> None:
        targets = []
        for connection in script.connections_from(frame.node_id, frame.port):
            if not connection.is_control_edge(self.registry, script):
                logger.debug("Skipping non-control edge %s from %s.%s", connection.id, frame.node_id, frame.port)
                continue
            targets.append(
                ExecutionFrame(
                    script.id, connection.to_node_id, connection.to_port, entering=True, params=frame.params
                )
            )
        # Reversed so the first connection runs first.
        stack.extend(reversed(targets))

    def _enter(
        self,
        stack: List[ExecutionFrame],
        script: ScriptDefinition,
        frame: ExecutionFrame,
        result: ExecutionResult,
    ) -> None:
        node = script.find_node(frame.node_id)
        if node is None:
            return
        node_type = self.registry.get_node_type(node.node_type)
        if node_type is None:
            logger.warning("Unknown node type '%s' in script '%s'; path stopped", node.node_type, script.id)
            return
        handler = self._handlers.exec_handlers.get(node_type.type_id.casefold())
        if handler is None:
            logger.warning("No handler for node type '%s'; path stopped", node_type.type_id)
            return
        logger.debug("Enter %s (%s) in script '%s'", node_type.type_id, node.id, script.id)
        self._pending = []
        outcome = handler(NodeContext(self, script, node, node_type, frame.params, result))
        nested, self._pending = self._pending, []
        if node_type.category == "Dialogue":
            self._record_visit(script, node)
        self._apply_outcome(stack, script, node, frame, outcome, result)
        stack.extend(reversed(nested))

    def _apply_outcome(
        self,
        stack: List[ExecutionFrame],
        script: ScriptDefinition,
        node: ScriptNode,
        frame: ExecutionFrame,
        outcome: Outcome,
        result: ExecutionResult,
    ) -> None:
        if outcome is None:
            return
        if isinstance(outcome, DelayRequest):
            self._park_delay(script, node, frame, outcome)
            return
        if isinstance(outcome, SuspendRequest):
            self._suspend(stack, script, node, frame, outcome, result)
            return
        ports = [outcome] if isinstance(outcome, str) else list(outcome)
        stack.extend(
            reversed([ExecutionFrame(script.id, node.id, port, params=frame.params) for port in ports])
        )

    def _park_delay(
        self, script: ScriptDefinition, node: ScriptNode, frame: ExecutionFrame, request: DelayRequest
    ) -> None:
        params = frame.params.copy()
        continuation = Continuation(
            kind="delay",
            script_id=script.id,
            node_id=node.id,
            frames=[ExecutionFrame(script.id, node.id, request.port, params=params)],
            due_at=self.world.clock + request.seconds,
            params=params,
        )
        self.world.continuations.append(continuation)
        logger.debug("Delay parked until %.2f in script '%s'", continuation.due_at, script.id)

    def _suspend(
        self,
        stack: List[ExecutionFrame],
        script: ScriptDefinition,
        node: ScriptNode,
        frame: ExecutionFrame,
        request: SuspendRequest,
        result: ExecutionResult,
    ) -> None:
        if self.world.pending_choice() is not None:
            logger.warning("A choice is already pending; %s at node '%s' dropped", request.kind, node.id)
            self.debug(result, f"{request.kind} at '{node.id}' dropped; a choice is already pending")
            return
        options = list(request.options)
        self.world.continuations.append(
            Continuation(
                kind=request.kind,  # type: ignore[arg-type]
                script_id=script.id,
                node_id=node.id,
                frames=list(stack),
                options=options,
                params=frame.params.copy(),
            )
        )
        stack.clear()
        conversation = self.world.active_conversation
        if conversation is not None:
            conversation.current_options = list(options)
        result.suspended = True
        result.options.append(options)

    def _resume(self, continuation: Continuation, port: str) -> ExecutionResult:
        self._begin()
        result = ExecutionResult()
        self._remove_continuation(continuation)
        if self.world.active_conversation is not None:
            self.world.active_conversation.current_options = []
        stack = list(continuation.frames)
        stack.append(ExecutionFrame(continuation.script_id, continuation.node_id, port, params=continuation.params))
        self._run(stack, result)
        self._settle_conversation(result)
        return result

    # -- triggers and conversations ------------------------------------------------

    def _trigger_frames(
        self,
        scripts: List[ScriptDefinition],
        event_type: str,
        params: Params | None,
        accept: Callable[[ScriptNode], bool] | None = None,
    ) -> List[ExecutionFrame]:
        target = self._type_key(event_type)
        frames = []
        for script in scripts:
            for node in script.nodes:
                if self._type_key(node.node_type) != target:
                    continue
                if accept is not None and not accept(node):
                    continue
                frames.append(
                    ExecutionFrame(script.id, node.id, "Exec", params=CaseInsensitiveDict(params or {}))
                )
                break
        return frames

    def _type_key(self, type_id: str) -> str:
        definition = self.registry.get_node_type(type_id)
        if definition is not None:
            return definition.type_id.casefold()
        return type_id.strip().casefold()

    def _open_conversation(self, result: ExecutionResult, npc_id: str) -> ExecutionFrame | None:
        if self.world.active_conversation is not None:
            logger.warning(
                "Conversation with '%s' is active; request for '%s' rejected",
                self.world.active_conversation.npc_id,
                npc_id,
            )
            return None
        if self._choice_pending(f"conversation with '{npc_id}'"):
            return None
        npc = self.world.npcs.get(npc_id)
        if npc is None:
            logger.warning("Cannot talk to unknown npc '%s'", npc_id)
            return None
        target = CONVERSATION_START.casefold()
        for script in self.world.scripts_for("Npc", npc.id):
            for node in script.nodes:
                if self._type_key(node.node_type) != target:
                    continue
                self.world.active_conversation = ConversationState(
                    npc_id=npc.id,
                    script_id=script.id,
                    current_node_id=node.id,
                    visited_node_ids=[node.id],
                )
                result.events.append(ConversationStarted(npc_id=npc.id))
                return ExecutionFrame(script.id, node.id, "Exec")
        logger.warning("Npc '%s' has no conversation script", npc.id)
        return None

    def _record_visit(self, script: ScriptDefinition, node: ScriptNode) -> None:
        conversation = self.world.active_conversation
        if conversation is None or conversation.script_id.casefold() != script.id.casefold():
            return
        conversation.current_node_id = node.id
        if not conversation.has_visited(node.id):
            conversation.visited_node_ids.append(node.id)

    def _choice_pending(self, what: str) -> bool:
        """Reject new walks while the player still has to answer a choice."""
        continuation = self.world.pending_choice()
        if continuation is None:
            return False
        logger.warning("A choice is pending at node '%s'; %s rejected", continuation.node_id, what)
        return True

    def _settle_conversation(self, result: ExecutionResult) -> None:
        # A conversation with nothing left to ask or wait for ends by itself.
        conversation = self.world.active_conversation
        if conversation is None or self.world.pending_choice() is not None:
            return
        folded = conversation.script_id.casefold()
        if any(item.kind == "delay" and item.script_id.casefold() == folded for item in self.world.continuations):
            return
        self.finish_conversation(result)

    def _leave_shop(self) -> None:
        if self.world.active_conversation is not None:
            self.world.active_conversation.in_shop = False

    def _remove_continuation(self, continuation: Continuation) -> None:
        self.world.continuations = [item for item in self.world.continuations if item is not continuation]

    def _script(self, script_id: str) -> ScriptDefinition | None:
        return self.world.find_script(script_id) or self._detached.get(script_id)
