"""Flow-control nodes and conversation entry points."""
from __future__ import annotations

from advscript.core.types import PropertyValue
from advscript.services.nodes.base import DelayRequest, HandlerTable, NodeContext, Outcome
from advscript.services.values import to_float

table = HandlerTable()


@table.action("Flow_Branch")
def branch(ctx: NodeContext) -> Outcome:
    return "True" if ctx.flag("Condition") else "False"


@table.action("Flow_Sequence")
def sequence(ctx: NodeContext) -> Outcome:
    # Declared order; the interpreter finishes each branch before the next.
    return [port.name for port in ctx.node_type.execution_outputs()]


@table.action("Flow_Delay")
def delay(ctx: NodeContext) -> Outcome:
    seconds = max(0.0, ctx.number("Seconds", 1.0))
    ctx.debug(f"delay {seconds:g}s")
    return DelayRequest(seconds=seconds)


@table.action("Flow_RandomBranch")
def random_branch(ctx: NodeContext) -> Outcome:
    """Pick one connected output, weighted by the optional Weights list."""
    ports = [port.name for port in ctx.node_type.execution_outputs()]
    weights = parse_weights(ctx.text("Weights"), len(ports))
    weights = [weight if ctx.connected(port) else 0.0 for port, weight in zip(ports, weights)]
    if not any(weights):
        return None
    return ports[ctx.rng.weighted_index(weights)]


@table.action("Conversation_Start")
def conversation_start(ctx: NodeContext) -> Outcome:
    return "Exec"


@table.data("Select_Int")
def select_int(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.integer("A") if ctx.flag("Condition") else ctx.integer("B")


@table.data("Select_Bool")
def select_bool(ctx: NodeContext, port: str) -> PropertyValue:
    return ctx.flag("A") if ctx.flag("Condition") else ctx.flag("B")


def parse_weights(raw: str, count: int) -> list[float]:
    """Parse "3, 1, 1" into one non-negative weight per output; gaps weigh 1."""
    weights = [1.0] * count
    if not raw.strip():
        return weights
    for index, part in enumerate(raw.split(",")[:count]):
        weights[index] = max(0.0, to_float(part, 1.0))
    return weights
