"""Console host that loads a world and drives its scripts."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Sequence

from advscript.data.errors import DataError
from advscript.data.paths import get_demo_world_path
from advscript.data.repositories import NodeTypeRegistry
from advscript.data.world_loader import load_world
from advscript.domain.state import WorldState
from advscript.presentation.cli.config import load_config
from advscript.presentation.cli.render import (
    debug_enabled,
    format_state_lines,
    format_validation_lines,
    render_bullet_lines,
    render_heading,
    render_menu,
    render_options,
    render_result,
)
from advscript.services import ExecutionResult, ScriptInterpreter, ScriptValidator

MenuAction = Literal["validate", "fire", "talk", "time", "state", "quit"]

_MENU: Sequence[tuple[MenuAction, str]] = (
    ("validate", "Validate scripts"),
    ("fire", "Fire an event"),
    ("talk", "Talk to someone"),
    ("time", "Advance time"),
    ("state", "Show state"),
    ("quit", "Quit"),
)
_GAME_START = "Event_OnGameStart"


def main(argv: Sequence[str] | None = None) -> None:
    """Start the interactive CLI session."""
    config = load_config()
    logging.basicConfig(level=config["log_level"], format="%(levelname)s %(name)s: %(message)s")
    world_path = Path(argv[0]) if argv else get_demo_world_path()
    registry = NodeTypeRegistry()
    try:
        world = load_world(world_path)
    except DataError as exc:
        print(f"Could not load world: {exc}")
        return
    interpreter = ScriptInterpreter(
        registry,
        world,
        debug_mode=config["debug_mode"] or debug_enabled(),
        max_steps=config["max_steps"],
    )
    validator = ScriptValidator(registry)
    print(f"=== {world.title or world.game_id} ===")
    _show(interpreter, interpreter.trigger_event("Game", world.game_id, _GAME_START))

    while True:
        action = _main_menu_loop()
        if action == "quit":
            break
        if action == "validate":
            render_heading("Validation")
            for line in validation_report(validator, world):
                print(line)
        elif action == "fire":
            _fire_event(interpreter, world)
        elif action == "talk":
            _talk(interpreter, world)
        elif action == "time":
            seconds = parse_seconds(input("Seconds to advance: "))
            if seconds is None:
                print("Please enter a non-negative number.")
                continue
            _show(interpreter, interpreter.advance_time(seconds))
        elif action == "state":
            render_heading("State")
            render_bullet_lines(format_state_lines(world))
    print("Goodbye!")


def _main_menu_loop() -> MenuAction:
    while True:
        render_menu("Main Menu", [label for _, label in _MENU])
        choice = input("Select an option: ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(_MENU):
            return _MENU[int(choice) - 1][0]
        print(f"Invalid selection. Please enter 1 to {len(_MENU)}.")


def validation_report(validator: ScriptValidator, world: WorldState) -> List[str]:
    """Validate every event-driven script; conversation graphs are listed but not checked."""
    lines: List[str] = []
    for script in world.scripts:
        name = f"{script.name} ({script.owner_type}/{script.owner_id})"
        if any(node.node_type.casefold() == "conversation_start" for node in script.nodes):
            lines.append(f"{name}: conversation")
            continue
        lines.extend(format_validation_lines(name, validator.validate(script)))
    return lines


def parse_seconds(raw: str) -> float | None:
    try:
        seconds = float(raw.strip())
    except ValueError:
        return None
    if seconds < 0 or seconds != seconds:
        return None
    return seconds


def _fire_event(interpreter: ScriptInterpreter, world: WorldState) -> None:
    owner_type = input("Owner type (default Game): ").strip() or "Game"
    default_id = world.game_id if owner_type.casefold() == "game" else ""
    owner_id = input(f"Owner id{f' (default {default_id})' if default_id else ''}: ").strip() or default_id
    event_type = input("Event type (e.g. OnEnter): ").strip()
    if not owner_id or not event_type:
        print("Owner id and event type are required.")
        return
    _show(interpreter, interpreter.trigger_event(owner_type, owner_id, event_type))


def _talk(interpreter: ScriptInterpreter, world: WorldState) -> None:
    npcs = [npc for npc in world.npcs.values() if npc.visible and not npc.is_corpse]
    here = [npc for npc in npcs if world.current_room_id and npc.room_id == world.current_room_id]
    candidates = here or npcs
    if not candidates:
        print("Nobody to talk to.")
        return
    render_menu("Talk to", [npc.name or npc.id for npc in candidates])
    index = _prompt_choice(len(candidates))
    _show(interpreter, interpreter.start_conversation(candidates[index].id))


def _show(interpreter: ScriptInterpreter, result: ExecutionResult) -> None:
    """Render a result and keep prompting while a choice is pending."""
    while True:
        render_result(result)
        if result.adventure_completed:
            print("*** Congratulations, you finished the adventure! ***")
        pending = interpreter.world.pending_choice()
        if pending is None:
            return
        render_options(pending.options)
        result = interpreter.select_option(_prompt_choice(len(pending.options)))


def _prompt_choice(choice_count: int) -> int:
    while True:
        raw = input("Select an option: ").strip()
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= index < choice_count:
            return index
        print(f"Please enter a value between 1 and {choice_count}.")
