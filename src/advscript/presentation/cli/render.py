"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
from typing import Iterable, List, Sequence

from advscript.domain.conversation import DialogueOption
from advscript.domain.state import WorldState
from advscript.services import (
    AdventureCompleted,
    CombatEnded,
    CombatRequested,
    ConversationEnded,
    ConversationStarted,
    ExecutionResult,
    MusicChanged,
    PlayerDied,
    PlayerTeleported,
    ScriptEvent,
    ShopOpened,
    SoundRequested,
    TradeClosed,
    TradeRequested,
    ValidationResult,
)


def debug_enabled() -> bool:
    """Return True only when ADVSCRIPT_DEBUG is explicitly set to '1'."""
    return os.getenv("ADVSCRIPT_DEBUG") == "1"


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")


def describe_event(event: ScriptEvent) -> str:
    if isinstance(event, CombatRequested):
        return f"Combat requested against '{event.npc_id}'."
    if isinstance(event, CombatEnded):
        return "Combat ended in victory." if event.victory else "Combat ended in defeat."
    if isinstance(event, TradeRequested):
        return f"Trade opened with '{event.npc_id}'."
    if isinstance(event, TradeClosed):
        return "Trade closed."
    if isinstance(event, ConversationStarted):
        return f"Conversation with '{event.npc_id}' started."
    if isinstance(event, ConversationEnded):
        return f"Conversation with '{event.npc_id}' ended."
    if isinstance(event, ShopOpened):
        return f"{event.title} is open."
    if isinstance(event, PlayerTeleported):
        return f"You are now in '{event.room_id}'."
    if isinstance(event, SoundRequested):
        return f"Sound '{event.sound_id}' plays."
    if isinstance(event, MusicChanged):
        return f"Music in '{event.room_id}' is now '{event.music_id or 'silence'}'."
    if isinstance(event, PlayerDied):
        return "You have died."
    if isinstance(event, AdventureCompleted):
        return "The adventure is complete!"
    return str(event)


def format_result_lines(result: ExecutionResult) -> List[str]:
    """Flatten an execution result into printable lines, messages first."""
    lines = list(result.messages)
    for line in result.dialogue:
        if debug_enabled() and line.emotion != "Neutral":
            lines.append(f'{line.speaker} ({line.emotion}): "{line.text}"')
        else:
            lines.append(f'{line.speaker}: "{line.text}"')
    lines.extend(describe_event(event) for event in result.events)
    return lines


def render_result(result: ExecutionResult) -> None:
    lines = format_result_lines(result)
    if not lines:
        print("Nothing happens.")
        return
    render_bullet_lines(lines)


def render_options(options: Sequence[DialogueOption]) -> None:
    """Display numbered dialogue options."""
    if not options:
        return
    render_heading("Choices")
    for option in options:
        label = f"{option.text} [{option.port}]" if debug_enabled() else option.text
        print(f"{option.index + 1}. {label}")


def format_validation_lines(name: str, result: ValidationResult) -> List[str]:
    status = "valid" if result.is_valid else "INVALID"
    lines = [f"{name}: {status}"]
    lines.extend(f"  {message}" for message in result.errors)
    lines.extend(f"  {message}" for message in result.warnings)
    return lines


def format_state_lines(world: WorldState) -> List[str]:
    player = world.player
    room = world.rooms.get(world.current_room_id) if world.current_room_id else None
    lines = [
        f"Time {world.game_hour:02d}:{world.game_minute:02d} (clock {world.clock:g}s), weather {world.weather}",
        f"Room: {room.name if room is not None else '-'}",
        f"Health {player.health}/{player.max_health}, money {player.money}",
        f"Inventory: {', '.join(player.inventory) or 'empty'}",
    ]
    flags = [name for name, value in world.flags.items() if value]
    if flags:
        lines.append(f"Flags: {', '.join(flags)}")
    if world.counters:
        lines.append("Counters: " + ", ".join(f"{name}={value}" for name, value in world.counters.items()))
    for quest_id, progress in world.quest_states.items():
        quest = world.quests.get(quest_id)
        lines.append(f"Quest {quest.name if quest is not None else quest_id}: {progress.status}")
    delays = [item for item in world.continuations if item.kind == "delay"]
    if delays:
        lines.append(f"Pending delays: {len(delays)}")
    return lines
