"""
Context block: the machine-readable table summary appended to prompts.

    <context>
    game_type: Texas Hold'em
    current_turn: Bandit
    ...
    </context>
"""

from __future__ import annotations
from typing import Any

from ..store import GameDocuments, GameMode


def context_lines(
    docs: GameDocuments,
    game_mode: GameMode | None,
    user_name: str = "{{user}}",
    extra: dict[str, Any] | None = None,
) -> list[str]:
    lines: list[str] = []
    state = docs.game_state

    if state.game_type:
        lines.append(f"game_type: {state.game_type}")
        current = state.current_turn or user_name
        lines.append(f"current_turn: {current}")
        if current in state.players:
            next_index = (state.players.index(current) + 1) % len(state.players)
            lines.append(f"next_turn: {state.players[next_index]}")
        lines.append(f"pot_amount: {state.pot_amount}")
        lines.append(f"board_cards: {', '.join(card.label for card in state.board_cards)}")

    lines.append(f"player_chips: {docs.player.chips}")

    for index, enemy in enumerate(docs.enemies.enemies):
        lines.append(f"enemy_{index}_name: {enemy.name}")
        lines.append(f"enemy_{index}_chips: {enemy.chips}")

    if game_mode is GameMode.ROGUELIKE and docs.map.has_nodes:
        lines.append(f"map_floor: {docs.map.map_layer + 1}")
        node = docs.map.get_node(docs.map.player_position)
        if node is not None:
            lines.append(f"map_node_type: {node.type}")
            if node.properties:
                quoted = ", ".join(f'"{p}"' for p in node.properties)
                lines.append(f"room_properties: [{quoted}]")
            progress = docs.map.progress_percent(node)
            if progress is not None:
                lines.append(f"map_progress: {progress}%")

    for key, value in (extra or {}).items():
        lines.append(f"{key}: {value}")
    return lines


def compose_context_block(
    docs: GameDocuments,
    game_mode: GameMode | None,
    user_name: str = "{{user}}",
    extra: dict[str, Any] | None = None,
) -> str:
    lines = context_lines(docs, game_mode, user_name, extra)
    if not lines:
        return ""
    return "\n<context>\n" + "\n".join(lines) + "\n</context>"
