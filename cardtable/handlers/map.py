"""
Map Mutation Handler - Map:Modify, plus the player's map moves.

Map:Modify picks exactly one node by filter and priority and changes
one field on it:

    [Map:Modify, data:{
        "target_filter": {"type": ["shop"], "scope": "reachable",
                          "selection_priority": {"row": "closest", "density": "densest"}},
        "modification": {"field": "type", "value": "event"},
        "effect_description": "The shop ahead collapses into rubble."}]
"""

from __future__ import annotations
import logging
import random
from typing import Any

from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.state import MapData, MapNode, PlayerData
from ..session.context import NoticeLevel, View
from .base import CommandHandler, HandlerFn

logger = logging.getLogger(__name__)

SEARCH_COST = 200


def _axis_key(priority: str | None, value: int, rng: random.Random, ascending: str, descending: str) -> float:
    if priority == ascending:
        return value
    if priority == descending:
        return -value
    if priority == "random":
        return rng.random()
    return 0


def select_target_node(
    map_data: MapData,
    target_filter: dict[str, Any],
    rng: random.Random,
) -> MapNode | None:
    """
    The node a Map:Modify filter selects, or None.

    Candidates match the type filter and are neither visited nor the
    current node; scope narrows them; selection_priority orders them
    by row, then by connection count.
    """
    types = target_filter.get("type")
    types = types if isinstance(types, list) else [types]
    visited = set(map_data.path_taken)
    position = map_data.player_position

    candidates = [
        node for node in map_data.nodes
        if node.type in types and node.id not in visited and node.id != position
    ]

    current = map_data.get_node(position)
    reachable = set(current.connections) if current else set()
    scope = target_filter.get("scope", "any_unvisited")
    if scope == "reachable":
        candidates = [n for n in candidates if n.id in reachable]
    elif scope == "future":
        candidates = [n for n in candidates if n.id not in reachable]
    elif scope != "any_unvisited":
        logger.warning("Unknown scope %r, using any_unvisited", scope)

    if not candidates:
        return None

    priority = target_filter.get("selection_priority") or {}
    row_priority = priority.get("row")
    density_priority = priority.get("density")
    candidates.sort(key=lambda n: (
        _axis_key(row_priority, n.row, rng, "closest", "furthest"),
        _axis_key(density_priority, len(n.connections), rng, "sparsest", "densest"),
    ))
    return candidates[0]


class MapMutationHandler(CommandHandler):
    """
    Map:Modify from the AI, and travel / search / save from the player.
    """

    def handlers(self) -> dict[CommandKind, HandlerFn]:
        return {CommandKind.MAP_MODIFY: self.modify}

    async def modify(self, command: Command) -> CommandResult:
        target_filter = command.data.get("target_filter")
        modification = command.data.get("modification")
        effect_description = command.data.get("effect_description")
        if not isinstance(target_filter, dict) or not isinstance(modification, dict) or not effect_description:
            logger.error("Invalid Map:Modify: missing required fields: %r", command.data)
            return CommandResult.failure("Map:Modify needs target_filter, modification and effect_description")

        field_name = modification.get("field")
        value = modification.get("value")
        applied: dict[str, str] = {}

        def change_node(map_data: MapData) -> None:
            if not map_data.has_nodes:
                logger.warning("Cannot modify map, no map data")
                return
            node = select_target_node(map_data, target_filter, self.ctx.rng)
            if node is None:
                logger.info("Map:Modify found no candidate node")
                return
            if field_name not in MapNode.model_fields and field_name not in (node.model_extra or {}):
                logger.warning("Node %s has no field %r to modify", node.id, field_name)
                return
            logger.info("Modifying node %s: %s %r -> %r", node.id, field_name, getattr(node, field_name), value)
            setattr(node, field_name, value)
            applied["node"] = node.id

        await self.ctx.repo.update(MapData, change_node)

        if not applied:
            return CommandResult.failure("No node matched Map:Modify", ErrorCode.VALIDATION_FAILURE)

        self.ctx.notify(NoticeLevel.SUCCESS, effect_description, "The map changes!")
        await self.ctx.refresh()
        return CommandResult.ok(f"{applied['node']}.{field_name} = {value}")

    async def travel_to_node(self, node_id: str, node_type: str | None = None) -> CommandResult:
        if not node_id:
            return CommandResult.failure("No destination")

        found: dict[str, bool] = {}

        def move(map_data: MapData) -> None:
            found["node"] = map_data.get_node(node_id) is not None
            if not found["node"]:
                return
            map_data.player_position = node_id
            if node_id not in map_data.path_taken:
                map_data.path_taken.append(node_id)

        map_data = await self.ctx.repo.update(MapData, move)
        if not found["node"]:
            logger.warning("Travel to unknown node %r", node_id)
            return CommandResult.failure(f"Unknown node: {node_id}")

        node = map_data.get_node(node_id)
        node_type = node_type or node.type
        logger.info("Player traveling to node %s (%s)", node_id, node_type)
        self.ctx.history.add_map(destination=node_type, node_id=node_id)
        self.ctx.selected_map_node = None

        player = await self.ctx.repo.get(PlayerData)
        lines = [
            f"map_floor: {map_data.map_layer + 1}",
            f"map_node_type: {node_type}",
            f"map_node_id: {node.id}",
        ]
        if node.properties:
            quoted = ", ".join(f'"{p}"' for p in node.properties)
            lines.append(f"room_properties: [{quoted}]")
        progress = map_data.progress_percent(node)
        if progress is not None:
            lines.append(f"map_progress: {progress}%")
        lines.append(f"player_health: {player.health}")
        lines.append(f"player_chips: {player.chips}")

        block = "\n<context>\n" + "\n".join(lines) + "\n</context>"
        await self.ctx.submit_prompt(f"({{{{user}}}} moved to a {node_type} node.){block}")

        self.ctx.active_view = View.GAME_UI
        await self.ctx.refresh()
        return CommandResult.ok(f"moved to {node_id}")

    async def find_secret_room(self) -> CommandResult:
        player = await self.ctx.repo.get(PlayerData)
        if player.chips < SEARCH_COST:
            self.ctx.notify(NoticeLevel.WARNING, f"Not enough chips: searching costs {SEARCH_COST}.")
            return CommandResult.failure("Not enough chips to search", ErrorCode.RESOURCE_EXHAUSTED)

        map_data = await self.ctx.repo.get(MapData)
        position = map_data.player_position
        if not position:
            logger.warning("Cannot search for a secret room, player position unknown")
            return CommandResult.failure("Player position unknown")
        if position in map_data.searched_nodes:
            self.ctx.notify(NoticeLevel.INFO, "You have already searched this room.")
            return CommandResult.failure("Room already searched")

        def pay(p: PlayerData) -> None:
            p.chips -= SEARCH_COST

        await self.ctx.repo.update(PlayerData, pay)
        self.ctx.notify(NoticeLevel.INFO, f"Spent {SEARCH_COST} chips searching...")

        discovered: dict[str, str] = {}

        def search(m: MapData) -> None:
            if position not in m.searched_nodes:
                m.searched_nodes.append(position)
            for secret in m.secret_nodes:
                if secret.attached_to_node_id == position and not secret.discovered:
                    secret.discovered = True
                    discovered["type"] = secret.type
                    discovered["id"] = secret.id
                    break

        await self.ctx.repo.update(MapData, search)

        if discovered:
            logger.info("Secret room found: %s", discovered["id"])
            prompt = (
                "(System: {{user}} found a hidden door in this room! Generate an "
                f"encounter or reward fitting the discovered room type ({discovered['type']}).)"
            )
        else:
            logger.info("No secret room at %s", position)
            prompt = "(System: {{user}} searched the room carefully but found nothing.)"

        await self.ctx.submit_prompt(prompt)
        await self.ctx.refresh()
        return CommandResult.ok(f"secret found: {discovered['id']}" if discovered else "nothing found")

    async def save_map_data(self) -> CommandResult:
        await self.ctx.repo.update(MapData, lambda m: setattr(m, "is_saved", True))
        self.ctx.notify(NoticeLevel.SUCCESS, "The current map layout has been saved.")
        await self.ctx.refresh()
        return CommandResult.ok("map saved")
