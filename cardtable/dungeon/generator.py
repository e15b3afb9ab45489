"""
Map Generator - Procedural floor maps.

A floor is a layered DAG: rows of nodes, each edge going from row i to
row i + 1, ending in a single boss node. Guarantees:

1. Every node of a row has an edge to the next row, and every node of
   the next row has an incoming edge, so every start node reaches the boss.
2. Every start -> boss path contains at least one elite.
3. At most MAX_ELITES elites, unless fewer would break guarantee 2.

All randomness comes from one random.Random, so a seed reproduces a map.
"""

from __future__ import annotations
import logging
import math
import random
from typing import Any

from ..engine_core.state import NodeType

logger = logging.getLogger(__name__)

LAYER_HEIGHT = 800
MAP_WIDTH = 500
MAX_ELITES = 6

COMBAT_CHANCE = 0.55
MAX_ELITE_CHANCE = 0.35
SECOND_CONNECTION_CHANCE = 0.3
BIG_CHANCE = 0.05
SPECIAL_PROPERTY_CHANCE = 0.04
SPECIAL_PROPERTIES = ("Wealthy", "Cursed", "Blessed", "Volatile", "Ambush", "Trap", "Illusion")
SUPER_HIDDEN_CHANCE = 0.20
SUPER_HIDDEN_MIN_CONNECTIONS = 4
HIDDEN_CHANCE = 0.05

# (upper bound of roll, type) for non-combat nodes
NON_COMBAT_TABLE: tuple[tuple[float, NodeType], ...] = (
    (0.45, NodeType.EVENT),
    (0.65, NodeType.REST),
    (0.80, NodeType.SHOP),
    (0.95, NodeType.TREASURE),
)


def pick_node_type(row: int, total_rows: int, rng: random.Random) -> NodeType:
    """Combat nodes turn elite more often the higher the row."""
    if rng.random() < COMBAT_CHANCE:
        elite_chance = MAX_ELITE_CHANCE * (row / total_rows) if total_rows else 0.0
        if rng.random() < elite_chance:
            return NodeType.ELITE
        return NodeType.ENEMY

    roll = rng.random()
    for bound, node_type in NON_COMBAT_TABLE:
        if roll < bound:
            return node_type
    return NodeType.CARD_SHARP


def roll_properties(rng: random.Random) -> list[str]:
    properties = []
    if rng.random() < BIG_CHANCE:
        properties.append("big")
    roll = rng.random()
    for k, name in enumerate(SPECIAL_PROPERTIES):
        if roll < SPECIAL_PROPERTY_CHANCE * (k + 1):
            properties.append(name)
            break
    return properties


def generate_map_data(
    layer: int = 0,
    rows_per_layer: int = 8,
    max_parallel_paths: int = 5,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """
    Generate one floor.

    Args:
        layer: Floor index, used in node ids
        rows_per_layer: Rows before the boss row
        max_parallel_paths: Upper bound of nodes per row (at least 3)
        rng: Source of randomness

    Returns:
        A MapData-shaped dict (nodes, paths, secret_nodes, ...)
    """
    rng = rng or random.Random()
    rows = max(1, rows_per_layer)
    row_height = LAYER_HEIGHT / (rows + 2)

    nodes: list[dict[str, Any]] = []
    nodes_by_row: list[list[dict[str, Any]]] = []

    # 1. Regular rows
    for i in range(rows):
        count = rng.randint(3, max(3, max_parallel_paths))
        row_nodes = []
        for j in range(count):
            node = {
                "id": f"L{layer}-R{i}-N{j}",
                "row": i,
                "x": (MAP_WIDTH / (count + 1)) * (j + 1) + (rng.random() - 0.5) * 40,
                "y": LAYER_HEIGHT - (i + 1.5) * row_height + (rng.random() - 0.5) * 30,
                "type": pick_node_type(i, rows, rng).value,
                "connections": [],
                "properties": roll_properties(rng),
            }
            row_nodes.append(node)
            nodes.append(node)
        nodes_by_row.append(row_nodes)

    # 2. Boss row
    boss = {
        "id": f"L{layer}-BOSS",
        "row": rows,
        "x": MAP_WIDTH / 2,
        "y": row_height,
        "type": NodeType.BOSS.value,
        "connections": [],
        "properties": [],
    }
    nodes.append(boss)
    nodes_by_row.append([boss])

    # 3. Edges
    paths: list[dict[str, str]] = []
    for i in range(rows):
        _connect_rows(nodes_by_row[i], nodes_by_row[i + 1], paths, rng)

    # 4-5. Elites
    _ensure_elite_coverage(nodes, boss, rng)
    _cap_elites(nodes, boss, rng)

    return {
        "nodes": nodes,
        "paths": paths,
        "player_position": None,
        "path_taken": [],
        "mapLayer": layer,
        "bossDefeated": False,
        "secret_nodes": _place_secrets(nodes, layer, rng),
        "searched_nodes": [],
    }


def _connect_rows(
    current_row: list[dict[str, Any]],
    next_row: list[dict[str, Any]],
    paths: list[dict[str, str]],
    rng: random.Random,
) -> None:
    incoming: set[str] = set()

    def link(source: dict[str, Any], target: dict[str, Any]) -> None:
        if target["id"] not in source["connections"]:
            source["connections"].append(target["id"])
            paths.append({"from": source["id"], "to": target["id"]})
        incoming.add(target["id"])

    for node in current_row:
        nearest = sorted(next_row, key=lambda n: abs(n["x"] - node["x"]))
        wanted = 2 if rng.random() < SECOND_CONNECTION_CHANCE else 1
        for target in nearest[:wanted]:
            link(node, target)

    for target in next_row:
        if target["id"] not in incoming:
            source = min(current_row, key=lambda n: abs(n["x"] - target["x"]))
            link(source, target)


def _start_to_boss_paths(nodes: list[dict[str, Any]], boss: dict[str, Any]) -> list[list[str]]:
    """Every start -> boss path, as lists of node ids (depth-first)."""
    by_id = {n["id"]: n for n in nodes}
    found: list[list[str]] = []

    def dfs(node_id: str, trail: list[str]) -> None:
        trail = trail + [node_id]
        if node_id == boss["id"]:
            found.append(trail)
            return
        for next_id in by_id[node_id]["connections"]:
            dfs(next_id, trail)

    for node in nodes:
        if node["row"] == 0 and node is not boss:
            dfs(node["id"], [])
    return found


def _ensure_elite_coverage(
    nodes: list[dict[str, Any]], boss: dict[str, Any], rng: random.Random,
) -> None:
    by_id = {n["id"]: n for n in nodes}
    elite = NodeType.ELITE.value

    for path in _start_to_boss_paths(nodes, boss):
        path_nodes = [by_id[node_id] for node_id in path]
        # An earlier promotion may already cover this path
        if any(n["type"] == elite for n in path_nodes):
            continue
        candidates = [n for n in path_nodes if n["type"] == NodeType.ENEMY.value]
        if not candidates:
            candidates = [n for n in path_nodes if n is not boss]
        if not candidates:
            logger.warning("Path %s has no node that can hold an elite", path)
            continue
        rng.choice(candidates)["type"] = elite


def _boss_reachable_without_elite(nodes: list[dict[str, Any]], boss: dict[str, Any]) -> bool:
    by_id = {n["id"]: n for n in nodes}
    elite = NodeType.ELITE.value
    stack = [n["id"] for n in nodes if n["row"] == 0 and n is not boss and n["type"] != elite]
    seen = set(stack)
    while stack:
        node_id = stack.pop()
        if node_id == boss["id"]:
            return True
        for next_id in by_id[node_id]["connections"]:
            if next_id not in seen and by_id[next_id]["type"] != elite:
                seen.add(next_id)
                stack.append(next_id)
    return False


def _cap_elites(nodes: list[dict[str, Any]], boss: dict[str, Any], rng: random.Random) -> None:
    elites = [n for n in nodes if n["type"] == NodeType.ELITE.value]
    excess = len(elites) - MAX_ELITES
    if excess <= 0:
        return

    rng.shuffle(elites)
    for node in elites:
        if excess <= 0:
            break
        node["type"] = NodeType.ENEMY.value
        if _boss_reachable_without_elite(nodes, boss):
            node["type"] = NodeType.ELITE.value
            continue
        excess -= 1

    if excess > 0:
        logger.debug("Kept %d elites above the cap to preserve coverage", excess)


def _place_secrets(
    nodes: list[dict[str, Any]], layer: int, rng: random.Random,
) -> list[dict[str, Any]]:
    secrets = []
    for index, node in enumerate(nodes):
        secret_type = "super_hidden" if rng.random() < SUPER_HIDDEN_CHANCE else "hidden"
        if secret_type == "super_hidden":
            has_secret = len(node["connections"]) >= SUPER_HIDDEN_MIN_CONNECTIONS
        else:
            has_secret = rng.random() < HIDDEN_CHANCE
        if not has_secret:
            continue

        angle = rng.random() * 2 * math.pi
        distance = 60 + rng.random() * 20
        secrets.append({
            "id": f"L{layer}-S{index}",
            "attached_to_node_id": node["id"],
            "type": secret_type,
            "discovered": False,
            "x": node["x"] + math.cos(angle) * distance,
            "y": node["y"] + math.sin(angle) * distance,
        })
    return secrets
