"""
Dungeon - Procedural floor maps for roguelike runs.
"""

from .generator import generate_map_data, MAX_ELITES

__all__ = ["generate_map_data", "MAX_ELITES"]
