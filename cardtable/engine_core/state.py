"""
Game State - Typed records for every persisted table document.

Design principles:
- One record class per document key (DOCUMENT_KEY)
- Defaults for every field, so a missing or blank document is valid
- Extra fields preserved: the AI may attach freeform data
- Serialized with the wire names the AI sees (isNew, mapLayer, ...)

Handlers never see raw JSON; the repository validates and defaults
at the store boundary.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer


class Visibility(str, Enum):
    """Who may see a card's face."""
    PUBLIC = "public"
    OWNER = "owner"
    HIDDEN = "hidden"


class NodeType(str, Enum):
    """Map node types."""
    ENEMY = "enemy"
    ELITE = "elite"
    REST = "rest"
    SHOP = "shop"
    BOSS = "boss"
    EVENT = "event"
    TREASURE = "treasure"
    CARD_SHARP = "card-sharp"
    ANGEL = "angel"
    DEVIL = "devil"


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Cards
# =============================================================================

class Card(_Record):
    """
    A physical card.

    visibility is unset while the card sits in the deck and is
    assigned when it is dealt. is_new marks cards the presentation
    layer has not animated yet; the marker is left out of dumps once
    it is cleared.
    """
    suit: str = ""
    rank: str = ""
    is_special: bool = False
    name: str | None = None
    visibility: Visibility | None = None
    is_new: bool = Field(default=False, alias="isNew")

    @model_serializer(mode="wrap")
    def _strip_cleared_marker(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if not self.is_new:
            data.pop("isNew", None)
            data.pop("is_new", None)
        return data

    @property
    def label(self) -> str:
        """Compact suit+rank form, as shown to the AI."""
        return f"{self.suit}{self.rank}"


# =============================================================================
# Player / enemies
# =============================================================================

class PlayerData(_Record):
    """The human player's public status."""
    DOCUMENT_KEY: ClassVar[str] = "sp_player_data"

    name: str = "{{user}}"
    health: int = 0
    max_health: int = 0
    chips: int = 0
    claimable_pot: int = 0
    inventory: list[dict[str, Any]] = Field(default_factory=list)
    status_effects: list[dict[str, Any]] = Field(default_factory=list)


class Enemy(_Record):
    """An opponent at the table. name is unique within EnemyData."""
    name: str
    chips: int = 0
    hand: list[Card] = Field(default_factory=list)
    play_style: str = "Unknown"
    health: int | None = None
    max_health: int | None = None


class EnemyData(_Record):
    DOCUMENT_KEY: ClassVar[str] = "sp_enemy_data"

    enemies: list[Enemy] = Field(default_factory=list)

    def find(self, name: str) -> Enemy | None:
        for enemy in self.enemies:
            if enemy.name == name:
                return enemy
        return None


class PlayerCards(_Record):
    DOCUMENT_KEY: ClassVar[str] = "sp_player_cards"

    current_hand: list[Card] = Field(default_factory=list)


# =============================================================================
# Table state
# =============================================================================

class DealAction(_Record):
    """One entry of a deal request: who gets how many cards, face how."""
    target: str
    count: int = 0
    name: str | None = None
    visibility: Visibility | None = None


class GameState(_Record):
    """
    Public state of the current hand.

    unprocessed_deal_actions / last_deal_animation_queue form the
    two-phase handoff between AI deal requests and presentation.
    """
    DOCUMENT_KEY: ClassVar[str] = "sp_game_state"

    game_type: str | None = None
    players: list[str] = Field(default_factory=list)
    current_turn: str | None = None
    pot_amount: int = 0
    board_cards: list[Card] = Field(default_factory=list)
    last_bet_amount: int = 0
    custom_wagers: list[dict[str, Any]] = Field(default_factory=list)
    unprocessed_deal_actions: list[DealAction] | None = None
    last_deal_animation_queue: list[DealAction] | None = None

    @property
    def is_active(self) -> bool:
        return bool(self.game_type or self.players)


class PrivateData(_Record):
    """Hidden from the AI; the source of truth for dealing."""
    DOCUMENT_KEY: ClassVar[str] = "sp_private_data"

    deck: list[Card] = Field(default_factory=list)


class VisibleDeck(_Record):
    """Deck mirror exposed to the AI in deterministic dealing mode."""
    DOCUMENT_KEY: ClassVar[str] = "sp_visible_deck"

    deck: str | None = None
    comment: str | None = None


# =============================================================================
# Map
# =============================================================================

class MapNode(_Record):
    id: str
    row: int = 0
    x: float = 0.0
    y: float = 0.0
    type: str = NodeType.ENEMY.value
    connections: list[str] = Field(default_factory=list)
    properties: list[str] = Field(default_factory=list)


class MapPath(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")


class SecretNode(_Record):
    id: str
    attached_to_node_id: str
    type: str = "hidden"
    discovered: bool = False
    x: float = 0.0
    y: float = 0.0


class MapData(_Record):
    DOCUMENT_KEY: ClassVar[str] = "sp_map_data"

    nodes: list[MapNode] = Field(default_factory=list)
    paths: list[MapPath] = Field(default_factory=list)
    player_position: str | None = None
    path_taken: list[str] = Field(default_factory=list)
    secret_nodes: list[SecretNode] = Field(default_factory=list)
    searched_nodes: list[str] = Field(default_factory=list)
    map_layer: int = Field(default=0, alias="mapLayer")
    boss_defeated: bool = Field(default=False, alias="bossDefeated")
    is_saved: bool = False

    @property
    def has_nodes(self) -> bool:
        return len(self.nodes) > 0

    def get_node(self, node_id: str | None) -> MapNode | None:
        if node_id is None:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def progress_percent(self, node: MapNode) -> int | None:
        """How far up the floor a node sits, ignoring the boss row."""
        rows = [n.row for n in self.nodes if n.type != NodeType.BOSS.value]
        total_rows = max(rows) if rows else 0
        if total_rows <= 0:
            return None
        return round(node.row / total_rows * 100)


# =============================================================================
# Meta progression
# =============================================================================

class MetaData(_Record):
    """Cross-run progression."""
    DOCUMENT_KEY: ClassVar[str] = "sp_meta_data"

    legacy_shards: int = 0
    unlocked_legends: list[str] = Field(default_factory=list)
    unlocked_talents: list[str] = Field(default_factory=list)


DOCUMENT_TYPES: tuple[type[_Record], ...] = (
    EnemyData,
    PlayerCards,
    PlayerData,
    MapData,
    GameState,
    PrivateData,
    MetaData,
    VisibleDeck,
)

DOCUMENT_KEYS: tuple[str, ...] = tuple(t.DOCUMENT_KEY for t in DOCUMENT_TYPES)
