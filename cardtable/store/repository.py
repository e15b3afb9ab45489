"""
Game Data Repository - Typed access to the game book.

Every read validates the stored JSON into its record class (missing or
malformed documents become the record's defaults). Every update is a
single read-modify-write on one document: the mutator receives a fresh
record built from the store's current content, never a cached one.

A mutator that leaves its record invalid raises pydantic's
ValidationError and nothing is written.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from ..engine_core.state import (
    EnemyData,
    GameState,
    MapData,
    MetaData,
    PlayerCards,
    PlayerData,
    PrivateData,
    VisibleDeck,
)
from .base import Document, DocumentStore
from .templates import GameMode, book_for_mode

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


def dump_record(record: BaseModel) -> Document:
    return record.model_dump(mode="json", by_alias=True, warnings=False)


@dataclass
class GameDocuments:
    """All documents of a book, as read in one pass."""
    player: PlayerData
    enemies: EnemyData
    player_cards: PlayerCards
    game_state: GameState
    private: PrivateData
    visible_deck: VisibleDeck
    map: MapData
    meta: MetaData

    def to_json(self) -> dict[str, Any]:
        return {
            PlayerData.DOCUMENT_KEY: dump_record(self.player),
            EnemyData.DOCUMENT_KEY: dump_record(self.enemies),
            PlayerCards.DOCUMENT_KEY: dump_record(self.player_cards),
            GameState.DOCUMENT_KEY: dump_record(self.game_state),
            VisibleDeck.DOCUMENT_KEY: dump_record(self.visible_deck),
            MapData.DOCUMENT_KEY: dump_record(self.map),
            MetaData.DOCUMENT_KEY: dump_record(self.meta),
        }


class GameDataRepository:
    """
    Typed facade over a DocumentStore.

    Usage:
        repo = GameDataRepository(InMemoryStore())
        await repo.create_book(GameMode.ROGUELIKE)
        await repo.update(PlayerData, lambda p: setattr(p, "chips", 500))
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def has_book(self) -> bool:
        return await self.store.has_book()

    async def create_book(self, mode: GameMode | str = GameMode.ROGUELIKE) -> None:
        logger.info("Creating game book for mode %s", GameMode(mode).value)
        await self.store.create_book(book_for_mode(mode))

    async def get(self, record_type: type[R]) -> R:
        raw = await self.store.get(record_type.DOCUMENT_KEY)
        return self._validate(record_type, raw or {})

    async def update(self, record_type: type[R], fn: Callable[[R], R | None]) -> R:
        """
        Atomically read, mutate, and write one document.

        Raises:
            ValidationError: the mutated record is invalid (nothing written)
        """
        holder: list[R] = []

        def apply(document: Document) -> Document:
            record = self._validate(record_type, document)
            result = fn(record)
            if result is not None:
                record = result
            # Re-validate: handlers assign fields without validation
            checked = record_type.model_validate(dump_record(record))
            holder.append(checked)
            return dump_record(checked)

        await self.store.update(record_type.DOCUMENT_KEY, apply)
        return holder[0]

    async def replace(self, record_type: type[BaseModel], record: BaseModel | Document) -> None:
        """Overwrite a document. A plain dict is written as-is (e.g. {} to clear)."""
        document = dump_record(record) if isinstance(record, BaseModel) else dict(record)
        await self.store.replace(record_type.DOCUMENT_KEY, document)

    async def load_all(self) -> GameDocuments:
        return GameDocuments(
            player=await self.get(PlayerData),
            enemies=await self.get(EnemyData),
            player_cards=await self.get(PlayerCards),
            game_state=await self.get(GameState),
            private=await self.get(PrivateData),
            visible_deck=await self.get(VisibleDeck),
            map=await self.get(MapData),
            meta=await self.get(MetaData),
        )

    @staticmethod
    def _validate(record_type: type[R], document: Document) -> R:
        try:
            return record_type.model_validate(document)
        except ValidationError as e:
            logger.warning(
                "Document %s is malformed, using defaults: %s",
                record_type.DOCUMENT_KEY, e,
            )
            return record_type()
