"""
Session Manager - Creates and manages table sessions.

LIFECYCLE:
1. Host creates a session -> fresh context over its own document store
2. Player selects a mode -> game book created from templates
3. During play:
   - AI output is fed to process_ai_output()
   - Player actions are staged, then committed as one prompt
   - Deals queued by the AI are processed, then cleaned up
4. Host deletes the session -> in-memory state dropped

PERSISTENCE RULES:
- Only the game book is persisted (JSON files when a data dir is set)
- Staged actions, history, hint and view are session-scoped only
- Sessions never share a store
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import logging
import random
import time
import uuid

from ..config import EngineConfig
from ..engine_core.command import CommandResult
from ..engine_core.state import PrivateData, VisibleDeck
from ..errors import SessionNotFoundError
from ..handlers import (
    CommandDispatcher,
    EntityMutationHandler,
    GameLifecycleHandler,
    ItemHandler,
    MapMutationHandler,
    MetaProgression,
)
from ..store import DocumentStore, GameDataRepository, InMemoryStore, JsonFileStore
from .context import SessionContext
from .dealing import DealPipeline, update_visible_deck
from .run_manager import RunManager
from .staging import StagingPipeline

logger = logging.getLogger(__name__)


@dataclass
class TableSession:
    """
    One table: a context plus everything that acts on it.

    Contains:
    - The session context (repository, flags, history, outbound queues)
    - The deal, staging and run pipelines
    - The command handlers and their dispatcher
    """
    session_id: str
    ctx: SessionContext
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        ctx = self.ctx
        self.dealer = DealPipeline(ctx)
        self.runs = RunManager(ctx)
        self.staging = StagingPipeline(ctx, self.dealer, self.runs)
        self.meta = MetaProgression(ctx)

        self.game = GameLifecycleHandler(ctx, self.dealer, self.runs)
        self.entities = EntityMutationHandler(ctx, self.runs, self.meta)
        self.map = MapMutationHandler(ctx)
        self.items = ItemHandler(ctx)
        self.dispatcher = CommandDispatcher(ctx, [self.game, self.entities, self.map, self.items])

    @property
    def repo(self) -> GameDataRepository:
        return self.ctx.repo

    async def process_ai_output(self, text: str) -> list[CommandResult]:
        return await self.dispatcher.process_text(text)

    async def toggle_visible_deck(self, enabled: bool) -> None:
        """Switch deterministic dealing; mirror or blank the visible deck to match."""
        self.ctx.deterministic_dealing = enabled
        logger.info("Deterministic dealing %s", "enabled" if enabled else "disabled")
        if enabled:
            private = await self.repo.get(PrivateData)
            await update_visible_deck(self.ctx, private.deck)
        else:
            await self.repo.replace(VisibleDeck, {})
        await self.ctx.refresh()

    async def state(self) -> dict[str, Any]:
        """Documents visible to the host plus the session flags and staging overlay."""
        docs = await self.ctx.current()
        return {
            "session_id": self.session_id,
            "session": self.ctx.state_summary(),
            "documents": docs.to_json(),
            "staged_actions": [a.to_dict() for a in self.staging.staged],
            "display_chips": self.staging.display_chips(),
            "history": self.ctx.history.to_list(),
        }


class SessionManager:
    """
    Manages table sessions.

    Responsibilities:
    - Create sessions, each with its own document store
    - Track active sessions
    - Drop sessions on request

    With config.data_dir set, each session's game book is a directory of
    JSON files named after the session; otherwise it lives in memory.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self._sessions: dict[str, TableSession] = {}

    def _new_store(self, session_id: str) -> DocumentStore:
        if self.config.data_dir:
            return JsonFileStore(root=Path(self.config.data_dir), book=session_id)
        return InMemoryStore()

    async def create_session(
        self,
        store: DocumentStore | None = None,
        seed: int | None = None,
    ) -> TableSession:
        """
        Create a new table session.

        Args:
            store: Backing store (default: per config)
            seed: Seed for shuffles and map generation

        Returns:
            New TableSession, refreshed against its store
        """
        session_id = str(uuid.uuid4())
        ctx = SessionContext(
            repo=GameDataRepository(store or self._new_store(session_id)),
            config=self.config,
            rng=random.Random(seed),
        )
        session = TableSession(session_id=session_id, ctx=ctx)
        await ctx.refresh()

        self._sessions[session_id] = session
        logger.info("Created session %s", session_id)
        return session

    def get_session(self, session_id: str) -> TableSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def end_session(self, session_id: str) -> None:
        """Drop a session. Its persisted game book, if any, is left on disk."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.ctx.staged_actions.clear()
        session.ctx.history.clear()
        logger.info("Ended session %s", session_id)

    def list_sessions(self) -> list[str]:
        return list(self._sessions)
