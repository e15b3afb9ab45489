"""
Session Context - Everything one table session owns.

Replaces process-wide mutable state: the repository, the outbound
collaborators (notifier, prompt sink), the history, the random source,
and the transient flags (mode, hint, view, staged actions, snapshot)
all hang off one SessionContext that is passed explicitly.

Collaborators are interfaces only. The recording implementations here
queue what they receive so a host (or a test) can drain it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
import random
from typing import Any, Protocol

from ..config import EngineConfig
from ..store import GameDataRepository, GameDocuments, GameMode
from .history import GameHistory

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class View(str, Enum):
    """Which screen the host should show."""
    MODE_SELECTION = "mode-selection"
    DIFFICULTY = "difficulty"
    MAP = "map"
    GAME_UI = "game-ui"


class Notifier(Protocol):
    def notify(self, level: NoticeLevel, message: str, title: str | None = None) -> None:
        ...


class PromptSink(Protocol):
    async def submit_prompt(self, text: str) -> None:
        ...


@dataclass
class Notification:
    level: NoticeLevel
    message: str
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level.value, "message": self.message, "title": self.title}


class RecordingNotifier:
    """Queues notifications until drained."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, level: NoticeLevel, message: str, title: str | None = None) -> None:
        logger.debug("notify[%s] %s", NoticeLevel(level).value, message)
        self.notifications.append(Notification(NoticeLevel(level), message, title))

    def drain(self) -> list[Notification]:
        drained, self.notifications = self.notifications, []
        return drained


class QueuedPromptSink:
    """Queues outbound prompts until drained."""

    def __init__(self):
        self.prompts: list[str] = []

    async def submit_prompt(self, text: str) -> None:
        logger.debug("prompt submitted (%d chars)", len(text))
        self.prompts.append(text)

    def drain(self) -> list[str]:
        drained, self.prompts = self.prompts, []
        return drained


@dataclass
class SessionContext:
    """
    Per-session state and collaborators.

    snapshot is a disposable view of the documents, rebuilt by
    refresh() after every committing operation. Handlers never write
    it back; they re-read inside repository updates.
    """
    repo: GameDataRepository
    config: EngineConfig = field(default_factory=EngineConfig)
    notifier: Notifier = field(default_factory=RecordingNotifier)
    prompts: PromptSink = field(default_factory=QueuedPromptSink)
    history: GameHistory = field(default_factory=GameHistory)
    rng: random.Random = field(default_factory=random.Random)

    # Mode / run
    game_mode: GameMode | None = None
    is_mode_selected: bool = False
    run_in_progress: bool = False
    has_game_book: bool = False

    # Transient flags
    hint: str | None = None
    active_view: View = View.MODE_SELECTION
    deterministic_dealing: bool = False
    selected_map_node: str | None = None
    staged_actions: list[Any] = field(default_factory=list)

    snapshot: GameDocuments | None = None

    def __post_init__(self):
        self.deterministic_dealing = self.config.deterministic_dealing

    @property
    def user_name(self) -> str:
        return self.config.user_name

    def is_user(self, name: Any) -> bool:
        """The human may be addressed as {{user}}, by configured name, or by stored name."""
        if not isinstance(name, str):
            return False
        if name in ("{{user}}", self.config.user_name):
            return True
        if self.snapshot is not None and name == self.snapshot.player.name:
            return True
        return False

    def notify(self, level: NoticeLevel, message: str, title: str | None = None) -> None:
        self.notifier.notify(level, message, title)

    async def submit_prompt(self, text: str) -> None:
        await self.prompts.submit_prompt(text)

    async def refresh(self) -> GameDocuments | None:
        """
        Rebuild the snapshot from the store and re-derive the run state.

        A map with nodes means a roguelike run, in progress while the
        player lives. A selected origin mode is always in progress.
        """
        self.has_game_book = await self.repo.has_book()
        if not self.has_game_book:
            self.snapshot = None
            self.is_mode_selected = False
            self.game_mode = None
            self.run_in_progress = False
            return None

        docs = await self.repo.load_all()
        self.snapshot = docs

        if docs.map.has_nodes:
            self.game_mode = GameMode.ROGUELIKE
            self.is_mode_selected = True
            self.run_in_progress = docs.player.health > 0
        elif self.is_mode_selected and self.game_mode is GameMode.ORIGIN:
            self.run_in_progress = True
        else:
            self.run_in_progress = False

        logger.debug(
            "refreshed session: mode=%s run_in_progress=%s",
            self.game_mode.value if self.game_mode else None, self.run_in_progress,
        )
        return docs

    async def current(self) -> GameDocuments:
        """The snapshot, loading it first if it was never built."""
        if self.snapshot is None:
            await self.refresh()
        if self.snapshot is None:
            return await self.repo.load_all()
        return self.snapshot

    def state_summary(self) -> dict[str, Any]:
        return {
            "game_mode": self.game_mode.value if self.game_mode else None,
            "is_mode_selected": self.is_mode_selected,
            "run_in_progress": self.run_in_progress,
            "has_game_book": self.has_game_book,
            "hint": self.hint,
            "active_view": self.active_view.value,
            "deterministic_dealing": self.deterministic_dealing,
            "selected_map_node": self.selected_map_node,
        }
