"""
Player-facing game history: a bounded, newest-first event log.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

MAX_HISTORY = 100


class HistoryType(Enum):
    BET = "bet"
    DEAL = "deal"
    EVENT = "event"
    MAP = "map"
    GAME = "game"


@dataclass
class HistoryEntry:
    type: HistoryType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "timestamp": self.timestamp, **self.data}


class GameHistory:
    """
    Newest entry first; the oldest entry is dropped past MAX_HISTORY.
    """

    def __init__(self, limit: int = MAX_HISTORY):
        self.limit = limit
        self._entries: list[HistoryEntry] = []

    def _add(self, entry_type: HistoryType, **data: Any) -> HistoryEntry:
        entry = HistoryEntry(
            type=entry_type,
            data=data,
            timestamp=datetime.now().strftime("%H:%M"),
        )
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        return entry

    def add_action(self, actor: str, action: str, **details: Any) -> HistoryEntry:
        return self._add(HistoryType.BET, actor=actor, action=action, **details)

    def add_deal(self, target: str, count: int, visibility: str | None = None, **details: Any) -> HistoryEntry:
        return self._add(HistoryType.DEAL, target=target, count=count, visibility=visibility, **details)

    def add_event(self, text: str) -> HistoryEntry:
        return self._add(HistoryType.EVENT, text=text)

    def add_map(self, destination: str, **details: Any) -> HistoryEntry:
        return self._add(HistoryType.MAP, destination=destination, **details)

    def add_game_status(self, text: str) -> HistoryEntry:
        return self._add(HistoryType.GAME, text=text)

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def to_list(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
