"""
Session Module - Per-session state and the player-side pipelines.

A session is one table: its game book, transient flags, history and
outbound queues. Nothing here is process-global; TableSession and
SessionManager (in .manager) bundle a context with its handlers.
"""

from .context import (
    Notification,
    NoticeLevel,
    QueuedPromptSink,
    RecordingNotifier,
    SessionContext,
    View,
)
from .history import GameHistory, HistoryEntry, HistoryType
from .dealing import DealPipeline
from .run_manager import DIFFICULTIES, RunManager
from .staging import ActionType, StagedAction, StagingPipeline

__all__ = [
    "Notification",
    "NoticeLevel",
    "QueuedPromptSink",
    "RecordingNotifier",
    "SessionContext",
    "View",
    "GameHistory",
    "HistoryEntry",
    "HistoryType",
    "DealPipeline",
    "DIFFICULTIES",
    "RunManager",
    "ActionType",
    "StagedAction",
    "StagingPipeline",
]
