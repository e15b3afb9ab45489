"""
Configuration - Environment-driven engine settings.

Environment variables:
    CARDTABLE_ENV                    development | production
    CARDTABLE_DATA_DIR               Root for JSON document files (unset: in-memory)
    CARDTABLE_LOG_LEVEL              Logging level name (default INFO)
    CARDTABLE_DETERMINISTIC_DEALING  Mirror the deck to the AI ("1"/"true")
    CARDTABLE_USER_NAME              Display name substituted for {{user}}
    ALLOWED_ORIGINS                  Comma-separated CORS origins
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import os

CARDTABLE_ENV = os.getenv("CARDTABLE_ENV", "development")
CARDTABLE_DATA_DIR = os.getenv("CARDTABLE_DATA_DIR", None)
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class EngineConfig:
    """
    Settings shared by every session created from one process.

    Usage:
        config = EngineConfig.from_env()
        manager = SessionManager(config=config)
    """
    env: str = "development"
    data_dir: str | None = None
    log_level: str = "INFO"
    deterministic_dealing: bool = False
    user_name: str = "Player"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> EngineConfig:
        return cls(
            env=CARDTABLE_ENV,
            data_dir=CARDTABLE_DATA_DIR,
            log_level=os.getenv("CARDTABLE_LOG_LEVEL", "INFO").upper(),
            deterministic_dealing=_env_flag("CARDTABLE_DETERMINISTIC_DEALING"),
            user_name=os.getenv("CARDTABLE_USER_NAME", "Player"),
            allowed_origins=ALLOWED_ORIGINS,
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def configure_logging(level: str | int = "INFO") -> None:
    """Install the root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.getLogger("cardtable").setLevel(level)
