"""
Pytest fixtures for Card Table tests.
"""

import random

import pytest

from ..config import EngineConfig
from ..engine_core.deck import create_deck
from ..engine_core.state import GameState, PrivateData
from ..session.manager import SessionManager, TableSession
from ..store import GameDataRepository, InMemoryStore

START_HAND = (
    '[Game:Start, data:{"game_type": "Texas Hold\'em", "players": ["{{user}}", "Bandit"], '
    '"initial_state": {"chips": 800, "play_style": "Aggressive"}}]'
)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repo(store: InMemoryStore) -> GameDataRepository:
    return GameDataRepository(store)


@pytest.fixture
def manager() -> SessionManager:
    return SessionManager(config=EngineConfig(user_name="Tester"))


@pytest.fixture
async def session(manager: SessionManager) -> TableSession:
    """A session with a roguelike book and no run yet."""
    session = await manager.create_session(seed=42)
    await session.runs.select_game_mode("roguelike")
    return session


@pytest.fixture
async def run_session(session: TableSession) -> TableSession:
    """A roguelike run in progress (normal difficulty)."""
    await session.runs.start_new_run("normal")
    return session


@pytest.fixture
async def table(run_session: TableSession) -> TableSession:
    """A run with a hand started against Bandit."""
    await run_session.process_ai_output(START_HAND)
    run_session.ctx.notifier.drain()
    run_session.ctx.prompts.drain()
    return run_session


async def set_deck(session: TableSession, size: int) -> None:
    """Replace the deck with the first `size` cards of an unshuffled deck."""
    await session.repo.replace(PrivateData, PrivateData(deck=create_deck()[:size]))


async def game_state(session: TableSession) -> GameState:
    return await session.repo.get(GameState)
