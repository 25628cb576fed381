"""
Общие фикстуры сессий.
"""
import pytest

from helpers import ALICE, BOB, FakeHost, build_session
from tictactoe.game import GameSession


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def make_session(host):
    """Фабрика сессий; started=True — оба игрока уже вошли (alice — индекс 0)."""

    async def _make(first: int = 0, started: bool = True) -> GameSession:
        session = build_session(host, first)
        await session.initialize()
        if started:
            await session.on_player_join(ALICE)
            await session.on_player_join(BOB)
        host.calls.clear()
        return session

    return _make
