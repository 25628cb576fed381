"""
Реестр игровых сессий (in-memory): подбор лобби, доставка событий,
сохранение и восстановление незавершённых партий.
События одной сессии обрабатываются строго по очереди.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable

from .constants import LEAVE_SESSION_ID
from .game import EventType, GameEvent, GameSession, Phase
from .host import GameUser, HostError, MessagingHost
from .storage import BundleStore

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        host: MessagingHost,
        store: BundleStore | None = None,
        session_factory: Callable[[MessagingHost], GameSession] = GameSession,
    ):
        self.host = host
        self.store = store
        self._factory = session_factory
        self._sessions: dict[str, GameSession] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._lobby_lock = asyncio.Lock()

    def get(self, channel_id: str) -> GameSession | None:
        return self._sessions.get(channel_id)

    def all(self) -> list[GameSession]:
        return list(self._sessions.values())

    def list_sessions(self) -> list[dict[str, Any]]:
        return [
            {
                "channel_id": s.channel_id,
                "phase": s.phase.value,
                "players": [p.to_dict() for p in s.state.players],
            }
            for s in self._sessions.values()
        ]

    def open_lobby(self) -> GameSession | None:
        """Первая сессия, которая ещё ждёт игроков."""
        for s in self._sessions.values():
            if s.phase == Phase.LOBBY:
                return s
        return None

    async def create(self) -> GameSession:
        session = self._factory(self.host)
        await session.initialize()
        self._sessions[session.channel_id] = session
        return session

    async def join(self, user: GameUser, channel_id: str | None = None) -> GameSession | None:
        """
        Присоединить к указанной сессии или к открытому лобби (создав его при необходимости).
        Повторный вход участника игнорируется.
        """
        if channel_id:
            session = self.get(channel_id)
            if not session:
                return None
            if not session.is_member(user.id):
                await self.dispatch(channel_id, GameEvent(EventType.JOIN, user))
            return session
        # выбор лобби и вход — под одним замком, иначе двое «третьих» попадут в уже начатую партию
        async with self._lobby_lock:
            session = self.open_lobby() or await self.create()
            if not session.is_member(user.id):
                await self.dispatch(session.channel_id, GameEvent(EventType.JOIN, user))
        return session

    async def leave(self, user: GameUser, channel_id: str) -> None:
        await self.dispatch(channel_id, GameEvent(EventType.LEAVE, user))

    async def leave_all(self, user: GameUser) -> None:
        """Выйти из всех сессий пользователя (обрыв соединения)."""
        for session in self.all():
            if not session.is_member(user.id):
                continue
            try:
                await self.leave(user, session.channel_id)
            except HostError as e:
                logger.exception("Registry: leave %s from %s failed: %s", user.id, session.channel_id, e)

    async def click(self, user: GameUser, channel_id: str, button_id: str) -> None:
        if button_id == LEAVE_SESSION_ID:
            await self.leave(user, channel_id)
            return
        await self.dispatch(channel_id, GameEvent(EventType.BUTTON_CLICK, user, button_id))

    async def dispatch(self, channel_id: str, event: GameEvent) -> None:
        session = self.get(channel_id)
        if not session:
            logger.info("Registry: event %s for unknown session %s", event.type.value, channel_id)
            return
        try:
            async with self._locks[channel_id]:
                await session.on_event(event)
        finally:
            # пустую завершённую сессию отпускаем и после сбоя площадки
            if session.phase == Phase.STALE and not session.state.players:
                await self.release(channel_id)

    async def release(self, channel_id: str) -> None:
        """Отпустить сессию: незавершённую сохранить, завершённую забыть."""
        session = self._sessions.pop(channel_id, None)
        self._locks.pop(channel_id, None)
        if not session:
            return
        await session.cancel_pending()
        bundle = session.destroy()
        if self.store:
            if bundle:
                self.store.save(bundle)
            else:
                self.store.delete(channel_id)
        logger.info("Registry: released session %s (persisted=%s)", channel_id, bool(bundle and self.store))

    async def restore(self) -> int:
        if not self.store:
            return 0
        restored = 0
        for bundle in self.store.load_all():
            session = self._factory(self.host)
            await session.initialize(bundle)
            self._sessions[session.channel_id] = session
            restored += 1
        logger.info("Registry: restored %s sessions", restored)
        return restored

    async def shutdown(self) -> None:
        for channel_id in list(self._sessions):
            await self.release(channel_id)
