"""
Обработка сообщений WebSocket: hello, join_game, leave_game, button_click.
Игровая логика — в game.GameSession, доставка событий — через реестр.
"""
import json
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .config import get_config
from .host import GameUser, HostError
from .sessions import SessionRegistry
from .storage import BundleStore
from .ws_manager import manager

logger = logging.getLogger(__name__)


def _make_store() -> BundleStore | None:
    save_dir = get_config().save_dir
    return BundleStore(save_dir) if save_dir else None


registry = SessionRegistry(manager, store=_make_store())


async def handle_ws_message(raw: str, user: GameUser, registry: SessionRegistry = registry) -> bool:
    """
    Обрабатывает одно сообщение от уже представившегося клиента.
    Возвращает False если соединение нужно закрыть.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", user.id, e)
        return True
    if not isinstance(data, dict):
        return True
    t = data.get("type")
    logger.info("WS: msg from %s type=%s", user.id, t)
    try:
        if t == "join_game":
            await registry.join(user, data.get("channel_id"))
        elif t == "leave_game":
            channel_id = data.get("channel_id")
            if channel_id:
                await registry.leave(user, channel_id)
        elif t == "button_click":
            channel_id = data.get("channel_id")
            button_id = data.get("button_id")
            if channel_id and button_id is not None:
                await registry.click(user, channel_id, str(button_id))
        elif t == "list_sessions":
            await manager.send_to_user(user.id, {"type": "sessions", "sessions": registry.list_sessions()})
    except HostError as e:
        # состояние сессии могло разойтись с сообщениями в канале; откатов нет
        logger.exception("WS: host failure for %s type=%s: %s", user.id, t, e)
    return True


async def ws_auth_and_loop(ws: WebSocket) -> None:
    """
    Первое сообщение — hello с user_id. Дальше цикл приёма сообщений.
    """
    user = None
    try:
        await ws.accept()
        logger.info("WS: accepted, waiting for hello")
        raw = await ws.receive_text()
        data = json.loads(raw)
        msg_type = data.get("type")
        if msg_type != "hello" or not data.get("user_id"):
            logger.warning("WS: expected hello, got %s, closing 4001", msg_type)
            await ws.close(code=4001)
            return
        user = GameUser(id=str(data["user_id"]), username=data.get("username") or "")
        await manager.connect(ws, user.id, user.username)
        logger.info("WS: hello ok user_id=%s username=%s", user.id, user.username)
        await manager.send_to_user(user.id, {"type": "sessions", "sessions": registry.list_sessions()})
        while True:
            msg = await ws.receive_text()
            if not await handle_ws_message(msg, user):
                break
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s user_id=%s", e.code, e.reason or "", user and user.id)
    except Exception as e:
        logger.exception("WS: error user_id=%s: %s", user and user.id, e)
    finally:
        if user:
            conn = manager.get_connection(user.id)
            # при переподключении старый цикл не трогает новое соединение и сессии
            if conn and conn.ws is ws:
                manager.disconnect(user.id)
                await registry.leave_all(user)
            logger.info("WS: disconnected user_id=%s", user.id)
