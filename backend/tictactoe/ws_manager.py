"""
Менеджер WebSocket: подключения по user_id и реализация площадки сообщений
поверх них (каналы, сообщения, кнопки). Клиентам уходят JSON-события.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

from .host import ActionRow, Button, HostError, MessageHandle

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, user_id: str, username: str):
        self.ws = ws
        self.user_id = user_id
        self.username = username


@dataclass
class Channel:
    id: str
    name: str
    members: set[str] = field(default_factory=set)
    # message_id -> payload последней версии сообщения
    messages: dict[str, dict[str, Any]] = field(default_factory=dict)


def _components_payload(components: list[ActionRow] | None) -> list[dict[str, Any]]:
    return [row.to_dict() for row in components or []]


class WSManager:
    def __init__(self):
        self._by_user: dict[str, Connection] = {}
        self._channels: dict[str, Channel] = {}

    async def connect(self, ws: WebSocket, user_id: str, username: str) -> None:
        if user_id in self._by_user:
            old = self._by_user[user_id]
            try:
                await old.ws.close(code=4000)
            except Exception:
                pass
        self._by_user[user_id] = Connection(ws, user_id, username)

    def disconnect(self, user_id: str) -> None:
        self._by_user.pop(user_id, None)

    def get_connection(self, user_id: str) -> Connection | None:
        return self._by_user.get(user_id)

    async def send_to_user(self, user_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_user.get(user_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            logger.warning("send_to_user %s: %s", user_id, e)
            return False

    async def _broadcast(self, channel: Channel, payload: dict[str, Any]) -> None:
        for user_id in list(channel.members):
            await self.send_to_user(user_id, payload)

    def _channel(self, channel_id: str) -> Channel:
        channel = self._channels.get(channel_id)
        if not channel:
            raise HostError(f"unknown channel {channel_id}")
        return channel

    def restore_channel(self, channel_id: str, name: str, member_ids: list[str]) -> None:
        """Поднять канал восстановленной сессии после рестарта (история сообщений не хранится)."""
        channel = self._channels.setdefault(channel_id, Channel(id=channel_id, name=name))
        channel.members.update(member_ids)

    # --- MessagingHost ---

    async def create_channel(self, name: str) -> str:
        channel_id = str(uuid.uuid4())
        self._channels[channel_id] = Channel(id=channel_id, name=name)
        return channel_id

    async def send_message(
        self,
        content: str,
        channel_id: str,
        *,
        components: list[ActionRow] | None = None,
        allowed_mentions: list[str] | None = None,
    ) -> MessageHandle:
        channel = self._channel(channel_id)
        message_id = str(uuid.uuid4())
        message = {
            "channel_id": channel_id,
            "message_id": message_id,
            "content": content,
            "components": _components_payload(components),
        }
        channel.messages[message_id] = message
        for user_id in list(channel.members):
            # None — пингуем всех, иначе только перечисленных
            ping = allowed_mentions is None or user_id in allowed_mentions
            await self.send_to_user(user_id, {"type": "message", **message, "ping": ping})
        return MessageHandle(channel_id=channel_id, message_id=message_id)

    async def edit_message(
        self,
        channel_id: str,
        message_id: str,
        content: str,
        *,
        components: list[ActionRow] | None = None,
    ) -> None:
        channel = self._channel(channel_id)
        message = {
            "channel_id": channel_id,
            "message_id": message_id,
            "content": content,
            "components": _components_payload(components),
        }
        channel.messages[message_id] = message
        await self._broadcast(channel, {"type": "message_edit", **message})

    async def replace_control(self, channel_id: str, message_id: str, control_id: str, control: Button) -> None:
        channel = self._channel(channel_id)
        message = channel.messages.get(message_id)
        if message:
            for row in message["components"]:
                row["components"] = [
                    control.to_dict() if b["custom_id"] == control_id else b for b in row["components"]
                ]
        await self._broadcast(channel, {
            "type": "control_replace",
            "channel_id": channel_id,
            "message_id": message_id,
            "control": control.to_dict(),
        })

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        channel = self._channel(channel_id)
        channel.messages.pop(message_id, None)
        await self._broadcast(channel, {"type": "message_delete", "channel_id": channel_id, "message_id": message_id})

    async def add_user_to_channel(self, user_id: str, channel_id: str, muted: bool = False) -> None:
        channel = self._channel(channel_id)
        if not muted:
            await self._broadcast(channel, {"type": "member_join", "channel_id": channel_id, "user_id": user_id})
        channel.members.add(user_id)
        await self.send_to_user(user_id, {
            "type": "channel_join",
            "channel_id": channel_id,
            "name": channel.name,
            "muted": muted,
            "messages": list(channel.messages.values()),
        })

    async def remove_user_from_channel(self, user_id: str, channel_id: str) -> None:
        channel = self._channel(channel_id)
        channel.members.discard(user_id)
        await self.send_to_user(user_id, {"type": "channel_leave", "channel_id": channel_id})

    async def send_private_message(self, user_id: str, content: str) -> None:
        await self.send_to_user(user_id, {"type": "private_message", "content": content})


manager = WSManager()
