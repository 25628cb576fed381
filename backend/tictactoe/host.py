"""
Контракт площадки сообщений: каналы, сообщения, кнопки.
Сессия игры знает только этот интерфейс; реализация — ws_manager.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol


class HostError(Exception):
    """Площадка не смогла выполнить запрос (нет канала, нет сообщения и т.п.)."""


class ButtonStyle(int, Enum):
    PRIMARY = 1
    SECONDARY = 2
    SUCCESS = 3
    DANGER = 4


@dataclass
class GameUser:
    id: str
    username: str = ""

    def mention(self) -> str:
        return f"<@{self.id}>"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameUser":
        return cls(id=str(data["id"]), username=data.get("username") or "")


@dataclass(frozen=True)
class MessageHandle:
    channel_id: str
    message_id: str

    def to_dict(self) -> dict[str, str]:
        return {"channel_id": self.channel_id, "message_id": self.message_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageHandle":
        return cls(channel_id=data["channel_id"], message_id=data["message_id"])


@dataclass(frozen=True)
class Button:
    custom_id: str
    style: ButtonStyle = ButtonStyle.SECONDARY
    label: str | None = None
    emoji: str | None = None
    disabled: bool = False

    def with_style(self, style: ButtonStyle) -> "Button":
        return replace(self, style=style)

    def to_dict(self) -> dict[str, Any]:
        return {
            "custom_id": self.custom_id,
            "style": self.style.value,
            "label": self.label,
            "emoji": self.emoji,
            "disabled": self.disabled,
        }


@dataclass
class ActionRow:
    components: list[Button] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"components": [b.to_dict() for b in self.components]}


class MessagingHost(Protocol):
    """Всё, что сессия может попросить у площадки. Все вызовы асинхронные."""

    async def create_channel(self, name: str) -> str: ...

    async def send_message(
        self,
        content: str,
        channel_id: str,
        *,
        components: list[ActionRow] | None = None,
        allowed_mentions: list[str] | None = None,
    ) -> MessageHandle: ...

    async def edit_message(
        self,
        channel_id: str,
        message_id: str,
        content: str,
        *,
        components: list[ActionRow] | None = None,
    ) -> None: ...

    async def replace_control(
        self, channel_id: str, message_id: str, control_id: str, control: Button
    ) -> None: ...

    async def delete_message(self, channel_id: str, message_id: str) -> None: ...

    async def add_user_to_channel(self, user_id: str, channel_id: str, muted: bool = False) -> None: ...

    async def remove_user_from_channel(self, user_id: str, channel_id: str) -> None: ...

    async def send_private_message(self, user_id: str, content: str) -> None: ...
