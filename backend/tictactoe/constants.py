"""Константы игры и системные кнопки."""
from .host import ActionRow, Button, ButtonStyle

DEFAULT_BOARD_SIZE = 3
DEFAULT_PLAYER_ICONS = ("❌", "⭕")
CHANNEL_NAME = "Tic tac toe"

# Через сколько секунд удалять временные уведомления
NOTICE_TTL_SECONDS = 3.0

# id системной кнопки, которую площадка превращает в событие выхода
LEAVE_SESSION_ID = "leave_session"

LEAVE_BUTTON = Button(custom_id=LEAVE_SESSION_ID, style=ButtonStyle.PRIMARY, label="Leave game")


def leave_controls() -> list[ActionRow]:
    return [ActionRow([LEAVE_BUTTON])]
