"""
Сессия крестиков-ноликов: участники, очередь ходов, поле, победа/ничья.
Все запросы к площадке идут строго последовательно (await) в порядке,
заданном логикой: сначала удалить старое уведомление, потом отправить новое.
"""
import asyncio
import copy
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import get_config
from .constants import CHANNEL_NAME, leave_controls
from .host import ActionRow, Button, ButtonStyle, GameUser, MessageHandle, MessagingHost

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    STALE = "stale"


class EventType(str, Enum):
    JOIN = "join"
    LEAVE = "leave"
    BUTTON_CLICK = "button_click"


@dataclass
class GameEvent:
    type: EventType
    user: GameUser
    button_id: str | None = None


@dataclass
class SaveBundle:
    """Полное состояние сессии; именно оно сохраняется и восстанавливается."""
    channel_id: str
    game_size: int
    player_icons: dict[int, str]
    started: bool = False
    stale: bool = False
    board_message: MessageHandle | None = None
    current_player_index: int | None = None  # None | 0 | 1
    last_turn_message_id: str | None = None
    accept_selection: bool = False
    possible_turns_count: int = 0
    players: list[GameUser] = field(default_factory=list)
    board: list[list[int | None]] = field(default_factory=list)

    @classmethod
    def new(cls, channel_id: str, game_size: int, player_icons: dict[int, str]) -> "SaveBundle":
        return cls(
            channel_id=channel_id,
            game_size=game_size,
            player_icons=dict(player_icons),
            possible_turns_count=game_size ** 2,
            board=[[None] * game_size for _ in range(game_size)],
        )

    @property
    def phase(self) -> Phase:
        if self.stale:
            return Phase.STALE
        if self.started:
            return Phase.ACTIVE
        return Phase.LOBBY

    def to_dict(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "stale": self.stale,
            "channel_id": self.channel_id,
            "board_message": self.board_message.to_dict() if self.board_message else None,
            "current_player_index": self.current_player_index,
            "last_turn_message_id": self.last_turn_message_id,
            "accept_selection": self.accept_selection,
            "possible_turns_count": self.possible_turns_count,
            "game_size": self.game_size,
            "players": [p.to_dict() for p in self.players],
            "board": [list(row) for row in self.board],
            # ключи JSON — строки
            "player_icons": {str(k): v for k, v in self.player_icons.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SaveBundle":
        board_message = data.get("board_message")
        return cls(
            started=bool(data["started"]),
            stale=bool(data["stale"]),
            channel_id=data["channel_id"],
            board_message=MessageHandle.from_dict(board_message) if board_message else None,
            current_player_index=data.get("current_player_index"),
            last_turn_message_id=data.get("last_turn_message_id"),
            accept_selection=bool(data["accept_selection"]),
            possible_turns_count=int(data["possible_turns_count"]),
            game_size=int(data["game_size"]),
            players=[GameUser.from_dict(p) for p in data["players"]],
            board=[list(row) for row in data["board"]],
            player_icons={int(k): v for k, v in data["player_icons"].items()},
        )


def winning_lines(size: int) -> list[list[int]]:
    """Кандидаты в порядке проверки: строки, столбцы, главная и побочная диагонали."""
    lines = [[r * size + c for c in range(size)] for r in range(size)]
    lines += [[r * size + c for r in range(size)] for c in range(size)]
    lines.append([i * size + i for i in range(size)])
    # побочная диагональ перечисляется снизу слева: для 3x3 это [6, 4, 2]
    lines.append([(size - 1 - i) * size + i for i in range(size)])
    return lines


def check_for_win(board: list[list[int | None]]) -> list[int] | None:
    """Первая линия, целиком занятая одним игроком, или None."""
    size = len(board)
    for line in winning_lines(size):
        owners = {board[cell // size][cell % size] for cell in line}
        if len(owners) == 1 and None not in owners:
            return line
    return None


class GameSession:
    def __init__(
        self,
        host: MessagingHost,
        *,
        game_size: int | None = None,
        player_icons: tuple[str, str] | None = None,
        rng: random.Random | None = None,
        notice_ttl: float | None = None,
    ):
        config = get_config()
        self.host = host
        self.game_size = game_size or config.board_size
        icons = player_icons or config.player_icons
        self.player_icons = {0: icons[0], 1: icons[1]}
        self.rng = rng or random.Random()
        self.notice_ttl = config.notice_ttl_seconds if notice_ttl is None else notice_ttl
        self.state: SaveBundle | None = None
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def channel_id(self) -> str:
        return self.state.channel_id

    def is_member(self, user_id: str) -> bool:
        return any(p.id == user_id for p in self.state.players)

    async def initialize(self, bundle: SaveBundle | None = None) -> None:
        if bundle is not None:
            self.state = bundle
            return
        channel_id = await self.host.create_channel(CHANNEL_NAME)
        self.state = SaveBundle.new(channel_id, self.game_size, self.player_icons)
        logger.info("Session %s: created (size=%s)", channel_id, self.game_size)

    def destroy(self) -> SaveBundle | None:
        """Снимок для сохранения; для завершённой партии — None."""
        if self.state.stale:
            return None
        return copy.deepcopy(self.state)

    async def on_event(self, event: GameEvent) -> None:
        if event.type == EventType.JOIN:
            await self.on_player_join(event.user)
        elif event.type == EventType.LEAVE:
            await self.on_player_leave(event.user)
        elif event.type == EventType.BUTTON_CLICK:
            await self.on_selection(event.user, event.button_id)

    async def on_player_join(self, user: GameUser) -> None:
        s = self.state
        if s.started:
            await self.host.send_private_message(user.id, "The game was already started - no new joins allowed.")
            return
        if s.stale:
            await self.host.send_private_message(user.id, "The game was already finished - no new joins allowed.")
            return

        s.players.append(user)
        await self.host.add_user_to_channel(user.id, s.channel_id, muted=True)

        if len(s.players) == 1:
            await self.host.send_message(f"{user.mention()} joined the game.\nWaiting for one more player...", s.channel_id)
        elif len(s.players) == 2:
            await self.host.send_message(f"{user.mention()} joined the game.\nStarting game...", s.channel_id)
            await self._start_game()

    async def on_player_leave(self, user: GameUser) -> None:
        s = self.state
        index = next((i for i, p in enumerate(s.players) if p.id == user.id), None)
        if index is None:
            return
        s.players.pop(index)
        was_stale = s.stale
        # сессия завершается до запросов к площадке, даже если они упадут;
        # последний игрок уходит молча
        s.stale = True
        logger.info("Session %s: %s left, session is stale", s.channel_id, user.id)
        if s.players:
            if not was_stale:
                await self.host.send_message(
                    f"User {user.mention()} has left the game.\nThis game session become stale.\nLeave the session.",
                    s.channel_id,
                    components=leave_controls(),
                )
            await self.host.remove_user_from_channel(user.id, s.channel_id)

    async def _start_game(self) -> None:
        s = self.state
        s.started = True
        s.board_message = await self.host.send_message(
            self._icons_legend(), s.channel_id, components=self._build_board()
        )
        s.current_player_index = self.rng.randint(0, 1)
        logger.info("Session %s: started, first move by %s", s.channel_id, s.players[s.current_player_index].id)
        await self._send_turn_notification()
        s.accept_selection = True

    async def _send_turn_notification(self) -> None:
        s = self.state
        if s.last_turn_message_id:
            await self.host.delete_message(s.channel_id, s.last_turn_message_id)
        player = s.players[s.current_player_index]
        handle = await self.host.send_message(
            f"{player.mention()}, it's your turn!", s.channel_id, allowed_mentions=[player.id]
        )
        s.last_turn_message_id = handle.message_id

    def _icons_legend(self) -> str:
        s = self.state
        return "\n".join(f"{s.players[i].mention()} will use {s.player_icons[i]}" for i in (0, 1))

    def _build_board(self, disabled: bool = False) -> list[ActionRow]:
        size = self.state.game_size
        return [ActionRow([self._build_button(r, c, disabled) for c in range(size)]) for r in range(size)]

    def _build_button(self, row: int, col: int, disabled: bool = False) -> Button:
        owner = self.state.board[row][col]
        custom_id = str(row * self.state.game_size + col)
        if owner is None:
            return Button(custom_id=custom_id, label=" ", disabled=disabled)
        icon = self.state.player_icons[owner]
        # многосимвольные иконки (кастомные эмодзи) уходят в поле emoji
        if len(icon) > 1:
            return Button(custom_id=custom_id, emoji=icon, disabled=True)
        return Button(custom_id=custom_id, label=icon, disabled=True)

    def _coords(self, button_id: int) -> tuple[int, int]:
        row = button_id // self.state.game_size
        return row, button_id - row * self.state.game_size

    async def on_selection(self, user: GameUser, button_id: str | int | None) -> None:
        s = self.state
        try:
            cell = int(button_id)
        except (TypeError, ValueError):
            return
        if s.stale or not 0 <= cell < s.game_size ** 2 or s.board_message is None:
            return

        if user.id != s.players[s.current_player_index].id:
            await self._send_transient(f"{user.mention()}, it's not your turn now.")
            return
        if not s.accept_selection:
            await self._send_transient(f"{user.mention()}, you already made your choice.")
            return

        await self._handle_user_turn(cell)

    async def _handle_user_turn(self, cell: int) -> None:
        s = self.state
        row, col = self._coords(cell)
        if s.board[row][col] is not None:
            logger.warning("Session %s: cell %s was already selected, ignoring move", s.channel_id, cell)
            return

        s.possible_turns_count -= 1
        s.board[row][col] = s.current_player_index

        win_row = check_for_win(s.board)
        if win_row:
            await self._render_win(win_row)
            return

        s.accept_selection = False
        await self.host.replace_control(
            s.channel_id, s.board_message.message_id, str(cell), self._build_button(row, col)
        )
        if s.possible_turns_count == 0:
            await self._end_game_draw()
            return
        s.current_player_index = (s.current_player_index + 1) % 2
        await self._send_turn_notification()
        s.accept_selection = True

    async def _end_game_draw(self) -> None:
        s = self.state
        await self.host.delete_message(s.channel_id, s.last_turn_message_id)
        s.stale = True
        logger.info("Session %s: draw", s.channel_id)
        await self.host.send_message(
            "The game was ended in a draw.\nLeave the session", s.channel_id, components=leave_controls()
        )

    async def _render_win(self, win_row: list[int]) -> None:
        s = self.state
        s.stale = True
        await self.host.delete_message(s.channel_id, s.last_turn_message_id)

        board = self._build_board(disabled=True)
        for cell in win_row:
            row, col = self._coords(cell)
            board[row].components[col] = board[row].components[col].with_style(ButtonStyle.SUCCESS)
        await self.host.edit_message(
            s.board_message.channel_id, s.board_message.message_id, self._icons_legend(), components=board
        )

        row, col = self._coords(win_row[0])
        winner = s.players[s.board[row][col]]
        logger.info("Session %s: %s won with line %s", s.channel_id, winner.id, win_row)
        await self.host.send_message(
            f"User {winner.mention()} won the game!\nGame over.\nLeave the session",
            s.channel_id,
            allowed_mentions=[winner.id],
            components=leave_controls(),
        )

    async def _send_transient(self, content: str) -> None:
        handle = await self.host.send_message(content, self.state.channel_id)
        self._create_tracked_task(self._retract_later(handle), name=f"retract {handle.message_id}")

    async def _retract_later(self, handle: MessageHandle) -> None:
        await asyncio.sleep(self.notice_ttl)
        await self.host.delete_message(handle.channel_id, handle.message_id)

    def _create_tracked_task(self, coro, name: str = "unknown") -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)

        def _task_done_callback(t: asyncio.Task) -> None:
            self._background_tasks.discard(t)
            if t.cancelled():
                logger.debug("Task '%s' was cancelled", name)
            elif t.exception() is not None:
                logger.error("Task '%s' failed", name, exc_info=t.exception())

        task.add_done_callback(_task_done_callback)
        return task

    async def cancel_pending(self) -> None:
        """Отменить отложенные удаления уведомлений."""
        if not self._background_tasks:
            return
        for task in self._background_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
