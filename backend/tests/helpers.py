"""
Тестовые заглушки: записывающая площадка, детерминированный random.
"""
from tictactoe.game import GameSession
from tictactoe.host import GameUser, HostError, MessageHandle

ALICE = GameUser(id="1", username="alice")
BOB = GameUser(id="2", username="bob")
CAROL = GameUser(id="3", username="carol")


class FixedRandom:
    """Подменяет random.Random: randint всегда возвращает value."""

    def __init__(self, value: int):
        self.value = value

    def randint(self, a: int, b: int) -> int:
        return self.value


class FakeHost:
    """Площадка, которая только записывает вызовы."""

    def __init__(self, channel_prefix: str = "chan"):
        self.channel_prefix = channel_prefix
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._messages = 0
        self._channels = 0

    def _record(self, name: str, *args) -> None:
        if name in self.fail_on:
            raise HostError(f"{name} failed")
        self.calls.append((name, *args))

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def sent(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "send_message"]

    def last(self, name: str) -> tuple:
        return [c for c in self.calls if c[0] == name][-1]

    async def create_channel(self, name):
        self._record("create_channel", name)
        self._channels += 1
        return f"{self.channel_prefix}-{self._channels}"

    async def send_message(self, content, channel_id, *, components=None, allowed_mentions=None):
        self._record("send_message", content, channel_id, components, allowed_mentions)
        self._messages += 1
        return MessageHandle(channel_id=channel_id, message_id=f"m{self._messages}")

    async def edit_message(self, channel_id, message_id, content, *, components=None):
        self._record("edit_message", channel_id, message_id, content, components)

    async def replace_control(self, channel_id, message_id, control_id, control):
        self._record("replace_control", channel_id, message_id, control_id, control)

    async def delete_message(self, channel_id, message_id):
        self._record("delete_message", channel_id, message_id)

    async def add_user_to_channel(self, user_id, channel_id, muted=False):
        self._record("add_user_to_channel", user_id, channel_id, muted)

    async def remove_user_from_channel(self, user_id, channel_id):
        self._record("remove_user_from_channel", user_id, channel_id)

    async def send_private_message(self, user_id, content):
        self._record("send_private_message", user_id, content)


def build_session(host, first: int = 0) -> GameSession:
    return GameSession(host, game_size=3, player_icons=("X", "O"), rng=FixedRandom(first), notice_ttl=0)
