"""Конфигурация приложения."""
import os
from functools import lru_cache

from .constants import DEFAULT_BOARD_SIZE, DEFAULT_PLAYER_ICONS, NOTICE_TTL_SECONDS


def _player_icons(raw: str) -> tuple[str, str]:
    icons = raw.split()
    if len(icons) < 2:
        return DEFAULT_PLAYER_ICONS
    return icons[0], icons[1]


@lru_cache
def get_config():
    return type("Config", (), {
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "board_size": int(os.environ.get("BOARD_SIZE", DEFAULT_BOARD_SIZE)),
        "player_icons": _player_icons(os.environ.get("PLAYER_ICONS", "")),
        "notice_ttl_seconds": float(os.environ.get("NOTICE_TTL_SECONDS", NOTICE_TTL_SECONDS)),
        "save_dir": os.environ.get("SAVE_DIR", ""),
    })()
