"""
Хранение незавершённых партий: один JSON-файл на канал.
"""
import json
import logging
from pathlib import Path

from .game import SaveBundle

logger = logging.getLogger(__name__)


class BundleStore:
    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, channel_id: str) -> Path:
        return self.directory / f"{channel_id}.json"

    def save(self, bundle: SaveBundle) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(bundle.channel_id).write_text(json.dumps(bundle.to_dict(), ensure_ascii=False), encoding="utf-8")
        logger.info("Store: saved session %s", bundle.channel_id)

    def delete(self, channel_id: str) -> None:
        self._path(channel_id).unlink(missing_ok=True)

    def load_all(self) -> list[SaveBundle]:
        """Все сохранённые партии. Битые файлы пропускаются с предупреждением."""
        if not self.directory.is_dir():
            return []
        bundles = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                bundles.append(SaveBundle.from_dict(json.loads(path.read_text(encoding="utf-8"))))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Store: cannot load %s: %s", path.name, e)
        return bundles
