# storage.py
# Key-value storage port used for the best score and saved games.
# The hooks in this module never raise: a failing store reads as "absent"
# and a failing write is logged and dropped.

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from config import BEST_SCORE_KEY, GAME_STATE_KEY

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Anything that can get, set and remove string values by key."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStorage:
    """Dict-backed store, for tests and single-process servers."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """
    Stores every key in one JSON object on disk, re-read on each access.
    Meant for a single writer process. A file that does not hold a JSON
    object is replaced on the next write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object.")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return None if value is None else str(value)

    def _read_for_update(self) -> Dict[str, str]:
        try:
            return self._read()
        except ValueError:
            logger.warning("Overwriting unreadable storage file %s.", self.path)
            return {}

    def set(self, key: str, value: str) -> None:
        data = self._read_for_update()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read_for_update()
        if key in data:
            del data[key]
            self._write(data)


# --- Persistence hooks ---

def load_best_score(storage: Optional[KeyValueStorage]) -> int:
    """
    Reads the persisted best score.
    Args:
        storage (KeyValueStorage): The store, or None when persistence is off.
    Returns:
        int: The stored best score, or 0 when absent, unreadable or invalid.
    """
    if storage is None:
        return 0
    try:
        stored = storage.get(BEST_SCORE_KEY)
    except Exception:
        logger.warning("Could not read best score; treating it as absent.", exc_info=True)
        return 0
    if not stored:
        return 0
    try:
        best = int(stored)
    except ValueError:
        logger.warning("Ignoring malformed best score %r.", stored)
        return 0
    return max(best, 0)


def save_best_score(storage: Optional[KeyValueStorage], score: int) -> None:
    if storage is None:
        return
    try:
        storage.set(BEST_SCORE_KEY, str(score))
    except Exception:
        logger.warning("Could not save best score %d.", score, exc_info=True)


def read_saved_game(storage: Optional[KeyValueStorage]) -> Optional[str]:
    """Returns the raw saved-game blob, or None if absent or unreadable."""
    if storage is None:
        return None
    try:
        return storage.get(GAME_STATE_KEY)
    except Exception:
        logger.warning("Could not read saved game; treating it as absent.", exc_info=True)
        return None


def write_saved_game(storage: Optional[KeyValueStorage], blob: str) -> None:
    if storage is None:
        return
    try:
        storage.set(GAME_STATE_KEY, blob)
    except Exception:
        logger.warning("Could not save game state.", exc_info=True)


def clear_saved_state(storage: Optional[KeyValueStorage]) -> None:
    if storage is None:
        return
    try:
        storage.remove(GAME_STATE_KEY)
    except Exception:
        logger.warning("Could not clear saved game.", exc_info=True)
