"""
Nutso Engine — Key/Value Persistence

Minimal string store used by the leaderboard: get(key) -> str | None and
set(key, value) -> bool. Failures are logged and reported, never raised.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path.home() / ".nutso" / "store.json"


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> bool:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store, handy for tests and headless runs."""

    def __init__(self, initial: Dict[str, str] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk. File: ~/.nutso/store.json by default."""

    def __init__(self, file_path: Path = None):
        self._file_path = Path(file_path) if file_path is not None else DEFAULT_STORE_PATH

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _read_all(self) -> Dict[str, str]:
        if not self._file_path.exists():
            return {}
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read store %s: %s", self._file_path, e)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring store %s: expected a JSON object", self._file_path)
            return {}
        return payload

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> bool:
        payload = self._read_all()
        payload[key] = value
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save store %s: %s", self._file_path, e)
            return False
        return True
