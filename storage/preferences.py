# File: src/storage/preferences.py
"""Durable key/value storage for user selections"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from core.exceptions import PersistenceError
from utils.logger import get_logger

logger = get_logger(__name__)

FILTER_KEY = "filter"
SORT_KEY = "sort"
PUBLICATIONS_KEY = "selectedPublications"
TAGS_SCOPE_KEY = "selectedTagsScope"
TAGS_MOOD_KEY = "selectedTagsMood"
TAGS_TOPIC_KEY = "selectedTagsTopic"

PREFERENCE_KEYS = (
    FILTER_KEY,
    SORT_KEY,
    PUBLICATIONS_KEY,
    TAGS_SCOPE_KEY,
    TAGS_MOOD_KEY,
    TAGS_TOPIC_KEY,
)

class PreferenceStore:
    """JSON file of independently encoded preference slots.

    Every slot holds its own JSON document, so one corrupt value only loses
    that slot. Failures never reach the caller: reads fall back to the
    default and writes degrade to the in-memory copy.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._raw: Dict[str, str] = {}
        self._loaded = False

    def load(self, key: str, default: Any, decode: Optional[Callable[[Any], Any]] = None) -> Any:
        """Stored value for key, or default when absent or unreadable"""
        self._ensure_loaded()

        raw = self._raw.get(key)
        if raw is None:
            return default

        try:
            value = json.loads(raw)
            return decode(value) if decode else value
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable preference '{key}': {e}")
            return default

    def save(self, key: str, value: Any) -> None:
        """Store value for key; write failures keep the value in memory only"""
        self._ensure_loaded()

        try:
            self._raw[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Preference '{key}' is not JSON-serializable: {e}")
            return

        try:
            self._write_file()
        except PersistenceError as e:
            logger.warning(f"Keeping preference '{key}' in memory only: {e}")

    def clear(self) -> None:
        self._raw = {}
        self._loaded = True
        try:
            self._write_file()
        except PersistenceError as e:
            logger.warning(f"Could not clear stored preferences: {e}")

    def _ensure_loaded(self):
        if self._loaded:
            return
        self._loaded = True
        try:
            self._raw = self._read_file()
        except PersistenceError as e:
            logger.warning(f"Falling back to default preferences: {e}")
            self._raw = {}

    def _read_file(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read preferences from {self.path}: {e}")

        if not isinstance(data, dict):
            raise PersistenceError(f"Preferences file {self.path} does not hold an object")

        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_file(self):
        if self.path is None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix='.preferences-', suffix='.json')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._raw, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Cannot write preferences to {self.path}: {e}")
