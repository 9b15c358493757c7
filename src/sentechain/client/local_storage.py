"""Device-local key/value storage.

A directory of JSON files, one per key, standing in for browser
localStorage. Writes go through a temporary file and an atomic rename so a
crash never leaves a half-written blob.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from sentechain.config import Settings

logger = logging.getLogger(__name__)

USER_KEY = "sentechain_user"
TOKEN_KEY = "sentechain_token"
CONTACTS_KEY = "sentechain_contacts"
SETTINGS_KEY = "sentechain_settings"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStorage:
    """JSON blob storage keyed by name."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalStorage":
        return cls(settings.local_storage_dir)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """Raw stored string, or None if absent."""
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decoded value, or ``default`` if absent or corrupt."""
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding corrupt local storage entry '{key}'")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def clear(self) -> None:
        """Remove every stored key."""
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)
