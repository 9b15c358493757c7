"""User preference flags and data export."""

import logging
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Optional

from sentechain.client.contacts import ContactBook
from sentechain.client.local_storage import SETTINGS_KEY, LocalStorage
from sentechain.client.session import UserSession

logger = logging.getLogger(__name__)

# Python attribute -> stored key
_STORED_NAMES = {
    "notifications": "notifications",
    "email_alerts": "emailAlerts",
    "two_factor": "twoFactor",
    "dark_mode": "darkMode",
}


@dataclass
class PreferenceFlags:
    notifications: bool = True
    email_alerts: bool = False
    two_factor: bool = False
    dark_mode: bool = False

    def to_dict(self) -> dict:
        return {_STORED_NAMES[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PreferenceFlags":
        flags = cls()
        if not isinstance(data, dict):
            return flags
        for name, stored in _STORED_NAMES.items():
            if stored in data:
                setattr(flags, name, bool(data[stored]))
        return flags


class Preferences:
    """Preference flags plus backup and wipe of all local data."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self) -> PreferenceFlags:
        return PreferenceFlags.from_dict(self.storage.get_json(SETTINGS_KEY))

    def save(self, flags: PreferenceFlags) -> None:
        self.storage.set_json(SETTINGS_KEY, flags.to_dict())

    def set(self, flag: str, value: bool) -> PreferenceFlags:
        if flag not in {f.name for f in fields(PreferenceFlags)}:
            raise KeyError(f"Unknown preference '{flag}'")
        flags = self.load()
        setattr(flags, flag, bool(value))
        self.save(flags)
        return flags

    def toggle(self, flag: str) -> bool:
        """Flip a flag and return its new value."""
        current = getattr(self.load(), flag, None)
        if current is None:
            raise KeyError(f"Unknown preference '{flag}'")
        return getattr(self.set(flag, not current), flag)

    def export_backup(self, session: Optional[UserSession]) -> dict:
        """Everything stored for the user, in a portable shape."""
        return {
            "user": session.user_dict() if session else None,
            "contacts": [asdict(c) for c in ContactBook(self.storage).all()],
            "settings": self.load().to_dict(),
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }

    def clear_all(self) -> None:
        """Wipe session, contacts and preferences from the device."""
        self.storage.clear()
        logger.info("All local data cleared")
