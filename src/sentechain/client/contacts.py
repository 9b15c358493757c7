"""Address book stored on the device."""

import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from sentechain.client.local_storage import CONTACTS_KEY, LocalStorage
from sentechain.wallet.errors import DuplicateContact, InvalidContact

logger = logging.getLogger(__name__)

CONTACT_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


@dataclass
class Contact:
    id: int
    name: str
    address: str


class ContactBook:
    """User-scoped contacts; addresses are unique ignoring case."""

    def __init__(self, storage: LocalStorage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self._clock = clock

    def _save(self, contacts: list[Contact]) -> None:
        self.storage.set_json(CONTACTS_KEY, [asdict(c) for c in contacts])

    def find_by_address(self, address: str) -> Optional[Contact]:
        target = address.lower()
        for contact in self.all():
            if contact.address.lower() == target:
                return contact
        return None

    def add(self, name: str, address: str) -> Contact:
        """Add a contact. The address is stored exactly as given.

        Raises:
            InvalidContact: Missing field or malformed address
            DuplicateContact: Address already saved
        """
        name = (name or "").strip()
        address = (address or "").strip()
        if not name or not address:
            raise InvalidContact("Please fill in all fields")
        if not CONTACT_ADDRESS_PATTERN.match(address):
            raise InvalidContact("Invalid wallet address")

        contacts = self.all()
        if any(c.address.lower() == address.lower() for c in contacts):
            raise DuplicateContact("Contact already exists")

        contact_id = int(self._clock() * 1000)
        existing_ids = {c.id for c in contacts}
        while contact_id in existing_ids:
            contact_id += 1

        contact = Contact(id=contact_id, name=name, address=address)
        contacts.append(contact)
        self._save(contacts)
        logger.info(f"Added contact {name}")
        return contact

    def remove(self, contact_id: int) -> bool:
        """Delete a contact; returns False if no such id."""
        contacts = self.all()
        remaining = [c for c in contacts if c.id != contact_id]
        if len(remaining) == len(contacts):
            return False
        self._save(remaining)
        return True

    def all(self) -> list[Contact]:
        entries = self.storage.get_json(CONTACTS_KEY, default=[])
        contacts = []
        for entry in entries if isinstance(entries, list) else []:
            try:
                contacts.append(Contact(id=entry["id"], name=entry["name"], address=entry["address"]))
            except (KeyError, TypeError):
                logger.warning(f"Skipping malformed contact entry: {entry!r}")
        return contacts
