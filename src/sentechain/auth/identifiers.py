"""Login identifier parsing.

An identifier is either an email address or a phone number. Both are
normalized before lookup and derivation so that cosmetic differences
("Alice@Example.com", "+1 (555) 010-2030") map to the same user.
"""

import re
from dataclasses import dataclass

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?\d{7,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")


class InvalidIdentifier(ValueError):
    """Identifier is missing or is neither an email nor a phone number."""

    pass


@dataclass(frozen=True)
class Identifier:
    """Normalized login identifier."""

    kind: str  # "email" or "phone"
    value: str

    @property
    def is_email(self) -> bool:
        return self.kind == "email"


def parse_identifier(raw: str) -> Identifier:
    """Classify and normalize a login identifier.

    Raises:
        InvalidIdentifier: If empty or malformed
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidIdentifier("Email or phone is required")

    if "@" in value:
        email = value.lower()
        if not EMAIL_PATTERN.match(email):
            raise InvalidIdentifier("Please enter a valid email or phone number")
        return Identifier(kind="email", value=email)

    phone = _PHONE_SEPARATORS.sub("", value)
    if not PHONE_PATTERN.match(phone):
        raise InvalidIdentifier("Please enter a valid email or phone number")
    return Identifier(kind="phone", value=phone)
