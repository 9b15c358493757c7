"""Identifier-based wallet derivation.

A user's key is keccak256 of their normalized identifier (email or phone),
optionally peppered with a server-held secret. The same identifier always
yields the same address.

SECURITY: this makes the wallet custodial by construction. Anyone holding the
derivation secret and an identifier can rebuild the private key. Keys are
never stored; they are recomputed when needed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from eth_utils import keccak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedWallet:
    """Keypair derived from an identifier."""

    identifier: str
    address: str
    private_key: bytes

    def __repr__(self) -> str:
        return f"DerivedWallet(identifier={self.identifier!r}, address={self.address})"


def derive_private_key(identifier: str, secret: Optional[str] = None) -> bytes:
    """Hash an identifier (and optional secret) into a 32-byte private key."""
    if not identifier:
        raise ValueError("Identifier is required for derivation")
    seed = f"{secret}:{identifier}" if secret else identifier
    return keccak(text=seed)


def derive_wallet(identifier: str, secret: Optional[str] = None) -> DerivedWallet:
    """Derive the keypair and checksum address for an identifier.

    Args:
        identifier: Normalized email or phone number
        secret: Optional derivation secret

    Returns:
        DerivedWallet with checksum address
    """
    private_key = derive_private_key(identifier, secret)
    account = Account.from_key(private_key)
    logger.debug(f"Derived address {account.address} for identifier")
    return DerivedWallet(identifier=identifier, address=account.address, private_key=private_key)


def derive_address(identifier: str, secret: Optional[str] = None) -> str:
    """Derive only the checksum address for an identifier."""
    return derive_wallet(identifier, secret).address
