"""Identifier-based wallet derivation and auth tokens."""

from sentechain.auth.derivation import DerivedWallet, derive_address, derive_private_key, derive_wallet
from sentechain.auth.tokens import create_token, decode_token, is_token_expired

__all__ = [
    "DerivedWallet",
    "derive_address",
    "derive_private_key",
    "derive_wallet",
    "create_token",
    "decode_token",
    "is_token_expired",
]
