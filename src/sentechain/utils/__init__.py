"""Utility modules for SenteChain."""

from sentechain.utils.locks import LockTimeoutError, identifier_lock

__all__ = ["LockTimeoutError", "identifier_lock"]
