"""Exceptions raised by the wallet client.

Provider errors follow EIP-1193 numbering so a rejection coming from any
injected provider can be classified the same way.
"""

from typing import Optional

# EIP-1193 / MetaMask error codes
CODE_USER_REJECTED = 4001
CODE_UNRECOGNIZED_CHAIN = 4902
CODE_REQUEST_PENDING = -32002


class WalletError(Exception):
    """Base class for wallet client errors."""

    pass


class ProviderRpcError(WalletError):
    """Error returned by an injected provider's ``request``."""

    def __init__(self, code: int, message: str, data: Optional[object] = None):
        self.code = code
        self.data = data
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ProviderRpcError(code={self.code}, message={str(self)!r})"


# ======================
# Provider / Network
# ======================


class ProviderError(WalletError):
    """Base class for provider and network errors."""

    pass


class ProviderUnavailable(ProviderError):
    """No injected provider is available."""

    def __init__(self, message: str = "No wallet provider found. Please install or open your wallet."):
        super().__init__(message)


class UserRejected(ProviderError):
    """The user dismissed an account, signature or transaction prompt."""

    pass


class SwitchRejected(UserRejected):
    """The user declined a network switch."""

    pass


class AddRejected(UserRejected):
    """The user declined adding a network."""

    pass


class NetworkMismatch(ProviderError):
    """The provider is on a different chain than the contracts."""

    def __init__(self, expected_chain_id: int, actual_chain_id: Optional[int], name: str = ""):
        self.expected_chain_id = expected_chain_id
        self.actual_chain_id = actual_chain_id
        label = f"{name} ({expected_chain_id})" if name else str(expected_chain_id)
        super().__init__(
            f"Network mismatch: contracts are on {label}, "
            f"but the wallet is on chain {actual_chain_id}. Please switch networks."
        )


# ======================
# Contracts
# ======================


class ContractError(WalletError):
    """Base class for contract call failures."""

    pass


class ContractUnavailable(ContractError):
    """No contract code at the configured address."""

    def __init__(self, address: str, name: str = "contract"):
        self.address = address
        super().__init__(
            f"No {name} found at address {address}. The contract may not be deployed "
            f"to this network, the address may be wrong, or the node may not be running."
        )


class CallFailed(ContractError):
    """A contract call or transaction reverted or could not be decoded."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


# ======================
# Validation
# ======================


class InvalidAddress(WalletError, ValueError):
    """Address failed format validation."""

    pass


class InvalidAmount(WalletError, ValueError):
    """Amount is not a positive decimal within token precision."""

    pass


class SavingsLocked(WalletError):
    """Savings withdrawal attempted before the unlock time."""

    def __init__(self, unlock_time: int = 0):
        self.unlock_time = unlock_time
        super().__init__(
            "Your savings are still locked. Please wait until the unlock date."
        )


# ======================
# Client
# ======================


class AuthError(WalletError):
    """The auth backend rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidContact(WalletError, ValueError):
    """Contact name or address missing or malformed."""

    pass


class DuplicateContact(WalletError):
    """A contact with the same address already exists."""

    pass
