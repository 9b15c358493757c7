"""Injected wallet provider interface and adapter.

The provider is the Python analogue of a browser wallet extension: an object
answering EIP-1193 ``request`` calls and emitting ``accountsChanged`` /
``chainChanged`` events. ``ProviderAdapter`` wraps it with typed errors,
network switching and observer registration.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from eth_utils import to_checksum_address

from sentechain.chains import NetworkConfig
from sentechain.wallet.errors import (
    CODE_REQUEST_PENDING,
    CODE_UNRECOGNIZED_CHAIN,
    CODE_USER_REJECTED,
    AddRejected,
    NetworkMismatch,
    ProviderError,
    ProviderRpcError,
    ProviderUnavailable,
    SwitchRejected,
    UserRejected,
)

logger = logging.getLogger(__name__)

# Transaction fields that travel as hex quantities over JSON-RPC
QUANTITY_FIELDS = (
    "value",
    "gas",
    "gasPrice",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "nonce",
    "chainId",
)


class InjectedProvider(ABC):
    """Abstract EIP-1193 provider.

    Subclasses implement ``request``; event registration and emission are
    shared.
    """

    def __init__(self):
        self._listeners: dict[str, list[Callable]] = {}

    @abstractmethod
    async def request(self, method: str, params: Optional[list] = None) -> Any:
        """Perform a JSON-RPC style request.

        Raises:
            ProviderRpcError: With an EIP-1193 code on failure
        """
        pass

    def on(self, event: str, handler: Callable) -> None:
        """Subscribe to a provider event."""
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        """Unsubscribe from a provider event."""
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        """Deliver an event to all subscribers."""
        for handler in list(self._listeners.get(event, [])):
            handler(payload)


def encode_rpc_transaction(tx: dict) -> dict:
    """Hex-encode integer quantities of a transaction dict."""
    encoded = dict(tx)
    for field in QUANTITY_FIELDS:
        if isinstance(encoded.get(field), int):
            encoded[field] = hex(encoded[field])
    return encoded


class ProviderAdapter:
    """Typed wrapper over an injected provider.

    Holds no state besides the last connected account and the in-flight
    network switch; nothing is persisted.
    """

    def __init__(self, provider: Optional[InjectedProvider] = None):
        self._provider = provider
        self.account: Optional[str] = None
        self._switch: Optional[tuple[int, asyncio.Future]] = None

    @property
    def is_available(self) -> bool:
        """Whether a provider is injected."""
        return self._provider is not None

    def _require_provider(self) -> InjectedProvider:
        if self._provider is None:
            raise ProviderUnavailable()
        return self._provider

    # ======================
    # Accounts
    # ======================

    async def connect(self) -> str:
        """Request account access and return the active account.

        Raises:
            ProviderUnavailable: No provider injected
            UserRejected: The access prompt was dismissed
        """
        provider = self._require_provider()
        try:
            accounts = await provider.request("eth_requestAccounts")
        except ProviderRpcError as e:
            if e.code == CODE_USER_REJECTED:
                raise UserRejected("Please connect your wallet to continue.") from e
            raise

        if not accounts:
            raise ProviderError("No accounts found")

        self.account = to_checksum_address(accounts[0])
        logger.info(f"Wallet connected: {self.account}")
        return self.account

    async def current_account(self) -> Optional[str]:
        """Return the already-authorized account without prompting."""
        if self._provider is None:
            return None
        accounts = await self._provider.request("eth_accounts")
        if not accounts:
            return None
        return to_checksum_address(accounts[0])

    def disconnect(self) -> None:
        """Forget the connected account locally."""
        self.account = None

    # ======================
    # Networks
    # ======================

    async def current_chain_id(self) -> Optional[int]:
        """Return the provider's active chain ID, or None without a provider."""
        if self._provider is None:
            return None
        chain_id = await self._provider.request("eth_chainId")
        return int(chain_id, 16) if isinstance(chain_id, str) else int(chain_id)

    async def is_on_network(self, network: NetworkConfig) -> bool:
        """Check whether the provider is on the given network."""
        return await self.current_chain_id() == network.chain_id

    async def require_network(self, network: NetworkConfig) -> None:
        """Raise NetworkMismatch unless the provider is on ``network``."""
        actual = await self.current_chain_id()
        if actual != network.chain_id:
            raise NetworkMismatch(network.chain_id, actual, network.name)

    async def ensure_network(self, network: NetworkConfig) -> None:
        """Switch the provider to ``network``, adding it when unknown.

        Already being on the target issues no prompt. Concurrent callers for
        the same target share one request.

        Raises:
            ProviderUnavailable: No provider injected
            SwitchRejected: The user declined the switch
            AddRejected: The user declined adding the network
        """
        self._require_provider()

        if await self.current_chain_id() == network.chain_id:
            return

        if self._switch is not None and self._switch[0] == network.chain_id:
            await asyncio.shield(self._switch[1])
            return

        task = asyncio.ensure_future(self._switch_network(network))
        self._switch = (network.chain_id, task)
        try:
            await task
        finally:
            if self._switch is not None and self._switch[1] is task:
                self._switch = None

    async def _switch_network(self, network: NetworkConfig) -> None:
        provider = self._require_provider()
        try:
            await provider.request(
                "wallet_switchEthereumChain", [{"chainId": network.chain_id_hex}]
            )
            logger.info(f"Switched to {network.name}")
        except ProviderRpcError as e:
            if e.code == CODE_UNRECOGNIZED_CHAIN:
                await self._add_network(network)
            elif e.code == CODE_USER_REJECTED:
                raise SwitchRejected("User rejected network switch") from e
            elif e.code == CODE_REQUEST_PENDING:
                logger.info("Network switch request already pending in wallet")
            else:
                raise

    async def _add_network(self, network: NetworkConfig) -> None:
        provider = self._require_provider()
        logger.info(f"Adding {network.name} to wallet")
        try:
            await provider.request("wallet_addEthereumChain", [network.add_chain_params()])
        except ProviderRpcError as e:
            if e.code == CODE_USER_REJECTED:
                raise AddRejected(f"User rejected adding {network.name}") from e
            if e.code == CODE_REQUEST_PENDING:
                logger.info("Add network request already pending in wallet")
                return
            raise

    # ======================
    # Observers
    # ======================

    def on_account_changed(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        """Observe account changes; ``None`` is delivered on disconnect.

        Returns:
            Function that removes the observer
        """
        if self._provider is None:
            return lambda: None

        def handler(accounts: list) -> None:
            self.account = to_checksum_address(accounts[0]) if accounts else None
            callback(self.account)

        self._provider.on("accountsChanged", handler)
        return lambda: self._provider.remove_listener("accountsChanged", handler)

    def on_network_changed(self, callback: Callable[[int], None]) -> Callable[[], None]:
        """Observe chain changes. Cached contract bindings are invalid afterwards.

        Returns:
            Function that removes the observer
        """
        if self._provider is None:
            return lambda: None

        def handler(chain_id: Any) -> None:
            callback(int(chain_id, 16) if isinstance(chain_id, str) else int(chain_id))

        self._provider.on("chainChanged", handler)
        return lambda: self._provider.remove_listener("chainChanged", handler)

    # ======================
    # Transactions
    # ======================

    async def send_transaction(self, tx: dict) -> str:
        """Submit a transaction for signing and broadcast.

        Returns:
            Transaction hash (0x-prefixed hex)

        Raises:
            UserRejected: The signature prompt was dismissed
        """
        provider = self._require_provider()
        try:
            return await provider.request("eth_sendTransaction", [encode_rpc_transaction(tx)])
        except ProviderRpcError as e:
            if e.code == CODE_USER_REJECTED:
                raise UserRejected("Transaction rejected") from e
            raise
