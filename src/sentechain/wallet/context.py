"""Session-scoped wallet context.

Owns every network-specific handle for one wallet session: the read-only
web3 connection, the contract bindings and the provider adapter. A chain
change invalidates the context; callers then build a new one instead of
resetting cached handles in place.
"""

import logging
from typing import Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from sentechain.chains import NetworkConfig
from sentechain.config import Settings
from sentechain.wallet.abi import SENTE_TOKEN_ABI, SENTE_VAULT_ABI
from sentechain.wallet.errors import ContractUnavailable, NetworkMismatch
from sentechain.wallet.provider import ProviderAdapter
from sentechain.wallet.units import checksum

logger = logging.getLogger(__name__)


class WalletContext:
    """Network, contracts and provider for one wallet session."""

    def __init__(
        self,
        network: NetworkConfig,
        token_address: str,
        vault_address: str,
        adapter: ProviderAdapter,
        web3: Optional[AsyncWeb3] = None,
        decimals: int = 6,
    ):
        """Initialize the context.

        Args:
            network: Network the contracts are deployed on
            token_address: SenteToken address
            vault_address: SenteVault address
            adapter: Provider adapter used for signing
            web3: Read-only client (defaults to the network's RPC URL)
            decimals: Token fixed-point decimals

        Raises:
            InvalidAddress: If a contract address is malformed
        """
        self.network = network
        self.token_address = checksum(token_address)
        self.vault_address = checksum(vault_address)
        self.adapter = adapter
        self.decimals = decimals
        self._web3 = web3 or AsyncWeb3(AsyncHTTPProvider(network.rpc_url))
        self._token = None
        self._vault = None
        self._deployed: set[str] = set()
        self._invalidated_by: Optional[int] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        adapter: ProviderAdapter,
        web3: Optional[AsyncWeb3] = None,
    ) -> "WalletContext":
        """Build a context for the configured network and deployment."""
        token, vault = settings.get_contract_addresses()
        if not token or not vault:
            raise ValueError(
                "Contract addresses not configured. Set TOKEN_ADDRESS and VAULT_ADDRESS "
                "or CONTRACTS_FILE."
            )
        return cls(
            network=settings.get_network(),
            token_address=token,
            vault_address=vault,
            adapter=adapter,
            web3=web3,
            decimals=settings.token_decimals,
        )

    # ======================
    # Validity
    # ======================

    @property
    def is_valid(self) -> bool:
        return self._invalidated_by is None

    def invalidate(self, chain_id: Optional[int] = None) -> None:
        """Mark the context stale after the wallet moved to another chain."""
        if self._invalidated_by is None:
            logger.info(
                f"Wallet context for {self.network.name} invalidated (chain changed to {chain_id})"
            )
        self._invalidated_by = chain_id if chain_id is not None else -1
        self._token = None
        self._vault = None
        self._deployed.clear()

    def ensure_valid(self) -> None:
        """Raise NetworkMismatch if the context was invalidated."""
        if self._invalidated_by is not None:
            actual = self._invalidated_by if self._invalidated_by >= 0 else None
            raise NetworkMismatch(self.network.chain_id, actual, self.network.name)

    # ======================
    # Handles
    # ======================

    @property
    def web3(self) -> AsyncWeb3:
        self.ensure_valid()
        return self._web3

    @property
    def token(self):
        """Read-only SenteToken binding."""
        self.ensure_valid()
        if self._token is None:
            self._token = self._web3.eth.contract(address=self.token_address, abi=SENTE_TOKEN_ABI)
        return self._token

    @property
    def vault(self):
        """Read-only SenteVault binding."""
        self.ensure_valid()
        if self._vault is None:
            self._vault = self._web3.eth.contract(address=self.vault_address, abi=SENTE_VAULT_ABI)
        return self._vault

    async def has_code(self, address: str) -> bool:
        """Check whether a contract is deployed at ``address``."""
        code = await self.web3.eth.get_code(address)
        return bool(code) and code not in (b"", "0x")

    async def ensure_deployed(self, address: str, name: str = "contract") -> None:
        """Verify code exists at ``address``; the result is cached per context.

        Raises:
            ContractUnavailable: No code at the address
        """
        if address in self._deployed:
            return
        if not await self.has_code(address):
            logger.error(
                f"No {name} code at {address} on {self.network.name} "
                f"(chain {self.network.chain_id}, rpc {self.network.rpc_url})"
            )
            raise ContractUnavailable(address, name)
        self._deployed.add(address)
