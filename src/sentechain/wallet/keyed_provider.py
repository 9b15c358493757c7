"""Key-backed injected provider.

Implements the provider interface over a local eth-account key and web3 RPC,
so the wallet client can sign without a browser extension. Optional approval
callbacks stand in for the wallet's confirmation prompts.

WARNING: the private key is held in memory. Use only for demo and test
networks.
"""

import logging
from typing import Any, Callable, Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError

from sentechain.auth.derivation import derive_private_key
from sentechain.chains import BASE_SEPOLIA, NETWORKS, NetworkConfig
from sentechain.wallet.errors import (
    CODE_UNRECOGNIZED_CHAIN,
    CODE_USER_REJECTED,
    ProviderRpcError,
)
from sentechain.wallet.provider import QUANTITY_FIELDS, InjectedProvider

logger = logging.getLogger(__name__)

CODE_UNAUTHORIZED = 4100
CODE_UNSUPPORTED_METHOD = 4200
CODE_INTERNAL = -32603


class KeyedProvider(InjectedProvider):
    """Injected provider signing with a single local key."""

    def __init__(
        self,
        private_key: bytes,
        chain: NetworkConfig = BASE_SEPOLIA,
        networks: Optional[list[NetworkConfig]] = None,
        approve_access: Optional[Callable[[], bool]] = None,
        approve_transaction: Optional[Callable[[dict], bool]] = None,
        web3_factory: Optional[Callable[[NetworkConfig], AsyncWeb3]] = None,
    ):
        """Initialize the provider.

        Args:
            private_key: Signing key
            chain: Initially active network
            networks: Networks the wallet already knows (defaults to all built-in)
            approve_access: Called on eth_requestAccounts; False rejects
            approve_transaction: Called with each transaction; False rejects
            web3_factory: Builds the RPC client for a network
        """
        super().__init__()
        self._account = Account.from_key(private_key)
        self._networks: dict[int, NetworkConfig] = {
            n.chain_id: n for n in (networks or list(NETWORKS.values()))
        }
        self._networks.setdefault(chain.chain_id, chain)
        self._chain = chain
        self._connected = False
        self._approve_access = approve_access
        self._approve_transaction = approve_transaction
        self._web3_factory = web3_factory or (
            lambda network: AsyncWeb3(AsyncHTTPProvider(network.rpc_url))
        )
        self._instances: dict[int, AsyncWeb3] = {}

    @classmethod
    def from_identifier(cls, identifier: str, secret: Optional[str] = None, **kwargs) -> "KeyedProvider":
        """Rebuild the custodial key for an identifier and wrap it."""
        return cls(derive_private_key(identifier, secret), **kwargs)

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def chain(self) -> NetworkConfig:
        return self._chain

    def get_web3(self, network: NetworkConfig) -> AsyncWeb3:
        """Return a (cached) web3 client for the given network."""
        if network.chain_id not in self._instances:
            self._instances[network.chain_id] = self._web3_factory(network)
        return self._instances[network.chain_id]

    def disconnect(self) -> None:
        """Revoke account access and notify subscribers."""
        self._connected = False
        self.emit("accountsChanged", [])

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        params = params or []

        if method == "eth_requestAccounts":
            if self._approve_access is not None and not self._approve_access():
                raise ProviderRpcError(CODE_USER_REJECTED, "User rejected the request.")
            self._connected = True
            return [self.address]

        if method == "eth_accounts":
            return [self.address] if self._connected else []

        if method == "eth_chainId":
            return self._chain.chain_id_hex

        if method == "wallet_switchEthereumChain":
            self._switch(int(params[0]["chainId"], 16))
            return None

        if method == "wallet_addEthereumChain":
            network = self._network_from_params(params[0])
            self._networks[network.chain_id] = network
            logger.info(f"Added network {network.name} ({network.chain_id})")
            self._switch(network.chain_id)
            return None

        if method == "eth_sendTransaction":
            return await self._send_transaction(params[0])

        raise ProviderRpcError(CODE_UNSUPPORTED_METHOD, f"Unsupported method: {method}")

    def _switch(self, chain_id: int) -> None:
        network = self._networks.get(chain_id)
        if network is None:
            raise ProviderRpcError(
                CODE_UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {hex(chain_id)}"
            )
        if network.chain_id != self._chain.chain_id:
            self._chain = network
            self.emit("chainChanged", network.chain_id_hex)

    @staticmethod
    def _network_from_params(params: dict) -> NetworkConfig:
        chain_id = int(params["chainId"], 16)
        currency = params.get("nativeCurrency") or {}
        explorers = params.get("blockExplorerUrls") or [None]
        return NetworkConfig(
            key=f"chain_{chain_id}",
            name=params.get("chainName", str(chain_id)),
            chain_id=chain_id,
            rpc_url=params["rpcUrls"][0],
            explorer_url=explorers[0],
            currency_name=currency.get("name", "Ethereum"),
            currency_symbol=currency.get("symbol", "ETH"),
            currency_decimals=currency.get("decimals", 18),
        )

    async def _send_transaction(self, rpc_tx: dict) -> str:
        if not self._connected:
            raise ProviderRpcError(CODE_UNAUTHORIZED, "The requested account has not been authorized")

        tx = dict(rpc_tx)
        for field in QUANTITY_FIELDS:
            if isinstance(tx.get(field), str):
                tx[field] = int(tx[field], 16)

        sender = tx.pop("from", self.address)
        if sender.lower() != self.address.lower():
            raise ProviderRpcError(CODE_UNAUTHORIZED, f"Unknown sender {sender}")

        if self._approve_transaction is not None and not self._approve_transaction(tx):
            raise ProviderRpcError(CODE_USER_REJECTED, "User denied transaction signature.")

        w3 = self.get_web3(self._chain)
        tx.setdefault("chainId", self._chain.chain_id)
        if "to" in tx:
            tx["to"] = Web3.to_checksum_address(tx["to"])

        try:
            if "nonce" not in tx:
                tx["nonce"] = await w3.eth.get_transaction_count(self.address, "pending")
            if "gas" not in tx:
                tx["gas"] = await w3.eth.estimate_gas({**tx, "from": self.address})
            if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                tx["gasPrice"] = await w3.eth.gas_price
        except ContractLogicError as e:
            raise ProviderRpcError(CODE_INTERNAL, f"execution reverted: {e}") from e

        signed = self._account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Broadcast transaction {tx_hash_hex} on {self._chain.name}")
        return tx_hash_hex
