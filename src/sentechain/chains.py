"""Network definitions for the SenteChain contracts.

The token and vault are deployed either on Base Sepolia (public testnet) or on
a local Hardhat node. Both are EVM chains, so the same ABI and address format
apply to each.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    """Configuration for an EVM network."""

    key: str
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: Optional[str] = None
    currency_name: str = "Ethereum"
    currency_symbol: str = "ETH"
    currency_decimals: int = 18

    @property
    def chain_id_hex(self) -> str:
        """Chain ID as the lowercase hex string providers report."""
        return hex(self.chain_id)

    def with_rpc_url(self, rpc_url: str) -> "NetworkConfig":
        """Return a copy pointing at a different RPC endpoint."""
        return NetworkConfig(
            key=self.key,
            name=self.name,
            chain_id=self.chain_id,
            rpc_url=rpc_url,
            explorer_url=self.explorer_url,
            currency_name=self.currency_name,
            currency_symbol=self.currency_symbol,
            currency_decimals=self.currency_decimals,
        )

    def add_chain_params(self) -> dict:
        """Build the wallet_addEthereumChain payload for this network."""
        params = {
            "chainId": self.chain_id_hex,
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.currency_name,
                "symbol": self.currency_symbol,
                "decimals": self.currency_decimals,
            },
            "rpcUrls": [self.rpc_url],
        }
        if self.explorer_url:
            params["blockExplorerUrls"] = [self.explorer_url]
        return params

    def manual_setup_details(self) -> dict:
        """Values a user needs to add the network to a wallet by hand."""
        return {
            "networkName": self.name,
            "rpcUrl": self.rpc_url,
            "chainId": self.chain_id,
            "chainIdHex": self.chain_id_hex,
            "currencySymbol": self.currency_symbol,
            "blockExplorer": self.explorer_url,
        }


# ======================
# Network Configurations
# ======================

BASE_SEPOLIA = NetworkConfig(
    key="base_sepolia",
    name="Base Sepolia",
    chain_id=84532,
    rpc_url="https://sepolia.base.org",
    explorer_url="https://sepolia.basescan.org",
)

HARDHAT_LOCAL = NetworkConfig(
    key="hardhat_local",
    name="Hardhat Local",
    chain_id=1337,
    rpc_url="http://127.0.0.1:8545",
)

NETWORKS: dict[str, NetworkConfig] = {
    BASE_SEPOLIA.key: BASE_SEPOLIA,
    HARDHAT_LOCAL.key: HARDHAT_LOCAL,
}

# Hardhat names its local network "localhost" in deployment output
_NETWORK_ALIASES = {
    "localhost": HARDHAT_LOCAL.key,
    "hardhat": HARDHAT_LOCAL.key,
    "basesepolia": BASE_SEPOLIA.key,
    "base-sepolia": BASE_SEPOLIA.key,
}


def get_network(key: str) -> NetworkConfig:
    """Get a network by key. Raises ``KeyError`` if not found."""
    normalized = _NETWORK_ALIASES.get(key.lower(), key.lower())
    if normalized not in NETWORKS:
        raise KeyError(f"Unknown network '{key}'. Available: {list(NETWORKS)}")
    return NETWORKS[normalized]


def get_network_by_chain_id(chain_id: int) -> Optional[NetworkConfig]:
    """Look up a known network by numeric chain ID."""
    for network in NETWORKS.values():
        if network.chain_id == chain_id:
            return network
    return None


@dataclass(frozen=True)
class Deployment:
    """Contract addresses produced by the deploy script."""

    network: NetworkConfig
    token_address: str
    vault_address: str


def load_deployment(path: str) -> Deployment:
    """Load a deployment file of the form written by the contract deploy script.

    Expected shape::

        {"network": "baseSepolia", "chainId": "84532",
         "contracts": {"SenteToken": "0x...", "SenteVault": "0x..."}}

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If addresses are missing or the chain is unknown
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))

    contracts = data.get("contracts") or {}
    token = contracts.get("SenteToken")
    vault = contracts.get("SenteVault")
    if not token or not vault:
        raise ValueError(
            "Contract addresses not found in deployment file. Please deploy contracts first."
        )

    network = None
    if data.get("chainId") is not None:
        network = get_network_by_chain_id(int(data["chainId"]))
    if network is None and data.get("network"):
        try:
            network = get_network(data["network"])
        except KeyError:
            network = None
    if network is None:
        raise ValueError(f"Unsupported chain in deployment file: {data.get('chainId')}")

    logger.info(f"Loaded deployment for {network.name}: token={token} vault={vault}")
    return Deployment(network=network, token_address=token, vault_address=vault)
