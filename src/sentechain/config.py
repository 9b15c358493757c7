"""Application configuration using pydantic-settings.

Covers both halves of SenteChain: the auth backend (database, JWT, address
derivation) and the wallet client (network, contracts, refresh timing).
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sentechain.chains import NetworkConfig, get_network, load_deployment

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "sentechain_secret_key_2024"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=5000, description="API server port")

    # ======================
    # Storage
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/sentechain.db",
        description="Database connection URL",
    )
    storage_backend: str = Field(
        default="auto",
        description="User storage: database, memory, or auto (database with memory fallback)",
    )

    # ======================
    # Auth
    # ======================
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, description="JWT signing secret")
    jwt_expire_days: int = Field(default=30, description="JWT lifetime in days")
    derivation_secret: str = Field(
        default="", description="Secret mixed into identifier-based key derivation"
    )

    # ======================
    # Chain / Contracts
    # ======================
    network: str = Field(default="base_sepolia", description="Target network key")
    rpc_url: str = Field(default="", description="Override RPC URL for the target network")
    token_address: str = Field(default="", description="SenteToken contract address")
    vault_address: str = Field(default="", description="SenteVault contract address")
    contracts_file: str = Field(
        default="", description="Deployment JSON with contract addresses (overrides addresses)"
    )
    token_decimals: int = Field(default=6, description="Token fixed-point decimals")

    # ======================
    # Wallet Client
    # ======================
    refresh_delays: str = Field(
        default="1,3", description="Comma-separated follow-up balance refresh delays (seconds)"
    )
    confirmation_timeout: float = Field(
        default=120.0, description="Seconds to wait for a transaction receipt"
    )
    history_lookback_blocks: int = Field(
        default=10000, description="Blocks scanned for Transfer history"
    )
    backend_url: str = Field(default="http://localhost:5000", description="Auth backend URL")
    local_storage_dir: str = Field(
        default="./data/local_storage", description="Directory for client-side JSON blobs"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def refresh_delay_seconds(self) -> tuple[float, ...]:
        """Parse refresh delays into a tuple of floats."""
        if not self.refresh_delays:
            return ()
        return tuple(float(d.strip()) for d in self.refresh_delays.split(",") if d.strip())

    def get_network(self) -> NetworkConfig:
        """Get the target network, honouring the deployment file and RPC override."""
        if self.contracts_file:
            network = load_deployment(self.contracts_file).network
        else:
            network = get_network(self.network)
        if self.rpc_url:
            network = network.with_rpc_url(self.rpc_url)
        return network

    def get_contract_addresses(self) -> tuple[str, str]:
        """Get (token, vault) addresses from the deployment file or settings."""
        if self.contracts_file:
            deployment = load_deployment(self.contracts_file)
            return deployment.token_address, deployment.vault_address
        return self.token_address, self.vault_address

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        token, vault = self.token_address, self.vault_address
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "storage_backend": self.storage_backend,
            "jwt_secret": "***" if self.jwt_secret else "(not set)",
            "derivation_secret": "***" if self.derivation_secret else "(not set)",
            "network": self.network,
            "contracts": {
                "token": token or "(not set)",
                "vault": vault or "(not set)",
                "file": self.contracts_file or "(not set)",
                "decimals": self.token_decimals,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    if settings.is_production and settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is the development default in production")
    return settings
