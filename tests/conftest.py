"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DERIVATION_SECRET"] = ""
os.environ["DEBUG"] = "true"

from eth_utils import to_checksum_address

from sentechain.chains import BASE_SEPOLIA
from sentechain.storage.memory import MemoryUserStore
from sentechain.storage.models import Base
from sentechain.storage.sql import SqlUserStore
from sentechain.utils.locks import clear_identifier_locks
from sentechain.wallet.context import WalletContext
from sentechain.wallet.errors import CODE_UNRECOGNIZED_CHAIN, ProviderRpcError
from sentechain.wallet.provider import InjectedProvider, ProviderAdapter

TOKEN_ADDRESS = to_checksum_address("0x" + "1" * 40)
VAULT_ADDRESS = to_checksum_address("0x" + "2" * 40)
USER_ADDRESS = to_checksum_address("0x" + "ab" * 20)
OTHER_ADDRESS = to_checksum_address("0x" + "cd" * 20)


# ======================
# Storage
# ======================


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine; every connection sees the same database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'users.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_factory(db_engine) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to the test engine."""
    yield async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def sql_store(db_session_factory) -> SqlUserStore:
    return SqlUserStore(db_session_factory)


@pytest.fixture
def memory_store() -> MemoryUserStore:
    return MemoryUserStore()


@pytest.fixture(autouse=True)
def reset_locks():
    """Identifier locks are bound to the loop that created them."""
    clear_identifier_locks()
    yield
    clear_identifier_locks()


# ======================
# Provider double
# ======================


class FakeProvider(InjectedProvider):
    """Scriptable EIP-1193 provider that records every request."""

    def __init__(
        self,
        accounts: Optional[list[str]] = None,
        chain_id: int = BASE_SEPOLIA.chain_id,
        known_chains: Optional[set[int]] = None,
    ):
        super().__init__()
        self.accounts = [USER_ADDRESS] if accounts is None else accounts
        self.chain_id = chain_id
        self.known_chains = known_chains if known_chains is not None else {BASE_SEPOLIA.chain_id, 1}
        self.authorized = False
        self.errors: dict[str, ProviderRpcError] = {}
        self.calls: list[tuple[str, Any]] = []
        self.sent: list[dict] = []
        self.switch_delay = 0.0

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def set_chain(self, chain_id: int) -> None:
        self.chain_id = chain_id
        self.emit("chainChanged", hex(chain_id))

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        self.calls.append((method, params))
        if method in self.errors:
            raise self.errors[method]

        if method == "eth_requestAccounts":
            self.authorized = True
            return list(self.accounts)
        if method == "eth_accounts":
            return list(self.accounts) if self.authorized else []
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_delay:
                await asyncio.sleep(self.switch_delay)
            target = int(params[0]["chainId"], 16)
            if target not in self.known_chains:
                raise ProviderRpcError(CODE_UNRECOGNIZED_CHAIN, "Unrecognized chain")
            self.set_chain(target)
            return None
        if method == "wallet_addEthereumChain":
            target = int(params[0]["chainId"], 16)
            self.known_chains.add(target)
            self.set_chain(target)
            return None
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            return "0x" + f"{len(self.sent):064x}"
        raise ProviderRpcError(4200, f"Unsupported method: {method}")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_factory():
    """Build FakeProvider instances with custom arguments."""
    return FakeProvider


# ======================
# Web3 / contracts double
# ======================


def set_call(contract: MagicMock, fn_name: str, value: Any = None, side_effect: Any = None) -> AsyncMock:
    """Make ``contract.functions.<fn_name>(...).call()`` resolve to ``value``."""
    call = AsyncMock(return_value=value, side_effect=side_effect)
    getattr(contract.functions, fn_name).return_value.call = call
    return call


def set_build(contract: MagicMock, fn_name: str, tx: Optional[dict] = None, side_effect: Any = None) -> AsyncMock:
    """Make ``contract.functions.<fn_name>(...).build_transaction()`` resolve to ``tx``."""
    build = AsyncMock(
        return_value=tx or {"to": contract.address, "data": "0x" + fn_name.encode().hex(), "gas": 50000},
        side_effect=side_effect,
    )
    getattr(contract.functions, fn_name).return_value.build_transaction = build
    return build


@pytest.fixture
def mock_web3() -> MagicMock:
    """AsyncWeb3 double with token and vault contract mocks attached."""
    w3 = MagicMock()
    token = MagicMock()
    token.address = TOKEN_ADDRESS
    vault = MagicMock()
    vault.address = VAULT_ADDRESS

    def contract(address, abi):
        return token if address == TOKEN_ADDRESS else vault

    w3.eth.contract.side_effect = contract
    w3.eth.get_code = AsyncMock(return_value=b"\x60\x80\x60\x40")
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 1, "blockNumber": 42})
    w3.token = token
    w3.vault = vault
    return w3


@pytest.fixture
def wallet_context(fake_provider, mock_web3) -> WalletContext:
    return WalletContext(
        network=BASE_SEPOLIA,
        token_address=TOKEN_ADDRESS,
        vault_address=VAULT_ADDRESS,
        adapter=ProviderAdapter(fake_provider),
        web3=mock_web3,
        decimals=6,
    )
