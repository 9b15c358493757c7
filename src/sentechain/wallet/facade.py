"""Contract read/write facade for SenteToken and SenteVault.

Reads go through the context's passive web3 connection and never prompt the
user. Writes look up the signing account from the provider on every call,
build the transaction against the read binding and hand it to the provider
for signing.

Read failures are logged with full context and degrade to a zero value so a
flaky RPC never breaks the dashboard. Writes never retry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from web3.exceptions import ContractLogicError

from sentechain.wallet.context import WalletContext
from sentechain.wallet.errors import (
    CallFailed,
    InvalidAmount,
    ProviderRpcError,
    SavingsLocked,
    WalletError,
)
from sentechain.wallet.tracker import ConfirmationTracker, PendingTransaction, TxKind
from sentechain.wallet.units import AmountLike, checksum, format_units, is_valid_address, parse_units

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass
class BalanceSnapshot:
    """Point-in-time read of a user's vault state. Stale after any write."""

    balance: str
    savings_balance: str
    unlock_time: int
    fetched_at: float = field(default_factory=time.time)

    @property
    def is_locked(self) -> bool:
        return self.unlock_time > self.fetched_at


class ContractFacade:
    """Typed operations over the deployed token and vault."""

    def __init__(self, context: WalletContext, confirmation_timeout: float = 120.0):
        self.context = context
        self.tracker = ConfirmationTracker(context.web3, timeout=confirmation_timeout)

    @property
    def decimals(self) -> int:
        return self.context.decimals

    # ======================
    # Reads
    # ======================

    def _binding(self, name: str) -> tuple[Any, str]:
        if name == "token":
            return self.context.token, self.context.token_address
        return self.context.vault, self.context.vault_address

    async def _deployed(self, contract_name: str, fn_name: str) -> Any:
        """Deployed binding for ``contract_name``; an unreachable node is a CallFailed."""
        contract, address = self._binding(contract_name)
        try:
            await self.context.ensure_deployed(address, contract_name)
        except WalletError:
            raise
        except Exception as e:
            raise CallFailed(fn_name, f"Could not check code at {address}: {e}") from e
        return contract

    async def _call(self, contract_name: str, fn_name: str, *args) -> Any:
        """Strict read: raises ContractError on any failure."""
        contract = await self._deployed(contract_name, fn_name)
        try:
            return await getattr(contract.functions, fn_name)(*args).call()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise CallFailed(fn_name, str(e)) from e

    async def _read(self, contract_name: str, fn_name: str, address: Optional[str], default: Any) -> Any:
        """Lenient read: invalid input or failure yields ``default``."""
        self.context.ensure_valid()
        if not is_valid_address(address):
            logger.debug(f"{fn_name} skipped for invalid address {address!r}")
            return default

        try:
            return await self._call(contract_name, fn_name, checksum(address))
        except Exception as e:
            network = self.context.network
            _, target = self._binding(contract_name)
            logger.error(
                f"{fn_name} failed for {address} on {contract_name} {target} "
                f"network={network.name} chain_id={network.chain_id}: {e}"
            )
            return default

    async def get_balance(self, address: Optional[str]) -> str:
        """Available vault balance in human units, "0" on failure."""
        value = await self._read("vault", "getBalance", address, None)
        return "0" if value is None else format_units(value, self.decimals)

    async def get_savings_balance(self, address: Optional[str]) -> str:
        """Locked savings balance in human units, "0" on failure."""
        value = await self._read("vault", "getSavingsBalance", address, None)
        return "0" if value is None else format_units(value, self.decimals)

    async def get_unlock_time(self, address: Optional[str]) -> int:
        """Savings unlock time in unix seconds, 0 if never locked or on failure."""
        return int(await self._read("vault", "getUnlockTime", address, 0))

    async def is_unlocked(self, address: Optional[str]) -> bool:
        return bool(await self._read("vault", "isSavingsUnlocked", address, False))

    async def can_claim_faucet(self, address: Optional[str]) -> bool:
        return bool(await self._read("token", "canClaimFaucet", address, False))

    async def get_snapshot(self, address: Optional[str]) -> BalanceSnapshot:
        """Read balance, savings and unlock time concurrently."""
        balance, savings, unlock_time = await asyncio.gather(
            self.get_balance(address),
            self.get_savings_balance(address),
            self.get_unlock_time(address),
        )
        return BalanceSnapshot(balance=balance, savings_balance=savings, unlock_time=unlock_time)

    # ======================
    # Writes
    # ======================

    async def _signer(self) -> str:
        """Fresh signing account from the provider, on the contracts' network."""
        self.context.ensure_valid()
        adapter = self.context.adapter
        account = await adapter.current_account()
        if account is None:
            account = await adapter.connect()
        await adapter.require_network(self.context.network)
        return account

    async def _send(self, kind: TxKind, contract_name: str, fn_name: str, *args) -> PendingTransaction:
        account = await self._signer()
        contract = await self._deployed(contract_name, fn_name)

        try:
            tx = await getattr(contract.functions, fn_name)(*args).build_transaction({"from": account})
        except ContractLogicError as e:
            logger.error(f"{fn_name} would revert for {account}: {e}")
            raise CallFailed(fn_name, str(e)) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{fn_name} could not be built for {account}: {e}")
            raise CallFailed(fn_name, str(e)) from e

        try:
            tx_hash = await self.context.adapter.send_transaction(tx)
        except ProviderRpcError as e:
            raise CallFailed(fn_name, str(e)) from e

        logger.info(f"{kind.value} submitted by {account}: {tx_hash}")
        return PendingTransaction(hash=tx_hash, kind=kind)

    async def transfer(self, to: str, amount: AmountLike) -> PendingTransaction:
        """Transfer vault balance to another address.

        Raises:
            InvalidAddress: Malformed recipient
            InvalidAmount: Amount not positive or too precise
        """
        recipient = checksum(to)
        value = parse_units(amount, self.decimals)
        return await self._send(TxKind.TRANSFER, "vault", "transfer", recipient, value)

    async def approve(self, amount: AmountLike) -> PendingTransaction:
        """Allow the vault to pull ``amount`` tokens."""
        value = parse_units(amount, self.decimals)
        return await self._send(TxKind.APPROVE, "token", "approve", self.context.vault_address, value)

    async def deposit(self, amount: AmountLike) -> PendingTransaction:
        """Move approved tokens into the vault."""
        value = parse_units(amount, self.decimals)
        return await self._send(TxKind.DEPOSIT, "vault", "deposit", value)

    async def approve_and_deposit(self, amount: AmountLike) -> tuple[PendingTransaction, PendingTransaction]:
        """Approve then deposit, waiting for the approval to be mined in between.

        Returns:
            (approve, deposit) transaction handles
        """
        value = parse_units(amount, self.decimals)
        approval = await self._send(TxKind.APPROVE, "token", "approve", self.context.vault_address, value)
        await self.tracker.wait(approval)
        deposit = await self._send(TxKind.DEPOSIT, "vault", "deposit", value)
        return approval, deposit

    async def withdraw(self, amount: AmountLike) -> PendingTransaction:
        """Withdraw available vault balance back to the wallet as tokens."""
        value = parse_units(amount, self.decimals)
        return await self._send(TxKind.WITHDRAW, "vault", "withdraw", value)

    async def lock_savings(self, amount: AmountLike, days: int) -> PendingTransaction:
        """Lock ``amount`` in savings for ``days`` days."""
        value = parse_units(amount, self.decimals)
        if isinstance(days, bool) or int(days) != days or days < 1:
            raise InvalidAmount("Lock period must be at least 1 day")
        return await self._send(TxKind.LOCK, "vault", "saveToVault", value, int(days) * SECONDS_PER_DAY)

    async def withdraw_savings(self, amount: AmountLike) -> PendingTransaction:
        """Withdraw unlocked savings.

        Raises:
            SavingsLocked: Unlock time not reached; nothing is submitted
        """
        value = parse_units(amount, self.decimals)
        account = await self._signer()
        if not await self._call("vault", "isSavingsUnlocked", account):
            unlock_time = int(await self._call("vault", "getUnlockTime", account))
            logger.info(f"Savings withdrawal blocked for {account}: locked until {unlock_time}")
            raise SavingsLocked(unlock_time)
        return await self._send(TxKind.WITHDRAW_SAVINGS, "vault", "withdrawFromVault", value)

    async def claim_faucet(self) -> PendingTransaction:
        return await self._send(TxKind.FAUCET, "token", "claimFaucet")

    async def wait_for_confirmation(self, tx: PendingTransaction) -> PendingTransaction:
        """Wait until ``tx`` is mined.

        Raises:
            CallFailed: The transaction reverted or was not mined in time
        """
        return await self.tracker.wait(tx)

