"""Transaction confirmation tracking.

A submitted transaction moves SUBMITTED -> PENDING -> CONFIRMED or FAILED,
driven by its receipt rather than by timers.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from sentechain.wallet.errors import CallFailed

logger = logging.getLogger(__name__)


class TxKind(str, Enum):
    """Kind of wallet write."""

    TRANSFER = "transfer"
    APPROVE = "approve"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    LOCK = "lock"
    WITHDRAW_SAVINGS = "withdraw_savings"
    FAUCET = "faucet"


class TxStatus(str, Enum):
    """Confirmation state of a submitted transaction."""

    SUBMITTED = "submitted"    # Accepted by the provider
    PENDING = "pending"        # Waiting for a receipt
    CONFIRMED = "confirmed"    # Mined with status 1
    FAILED = "failed"          # Reverted or timed out


_TRANSITIONS = {
    TxStatus.SUBMITTED: {TxStatus.PENDING, TxStatus.FAILED},
    TxStatus.PENDING: {TxStatus.CONFIRMED, TxStatus.FAILED},
    TxStatus.CONFIRMED: set(),
    TxStatus.FAILED: set(),
}


@dataclass
class PendingTransaction:
    """Handle for a submitted write."""

    hash: str
    kind: TxKind
    submitted_at: float = field(default_factory=time.time)
    status: TxStatus = TxStatus.SUBMITTED
    block_number: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status in (TxStatus.CONFIRMED, TxStatus.FAILED)

    def advance(self, status: TxStatus) -> None:
        """Move to ``status``.

        Raises:
            ValueError: If the transition is not allowed
        """
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Cannot move transaction {self.hash} from {self.status.value} to {status.value}")
        self.status = status

    def confirm(self, block_number: int) -> None:
        self.advance(TxStatus.CONFIRMED)
        self.block_number = block_number

    def fail(self, error: str) -> None:
        self.advance(TxStatus.FAILED)
        self.error = error


class ConfirmationTracker:
    """Waits for receipts and updates PendingTransaction state."""

    def __init__(self, web3: AsyncWeb3, timeout: float = 120.0, poll_interval: float = 1.0):
        self.web3 = web3
        self.timeout = timeout
        self.poll_interval = poll_interval

    async def track(self, tx: PendingTransaction) -> PendingTransaction:
        """Wait for ``tx`` to be mined and record the outcome.

        Already-final transactions are returned unchanged. Receipt errors are
        recorded on the transaction rather than raised.
        """
        if tx.is_final:
            return tx
        if tx.status == TxStatus.SUBMITTED:
            tx.advance(TxStatus.PENDING)

        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(
                tx.hash, timeout=self.timeout, poll_latency=self.poll_interval
            )
        except TimeExhausted:
            logger.warning(f"No receipt for {tx.kind.value} {tx.hash} after {self.timeout}s")
            tx.fail(f"Not mined within {self.timeout}s")
            return tx
        except Exception as e:
            logger.error(f"Receipt lookup failed for {tx.hash}: {e}")
            tx.fail(str(e))
            return tx

        if receipt["status"] == 1:
            tx.confirm(receipt["blockNumber"])
            logger.info(f"{tx.kind.value} {tx.hash} confirmed in block {tx.block_number}")
        else:
            tx.fail("Transaction reverted")
            logger.warning(f"{tx.kind.value} {tx.hash} reverted in block {receipt['blockNumber']}")
        return tx

    async def wait(self, tx: PendingTransaction) -> PendingTransaction:
        """Like ``track`` but raises CallFailed unless the transaction confirmed."""
        await self.track(tx)
        if tx.status != TxStatus.CONFIRMED:
            raise CallFailed(tx.kind.value, tx.error or "Transaction failed")
        return tx
