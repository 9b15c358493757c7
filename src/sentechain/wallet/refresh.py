"""Balance refresh scheduling after wallet writes.

After a write is accepted the displayed balances are stale. The coordinator
refreshes immediately, again after each configured delay, and once more when
the transaction is confirmed (if a tracker is available).

Every refresh is numbered when it starts. A result is applied only if no
newer refresh has been applied already, so a slow early read can never
overwrite a fresher one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from sentechain.wallet.tracker import ConfirmationTracker, PendingTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshHandle:
    """Scheduled refreshes belonging to one write."""

    def __init__(self, tasks: list[asyncio.Task]):
        self.tasks = tasks

    @property
    def done(self) -> bool:
        return all(task.done() for task in self.tasks)

    def cancel(self) -> None:
        """Abandon refreshes that have not run yet."""
        for task in self.tasks:
            if not task.done():
                task.cancel()

    async def wait(self) -> None:
        """Wait for every scheduled refresh to finish or be cancelled."""
        await asyncio.gather(*self.tasks, return_exceptions=True)


class RefreshCoordinator(Generic[T]):
    """Runs ordered, discardable refreshes of some fetched state."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
        delays: tuple[float, ...] = (1.0, 3.0),
        tracker: Optional[ConfirmationTracker] = None,
    ):
        """Initialize the coordinator.

        Args:
            fetch: Reads fresh state (e.g. a BalanceSnapshot)
            apply: Publishes a fetched state to the UI
            delays: Follow-up refresh delays in seconds
            tracker: Confirms transactions for a final refresh
        """
        self.fetch = fetch
        self.apply = apply
        self.delays = delays
        self.tracker = tracker
        self._next_seq = 0
        self._applied_seq = -1
        self._handles: list[RefreshHandle] = []
        self._closed = False

    @property
    def applied_seq(self) -> int:
        """Sequence number of the most recently applied refresh (-1 if none)."""
        return self._applied_seq

    async def refresh(self) -> bool:
        """Fetch and apply once.

        Returns:
            True if the result was applied, False if it was stale or failed
        """
        seq = self._next_seq
        self._next_seq += 1

        try:
            state = await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Refresh #{seq} failed: {e}")
            return False

        if seq < self._applied_seq:
            logger.debug(f"Discarding stale refresh #{seq} (already applied #{self._applied_seq})")
            return False

        self._applied_seq = seq
        self.apply(state)
        return True

    async def _delayed(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.refresh()

    async def _after_confirmation(self, tx: PendingTransaction) -> None:
        await self.tracker.track(tx)
        await self.refresh()

    def after_write(self, tx: Optional[PendingTransaction] = None) -> RefreshHandle:
        """Schedule the refresh sequence for a write that was just accepted.

        Returns:
            Handle that can cancel the remaining refreshes
        """
        if self._closed:
            raise RuntimeError("Refresh coordinator is closed")

        tasks = [asyncio.ensure_future(self.refresh())]
        tasks.extend(asyncio.ensure_future(self._delayed(delay)) for delay in self.delays)
        if tx is not None and self.tracker is not None:
            tasks.append(asyncio.ensure_future(self._after_confirmation(tx)))

        handle = RefreshHandle(tasks)
        self._handles = [h for h in self._handles if not h.done]
        self._handles.append(handle)
        if tx is not None:
            logger.debug(f"Scheduled {len(tasks)} refreshes after {tx.kind.value} {tx.hash}")
        return handle

    def cancel_pending(self) -> None:
        """Cancel every refresh not yet run."""
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def close(self) -> None:
        """Cancel pending refreshes and refuse new ones."""
        self.cancel_pending()
        self._closed = True
