"""Dashboard controller.

Wires the session, provider adapter, contract facade and refresh coordinator
together into the state a dashboard view renders. Every write is handed to
the refresh coordinator so balances converge after the transaction lands.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sentechain.client.local_storage import LocalStorage
from sentechain.client.session import SessionStore, UserSession
from sentechain.config import Settings
from sentechain.wallet.context import WalletContext
from sentechain.wallet.errors import WalletError
from sentechain.wallet.facade import BalanceSnapshot, ContractFacade
from sentechain.wallet.history import TransferHistory, TransferRecord
from sentechain.wallet.provider import InjectedProvider, ProviderAdapter
from sentechain.wallet.refresh import RefreshCoordinator
from sentechain.wallet.tracker import PendingTransaction
from sentechain.wallet.units import AmountLike

logger = logging.getLogger(__name__)


@dataclass
class DashboardState:
    """What the dashboard shows."""

    session: Optional[UserSession] = None
    account: Optional[str] = None
    wallet_connected: bool = False
    snapshot: Optional[BalanceSnapshot] = None
    reload_required: bool = False
    transactions: list[PendingTransaction] = field(default_factory=list)

    @property
    def logged_in(self) -> bool:
        return self.session is not None


class DashboardController:
    """State and actions behind the dashboard view."""

    def __init__(
        self,
        settings: Settings,
        storage: LocalStorage,
        provider: Optional[InjectedProvider] = None,
        context_factory: Optional[Callable[[ProviderAdapter], WalletContext]] = None,
    ):
        """Initialize the controller.

        Args:
            settings: Application settings (network, contracts, refresh delays)
            storage: Device-local storage holding the session
            provider: Injected wallet provider, if any
            context_factory: Builds a WalletContext for the adapter
        """
        self.settings = settings
        self.sessions = SessionStore(storage)
        self.adapter = ProviderAdapter(provider)
        self._context_factory = context_factory or (
            lambda adapter: WalletContext.from_settings(settings, adapter)
        )
        self.state = DashboardState()
        self.context: Optional[WalletContext] = None
        self.facade: Optional[ContractFacade] = None
        self.refresher: Optional[RefreshCoordinator[BalanceSnapshot]] = None
        self._unsubscribe: list[Callable[[], None]] = []

    # ======================
    # Session
    # ======================

    def restore_session(self) -> Optional[UserSession]:
        """Load the stored session; None means the user must log in."""
        self.state.session = self.sessions.load()
        return self.state.session

    def start_session(self, session: UserSession) -> None:
        """Persist a session obtained from a successful login."""
        self.sessions.save(session)
        self.state.session = session

    async def logout(self) -> None:
        """Clear the local session and abandon pending refreshes."""
        self._teardown()
        self.sessions.clear()
        self.adapter.disconnect()
        self.state = DashboardState()
        logger.info("Logged out")

    # ======================
    # Wallet
    # ======================

    async def connect_wallet(self) -> str:
        """Connect the provider, switch to the contracts' network and load balances.

        Raises:
            ProviderUnavailable: No provider injected
            UserRejected: Access or network switch declined
        """
        account = await self.adapter.connect()
        network = self.settings.get_network()
        await self.adapter.ensure_network(network)

        self._teardown()
        self.context = self._context_factory(self.adapter)
        self.facade = ContractFacade(self.context, confirmation_timeout=self.settings.confirmation_timeout)
        self.refresher = RefreshCoordinator(
            fetch=self._fetch_snapshot,
            apply=self._apply_snapshot,
            delays=self.settings.refresh_delay_seconds,
            tracker=self.facade.tracker,
        )
        self._unsubscribe = [
            self.adapter.on_account_changed(self._on_account_changed),
            self.adapter.on_network_changed(self._on_network_changed),
        ]

        self.state.account = account
        self.state.wallet_connected = True
        self.state.reload_required = False
        await self.refresher.refresh()
        return account

    async def reload(self) -> str:
        """Rebuild everything after a chain change."""
        logger.info("Reloading wallet state")
        return await self.connect_wallet()

    def _teardown(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        if self.refresher is not None:
            self.refresher.close()
            self.refresher = None

    def _on_account_changed(self, account: Optional[str]) -> None:
        self.state.account = account
        self.state.wallet_connected = account is not None
        self.state.snapshot = None
        if account is not None and self.refresher is not None:
            self.refresher.after_write()

    def _on_network_changed(self, chain_id: int) -> None:
        logger.info(f"Wallet switched to chain {chain_id}; reload required")
        if self.context is not None:
            self.context.invalidate(chain_id)
        if self.refresher is not None:
            self.refresher.cancel_pending()
        self.state.reload_required = True

    @property
    def display_address(self) -> Optional[str]:
        if self.state.account:
            return self.state.account
        return self.state.session.wallet_address if self.state.session else None

    async def _fetch_snapshot(self) -> BalanceSnapshot:
        return await self._require_facade().get_snapshot(self.display_address)

    def _apply_snapshot(self, snapshot: BalanceSnapshot) -> None:
        self.state.snapshot = snapshot

    def _require_facade(self) -> ContractFacade:
        if self.facade is None:
            raise WalletError("Wallet not connected")
        return self.facade

    async def refresh(self) -> Optional[BalanceSnapshot]:
        """Refresh balances now."""
        if self.refresher is None:
            return None
        await self.refresher.refresh()
        return self.state.snapshot

    async def history(self, direction: str = "all") -> list[TransferRecord]:
        """Token transfers for the displayed address, newest first."""
        if self.context is None:
            raise WalletError("Wallet not connected")
        history = TransferHistory(self.context, lookback_blocks=self.settings.history_lookback_blocks)
        return await history.fetch(self.display_address, direction)

    # ======================
    # Actions
    # ======================

    def _submitted(self, tx: PendingTransaction) -> PendingTransaction:
        self.state.transactions.append(tx)
        if self.refresher is not None:
            self.refresher.after_write(tx)
        return tx

    async def send(self, to: str, amount: AmountLike) -> PendingTransaction:
        return self._submitted(await self._require_facade().transfer(to, amount))

    async def deposit(self, amount: AmountLike) -> PendingTransaction:
        """Approve and deposit; returns the deposit transaction."""
        approval, deposit = await self._require_facade().approve_and_deposit(amount)
        self.state.transactions.append(approval)
        return self._submitted(deposit)

    async def withdraw(self, amount: AmountLike) -> PendingTransaction:
        return self._submitted(await self._require_facade().withdraw(amount))

    async def lock(self, amount: AmountLike, days: int) -> PendingTransaction:
        return self._submitted(await self._require_facade().lock_savings(amount, days))

    async def withdraw_savings(self, amount: AmountLike) -> PendingTransaction:
        return self._submitted(await self._require_facade().withdraw_savings(amount))

    async def claim_faucet(self) -> PendingTransaction:
        return self._submitted(await self._require_facade().claim_faucet())
