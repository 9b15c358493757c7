"""Wallet client: provider adapter, contract facade and refresh coordination."""

from sentechain.wallet.context import WalletContext
from sentechain.wallet.facade import BalanceSnapshot, ContractFacade
from sentechain.wallet.keyed_provider import KeyedProvider
from sentechain.wallet.provider import InjectedProvider, ProviderAdapter
from sentechain.wallet.refresh import RefreshCoordinator, RefreshHandle
from sentechain.wallet.tracker import ConfirmationTracker, PendingTransaction, TxKind, TxStatus

__all__ = [
    "WalletContext",
    "BalanceSnapshot",
    "ContractFacade",
    "KeyedProvider",
    "InjectedProvider",
    "ProviderAdapter",
    "RefreshCoordinator",
    "RefreshHandle",
    "ConfirmationTracker",
    "PendingTransaction",
    "TxKind",
    "TxStatus",
]
