"""Tests for the contract facade, confirmation tracking, history and setup checks."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from sentechain.chains import BASE_SEPOLIA
from sentechain.wallet.context import WalletContext
from sentechain.wallet.errors import (
    CallFailed,
    ContractUnavailable,
    InvalidAddress,
    InvalidAmount,
    NetworkMismatch,
    ProviderRpcError,
    SavingsLocked,
    UserRejected,
)
from sentechain.wallet.facade import SECONDS_PER_DAY, BalanceSnapshot, ContractFacade
from sentechain.wallet.history import TransferHistory
from sentechain.wallet.provider import ProviderAdapter
from sentechain.wallet.setup_check import run_setup_check
from sentechain.wallet.tracker import ConfirmationTracker, PendingTransaction, TxKind, TxStatus

from conftest import OTHER_ADDRESS, TOKEN_ADDRESS, USER_ADDRESS, VAULT_ADDRESS, set_build, set_call


@pytest.fixture
def facade(wallet_context) -> ContractFacade:
    return ContractFacade(wallet_context, confirmation_timeout=5)


class TestWalletContext:
    """Tests for context validity and contract checks."""

    def test_addresses_checksummed(self, fake_provider, mock_web3):
        context = WalletContext(
            BASE_SEPOLIA, TOKEN_ADDRESS.lower(), VAULT_ADDRESS.lower(),
            ProviderAdapter(fake_provider), web3=mock_web3,
        )

        assert context.token_address == TOKEN_ADDRESS
        assert context.vault_address == VAULT_ADDRESS

    def test_rejects_malformed_address(self, fake_provider, mock_web3):
        with pytest.raises(InvalidAddress):
            WalletContext(BASE_SEPOLIA, "0x123", VAULT_ADDRESS, ProviderAdapter(fake_provider), web3=mock_web3)

    def test_invalidate(self, wallet_context):
        assert wallet_context.token is wallet_context.token

        wallet_context.invalidate(1)

        assert not wallet_context.is_valid
        with pytest.raises(NetworkMismatch) as exc_info:
            wallet_context.vault
        assert exc_info.value.actual_chain_id == 1

    @pytest.mark.asyncio
    async def test_deployment_check_cached(self, wallet_context, mock_web3):
        await wallet_context.ensure_deployed(VAULT_ADDRESS, "vault")
        await wallet_context.ensure_deployed(VAULT_ADDRESS, "vault")

        mock_web3.eth.get_code.assert_awaited_once_with(VAULT_ADDRESS)

    @pytest.mark.asyncio
    async def test_missing_code(self, wallet_context, mock_web3):
        mock_web3.eth.get_code.return_value = b""

        with pytest.raises(ContractUnavailable) as exc_info:
            await wallet_context.ensure_deployed(VAULT_ADDRESS, "vault")
        assert exc_info.value.address == VAULT_ADDRESS


class TestReads:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_balances(self, facade, mock_web3):
        balance = set_call(mock_web3.vault, "getBalance", 100_000_000)
        set_call(mock_web3.vault, "getSavingsBalance", 12_500_000)

        assert await facade.get_balance(USER_ADDRESS.lower()) == "100.0"
        assert await facade.get_savings_balance(USER_ADDRESS) == "12.5"
        mock_web3.vault.functions.getBalance.assert_called_with(USER_ADDRESS)
        balance.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_address_reads_zero(self, facade, mock_web3):
        set_call(mock_web3.vault, "getBalance", 100_000_000)

        assert await facade.get_balance("not-an-address") == "0"
        assert await facade.get_balance(None) == "0"
        mock_web3.vault.functions.getBalance.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_reads_degrade(self, facade, mock_web3):
        set_call(mock_web3.vault, "getBalance", side_effect=Web3Exception("rpc down"))
        set_call(mock_web3.vault, "getUnlockTime", side_effect=Web3Exception("rpc down"))
        set_call(mock_web3.vault, "isSavingsUnlocked", side_effect=Web3Exception("rpc down"))

        assert await facade.get_balance(USER_ADDRESS) == "0"
        assert await facade.get_unlock_time(USER_ADDRESS) == 0
        assert await facade.is_unlocked(USER_ADDRESS) is False

    @pytest.mark.asyncio
    async def test_undeployed_contract_reads_zero(self, facade, mock_web3):
        mock_web3.eth.get_code.return_value = b""
        set_call(mock_web3.vault, "getBalance", 100_000_000)

        assert await facade.get_balance(USER_ADDRESS) == "0"

    @pytest.mark.asyncio
    async def test_faucet_eligibility(self, facade, mock_web3):
        set_call(mock_web3.token, "canClaimFaucet", True)

        assert await facade.can_claim_faucet(USER_ADDRESS) is True

    @pytest.mark.asyncio
    async def test_snapshot(self, facade, mock_web3):
        set_call(mock_web3.vault, "getBalance", 5_000_000)
        set_call(mock_web3.vault, "getSavingsBalance", 0)
        set_call(mock_web3.vault, "getUnlockTime", 4_000_000_000)

        snapshot = await facade.get_snapshot(USER_ADDRESS)

        assert snapshot.balance == "5.0"
        assert snapshot.savings_balance == "0.0"
        assert snapshot.unlock_time == 4_000_000_000
        assert snapshot.is_locked

    def test_snapshot_unlocked(self):
        assert not BalanceSnapshot("1.0", "1.0", unlock_time=0).is_locked

    @pytest.mark.asyncio
    async def test_reads_after_chain_change(self, facade, wallet_context):
        wallet_context.invalidate(1)

        with pytest.raises(NetworkMismatch):
            await facade.get_balance(USER_ADDRESS)


class TestWrites:
    """Tests for write operations."""

    @pytest.mark.asyncio
    async def test_transfer(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.vault, "transfer", {"to": VAULT_ADDRESS, "data": "0xa9059cbb", "gas": 70000})

        tx = await facade.transfer(OTHER_ADDRESS.lower(), "5")

        mock_web3.vault.functions.transfer.assert_called_once_with(OTHER_ADDRESS, 5_000_000)
        build = mock_web3.vault.functions.transfer.return_value.build_transaction
        build.assert_awaited_once_with({"from": USER_ADDRESS})
        assert tx.kind == TxKind.TRANSFER
        assert tx.status == TxStatus.SUBMITTED
        assert tx.hash == "0x" + "0" * 63 + "1"
        assert fake_provider.sent[0]["gas"] == hex(70000)

    @pytest.mark.asyncio
    async def test_transfer_validates_before_prompting(self, facade, fake_provider):
        with pytest.raises(InvalidAddress):
            await facade.transfer("0xnope", "5")
        with pytest.raises(InvalidAmount):
            await facade.transfer(OTHER_ADDRESS, "0")

        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_uses_authorized_account_without_prompt(self, facade, fake_provider, mock_web3):
        fake_provider.authorized = True
        set_build(mock_web3.vault, "withdraw")

        await facade.withdraw("1.5")

        assert "eth_requestAccounts" not in fake_provider.methods()
        mock_web3.vault.functions.withdraw.assert_called_once_with(1_500_000)

    @pytest.mark.asyncio
    async def test_approve_targets_vault(self, facade, mock_web3):
        set_build(mock_web3.token, "approve")

        tx = await facade.approve("10")

        mock_web3.token.functions.approve.assert_called_once_with(VAULT_ADDRESS, 10_000_000)
        assert tx.kind == TxKind.APPROVE

    @pytest.mark.asyncio
    async def test_approve_and_deposit(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.token, "approve")
        set_build(mock_web3.vault, "deposit")

        approval, deposit = await facade.approve_and_deposit("10")

        assert approval.status == TxStatus.CONFIRMED
        assert approval.block_number == 42
        assert deposit.kind == TxKind.DEPOSIT
        assert deposit.status == TxStatus.SUBMITTED
        assert len(fake_provider.sent) == 2
        mock_web3.vault.functions.deposit.assert_called_once_with(10_000_000)

    @pytest.mark.asyncio
    async def test_deposit_skipped_when_approval_reverts(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.token, "approve")
        set_build(mock_web3.vault, "deposit")
        mock_web3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 42}

        with pytest.raises(CallFailed):
            await facade.approve_and_deposit("10")

        assert len(fake_provider.sent) == 1

    @pytest.mark.asyncio
    async def test_lock_converts_days(self, facade, mock_web3):
        set_build(mock_web3.vault, "saveToVault")

        tx = await facade.lock_savings("10", 30)

        mock_web3.vault.functions.saveToVault.assert_called_once_with(10_000_000, 30 * SECONDS_PER_DAY)
        assert tx.kind == TxKind.LOCK

    @pytest.mark.parametrize("days", [0, -3, 1.5, True])
    @pytest.mark.asyncio
    async def test_lock_rejects_bad_period(self, facade, fake_provider, days):
        with pytest.raises(InvalidAmount, match="at least 1 day"):
            await facade.lock_savings("10", days)

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_withdraw_savings_while_locked(self, facade, fake_provider, mock_web3):
        set_call(mock_web3.vault, "isSavingsUnlocked", False)
        set_call(mock_web3.vault, "getUnlockTime", 1_900_000_000)
        set_build(mock_web3.vault, "withdrawFromVault")

        with pytest.raises(SavingsLocked) as exc_info:
            await facade.withdraw_savings("1")

        assert exc_info.value.unlock_time == 1_900_000_000
        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_withdraw_savings_when_unlocked(self, facade, fake_provider, mock_web3):
        set_call(mock_web3.vault, "isSavingsUnlocked", True)
        set_build(mock_web3.vault, "withdrawFromVault")

        tx = await facade.withdraw_savings("1")

        assert tx.kind == TxKind.WITHDRAW_SAVINGS
        mock_web3.vault.functions.withdrawFromVault.assert_called_once_with(1_000_000)

    @pytest.mark.asyncio
    async def test_claim_faucet(self, facade, mock_web3):
        set_build(mock_web3.token, "claimFaucet")

        tx = await facade.claim_faucet()

        assert tx.kind == TxKind.FAUCET
        mock_web3.token.functions.claimFaucet.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_revert_during_build(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.vault, "withdraw", side_effect=ContractLogicError("execution reverted: Insufficient balance"))

        with pytest.raises(CallFailed, match="Insufficient balance"):
            await facade.withdraw("1000")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_undeployed_contract(self, facade, fake_provider, mock_web3):
        mock_web3.eth.get_code.return_value = b""
        set_build(mock_web3.vault, "deposit")

        with pytest.raises(ContractUnavailable):
            await facade.deposit("1")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_user_rejects_signature(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.vault, "deposit")
        fake_provider.errors["eth_sendTransaction"] = ProviderRpcError(4001, "User denied")

        with pytest.raises(UserRejected):
            await facade.deposit("1")

    @pytest.mark.asyncio
    async def test_provider_failure_is_call_failed(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.vault, "deposit")
        fake_provider.errors["eth_sendTransaction"] = ProviderRpcError(-32603, "nonce too low")

        with pytest.raises(CallFailed, match="nonce too low"):
            await facade.deposit("1")

    @pytest.mark.asyncio
    async def test_transport_error_during_build(self, facade, fake_provider, mock_web3):
        set_build(mock_web3.vault, "transfer", side_effect=ConnectionError("rpc down"))

        with pytest.raises(CallFailed, match="rpc down"):
            await facade.transfer(OTHER_ADDRESS, "1")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_savings_check_timeout(self, facade, fake_provider, mock_web3):
        set_call(mock_web3.vault, "isSavingsUnlocked", side_effect=asyncio.TimeoutError())
        set_build(mock_web3.vault, "withdrawFromVault")

        with pytest.raises(CallFailed):
            await facade.withdraw_savings("1")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_code_lookup_failure(self, facade, fake_provider, mock_web3):
        mock_web3.eth.get_code.side_effect = ConnectionError("connection refused")
        set_build(mock_web3.vault, "deposit")

        with pytest.raises(CallFailed, match="connection refused"):
            await facade.deposit("1")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_wrong_network_blocks_write(self, facade, fake_provider, mock_web3):
        fake_provider.chain_id = 1
        set_build(mock_web3.vault, "deposit")

        with pytest.raises(NetworkMismatch):
            await facade.deposit("1")

        assert fake_provider.sent == []

    @pytest.mark.asyncio
    async def test_write_after_chain_change(self, facade, wallet_context, fake_provider):
        wallet_context.invalidate(1)

        with pytest.raises(NetworkMismatch):
            await facade.deposit("1")

        assert fake_provider.calls == []


class TestConfirmationTracker:
    """Tests for the transaction state machine."""

    def test_transitions(self):
        tx = PendingTransaction(hash="0x1", kind=TxKind.DEPOSIT)

        tx.advance(TxStatus.PENDING)
        tx.confirm(10)

        assert tx.is_final
        assert tx.block_number == 10
        with pytest.raises(ValueError):
            tx.fail("late")

    def test_cannot_skip_pending(self):
        tx = PendingTransaction(hash="0x1", kind=TxKind.DEPOSIT)

        with pytest.raises(ValueError):
            tx.confirm(10)

    @pytest.mark.asyncio
    async def test_confirmed(self, mock_web3):
        tx = await ConfirmationTracker(mock_web3).track(PendingTransaction(hash="0x1", kind=TxKind.FAUCET))

        assert tx.status == TxStatus.CONFIRMED
        assert tx.block_number == 42

    @pytest.mark.asyncio
    async def test_reverted(self, mock_web3):
        mock_web3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 42}

        tx = await ConfirmationTracker(mock_web3).track(PendingTransaction(hash="0x1", kind=TxKind.FAUCET))

        assert tx.status == TxStatus.FAILED
        assert tx.error == "Transaction reverted"

    @pytest.mark.asyncio
    async def test_timeout(self, mock_web3):
        mock_web3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("too slow")

        tracker = ConfirmationTracker(mock_web3, timeout=3)
        tx = await tracker.track(PendingTransaction(hash="0x1", kind=TxKind.FAUCET))

        assert tx.status == TxStatus.FAILED
        assert "3" in tx.error
        with pytest.raises(CallFailed):
            await tracker.wait(tx)

    @pytest.mark.asyncio
    async def test_final_transaction_untouched(self, mock_web3):
        tx = PendingTransaction(hash="0x1", kind=TxKind.FAUCET, status=TxStatus.FAILED)

        await ConfirmationTracker(mock_web3).track(tx)

        mock_web3.eth.wait_for_transaction_receipt.assert_not_awaited()


def _transfer_log(tx_byte: int, block: int, log_index: int, sender: str, recipient: str, value: int) -> dict:
    return {
        "transactionHash": bytes([tx_byte]) * 32,
        "blockNumber": block,
        "logIndex": log_index,
        "args": {"from": sender, "to": recipient, "value": value},
    }


class TestTransferHistory:
    """Tests for transfer history from Transfer events."""

    @pytest.fixture
    async def logs(self, mock_web3):
        latest = asyncio.get_running_loop().create_future()
        latest.set_result(20_000)
        mock_web3.eth.block_number = latest
        mock_web3.eth.get_block = AsyncMock(side_effect=lambda number: {"timestamp": 1_700_000_000 + number})

        sent = [_transfer_log(1, 15_000, 0, USER_ADDRESS, OTHER_ADDRESS, 2_000_000)]
        received = [
            _transfer_log(2, 18_000, 3, OTHER_ADDRESS, USER_ADDRESS, 5_000_000),
            _transfer_log(3, 18_000, 1, OTHER_ADDRESS, USER_ADDRESS, 1_000_000),
        ]

        def get_logs(argument_filters, from_block, to_block):
            return sent if "from" in argument_filters else received

        get_logs_mock = AsyncMock(side_effect=get_logs)
        mock_web3.token.events.Transfer.get_logs = get_logs_mock
        return get_logs_mock

    @pytest.mark.asyncio
    async def test_all_directions_newest_first(self, wallet_context, logs):
        history = await TransferHistory(wallet_context).fetch(USER_ADDRESS)

        assert [(r.block_number, r.log_index) for r in history] == [(18_000, 3), (18_000, 1), (15_000, 0)]
        assert [r.direction for r in history] == ["received", "received", "sent"]
        assert history[0].amount == "5.0"
        assert history[0].timestamp == 1_700_018_000
        assert history[2].explorer_link == f"{BASE_SEPOLIA.explorer_url}/tx/0x{'01' * 32}"
        logs.assert_any_await(argument_filters={"from": USER_ADDRESS}, from_block=10_000, to_block=20_000)

    @pytest.mark.asyncio
    async def test_sent_only(self, wallet_context, logs):
        history = await TransferHistory(wallet_context).fetch(USER_ADDRESS, direction="sent")

        assert [r.direction for r in history] == ["sent"]
        assert logs.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_inputs(self, wallet_context, logs):
        history = TransferHistory(wallet_context)

        assert await history.fetch("nope") == []
        with pytest.raises(ValueError):
            await history.fetch(USER_ADDRESS, direction="sideways")

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, wallet_context, logs):
        logs.side_effect = Web3Exception("query returned more than 10000 results")

        assert await TransferHistory(wallet_context).fetch(USER_ADDRESS) == []


class TestSetupCheck:
    """Tests for the setup diagnostics."""

    @pytest.mark.asyncio
    async def test_all_checks_pass(self, wallet_context, mock_web3):
        set_call(mock_web3.vault, "getBalance", 3_000_000)

        report = await run_setup_check(wallet_context)

        assert report.ok
        assert report.account == USER_ADDRESS
        assert [c.name for c in report.checks] == [
            "Provider", "Account", "Network", "SenteToken", "SenteVault", "Balance read",
        ]
        assert report.checks[-1].message == "3.0 SENTE"

    @pytest.mark.asyncio
    async def test_no_provider(self, mock_web3):
        context = WalletContext(BASE_SEPOLIA, TOKEN_ADDRESS, VAULT_ADDRESS, ProviderAdapter(), web3=mock_web3)

        report = await run_setup_check(context)

        assert not report.ok
        assert [c.name for c in report.checks] == ["Provider"]

    @pytest.mark.asyncio
    async def test_wrong_network_and_missing_code(self, wallet_context, fake_provider, mock_web3):
        fake_provider.chain_id = 1
        mock_web3.eth.get_code.return_value = b""

        report = await run_setup_check(wallet_context)

        assert [c.name for c in report.failures()] == ["Network", "SenteToken", "SenteVault"]
        assert "Balance read" not in [c.name for c in report.checks]

    @pytest.mark.asyncio
    async def test_without_connect(self, wallet_context):
        report = await run_setup_check(wallet_context, connect=False)

        assert report.failures()[0].name == "Account"
