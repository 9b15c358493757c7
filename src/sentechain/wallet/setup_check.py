"""Wallet and contract setup diagnostics.

Walks through everything a working dashboard needs: an injected provider,
account access, the right chain, deployed contracts and a readable balance.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sentechain.wallet.context import WalletContext
from sentechain.wallet.errors import WalletError
from sentechain.wallet.units import format_units

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of a single setup check."""

    name: str
    ok: bool
    message: str = ""


@dataclass
class SetupReport:
    """Collected setup checks."""

    checks: list[CheckResult] = field(default_factory=list)
    account: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.checks) and all(c.ok for c in self.checks)

    def add(self, name: str, ok: bool, message: str = "") -> bool:
        self.checks.append(CheckResult(name=name, ok=ok, message=message))
        return ok

    def failures(self) -> list[CheckResult]:
        return [c for c in self.checks if not c.ok]


async def run_setup_check(context: WalletContext, connect: bool = True) -> SetupReport:
    """Run the setup checks in order, stopping at the first blocking failure.

    Args:
        context: Wallet context to check
        connect: Request account access if none is granted yet

    Returns:
        SetupReport with one entry per check performed
    """
    report = SetupReport()
    adapter = context.adapter
    network = context.network

    if not report.add("Provider", adapter.is_available,
                      "Wallet provider found" if adapter.is_available else "No wallet provider found"):
        return report

    try:
        account = await adapter.current_account()
        if account is None and connect:
            account = await adapter.connect()
    except WalletError as e:
        report.add("Account", False, str(e))
        return report
    if not report.add("Account", account is not None, account or "No account connected"):
        return report
    report.account = account

    chain_id = await adapter.current_chain_id()
    report.add(
        "Network",
        chain_id == network.chain_id,
        f"Chain {chain_id}" if chain_id == network.chain_id
        else f"Wallet on chain {chain_id}, expected {network.name} ({network.chain_id})",
    )

    deployed = True
    for name, address in (("SenteToken", context.token_address), ("SenteVault", context.vault_address)):
        try:
            has_code = await context.has_code(address)
        except Exception as e:
            logger.error(f"get_code failed for {address}: {e}")
            report.add(name, False, f"Could not reach {network.rpc_url}: {e}")
            return report
        deployed = report.add(name, has_code, address if has_code else f"No code at {address}") and deployed

    if not deployed:
        return report

    try:
        raw = await context.vault.functions.getBalance(account).call()
        report.add("Balance read", True, f"{format_units(raw, context.decimals)} SENTE")
    except Exception as e:
        logger.error(f"Test balance read failed for {account}: {e}")
        report.add("Balance read", False, str(e))

    return report
