#!/usr/bin/env python3
"""Check wallet and contract setup against the configured network.

Rebuilds the custodial signer for an identifier, connects it, and runs the
setup checks (provider, account, chain, contract code, balance read).
"""

import asyncio
import sys

from sentechain.auth.identifiers import InvalidIdentifier, parse_identifier
from sentechain.config import get_settings
from sentechain.wallet.context import WalletContext
from sentechain.wallet.keyed_provider import KeyedProvider
from sentechain.wallet.provider import ProviderAdapter
from sentechain.wallet.setup_check import run_setup_check

# Colors for output
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"
CHECK = "✓"
CROSS = "✗"


def print_status(name: str, success: bool, message: str = ""):
    """Print status with color."""
    mark = f"{GREEN}{CHECK}{RESET}" if success else f"{RED}{CROSS}{RESET}"
    print(f"  {mark} {name}" + (f" - {message}" if message else ""))


async def main(identifier: str) -> int:
    settings = get_settings()
    network = settings.get_network()

    print("=" * 60)
    print("     SENTECHAIN SETUP CHECK")
    print("=" * 60)
    print(f"  Network: {network.name} ({network.chain_id}) via {network.rpc_url}")

    try:
        normalized = parse_identifier(identifier).value
    except InvalidIdentifier as e:
        print_status("Identifier", False, str(e))
        return 1

    provider = KeyedProvider.from_identifier(
        normalized, settings.derivation_secret or None, chain=network
    )
    try:
        context = WalletContext.from_settings(settings, ProviderAdapter(provider))
    except ValueError as e:
        print_status("Configuration", False, str(e))
        return 1

    report = await run_setup_check(context)
    print()
    for check in report.checks:
        print_status(check.name, check.ok, check.message)

    print()
    if report.ok:
        print(f"  {GREEN}All {len(report.checks)} checks passed!{RESET}")
        return 0

    print(f"  {RED}{len(report.failures())} check(s) failed{RESET}")
    print("\n  Manual network setup:")
    for key, value in network.manual_setup_details().items():
        print(f"    {key}: {value}")
    return 1


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python check_setup.py <email-or-phone>")
        print("Example: python check_setup.py alice@example.com")
        sys.exit(1)

    sys.exit(asyncio.run(main(sys.argv[1])))
