"""Fixed-point amount scaling, address validation and display helpers."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from eth_utils import is_address, to_checksum_address

from sentechain.wallet.errors import InvalidAddress, InvalidAmount

AmountLike = Union[str, int, Decimal]


def is_valid_address(address: Optional[str]) -> bool:
    """Check address format (hex, 20 bytes, checksum respected if mixed case)."""
    if not address or not isinstance(address, str):
        return False
    return is_address(address)


def checksum(address: Optional[str]) -> str:
    """Validate and return the checksum form of an address.

    Raises:
        InvalidAddress: If the address is malformed
    """
    if not is_valid_address(address):
        raise InvalidAddress(
            f"Invalid address format: {address!r}. "
            "Address must be a 42-character hex string starting with 0x"
        )
    return to_checksum_address(address)


def parse_units(amount: AmountLike, decimals: int) -> int:
    """Convert a human-unit amount into the token's integer representation.

    Args:
        amount: Decimal string (e.g. "12.5") or number in human units
        decimals: Token decimals

    Returns:
        Integer amount in smallest units

    Raises:
        InvalidAmount: If not a positive number or too precise for the token
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount format: {amount!r}")

    if not value.is_finite() or value <= 0:
        raise InvalidAmount("Amount must be greater than 0")

    digits, exponent = value.as_tuple()[1:]
    with localcontext() as ctx:
        # Precision covers every digit so scaling never rounds
        ctx.prec = len(digits) + abs(exponent) + decimals + 1
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmount(f"Amount {amount} has more than {decimals} decimal places")
        return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Convert an integer token amount into a human-unit decimal string.

    Trailing zeros are trimmed but at least one fractional digit is kept,
    so 100000000 with 6 decimals formats as "100.0".
    """
    negative = value < 0
    digits = str(abs(int(value))).rjust(decimals + 1, "0")
    whole = digits[: len(digits) - decimals] if decimals else digits
    fraction = digits[len(digits) - decimals:] if decimals else ""
    fraction = fraction.rstrip("0") or "0"
    result = f"{whole}.{fraction}"
    return f"-{result}" if negative else result


def format_address(address: Optional[str]) -> str:
    """Shorten an address for display: 0x1234...abcd."""
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"


def format_tx_hash(tx_hash: Optional[str]) -> str:
    """Shorten a transaction hash for display."""
    if not tx_hash:
        return ""
    return f"{tx_hash[:6]}...{tx_hash[-4:]}"


def explorer_tx_link(explorer_url: Optional[str], tx_hash: str) -> Optional[str]:
    """Block explorer link for a transaction, if the network has an explorer."""
    if not explorer_url:
        return None
    return f"{explorer_url.rstrip('/')}/tx/{tx_hash}"


def format_unlock_date(unlock_time: int) -> str:
    """Render an unlock timestamp as a date, or N/A when never locked."""
    if not unlock_time:
        return "N/A"
    return datetime.fromtimestamp(unlock_time, tz=timezone.utc).strftime("%Y-%m-%d")
