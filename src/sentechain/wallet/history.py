"""Transfer history reconstructed from SenteToken ``Transfer`` events."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sentechain.wallet.context import WalletContext
from sentechain.wallet.units import checksum, explorer_tx_link, format_units, is_valid_address

logger = logging.getLogger(__name__)

DIRECTIONS = ("all", "sent", "received")


@dataclass
class TransferRecord:
    """One token transfer touching the user's address."""

    tx_hash: str
    block_number: int
    log_index: int
    sender: str
    recipient: str
    amount: str
    direction: str
    timestamp: Optional[int] = None
    explorer_link: Optional[str] = None


def _hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if hasattr(value, "to_0x_hex"):
        return value.to_0x_hex()
    return str(value)


class TransferHistory:
    """Reads sent and received transfers within a block window."""

    def __init__(self, context: WalletContext, lookback_blocks: int = 10000):
        self.context = context
        self.lookback_blocks = lookback_blocks

    async def fetch(self, address: Optional[str], direction: str = "all") -> list[TransferRecord]:
        """Load transfers for ``address``, newest first.

        Args:
            address: Wallet address
            direction: ``all``, ``sent`` or ``received``

        Returns:
            Transfer records; empty on invalid address or read failure
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction '{direction}'. Use one of {DIRECTIONS}")

        self.context.ensure_valid()
        if not is_valid_address(address):
            return []
        owner = checksum(address)

        try:
            return await self._fetch(owner, direction)
        except Exception as e:
            logger.error(
                f"Failed to load transfer history for {owner} on {self.context.network.name}: {e}"
            )
            return []

    async def _fetch(self, owner: str, direction: str) -> list[TransferRecord]:
        w3 = self.context.web3
        event = self.context.token.events.Transfer
        latest = await w3.eth.block_number
        from_block = max(0, latest - self.lookback_blocks)

        queries = []
        if direction in ("all", "sent"):
            queries.append({"from": owner})
        if direction in ("all", "received"):
            queries.append({"to": owner})

        results = await asyncio.gather(*(
            event.get_logs(argument_filters=filters, from_block=from_block, to_block=latest)
            for filters in queries
        ))

        records: dict[tuple[str, int], TransferRecord] = {}
        for logs in results:
            for log in logs:
                tx_hash = _hex(log["transactionHash"])
                key = (tx_hash, log["logIndex"])
                if key in records:
                    continue
                sender = log["args"]["from"]
                records[key] = TransferRecord(
                    tx_hash=tx_hash,
                    block_number=log["blockNumber"],
                    log_index=log["logIndex"],
                    sender=sender,
                    recipient=log["args"]["to"],
                    amount=format_units(log["args"]["value"], self.context.decimals),
                    direction="sent" if sender.lower() == owner.lower() else "received",
                    explorer_link=explorer_tx_link(self.context.network.explorer_url, tx_hash),
                )

        await self._resolve_timestamps(list(records.values()))

        history = sorted(
            records.values(), key=lambda r: (r.block_number, r.log_index), reverse=True
        )
        logger.debug(f"Loaded {len(history)} transfers for {owner} since block {from_block}")
        return history

    async def _resolve_timestamps(self, records: list[TransferRecord]) -> None:
        w3 = self.context.web3
        blocks = sorted({r.block_number for r in records})
        fetched = await asyncio.gather(*(w3.eth.get_block(n) for n in blocks))
        timestamps = {n: block["timestamp"] for n, block in zip(blocks, fetched)}
        for record in records:
            record.timestamp = timestamps.get(record.block_number)
