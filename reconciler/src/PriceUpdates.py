"""Price commit helpers.

Asset prices are quoted in ETH (18 decimals). The oracle's USD/ETH value is
the ETH price in USD with 8 decimals, obtained from the USD base unit's
ETH-quoted price by :func:`format_usd_eth_price`.
"""

from __future__ import annotations

import logging

from .PriceRecords import (
    AssetPriceRecord,
    EventContext,
    Oracle,
    PriceHistoryItem,
    UsdEthPriceHistoryItem,
)
from .RecordStore import RecordStore

logger = logging.getLogger(__name__)

ETH_DECIMALS = 18
USD_PRICE_DECIMALS = 8


def format_usd_eth_price(price: int) -> int:
    """Invert a USD price quoted in ETH into an ETH price quoted in USD.

    :param price: Price of one USD unit in wei.
    :returns: ``10**26 // price``, or 0 for a zero price.

    .. code-block:: python

        >>> format_usd_eth_price(500_000_000_000_000)  # 1 USD = 0.0005 ETH
        200000000000
    """
    if price <= 0:
        return 0
    return 10 ** (ETH_DECIMALS + USD_PRICE_DECIMALS) // price


def usd_eth_history_id(ctx: EventContext) -> str:
    """Key a USD/ETH history entry by transaction and log index.

    Events without a transaction hash are keyed by block number instead.
    """
    if ctx.tx_hash:
        return f"{ctx.tx_hash}{ctx.log_index}"
    return f"{ctx.block_number}-{ctx.log_index}"


def generic_price_update(
    store: RecordStore, record: AssetPriceRecord, price: int, ctx: EventContext
) -> None:
    """Commit an asset price and append it to the asset's price history.

    :param store: Record store.
    :param record: Asset record to update (saved by this call).
    :param price: New price quoted in ETH.
    :param ctx: Event being processed.
    """
    record.latest_price = price
    record.last_update_timestamp = ctx.timestamp
    record.last_update_block = ctx.block_number
    store.save(record)

    store.save(
        PriceHistoryItem(
            id=f"{record.id}{ctx.block_number}",
            asset=record.id,
            price=price,
            timestamp=ctx.timestamp,
            block_number=ctx.block_number,
        )
    )
    logger.debug(f"{record.id}: price {price} at block {ctx.block_number}")


def usd_eth_price_update(
    store: RecordStore, oracle: Oracle, price: int, ctx: EventContext
) -> None:
    """Commit the ETH/USD price into the oracle and its history.

    :param store: Record store.
    :param oracle: Oracle singleton (saved by this call).
    :param price: ETH price in USD (8 decimals).
    :param ctx: Event being processed.
    """
    oracle.usd_price_eth = price
    oracle.last_update_timestamp = ctx.timestamp
    store.save(oracle)

    store.save(
        UsdEthPriceHistoryItem(
            id=usd_eth_history_id(ctx),
            oracle=oracle.id,
            price=price,
            timestamp=ctx.timestamp,
        )
    )
    logger.debug(f"USD/ETH price {price} at block {ctx.block_number}")
