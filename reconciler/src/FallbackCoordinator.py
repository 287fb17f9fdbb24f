"""FallbackCoordinator: Maintains the set of assets priced via the fallback oracle.

An asset belongs to ``Oracle.tokens_needing_fallback`` exactly when its
``fallback_required`` flag is set or it has no price source. When the
fallback oracle changes, prices of those assets and the USD/ETH price are
refreshed.
"""

from __future__ import annotations

import logging

from .Addresses import is_zero_address
from .PriceRecords import AssetPriceRecord, EventContext, Oracle
from .PriceSourceGateway import PriceSourceGateway
from .PriceUpdates import format_usd_eth_price, generic_price_update, usd_eth_price_update
from .RecordStore import RecordStore, get_or_init_asset

logger = logging.getLogger(__name__)


def needs_fallback(record: AssetPriceRecord) -> bool:
    """Check whether an asset must be served from the fallback oracle."""
    return record.fallback_required or is_zero_address(record.price_source_address)


class FallbackCoordinator:
    """Keeps fallback membership consistent and pushes fallback prices.

    :ivar store: Record store.
    :ivar gateway: External price source reads.
    :ivar usd_base_unit: Lowercase address of the USD base unit.
    """

    def __init__(
        self, store: RecordStore, gateway: PriceSourceGateway, usd_base_unit: str
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.usd_base_unit = usd_base_unit

    def reconcile_fallback_set(self, oracle: Oracle, record: AssetPriceRecord) -> None:
        """Add or remove an asset from the fallback set to match its record.

        :param oracle: Working copy of the oracle singleton (saved by the caller).
        :param record: Asset record after this event's changes.
        """
        if needs_fallback(record):
            if record.id not in oracle.tokens_needing_fallback:
                logger.info(f"{record.id} now requires the fallback oracle")
            oracle.tokens_needing_fallback.add(record.id)
        elif record.id in oracle.tokens_needing_fallback:
            oracle.tokens_needing_fallback.discard(record.id)
            logger.info(f"{record.id} no longer requires the fallback oracle")

    def push_price_to_fallback_set(
        self, oracle: Oracle, price_provider: str, ctx: EventContext
    ) -> int:
        """Refresh the price of every asset in the fallback set.

        Prices are read from the primary price proxy, which serves fallback
        values for these assets. Assets whose read reverts keep their price.

        :param oracle: Oracle singleton.
        :param price_provider: Primary price proxy address.
        :param ctx: Event being processed.
        :returns: Number of assets whose price was committed.
        """
        updated = 0
        for asset_id in sorted(oracle.tokens_needing_fallback):
            record = self.store.load(AssetPriceRecord, asset_id)
            if record is None or not needs_fallback(record):
                continue

            price = self.gateway.get_asset_price(price_provider, asset_id)
            if price.reverted:
                logger.error(
                    f"Fallback price unavailable: asset={asset_id} "
                    f"price_provider={price_provider} "
                    f"fallback_oracle={oracle.fallback_source_address}"
                )
                continue

            generic_price_update(self.store, record, price.value, ctx)
            updated += 1
        return updated

    def reconcile_usd_base_price(
        self, oracle: Oracle, fallback_oracle: str, ctx: EventContext
    ) -> bool:
        """Take the USD/ETH price from the fallback oracle if the main source is unusable.

        ``getEthUsdPrice()`` is tried first (dev networks); otherwise the USD
        base unit's price is read with ``getAssetPrice`` and inverted.

        :param oracle: Oracle singleton (saved when a price is committed).
        :param fallback_oracle: New fallback oracle address.
        :param ctx: Event being processed.
        :returns: True if a price was committed.
        """
        if not (
            oracle.usd_base_fallback_required
            or is_zero_address(oracle.usd_base_main_source)
        ):
            return False

        eth_usd = self.gateway.get_fallback_eth_usd_price(fallback_oracle)
        if eth_usd.success:
            eth_usd_price = eth_usd.value
            usd_price_in_eth = format_usd_eth_price(eth_usd_price)
        else:
            asset_price = self.gateway.get_fallback_asset_price(
                fallback_oracle, self.usd_base_unit
            )
            if asset_price.reverted:
                logger.error(
                    f"Fallback oracle {fallback_oracle} returned no USD/ETH price"
                )
                return False
            usd_price_in_eth = asset_price.value
            eth_usd_price = format_usd_eth_price(usd_price_in_eth)

        usd_eth_price_update(self.store, oracle, eth_usd_price, ctx)
        usd_record = get_or_init_asset(self.store, oracle, self.usd_base_unit)
        generic_price_update(self.store, usd_record, usd_price_in_eth, ctx)
        return True
