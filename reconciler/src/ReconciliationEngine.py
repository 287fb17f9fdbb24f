"""ReconciliationEngine: Event entry points of the price-source reconciliation.

Each ``on_*`` method processes one decoded event to completion before
returning. Events must be delivered in chain order; the engine neither
reorders nor batches them and holds no locks.

Pipelines for asset source updates, keyed by ``Oracle.version``:
    - version 1: legacy pipeline. The source is used directly as the
      aggregator and the primary price defaults to 0 when unavailable.
      Assets already owned by the aggregator registry are skipped.
    - version > 1: the source is a proxy resolved to its aggregator; a
      compatibility name record is maintained and the update is abandoned
      when the primary price cannot be read.

.. code-block:: python

    >>> engine = ReconciliationEngine(InMemoryRecordStore(), gateway, EngineConfig(oracle_version=2))
    >>> engine.on_asset_source_updated(asset, source, EventContext(timestamp=1, block_number=1))
"""

from __future__ import annotations

import logging

from .Addresses import is_malformed_asset, is_zero_address, normalize_address
from .AddressWatcher import FALLBACK_ORACLE, AddressWatcher, InMemoryAddressWatcher
from .AssetClassifier import AssetClassifier
from .DependencyTracker import DependencyTracker
from .EngineConfig import EngineConfig
from .FallbackCoordinator import FallbackCoordinator, needs_fallback
from .PriceRecords import (
    BASE_UNIT_ID,
    AggregatorBinding,
    AssetPriceRecord,
    BaseUnitRecord,
    EventContext,
    FeedType,
    Oracle,
    ReserveRecord,
)
from .PriceSourceGateway import PriceSourceGateway
from .PriceUpdates import format_usd_eth_price, generic_price_update, usd_eth_price_update
from .RecordStore import RecordStore, get_or_init_asset, get_or_init_oracle

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Orchestrates classification, dependency tracking and fallback handling.

    :ivar store: Record store shared with downstream readers.
    :ivar gateway: External price source reads.
    :ivar config: Engine settings.
    :ivar watcher: Event-subscription collaborator.
    :ivar dependencies: Composite dependency tracker.
    :ivar classifier: Price source classifier.
    :ivar fallback: Fallback set coordinator.
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: PriceSourceGateway,
        config: EngineConfig | None = None,
        watcher: AddressWatcher | None = None,
    ) -> None:
        """Initialize the engine.

        :param store: Record store.
        :param gateway: External price source reads.
        :param config: Engine settings (default: version 1 with mock-USD base unit).
        :param watcher: Event-subscription collaborator (default: in-memory).
        """
        self.store = store
        self.gateway = gateway
        self.config = config or EngineConfig()
        self.watcher = watcher or InMemoryAddressWatcher()

        usd_base_unit = self.config.usd_base_unit_address
        self.dependencies = DependencyTracker(store, usd_base_unit)
        self.classifier = AssetClassifier(
            store,
            gateway,
            self.watcher,
            self.dependencies,
            symbol_overrides=self.config.legacy_symbol_overrides,
        )
        self.fallback = FallbackCoordinator(store, gateway, usd_base_unit)

    @property
    def usd_base_unit(self) -> str:
        """Lowercase address of the USD base unit."""
        return self.config.usd_base_unit_address

    def load_oracle(self) -> Oracle:
        """Load the oracle singleton, creating it on the first event."""
        return get_or_init_oracle(self.store, self.config.oracle_version)

    # Entry points

    def on_base_unit_set(self, address: str, ctx: EventContext) -> BaseUnitRecord:
        """Upsert the wrapped native asset descriptor.

        :param address: Wrapped native asset address.
        :param ctx: Event being processed.
        :returns: The saved descriptor.
        """
        record = self.store.load(BaseUnitRecord, BASE_UNIT_ID) or BaseUnitRecord()
        record.address = normalize_address(address)
        record.updated_timestamp = ctx.timestamp
        record.updated_block_number = ctx.block_number
        self.store.save(record)
        return record

    def on_reserve_initialized(
        self, asset: str, yield_token: str, ctx: EventContext
    ) -> None:
        """Record the yield-bearing token of a lending reserve."""
        self.store.save(
            ReserveRecord(id=normalize_address(asset), yield_token=normalize_address(yield_token))
        )
        logger.debug(f"Reserve {asset} uses yield token {yield_token}")

    def on_asset_source_updated(
        self, asset: str, source: str, ctx: EventContext
    ) -> None:
        """Handle a new price source registered for an asset on the price proxy.

        :param asset: Asset address.
        :param source: New price source address (may be zero).
        :param ctx: Event being processed; ``ctx.address`` is the price proxy.
        """
        asset = normalize_address(asset)
        source = normalize_address(source)
        if is_malformed_asset(asset):
            logger.warning(f"Skipping malformed asset registration {asset}")
            return

        oracle = self.load_oracle()
        if is_zero_address(oracle.primary_source_address):
            oracle.primary_source_address = normalize_address(ctx.address)
            self.store.save(oracle)

        record = get_or_init_asset(self.store, oracle, asset)

        if oracle.version > 1:
            self._price_feed_updated(oracle, record, source, ctx)
        elif not record.registered_from_aggregator_registry:
            self._legacy_source_updated(oracle, record, source, ctx)
        else:
            logger.debug(f"{asset} is owned by the aggregator registry, skipping")

    def on_aggregator_registry_updated(
        self, asset: str, aggregator: str, ctx: EventContext
    ) -> None:
        """Handle an aggregator registered for an asset in the aggregator registry.

        Only valid for version 1 oracles; the asset is marked as owned by
        the registry so later source updates from the proxy are ignored.

        :param asset: Asset address.
        :param aggregator: Aggregator address (may be zero).
        :param ctx: Event being processed.
        """
        asset = normalize_address(asset)
        aggregator = normalize_address(aggregator)

        oracle = self.load_oracle()
        if oracle.version != 1:
            logger.error(
                f"Aggregator registry event received for oracle version "
                f"{oracle.version}: asset={asset} aggregator={aggregator}"
            )
            return

        record = get_or_init_asset(self.store, oracle, asset)
        record.registered_from_aggregator_registry = True
        self._legacy_source_updated(oracle, record, aggregator, ctx)

    def on_fallback_oracle_changed(
        self, fallback_oracle: str, ctx: EventContext
    ) -> None:
        """Handle a new fallback oracle on the price proxy.

        A zero address is recorded but triggers nothing else.

        :param fallback_oracle: New fallback oracle address.
        :param ctx: Event being processed; ``ctx.address`` is the price proxy.
        """
        fallback_oracle = normalize_address(fallback_oracle)
        oracle = self.load_oracle()
        oracle.fallback_source_address = fallback_oracle
        self.store.save(oracle)

        if is_zero_address(fallback_oracle):
            logger.info("Fallback oracle unset")
            return

        self.watcher.ensure_watching(FALLBACK_ORACLE, fallback_oracle)

        price_provider = normalize_address(ctx.address)
        if is_zero_address(price_provider):
            price_provider = oracle.primary_source_address

        updated = self.fallback.push_price_to_fallback_set(oracle, price_provider, ctx)
        self.fallback.reconcile_usd_base_price(oracle, fallback_oracle, ctx)
        self.store.save(oracle)
        logger.info(
            f"Fallback oracle set to {fallback_oracle}, refreshed {updated} prices"
        )

    def on_aggregator_answer_updated(
        self, aggregator: str, answer: int, ctx: EventContext
    ) -> None:
        """Handle a new answer reported by a watched aggregator.

        Answers from aggregators that are not (or no longer) the price
        source of their bound asset are ignored.

        :param aggregator: Aggregator address.
        :param answer: Reported answer, quoted in ETH.
        :param ctx: Event being processed.
        """
        aggregator = normalize_address(aggregator)
        binding = self.store.load(AggregatorBinding, aggregator)
        if binding is None or not binding.oracle_asset:
            logger.debug(f"No asset bound to aggregator {aggregator}")
            return

        oracle = self.load_oracle()
        record = get_or_init_asset(self.store, oracle, binding.oracle_asset)
        if record.price_source_address != aggregator:
            logger.debug(
                f"Stale binding {aggregator} -> {record.id} "
                f"(current source {record.price_source_address})"
            )
            return

        if record.feed_type is FeedType.SIMPLE:
            record.fallback_required = answer == 0
        self._commit(oracle, record, answer, ctx)

    def on_fallback_asset_price_updated(
        self, fallback_oracle: str, asset: str, price: int, ctx: EventContext
    ) -> None:
        """Handle an asset price reported by the fallback oracle.

        The price is committed only for assets currently served by the fallback.
        """
        oracle = self.load_oracle()
        if normalize_address(fallback_oracle) != oracle.fallback_source_address:
            logger.debug(f"Ignoring price from inactive fallback oracle {fallback_oracle}")
            return

        record = self.store.load(AssetPriceRecord, normalize_address(asset))
        if record is None or not needs_fallback(record):
            return
        generic_price_update(self.store, record, price, ctx)

    def on_fallback_eth_price_updated(
        self, fallback_oracle: str, price: int, ctx: EventContext
    ) -> None:
        """Handle an ETH/USD price reported by the fallback oracle."""
        oracle = self.load_oracle()
        if normalize_address(fallback_oracle) != oracle.fallback_source_address:
            logger.debug(f"Ignoring price from inactive fallback oracle {fallback_oracle}")
            return

        if oracle.usd_base_fallback_required or is_zero_address(
            oracle.usd_base_main_source
        ):
            usd_eth_price_update(self.store, oracle, price, ctx)

    # Pipelines

    def _legacy_source_updated(
        self,
        oracle: Oracle,
        record: AssetPriceRecord,
        source: str,
        ctx: EventContext,
    ) -> None:
        # A revert stores 0: one bad source update was emitted on mainnet.
        price = self.gateway.get_asset_price(
            oracle.primary_source_address, record.id
        ).unwrap_or(0)

        record.fallback_required = True
        if not is_zero_address(source):
            classification = self.classifier.classify_legacy(oracle, record, source)
            record.feed_type = classification.feed_type
            record.fallback_required = classification.fallback_required

        record.price_source_address = source
        self._commit(oracle, record, price, ctx)

    def _price_feed_updated(
        self,
        oracle: Oracle,
        record: AssetPriceRecord,
        source: str,
        ctx: EventContext,
    ) -> None:
        price = self.gateway.get_asset_price(oracle.primary_source_address, record.id)
        if price.reverted:
            logger.error(
                f"Asset is not registered on the price proxy: "
                f"asset={record.id} source={source}"
            )
            return

        record.fallback_required = True
        if is_zero_address(source):
            self._commit_fallback_flag(oracle, record)
            return

        classification = self.classifier.classify(oracle, record, source)
        record.feed_type = classification.feed_type
        if not classification.classified:
            self._commit_fallback_flag(oracle, record)
            return

        record.fallback_required = classification.fallback_required
        record.price_source_address = classification.price_source
        self._commit(oracle, record, price.value, ctx)

    def _commit_fallback_flag(self, oracle: Oracle, record: AssetPriceRecord) -> None:
        self.fallback.reconcile_fallback_set(oracle, record)
        self._mirror_usd_base_unit(oracle, record)
        self._merge_dependents(record)
        self.store.save(record)
        self.store.save(oracle)

    def _mirror_usd_base_unit(self, oracle: Oracle, record: AssetPriceRecord) -> bool:
        """Copy the USD base unit's source and fallback flag onto the oracle.

        :returns: True if ``record`` is the USD base unit.
        """
        if record.id != self.usd_base_unit:
            return False
        oracle.usd_base_fallback_required = record.fallback_required
        oracle.usd_base_main_source = record.price_source_address
        return True

    def _merge_dependents(self, record: AssetPriceRecord) -> None:
        # Edges registered on the stored copy during this event (a composite
        # listing itself as a sub-token) must survive the commit.
        stored = self.store.load(AssetPriceRecord, record.id)
        if stored is not None:
            record.dependent_assets |= stored.dependent_assets

    def _commit(
        self,
        oracle: Oracle,
        record: AssetPriceRecord,
        price: int,
        ctx: EventContext,
    ) -> None:
        """Reconcile fallback membership and commit the asset price.

        For the USD base unit the oracle mirrors its source and fallback
        flag and receives the inverted ETH/USD price.
        """
        self.fallback.reconcile_fallback_set(oracle, record)
        self._merge_dependents(record)

        if self._mirror_usd_base_unit(oracle, record):
            usd_eth_price_update(self.store, oracle, format_usd_eth_price(price), ctx)
        else:
            self.store.save(oracle)

        generic_price_update(self.store, record, price, ctx)
