"""AssetClassifier: Decides how an asset is priced from its price source.

Two flavours exist:

- :meth:`AssetClassifier.classify` (oracle version > 1) treats a simple
  source as a proxy, resolves the aggregator behind it, binds that
  aggregator to the asset and maintains the compatibility name record.
- :meth:`AssetClassifier.classify_legacy` (version 1) uses the source
  address as the aggregator directly.

Composite sources never need the fallback; their sub-tokens are handed to
the DependencyTracker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .AddressWatcher import AGGREGATOR, AddressWatcher
from .CallResult import CallResult
from .DependencyTracker import DependencyTracker
from .NameHash import compatibility_labels, namehash
from .PriceRecords import (
    AssetPriceRecord,
    CompatibilityNameRecord,
    FeedType,
    Oracle,
    ReserveRecord,
)
from .PriceSourceGateway import PriceSourceGateway
from .RecordStore import RecordStore, get_or_init_binding

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """Outcome of classifying an asset's price source.

    :ivar feed_type: Simple or composite.
    :ivar fallback_required: Whether the primary feed is unusable.
    :ivar price_source: Address to record as the asset's price source.
    :ivar classified: False if a simple source could not be resolved to an aggregator.
    """

    feed_type: FeedType
    fallback_required: bool
    price_source: str
    classified: bool = True


def answer_requires_fallback(answer: CallResult[int]) -> bool:
    """A feed needs the fallback if ``latestAnswer`` reverts or is zero."""
    return answer.reverted or answer.value == 0


class AssetClassifier:
    """Classifies price sources and registers the resulting bindings.

    :ivar store: Record store.
    :ivar gateway: External price source reads.
    :ivar watcher: Registers newly discovered aggregators.
    :ivar dependencies: Tracker for composite sub-token edges.
    :ivar symbol_overrides: Asset address to pinned compatibility symbol.
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: PriceSourceGateway,
        watcher: AddressWatcher,
        dependencies: DependencyTracker,
        symbol_overrides: dict[str, str] | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.watcher = watcher
        self.dependencies = dependencies
        self.symbol_overrides = symbol_overrides or {}

    def probe_feed_type(self, record: AssetPriceRecord, source: str) -> FeedType:
        """Query the source's token type, keeping the current type on revert.

        Plain aggregators do not implement ``getTokenType()``, so a revert
        leaves the asset at its previous (by default simple) type.
        """
        token_type = self.gateway.get_token_type(source)
        if token_type.reverted:
            return record.feed_type
        return token_type.value

    def classify(
        self, oracle: Oracle, record: AssetPriceRecord, source: str
    ) -> Classification:
        """Classify a non-zero price source through proxy indirection.

        :param oracle: Working copy of the oracle singleton.
        :param record: Asset being updated (not modified here).
        :param source: Lowercase, non-zero price source address.
        :returns: Classification; ``classified`` is False if the proxy has no aggregator.
        """
        feed_type = self.probe_feed_type(record, source)

        if feed_type is FeedType.COMPOSITE:
            self._register_sub_tokens(oracle, record.id, source)
            return Classification(FeedType.COMPOSITE, False, source)

        aggregator = self.gateway.get_underlying_aggregator(source)
        if aggregator.reverted:
            logger.error(
                f"Simple type must be a price proxy: asset={record.id} source={source}"
            )
            return Classification(
                feed_type, True, record.price_source_address, classified=False
            )

        aggregator_address = aggregator.value
        self.watcher.ensure_watching(AGGREGATOR, aggregator_address)
        self.register_compatibility_name(record.id, aggregator_address)

        # The proxy price may already come from the fallback, so the feed
        # itself is probed for a usable answer.
        fallback_required = answer_requires_fallback(
            self.gateway.get_latest_answer(source)
        )

        self._bind(aggregator_address, record.id)
        return Classification(FeedType.SIMPLE, fallback_required, aggregator_address)

    def classify_legacy(
        self, oracle: Oracle, record: AssetPriceRecord, source: str
    ) -> Classification:
        """Classify a non-zero price source used directly as the aggregator.

        :param oracle: Working copy of the oracle singleton.
        :param record: Asset being updated (not modified here).
        :param source: Lowercase, non-zero aggregator address.
        :returns: Classification with ``price_source`` equal to ``source``.
        """
        feed_type = self.probe_feed_type(record, source)

        if feed_type is FeedType.SIMPLE:
            fallback_required = answer_requires_fallback(
                self.gateway.get_latest_answer(source)
            )
        else:
            fallback_required = False
            self._register_sub_tokens(oracle, record.id, source)

        self._bind(source, record.id)
        return Classification(feed_type, fallback_required, source)

    def derive_symbol(self, asset: str) -> str | None:
        """Derive the compatibility symbol of an asset.

        Pinned overrides win; otherwise the yield-bearing token's symbol is
        read and its leading "a" prefix stripped.

        :param asset: Lowercase asset address.
        :returns: Symbol, or None if it cannot be read.
        """
        override = self.symbol_overrides.get(asset)
        if override is not None:
            return override

        reserve = self.store.load(ReserveRecord, asset)
        if reserve is None:
            logger.warning(f"No reserve known for {asset}, cannot derive symbol")
            return None

        symbol = self.gateway.get_token_symbol(reserve.yield_token)
        if symbol.reverted:
            logger.warning(
                f"symbol() reverted on {reserve.yield_token} (reserve of {asset})"
            )
            return None
        return symbol.value[1:]

    def register_compatibility_name(
        self, asset: str, aggregator: str
    ) -> CompatibilityNameRecord | None:
        """Upsert the legacy name-registry record for a simple feed.

        :param asset: Lowercase asset address.
        :param aggregator: Aggregator behind the asset's proxy.
        :returns: The saved record, or None if no symbol could be derived.
        """
        symbol = self.derive_symbol(asset)
        if symbol is None:
            return None

        node = namehash(compatibility_labels(symbol))
        logger.info(f"Compatibility node for {symbol}: {node}")

        name_record = self.store.load(CompatibilityNameRecord, node)
        if name_record is None:
            name_record = CompatibilityNameRecord(id=node)
        name_record.aggregator_address = aggregator
        name_record.underlying_asset_address = asset
        name_record.symbol = symbol
        self.store.save(name_record)
        return name_record

    def _register_sub_tokens(self, oracle: Oracle, asset: str, source: str) -> None:
        sub_tokens = self.gateway.get_sub_tokens(source)
        self.dependencies.register_all(oracle, asset, sub_tokens)

    def _bind(self, aggregator: str, asset: str) -> None:
        # Earlier bindings of the asset are left in place.
        binding = get_or_init_binding(self.store, aggregator)
        binding.oracle_asset = asset
        self.store.save(binding)
