"""PriceRecords: Entities maintained by the reconciliation engine.

Records are plain dataclasses keyed by ``id``. Asset and contract ids are
lowercase hex addresses; the oracle and the base-unit descriptor are
singletons with fixed ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .Addresses import ZERO_ADDRESS

ORACLE_ID = "1"
BASE_UNIT_ID = "weth"

# IExtendedPriceAggregator.getTokenType(): 1 is a simple feed, anything else composite.
SIMPLE_TOKEN_TYPE = 1


class FeedType(str, Enum):
    """How an asset is priced."""

    SIMPLE = "Simple"
    COMPOSITE = "Composite"

    @classmethod
    def from_token_type(cls, token_type: int) -> FeedType:
        """Map the on-chain token type enum to a feed type.

        :param token_type: Value returned by ``getTokenType()``.
        :returns: FeedType.SIMPLE for 1, FeedType.COMPOSITE otherwise.
        """
        if token_type == SIMPLE_TOKEN_TYPE:
            return cls.SIMPLE
        return cls.COMPOSITE


@dataclass(frozen=True)
class EventContext:
    """Block and log metadata of the event being processed.

    :ivar timestamp: Block timestamp in seconds.
    :ivar block_number: Block number.
    :ivar address: Contract that emitted the event.
    :ivar tx_hash: Transaction hash.
    :ivar log_index: Log index within the transaction.
    """

    timestamp: int
    block_number: int
    address: str = ZERO_ADDRESS
    tx_hash: str = ""
    log_index: int = 0


@dataclass
class Oracle:
    """Process-wide price oracle configuration and derived sets.

    :ivar version: Deployment version of the protocol oracle (>= 1).
    :ivar primary_source_address: Price proxy queried for asset prices.
    :ivar fallback_source_address: Currently configured fallback oracle.
    :ivar usd_base_main_source: Price source of the USD base unit.
    :ivar usd_base_fallback_required: Whether the USD base price comes from the fallback.
    :ivar usd_price_eth: ETH price in USD (8 decimals).
    :ivar usd_dependent_assets: Composite assets that depend on the USD base unit.
    :ivar tokens_needing_fallback: Assets without a usable primary feed.
    :ivar last_update_timestamp: Timestamp of the last USD/ETH update.
    """

    id: str = ORACLE_ID
    version: int = 1
    primary_source_address: str = ZERO_ADDRESS
    fallback_source_address: str = ZERO_ADDRESS
    usd_base_main_source: str = ZERO_ADDRESS
    usd_base_fallback_required: bool = False
    usd_price_eth: int = 0
    usd_dependent_assets: set[str] = field(default_factory=set)
    tokens_needing_fallback: set[str] = field(default_factory=set)
    last_update_timestamp: int = 0


@dataclass
class AssetPriceRecord:
    """Current price state of one asset.

    :ivar id: Lowercase asset address.
    :ivar feed_type: Simple or composite feed.
    :ivar price_source_address: Aggregator (or composite oracle) pricing the asset.
    :ivar fallback_required: True if the primary feed is absent or invalid.
    :ivar dependent_assets: Composite assets whose price depends on this one.
    :ivar registered_from_aggregator_registry: Owned by the aggregator registry (v1 only).
    :ivar latest_price: Last committed price, quoted in ETH.
    :ivar last_update_timestamp: Timestamp of the last committed price.
    :ivar last_update_block: Block of the last committed price.
    """

    id: str
    feed_type: FeedType = FeedType.SIMPLE
    price_source_address: str = ZERO_ADDRESS
    fallback_required: bool = False
    dependent_assets: set[str] = field(default_factory=set)
    registered_from_aggregator_registry: bool = False
    latest_price: int = 0
    last_update_timestamp: int = 0
    last_update_block: int = 0


@dataclass
class AggregatorBinding:
    """Maps an aggregator contract back to the asset it prices."""

    id: str
    oracle_asset: str = ""


@dataclass
class CompatibilityNameRecord:
    """Legacy name-registry entry for a simple feed.

    :ivar id: Name-hash node of ``aggregator.<symbol>-eth.data.eth``.
    :ivar aggregator_address: Underlying aggregator of the asset's proxy.
    :ivar underlying_asset_address: Asset priced by the aggregator.
    :ivar symbol: Display symbol used to build the name.
    """

    id: str
    aggregator_address: str = ZERO_ADDRESS
    underlying_asset_address: str = ZERO_ADDRESS
    symbol: str = ""


@dataclass
class BaseUnitRecord:
    """Static descriptor of the wrapped native asset."""

    id: str = BASE_UNIT_ID
    address: str = ZERO_ADDRESS
    name: str = "WEthereum"
    symbol: str = "WETH"
    decimals: int = 18
    updated_timestamp: int = 0
    updated_block_number: int = 0


@dataclass
class ReserveRecord:
    """Lending reserve of an asset and its yield-bearing token."""

    id: str
    yield_token: str = ZERO_ADDRESS


@dataclass
class PriceHistoryItem:
    """One committed asset price, keyed by asset and block."""

    id: str
    asset: str
    price: int
    timestamp: int
    block_number: int


@dataclass
class UsdEthPriceHistoryItem:
    """One committed ETH/USD price, keyed by transaction and log index."""

    id: str
    oracle: str
    price: int
    timestamp: int
