"""Shared fixtures: an in-memory price source gateway and engine factories."""

from typing import Callable

import pytest

from reconciler.src.AddressWatcher import InMemoryAddressWatcher
from reconciler.src.CallResult import CallResult
from reconciler.src.EngineConfig import EngineConfig
from reconciler.src.PriceRecords import EventContext, FeedType
from reconciler.src.PriceSourceGateway import PriceSourceGateway
from reconciler.src.RecordStore import InMemoryRecordStore
from reconciler.src.ReconciliationEngine import ReconciliationEngine

PRICE_PROXY = "0x" + "e" * 40


def _lookup(values: dict, key) -> CallResult:
    if key in values:
        return CallResult.ok(values[key])
    return CallResult.revert("execution reverted")


class FakeGateway(PriceSourceGateway):
    """Gateway answering from dictionaries; missing entries revert."""

    def __init__(self) -> None:
        self.asset_prices: dict[str, int] = {}
        self.latest_answers: dict[str, int] = {}
        self.token_types: dict[str, FeedType] = {}
        self.sub_tokens: dict[str, list[str]] = {}
        self.underlying: dict[str, str] = {}
        self.symbols: dict[str, str] = {}
        self.fallback_eth_usd: dict[str, int] = {}
        self.fallback_asset_prices: dict[tuple[str, str], int] = {}
        self.calls: list[tuple] = []

    def get_asset_price(self, price_provider: str, asset: str) -> CallResult[int]:
        self.calls.append(("get_asset_price", price_provider, asset))
        return _lookup(self.asset_prices, asset)

    def get_latest_answer(self, aggregator: str) -> CallResult[int]:
        self.calls.append(("get_latest_answer", aggregator))
        return _lookup(self.latest_answers, aggregator)

    def get_token_type(self, aggregator: str) -> CallResult[FeedType]:
        self.calls.append(("get_token_type", aggregator))
        return _lookup(self.token_types, aggregator)

    def get_sub_tokens(self, aggregator: str) -> list[str]:
        self.calls.append(("get_sub_tokens", aggregator))
        return list(self.sub_tokens.get(aggregator, []))

    def get_underlying_aggregator(self, proxy: str) -> CallResult[str]:
        self.calls.append(("get_underlying_aggregator", proxy))
        return _lookup(self.underlying, proxy)

    def get_token_symbol(self, token: str) -> CallResult[str]:
        self.calls.append(("get_token_symbol", token))
        return _lookup(self.symbols, token)

    def get_fallback_eth_usd_price(self, fallback_oracle: str) -> CallResult[int]:
        self.calls.append(("get_fallback_eth_usd_price", fallback_oracle))
        return _lookup(self.fallback_eth_usd, fallback_oracle)

    def get_fallback_asset_price(
        self, fallback_oracle: str, asset: str
    ) -> CallResult[int]:
        self.calls.append(("get_fallback_asset_price", fallback_oracle, asset))
        return _lookup(self.fallback_asset_prices, (fallback_oracle, asset))

    def called(self, name: str) -> list[tuple]:
        """Return the recorded calls of one gateway method."""
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def watcher() -> InMemoryAddressWatcher:
    return InMemoryAddressWatcher()


@pytest.fixture
def make_engine(
    store: InMemoryRecordStore,
    gateway: FakeGateway,
    watcher: InMemoryAddressWatcher,
) -> Callable[..., ReconciliationEngine]:
    """Factory building an engine for a given oracle version."""

    def _make(version: int = 1, **config) -> ReconciliationEngine:
        return ReconciliationEngine(
            store, gateway, EngineConfig(oracle_version=version, **config), watcher
        )

    return _make


@pytest.fixture
def make_ctx() -> Callable[..., EventContext]:
    """Factory for event contexts emitted by the price proxy."""

    def _make(block: int = 100, address: str = PRICE_PROXY, log_index: int = 0) -> EventContext:
        return EventContext(
            timestamp=1_600_000_000 + block,
            block_number=block,
            address=address,
            tx_hash=f"0x{block:064x}",
            log_index=log_index,
        )

    return _make
