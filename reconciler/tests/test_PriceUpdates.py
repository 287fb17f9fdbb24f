"""Unit tests for PriceUpdates."""

import pytest

from reconciler.src.PriceRecords import (
    AssetPriceRecord,
    EventContext,
    Oracle,
    PriceHistoryItem,
    UsdEthPriceHistoryItem,
)
from reconciler.src.PriceUpdates import (
    format_usd_eth_price,
    generic_price_update,
    usd_eth_price_update,
)

ASSET = "0x" + "a" * 40
CTX = EventContext(timestamp=1_600_000_000, block_number=11363000, tx_hash="0xabc", log_index=4)


class TestFormatUsdEthPrice:
    @pytest.mark.parametrize(
        "price, expected",
        [
            (500_000_000_000_000, 200_000_000_000),
            (10**18, 10**8),
            (3, 33333333333333333333333333),
            (0, 0),
            (-1, 0),
        ],
    )
    def test_inversion(self, price, expected) -> None:
        assert format_usd_eth_price(price) == expected


class TestGenericPriceUpdate:
    def test_commit(self, store) -> None:
        record = AssetPriceRecord(id=ASSET)

        generic_price_update(store, record, 42, CTX)

        saved = store.load(AssetPriceRecord, ASSET)
        assert saved.latest_price == 42
        assert saved.last_update_timestamp == CTX.timestamp
        assert saved.last_update_block == CTX.block_number
        history = store.load(PriceHistoryItem, f"{ASSET}11363000")
        assert history.asset == ASSET
        assert history.price == 42

    def test_same_block_overwrites_history(self, store) -> None:
        record = AssetPriceRecord(id=ASSET)
        generic_price_update(store, record, 1, CTX)
        generic_price_update(store, record, 2, CTX)

        assert store.count(PriceHistoryItem) == 1
        assert store.load(PriceHistoryItem, f"{ASSET}11363000").price == 2


class TestUsdEthPriceUpdate:
    def test_commit(self, store) -> None:
        oracle = Oracle()

        usd_eth_price_update(store, oracle, 200_000_000_000, CTX)

        assert store.load(Oracle, oracle.id).usd_price_eth == 200_000_000_000
        assert store.load(Oracle, oracle.id).last_update_timestamp == CTX.timestamp
        assert store.load(UsdEthPriceHistoryItem, "0xabc4").price == 200_000_000_000

    def test_history_without_tx_hash(self, store) -> None:
        """Entries from different blocks stay distinct when no tx hash is known."""
        oracle = Oracle()

        usd_eth_price_update(store, oracle, 1, EventContext(timestamp=1, block_number=10))
        usd_eth_price_update(store, oracle, 2, EventContext(timestamp=2, block_number=11))

        assert store.count(UsdEthPriceHistoryItem) == 2
        assert store.load(UsdEthPriceHistoryItem, "10-0").price == 1
        assert store.load(UsdEthPriceHistoryItem, "11-0").price == 2
