"""Unit tests for EventReplay."""

import json

import pytest

from reconciler.src.EventReplay import (
    ReplayError,
    dispatch_event,
    dump_snapshot,
    parse_event_context,
    replay,
)
from reconciler.src.PriceRecords import (
    ORACLE_ID,
    AssetPriceRecord,
    BaseUnitRecord,
    Oracle,
    ReserveRecord,
)

ASSET = "0x" + "a" * 40
SOURCE = "0x" + "b" * 40
PROXY = "0x" + "e" * 40
FALLBACK = "0x" + "f" * 40
YIELD_TOKEN = "0x" + "9" * 40


def event_line(name: str, block: int = 100, address: str = PROXY, **params) -> str:
    return json.dumps(
        {
            "event": name,
            "address": address,
            "block": {"timestamp": 1_600_000_000 + block, "number": block},
            "tx_hash": f"0x{block:064x}",
            "log_index": 0,
            **params,
        }
    )


class TestParseEventContext:
    def test_full(self) -> None:
        ctx = parse_event_context(json.loads(event_line("WethSet", block=7)))
        assert ctx.block_number == 7
        assert ctx.timestamp == 1_600_000_007
        assert ctx.address == PROXY
        assert ctx.log_index == 0

    def test_missing_block(self) -> None:
        with pytest.raises(ReplayError, match="no block context"):
            parse_event_context({"event": "WethSet"})


class TestReplay:
    """JSON-lines replay."""

    def test_events_dispatched_in_order(self, make_engine, gateway, store) -> None:
        gateway.asset_prices[ASSET] = 100
        engine = make_engine(version=1)
        lines = [
            event_line("WethSet", block=99, weth="0x" + "7" * 40),
            event_line("ReserveInitialized", block=99, asset=ASSET, yield_token=YIELD_TOKEN),
            "",
            event_line("AssetSourceUpdated", block=100, asset=ASSET, source=SOURCE),
            event_line("FallbackOracleUpdated", block=101, fallback_oracle=FALLBACK),
            event_line(
                "AssetPriceUpdated", block=102, address=FALLBACK, asset=ASSET, price="130"
            ),
        ]

        assert replay(engine, lines) == 5

        assert store.load(BaseUnitRecord, "weth").address == "0x" + "7" * 40
        assert store.load(ReserveRecord, ASSET).yield_token == YIELD_TOKEN
        assert store.load(Oracle, ORACLE_ID).fallback_source_address == FALLBACK
        assert store.load(AssetPriceRecord, ASSET).latest_price == 130

    def test_answer_updated_uses_emitter(self, make_engine, gateway, store) -> None:
        gateway.asset_prices[ASSET] = 100
        gateway.latest_answers[SOURCE] = 100
        engine = make_engine(version=1)

        replay(
            engine,
            [
                event_line("AssetSourceUpdated", block=100, asset=ASSET, source=SOURCE),
                event_line("AnswerUpdated", block=101, address=SOURCE, current="120"),
            ],
        )

        assert store.load(AssetPriceRecord, ASSET).latest_price == 120

    def test_invalid_json(self, make_engine) -> None:
        with pytest.raises(ReplayError, match="Line 1"):
            replay(make_engine(), ["{not json"])

    def test_unknown_event(self, make_engine) -> None:
        with pytest.raises(ReplayError, match="Unknown event"):
            dispatch_event(make_engine(), json.loads(event_line("Transfer")))

    def test_missing_parameter(self, make_engine) -> None:
        with pytest.raises(ReplayError, match="missing parameter"):
            dispatch_event(make_engine(), json.loads(event_line("AssetSourceUpdated", asset=ASSET)))

    @pytest.mark.parametrize(
        "line",
        [
            event_line("AnswerUpdated", address=SOURCE, current="abc"),
            event_line("EthPriceUpdated", address=FALLBACK, price=None),
            event_line("AssetPriceUpdated", address=FALLBACK, asset=ASSET, price=[1]),
            event_line("AssetSourceUpdated", asset=ASSET, source=42),
        ],
    )
    def test_invalid_parameter(self, make_engine, gateway, line) -> None:
        """Bad values are reported with the line number and never reach the engine."""
        with pytest.raises(ReplayError, match="Line 1: .*invalid parameter"):
            replay(make_engine(), [line])
        assert gateway.calls == []

    @pytest.mark.parametrize("line", ["[1, 2]", '"AnswerUpdated"', "7", "null"])
    def test_non_object_line(self, make_engine, line) -> None:
        with pytest.raises(ReplayError, match="Line 1: Expected an event object"):
            replay(make_engine(), [line])

    def test_invalid_block_context(self, make_engine) -> None:
        event = json.loads(event_line("WethSet", weth=ASSET))
        event["block"]["number"] = "eleven"

        with pytest.raises(ReplayError, match="invalid context"):
            dispatch_event(make_engine(), event)

    def test_engine_errors_not_rewritten(self, make_engine, monkeypatch) -> None:
        """A KeyError raised inside the engine is not reported as a missing parameter."""
        engine = make_engine()

        def fail(*args) -> None:
            raise KeyError("internal")

        monkeypatch.setattr(engine, "on_base_unit_set", fail)

        with pytest.raises(KeyError, match="internal"):
            dispatch_event(engine, json.loads(event_line("WethSet", weth=ASSET)))

    def test_error_line_number(self, make_engine) -> None:
        lines = [event_line("WethSet", weth=ASSET), "", event_line("Transfer")]
        with pytest.raises(ReplayError, match="Line 3: Unknown event"):
            replay(make_engine(), lines)


class TestDumpSnapshot:
    def test_json_serializable(self, make_engine, gateway, store) -> None:
        """Sets become sorted lists and feed types their names."""
        gateway.asset_prices[ASSET] = 100
        engine = make_engine(version=1)
        replay(engine, [event_line("AssetSourceUpdated", asset=ASSET, source=SOURCE)])

        data = json.loads(dump_snapshot(store))

        assert data["oracle"][0]["tokens_needing_fallback"] == [ASSET]
        assert data["assets"][0]["feed_type"] == "Simple"
        assert data["assets"][0]["price_source_address"] == SOURCE
        assert data["compatibility_names"] == []
