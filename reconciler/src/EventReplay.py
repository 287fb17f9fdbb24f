"""EventReplay: Feeds decoded events from JSON lines into the engine.

Each line is one JSON object with an ``event`` name, the event parameters
and its block context:

.. code-block:: json

    {"event": "AssetSourceUpdated", "asset": "0x6b17...", "source": "0x773616...",
     "address": "0xa50ba011c48153de246e5192c8f9258a2ba79ca9",
     "block": {"timestamp": 1606780800, "number": 11363000},
     "tx_hash": "0xabc...", "log_index": 3}

Decoding raw logs into this form is left to the caller.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from enum import Enum
from typing import Any, Callable, Iterable

from .PriceRecords import (
    AggregatorBinding,
    AssetPriceRecord,
    BaseUnitRecord,
    CompatibilityNameRecord,
    EventContext,
    Oracle,
    PriceHistoryItem,
    ReserveRecord,
    UsdEthPriceHistoryItem,
)
from .RecordStore import RecordStore
from .ReconciliationEngine import ReconciliationEngine

logger = logging.getLogger(__name__)

SNAPSHOT_KINDS: dict[str, type] = {
    "oracle": Oracle,
    "assets": AssetPriceRecord,
    "aggregators": AggregatorBinding,
    "compatibility_names": CompatibilityNameRecord,
    "base_unit": BaseUnitRecord,
    "reserves": ReserveRecord,
    "price_history": PriceHistoryItem,
    "usd_eth_price_history": UsdEthPriceHistoryItem,
}


class ReplayError(ValueError):
    """Raised when an event line cannot be dispatched."""

    pass


def _address(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected an address string, got {value!r}")
    return value


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"expected an integer, got {value!r}")
    return int(value)


# Parameters of each event kind, in handler argument order.
EVENT_PARAMETERS: dict[str, tuple[tuple[str, Callable[[Any], Any]], ...]] = {
    "WethSet": (("weth", _address),),
    "FallbackOracleUpdated": (("fallback_oracle", _address),),
    "AssetSourceUpdated": (("asset", _address), ("source", _address)),
    "AggregatorUpdated": (("token", _address), ("aggregator", _address)),
    "AnswerUpdated": (("current", _integer),),
    "AssetPriceUpdated": (("asset", _address), ("price", _integer)),
    "EthPriceUpdated": (("price", _integer),),
    "ReserveInitialized": (("asset", _address), ("yield_token", _address)),
}


def parse_event_context(event: dict[str, Any]) -> EventContext:
    """Build the EventContext of a decoded event.

    :param event: Decoded event object.
    :returns: EventContext.
    :raises ReplayError: If the block context is missing or malformed.
    """
    block = event.get("block")
    if not isinstance(block, dict) or "timestamp" not in block or "number" not in block:
        raise ReplayError(f"Event {event.get('event')!r} has no block context")
    try:
        return EventContext(
            timestamp=_integer(block["timestamp"]),
            block_number=_integer(block["number"]),
            address=_address(event.get("address") or ""),
            tx_hash=_address(event.get("tx_hash") or ""),
            log_index=_integer(event.get("log_index", 0)),
        )
    except ValueError as exc:
        raise ReplayError(f"Event {event.get('event')!r} has invalid context: {exc}") from exc


def parse_event_parameters(name: str, event: dict[str, Any]) -> list[Any]:
    """Extract and convert the parameters of a known event kind.

    :param name: Event name present in ``EVENT_PARAMETERS``.
    :param event: Decoded event object.
    :returns: Converted parameter values in handler argument order.
    :raises ReplayError: If a parameter is missing or has the wrong type.
    """
    values = []
    for key, convert in EVENT_PARAMETERS[name]:
        if key not in event:
            raise ReplayError(f"Event {name!r} is missing parameter {key!r}")
        try:
            values.append(convert(event[key]))
        except ValueError as exc:
            raise ReplayError(f"Event {name!r} has invalid parameter {key!r}: {exc}") from exc
    return values


def _handlers(
    engine: ReconciliationEngine,
) -> dict[str, Callable[..., Any]]:
    return {
        "WethSet": lambda ctx, weth: engine.on_base_unit_set(weth, ctx),
        "FallbackOracleUpdated": lambda ctx, fallback: engine.on_fallback_oracle_changed(
            fallback, ctx
        ),
        "AssetSourceUpdated": lambda ctx, asset, source: engine.on_asset_source_updated(
            asset, source, ctx
        ),
        "AggregatorUpdated": lambda ctx, token, aggregator: engine.on_aggregator_registry_updated(
            token, aggregator, ctx
        ),
        "AnswerUpdated": lambda ctx, current: engine.on_aggregator_answer_updated(
            ctx.address, current, ctx
        ),
        "AssetPriceUpdated": lambda ctx, asset, price: engine.on_fallback_asset_price_updated(
            ctx.address, asset, price, ctx
        ),
        "EthPriceUpdated": lambda ctx, price: engine.on_fallback_eth_price_updated(
            ctx.address, price, ctx
        ),
        "ReserveInitialized": lambda ctx, asset, yield_token: engine.on_reserve_initialized(
            asset, yield_token, ctx
        ),
    }


def dispatch_event(engine: ReconciliationEngine, event: Any) -> None:
    """Route one decoded event to the matching engine entry point.

    The event is fully validated before the engine is called, so errors
    raised by the engine itself propagate unchanged.

    :param engine: Reconciliation engine.
    :param event: Decoded event object.
    :raises ReplayError: On non-object events, unknown event names or bad parameters.
    """
    if not isinstance(event, dict):
        raise ReplayError(f"Expected an event object, got {type(event).__name__}")

    name = event.get("event")
    handler = _handlers(engine).get(name)
    if handler is None:
        raise ReplayError(f"Unknown event {name!r}")

    ctx = parse_event_context(event)
    parameters = parse_event_parameters(name, event)
    handler(ctx, *parameters)


def replay(engine: ReconciliationEngine, lines: Iterable[str]) -> int:
    """Replay JSON-lines events in order.

    :param engine: Reconciliation engine.
    :param lines: JSON lines; blank lines are skipped.
    :returns: Number of events processed.
    :raises ReplayError: On malformed lines, prefixed with the line number.
    """
    count = 0
    for line_number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ReplayError(f"Line {line_number}: invalid JSON ({exc})") from exc
        try:
            dispatch_event(engine, event)
        except ReplayError as exc:
            raise ReplayError(f"Line {line_number}: {exc}") from exc
        count += 1
    logger.info(f"Replayed {count} events")
    return count


def _to_json(value: Any) -> Any:
    if isinstance(value, set):
        return sorted(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def snapshot(store: RecordStore) -> dict[str, list[dict[str, Any]]]:
    """Return all records grouped by kind as plain dictionaries."""
    return {
        name: [dataclasses.asdict(record) for record in store.all(kind)]
        for name, kind in SNAPSHOT_KINDS.items()
    }


def dump_snapshot(store: RecordStore) -> str:
    """Serialize the store snapshot as indented JSON."""
    return json.dumps(snapshot(store), default=_to_json, indent=2, sort_keys=True)
