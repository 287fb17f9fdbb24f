"""RecordStore: Abstract record persistence and an in-memory implementation.

The engine reads and writes records only through this interface. Records
are upserted by ``id``; loading returns a private copy so that changes are
visible to other readers only once saved.

.. code-block:: python

    >>> store = InMemoryRecordStore()
    >>> store.save(AggregatorBinding("0xagg", oracle_asset="0xasset"))
    >>> store.load(AggregatorBinding, "0xagg").oracle_asset
    '0xasset'
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from .PriceRecords import ORACLE_ID, AggregatorBinding, AssetPriceRecord, Oracle

logger = logging.getLogger(__name__)

R = TypeVar("R")


class RecordStore(ABC):
    """Abstract base class for record stores."""

    @abstractmethod
    def load(self, kind: type[R], record_id: str) -> R | None:
        """Load a record by type and id.

        :param kind: Record class.
        :param record_id: Record id.
        :returns: The record, or None if it does not exist.
        """
        pass

    @abstractmethod
    def save(self, record: Any) -> None:
        """Insert or replace a record by its ``id``.

        :param record: Record dataclass instance.
        """
        pass

    @abstractmethod
    def all(self, kind: type[R]) -> list[R]:
        """Return every stored record of a type, ordered by id.

        :param kind: Record class.
        """
        pass


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store holding deep copies of saved records.

    :ivar _records: Records grouped by class, then by id.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._records: dict[type, dict[str, Any]] = {}

    def load(self, kind: type[R], record_id: str) -> R | None:
        record = self._records.get(kind, {}).get(record_id)
        if record is None:
            return None
        return copy.deepcopy(record)

    def save(self, record: Any) -> None:
        self._records.setdefault(type(record), {})[record.id] = copy.deepcopy(record)

    def all(self, kind: type[R]) -> list[R]:
        records = self._records.get(kind, {})
        return [copy.deepcopy(records[key]) for key in sorted(records)]

    def count(self, kind: type) -> int:
        """Return the number of stored records of a type."""
        return len(self._records.get(kind, {}))


def get_or_init_oracle(store: RecordStore, version: int = 1) -> Oracle:
    """Load the oracle singleton, creating it with ``version`` on first use.

    :param store: Record store.
    :param version: Deployment version used only when the oracle is created.
    :returns: The oracle record.
    """
    oracle = store.load(Oracle, ORACLE_ID)
    if oracle is None:
        oracle = Oracle(version=version)
        store.save(oracle)
        logger.info(f"Initialized price oracle (version={version})")
    return oracle


def get_or_init_asset(
    store: RecordStore, oracle: Oracle, asset_id: str
) -> AssetPriceRecord:
    """Load an asset record, creating it on first reference.

    A new record has no price source yet, so it joins the oracle's
    fallback set; both records are saved immediately.

    :param store: Record store.
    :param oracle: Working copy of the oracle singleton.
    :param asset_id: Lowercase asset address.
    :returns: The asset record.
    """
    record = store.load(AssetPriceRecord, asset_id)
    if record is None:
        record = AssetPriceRecord(id=asset_id)
        oracle.tokens_needing_fallback.add(asset_id)
        store.save(record)
        store.save(oracle)
        logger.debug(f"Created price record for {asset_id}")
    return record


def get_or_init_binding(store: RecordStore, aggregator: str) -> AggregatorBinding:
    """Load an aggregator binding or return a fresh unsaved one."""
    binding = store.load(AggregatorBinding, aggregator)
    if binding is None:
        binding = AggregatorBinding(id=aggregator)
    return binding
