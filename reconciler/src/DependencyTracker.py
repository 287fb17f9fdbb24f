"""DependencyTracker: Sub-token to dependent-asset edges for composite feeds.

Edges point from a sub-token to the composite assets priced from it. Only
one hop is recorded and nothing walks the edges transitively, so cycles
introduced by a malformed feed are harmless.
"""

from __future__ import annotations

import logging

from .PriceRecords import Oracle
from .RecordStore import RecordStore, get_or_init_asset

logger = logging.getLogger(__name__)


class DependencyTracker:
    """Records which composite assets depend on which sub-tokens.

    :ivar store: Record store.
    :ivar usd_base_unit: Lowercase address of the USD base unit.
    """

    def __init__(self, store: RecordStore, usd_base_unit: str) -> None:
        self.store = store
        self.usd_base_unit = usd_base_unit

    def register_dependency(
        self, oracle: Oracle, dependent_asset: str, sub_token: str
    ) -> None:
        """Record that ``dependent_asset`` is priced from ``sub_token``.

        Dependencies on the USD base unit are kept on the oracle; any other
        sub-token gets the edge on its own price record, which is created if
        needed. Repeated registration is a no-op.

        :param oracle: Working copy of the oracle singleton (saved by the caller).
        :param dependent_asset: Composite asset address.
        :param sub_token: Sub-token address.
        """
        if sub_token == self.usd_base_unit:
            oracle.usd_dependent_assets.add(dependent_asset)
            return

        record = get_or_init_asset(self.store, oracle, sub_token)
        if dependent_asset in record.dependent_assets:
            return
        record.dependent_assets.add(dependent_asset)
        self.store.save(record)
        logger.debug(f"{dependent_asset} now depends on {sub_token}")

    def register_all(
        self, oracle: Oracle, dependent_asset: str, sub_tokens: list[str]
    ) -> None:
        """Register every sub-token of a composite asset."""
        for sub_token in sub_tokens:
            self.register_dependency(oracle, dependent_asset, sub_token)
