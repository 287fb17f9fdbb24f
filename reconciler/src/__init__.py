"""
Lending Protocol Price Source Reconciler

This module keeps one current price per asset, with provenance and a
fallback path, from the protocol's oracle events:
- ReconciliationEngine: Event entry points and version dispatch
- AssetClassifier: Simple/composite classification of price sources
- DependencyTracker: Composite sub-token dependency edges
- FallbackCoordinator: Fallback set maintenance and fallback price pushes
- PriceSourceGateway: Read-only contract calls returning CallResults
- RecordStore: Record persistence interface and in-memory store
"""

from .AddressWatcher import AddressWatcher, InMemoryAddressWatcher
from .AssetClassifier import AssetClassifier, Classification
from .CallResult import CallResult
from .DependencyTracker import DependencyTracker
from .EngineConfig import DEFAULT_ORACLE_VERSION, EngineConfig
from .FallbackCoordinator import FallbackCoordinator
from .PriceRecords import AssetPriceRecord, EventContext, FeedType, Oracle
from .PriceSourceGateway import PriceSourceGateway, Web3PriceSourceGateway
from .RecordStore import InMemoryRecordStore, RecordStore
from .ReconciliationEngine import ReconciliationEngine

__all__ = [
    "AddressWatcher",
    "AssetClassifier",
    "AssetPriceRecord",
    "CallResult",
    "Classification",
    "DEFAULT_ORACLE_VERSION",
    "DependencyTracker",
    "EngineConfig",
    "EventContext",
    "FallbackCoordinator",
    "FeedType",
    "InMemoryAddressWatcher",
    "InMemoryRecordStore",
    "Oracle",
    "PriceSourceGateway",
    "RecordStore",
    "ReconciliationEngine",
    "Web3PriceSourceGateway",
]
