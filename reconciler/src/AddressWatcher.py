"""AddressWatcher: Registration of contracts whose events must be followed."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

AGGREGATOR = "aggregator"
FALLBACK_ORACLE = "fallback_oracle"


class AddressWatcher(ABC):
    """Abstract base class for the event-subscription collaborator.

    The engine calls :meth:`watch` once per newly discovered address; the
    implementation is expected to start delivering that contract's events.
    """

    @abstractmethod
    def watch(self, kind: str, address: str) -> None:
        """Begin watching a contract.

        :param kind: Contract kind ("aggregator" or "fallback_oracle").
        :param address: Lowercase contract address.
        """
        pass

    @abstractmethod
    def is_watching(self, address: str) -> bool:
        """Check whether a contract is already watched."""
        pass

    def ensure_watching(self, kind: str, address: str) -> bool:
        """Watch an address unless it is already watched.

        :returns: True if a new watch was registered.
        """
        if self.is_watching(address):
            return False
        self.watch(kind, address)
        return True


class InMemoryAddressWatcher(AddressWatcher):
    """Watcher that only records addresses, for replays and tests.

    :ivar watched: Watched address to contract kind.
    """

    def __init__(self) -> None:
        self.watched: dict[str, str] = {}

    def watch(self, kind: str, address: str) -> None:
        self.watched[address] = kind
        logger.info(f"Watching {kind} {address}")

    def is_watching(self, address: str) -> bool:
        return address in self.watched
