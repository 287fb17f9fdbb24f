"""Name-registry node hashing for compatibility records.

The node is computed the way the ENS registry does: starting from 32 zero
bytes, labels are folded in from the last one to the first as
``keccak256(node + keccak256(label))``.

.. code-block:: python

    >>> namehash(["eth"])
    '0x93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae'
"""

from __future__ import annotations

from web3 import Web3

EMPTY_NODE = b"\x00" * 32


def namehash(labels: list[str]) -> str:
    """Hash a label path into a registry node.

    :param labels: Labels in reading order (e.g., ["aggregator", "dai-eth", "data", "eth"]).
    :returns: ``0x``-prefixed hex node.
    """
    node = EMPTY_NODE
    for label in reversed(labels):
        node = Web3.keccak(node + Web3.keccak(text=label))
    return Web3.to_hex(node)


def compatibility_labels(symbol: str) -> list[str]:
    """Build the ``aggregator.<symbol>-eth.data.eth`` label path for a symbol."""
    return ["aggregator", f"{symbol.lower()}-eth", "data", "eth"]
