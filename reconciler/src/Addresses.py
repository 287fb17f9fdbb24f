"""Address constants and helpers shared across the reconciliation modules.

All asset and contract identifiers are handled as lowercase ``0x``-prefixed
hex strings, which is also the key format used by the record store.

.. code-block:: python

    >>> normalize_address("0xAbC0000000000000000000000000000000000001")
    '0xabc0000000000000000000000000000000000001'
    >>> is_zero_address(ZERO_ADDRESS)
    True
"""

from __future__ import annotations

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Placeholder asset the protocol uses as its USD unit of account.
MOCK_USD_ADDRESS = "0x10f7fc1f91ba351f9c629c5947ad69bd03c05b96"

# Maker token, whose compatibility symbol is pinned to "MKR".
MKR_ADDRESS = "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2"

# Asset ids with more zeros than this come from a known bad submission.
# The bound is strict: an id with exactly 38 zeros (prefix included) is
# accepted, whereas a split-on-"0" count of more than 38 parts would
# already reject it.
MALFORMED_ZERO_THRESHOLD = 38


def normalize_address(address: str | None) -> str:
    """Return the lowercase form of an address, mapping None to the zero address.

    :param address: Hex address in any casing, or None.
    :returns: Lowercase ``0x``-prefixed address.
    """
    if not address:
        return ZERO_ADDRESS
    address = address.lower()
    if not address.startswith("0x"):
        address = f"0x{address}"
    return address


def is_zero_address(address: str | None) -> bool:
    """Check whether an address is unset or the zero address."""
    return normalize_address(address) == ZERO_ADDRESS


def is_malformed_asset(address: str) -> bool:
    """Detect the degenerate asset ids produced by the historical bad submission.

    :param address: Asset address as received in the event.
    :returns: True if the lowercase hex form holds more than 38 ``'0'`` characters.
    """
    return normalize_address(address).count("0") > MALFORMED_ZERO_THRESHOLD
