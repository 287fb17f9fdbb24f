"""CallResult: Outcome of a read-only contract call.

A reverted call is a normal outcome rather than an exception, so every
gateway method returns a CallResult and callers branch on ``reverted``.

.. code-block:: python

    >>> result = CallResult.ok(100)
    >>> result.reverted
    False
    >>> CallResult.revert("execution reverted").unwrap_or(0)
    0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Result of a contract read: either a value or a revert.

    :ivar value: Returned value, or None when the call reverted.
    :ivar reverted: True if the call reverted.
    :ivar reason: Revert reason reported by the node, if any.
    """

    value: T | None = None
    reverted: bool = False
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> CallResult[T]:
        """Build a successful result."""
        return cls(value=value)

    @classmethod
    def revert(cls, reason: str | None = None) -> CallResult[T]:
        """Build a reverted result.

        :param reason: Optional revert reason for logging.
        """
        return cls(reverted=True, reason=reason)

    @property
    def success(self) -> bool:
        """Check if the call returned a value."""
        return not self.reverted

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` if the call reverted.

        :param default: Value to use in place of a revert.
        :returns: The call value or the default.
        """
        if self.reverted:
            return default
        return self.value  # type: ignore[return-value]
