"""Base interface for unique-count tiers.

A ``UvCounter`` holds exactly one tier at a time and migrates between them
as cardinality grows. Each tier stores already-hashed integers and trades
accuracy for memory differently:

- ExactTier: a set of hashed values, exact over those values
- Bitmap: one bit per hash bucket, bounded address space
- HyperLogLog: fixed register array, probabilistic estimate

All tiers expose the same operations so the counter can route to whichever
one is active, replay one tier's values into the next, and serialize the
active tier into its persisted envelope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any


class CounterTier(ABC):
    """Base protocol for all counter tiers."""

    @abstractmethod
    def add(self, value: int) -> None:
        """Record an already-hashed value.

        Args:
            value: Non-negative hashed value.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of distinct values recorded (exact or estimated)."""

    @abstractmethod
    def values(self) -> Iterator[int]:
        """Iterate over retained values, used to seed the next tier.

        Tiers that cannot recover their inputs (HyperLogLog) raise
        ``TypeError``.
        """

    @abstractmethod
    def to_serial(self, compress: bool = True) -> Any:
        """Return a JSON-compatible representation of the tier state.

        Args:
            compress: Use the compact form where the tier has one.
        """

    @abstractmethod
    def from_serial(self, data: Any, compress: bool = True) -> None:
        """Replace the tier state with a serialized representation.

        The tier is left untouched if ``data`` is malformed.

        Raises:
            FormatError: If ``data`` cannot be decoded.
        """

    @abstractmethod
    def reset(self) -> None:
        """Reset the tier to its initial empty state."""

    @property
    @abstractmethod
    def memory_bytes(self) -> int:
        """Estimated memory usage in bytes."""
