"""Exact distinct counting over hashed values.

The first tier of every counter. It stores each distinct hashed value, so
memory grows linearly with cardinality. That is what promotion is for.

Counting is exact with respect to hashed values, not identifiers: two
identifiers that collide under the tier's hash width count once.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Any

from uvcounter.errors import FormatError
from uvcounter.tiers.base import CounterTier


class ExactTier(CounterTier):
    """Deduplicating set of hashed values.

    Args:
        width: Bit width of accepted values. Used to validate loads;
            ``None`` accepts any non-negative integer.

    Example:
        tier = ExactTier(width=9)
        tier.add(17)
        tier.add(17)
        assert tier.count() == 1
    """

    def __init__(self, width: int | None = None):
        self._width = width
        self._values: set[int] = set()

    @property
    def width(self) -> int | None:
        return self._width

    def add(self, value: int) -> None:
        self._values.add(value)

    def count(self) -> int:
        return len(self._values)

    def values(self) -> Iterator[int]:
        return iter(sorted(self._values))

    def to_serial(self, compress: bool = True) -> list[int]:
        """Return the retained values as a sorted list.

        ``compress`` is accepted for interface parity and has no effect.
        """
        return sorted(self._values)

    def from_serial(self, data: Any, compress: bool = True) -> None:
        if not isinstance(data, list):
            raise FormatError(f"Exact tier data must be a list, got {type(data).__name__}")

        limit = 1 << self._width if self._width is not None else None
        for value in data:
            if isinstance(value, bool) or not isinstance(value, int):
                raise FormatError(f"Exact tier values must be integers, got {value!r}")
            if value < 0 or (limit is not None and value >= limit):
                raise FormatError(f"Exact tier value {value} outside [0, {limit})")

        self._values = set(data)

    def reset(self) -> None:
        self._values = set()

    @property
    def memory_bytes(self) -> int:
        return sys.getsizeof(self._values) + 28 * len(self._values)

    def __repr__(self) -> str:
        return f"ExactTier(width={self._width}, count={self.count()})"
