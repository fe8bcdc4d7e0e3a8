"""Error types raised by the unique-visitor counters.

Every failure is fatal to the single operation that raised it. Loads never
leave a counter half-populated, so callers can catch ``FormatError`` and
fall back to a fresh counter.
"""

from __future__ import annotations

__all__ = [
    "CounterError",
    "FormatError",
    "PrecisionMismatchError",
    "RangeError",
]


class CounterError(Exception):
    """Base class for all counter errors."""


class FormatError(CounterError, ValueError):
    """Serialized counter state is malformed.

    Raised for invalid hex text, wrong lengths, out-of-range register
    values, bad exact-tier payloads, and unknown tier tags.
    """


class RangeError(CounterError, IndexError):
    """A bitmap position falls outside the bitmap's capacity."""


class PrecisionMismatchError(CounterError, ValueError):
    """Two sketches with different register counts cannot be merged."""
