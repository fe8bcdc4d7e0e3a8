"""Deterministic string hashing for visitor identifiers.

Identifiers are hashed with a polynomial rolling hash over their UTF-16
code units, masked to a fixed bit width after every step::

    h = (h * multiplier + unit) mod 2^width

The width depends on which tier a counter is in. Narrow widths keep the
exact and bitmap tiers small; the sketch tier uses the full 32 bits.
These hashes are not cryptographic and collisions are expected.

``mix32`` is a separate avalanche step used when already-hashed narrow
values are replayed into a sketch during promotion.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

__all__ = [
    "BITMAP_HASH",
    "EXACT_HASH",
    "HashPolicy",
    "SKETCH_HASH",
    "hash_identifier",
    "mix32",
]

_MASK32 = 0xFFFFFFFF

# Multipliers used by the known tier widths. Other widths use 31.
_MULTIPLIERS = {
    9: 8,    # (h << 3) + c
    14: 13,
    32: 31,  # (h << 5) - h + c
}
_DEFAULT_MULTIPLIER = 31


def _code_units(identifier: str) -> Iterator[int]:
    """Yield the UTF-16 code units of a string."""
    for ch in identifier:
        code = ord(ch)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 + (code >> 10)
            yield 0xDC00 + (code & 0x3FF)
        else:
            yield code


@dataclass(frozen=True, slots=True)
class HashPolicy:
    """A rolling hash producing values in ``[0, 2**width)``.

    Args:
        width: Output bit width (1-32).
        multiplier: Polynomial multiplier applied at each step.
    """

    width: int
    multiplier: int = _DEFAULT_MULTIPLIER

    def __post_init__(self) -> None:
        if not 1 <= self.width <= 32:
            raise ValueError(f"width must be in [1, 32], got {self.width}")

    @classmethod
    def for_width(cls, width: int) -> HashPolicy:
        """Return the policy used for a given bit width."""
        return cls(width, _MULTIPLIERS.get(width, _DEFAULT_MULTIPLIER))

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    @property
    def space(self) -> int:
        """Number of distinct values this policy can produce."""
        return 1 << self.width

    def __call__(self, identifier: str) -> int:
        mask = self.mask
        h = 0
        for unit in _code_units(identifier):
            h = (h * self.multiplier + unit) & mask
        return h


EXACT_HASH = HashPolicy.for_width(9)
BITMAP_HASH = HashPolicy.for_width(14)
SKETCH_HASH = HashPolicy.for_width(32)


def hash_identifier(identifier: str, width: int = 32) -> int:
    """Hash an identifier to an unsigned integer in ``[0, 2**width)``.

    The empty string hashes to 0.
    """
    return HashPolicy.for_width(width)(identifier)


def mix32(value: int) -> int:
    """Spread a small hashed value over the full 32-bit space.

    Uses the MurmurHash3 finalizer, which is a bijection on 32-bit
    integers, so distinct inputs stay distinct.
    """
    h = value & _MASK32
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _MASK32
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _MASK32
    h ^= h >> 16
    return h
