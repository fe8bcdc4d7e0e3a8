"""Fixed-size bitmap for counting distinct values in a bounded space.

The middle tier of a three-tier counter. Each hashed value addresses one
bit; the count is the number of set bits. Memory is fixed at
``ceil(size / 8)`` bytes regardless of how many values are added.

Distinct values that map to the same position are indistinguishable, so
the count is exact over positions, not identifiers.

Bit ``position`` lives in byte ``position // 8`` at offset ``position % 8``
(least significant bit first). The hex form encodes bytes in order, which
lets the compressed form drop trailing all-zero bytes.
"""

from __future__ import annotations

from collections.abc import Iterator

from uvcounter.errors import FormatError, RangeError
from uvcounter.tiers.base import CounterTier
from uvcounter.tiers.hexcodec import decode_hex, encode_hex


class Bitmap(CounterTier):
    """Bit vector with population count and hex serialization.

    Args:
        size: Number of addressable bits. Must be positive.

    Example:
        bitmap = Bitmap(100)
        bitmap.set(5)
        bitmap.set(20)
        assert bitmap.positions() == [5, 20]
        assert bitmap.to_hex_str() == "200010"
    """

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        self._size = size
        self._bits = bytearray((size + 7) // 8)

    @property
    def size(self) -> int:
        """Number of addressable bits."""
        return self._size

    def _check(self, position: int) -> None:
        if not 0 <= position < self._size:
            raise RangeError(f"Position {position} out of range [0, {self._size})")

    def set(self, position: int) -> None:
        """Set the bit at ``position`` to 1.

        Raises:
            RangeError: If position is outside ``[0, size)``.
        """
        self._check(position)
        self._bits[position >> 3] |= 1 << (position & 7)

    def clear(self, position: int) -> None:
        """Set the bit at ``position`` to 0."""
        self._check(position)
        self._bits[position >> 3] &= ~(1 << (position & 7)) & 0xFF

    def get(self, position: int) -> bool:
        """Whether the bit at ``position`` is set."""
        self._check(position)
        return bool(self._bits[position >> 3] & (1 << (position & 7)))

    def add(self, value: int) -> None:
        self.set(value)

    def positions(self) -> list[int]:
        """All set positions in ascending order."""
        result = []
        for index, byte in enumerate(self._bits):
            if byte == 0:
                continue
            base = index * 8
            for offset in range(8):
                if byte & (1 << offset):
                    result.append(base + offset)
        return result

    def values(self) -> Iterator[int]:
        return iter(self.positions())

    def count(self) -> int:
        """Population count over all bytes."""
        return int.from_bytes(self._bits, "little").bit_count()

    def reset(self) -> None:
        self._bits = bytearray(len(self._bits))

    def _check_compatible(self, other: Bitmap) -> None:
        if not isinstance(other, Bitmap):
            raise TypeError(f"Can only combine with Bitmap, got {type(other).__name__}")
        if other._size != self._size:
            raise ValueError(f"Bitmaps must have the same size ({self._size} vs {other._size})")

    def and_(self, other: Bitmap) -> Bitmap:
        """Intersection of two bitmaps as a new bitmap."""
        self._check_compatible(other)
        result = Bitmap(self._size)
        result._bits = bytearray(a & b for a, b in zip(self._bits, other._bits))
        return result

    def or_(self, other: Bitmap) -> Bitmap:
        """Union of two bitmaps as a new bitmap."""
        self._check_compatible(other)
        result = Bitmap(self._size)
        result._bits = bytearray(a | b for a, b in zip(self._bits, other._bits))
        return result

    def not_(self) -> Bitmap:
        """Complement as a new bitmap.

        Padding bits past ``size`` in the last byte stay clear so that
        ``count()`` only reflects addressable positions.
        """
        result = Bitmap(self._size)
        result._bits = bytearray(~b & 0xFF for b in self._bits)
        tail = self._size % 8
        if tail:
            result._bits[-1] &= (1 << tail) - 1
        return result

    __and__ = and_
    __or__ = or_
    __invert__ = not_

    def to_hex_str(self, compress: bool = True) -> str:
        """Encode the bit vector as hex text.

        Args:
            compress: Drop trailing all-zero bytes when True.
        """
        return encode_hex(self._bits, compress)

    def from_hex_str(self, text: str, compress: bool = True) -> None:
        """Load the bit vector from hex text, zero-filling uncovered bytes.

        Raises:
            FormatError: If the text is malformed, too long, or sets bits
                past ``size``.
        """
        bits = decode_hex(text, len(self._bits), compress)
        tail = self._size % 8
        if tail and bits[-1] >> tail:
            raise FormatError(f"Hex string sets bits beyond bitmap size {self._size}")
        self._bits = bits

    def to_serial(self, compress: bool = True) -> str:
        return self.to_hex_str(compress)

    def from_serial(self, data: str, compress: bool = True) -> None:
        self.from_hex_str(data, compress)

    def to_binary(self) -> str:
        """Space-separated binary rendering of each byte, for debugging."""
        return " ".join(f"{byte:08b}" for byte in self._bits)

    @property
    def memory_bytes(self) -> int:
        return len(self._bits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitmap):
            return NotImplemented
        return self._size == other._size and self._bits == other._bits

    def __repr__(self) -> str:
        return f"Bitmap(size={self._size}, count={self.count()})"
