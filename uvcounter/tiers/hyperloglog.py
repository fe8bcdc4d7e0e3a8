"""HyperLogLog for cardinality (distinct count) estimation.

HyperLogLog is a probabilistic data structure for estimating the number of
distinct elements (cardinality) in a data stream. It uses a small, fixed
amount of memory regardless of the stream size.

This is the terminal tier of a ``UvCounter``: once a counter gets here it
never migrates again.

Key properties:
- Space: 2^precision bytes (one byte per register)
- Update: O(1)
- Query: O(1), from a running sum of 2^-register kept up to date on add
- Error: ~1.04/√m standard error

Values are 32-bit hashes. The top ``precision`` bits select a register and
the register keeps the maximum rank seen, where rank is the 1-indexed
position of the first set bit in the remaining ``32 - precision`` bits.

Reference:
    Flajolet, Fusy, Gandouet, Meunier. "HyperLogLog: the analysis of a
    near-optimal cardinality estimation algorithm" (2007)
"""

from __future__ import annotations

import math
from collections.abc import Iterator

from uvcounter.errors import FormatError, PrecisionMismatchError
from uvcounter.hashing import SKETCH_HASH
from uvcounter.tiers.base import CounterTier
from uvcounter.tiers.hexcodec import decode_hex, encode_hex

HASH_BITS = 32
_HASH_SPACE = 1 << HASH_BITS

# 2^-k for every rank a register can hold
_INVERSE_POWERS = [2.0 ** -k for k in range(HASH_BITS + 2)]


def _count_leading_zeros(value: int, max_bits: int) -> int:
    """Count leading zeros of ``value`` within a ``max_bits``-wide field."""
    if value == 0:
        return max_bits
    return max_bits - value.bit_length()


class HyperLogLog(CounterTier):
    """HyperLogLog over 32-bit hashed values.

    Args:
        precision: Number of bits for register index (4-16).
            - precision=4: 16 registers, ~26% error
            - precision=10: 1024 registers, ~3.2% error
            - precision=14: 16384 registers, ~0.8% error
            Default is 14.

    Example:
        hll = HyperLogLog(precision=14)

        for visitor_id in visitor_stream:
            hll.add(visitor_id)

        print(f"~{hll.count()} unique visitors")
    """

    # Bias correction constants from the paper
    _ALPHA = {
        4: 0.673,
        5: 0.697,
        6: 0.709,
    }

    def __init__(self, precision: int = 14):
        """Initialize HyperLogLog.

        Raises:
            ValueError: If precision not in [4, 16].
        """
        if not 4 <= precision <= 16:
            raise ValueError(f"precision must be in [4, 16], got {precision}")

        self._precision = precision
        self._num_registers = 1 << precision
        self._remaining_bits = HASH_BITS - precision
        self._max_rank = self._remaining_bits + 1
        self._registers = bytearray(self._num_registers)
        self._recount()

    @property
    def precision(self) -> int:
        """Number of bits used for register indexing."""
        return self._precision

    @property
    def num_registers(self) -> int:
        """Number of registers (2^precision)."""
        return self._num_registers

    @property
    def registers(self) -> bytes:
        """Snapshot of the register array."""
        return bytes(self._registers)

    def _alpha(self) -> float:
        """Get bias correction factor alpha_m."""
        if self._precision in self._ALPHA:
            return self._ALPHA[self._precision]
        m = self._num_registers
        return 0.7213 / (1 + 1.079 / m)

    def _recount(self) -> None:
        # Partial sums are multiples of 2^-(33 - precision) below 2^precision,
        # so they stay exact in a double.
        self._indicator = sum(_INVERSE_POWERS[r] for r in self._registers)
        self._zeros = self._registers.count(0)

    def add(self, value: int | str) -> None:
        """Add a value to the sketch.

        Args:
            value: A 32-bit hashed value, or a string identifier which is
                hashed with the 32-bit rolling hash first.

        Raises:
            ValueError: If an integer value is outside ``[0, 2**32)``.
        """
        if isinstance(value, str):
            value = SKETCH_HASH(value)
        elif not 0 <= value < _HASH_SPACE:
            raise ValueError(f"hashed value must be in [0, 2**32), got {value}")

        register_idx = value >> self._remaining_bits
        remaining = value & ((1 << self._remaining_bits) - 1)
        rank = _count_leading_zeros(remaining, self._remaining_bits) + 1

        previous = self._registers[register_idx]
        if rank > previous:
            self._registers[register_idx] = rank
            self._indicator += _INVERSE_POWERS[rank] - _INVERSE_POWERS[previous]
            if previous == 0:
                self._zeros -= 1

    def count(self) -> int:
        """Estimate the number of distinct values, rounded to an integer."""
        m = self._num_registers

        estimate = self._alpha() * m * m / self._indicator

        if estimate <= 2.5 * m:
            # Small range: fall back to linear counting while registers are empty
            if self._zeros > 0:
                estimate = m * math.log(m / self._zeros)
        elif _HASH_SPACE / 30 < estimate < _HASH_SPACE:
            # Large range: compensate for 32-bit hash collisions. Uses 2^32 with
            # the 2^32/30 trigger, see DESIGN.md open question 3.
            estimate = -_HASH_SPACE * math.log(1 - estimate / _HASH_SPACE)

        return math.floor(estimate + 0.5)

    def values(self) -> Iterator[int]:
        raise TypeError("HyperLogLog cannot enumerate the values it has seen")

    def standard_error(self) -> float:
        """Theoretical standard error of the estimate (1.04/√m)."""
        return 1.04 / math.sqrt(self._num_registers)

    def merge(self, other: HyperLogLog) -> None:
        """Merge another HyperLogLog into this one (element-wise max).

        After merging, this sketch estimates the cardinality of the union
        of both streams.

        Raises:
            TypeError: If other is not a HyperLogLog.
            PrecisionMismatchError: If other has a different precision.
        """
        if not isinstance(other, HyperLogLog):
            raise TypeError(f"Can only merge with HyperLogLog, got {type(other).__name__}")
        if other._precision != self._precision:
            raise PrecisionMismatchError(
                f"Cannot merge: precision differs ({self._precision} vs {other._precision})"
            )

        self._registers = bytearray(map(max, self._registers, other._registers))
        self._recount()

    def reset(self) -> None:
        """Zero all registers."""
        self._registers = bytearray(self._num_registers)
        self._recount()

    def _validated(self, registers: bytes | bytearray) -> bytearray:
        if len(registers) != self._num_registers:
            raise FormatError(
                f"Registers length mismatch: expected {self._num_registers}, got {len(registers)}"
            )
        highest = max(registers, default=0)
        if highest > self._max_rank:
            raise FormatError(
                f"Register value {highest} exceeds maximum rank {self._max_rank} "
                f"for precision {self._precision}"
            )
        return bytearray(registers)

    def set_registers(self, registers: bytes | bytearray) -> None:
        """Replace the register array.

        Raises:
            FormatError: If the length differs from ``num_registers`` or a
                value exceeds the maximum rank.
        """
        self._registers = self._validated(registers)
        self._recount()

    def to_hex_str(self, compress: bool = True) -> str:
        """Encode registers as hex, two digits per register.

        Args:
            compress: Drop trailing zero registers when True.
        """
        return encode_hex(self._registers, compress)

    def from_hex_str(self, text: str, compress: bool = True) -> None:
        """Load registers from hex text, zero-filling uncovered registers.

        Raises:
            FormatError: If the text is malformed, too long, or holds a
                register value above the maximum rank.
        """
        self._registers = self._validated(decode_hex(text, self._num_registers, compress))
        self._recount()

    def to_serial(self, compress: bool = True) -> str:
        return self.to_hex_str(compress)

    def from_serial(self, data: str, compress: bool = True) -> None:
        self.from_hex_str(data, compress)

    def to_binary(self) -> str:
        """Space-separated binary rendering of each register, for debugging."""
        return " ".join(f"{register:08b}" for register in self._registers)

    @property
    def memory_bytes(self) -> int:
        return len(self._registers)

    def __repr__(self) -> str:
        return (
            f"HyperLogLog(precision={self._precision}, "
            f"registers={self._num_registers}, "
            f"count≈{self.count()})"
        )
