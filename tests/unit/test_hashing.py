"""Tests for identifier hashing."""

import pytest

from uvcounter.hashing import (
    BITMAP_HASH,
    EXACT_HASH,
    SKETCH_HASH,
    HashPolicy,
    hash_identifier,
    mix32,
)


class TestHashPolicy:
    """Tests for HashPolicy configuration."""

    def test_known_widths_use_their_multipliers(self):
        """Tier widths map to the multipliers the stored data was built with."""
        assert EXACT_HASH == HashPolicy(9, 8)
        assert BITMAP_HASH == HashPolicy(14, 13)
        assert SKETCH_HASH == HashPolicy(32, 31)

    def test_other_widths_default_to_31(self):
        """Unlisted widths fall back to multiplier 31."""
        assert HashPolicy.for_width(4).multiplier == 31
        assert HashPolicy.for_width(20).multiplier == 31

    def test_rejects_width_out_of_range(self):
        """Width must be in [1, 32]."""
        with pytest.raises(ValueError, match="must be in"):
            HashPolicy(0)
        with pytest.raises(ValueError, match="must be in"):
            HashPolicy(33)

    def test_mask_and_space(self):
        """mask and space follow the width."""
        assert EXACT_HASH.mask == 0x1FF
        assert EXACT_HASH.space == 512


class TestHashIdentifier:
    """Tests for hash values."""

    def test_empty_string_hashes_to_zero(self):
        """The empty string hashes to 0 at every width."""
        for width in (9, 14, 32):
            assert hash_identifier("", width) == 0

    def test_32_bit_matches_string_hash_code(self):
        """32-bit policy is the classic 31-multiplier string hash."""
        assert hash_identifier("a") == 97
        assert hash_identifier("abc") == 96354
        assert hash_identifier("hello") == 99162322

    def test_32_bit_wraps_to_unsigned(self):
        """Overflow wraps modulo 2^32 and is reported unsigned."""
        # Signed result is Integer.MIN_VALUE
        assert hash_identifier("polygenelubricants") == 2**31

    def test_narrow_widths(self):
        """Narrow widths mask after every step."""
        assert hash_identifier("abc", 9) == 435
        assert hash_identifier("abc", 14) == 1382

    def test_single_character_is_its_code_below_the_mask(self):
        """A single character hashes to its code unit, masked."""
        assert hash_identifier("a", 9) == 97
        assert hash_identifier(chr(609), 9) == 97

    def test_astral_characters_hash_as_surrogate_pairs(self):
        """Characters beyond the BMP contribute two UTF-16 code units."""
        assert hash_identifier("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_values_stay_within_width(self):
        """Results are always in [0, 2**width)."""
        ids = [f"client-{i}-{i * 7919}" for i in range(200)]
        for width in (4, 9, 14, 32):
            assert all(0 <= hash_identifier(i, width) < 2**width for i in ids)

    def test_policy_is_callable(self):
        """Policies hash when called."""
        assert EXACT_HASH("abc") == hash_identifier("abc", 9)


class TestMix32:
    """Tests for the 32-bit finalizer."""

    def test_zero_maps_to_zero(self):
        """The finalizer fixes zero."""
        assert mix32(0) == 0

    def test_distinct_inputs_stay_distinct(self):
        """The finalizer is a bijection on 32-bit values."""
        outputs = {mix32(v) for v in range(16384)}
        assert len(outputs) == 16384

    def test_outputs_are_32_bit(self):
        """Outputs stay within 32 bits."""
        assert all(0 <= mix32(v) < 2**32 for v in range(1000))

    def test_spreads_small_values_across_top_bits(self):
        """Small inputs reach many different top-bit buckets."""
        buckets = {mix32(v) >> 22 for v in range(512)}
        assert len(buckets) > 300
