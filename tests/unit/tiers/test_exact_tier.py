"""Tests for the exact set tier."""

import pytest

from uvcounter.errors import FormatError
from uvcounter.tiers import ExactTier


class TestExactTierCounting:
    """Tests for add/count."""

    def test_empty_count_is_zero(self):
        """A new tier counts nothing."""
        assert ExactTier().count() == 0

    def test_counts_distinct_values(self):
        """Duplicates are counted once."""
        tier = ExactTier(width=9)
        for value in (3, 17, 3, 511, 17):
            tier.add(value)

        assert tier.count() == 3

    def test_values_are_sorted(self):
        """values() yields retained values in ascending order."""
        tier = ExactTier()
        for value in (40, 2, 17):
            tier.add(value)

        assert list(tier.values()) == [2, 17, 40]

    def test_reset_empties_tier(self):
        """reset() discards all values."""
        tier = ExactTier()
        tier.add(1)
        tier.reset()

        assert tier.count() == 0

    def test_memory_grows_with_values(self):
        """Memory grows linearly with distinct count."""
        tier = ExactTier()
        before = tier.memory_bytes
        for value in range(1000):
            tier.add(value)

        assert tier.memory_bytes > before


class TestExactTierSerialization:
    """Tests for to_serial/from_serial."""

    def test_to_serial_is_sorted_list(self):
        """Serial form is a plain sorted list of ints."""
        tier = ExactTier(width=9)
        for value in (435, 215):
            tier.add(value)

        assert tier.to_serial() == [215, 435]

    def test_round_trip(self):
        """from_serial restores the count."""
        tier = ExactTier(width=9)
        for value in range(0, 500, 7):
            tier.add(value)

        restored = ExactTier(width=9)
        restored.from_serial(tier.to_serial())

        assert restored.count() == tier.count()
        assert list(restored.values()) == list(tier.values())

    def test_rejects_non_list(self):
        """Payload must be a list."""
        with pytest.raises(FormatError, match="must be a list"):
            ExactTier().from_serial("0102")

    @pytest.mark.parametrize("bad", [[1, "2"], [1.5], [True], [-1]])
    def test_rejects_bad_values(self, bad):
        """Values must be non-negative integers."""
        with pytest.raises(FormatError):
            ExactTier().from_serial(bad)

    def test_rejects_values_beyond_width(self):
        """Values must fit the tier's hash width."""
        with pytest.raises(FormatError, match="outside"):
            ExactTier(width=9).from_serial([511, 512])

    def test_failed_load_leaves_state_untouched(self):
        """A rejected payload does not partially apply."""
        tier = ExactTier(width=9)
        tier.add(5)

        with pytest.raises(FormatError):
            tier.from_serial([1, 2, 9999])

        assert list(tier.values()) == [5]
