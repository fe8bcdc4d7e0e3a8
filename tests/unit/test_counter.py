"""Tests for the adaptive unique-visitor counter."""

import json
import logging
import random
import uuid

import pytest

from uvcounter import Tier, TierPolicy, UvCounter
from uvcounter.errors import FormatError


def _fill(counter, n, start=0):
    """Add chr(start) .. chr(start + n - 1).

    Single-character identifiers below the active tier's width hash to their
    own code point, which makes promotion boundaries exact.
    """
    for code in range(start, start + n):
        counter.add(chr(code))
    return counter


class TestUvCounterBasics:
    """Tests for add/count in the Exact tier."""

    def test_starts_empty_in_exact_tier(self):
        """A new counter is exact and empty."""
        counter = UvCounter()

        assert counter.tier is Tier.EXACT
        assert counter.count() == 0

    def test_duplicates_counted_once(self):
        """Re-adding an identifier does not change the count."""
        counter = UvCounter()
        for identifier in ("abc", "defg", "abc"):
            counter.add(identifier)

        assert counter.count() == 2
        assert counter.tier is Tier.EXACT

    def test_count_is_idempotent(self):
        """Calling count() repeatedly does not change state."""
        counter = _fill(UvCounter(), 100)

        assert counter.count() == counter.count() == 100
        assert counter.tier is Tier.EXACT

    def test_narrow_hash_collisions_count_once(self):
        """Identifiers colliding under the narrow hash are one visitor."""
        counter = UvCounter()
        counter.add("a")
        counter.add(chr(97 + 512))

        assert counter.count() == 1

    def test_empty_identifier_is_a_visitor(self):
        """The empty string hashes to 0 and is counted."""
        counter = UvCounter()
        counter.add("")

        assert counter.count() == 1

    def test_count_never_decreases(self):
        """Exact counts are non-decreasing as identifiers are added."""
        counter = UvCounter(TierPolicy.three_tier(bitmap_threshold=16, sketch_threshold=256, precision=10))
        previous = 0
        for code in range(200):
            counter.add(chr(code % 150))
            current = counter.count()
            assert current >= previous
            previous = current


class TestUvCounterPromotion:
    """Tests for one-way tier promotion."""

    def test_stays_exact_below_bitmap_threshold(self):
        """511 distinct values stay in the Exact tier."""
        counter = _fill(UvCounter(), 511)

        assert counter.tier is Tier.EXACT
        assert counter.count() == 511

    def test_promotes_to_bitmap_at_threshold(self):
        """The 512th distinct value promotes to Bitmap without losing any."""
        counter = _fill(UvCounter(), 512)

        assert counter.tier is Tier.BITMAP
        assert counter.count() == 512

    def test_hash_width_follows_active_tier(self):
        """Identifiers are hashed with the active tier's width."""
        counter = UvCounter()
        assert counter.hash("abc") == 435

        _fill(counter, 512)

        assert counter.hash("abc") == 1382

    def test_bitmap_keeps_counting(self):
        """Values added after promotion are counted exactly."""
        counter = _fill(UvCounter(), 512)
        _fill(counter, 100, start=512)

        assert counter.tier is Tier.BITMAP
        assert counter.count() == 612

    def test_two_tier_promotes_straight_to_sketch(self):
        """Two-tier policy goes from Exact to HyperLogLog."""
        counter = UvCounter(TierPolicy.two_tier(sketch_threshold=16, precision=10))
        _fill(counter, 15)
        assert counter.tier is Tier.EXACT

        counter.add(chr(15))

        assert counter.tier is Tier.SKETCH
        assert abs(counter.count() - 16) <= 2

    def test_three_tier_promotes_to_sketch_before_threshold(self):
        """Three-tier policy reaches HyperLogLog two values early."""
        policy = TierPolicy.three_tier(bitmap_threshold=16, sketch_threshold=256, precision=10)
        counter = _fill(UvCounter(policy), 253)
        assert counter.tier is Tier.BITMAP

        counter.add(chr(253))

        assert counter.tier is Tier.SKETCH

    def test_no_demotion(self):
        """Once promoted, a counter never returns to an earlier tier."""
        counter = _fill(UvCounter(), 512)
        for _ in range(3):
            counter.add("abc")

        assert counter.tier is Tier.BITMAP

    def test_promotion_is_logged(self, caplog):
        """Each migration logs the sizes before and after."""
        with caplog.at_level(logging.INFO, logger="uvcounter"):
            _fill(UvCounter(), 512)

        assert "ExactTier converted to Bitmap, size: 512 --> 512" in caplog.text

    def test_memory_reflects_active_tier(self):
        """Bitmap tier occupies sketch_threshold / 8 bytes."""
        counter = _fill(UvCounter(), 512)

        assert counter.memory_bytes == 16384 // 8


class TestUvCounterMonotonicity:
    """Tests that reported counts never go down, including at the sketch edge."""

    def test_default_policy_across_sketch_promotion(self):
        """The add that promotes Bitmap to HyperLogLog does not lower the count."""
        counter = UvCounter()
        previous = 0
        for code in range(16382 + 300):
            counter.add(chr(code))
            current = counter.count()
            assert current >= previous, f"dropped from {previous} to {current} at {code}"
            previous = current

        assert counter.tier is Tier.SKETCH
        assert counter.count() >= 16382

    def test_across_estimator_ranges(self):
        """Counts stay non-decreasing while the sketch changes estimator range."""
        counter = UvCounter(TierPolicy.two_tier(sketch_threshold=16, precision=4))
        rng = random.Random(13)
        previous = 0
        for _ in range(2000):
            counter.add(str(uuid.UUID(int=rng.getrandbits(128))))
            current = counter.count()
            assert current >= previous
            previous = current

        assert counter.tier is Tier.SKETCH

    def test_floor_survives_reload(self):
        """A sketch envelope carries the highest reported count."""
        policy = TierPolicy.three_tier(bitmap_threshold=16, sketch_threshold=256, precision=10)
        counter = _fill(UvCounter(policy), 254)
        envelope = counter.to_dict()

        restored = UvCounter.from_dict(envelope, policy)

        assert envelope["floor"] == counter.count() >= 254
        assert restored.count() == counter.count()

    def test_sketch_envelope_without_floor(self):
        """Sketch envelopes without a floor load with none."""
        restored = UvCounter.from_dict({"type": 2, "data": ""})

        assert restored.tier is Tier.SKETCH
        assert restored.count() == 0


class TestUvCounterEnvelope:
    """Tests for to_dict/from_dict."""

    def test_exact_envelope(self):
        """Exact payload is the sorted list of narrow hashes."""
        counter = UvCounter()
        for identifier in ("abc", "defg", "abc"):
            counter.add(identifier)

        assert counter.to_dict() == {"type": 0, "data": [215, 435]}

    def test_exact_round_trip(self):
        """An Exact counter restores its count and keeps counting."""
        counter = UvCounter()
        for identifier in ("abc", "defg"):
            counter.add(identifier)

        restored = UvCounter.from_dict(counter.to_dict())
        restored.add("abc")

        assert restored.tier is Tier.EXACT
        assert restored.count() == 2

    def test_bitmap_envelope(self):
        """Bitmap payload is compressed hex."""
        counter = _fill(UvCounter(), 512)
        envelope = counter.to_dict()

        assert envelope == {"type": 1, "data": "ff" * 64}

        restored = UvCounter.from_dict(envelope)
        assert restored.tier is Tier.BITMAP
        assert restored.count() == 512

    def test_sketch_round_trip(self):
        """A sketch restores the same estimate under the same policy."""
        policy = TierPolicy.two_tier(sketch_threshold=16, precision=10)
        counter = _fill(UvCounter(policy), 40)
        envelope = counter.to_dict()

        restored = UvCounter.from_dict(envelope, policy)

        assert envelope["type"] == 2
        assert restored.tier is Tier.SKETCH
        assert restored.count() == counter.count()

    def test_json_round_trip(self):
        """to_json output is accepted by from_dict."""
        counter = _fill(UvCounter(), 30)
        text = counter.to_json()

        assert json.loads(text)["type"] == 0
        assert UvCounter.from_dict(text).count() == 30

    @pytest.mark.parametrize(
        "envelope, message",
        [
            ("{not json", "not valid JSON"),
            ([0, []], "must be a mapping"),
            ({"type": 0}, "requires 'type' and 'data'"),
            ({"data": []}, "requires 'type' and 'data'"),
            ({"type": 7, "data": []}, "Unknown counter tier"),
            ({"type": "0", "data": []}, "Unknown counter tier"),
            ({"type": True, "data": []}, "Unknown counter tier"),
            ({"type": 1, "data": "zz"}, "Invalid hexadecimal"),
            ({"type": 0, "data": "0102"}, "must be a list"),
            ({"type": 2, "data": "", "floor": -1}, "floor must be"),
            ({"type": 2, "data": "", "floor": "3"}, "floor must be"),
        ],
    )
    def test_rejects_malformed_envelopes(self, envelope, message):
        """Malformed envelopes raise FormatError."""
        with pytest.raises(FormatError, match=message):
            UvCounter.from_dict(envelope)

    def test_repr(self):
        """repr shows tier and count."""
        counter = UvCounter()
        counter.add("abc")

        assert repr(counter) == "UvCounter(tier=EXACT, count=1)"
