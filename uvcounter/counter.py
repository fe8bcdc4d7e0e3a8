"""Adaptive unique-visitor counter.

``UvCounter`` counts distinct client identifiers while migrating its
internal representation as cardinality grows:

    Exact (set of hashes) -> Bitmap (optional) -> HyperLogLog

Promotion is one-way and is checked after every ``add``, never on
``count``. Identifiers are hashed with the *active* tier's width: the Exact
tier uses a narrow hash sized to the next tier's threshold, so promotion
replays the stored narrow hashes instead of rehashing raw identifiers,
which are never kept. Two identifiers colliding under the narrow hash
count once even while the Exact tier is active.

A counter is persisted as a tagged envelope::

    {"type": <Tier value>, "data": <tier payload>}

where the payload is a list of ints for Exact and compressed hex text for
Bitmap and HyperLogLog. A HyperLogLog envelope also carries ``"floor"``,
the highest count reported so far, so ``count()`` stays non-decreasing
across a reload.

Instances are not thread-safe. Callers must serialize ``add`` calls per
instance.

Example:
    counter = UvCounter()
    counter.add("abc")
    counter.add("defg")
    counter.add("abc")
    assert counter.count() == 2

    restored = UvCounter.from_dict(counter.to_dict())
    assert restored.count() == 2
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import IntEnum
from typing import Any

from uvcounter.config import TierPolicy
from uvcounter.errors import FormatError
from uvcounter.hashing import HashPolicy, mix32
from uvcounter.tiers import Bitmap, CounterTier, ExactTier, HyperLogLog

logger = logging.getLogger(__name__)

__all__ = ["Tier", "UvCounter"]


class Tier(IntEnum):
    """Representation tags, in promotion order. Values are persisted."""

    EXACT = 0
    BITMAP = 1
    SKETCH = 2


_TIER_LABELS = {
    Tier.EXACT: "ExactTier",
    Tier.BITMAP: "Bitmap",
    Tier.SKETCH: "HyperLogLog",
}


class UvCounter:
    """Distinct-count estimator with one-way tier promotion.

    Args:
        policy: Promotion thresholds and sketch precision. Defaults to the
            three-tier policy (Exact < 512 <= Bitmap < 16382 <= HyperLogLog).
    """

    __slots__ = ("_policy", "_tier", "_counter", "_hashers", "_floor")

    def __init__(self, policy: TierPolicy | None = None):
        self._policy = policy if policy is not None else TierPolicy()
        self._hashers = {
            Tier.EXACT: HashPolicy.for_width(self._policy.exact_width),
            Tier.BITMAP: HashPolicy.for_width(self._policy.bitmap_width),
            Tier.SKETCH: HashPolicy.for_width(32),
        }
        self._tier = Tier.EXACT
        self._counter: CounterTier = self._new_tier(Tier.EXACT)
        # Highest count reported once the sketch is active
        self._floor = 0

    @property
    def policy(self) -> TierPolicy:
        return self._policy

    @property
    def tier(self) -> Tier:
        """The currently active representation."""
        return self._tier

    @property
    def counter(self) -> CounterTier:
        """The active tier object."""
        return self._counter

    @property
    def memory_bytes(self) -> int:
        return self._counter.memory_bytes

    def _new_tier(self, tier: Tier) -> CounterTier:
        if tier is Tier.EXACT:
            return ExactTier(width=self._policy.exact_width)
        if tier is Tier.BITMAP:
            return Bitmap(self._policy.bitmap_capacity)
        return HyperLogLog(self._policy.precision)

    def hash(self, identifier: str) -> int:
        """Hash an identifier with the active tier's width."""
        return self._hashers[self._tier](identifier)

    def add(self, identifier: str) -> None:
        """Record one occurrence of a client identifier.

        Hashes with the active tier's width, inserts into the active tier,
        then promotes if a threshold has been crossed.
        """
        self._counter.add(self.hash(identifier))
        self._update_tier()

    def count(self) -> int:
        """Distinct identifiers seen so far (exact or estimated).

        Never lower than a count reported earlier, even where the sketch
        estimate dips at promotion or when it switches estimator range.
        """
        return max(self._counter.count(), self._floor)

    def _update_tier(self) -> None:
        if self._tier is Tier.SKETCH:
            self._floor = max(self._floor, self._counter.count())
            return

        policy = self._policy
        count = self._counter.count()
        if (
            self._tier is Tier.EXACT
            and policy.has_bitmap
            and policy.bitmap_threshold <= count < policy.sketch_promotion_point
        ):
            self._promote_to_bitmap()
            logger.info(
                "%s converted to %s, size: %d --> %d",
                _TIER_LABELS[Tier.EXACT], _TIER_LABELS[Tier.BITMAP], count, self.count(),
            )
        elif count >= policy.sketch_promotion_point:
            previous = self._tier
            self._promote_to_sketch()
            self._floor = max(count, self._counter.count())
            logger.info(
                "%s converted to %s, size: %d --> %d",
                _TIER_LABELS[previous], _TIER_LABELS[Tier.SKETCH], count, self.count(),
            )

    def _promote_to_bitmap(self) -> None:
        bitmap = self._new_tier(Tier.BITMAP)
        mask = self._policy.bitmap_capacity - 1
        for value in self._counter.values():
            bitmap.add(value & mask)

        self._counter = bitmap
        self._tier = Tier.BITMAP

    def _promote_to_sketch(self) -> None:
        sketch = self._new_tier(Tier.SKETCH)
        # Narrow hashes all sit below the sketch's bucket bits; spread
        # them so they land in distinct registers.
        for value in self._counter.values():
            sketch.add(mix32(value))

        self._counter = sketch
        self._tier = Tier.SKETCH

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``{"type", "data"}`` envelope."""
        envelope = {
            "type": int(self._tier),
            "data": self._counter.to_serial(),
        }
        if self._tier is Tier.SKETCH:
            envelope["floor"] = self._floor
        return envelope

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(
        cls,
        envelope: Mapping[str, Any] | str,
        policy: TierPolicy | None = None,
    ) -> UvCounter:
        """Rebuild a counter from its envelope.

        Args:
            envelope: Dict produced by ``to_dict()``, or its JSON text.
            policy: Policy the counter was created with. Needed to size
                the Bitmap and HyperLogLog tiers.

        Raises:
            FormatError: If the envelope is malformed, the tier tag is
                unknown, or the payload fails to decode.
        """
        if isinstance(envelope, str):
            try:
                envelope = json.loads(envelope)
            except json.JSONDecodeError as e:
                raise FormatError(f"Counter envelope is not valid JSON: {e}") from e
        if not isinstance(envelope, Mapping):
            raise FormatError(f"Counter envelope must be a mapping, got {type(envelope).__name__}")
        if "type" not in envelope or "data" not in envelope:
            raise FormatError("Counter envelope requires 'type' and 'data' fields")

        tag = envelope["type"]
        if isinstance(tag, bool) or not isinstance(tag, int):
            raise FormatError(f"Unknown counter tier: {tag!r}")
        try:
            tier = Tier(tag)
        except ValueError:
            raise FormatError(f"Unknown counter tier: {tag!r}") from None

        counter = cls(policy)
        state = counter._new_tier(tier)
        state.from_serial(envelope["data"])
        if tier is Tier.SKETCH:
            floor = envelope.get("floor", 0)
            if isinstance(floor, bool) or not isinstance(floor, int) or floor < 0:
                raise FormatError(f"Counter floor must be a non-negative integer, got {floor!r}")
            counter._floor = floor
        counter._counter = state
        counter._tier = tier
        return counter

    def __repr__(self) -> str:
        return f"UvCounter(tier={self._tier.name}, count={self.count()})"
