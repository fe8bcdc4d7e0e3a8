"""Tier promotion policies for ``UvCounter``.

A policy fixes the cardinality thresholds at which a counter migrates from
one representation to the next, and the sketch precision it ends up with.
Two layouts are supported:

- Two-tier: Exact below ``sketch_threshold``, HyperLogLog from there on.
- Three-tier: Exact below ``bitmap_threshold``, Bitmap up to
  ``sketch_threshold``, HyperLogLog from ``sketch_threshold - 2`` on. The
  early promotion leaves a spare chance to migrate if a process restarts
  exactly at the boundary.

Policies can be read from the environment with ``policy_from_env``:

    UVC_TIER_POLICY: "two" or "three" (default "three")
    UVC_BITMAP_THRESHOLD: Exact -> Bitmap threshold (three-tier only)
    UVC_SKETCH_THRESHOLD: threshold for promotion to HyperLogLog
    UVC_PRECISION: HyperLogLog precision (4-16)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

__all__ = [
    "DEFAULT_BITMAP_THRESHOLD",
    "DEFAULT_PRECISION",
    "DEFAULT_SKETCH_THRESHOLD",
    "TierPolicy",
    "policy_from_env",
]

DEFAULT_BITMAP_THRESHOLD = 512  # 2^9
DEFAULT_SKETCH_THRESHOLD = 16384  # 2^14
DEFAULT_TWO_TIER_SKETCH_THRESHOLD = 512
DEFAULT_PRECISION = 14
THREE_TIER_SKETCH_MARGIN = 2


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class TierPolicy:
    """Thresholds controlling one-way tier promotion.

    Args:
        bitmap_threshold: Distinct count at which Exact promotes to Bitmap.
            ``None`` disables the Bitmap tier.
        sketch_threshold: Size of the bounded address space before the
            sketch tier. Promotion to HyperLogLog happens at
            ``sketch_threshold - sketch_margin``.
        sketch_margin: How many elements early the sketch promotion fires.
        precision: HyperLogLog precision (``m = 2**precision`` registers).
    """

    bitmap_threshold: int | None = DEFAULT_BITMAP_THRESHOLD
    sketch_threshold: int = DEFAULT_SKETCH_THRESHOLD
    sketch_margin: int = THREE_TIER_SKETCH_MARGIN
    precision: int = DEFAULT_PRECISION

    def __post_init__(self) -> None:
        if not _is_power_of_two(self.sketch_threshold) or self.sketch_threshold < 2:
            raise ValueError(
                f"sketch_threshold must be a power of two >= 2, got {self.sketch_threshold}"
            )
        if self.bitmap_threshold is not None:
            if not _is_power_of_two(self.bitmap_threshold) or self.bitmap_threshold < 2:
                raise ValueError(
                    f"bitmap_threshold must be a power of two >= 2, got {self.bitmap_threshold}"
                )
            if self.bitmap_threshold >= self.sketch_threshold:
                raise ValueError(
                    "bitmap_threshold must be below sketch_threshold "
                    f"({self.bitmap_threshold} >= {self.sketch_threshold})"
                )
        if not 0 <= self.sketch_margin < self.sketch_threshold:
            raise ValueError(f"sketch_margin must be in [0, sketch_threshold), got {self.sketch_margin}")
        if not 4 <= self.precision <= 16:
            raise ValueError(f"precision must be in [4, 16], got {self.precision}")

    @classmethod
    def two_tier(
        cls,
        sketch_threshold: int = DEFAULT_TWO_TIER_SKETCH_THRESHOLD,
        precision: int = DEFAULT_PRECISION,
    ) -> TierPolicy:
        """Exact set, then HyperLogLog."""
        return cls(
            bitmap_threshold=None,
            sketch_threshold=sketch_threshold,
            sketch_margin=0,
            precision=precision,
        )

    @classmethod
    def three_tier(
        cls,
        bitmap_threshold: int = DEFAULT_BITMAP_THRESHOLD,
        sketch_threshold: int = DEFAULT_SKETCH_THRESHOLD,
        precision: int = DEFAULT_PRECISION,
    ) -> TierPolicy:
        """Exact set, then Bitmap, then HyperLogLog."""
        return cls(
            bitmap_threshold=bitmap_threshold,
            sketch_threshold=sketch_threshold,
            sketch_margin=THREE_TIER_SKETCH_MARGIN,
            precision=precision,
        )

    @property
    def has_bitmap(self) -> bool:
        return self.bitmap_threshold is not None

    @property
    def exact_width(self) -> int:
        """Hash width used while in the Exact tier."""
        upper = self.bitmap_threshold if self.bitmap_threshold is not None else self.sketch_threshold
        return upper.bit_length() - 1

    @property
    def bitmap_width(self) -> int:
        """Hash width used while in the Bitmap tier."""
        return self.sketch_threshold.bit_length() - 1

    @property
    def bitmap_capacity(self) -> int:
        return self.sketch_threshold

    @property
    def sketch_promotion_point(self) -> int:
        """Distinct count at which the counter migrates to HyperLogLog."""
        return self.sketch_threshold - self.sketch_margin


def _int_from_env(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def policy_from_env() -> TierPolicy:
    """Build a TierPolicy from ``UVC_*`` environment variables.

    Unset variables fall back to the preset defaults.

    Raises:
        ValueError: If a variable holds an invalid value.
    """
    kind = os.environ.get("UVC_TIER_POLICY", "three").strip().lower() or "three"
    precision = _int_from_env("UVC_PRECISION")
    sketch_threshold = _int_from_env("UVC_SKETCH_THRESHOLD")
    bitmap_threshold = _int_from_env("UVC_BITMAP_THRESHOLD")

    kwargs: dict[str, int] = {}
    if precision is not None:
        kwargs["precision"] = precision
    if sketch_threshold is not None:
        kwargs["sketch_threshold"] = sketch_threshold

    if kind == "two":
        return TierPolicy.two_tier(**kwargs)
    if kind == "three":
        if bitmap_threshold is not None:
            kwargs["bitmap_threshold"] = bitmap_threshold
        return TierPolicy.three_tier(**kwargs)
    raise ValueError(f"UVC_TIER_POLICY must be 'two' or 'three', got {kind!r}")
