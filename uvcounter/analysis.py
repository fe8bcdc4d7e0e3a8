"""Accuracy trials for the HyperLogLog tier.

Runs repeated estimates over streams of uniformly random 32-bit hashed
values and tabulates the relative error, so the observed error
distribution can be compared with the theoretical ``1.04/sqrt(m)``.

Example:
    frame = accuracy_trials([1_000, 10_000, 100_000], trials=20, precision=12, seed=7)
    summary = summarize_errors(frame, precision=12)
    plot_accuracy(summary, "hll_accuracy.png")
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from uvcounter.tiers import HyperLogLog

logger = logging.getLogger(__name__)

__all__ = ["accuracy_trials", "plot_accuracy", "summarize_errors"]

TRIAL_COLUMNS = ["n", "trial", "estimate", "relative_error"]


def accuracy_trials(
    cardinalities: Iterable[int],
    trials: int = 10,
    precision: int = 14,
    seed: int | None = None,
) -> pd.DataFrame:
    """Estimate known cardinalities with fresh sketches.

    Each trial feeds ``n`` distinct random 32-bit values into a new
    HyperLogLog and records its estimate.

    Args:
        cardinalities: True distinct counts to test.
        trials: Independent sketches per cardinality.
        precision: HyperLogLog precision.
        seed: Seed for the value generator.

    Returns:
        DataFrame with columns ``n``, ``trial``, ``estimate`` and
        ``relative_error`` (signed, ``(estimate - n) / n``).
    """
    if trials < 1:
        raise ValueError(f"trials must be positive, got {trials}")

    rng = random.Random(seed)
    rows = []
    for n in cardinalities:
        if n < 1:
            raise ValueError(f"cardinalities must be positive, got {n}")
        for trial in range(trials):
            hll = HyperLogLog(precision)
            for value in rng.sample(range(1 << 32), n):
                hll.add(value)
            estimate = hll.count()
            rows.append((n, trial, estimate, (estimate - n) / n))
        logger.debug("Ran %d trials at n=%d, precision=%d", trials, n, precision)

    return pd.DataFrame(rows, columns=TRIAL_COLUMNS)


def summarize_errors(frame: pd.DataFrame, precision: int) -> pd.DataFrame:
    """Summarize absolute relative error per cardinality.

    Returns:
        DataFrame indexed by ``n`` with columns ``mean_error``,
        ``median_error``, ``p95_error``, ``bias`` (mean signed error) and
        ``theoretical_error``.
    """
    grouped = frame.assign(abs_error=frame["relative_error"].abs()).groupby("n")
    summary = pd.DataFrame({
        "mean_error": grouped["abs_error"].mean(),
        "median_error": grouped["abs_error"].median(),
        "p95_error": grouped["abs_error"].quantile(0.95),
        "bias": grouped["relative_error"].mean(),
    })
    summary["theoretical_error"] = 1.04 / math.sqrt(1 << precision)
    return summary


def plot_accuracy(summary: pd.DataFrame, path: str | Path) -> Path:
    """Plot observed vs theoretical error per cardinality to a PNG file.

    Args:
        summary: Output of ``summarize_errors``.
        path: Destination file. Parent directories are created.

    Returns:
        The written path.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(summary.index, summary["mean_error"], marker="o", label="mean |error|")
    ax.plot(summary.index, summary["p95_error"], marker="s", label="p95 |error|")
    ax.plot(summary.index, summary["theoretical_error"], linestyle="--", label="1.04/√m")
    ax.set_xscale("log")
    ax.set_xlabel("true distinct count")
    ax.set_ylabel("relative error")
    ax.set_title("HyperLogLog accuracy")
    ax.grid(True)
    ax.legend()

    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
