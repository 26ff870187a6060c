"""Statistical primitives used by the performance and Monte Carlo engines."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def sample_std(values: Sequence[float]) -> float:
    """Standard deviation with the ``n - 1`` denominator (0.0 below two values)."""

    if len(values) < 2:
        return 0.0
    avg = mean(values)
    variance = sum((value - avg) ** 2 for value in values) / (len(values) - 1)
    return math.sqrt(variance)


def population_std(values: Sequence[float]) -> float:
    """Standard deviation with the ``n`` denominator (0.0 below two values)."""

    if len(values) < 2:
        return 0.0
    avg = mean(values)
    variance = sum((value - avg) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def random_normal(mu, sigma, rng: np.random.Generator, size=None):
    """Draw normal variates with the Box-Muller transform.

    ``mu`` and ``sigma`` broadcast against ``size``; without ``size`` a single
    float is returned.
    """

    # 1 - U keeps u1 in (0, 1] so the logarithm is always defined
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    z0 = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
    draws = mu + z0 * sigma
    return float(draws) if size is None else draws


def nearest_rank(sorted_values: Sequence[float], fraction: float) -> float:
    """Return ``sorted_values[floor(n * fraction)]``, clamped to the last element."""

    if not sorted_values:
        raise ValueError("nearest_rank requires at least one value")
    index = min(int(math.floor(len(sorted_values) * fraction)), len(sorted_values) - 1)
    return sorted_values[index]


def lower_median(sorted_values: Sequence[float]) -> float:
    """Median by ``floor(n / 2)`` indexing, matching the percentile bands."""

    return nearest_rank(sorted_values, 0.5)


__all__ = [
    "lower_median",
    "mean",
    "nearest_rank",
    "population_std",
    "random_normal",
    "sample_std",
]
