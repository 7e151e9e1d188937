"""Roulette-wheel (fitness-proportionate) index selection.

The cumulative array has one more entry than the weights and starts at 0,
so weight ``i`` owns the half-open interval ``[cum[i], cum[i + 1])``.
Zero weights own an empty interval and can never be drawn.
"""

from __future__ import annotations

import random
from bisect import bisect_right
from typing import Sequence


def cumulative_weights(weights: Sequence[float]) -> list[float]:
    """Build the running sum ``[0, w0, w0 + w1, ...]`` in O(n)."""
    cum = [0.0] * (len(weights) + 1)
    total = 0.0
    for i, w in enumerate(weights):
        if w < 0:
            raise ValueError(f"Negative weight at index {i}: {w}")
        total += w
        cum[i + 1] = total
    return cum


def spin(rng: random.Random, cumulative: Sequence[float]) -> int:
    """Draw one index from a cumulative array in O(log n)."""
    n = len(cumulative) - 1
    if n == 1:
        return 0
    total = cumulative[n]
    if total <= 0:
        raise ValueError("Roulette wheel needs a positive total weight")
    r = total * rng.random()
    # last interval whose lower bound is <= r; skips empty (zero-weight) ones
    idx = bisect_right(cumulative, r) - 1
    return min(idx, n - 1)


def spin_once(rng: random.Random, weights: Sequence[float]) -> int:
    """Select an index with probability proportional to its weight.

    A single weight returns 0 without touching ``rng``.
    """
    if not weights:
        raise ValueError("Cannot spin an empty roulette wheel")
    if len(weights) == 1:
        return 0
    return spin(rng, cumulative_weights(weights))
