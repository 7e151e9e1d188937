from __future__ import annotations

import random
from collections import Counter

import pytest

from swarmshop.roulette import cumulative_weights, spin, spin_once


def test_cumulative_weights_start_at_zero():
    assert cumulative_weights([0, 1, 0, 3]) == [0.0, 0.0, 1.0, 1.0, 4.0]


def test_zero_weights_are_never_drawn_and_frequencies_match():
    rng = random.Random(2024)
    draws = 20000
    counts = Counter(spin_once(rng, [0, 1, 0, 3]) for _ in range(draws))
    assert counts[0] == 0
    assert counts[2] == 0
    assert counts[3] / draws == pytest.approx(0.75, abs=0.02)
    assert counts[1] / draws == pytest.approx(0.25, abs=0.02)


def test_single_weight_consumes_no_draw():
    rng = random.Random(5)
    state = rng.getstate()
    assert spin_once(rng, [0.3]) == 0
    assert spin(rng, [0.0, 0.3]) == 0
    assert rng.getstate() == state


@pytest.mark.parametrize("weights", [[], [0, 0], [1, -1]])
def test_invalid_wheels(weights):
    with pytest.raises(ValueError):
        spin_once(random.Random(0), weights)
