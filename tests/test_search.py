import itertools
import math

import numpy as np
import pytest

from config import DEFAULT_CHARACTERS, Weights
from language_data import LanguageData
from layout import Layout
from layout_cache import LayoutCache
from scoring import LayoutScorer, prepare_scoring_context
from search import Optimizer, brute_force_best_swap, heap_permutation_swaps, optimize_layout


@pytest.mark.parametrize("n", [0, 1, 2, 3, 4, 6])
def test_heap_permutation_swaps_visit_every_order(n):
    items = list(range(n))
    seen = {tuple(items)}
    swaps = list(heap_permutation_swaps(n))
    for i, j in swaps:
        items[i], items[j] = items[j], items[i]
        seen.add(tuple(items))
    assert len(swaps) == max(math.factorial(n) - 1, 0)
    assert seen == set(itertools.permutations(range(n)))


def test_best_swap_agrees_with_brute_force(scorer, layout):
    optimizer = Optimizer(scorer)
    cache = LayoutCache.build(scorer, layout)
    swap, score = optimizer.best_swap(layout, cache)
    expected, expected_score = brute_force_best_swap(scorer, layout)
    assert (swap.p0, swap.p1) == expected
    assert score == pytest.approx(expected_score, rel=1e-9)


class RecordingCache(LayoutCache):
    """Cache that remembers the total after every accepted swap."""

    def accept_swap(self, layout, swap):
        total = super().accept_swap(layout, swap)
        self.history.append(total)
        return total


def test_swap_phase_strictly_increases(scorer, layout):
    base = LayoutCache.build(scorer, layout)
    cache = RecordingCache(scorer, base.effort, base.usage, base.finger_speed, base.scissors,
                           base.lateral_stretch, base.pinky_ring, base.trigram_values)
    cache.history = [cache.total_score]

    accepted = Optimizer(scorer).optimize_swaps(layout, cache)

    assert accepted == len(cache.history) - 1
    assert all(b > a for a, b in zip(cache.history, cache.history[1:]))


def test_optimize_reaches_local_optimum(scorer, layout):
    initial = scorer.score(layout)
    optimized, result = optimize_layout(scorer, layout)

    assert result.initial_score == initial
    assert result.final_score >= initial
    assert optimized.score == result.final_score
    assert result.final_score == pytest.approx(scorer.score(optimized), rel=1e-9)

    optimizer = Optimizer(scorer)
    cache = LayoutCache.build(scorer, optimized)
    swap, _ = optimizer.best_swap(optimized, cache)
    assert swap is None
    matrix = optimized.matrix.copy()
    assert not optimizer.optimize_columns(optimized, cache)
    assert np.array_equal(optimized.matrix, matrix)


def test_column_phase_restores_exactly(scorer, layout):
    optimizer = Optimizer(scorer)
    cache = LayoutCache.build(scorer, layout)
    optimizer.optimize_swaps(layout, cache)
    # Run the column phase until it no longer improves, then once more
    while optimizer.optimize_columns(layout, cache):
        pass
    before = (layout.matrix.copy(), cache.total_score, cache.trigram_values.copy())
    assert not optimizer.optimize_columns(layout, cache)
    assert np.array_equal(layout.matrix, before[0])
    assert cache.total_score == before[1]
    assert np.array_equal(cache.trigram_values, before[2])


def test_pins_never_move(scorer, layout):
    pins = [0, 5, 14, 27]
    optimized, _ = optimize_layout(scorer, layout, pins)
    for p in pins:
        assert optimized.matrix[p] == layout.matrix[p]
    assert sorted(optimized.matrix.tolist()) == sorted(layout.matrix.tolist())


def test_pins_restrict_column_phase(scorer):
    optimizer = Optimizer(scorer, pins=[11, 3])
    assert optimizer.movable_columns == [0, 2, 7, 8, 9]
    assert not optimizer.allow_index_swap
    assert Optimizer(scorer).allow_index_swap


def test_all_pinned_returns_seed_unchanged(scorer, layout):
    optimizer = Optimizer(scorer, pins=range(30))
    assert optimizer.swaps == []
    assert optimizer.movable_columns == []

    matrix = layout.matrix.copy()
    result = optimizer.optimize(layout)
    assert np.array_equal(layout.matrix, matrix)
    assert result.final_score == result.initial_score
    assert result.swaps_accepted == 0


def test_out_of_range_pins_rejected(scorer):
    with pytest.raises(ValueError):
        Optimizer(scorer, pins=[30])
    with pytest.raises(ValueError):
        Optimizer(scorer, pins=[-1])


def test_same_finger_pair_is_split():
    data = LanguageData.from_frequencies(
        characters={c: 0.0 for c in DEFAULT_CHARACTERS},
        bigrams={'ak': 1.0},
    )
    scorer = LayoutScorer(prepare_scoring_context(data, Weights()))
    # a and k share the left pinky column
    layout = Layout.from_string(DEFAULT_CHARACTERS, data.converter)
    assert scorer.components(layout).finger_speed > 0

    optimized, result = optimize_layout(scorer, layout)

    a, k = data.converter.to_symbols('ak')
    assert optimized.finger_of(a) != optimized.finger_of(k)
    assert result.final_score > result.initial_score
    assert scorer.components(optimized).finger_speed == 0.0
