# search.py
"""
Local search for layout optimization.

Two neighbourhoods are explored in turn until neither improves:
- Swap phase: steepest ascent over single position swaps
- Column phase: every arrangement of the movable outer columns, with and
  without the two index-finger blocks exchanged

Both only accept strict improvements, so the search always ends in a
local optimum. Ties go to the candidate enumerated first.
"""

import time
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from keyboard import (N_POSITIONS, N_ROWS, N_COLUMNS, OUTER_COLUMNS, INDEX_COLUMNS,
                      Swap, column_positions, get_swap, possible_swaps)
from layout import Layout
from layout_cache import LayoutCache
from scoring import LayoutScorer


@dataclass
class OptimizationResult:
    """Statistics of one optimizer run."""
    initial_score: float
    final_score: float = 0.0
    rounds: int = 0
    swaps_accepted: int = 0
    swaps_evaluated: int = 0
    column_improvements: int = 0
    column_arrangements: int = 0
    elapsed_time: float = 0.0

    @property
    def improvement(self) -> float:
        return self.final_score - self.initial_score


def heap_permutation_swaps(n: int) -> Iterator[Tuple[int, int]]:
    """
    Index swaps that walk through all n! orderings of n items (Heap's algorithm).

    Starting from any ordering, applying the n! - 1 yielded swaps in turn
    visits every other ordering exactly once.
    """
    counters = [0] * n
    i = 1
    while i < n:
        if counters[i] < i:
            yield (0, i) if i % 2 == 0 else (counters[i], i)
            counters[i] += 1
            i = 1
        else:
            counters[i] = 0
            i += 1

#-----------------------------------------------------------------------------
# Optimizer
#-----------------------------------------------------------------------------
class Optimizer:
    """
    Hill climber over a Layout and its LayoutCache.

    Pinned positions never move: swaps touching them are not enumerated,
    outer columns holding a pin are left out of the column phase, and the
    index blocks are only exchanged when all four index columns are free.
    """

    def __init__(self, scorer: LayoutScorer, pins: Iterable[int] = ()):
        pins = frozenset(int(p) for p in pins)
        out_of_range = sorted(p for p in pins if not 0 <= p < N_POSITIONS)
        if out_of_range:
            raise ValueError(f"Pinned positions out of range 0-{N_POSITIONS - 1}: {out_of_range}")

        self.scorer = scorer
        self.pins = pins
        self.swaps: List[Swap] = possible_swaps(pins)
        self.movable_columns = [c for c in OUTER_COLUMNS if not self._column_pinned(c)]
        self.allow_index_swap = not any(self._column_pinned(c) for c in INDEX_COLUMNS)

    def _column_pinned(self, column: int) -> bool:
        return any(column + N_COLUMNS * row in self.pins for row in range(N_ROWS))

    def best_swap(self, layout: Layout, cache: LayoutCache,
                  result: Optional[OptimizationResult] = None) -> Tuple[Optional[Swap], float]:
        """
        Find the legal swap giving the highest score.

        Returns:
            (swap, score); swap is None when no swap beats the current score
        """
        best, best_score = None, cache.total_score
        for swap in self.swaps:
            score = cache.score_swap(layout, swap)
            if score > best_score:
                best, best_score = swap, score
        if result is not None:
            result.swaps_evaluated += len(self.swaps)
        return best, best_score

    def optimize_swaps(self, layout: Layout, cache: LayoutCache,
                       result: Optional[OptimizationResult] = None) -> int:
        """
        Commit best swaps until none improves the score.

        Returns:
            Number of swaps accepted
        """
        accepted = 0
        while True:
            swap, _ = self.best_swap(layout, cache, result)
            if swap is None:
                break
            before = cache.total_score
            cache.accept_swap(layout, swap)
            if cache.total_score <= before:
                # Delta estimate was above the exact total by rounding only
                cache.accept_swap(layout, swap)
                break
            accepted += 1
        if result is not None:
            result.swaps_accepted += accepted
        return accepted

    def _swap_columns(self, layout: Layout, cache: LayoutCache, c0: int, c1: int) -> None:
        for p0, p1 in zip(column_positions(c0), column_positions(c1)):
            cache.accept_swap(layout, get_swap(p0, p1))

    def _swap_index_blocks(self, layout: Layout, cache: LayoutCache) -> None:
        self._swap_columns(layout, cache, 3, 6)
        self._swap_columns(layout, cache, 4, 5)

    def optimize_columns(self, layout: Layout, cache: LayoutCache,
                         result: Optional[OptimizationResult] = None) -> bool:
        """
        Try every arrangement of the movable outer columns, also with the index
        blocks exchanged, and keep the best one if it beats the current score.

        Returns:
            True if the layout improved; otherwise layout and cache are restored exactly
        """
        start_score = cache.total_score
        saved_matrix = layout.matrix.copy()
        saved_cache = cache.copy()

        best_score, best_matrix = start_score, None
        n = len(self.movable_columns)
        variants = (False, True) if self.allow_index_swap else (False,)

        for exchange_index in variants:
            if exchange_index:
                self._swap_index_blocks(layout, cache)
                if cache.total_score > best_score:
                    best_score, best_matrix = cache.total_score, layout.matrix.copy()
            for i, j in heap_permutation_swaps(n):
                self._swap_columns(layout, cache, self.movable_columns[i], self.movable_columns[j])
                if result is not None:
                    result.column_arrangements += 1
                if cache.total_score > best_score:
                    best_score, best_matrix = cache.total_score, layout.matrix.copy()

        if best_matrix is not None:
            layout.set_matrix(best_matrix)
            cache.refresh(layout)
        else:
            layout.set_matrix(saved_matrix)
            cache.restore(saved_cache)
        layout.score = cache.total_score
        return best_matrix is not None

    def optimize(self, layout: Layout, cache: Optional[LayoutCache] = None) -> OptimizationResult:
        """
        Alternate swap and column phases until a column phase brings nothing.

        Args:
            layout: Layout to improve in place
            cache: Cache in step with layout; built fresh if None

        Returns:
            OptimizationResult with the final score and search statistics
        """
        start_time = time.time()
        cache = cache if cache is not None else LayoutCache.build(self.scorer, layout)
        result = OptimizationResult(initial_score=cache.total_score)

        while True:
            result.rounds += 1
            self.optimize_swaps(layout, cache, result)
            if not self.optimize_columns(layout, cache, result):
                break
            result.column_improvements += 1

        layout.score = cache.total_score
        result.final_score = cache.total_score
        result.elapsed_time = time.time() - start_time
        return result


def optimize_layout(scorer: LayoutScorer, layout: Layout,
                    pins: Iterable[int] = ()) -> Tuple[Layout, OptimizationResult]:
    """Optimize a copy of the layout and return it with the run statistics."""
    layout = layout.copy()
    result = Optimizer(scorer, pins).optimize(layout)
    return layout, result


def brute_force_best_swap(scorer: LayoutScorer, layout: Layout,
                          pins: Iterable[int] = ()) -> Tuple[Optional[Tuple[int, int]], float]:
    """
    Best single swap by full rescoring of every candidate.

    Slow reference for checking the cached search.
    """
    best, best_score = None, scorer.score(layout)
    candidate = layout.copy()
    for swap in possible_swaps(pins):
        candidate.swap(swap.p0, swap.p1)
        score = scorer.score(candidate)
        candidate.swap(swap.p0, swap.p1)
        if score > best_score:
            best, best_score = (swap.p0, swap.p1), score
    return best, best_score
