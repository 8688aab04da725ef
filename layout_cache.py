# layout_cache.py
"""
Incremental score bookkeeping for one layout.

A LayoutCache holds every scoring term split into the smallest pieces a
swap can change: effort per position, usage and finger speed per finger,
the three geometry totals, and the value of every scored trigram. A swap
only touches two positions, at most two fingers, the trigrams containing
either moved symbol, and a geometry total only when one of its positions
is involved, so candidates are evaluated by recomputing just those pieces.

Totals are always re-summed from the stored pieces, never updated by
accumulated deltas, so the cache is bit-for-bit what LayoutCache.build
would produce for the current layout.

"""

import numpy as np

from keyboard import POSITION_TO_FINGER, Swap
from layout import Layout
from scoring import LayoutScorer, ScoreComponents


class LayoutCache:
    """Cached score pieces kept in lockstep with one Layout."""

    def __init__(self, scorer: LayoutScorer, effort: np.ndarray, usage: np.ndarray,
                 finger_speed: np.ndarray, scissors: float, lateral_stretch: float,
                 pinky_ring: float, trigram_values: np.ndarray):
        self.scorer = scorer
        self.effort = effort                    # Shape: (30,)
        self.usage = usage                      # Shape: (8,)
        self.finger_speed = finger_speed        # Shape: (8,)
        self.scissors = scissors
        self.lateral_stretch = lateral_stretch
        self.pinky_ring = pinky_ring
        self.trigram_values = trigram_values    # Shape: (n_trigrams,)

        self.effort_total = 0.0
        self.usage_total = 0.0
        self.finger_speed_total = 0.0
        self.trigram_total = 0.0
        self.total_score = 0.0
        self._resum()

    @classmethod
    def build(cls, scorer: LayoutScorer, layout: Layout) -> 'LayoutCache':
        """Full computation of every piece for the layout."""
        return cls(
            scorer,
            effort=scorer.effort_values(layout),
            usage=scorer.usage_values(layout),
            finger_speed=scorer.finger_speed_values(layout),
            scissors=scorer.scissor_score(layout),
            lateral_stretch=scorer.lateral_stretch_score(layout),
            pinky_ring=scorer.pinky_ring_score(layout),
            trigram_values=scorer.trigram_values(layout),
        )

    def refresh(self, layout: Layout) -> None:
        """Rebuild every piece in place for the layout."""
        fresh = LayoutCache.build(self.scorer, layout)
        self.__dict__.update(fresh.__dict__)

    def copy(self) -> 'LayoutCache':
        return LayoutCache(self.scorer, self.effort.copy(), self.usage.copy(),
                           self.finger_speed.copy(), self.scissors, self.lateral_stretch,
                           self.pinky_ring, self.trigram_values.copy())

    def restore(self, other: 'LayoutCache') -> None:
        """Take over the state of another cache for the same scorer."""
        self.effort[:] = other.effort
        self.usage[:] = other.usage
        self.finger_speed[:] = other.finger_speed
        self.scissors = other.scissors
        self.lateral_stretch = other.lateral_stretch
        self.pinky_ring = other.pinky_ring
        self.trigram_values[:] = other.trigram_values
        self._resum()

    def _resum(self) -> None:
        self.effort_total = float(np.sum(self.effort))
        self.usage_total = float(np.sum(self.usage))
        self.finger_speed_total = float(np.sum(self.finger_speed))
        self.trigram_total = float(np.sum(self.trigram_values))
        self.total_score = self.components().total()

    def components(self) -> ScoreComponents:
        return ScoreComponents(
            trigram=self.trigram_total,
            effort=self.effort_total,
            usage=self.usage_total,
            finger_speed=self.finger_speed_total,
            scissors=self.scissors,
            lateral_stretch=self.lateral_stretch,
            pinky_ring=self.pinky_ring,
        )

    def matches(self, other: 'LayoutCache', tol: float = 1e-9) -> bool:
        """True if every piece agrees with another cache within tol."""
        return (np.allclose(self.effort, other.effort, rtol=0, atol=tol)
                and np.allclose(self.usage, other.usage, rtol=0, atol=tol)
                and np.allclose(self.finger_speed, other.finger_speed, rtol=0, atol=tol)
                and abs(self.scissors - other.scissors) <= tol
                and abs(self.lateral_stretch - other.lateral_stretch) <= tol
                and abs(self.pinky_ring - other.pinky_ring) <= tol
                and np.allclose(self.trigram_values, other.trigram_values, rtol=0, atol=tol)
                and abs(self.total_score - other.total_score) <= tol)

    #-------------------------------------------------------------------------
    # Swap evaluation
    #-------------------------------------------------------------------------
    def _affected_fingers(self, swap: Swap):
        f0 = int(POSITION_TO_FINGER[swap.p0])
        f1 = int(POSITION_TO_FINGER[swap.p1])
        return (f0,) if f0 == f1 else (f0, f1)

    def _trigram_delta(self, layout: Layout, swap: Swap, write: bool) -> float:
        return self.scorer.trigram_swap_delta(layout, self.trigram_values,
                                              int(layout.matrix[swap.p0]),
                                              int(layout.matrix[swap.p1]), write)

    def _swapped_total(self, layout: Layout, swap: Swap) -> float:
        """Total for the layout, already holding the swap, from stale pieces plus fresh ones."""
        scorer = self.scorer
        penalty_delta = 0.0

        for p in (swap.p0, swap.p1):
            penalty_delta += scorer.char_effort(layout, p) - self.effort[p]
        for f in self._affected_fingers(swap):
            penalty_delta += scorer.column_usage(layout, f) - self.usage[f]
            penalty_delta += scorer.column_finger_speed(layout, f) - self.finger_speed[f]
        if swap.affects_scissor:
            penalty_delta += scorer.scissor_score(layout) - self.scissors
        if swap.affects_lateral_stretch:
            penalty_delta += scorer.lateral_stretch_score(layout) - self.lateral_stretch
        if swap.affects_pinky_ring:
            penalty_delta += scorer.pinky_ring_score(layout) - self.pinky_ring

        trigram_delta = self._trigram_delta(layout, swap, write=False)
        return self.total_score + trigram_delta - penalty_delta

    def score_swap(self, layout: Layout, swap: Swap) -> float:
        """
        Total score the layout would have after the swap.

        The swap is applied tentatively and reverted, so neither the layout
        nor the cache changes.
        """
        layout.swap(swap.p0, swap.p1)
        try:
            return self._swapped_total(layout, swap)
        finally:
            layout.swap(swap.p0, swap.p1)

    def accept_swap(self, layout: Layout, swap: Swap) -> float:
        """
        Apply the swap to the layout and update the affected pieces.

        Returns:
            The new total score
        """
        scorer = self.scorer
        layout.swap(swap.p0, swap.p1)

        for p in (swap.p0, swap.p1):
            self.effort[p] = scorer.char_effort(layout, p)
        for f in self._affected_fingers(swap):
            self.usage[f] = scorer.column_usage(layout, f)
            self.finger_speed[f] = scorer.column_finger_speed(layout, f)
        if swap.affects_scissor:
            self.scissors = scorer.scissor_score(layout)
        if swap.affects_lateral_stretch:
            self.lateral_stretch = scorer.lateral_stretch_score(layout)
        if swap.affects_pinky_ring:
            self.pinky_ring = scorer.pinky_ring_score(layout)
        self._trigram_delta(layout, swap, write=True)

        self._resum()
        layout.score = self.total_score
        return self.total_score

    def __repr__(self) -> str:
        return (f"LayoutCache(total={self.total_score:.6f}, trigram={self.trigram_total:.6f}, "
                f"effort={self.effort_total:.6f}, usage={self.usage_total:.6f}, "
                f"finger_speed={self.finger_speed_total:.6f}, scissors={self.scissors:.6f}, "
                f"lateral_stretch={self.lateral_stretch:.6f}, pinky_ring={self.pinky_ring:.6f})")
