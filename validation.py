# validation.py
"""
Validation of the scoring, cache and search machinery on real data.

This module consolidates all validation logic including:
- Incremental cache against full recomputation
- Exact swap/unswap restore
- Cached swap search against full rescoring
- Pattern table symmetry and agreement with the key geometry
- Optimizer monotonicity
"""

import time
import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass

from keyboard import (N_POSITIONS, SFB_INDICES, SCISSOR_INDICES, LATERAL_STRETCH_INDICES,
                      PINKY_RING_INDICES, POSITION_TO_FINGER, finger_class_index, finger_hand,
                      possible_swaps)
from layout import Layout
from layout_cache import LayoutCache
from patterns import (BIGRAM_TABLE, TRIGRAM_TABLE, BigramPattern, mirror_finger,
                      bigram_index, trigram_index)
from scoring import LayoutScorer
from search import Optimizer, brute_force_best_swap

#-----------------------------------------------------------------------------
# Validation result classes
#-----------------------------------------------------------------------------
@dataclass
class ValidationResult:
    """Result of a single validation test."""
    test_name: str
    passed: bool
    message: str
    details: Optional[Dict] = None

    def __str__(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        return f"{status}: {self.test_name} - {self.message}"

@dataclass
class ValidationSuite:
    """Results from a complete validation suite."""
    results: List[ValidationResult]

    @property
    def all_passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.passed)

    def print_summary(self):
        """Print validation summary."""
        print(f"\nValidation Summary: {self.passed_count}/{len(self.results)} tests passed")

        for result in self.results:
            print(f"  {result}")
            if result.details and not result.passed:
                for key, value in result.details.items():
                    print(f"    {key}: {value}")

        if self.all_passed:
            print("\n🎉 All validation tests passed!")
        else:
            print(f"\n⚠️  {self.failed_count} test(s) failed - review results above")

#-----------------------------------------------------------------------------
# Core validation functions
#-----------------------------------------------------------------------------
def test_cache_consistency(scorer: LayoutScorer, layout: Layout, n_swaps: int = 200,
                           seed: int = 42) -> ValidationResult:
    """
    Apply random swaps through the cache and compare with full rebuilds.

    Args:
        scorer: LayoutScorer to test
        layout: Starting layout (not modified)
        n_swaps: Number of random swaps
        seed: Random seed

    Returns:
        ValidationResult with test outcome
    """
    try:
        rng = np.random.default_rng(seed)
        layout = layout.copy()
        cache = LayoutCache.build(scorer, layout)
        swaps = possible_swaps()
        mismatches, max_error = 0, 0.0

        for _ in range(n_swaps):
            swap = swaps[int(rng.integers(len(swaps)))]
            predicted = cache.score_swap(layout, swap)
            cache.accept_swap(layout, swap)
            fresh = LayoutCache.build(scorer, layout)
            error = max(abs(cache.total_score - fresh.total_score), abs(predicted - fresh.total_score))
            max_error = max(max_error, error)
            if not cache.matches(fresh, 1e-9) or error > 1e-9:
                mismatches += 1

        passed = mismatches == 0
        message = f"Applied {n_swaps} random swaps, {mismatches} mismatches (max error {max_error:.2e})"
        return ValidationResult("Cache Consistency", passed, message,
                                {"mismatches": mismatches, "max_error": max_error})

    except Exception as e:
        return ValidationResult("Cache Consistency", False, f"Test failed with error: {e}")

def test_swap_restore(scorer: LayoutScorer, layout: Layout) -> ValidationResult:
    """Every swap applied twice must restore layout and cache exactly."""
    try:
        layout = layout.copy()
        cache = LayoutCache.build(scorer, layout)
        original_matrix = layout.matrix.copy()
        original_score = cache.total_score
        failures = 0

        for swap in possible_swaps():
            cache.accept_swap(layout, swap)
            cache.accept_swap(layout, swap)
            if not np.array_equal(layout.matrix, original_matrix) or cache.total_score != original_score:
                failures += 1

        passed = failures == 0
        message = f"Double-applied {len(possible_swaps())} swaps, {failures} did not restore exactly"
        return ValidationResult("Swap Restore", passed, message, {"failures": failures})

    except Exception as e:
        return ValidationResult("Swap Restore", False, f"Test failed with error: {e}")

def test_best_swap_agreement(scorer: LayoutScorer, layout: Layout) -> ValidationResult:
    """Cached best-swap search must agree with full rescoring of every swap."""
    try:
        cache = LayoutCache.build(scorer, layout.copy())
        work = layout.copy()
        swap, cached_score = Optimizer(scorer).best_swap(work, cache)
        reference, reference_score = brute_force_best_swap(scorer, layout)

        cached_pair = None if swap is None else (swap.p0, swap.p1)
        passed = abs(cached_score - reference_score) <= 1e-9
        message = f"Cached best {cached_pair} ({cached_score:.9f}), full rescoring {reference} ({reference_score:.9f})"
        return ValidationResult("Best Swap Agreement", passed, message,
                                {"cached": cached_pair, "reference": reference})

    except Exception as e:
        return ValidationResult("Best Swap Agreement", False, f"Test failed with error: {e}")

def test_trigram_table_symmetry() -> ValidationResult:
    """Mirroring every finger onto the other hand must keep the pattern."""
    asymmetric = []
    for f0 in range(8):
        for f1 in range(8):
            for f2 in range(8):
                pattern = TRIGRAM_TABLE[trigram_index(f0, f1, f2)]
                mirrored = TRIGRAM_TABLE[trigram_index(mirror_finger(f0), mirror_finger(f1),
                                                       mirror_finger(f2))]
                if pattern != mirrored:
                    asymmetric.append((f0, f1, f2))

    passed = not asymmetric
    message = f"Checked 512 finger triples, {len(asymmetric)} asymmetric"
    return ValidationResult("Trigram Table Symmetry", passed, message, {"asymmetric": asymmetric[:10]})

def test_geometry_classification() -> ValidationResult:
    """Fixed position pairs must match the finger patterns they penalize."""
    problems = []

    def fingers(pair):
        return int(POSITION_TO_FINGER[pair[0]]), int(POSITION_TO_FINGER[pair[1]])

    for pair in SFB_INDICES:
        f0, f1 = fingers(pair)
        if BIGRAM_TABLE[bigram_index(f0, f1)] != BigramPattern.SAME_FINGER_BIGRAM:
            problems.append(("sfb", tuple(pair)))
    for pair in LATERAL_STRETCH_INDICES:
        f0, f1 = fingers(pair)
        if BIGRAM_TABLE[bigram_index(f0, f1)] != BigramPattern.LATERAL_STRETCH:
            problems.append(("lateral_stretch", tuple(pair)))
    for pair in SCISSOR_INDICES:
        f0, f1 = fingers(pair)
        if f0 == f1 or finger_hand(f0) != finger_hand(f1):
            problems.append(("scissor", tuple(pair)))
    for pair in PINKY_RING_INDICES:
        f0, f1 = fingers(pair)
        if {finger_class_index(f0), finger_class_index(f1)} - {0, 1} or finger_hand(f0) != finger_hand(f1):
            problems.append(("pinky_ring", tuple(pair)))

    passed = not problems
    message = f"{len(problems)} position pairs disagree with the finger patterns"
    return ValidationResult("Geometry Classification", passed, message, {"problems": problems[:10]})

def test_optimizer_monotonic(scorer: LayoutScorer, layout: Layout,
                             pins=()) -> ValidationResult:
    """An optimizer run never lowers the score and ends in step with a fresh cache."""
    try:
        start = time.time()
        layout = layout.copy()
        cache = LayoutCache.build(scorer, layout)
        initial = cache.total_score
        result = Optimizer(scorer, pins).optimize(layout, cache)
        fresh = LayoutCache.build(scorer, layout)
        no_better_swap = Optimizer(scorer, pins).best_swap(layout, cache)[0] is None

        passed = result.final_score >= initial and cache.matches(fresh) and no_better_swap
        message = (f"{initial:.6f} -> {result.final_score:.6f} in {result.rounds} rounds, "
                   f"{result.swaps_accepted} swaps ({time.time() - start:.2f}s)")
        return ValidationResult("Optimizer Monotonic", passed, message,
                                {"initial": initial, "final": result.final_score,
                                 "cache_in_step": cache.matches(fresh), "local_optimum": no_better_swap})

    except Exception as e:
        return ValidationResult("Optimizer Monotonic", False, f"Test failed with error: {e}")

#-----------------------------------------------------------------------------
# Main validation suite
#-----------------------------------------------------------------------------
def run_validation_suite(scorer: LayoutScorer, characters: str, quick: bool = False,
                         seed: int = 42) -> bool:
    """
    Run comprehensive validation suite.

    Args:
        scorer: Scorer to validate (built from real data)
        characters: The 30 characters to lay out
        quick: If True, run faster but less comprehensive tests
        seed: Seed for the random test layout

    Returns:
        True if all tests passed, False otherwise
    """
    if len(characters) != N_POSITIONS:
        raise ValueError(f"characters must have {N_POSITIONS} symbols, got {len(characters)}")

    rng = np.random.default_rng(seed)
    layout = Layout.random(scorer.context.converter.symbols_of(characters), rng)

    results = [
        test_trigram_table_symmetry(),
        test_geometry_classification(),
        test_cache_consistency(scorer, layout, 50 if quick else 200, seed),
        test_swap_restore(scorer, layout),
        test_best_swap_agreement(scorer, layout),
    ]
    if not quick:
        results.append(test_optimizer_monotonic(scorer, layout))

    suite = ValidationSuite(results)
    suite.print_summary()

    return suite.all_passed
