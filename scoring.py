# scoring.py
"""
Layout scoring model.

    score = trigram - effort - usage - finger_speed
                    - scissors - lateral_stretch - pinky_ring

- effort: symbol frequency times a per-position effort constant
- usage: per-finger frequency above the finger's target share
- finger_speed: same-finger bigram/skipgram frequency times travel distance
- scissors, lateral_stretch, pinky_ring: bigram frequency over fixed
  position pairs
- trigram: signed pattern weight (rolls, alternates, redirects) times
  frequency, over the most frequent trigrams

Each term only depends on a few positions or on the trigrams containing
a given symbol, which is what layout_cache.LayoutCache exploits.

All read-only inputs are gathered once in a ScoringContext that is
shared by every restart (and pickled once per worker process).

"""

import numpy as np
from numba import jit
from typing import Dict, List, Tuple
from dataclasses import dataclass, asdict

from config import Config, Weights, DEFAULT_TRIGRAM_PRECISION
from keyboard import (KeyboardType, N_FINGERS, SFB_INDICES,
                      FINGER_SPEED_SPANS, FINGER_POSITIONS, FINGER_POSITION_COUNTS,
                      SCISSOR_INDICES, LATERAL_STRETCH_INDICES, PINKY_RING_INDICES,
                      POSITION_TO_FINGER, effort_map, finger_distances, finger_class_index)
from language_data import MAX_SYMBOLS, LanguageData
from layout import Layout
from patterns import TRIGRAM_TABLE, TrigramPattern, trigram_weight_table

#-----------------------------------------------------------------------------
# JIT-compiled core calculations
#-----------------------------------------------------------------------------
@jit(nopython=True)
def _pair_list_score_jit(matrix: np.ndarray, pairs: np.ndarray,
                         bigram_matrix: np.ndarray) -> float:
    """Bigram frequency (both orders) summed over a list of position pairs."""
    total = 0.0
    for i in range(pairs.shape[0]):
        a = matrix[pairs[i, 0]]
        b = matrix[pairs[i, 1]]
        total += bigram_matrix[a, b] + bigram_matrix[b, a]
    return total

@jit(nopython=True)
def _finger_speed_jit(matrix: np.ndarray, sfb_pairs: np.ndarray, distances: np.ndarray,
                      start: int, length: int, weighted_bigrams: np.ndarray) -> float:
    """Same-finger travel cost of one finger's slice of the key pair list."""
    total = 0.0
    for i in range(start, start + length):
        a = matrix[sfb_pairs[i, 0]]
        b = matrix[sfb_pairs[i, 1]]
        total += (weighted_bigrams[a, b] + weighted_bigrams[b, a]) * distances[i]
    return total

@jit(nopython=True)
def _finger_frequency_jit(matrix: np.ndarray, positions: np.ndarray, count: int,
                          char_freq: np.ndarray) -> float:
    total = 0.0
    for i in range(count):
        total += char_freq[matrix[positions[i]]]
    return total

@jit(nopython=True)
def _trigram_value_jit(char_to_finger: np.ndarray, trigram_symbols: np.ndarray,
                       trigram_freqs: np.ndarray, trigram_weights: np.ndarray, k: int) -> float:
    f0 = char_to_finger[trigram_symbols[k, 0]]
    f1 = char_to_finger[trigram_symbols[k, 1]]
    f2 = char_to_finger[trigram_symbols[k, 2]]
    # Symbols off the layout make the trigram invalid
    if f0 < 0 or f1 < 0 or f2 < 0:
        return 0.0
    return trigram_freqs[k] * trigram_weights[f0 * 64 + f1 * 8 + f2]

@jit(nopython=True)
def _trigram_values_jit(char_to_finger: np.ndarray, trigram_symbols: np.ndarray,
                        trigram_freqs: np.ndarray, trigram_weights: np.ndarray,
                        out: np.ndarray) -> None:
    for k in range(trigram_freqs.shape[0]):
        out[k] = _trigram_value_jit(char_to_finger, trigram_symbols, trigram_freqs,
                                    trigram_weights, k)

@jit(nopython=True)
def _trigram_swap_jit(char_to_finger: np.ndarray, trigram_symbols: np.ndarray,
                      trigram_freqs: np.ndarray, trigram_weights: np.ndarray,
                      values: np.ndarray, offsets: np.ndarray, index: np.ndarray,
                      a: int, b: int, write: bool) -> float:
    """
    Change of the trigram term after symbols a and b moved.

    Visits every trigram containing a, then every trigram containing b but
    not a, so each affected trigram is counted once. With write=True the
    fresh values are stored into `values`.
    """
    delta = 0.0
    for i in range(offsets[a], offsets[a + 1]):
        k = index[i]
        new_value = _trigram_value_jit(char_to_finger, trigram_symbols, trigram_freqs,
                                       trigram_weights, k)
        delta += new_value - values[k]
        if write:
            values[k] = new_value
    for i in range(offsets[b], offsets[b + 1]):
        k = index[i]
        if trigram_symbols[k, 0] == a or trigram_symbols[k, 1] == a or trigram_symbols[k, 2] == a:
            continue
        new_value = _trigram_value_jit(char_to_finger, trigram_symbols, trigram_freqs,
                                       trigram_weights, k)
        delta += new_value - values[k]
        if write:
            values[k] = new_value
    return delta

#-----------------------------------------------------------------------------
# Core data structures
#-----------------------------------------------------------------------------
@dataclass
class ScoreComponents:
    """Container for the seven scoring terms (penalties as positive magnitudes)."""
    trigram: float
    effort: float
    usage: float
    finger_speed: float
    scissors: float
    lateral_stretch: float
    pinky_ring: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def total(self) -> float:
        return (self.trigram - self.effort - self.usage - self.finger_speed
                - self.scissors - self.lateral_stretch - self.pinky_ring)


def build_trigram_index(trigram_symbols: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-symbol index into the trigram list, in CSR form.

    Trigrams containing symbol s are index[offsets[s]:offsets[s + 1]], in
    ascending order; a trigram repeating a symbol is listed once for it.
    """
    trigram_symbols = np.asarray(trigram_symbols, dtype=np.int64).reshape(-1, 3)
    ids = np.arange(len(trigram_symbols), dtype=np.int64)
    s0, s1, s2 = trigram_symbols[:, 0], trigram_symbols[:, 1], trigram_symbols[:, 2]
    second = s1 != s0
    third = (s2 != s0) & (s2 != s1)

    symbols = np.concatenate([s0, s1[second], s2[third]])
    trigram_ids = np.concatenate([ids, ids[second], ids[third]])
    order = np.lexsort((trigram_ids, symbols))

    offsets = np.zeros(MAX_SYMBOLS + 1, dtype=np.int64)
    offsets[1:] = np.cumsum(np.bincount(symbols, minlength=MAX_SYMBOLS))
    return offsets, trigram_ids[order]


class ScoringContext:
    """
    Read-only inputs shared by every scorer, cache and restart.

    Multiprocessing-safe: holds only numpy arrays and plain values.
    """

    def __init__(self, language_data: LanguageData, weights: Weights,
                 keyboard_type: KeyboardType = KeyboardType.ANSI_ANGLE,
                 trigram_precision: int = DEFAULT_TRIGRAM_PRECISION):
        """Precompute every table the scoring kernels need."""
        self.language_data = language_data
        self.weights = weights
        self.keyboard_type = keyboard_type
        self.trigram_precision = trigram_precision

        self.effort_map = effort_map(keyboard_type, weights.heatmap)        # Shape: (30,)
        self.char_freq = language_data.characters                          # Shape: (256,)
        self.bigrams = language_data.bigrams                               # Shape: (256, 256)

        r1, r2, r3 = weights.skipgram_multipliers
        self.weighted_bigrams = (language_data.bigrams
                                 + language_data.skipgrams * r1
                                 + language_data.skipgrams2 * r2
                                 + language_data.skipgrams3 * r3) * weights.finger_speed

        self.distances = finger_distances(weights.lateral_penalty)         # Shape: (48,)
        bias = weights.normalized_finger_bias
        self.finger_bias = np.array([bias[finger_class_index(f)] for f in range(N_FINGERS)])

        symbols, freqs = language_data.truncated_trigrams(trigram_precision)
        self.trigram_symbols = np.ascontiguousarray(symbols, dtype=np.int64)
        self.trigram_freqs = np.ascontiguousarray(freqs, dtype=np.float64)
        self.trigram_weights = trigram_weight_table(weights)                # Shape: (512,)
        self.trigram_offsets, self.trigram_index = build_trigram_index(self.trigram_symbols)

    def __getstate__(self):
        """Custom serialization for multiprocessing - preserves all data."""
        return dict(self.__dict__)

    def __setstate__(self, state):
        """Custom deserialization for multiprocessing - restores all data."""
        for key, value in state.items():
            setattr(self, key, value)

    @property
    def n_trigrams(self) -> int:
        return len(self.trigram_freqs)

    @property
    def converter(self):
        return self.language_data.converter

#-----------------------------------------------------------------------------
# Scorer
#-----------------------------------------------------------------------------
class LayoutScorer:
    """
    Pure scoring functions over a Layout.

    Every method recomputes from scratch; layout_cache.LayoutCache keeps
    the same quantities up to date incrementally.
    """

    def __init__(self, context: ScoringContext):
        self.context = context
        self.weights = context.weights

    # Per-position / per-finger terms
    def char_effort(self, layout: Layout, position: int) -> float:
        ctx = self.context
        return ctx.char_freq[layout.matrix[position]] * ctx.effort_map[position]

    def effort_values(self, layout: Layout) -> np.ndarray:
        ctx = self.context
        return ctx.char_freq[layout.matrix] * ctx.effort_map

    def column_usage(self, layout: Layout, finger: int) -> float:
        ctx = self.context
        frequency = _finger_frequency_jit(layout.matrix, FINGER_POSITIONS[finger],
                                          FINGER_POSITION_COUNTS[finger], ctx.char_freq)
        return self.weights.overuse_penalty * max(0.0, frequency - ctx.finger_bias[finger])

    def column_finger_speed(self, layout: Layout, finger: int) -> float:
        ctx = self.context
        start, length = FINGER_SPEED_SPANS[finger]
        return _finger_speed_jit(layout.matrix, SFB_INDICES, ctx.distances,
                                 start, length, ctx.weighted_bigrams)

    def usage_values(self, layout: Layout) -> np.ndarray:
        return np.array([self.column_usage(layout, f) for f in range(N_FINGERS)])

    def finger_speed_values(self, layout: Layout) -> np.ndarray:
        return np.array([self.column_finger_speed(layout, f) for f in range(N_FINGERS)])

    # Geometry terms
    def scissor_score(self, layout: Layout) -> float:
        raw = _pair_list_score_jit(layout.matrix, SCISSOR_INDICES, self.context.bigrams)
        return raw * self.weights.scissors

    def lateral_stretch_score(self, layout: Layout) -> float:
        raw = _pair_list_score_jit(layout.matrix, LATERAL_STRETCH_INDICES, self.context.bigrams)
        return raw * self.weights.lateral_stretch

    def pinky_ring_score(self, layout: Layout) -> float:
        raw = _pair_list_score_jit(layout.matrix, PINKY_RING_INDICES, self.context.bigrams)
        return raw * self.weights.pinky_ring

    # Trigram term
    def trigram_values(self, layout: Layout) -> np.ndarray:
        ctx = self.context
        values = np.zeros(ctx.n_trigrams, dtype=np.float64)
        _trigram_values_jit(layout.char_to_finger, ctx.trigram_symbols, ctx.trigram_freqs,
                            ctx.trigram_weights, values)
        return values

    def trigram_score(self, layout: Layout) -> float:
        return float(np.sum(self.trigram_values(layout)))

    def trigram_swap_delta(self, layout: Layout, values: np.ndarray, a: int, b: int,
                           write: bool = False) -> float:
        """
        Change of the trigram term once symbols a and b have moved on the layout.

        Args:
            layout: Layout already holding the new positions of a and b
            values: Per-trigram values for the layout before the move
            a, b: The two moved symbols
            write: Store the fresh values into `values`

        Returns:
            Sum of (new - old) over every trigram containing a or b
        """
        ctx = self.context
        return _trigram_swap_jit(layout.char_to_finger, ctx.trigram_symbols, ctx.trigram_freqs,
                                 ctx.trigram_weights, values, ctx.trigram_offsets,
                                 ctx.trigram_index, a, b, write)

    # Totals
    def components(self, layout: Layout) -> ScoreComponents:
        return ScoreComponents(
            trigram=self.trigram_score(layout),
            effort=float(np.sum(self.effort_values(layout))),
            usage=float(np.sum(self.usage_values(layout))),
            finger_speed=float(np.sum(self.finger_speed_values(layout))),
            scissors=self.scissor_score(layout),
            lateral_stretch=self.lateral_stretch_score(layout),
            pinky_ring=self.pinky_ring_score(layout),
        )

    def score(self, layout: Layout) -> float:
        return self.components(layout).total()

    #-------------------------------------------------------------------------
    # Analysis (not used during optimization)
    #-------------------------------------------------------------------------
    def trigram_stats(self, layout: Layout) -> Dict[TrigramPattern, float]:
        """Total trigram frequency per pattern."""
        ctx = self.context
        fingers = layout.char_to_finger[ctx.trigram_symbols]
        valid = (fingers >= 0).all(axis=1)
        idx = fingers[:, 0] * 64 + fingers[:, 1] * 8 + fingers[:, 2]
        patterns = np.where(valid, TRIGRAM_TABLE[np.where(valid, idx, 0)], int(TrigramPattern.INVALID))
        totals = np.bincount(patterns, weights=ctx.trigram_freqs, minlength=len(TrigramPattern))
        return {pattern: float(totals[pattern]) for pattern in TrigramPattern}

    def bigram_stats(self, layout: Layout) -> Dict[str, float]:
        """Raw same-finger and geometry bigram frequencies (no weights)."""
        data = self.context.language_data
        m = layout.matrix
        return {
            'sfb': _pair_list_score_jit(m, SFB_INDICES, data.bigrams),
            'dsfb': _pair_list_score_jit(m, SFB_INDICES, data.skipgrams),
            'dsfb2': _pair_list_score_jit(m, SFB_INDICES, data.skipgrams2),
            'dsfb3': _pair_list_score_jit(m, SFB_INDICES, data.skipgrams3),
            'scissors': _pair_list_score_jit(m, SCISSOR_INDICES, data.bigrams),
            'lateral_stretch': _pair_list_score_jit(m, LATERAL_STRETCH_INDICES, data.bigrams),
            'pinky_ring': _pair_list_score_jit(m, PINKY_RING_INDICES, data.bigrams),
        }

    def finger_usage(self, layout: Layout) -> np.ndarray:
        """Character frequency typed by each finger, shape (8,)."""
        usage = np.zeros(N_FINGERS, dtype=np.float64)
        np.add.at(usage, POSITION_TO_FINGER, self.context.char_freq[layout.matrix])
        return usage

    def same_finger_bigrams(self, layout: Layout, top_n: int = 10) -> List[Tuple[int, int, float]]:
        """Most frequent same-finger bigrams as (symbol_a, symbol_b, frequency), both orders summed."""
        bigrams = self.context.bigrams
        found = []
        for p0, p1 in SFB_INDICES:
            a, b = int(layout.matrix[p0]), int(layout.matrix[p1])
            freq = bigrams[a, b] + bigrams[b, a]
            if freq > 0:
                found.append((a, b, float(freq)))
        found.sort(key=lambda item: -item[2])
        return found[:top_n]

    def key_frequencies(self, layout: Layout) -> np.ndarray:
        """Character frequency on each position, shape (30,)."""
        return self.context.char_freq[layout.matrix].copy()

#-----------------------------------------------------------------------------
# Scoring factory functions
#-----------------------------------------------------------------------------
def prepare_scoring_context(language_data: LanguageData, weights: Weights = None,
                            keyboard_type: KeyboardType = KeyboardType.ANSI_ANGLE,
                            trigram_precision: int = DEFAULT_TRIGRAM_PRECISION) -> ScoringContext:
    """
    Build the shared scoring context.

    Raises:
        ValueError: If trigram_precision is not positive
    """
    if trigram_precision <= 0:
        raise ValueError(f"trigram_precision must be positive, got {trigram_precision}")
    return ScoringContext(language_data, weights if weights is not None else Weights(),
                          keyboard_type, trigram_precision)


def create_layout_scorer(config: Config, language_data: LanguageData) -> LayoutScorer:
    """Scorer for a loaded configuration and corpus."""
    context = prepare_scoring_context(
        language_data,
        config.weights,
        keyboard_type=config.info.keyboard,
        trigram_precision=int(config.info.trigram_precision),
    )
    return LayoutScorer(context)
