# patterns.py
"""
Finger-pattern classification for bigrams and trigrams.

Two lookup tables are built once at import time:

- BIGRAM_TABLE (64 entries, index finger_a * 8 + finger_b)
- TRIGRAM_TABLE (512 entries, index f0 * 64 + f1 * 8 + f2)

Fingers are ordinals 0..7 (left pinky to right pinky, see keyboard.Finger).
Symbols that are not on the layout are classified as INVALID at lookup
time and never reach the tables.

"""

from enum import IntEnum
from typing import Dict

import numpy as np

from keyboard import N_FINGERS, finger_class_index, finger_hand

# Fingers whose redirects count as "bad": pinky and ring
BAD_REDIRECT_FINGER_CLASSES = (0, 1)


class BigramPattern(IntEnum):
    SAME_FINGER_BIGRAM = 0
    SCISSOR = 1
    LATERAL_STRETCH = 2
    OTHER = 3
    INVALID = 4


class TrigramPattern(IntEnum):
    ALTERNATE = 0
    ALTERNATE_SFS = 1
    INROLL = 2
    OUTROLL = 3
    ONEHAND = 4
    REDIRECT = 5
    REDIRECT_SFS = 6
    BAD_REDIRECT = 7
    BAD_REDIRECT_SFS = 8
    SFB = 9
    BAD_SFB = 10
    SFT = 11
    OTHER = 12
    INVALID = 13


def bigram_index(f0: int, f1: int) -> int:
    return f0 * 8 + f1


def trigram_index(f0: int, f1: int, f2: int) -> int:
    return f0 * 64 + f1 * 8 + f2


def mirror_finger(finger: int) -> int:
    """Same finger on the other hand."""
    return 7 - finger

#-----------------------------------------------------------------------------
# Classification rules
#-----------------------------------------------------------------------------
def classify_bigram(f0: int, f1: int) -> BigramPattern:
    """Classify an ordered finger pair."""
    if f0 == f1:
        return BigramPattern.SAME_FINGER_BIGRAM
    if finger_hand(f0) != finger_hand(f1) or abs(f0 - f1) != 1:
        return BigramPattern.OTHER
    if {finger_class_index(f0), finger_class_index(f1)} == {2, 3}:
        return BigramPattern.LATERAL_STRETCH
    return BigramPattern.SCISSOR


def _is_bad_redirect(f0: int, f1: int, f2: int) -> bool:
    return all(finger_class_index(f) in BAD_REDIRECT_FINGER_CLASSES for f in (f0, f1, f2))


def _classify_onehand(f0: int, f1: int, f2: int) -> TrigramPattern:
    if f0 == f1 == f2:
        return TrigramPattern.SFT
    if f0 == f1 or f1 == f2:
        return TrigramPattern.BAD_SFB
    if (f0 < f1) == (f1 > f2):
        sfs = f0 == f2
        if _is_bad_redirect(f0, f1, f2):
            return TrigramPattern.BAD_REDIRECT_SFS if sfs else TrigramPattern.BAD_REDIRECT
        return TrigramPattern.REDIRECT_SFS if sfs else TrigramPattern.REDIRECT
    return TrigramPattern.ONEHAND


def _classify_roll(f0: int, f1: int, f2: int) -> TrigramPattern:
    """Two keys on one hand, one on the other: direction of the same-hand step."""
    if f0 == f1 or f1 == f2:
        return TrigramPattern.SFB

    h0, h1, h2 = finger_hand(f0), finger_hand(f1), finger_hand(f2)
    # Left fingers move toward the index with growing ordinals, right ones with shrinking
    if (h0, h1, h2) == (0, 0, 1):
        inward = f0 < f1
    elif (h0, h1, h2) == (1, 0, 0):
        inward = f1 < f2
    elif (h0, h1, h2) == (1, 1, 0):
        inward = f0 > f1
    elif (h0, h1, h2) == (0, 1, 1):
        inward = f1 > f2
    else:
        return TrigramPattern.OTHER
    return TrigramPattern.INROLL if inward else TrigramPattern.OUTROLL


def classify_trigram(f0: int, f1: int, f2: int) -> TrigramPattern:
    """
    Classify an ordered finger triple.

    Args:
        f0, f1, f2: Finger ordinals 0..7; anything else is INVALID

    Returns:
        The TrigramPattern of the triple
    """
    for f in (f0, f1, f2):
        if not 0 <= f < N_FINGERS:
            return TrigramPattern.INVALID

    h0, h1, h2 = finger_hand(f0), finger_hand(f1), finger_hand(f2)
    if h0 == h2 != h1:
        return TrigramPattern.ALTERNATE_SFS if f0 == f2 else TrigramPattern.ALTERNATE
    if h0 == h1 == h2:
        return _classify_onehand(f0, f1, f2)
    return _classify_roll(f0, f1, f2)

#-----------------------------------------------------------------------------
# Lookup tables
#-----------------------------------------------------------------------------
def _build_bigram_table() -> np.ndarray:
    table = np.empty(N_FINGERS * N_FINGERS, dtype=np.int64)
    for f0 in range(N_FINGERS):
        for f1 in range(N_FINGERS):
            table[bigram_index(f0, f1)] = classify_bigram(f0, f1)
    return table


def _build_trigram_table() -> np.ndarray:
    table = np.empty(N_FINGERS ** 3, dtype=np.int64)
    for f0 in range(N_FINGERS):
        for f1 in range(N_FINGERS):
            for f2 in range(N_FINGERS):
                table[trigram_index(f0, f1, f2)] = classify_trigram(f0, f1, f2)
    return table


BIGRAM_TABLE = _build_bigram_table()
TRIGRAM_TABLE = _build_trigram_table()


def trigram_pattern_weights(weights) -> Dict[TrigramPattern, float]:
    """
    Signed contribution per unit frequency of every trigram pattern.

    Rolls, onehands and alternates are rewarded; the four redirect variants
    are penalized. Same-finger patterns score 0 here since finger speed
    already penalizes them.
    """
    return {
        TrigramPattern.ALTERNATE: weights.alternate,
        TrigramPattern.ALTERNATE_SFS: weights.alternate_sfs,
        TrigramPattern.INROLL: weights.inroll,
        TrigramPattern.OUTROLL: weights.outroll,
        TrigramPattern.ONEHAND: weights.onehand,
        TrigramPattern.REDIRECT: -weights.redirect,
        TrigramPattern.REDIRECT_SFS: -weights.redirect_sfs,
        TrigramPattern.BAD_REDIRECT: -weights.bad_redirect,
        TrigramPattern.BAD_REDIRECT_SFS: -weights.bad_redirect_sfs,
    }


def trigram_weight_table(weights) -> np.ndarray:
    """512-entry table of signed trigram weights, indexed like TRIGRAM_TABLE."""
    pattern_weights = trigram_pattern_weights(weights)
    lookup = np.zeros(len(TrigramPattern), dtype=np.float64)
    for pattern, value in pattern_weights.items():
        lookup[pattern] = value
    return lookup[TRIGRAM_TABLE]
