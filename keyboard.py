# keyboard.py
"""
Static keyboard geometry for 30-key (3x10) layouts.

Everything in this module is independent of any corpus or layout:
fingers and hands, per-position effort tables for the supported
keyboard geometries, same-finger travel distances, the fixed position
pairs used by the scissor / lateral-stretch / pinky-ring penalties,
and the enumeration of legal swaps.

Position p sits at column p % 10 and row p // 10:

     0  1  2  3  4 |  5  6  7  8  9
    10 11 12 13 14 | 15 16 17 18 19
    20 21 22 23 24 | 25 26 27 28 29

"""

from enum import Enum, IntEnum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Tuple

import numpy as np

N_POSITIONS = 30
N_ROWS = 3
N_COLUMNS = 10
N_FINGERS = 8

#-----------------------------------------------------------------------------
# Fingers and hands
#-----------------------------------------------------------------------------
class Finger(IntEnum):
    """Fingers, ordered left pinky to right pinky. Thumbs never hold layout keys."""
    LP = 0
    LR = 1
    LM = 2
    LI = 3
    RI = 4
    RM = 5
    RR = 6
    RP = 7
    LT = 8
    RT = 9

    @property
    def hand(self) -> 'Hand':
        if self in (Finger.LT, Finger.RT):
            return Hand.LEFT if self == Finger.LT else Hand.RIGHT
        return Hand.LEFT if self < 4 else Hand.RIGHT

    @property
    def finger_class(self) -> str:
        """pinky, ring, middle or index (thumb for thumbs)."""
        if self in (Finger.LT, Finger.RT):
            return 'thumb'
        return FINGER_CLASSES[min(self, 7 - self)]


class Hand(IntEnum):
    LEFT = 0
    RIGHT = 1


FINGER_CLASSES = ('pinky', 'ring', 'middle', 'index')

# Two central columns per hand are merged onto the index finger
COLUMN_TO_FINGER = (0, 1, 2, 3, 3, 4, 4, 5, 6, 7)
POSITION_TO_FINGER = np.array(COLUMN_TO_FINGER * N_ROWS, dtype=np.int64)

# Outer columns, each served by exactly one finger
OUTER_COLUMNS = (0, 1, 2, 7, 8, 9)
INDEX_COLUMNS = (3, 4, 5, 6)


def finger_hand(finger: int) -> int:
    """Hand (0 = left, 1 = right) of a finger ordinal 0..7."""
    return 0 if finger < 4 else 1


def finger_class_index(finger: int) -> int:
    """0 pinky, 1 ring, 2 middle, 3 index, for a finger ordinal 0..7."""
    return min(finger, 7 - finger)


def finger_positions(finger: int) -> List[int]:
    """Positions served by one finger, column by column, top to bottom."""
    columns = [c for c, f in enumerate(COLUMN_TO_FINGER) if f == finger]
    return [c + N_COLUMNS * row for c in columns for row in range(N_ROWS)]


# Positions of each finger column, padded with -1 (outer fingers own 3 keys, index fingers 6)
FINGER_POSITIONS = np.full((N_FINGERS, 6), -1, dtype=np.int64)
FINGER_POSITION_COUNTS = np.zeros(N_FINGERS, dtype=np.int64)
for _finger in range(N_FINGERS):
    _positions = finger_positions(_finger)
    FINGER_POSITIONS[_finger, :len(_positions)] = _positions
    FINGER_POSITION_COUNTS[_finger] = len(_positions)

#-----------------------------------------------------------------------------
# Keyboard geometries and effort tables
#-----------------------------------------------------------------------------
class KeyboardType(Enum):
    ANSI_ANGLE = 'ansi angle'
    ISO_ANGLE = 'iso angle'
    ROWSTAG_DEFAULT = 'rowstag'
    ORTHO = 'ortho'
    COLSTAG = 'colstag'


_ANGLE_TOP_ROWS = [
    3.0, 2.4, 2.0, 2.2, 2.4, 3.3, 2.2, 2.0, 2.4, 3.0,
    1.8, 1.3, 1.1, 1.0, 2.6, 2.6, 1.0, 1.1, 1.3, 1.8,
]
_ORTHO_TOP_ROWS = [
    3.0, 2.4, 2.0, 2.2, 3.1, 3.1, 2.2, 2.0, 2.4, 3.0,
    1.7, 1.3, 1.1, 1.0, 2.6, 2.6, 1.0, 1.1, 1.3, 1.7,
]

# Raw effort per position; larger means harder to reach
EFFORT_TABLES: Dict[KeyboardType, Tuple[float, ...]] = {
    KeyboardType.ISO_ANGLE: tuple(_ANGLE_TOP_ROWS + [
        3.3, 2.8, 2.4, 1.8, 2.2, 2.2, 1.8, 2.4, 2.8, 3.3]),
    KeyboardType.ANSI_ANGLE: tuple(_ANGLE_TOP_ROWS + [
        3.7, 2.8, 2.4, 1.8, 2.2, 2.2, 1.8, 2.4, 2.8, 3.3]),
    KeyboardType.ROWSTAG_DEFAULT: tuple(_ANGLE_TOP_ROWS + [
        3.5, 3.0, 2.7, 2.3, 3.7, 2.2, 1.8, 2.4, 2.8, 3.3]),
    KeyboardType.ORTHO: tuple(_ORTHO_TOP_ROWS + [
        3.2, 2.6, 2.3, 1.6, 3.0, 3.0, 1.6, 2.3, 2.6, 3.2]),
    KeyboardType.COLSTAG: tuple(_ORTHO_TOP_ROWS + [
        3.4, 2.6, 2.2, 1.8, 3.2, 3.2, 1.8, 2.2, 2.6, 3.4]),
}

_SINGLE_WORD_TYPES = {
    'ortho': KeyboardType.ORTHO,
    'colstag': KeyboardType.COLSTAG,
    'rowstag': KeyboardType.ROWSTAG_DEFAULT,
    'iso': KeyboardType.ROWSTAG_DEFAULT,
    'ansi': KeyboardType.ROWSTAG_DEFAULT,
    'jis': KeyboardType.ROWSTAG_DEFAULT,
}
_TWO_WORD_TYPES = {
    ('ansi', 'angle'): KeyboardType.ANSI_ANGLE,
    ('iso', 'angle'): KeyboardType.ISO_ANGLE,
}


def resolve_keyboard_type(name: str) -> KeyboardType:
    """
    Resolve a keyboard geometry name such as "ansi angle" or "ortho".

    Args:
        name: Geometry name; case, underscores and extra spaces are ignored.
              An empty name resolves to the default ANSI angle-mod geometry.

    Returns:
        The matching KeyboardType

    Raises:
        ValueError: If the name does not match any supported geometry
    """
    words = name.lower().replace('_', ' ').replace('-', ' ').split()
    if not words:
        return KeyboardType.ANSI_ANGLE
    if len(words) == 1 and words[0] in _SINGLE_WORD_TYPES:
        return _SINGLE_WORD_TYPES[words[0]]
    if len(words) == 2 and tuple(words) in _TWO_WORD_TYPES:
        return _TWO_WORD_TYPES[tuple(words)]
    supported = sorted(set(_SINGLE_WORD_TYPES) | {' '.join(k) for k in _TWO_WORD_TYPES})
    raise ValueError(f"Unknown keyboard type '{name}'. Supported: {supported}")


def effort_map(keyboard_type: KeyboardType, heatmap_weight: float) -> np.ndarray:
    """Per-position effort constants, rescaled and multiplied by the heatmap weight."""
    table = np.array(EFFORT_TABLES[keyboard_type], dtype=np.float64)
    return (table - 0.2) / 4.5 * heatmap_weight

#-----------------------------------------------------------------------------
# Same-finger key pairs and travel distances
#-----------------------------------------------------------------------------
def _build_sfb_indices() -> List[Tuple[int, int]]:
    pairs = []
    for col in OUTER_COLUMNS:
        pairs.extend([(col, col + 10), (col, col + 20), (col + 10, col + 20)])

    index_keys = [(x, y) for x in range(2) for y in range(3)]
    for offset in (0, 2):
        for i, (x0, y0) in enumerate(index_keys):
            for x1, y1 in index_keys[i + 1:]:
                pairs.append((3 + offset + x0 + 10 * y0, 3 + offset + x1 + 10 * y1))
    return pairs


# 3 pairs per outer column (in OUTER_COLUMNS order), then 15 per index finger
SFB_INDICES = np.array(_build_sfb_indices(), dtype=np.int64)

# (start, length) of each finger's slice of SFB_INDICES, by finger ordinal
FINGER_SPEED_SPANS = np.array([
    (0, 3), (3, 3), (6, 3), (18, 15), (33, 15), (9, 3), (12, 3), (15, 3),
], dtype=np.int64)

# Strength of each outer column's finger, in OUTER_COLUMNS order
OUTER_FINGER_WEIGHTS = (1.4, 3.6, 4.8, 4.8, 3.6, 1.4)


def _travel(dx: float, dy: float, lateral_penalty: float) -> float:
    return (dx * dx * lateral_penalty + dy * dy) ** 0.65


def finger_distances(lateral_penalty: float) -> np.ndarray:
    """
    Travel distance for every same-finger key pair in SFB_INDICES.

    Outer-column distances are vertical only and scaled by the inverse
    strength of the finger; index-finger distances also include lateral
    movement, multiplied by lateral_penalty.
    """
    distances = []
    for fweight in OUTER_FINGER_WEIGHTS:
        ratio = 5.5 / fweight
        distances.extend([
            _travel(0, 1, lateral_penalty) * ratio,
            _travel(0, 2, lateral_penalty) * ratio,
            _travel(0, 1, lateral_penalty) * ratio,
        ])
    for p0, p1 in SFB_INDICES[len(distances):]:
        dx = abs(p0 % 10 - p1 % 10)
        dy = abs(p0 // 10 - p1 // 10)
        distances.append(_travel(dx, dy, lateral_penalty))
    return np.array(distances, dtype=np.float64)

#-----------------------------------------------------------------------------
# Fixed geometry penalty pairs
#-----------------------------------------------------------------------------
SCISSOR_INDICES = np.array([
    (0, 21), (1, 22), (6, 27), (7, 28), (8, 29),
    (1, 20), (2, 21), (3, 22), (8, 27), (9, 28),
    (0, 11), (9, 18), (10, 21), (19, 28),
    (2, 24), (22, 4), (5, 27),
], dtype=np.int64)

LATERAL_STRETCH_INDICES = np.array([
    (2, 4), (2, 14), (2, 24), (12, 4), (12, 14), (22, 4), (22, 14), (22, 24),
    (5, 7), (5, 17), (5, 27), (15, 7), (15, 17), (15, 27), (25, 17), (25, 27),
], dtype=np.int64)

PINKY_RING_INDICES = np.array([
    (0, 1), (0, 11), (0, 21), (11, 1), (11, 11), (11, 21), (21, 1), (21, 11), (21, 21),
    (8, 9), (8, 19), (8, 29), (18, 9), (18, 19), (18, 29), (28, 9), (28, 19), (28, 29),
], dtype=np.int64)

_SCISSOR_POSITIONS = frozenset(SCISSOR_INDICES.ravel().tolist())
_LATERAL_STRETCH_POSITIONS = frozenset(LATERAL_STRETCH_INDICES.ravel().tolist())
_PINKY_RING_POSITIONS = frozenset(PINKY_RING_INDICES.ravel().tolist())

#-----------------------------------------------------------------------------
# Swaps
#-----------------------------------------------------------------------------
@dataclass(frozen=True)
class Swap:
    """Exchange of the symbols on two positions, with static geometry flags."""
    p0: int
    p1: int
    affects_scissor: bool
    affects_lateral_stretch: bool
    affects_pinky_ring: bool


def make_swap(p0: int, p1: int) -> Swap:
    """Build a Swap for two distinct positions; the pair is stored in ascending order."""
    if p0 == p1:
        raise ValueError(f"Cannot swap position {p0} with itself")
    for p in (p0, p1):
        if not 0 <= p < N_POSITIONS:
            raise ValueError(f"Position {p} out of range 0-{N_POSITIONS - 1}")
    p0, p1 = min(p0, p1), max(p0, p1)
    return Swap(
        p0, p1,
        affects_scissor=p0 in _SCISSOR_POSITIONS or p1 in _SCISSOR_POSITIONS,
        affects_lateral_stretch=p0 in _LATERAL_STRETCH_POSITIONS or p1 in _LATERAL_STRETCH_POSITIONS,
        affects_pinky_ring=p0 in _PINKY_RING_POSITIONS or p1 in _PINKY_RING_POSITIONS,
    )


ALL_SWAPS: Dict[Tuple[int, int], Swap] = {
    (p0, p1): make_swap(p0, p1)
    for p0 in range(N_POSITIONS) for p1 in range(p0 + 1, N_POSITIONS)
}


def get_swap(p0: int, p1: int) -> Swap:
    return ALL_SWAPS[(min(p0, p1), max(p0, p1))]


def possible_swaps(pins: Iterable[int] = ()) -> List[Swap]:
    """
    All legal swaps in enumeration order (0,1), (0,2), ... (28,29).

    Swaps touching a pinned position are left out.
    """
    pinned: FrozenSet[int] = frozenset(pins)
    return [swap for (p0, p1), swap in ALL_SWAPS.items()
            if p0 not in pinned and p1 not in pinned]


def column_positions(column: int) -> List[int]:
    """The three positions of a physical column, top to bottom."""
    return [column + N_COLUMNS * row for row in range(N_ROWS)]
