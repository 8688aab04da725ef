# layout.py
"""
Layout: a permutation of symbols over the 30 key positions, plus the
derived symbol -> finger index used by the scoring kernels.

"""

from typing import Iterable, Optional

import numpy as np

from keyboard import N_COLUMNS, N_POSITIONS, N_ROWS, POSITION_TO_FINGER
from language_data import MAX_SYMBOLS, Converter


class Layout:
    """
    Mutable symbol arrangement under optimization.

    Attributes:
        matrix: Symbol id on each position, shape (30,)
        char_to_finger: Finger ordinal of each symbol id, -1 if the
                        symbol is not on the layout, shape (256,)
        score: Last known total score (set by the optimizer)
    """

    def __init__(self, matrix: Iterable[int], score: float = 0.0):
        matrix = np.array(list(matrix), dtype=np.int64)
        if matrix.shape != (N_POSITIONS,):
            raise ValueError(f"A layout needs exactly {N_POSITIONS} symbols, got {matrix.size}")
        if matrix.min() < 0 or matrix.max() >= MAX_SYMBOLS:
            raise ValueError(f"Symbol ids must be in 0-{MAX_SYMBOLS - 1}")
        if len(np.unique(matrix)) != N_POSITIONS:
            raise ValueError("A layout cannot contain the same symbol twice")

        self.matrix = matrix
        self.char_to_finger = np.full(MAX_SYMBOLS, -1, dtype=np.int64)
        self.score = score
        self.rebuild()

    def rebuild(self) -> None:
        """Recompute char_to_finger from the matrix."""
        self.char_to_finger[:] = -1
        self.char_to_finger[self.matrix] = POSITION_TO_FINGER

    def swap(self, p0: int, p1: int) -> None:
        """Exchange the symbols on two positions, keeping char_to_finger in step."""
        m = self.matrix
        m[p0], m[p1] = m[p1], m[p0]
        self.char_to_finger[m[p0]] = POSITION_TO_FINGER[p0]
        self.char_to_finger[m[p1]] = POSITION_TO_FINGER[p1]

    def swap_columns(self, c0: int, c1: int) -> None:
        for row in range(N_ROWS):
            self.swap(c0 + N_COLUMNS * row, c1 + N_COLUMNS * row)

    def set_matrix(self, matrix: np.ndarray) -> None:
        self.matrix[:] = matrix
        self.rebuild()

    def copy(self) -> 'Layout':
        return Layout(self.matrix.copy(), self.score)

    def finger_of(self, symbol: int) -> int:
        return int(self.char_to_finger[symbol])

    def __eq__(self, other) -> bool:
        return isinstance(other, Layout) and np.array_equal(self.matrix, other.matrix)

    def __hash__(self):
        return hash(tuple(self.matrix.tolist()))

    def __repr__(self) -> str:
        return f"Layout({self.matrix.tolist()}, score={self.score:.6f})"

    #-------------------------------------------------------------------------
    # Construction helpers
    #-------------------------------------------------------------------------
    @classmethod
    def from_string(cls, text: str, converter: Converter) -> 'Layout':
        """
        Build a layout from its 30 characters, row by row.

        Whitespace is ignored, so a 3-line keyboard drawing works as well.

        Raises:
            ValueError: On a wrong character count, duplicate characters, or
                        characters the converter does not know
        """
        chars = ''.join(text.split())
        if len(chars) != N_POSITIONS:
            raise ValueError(f"A layout needs exactly {N_POSITIONS} characters, got {len(chars)}: '{chars}'")
        if len(set(chars)) != N_POSITIONS:
            duplicates = sorted(c for c in set(chars) if chars.count(c) > 1)
            raise ValueError(f"Duplicate characters in layout '{chars}': {duplicates}")
        return cls(converter.symbols_of(chars))

    def to_string(self, converter: Converter, row_separator: str = '') -> str:
        rows = [converter.to_string(self.matrix[r * N_COLUMNS:(r + 1) * N_COLUMNS])
                for r in range(N_ROWS)]
        return row_separator.join(rows)

    @classmethod
    def random(cls, symbols: Iterable[int], rng: np.random.Generator) -> 'Layout':
        """Uniformly shuffled layout of 30 symbols."""
        layout = cls(symbols)
        shuffle_free_positions(layout, (), rng)
        return layout

    @classmethod
    def random_pins(cls, based_on: 'Layout', pins: Iterable[int],
                    rng: np.random.Generator) -> 'Layout':
        """Copy of based_on with every non-pinned position shuffled."""
        layout = based_on.copy()
        shuffle_free_positions(layout, pins, rng)
        return layout


def shuffle_free_positions(layout: Layout, pins: Iterable[int],
                           rng: Optional[np.random.Generator] = None) -> None:
    """
    Fisher-Yates shuffle of the layout in place, skipping pinned positions.
    """
    rng = rng if rng is not None else np.random.default_rng()
    pinned = set(pins)
    free = [p for p in range(N_POSITIONS) if p not in pinned]
    for k in range(len(free) - 1, 0, -1):
        j = int(rng.integers(0, k + 1))
        if j != k:
            a, b = free[k], free[j]
            layout.matrix[a], layout.matrix[b] = layout.matrix[b], layout.matrix[a]
    layout.rebuild()
