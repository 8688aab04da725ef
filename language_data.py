# language_data.py
"""
Corpus frequency tables in the compact symbol-id space.

Frequencies are fractions of the corpus totals (characters sum to ~1,
bigrams to ~1, ...). All tables are dense numpy arrays indexed by symbol
id, so a symbol or pair missing from the corpus simply has frequency 0.

Tables are produced by an external corpus analysis step and read here
from one CSV per n-gram kind, each with columns `ngram,frequency`:

    characters.csv   bigrams.csv   skipgrams.csv
    skipgrams2.csv   skipgrams3.csv   trigrams.csv

"""

import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

MAX_SYMBOLS = 256

NGRAM_FILES = {
    'characters': ('characters.csv', 1),
    'bigrams': ('bigrams.csv', 2),
    'skipgrams': ('skipgrams.csv', 2),
    'skipgrams2': ('skipgrams2.csv', 2),
    'skipgrams3': ('skipgrams3.csv', 2),
    'trigrams': ('trigrams.csv', 3),
}


class Converter:
    """
    Two-way mapping between characters and symbol ids.

    Ids are handed out in order of first appearance, starting at 0.
    """

    def __init__(self, characters: Iterable[str] = ()):
        self._ids: Dict[str, int] = {}
        self._chars: List[str] = []
        for c in characters:
            self.to_symbol(c)

    def __len__(self) -> int:
        return len(self._chars)

    def __contains__(self, char: str) -> bool:
        return char in self._ids

    def to_symbol(self, char: str) -> int:
        """Symbol id of a character, registering it on first use."""
        symbol = self._ids.get(char)
        if symbol is None:
            if len(self._chars) >= MAX_SYMBOLS:
                raise ValueError(f"Too many distinct symbols: more than {MAX_SYMBOLS} (at '{char}')")
            symbol = len(self._chars)
            self._ids[char] = symbol
            self._chars.append(char)
        return symbol

    def to_symbols(self, text: str) -> List[int]:
        return [self.to_symbol(c) for c in text]

    def symbol_of(self, char: str) -> int:
        """Symbol id of a known character; never registers a new one."""
        symbol = self._ids.get(char)
        if symbol is None:
            raise ValueError(f"Character '{char}' is not in the language data")
        return symbol

    def symbols_of(self, text: str) -> List[int]:
        return [self.symbol_of(c) for c in text]

    def to_char(self, symbol: int) -> str:
        if 0 <= symbol < len(self._chars):
            return self._chars[symbol]
        return '�'

    def to_string(self, symbols: Iterable[int]) -> str:
        return ''.join(self.to_char(int(s)) for s in symbols)

    def __getstate__(self):
        return {'chars': list(self._chars)}

    def __setstate__(self, state):
        self._chars = list(state['chars'])
        self._ids = {c: i for i, c in enumerate(self._chars)}


@dataclass
class LanguageData:
    """Dense frequency tables for one corpus."""
    name: str
    characters: np.ndarray      # Shape: (256,)
    bigrams: np.ndarray         # Shape: (256, 256)
    skipgrams: np.ndarray       # Shape: (256, 256), one symbol in between
    skipgrams2: np.ndarray      # Shape: (256, 256), two symbols in between
    skipgrams3: np.ndarray      # Shape: (256, 256), three symbols in between
    trigram_symbols: np.ndarray  # Shape: (n_trigrams, 3), sorted by descending frequency
    trigram_freqs: np.ndarray   # Shape: (n_trigrams,)
    converter: Converter

    @property
    def n_trigrams(self) -> int:
        return len(self.trigram_freqs)

    def truncated_trigrams(self, precision: int) -> Tuple[np.ndarray, np.ndarray]:
        """The `precision` most frequent trigrams (all of them if there are fewer)."""
        if precision <= 0:
            raise ValueError(f"trigram precision must be positive, got {precision}")
        return self.trigram_symbols[:precision], self.trigram_freqs[:precision]

    @classmethod
    def from_frequencies(cls, characters: Dict[str, float],
                         bigrams: Optional[Dict[str, float]] = None,
                         skipgrams: Optional[Dict[str, float]] = None,
                         skipgrams2: Optional[Dict[str, float]] = None,
                         skipgrams3: Optional[Dict[str, float]] = None,
                         trigrams: Optional[Dict[str, float]] = None,
                         name: str = "custom",
                         converter: Optional[Converter] = None) -> 'LanguageData':
        """
        Build dense tables from n-gram -> frequency mappings.

        Args:
            characters: Single-character frequencies
            bigrams, skipgrams, skipgrams2, skipgrams3: Two-character frequencies
            trigrams: Three-character frequencies
            name: Corpus name for display
            converter: Existing converter to extend; a new one is created if None

        Raises:
            ValueError: On n-grams of the wrong length, negative frequencies,
                        or more than 256 distinct symbols
        """
        converter = converter if converter is not None else Converter()

        char_table = np.zeros(MAX_SYMBOLS, dtype=np.float64)
        for ngram, freq in _checked_items(characters, 1, 'characters'):
            char_table[converter.to_symbol(ngram)] += freq

        pair_tables = []
        for kind, table in (('bigrams', bigrams), ('skipgrams', skipgrams),
                            ('skipgrams2', skipgrams2), ('skipgrams3', skipgrams3)):
            matrix = np.zeros((MAX_SYMBOLS, MAX_SYMBOLS), dtype=np.float64)
            for ngram, freq in _checked_items(table or {}, 2, kind):
                a, b = converter.to_symbols(ngram)
                matrix[a, b] += freq
            pair_tables.append(matrix)

        trigram_items = list(_checked_items(trigrams or {}, 3, 'trigrams'))
        trigram_symbols = np.array([converter.to_symbols(t) for t, _ in trigram_items],
                                   dtype=np.int64).reshape(-1, 3)
        trigram_freqs = np.array([f for _, f in trigram_items], dtype=np.float64)

        # Most frequent first; stable so equal frequencies keep input order
        order = np.argsort(-trigram_freqs, kind='stable')

        return cls(name, char_table, *pair_tables,
                   trigram_symbols[order], trigram_freqs[order], converter)


def _checked_items(table: Dict[str, float], length: int, kind: str):
    for ngram, freq in table.items():
        if len(ngram) != length:
            raise ValueError(f"Invalid {kind} entry '{ngram}': expected {length} characters")
        freq = float(freq)
        if freq < 0 or not np.isfinite(freq):
            raise ValueError(f"Invalid {kind} frequency for '{ngram}': {freq}")
        yield ngram, freq


def load_ngram_table(path: str, length: int) -> Dict[str, float]:
    """
    Load one `ngram,frequency` CSV into a dict.

    Rows whose n-gram does not have the expected length are skipped.
    """
    df = pd.read_csv(path, dtype={'ngram': str}, keep_default_na=False)
    missing = {'ngram', 'frequency'} - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing columns {sorted(missing)}")

    df = df[df['ngram'].str.len() == length]
    frequencies = pd.to_numeric(df['frequency'], errors='coerce')
    if frequencies.isna().any():
        bad = df['ngram'][frequencies.isna()].tolist()[:5]
        raise ValueError(f"{path}: non-numeric frequencies for {bad}")

    # Repeated n-grams are summed
    return frequencies.groupby(df['ngram'], sort=False).sum().to_dict()


def load_language_data(folder: str, name: Optional[str] = None,
                       converter: Optional[Converter] = None) -> LanguageData:
    """
    Load all frequency tables from a folder.

    Args:
        folder: Directory holding the n-gram CSV files
        name: Corpus name (defaults to the folder name)
        converter: Converter to extend, so several corpora share one symbol space

    Returns:
        LanguageData with dense tables

    Raises:
        FileNotFoundError: If the folder or characters.csv is missing
        ValueError: If a table is malformed
    """
    if not os.path.isdir(folder):
        raise FileNotFoundError(f"Language data folder not found: {folder}")

    tables = {}
    for kind, (filename, length) in NGRAM_FILES.items():
        path = os.path.join(folder, filename)
        if os.path.exists(path):
            tables[kind] = load_ngram_table(path, length)
        elif kind == 'characters':
            raise FileNotFoundError(f"Character frequencies not found: {path}")
        else:
            tables[kind] = {}

    return LanguageData.from_frequencies(
        name=name or os.path.basename(os.path.normpath(folder)),
        converter=converter,
        **tables,
    )
