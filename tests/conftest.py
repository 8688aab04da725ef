import numpy as np
import pytest

from config import DEFAULT_CHARACTERS, Weights
from keyboard import KeyboardType
from language_data import LanguageData
from layout import Layout
from scoring import LayoutScorer, prepare_scoring_context


def random_frequencies(rng, characters, length, count):
    """Random normalized n-gram table over the given characters."""
    table = {}
    while len(table) < count:
        ngram = ''.join(rng.choice(list(characters), size=length))
        table[ngram] = float(rng.random() ** 3)
    total = sum(table.values())
    return {k: v / total for k, v in table.items()}


@pytest.fixture(scope="session")
def characters():
    return DEFAULT_CHARACTERS


@pytest.fixture(scope="session")
def language_data(characters):
    rng = np.random.default_rng(1234)
    char_freqs = rng.random(len(characters)) ** 2
    char_freqs /= char_freqs.sum()
    return LanguageData.from_frequencies(
        characters=dict(zip(characters, char_freqs)),
        bigrams=random_frequencies(rng, characters, 2, 400),
        skipgrams=random_frequencies(rng, characters, 2, 300),
        skipgrams2=random_frequencies(rng, characters, 2, 200),
        skipgrams3=random_frequencies(rng, characters, 2, 200),
        trigrams=random_frequencies(rng, characters, 3, 3000),
        name="synthetic",
    )


@pytest.fixture(scope="session")
def scorer(language_data):
    context = prepare_scoring_context(language_data, Weights(), KeyboardType.ANSI_ANGLE,
                                      trigram_precision=1500)
    return LayoutScorer(context)


@pytest.fixture
def layout(scorer, characters):
    rng = np.random.default_rng(7)
    return Layout.random(scorer.context.converter.symbols_of(characters), rng)
