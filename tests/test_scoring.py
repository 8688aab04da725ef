import numpy as np
import pytest

from config import Weights
from keyboard import FINGER_SPEED_SPANS, SFB_INDICES, KeyboardType
from language_data import LanguageData
from layout import Layout
from layout_cache import LayoutCache
from patterns import TrigramPattern, classify_trigram, trigram_pattern_weights
from scoring import LayoutScorer, build_trigram_index, prepare_scoring_context


def test_components_add_up(scorer, layout):
    components = scorer.components(layout)
    assert components.total() == scorer.score(layout)
    for name, value in components.as_dict().items():
        if name != 'trigram':
            assert value >= 0


def test_all_zero_frequencies_score_exactly_zero(characters):
    data = LanguageData.from_frequencies(
        characters={c: 0.0 for c in characters},
        bigrams={characters[:2]: 0.0},
        trigrams={characters[:3]: 0.0},
    )
    scorer = LayoutScorer(prepare_scoring_context(data, Weights()))
    layout = Layout(data.converter.to_symbols(characters))
    assert scorer.score(layout) == 0.0
    assert LayoutCache.build(scorer, layout).total_score == 0.0


def test_trigram_score_matches_pattern_rules(scorer, layout):
    ctx = scorer.context
    pattern_weights = trigram_pattern_weights(ctx.weights)
    expected = 0.0
    for (s0, s1, s2), freq in zip(ctx.trigram_symbols.tolist(), ctx.trigram_freqs):
        fingers = [int(layout.char_to_finger[s]) for s in (s0, s1, s2)]
        expected += freq * pattern_weights.get(classify_trigram(*fingers), 0.0)
    assert scorer.trigram_score(layout) == pytest.approx(expected, rel=1e-9, abs=1e-12)


def test_trigram_precision_truncates(language_data):
    context = prepare_scoring_context(language_data, Weights(), trigram_precision=10)
    assert context.n_trigrams == 10
    assert np.all(np.diff(context.trigram_freqs) <= 0)
    with pytest.raises(ValueError):
        prepare_scoring_context(language_data, Weights(), trigram_precision=0)


def test_finger_speed_matches_pair_sum(scorer, layout):
    ctx = scorer.context
    r1, r2, r3 = ctx.weights.skipgram_multipliers
    data = ctx.language_data
    for finger, (start, length) in enumerate(FINGER_SPEED_SPANS):
        expected = 0.0
        for i in range(start, start + length):
            a, b = layout.matrix[SFB_INDICES[i]]
            pair = 0.0
            for x, y in ((a, b), (b, a)):
                pair += (data.bigrams[x, y] + data.skipgrams[x, y] * r1
                         + data.skipgrams2[x, y] * r2 + data.skipgrams3[x, y] * r3)
            expected += pair * ctx.weights.finger_speed * ctx.distances[i]
        assert scorer.column_finger_speed(layout, finger) == pytest.approx(expected)


def test_column_usage_only_penalizes_overuse(scorer, layout):
    ctx = scorer.context
    usage = scorer.finger_usage(layout)
    assert usage.sum() == pytest.approx(ctx.char_freq[layout.matrix].sum())
    for finger in range(8):
        expected = ctx.weights.overuse_penalty * max(0.0, usage[finger] - ctx.finger_bias[finger])
        assert scorer.column_usage(layout, finger) == pytest.approx(expected)


def test_effort_uses_selected_geometry(language_data, layout):
    ansi = LayoutScorer(prepare_scoring_context(language_data, Weights(), KeyboardType.ANSI_ANGLE, 100))
    iso = LayoutScorer(prepare_scoring_context(language_data, Weights(), KeyboardType.ISO_ANGLE, 100))
    # Only the bottom-left key differs between the two geometries
    for p in range(30):
        if p != 20:
            assert ansi.char_effort(layout, p) == iso.char_effort(layout, p)
    assert ansi.char_effort(layout, 20) >= iso.char_effort(layout, 20)


def test_trigram_stats_cover_all_scored_trigrams(scorer, layout):
    stats = scorer.trigram_stats(layout)
    assert sum(stats.values()) == pytest.approx(scorer.context.trigram_freqs.sum())
    assert stats[TrigramPattern.INVALID] == 0.0


def test_unplaced_symbols_make_trigrams_invalid(characters):
    data = LanguageData.from_frequencies(
        characters={c: 1 / 30 for c in characters},
        trigrams={'abc': 0.5, 'ab!': 0.5},
    )
    scorer = LayoutScorer(prepare_scoring_context(data, Weights()))
    layout = Layout(data.converter.to_symbols(characters))
    stats = scorer.trigram_stats(layout)
    assert stats[TrigramPattern.INVALID] == pytest.approx(0.5)
    values = scorer.trigram_values(layout)
    invalid = [k for k, row in enumerate(scorer.context.trigram_symbols.tolist())
               if data.converter.to_char(row[2]) == '!']
    assert values[invalid[0]] == 0.0


def test_same_finger_bigrams_reports_pairs(characters):
    data = LanguageData.from_frequencies(
        characters={c: 1 / 30 for c in characters},
        bigrams={'ak': 0.3, 'ka': 0.1},
    )
    scorer = LayoutScorer(prepare_scoring_context(data, Weights()))
    # a on top of k in the left pinky column
    layout = Layout.from_string("abcdefghij" "klmnopqrst" "uvwxyz',.;", data.converter)
    sfbs = scorer.same_finger_bigrams(layout)
    assert len(sfbs) == 1
    assert sfbs[0][2] == pytest.approx(0.4)
    assert scorer.bigram_stats(layout)['sfb'] == pytest.approx(0.4)


def test_trigram_index_lists_each_trigram_once_per_symbol():
    symbols = np.array([[0, 1, 2], [1, 1, 1], [2, 0, 2]])
    offsets, index = build_trigram_index(symbols)
    rows = {s: index[offsets[s]:offsets[s + 1]].tolist() for s in range(3)}
    assert rows == {0: [0, 2], 1: [0, 1], 2: [0, 2]}
    assert offsets[-1] == len(index)
