import numpy as np

import validation
from layout import Layout


def test_static_table_checks():
    assert validation.test_trigram_table_symmetry().passed
    assert validation.test_geometry_classification().passed


def test_scorer_checks(scorer, layout):
    for result in (validation.test_cache_consistency(scorer, layout, n_swaps=50),
                   validation.test_swap_restore(scorer, layout),
                   validation.test_best_swap_agreement(scorer, layout)):
        assert result.passed, str(result)


def test_optimizer_check(scorer, characters):
    layout = Layout.random(scorer.context.converter.to_symbols(characters),
                           np.random.default_rng(3))
    result = validation.test_optimizer_monotonic(scorer, layout, pins=[0, 1])
    assert result.passed, str(result)


def test_quick_suite(scorer, characters, capsys):
    assert validation.run_validation_suite(scorer, characters, quick=True, seed=8)
    assert "tests passed" in capsys.readouterr().out


def test_suite_counts():
    suite = validation.ValidationSuite([
        validation.ValidationResult("a", True, "ok"),
        validation.ValidationResult("b", False, "bad", {"x": 1}),
    ])
    assert not suite.all_passed
    assert (suite.passed_count, suite.failed_count) == (1, 1)
