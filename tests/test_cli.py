import numpy as np
import pandas as pd
import pytest
import yaml

from config import DEFAULT_CHARACTERS
from optimize_layout import main, parse_arguments

QWERTY = "qwertyuiopasdfghjkl;zxcvbnm,.'"


@pytest.fixture
def config_path(tmp_path):
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    rng = np.random.default_rng(0)

    chars = list(DEFAULT_CHARACTERS)
    freqs = rng.random(len(chars))
    pd.DataFrame({'ngram': chars, 'frequency': freqs / freqs.sum()}).to_csv(
        corpus / "characters.csv", index=False)
    bigrams = sorted({''.join(rng.choice(chars, 2)) for _ in range(150)})
    pd.DataFrame({'ngram': bigrams, 'frequency': rng.random(len(bigrams)) / len(bigrams)}).to_csv(
        corpus / "bigrams.csv", index=False)
    trigrams = sorted({''.join(rng.choice(chars, 3)) for _ in range(400)})
    pd.DataFrame({'ngram': trigrams, 'frequency': rng.random(len(trigrams)) / len(trigrams)}).to_csv(
        corpus / "trigrams.csv", index=False)

    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        'paths': {'language_data_folder': str(corpus),
                  'layout_results_folder': str(tmp_path / "out")},
        'info': {'language': 'test', 'trigram_precision': 200},
        'generation': {'n_layouts': 2, 'processes': 1, 'seed': 3, 'show_progress_bar': False},
        'visualization': {'top_n': 2},
    }))
    return str(path)


def test_parse_arguments():
    args = parse_arguments(['--n-layouts', '5', '--compare', QWERTY, DEFAULT_CHARACTERS])
    assert args.n_layouts == 5
    assert args.compare == [QWERTY, DEFAULT_CHARACTERS]
    assert args.config == 'config.yaml'


def test_generation_run(config_path, tmp_path, capsys):
    plot = tmp_path / "plots" / "best.png"
    assert main(['--config', config_path, '--plot', str(plot)]) == 0
    out = capsys.readouterr().out
    assert "#1: Score" in out and "#2: Score" in out
    assert plot.exists()
    assert (tmp_path / "plots" / "best_scores.png").exists()

    saved = list((tmp_path / "out").glob("layouts_config_*.csv"))
    assert len(saved) == 1
    results = pd.read_csv(saved[0], keep_default_na=False)
    assert results['rank'].tolist() == [1, 2]
    assert results['score'].is_monotonic_decreasing
    assert {'trigram', 'effort', 'finger_speed'} <= set(results.columns)


def test_improve_with_pins(config_path, capsys):
    assert main(['--config', config_path, '--improve', QWERTY,
                 '--pins', 'xxxxx', '--n-layouts', '1', '--verbose']) == 0
    out = capsys.readouterr().out
    assert "Layout: qwert" in out


def test_analyze_and_compare(config_path, capsys):
    assert main(['--config', config_path, '--analyze', QWERTY]) == 0
    assert main(['--config', config_path, '--compare', QWERTY, DEFAULT_CHARACTERS]) == 0
    assert "Inrolls" in capsys.readouterr().out


def test_bad_input_returns_error(config_path, tmp_path):
    assert main(['--config', str(tmp_path / "missing.yaml")]) == 1
    assert main(['--config', config_path, '--analyze', QWERTY[:-1]]) == 1
    assert main(['--config', config_path, '--analyze', QWERTY[:-1] + '/']) == 1
    assert main(['--config', config_path, '--pins', 'x' * 31]) == 1


def test_create_config(tmp_path):
    path = tmp_path / "new.yaml"
    assert main(['--config', str(path), '--create-config']) == 0
    assert yaml.safe_load(path.read_text())['generation']['n_layouts'] == 100


def test_validate_flag(config_path):
    assert main(['--config', config_path, '--validate', '--analyze', QWERTY]) == 0
