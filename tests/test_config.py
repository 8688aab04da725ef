import pytest
import yaml

from config import (DEFAULT_CHARACTERS, Weights, config_from_dict, create_default_config,
                    load_config, parse_pins, validate_config)
from keyboard import KeyboardType


def write_config(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(content))
    return str(path)


def test_default_config_loads(tmp_path, capsys):
    path = str(tmp_path / "config.yaml")
    create_default_config(path)
    config = load_config(path)

    assert config.generation.characters == DEFAULT_CHARACTERS
    assert config.info.keyboard == KeyboardType.ANSI_ANGLE
    assert config.weights == Weights()
    assert config.generation.pinned_positions == frozenset()


def test_partial_config_keeps_defaults(tmp_path):
    path = write_config(tmp_path, {
        'paths': {'language_data_folder': 'data/english'},
        'info': {'keyboard_type': 'ortho'},
        'weights': {'scissors': 2.5, 'finger_bias': [1, 2, 3, 4]},
    })
    config = load_config(path)
    assert config.paths.language_data_folder == 'data/english'
    assert config.info.keyboard == KeyboardType.ORTHO
    assert config.weights.scissors == 2.5
    assert config.weights.inroll == Weights().inroll
    assert config.weights.normalized_finger_bias == pytest.approx([0.1, 0.2, 0.3, 0.4])


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")


@pytest.mark.parametrize("content", [
    {},
    {'info': {}},
    {'paths': {'unknown_folder': 'x'}},
    {'paths': {}, 'weights': {'rolls': 1.0}},
    {'paths': {}, 'weights': {'inroll': 'fast'}},
    {'paths': {}, 'weights': {'finger_bias': [1, 2, 3]}},
    {'paths': {}, 'generation': {'characters': 'abc'}},
    {'paths': {}, 'generation': {'characters': 'a' * 30}},
    {'paths': {}, 'generation': {'pins': 'x' * 31}},
    {'paths': {}, 'generation': {'n_layouts': 0}},
    {'paths': {}, 'generation': {'processes': 0}},
    {'paths': {}, 'info': {'keyboard_type': 'dvorak'}},
    {'paths': {}, 'info': {'trigram_precision': 0}},
    {'paths': {}, 'weights': {'heatmap': -1}},
])
def test_invalid_configs(tmp_path, content):
    path = write_config(tmp_path, content)
    with pytest.raises(ValueError):
        load_config(path)


def test_parse_pins():
    assert parse_pins("") == frozenset()
    assert parse_pins("x........X") == frozenset({0, 9})
    assert parse_pins("""
        ..........
        ...xx.....
        .........x
    """) == frozenset({13, 14, 29})
    with pytest.raises(ValueError):
        parse_pins("." * 31)


def test_skipgram_multipliers():
    r1, r2, r3 = Weights().skipgram_multipliers
    assert r1 == pytest.approx(0.12)
    assert r2 == pytest.approx(0.36)
    assert r3 == pytest.approx(0.48 ** 3)


def test_config_from_dict_then_validate():
    config = config_from_dict({'paths': {}, 'generation': {'pins': 'xx'}})
    validate_config(config)
    assert config.generation.pinned_positions == frozenset({0, 1})
