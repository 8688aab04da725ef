import numpy as np
import pytest

from keyboard import POSITION_TO_FINGER
from language_data import Converter
from layout import Layout, shuffle_free_positions

QWERTY = "qwertyuiop" "asdfghjkl;" "zxcvbnm,./"


def test_from_string_round_trip():
    converter = Converter(QWERTY)
    layout = Layout.from_string("qwertyuiop\nasdfghjkl;\nzxcvbnm,./", converter)
    assert layout.to_string(converter) == QWERTY
    assert layout.to_string(converter, '\n').splitlines()[1] == "asdfghjkl;"
    assert layout.finger_of(converter.to_symbol('f')) == 3
    assert layout.finger_of(converter.to_symbol('j')) == 4
    assert layout.finger_of(converter.to_symbol('!')) == -1


@pytest.mark.parametrize("text", [QWERTY[:-1], QWERTY + "'", QWERTY[:-1] + "q"])
def test_from_string_rejects(text):
    with pytest.raises(ValueError):
        Layout.from_string(text, Converter(QWERTY))


def test_constructor_rejects():
    with pytest.raises(ValueError):
        Layout(range(29))
    with pytest.raises(ValueError):
        Layout([0] * 30)
    with pytest.raises(ValueError):
        Layout(range(250, 280))


def test_swap_keeps_fingers_in_step():
    layout = Layout(range(30))
    layout.swap(0, 29)
    assert layout.matrix[0] == 29 and layout.matrix[29] == 0
    assert layout.finger_of(29) == POSITION_TO_FINGER[0]
    assert layout.finger_of(0) == POSITION_TO_FINGER[29]

    layout.swap_columns(3, 6)
    assert layout.matrix[13] == 16 and layout.matrix[16] == 13
    expected = Layout(layout.matrix.copy())
    assert np.array_equal(layout.char_to_finger, expected.char_to_finger)


def test_copy_is_independent():
    layout = Layout(range(30), score=1.5)
    clone = layout.copy()
    clone.swap(0, 1)
    assert clone != layout
    assert clone.score == 1.5
    assert layout.matrix[0] == 0


def test_random_is_seeded_permutation():
    a = Layout.random(range(30), np.random.default_rng(4))
    b = Layout.random(range(30), np.random.default_rng(4))
    assert a == b
    assert sorted(a.matrix.tolist()) == list(range(30))


def test_random_pins_keeps_pinned_positions():
    base = Layout(range(30))
    pins = {0, 7, 22}
    for seed in range(5):
        shuffled = Layout.random_pins(base, pins, np.random.default_rng(seed))
        assert all(shuffled.matrix[p] == p for p in pins)
        assert sorted(shuffled.matrix.tolist()) == list(range(30))
    assert base == Layout(range(30))


def test_shuffle_with_everything_pinned():
    layout = Layout(range(30))
    shuffle_free_positions(layout, range(30), np.random.default_rng(0))
    assert layout == Layout(range(30))


def test_from_string_does_not_register_characters():
    converter = Converter(QWERTY)
    with pytest.raises(ValueError):
        Layout.from_string(QWERTY[:-1] + '!', converter)
    assert '!' not in converter
    assert len(converter) == 30
