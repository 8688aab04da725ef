import pytest

from keyboard import Finger
from patterns import (BIGRAM_TABLE, TRIGRAM_TABLE, BigramPattern, TrigramPattern,
                      classify_bigram, classify_trigram, mirror_finger, trigram_index,
                      trigram_weight_table)
from config import Weights

LP, LR, LM, LI, RI, RM, RR, RP = range(8)


def test_table_sizes():
    assert BIGRAM_TABLE.shape == (64,)
    assert TRIGRAM_TABLE.shape == (512,)
    assert TrigramPattern.INVALID not in set(TRIGRAM_TABLE.tolist())


@pytest.mark.parametrize("fingers, expected", [
    ((LP, RI, LM), TrigramPattern.ALTERNATE),
    ((LM, RI, LM), TrigramPattern.ALTERNATE_SFS),
    ((RM, LI, RR), TrigramPattern.ALTERNATE),
    ((LM, LM, LM), TrigramPattern.SFT),
    ((LM, LM, LI), TrigramPattern.BAD_SFB),
    ((LP, LI, LM), TrigramPattern.REDIRECT),
    ((LM, LI, LM), TrigramPattern.REDIRECT_SFS),
    ((LP, LR, LP), TrigramPattern.BAD_REDIRECT_SFS),
    ((RP, RR, RP), TrigramPattern.BAD_REDIRECT_SFS),
    ((LP, LR, LM), TrigramPattern.ONEHAND),
    ((RI, RM, RP), TrigramPattern.ONEHAND),
    ((LR, LM, RI), TrigramPattern.INROLL),
    ((LM, LR, RI), TrigramPattern.OUTROLL),
    ((RI, LR, LM), TrigramPattern.INROLL),
    ((RI, LM, LR), TrigramPattern.OUTROLL),
    ((RR, RM, LI), TrigramPattern.INROLL),
    ((RM, RR, LI), TrigramPattern.OUTROLL),
    ((LI, RM, RI), TrigramPattern.INROLL),
    ((LI, RI, RM), TrigramPattern.OUTROLL),
    ((LI, LI, RI), TrigramPattern.SFB),
    ((RI, LM, LM), TrigramPattern.SFB),
])
def test_trigram_rules(fingers, expected):
    assert classify_trigram(*fingers) == expected
    assert TRIGRAM_TABLE[trigram_index(*fingers)] == expected


def test_unmapped_finger_is_invalid():
    assert classify_trigram(-1, LI, RI) == TrigramPattern.INVALID


def test_trigram_table_mirror_symmetry():
    for f0 in range(8):
        for f1 in range(8):
            for f2 in range(8):
                mirrored = trigram_index(mirror_finger(f0), mirror_finger(f1), mirror_finger(f2))
                assert TRIGRAM_TABLE[trigram_index(f0, f1, f2)] == TRIGRAM_TABLE[mirrored]


def test_bigram_rules():
    assert classify_bigram(LI, LI) == BigramPattern.SAME_FINGER_BIGRAM
    assert classify_bigram(LM, LI) == BigramPattern.LATERAL_STRETCH
    assert classify_bigram(RI, RM) == BigramPattern.LATERAL_STRETCH
    assert classify_bigram(LP, LR) == BigramPattern.SCISSOR
    assert classify_bigram(RR, RM) == BigramPattern.SCISSOR
    assert classify_bigram(LI, RI) == BigramPattern.OTHER
    assert classify_bigram(LP, LM) == BigramPattern.OTHER


def test_weight_table_signs():
    table = trigram_weight_table(Weights())
    assert table[trigram_index(LR, LM, RI)] == pytest.approx(1.6)
    assert table[trigram_index(LP, LI, LM)] == pytest.approx(-1.5)
    assert table[trigram_index(LP, LR, LP)] == pytest.approx(-6.0)
    assert table[trigram_index(LM, LM, LM)] == 0.0
    assert table[trigram_index(LI, LI, RI)] == 0.0


def test_finger_hands():
    assert Finger.LI.hand != Finger.RI.hand
    assert Finger.LP.finger_class == 'pinky'
    assert Finger.RI.finger_class == 'index'
