"""Tests for keep/drop selection."""

import random
from collections import Counter

from arena.modules.dice.selector import Selection, SelectionKind, dropped, select

KH = SelectionKind.KEEP_HIGHEST
KL = SelectionKind.KEEP_LOWEST
DH = SelectionKind.DROP_HIGHEST
DL = SelectionKind.DROP_LOWEST


def _roll_sets(count=100, seed=3):
    rng = random.Random(seed)
    for _ in range(count):
        size = rng.randint(1, 8)
        yield [rng.randint(1, 20) for _ in range(size)]


def test_no_selection_keeps_everything_in_order():
    assert select([5, 2, 9], None) == [5, 2, 9]
    assert dropped([5, 2, 9], None) == []


def test_keep_highest_and_lowest_sizes():
    for rolls in _roll_sets():
        for n in range(len(rolls) + 1):
            high = select(rolls, Selection(KH, n))
            low = select(rolls, Selection(KL, n))
            assert len(high) == n
            assert len(low) == n
            high_rest = dropped(rolls, Selection(KH, n))
            low_rest = dropped(rolls, Selection(KL, n))
            if high and high_rest:
                assert min(high) >= max(high_rest)
            if low and low_rest:
                assert max(low) <= min(low_rest)


def test_drop_reconstructs_multiset():
    for rolls in _roll_sets():
        ordered = sorted(rolls)
        for n in range(len(rolls) + 1):
            kept_dl = select(rolls, Selection(DL, n))
            assert Counter(kept_dl) + Counter(ordered[:n]) == Counter(rolls)
            kept_dh = select(rolls, Selection(DH, n))
            assert Counter(kept_dh) + Counter(ordered[len(ordered) - n:]) == Counter(rolls)


def test_oversized_n_never_raises():
    rolls = [3, 1, 4]
    assert sorted(select(rolls, Selection(KH, 10))) == [1, 3, 4]
    assert sorted(select(rolls, Selection(KL, 10))) == [1, 3, 4]
    assert select(rolls, Selection(DH, 10)) == []
    assert select(rolls, Selection(DL, 10)) == []


def test_zero_n():
    rolls = [3, 1, 4]
    assert select(rolls, Selection(KH, 0)) == []
    assert select(rolls, Selection(KL, 0)) == []
    assert sorted(select(rolls, Selection(DL, 0))) == [1, 3, 4]


def test_ties_are_kept_by_value():
    assert select([6, 6, 2], Selection(KH, 1)) == [6]
    assert select([6, 6, 2], Selection(DL, 1)) == [6, 6]


def test_selection_str():
    assert str(Selection(KH, 1)) == "kh1"
    assert str(Selection(DL, 2)) == "dl2"
