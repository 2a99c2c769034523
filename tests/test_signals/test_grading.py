"""Tests for score → grade mapping."""

import pytest

from composite_engine.signals.grading import Tier, grade_score


@pytest.mark.parametrize("score, tier", [
    (100.0, Tier.A_PLUS),
    (90.0, Tier.A_PLUS),
    (89.99, Tier.A),
    (80.0, Tier.A),
    (79.99, Tier.B_PLUS),
    (70.0, Tier.B_PLUS),
    (60.0, Tier.B),
    (59.99, Tier.C),
    (50.0, Tier.C),
    (49.99, Tier.D),
    (0.0, Tier.D),
])
def test_breakpoints_are_inclusive(score, tier):
    assert grade_score(score).tier is tier


def test_buckets_and_sizing():
    assert grade_score(95).bucket == "A"
    assert grade_score(85).sizing == "full size"
    assert grade_score(72).sizing == "reduced size"
    assert grade_score(65).sizing == "half size"
    assert grade_score(65).bucket == "B"
    assert grade_score(40).bucket == "C"


def test_tradeable():
    assert grade_score(60).tradeable
    assert not grade_score(55).tradeable
    assert not grade_score(10).tradeable


def test_grade_is_monotonic():
    order = [Tier.D, Tier.C, Tier.B, Tier.B_PLUS, Tier.A, Tier.A_PLUS]
    ranks = [order.index(grade_score(s).tier) for s in range(0, 101)]
    assert ranks == sorted(ranks)
