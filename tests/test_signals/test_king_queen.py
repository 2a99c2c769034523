"""Tests for the King & Queen detector."""

import pytest

from composite_engine.signals.base import DetectorTuning
from composite_engine.signals.king_queen import (
    KING_QUEEN_LONG,
    KING_QUEEN_SHORT,
    VOLUME_SATURATION,
    level_score,
    session_score,
    volume_score,
)

WIDE = DetectorTuning(vwap_proximity_percent=0.7)


def test_stacked_vwap_passes_both_sides_in_chop(orb_snapshot):
    assert KING_QUEEN_LONG.passes_gate(orb_snapshot)
    assert KING_QUEEN_SHORT.passes_gate(orb_snapshot)


def test_score_breakdown(orb_snapshot):
    score, factors = KING_QUEEN_LONG.score(orb_snapshot)
    assert factors["level_confluence"] == pytest.approx(90.0)  # two queens, full strength
    assert factors["trend_strength"] == 20.0  # chop
    assert factors["patience_candle"] == 0.0
    assert factors["volume_confirmation"] == 90.0
    assert factors["session_timing"] == 90.0
    assert score == pytest.approx(54.5)


def test_no_queen_no_setup(make_snapshot):
    snap = make_snapshot(
        price={"current": 100.0},
        vwap={"value": 100.1},
        ema={8: 102.0},
        session={"minutes_since_open": 60},
    )
    assert not KING_QUEEN_LONG.passes_gate(snap)
    assert level_score(snap, DetectorTuning()) == 0.0


def test_too_early(orb_snapshot):
    session = orb_snapshot.session.model_copy(update={"minutes_since_open": 5})
    early = orb_snapshot.model_copy(update={"session": session})
    assert not KING_QUEEN_LONG.passes_gate(early)


def test_extended_long_needs_uptrend(make_snapshot, uptrend_bars):
    sections = {
        "price": {"current": 102.0},
        "vwap": {"value": 101.4},
        "ema": {8: 101.5},
        "session": {"minutes_since_open": 60},
    }
    chop = make_snapshot(**sections)
    assert not KING_QUEEN_LONG.passes_gate(chop, WIDE)

    trending = make_snapshot(**sections, pattern={"raw_bars": uptrend_bars})
    assert KING_QUEEN_LONG.passes_gate(trending, WIDE)


def test_opposing_trend_blocks(make_snapshot, downtrend_bars):
    snap = make_snapshot(
        price={"current": 100.0},
        vwap={"value": 100.1},
        ema={8: 100.05},
        session={"minutes_since_open": 60},
        pattern={"raw_bars": downtrend_bars},
    )
    assert not KING_QUEEN_LONG.passes_gate(snap)
    assert KING_QUEEN_SHORT.passes_gate(snap)


@pytest.mark.parametrize("rvol, expected", [(0.5, 60.0), (1.0, 90.0), (2.5, 90.0), (3.0, 75.0)])
def test_volume_score(make_snapshot, rvol, expected):
    assert volume_score(make_snapshot(volume={"relative_to_avg": rvol}), None) == expected


def test_volume_monotonic_below_saturation(make_snapshot):
    rvols = [0.2, 0.9, 1.0, 1.8, VOLUME_SATURATION]
    scores = [volume_score(make_snapshot(volume={"relative_to_avg": r}), None) for r in rvols]
    assert scores == sorted(scores)
    heavy = volume_score(make_snapshot(volume={"relative_to_avg": VOLUME_SATURATION + 0.5}), None)
    assert heavy < scores[-1]


@pytest.mark.parametrize("minutes, expected", [
    (5, 30.0), (60, 90.0), (120, 100.0), (300, 70.0), (380, 30.0),
])
def test_session_score(make_snapshot, minutes, expected):
    assert session_score(make_snapshot(session={"minutes_since_open": minutes}), None) == expected
