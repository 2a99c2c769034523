"""Tests for the 8 EMA bounce detector and the shared trend/MTF factors."""

import pytest

from composite_engine.contracts import Direction
from composite_engine.signals.base import DetectorTuning
from composite_engine.signals.ema_bounce import (
    EMA_BOUNCE_LONG,
    EMA_BOUNCE_SHORT,
    VOLUME_SATURATION,
    pulled_back_to_ema,
    volume_score,
)
from composite_engine.signals.factors import mtf_alignment_factor


@pytest.fixture
def pullback(make_snapshot, uptrend_bars):
    def build(**overrides):
        sections = {
            "price": {"current": 103.6, "high": 104.9, "low": 100.0},
            "volume": {"relative_to_avg": 1.2},
            "ema": {8: 103.7},
            "session": {"minutes_since_open": 45},
            "pattern": {"atr": 1.0, "raw_bars": uptrend_bars},
        }
        sections.update(overrides)
        return make_snapshot(**sections)

    return build


def test_long_pullback_passes_gate(pullback):
    snap = pullback()
    assert pulled_back_to_ema(snap, Direction.LONG)
    assert EMA_BOUNCE_LONG.passes_gate(snap)


def test_short_needs_downtrend(pullback):
    assert not EMA_BOUNCE_SHORT.passes_gate(pullback())


def test_short_pullback_in_downtrend(make_snapshot, downtrend_bars):
    snap = make_snapshot(
        price={"current": 96.4, "high": 100.0, "low": 95.1},
        ema={8: 96.3},
        pattern={"atr": 1.0, "raw_bars": downtrend_bars},
    )
    assert EMA_BOUNCE_SHORT.passes_gate(snap)
    assert not EMA_BOUNCE_LONG.passes_gate(snap)


def test_weak_trend_fails_with_strict_tuning(pullback):
    snap = pullback()
    assert EMA_BOUNCE_LONG.passes_gate(snap, DetectorTuning(trend_min_score=55))
    assert not EMA_BOUNCE_LONG.passes_gate(snap, DetectorTuning(trend_min_score=80))


def test_no_trend_no_trade(pullback):
    assert not EMA_BOUNCE_LONG.passes_gate(pullback(pattern={"atr": 1.0}))


def test_needs_pullback_or_patient_candle(pullback, uptrend_bars):
    no_touch = pullback(price={"current": 103.6, "high": 103.65})
    assert not EMA_BOUNCE_LONG.passes_gate(no_touch)

    flagged = pullback(
        price={"current": 103.6, "high": 103.65},
        pattern={"atr": 1.0, "raw_bars": uptrend_bars, "patient_candle": True},
    )
    assert EMA_BOUNCE_LONG.passes_gate(flagged)


def test_too_far_from_ema(pullback):
    assert not EMA_BOUNCE_LONG.passes_gate(pullback(ema={8: 105.0}))


def test_score_factors(pullback):
    score, factors = EMA_BOUNCE_LONG.score(pullback())
    assert factors["trend_strength"] == pytest.approx(75.0)
    assert factors["level_confluence"] > 20.0  # anchored on the 8 EMA
    assert factors["patience_candle"] == 0.0
    assert factors["volume_confirmation"] == 80.0
    assert factors["session_timing"] == 100.0
    assert factors["mtf_alignment"] == 0.0  # no 21 EMA
    assert 0.0 < score < 100.0


def test_volume_monotonic_below_saturation(make_snapshot):
    rvols = [0.2, 0.8, 1.2, 1.5, 1.6, 2.0, 2.4]
    scores = [volume_score(make_snapshot(volume={"relative_to_avg": r}), None) for r in rvols]
    assert scores == sorted(scores)
    heavy = volume_score(make_snapshot(volume={"relative_to_avg": VOLUME_SATURATION}), None)
    assert heavy < scores[-1]


def test_mtf_alignment_factor(make_snapshot):
    snap = make_snapshot(
        price={"current": 103.6},
        ema={8: 103.5, 21: 103.0, 50: 102.0},
        rsi={14: 55},
        mtf_rsi={"15m": 65},
    )
    assert mtf_alignment_factor(Direction.LONG)(snap, None) == 100.0
    # not stacked for shorts; RSI 55 is still healthy on the short side
    assert mtf_alignment_factor(Direction.SHORT)(snap, None) == pytest.approx(60.0)

    partial = make_snapshot(price={"current": 103.6}, ema={8: 103.5, 21: 103.0}, rsi={14: 55})
    assert mtf_alignment_factor(Direction.LONG)(partial, None) == pytest.approx(85.0)
