"""Tests for per-style scoring."""

import pytest

from composite_engine.contracts import TradeStyle
from composite_engine.signals.style import (
    SessionWindow,
    score_styles,
    session_window,
    style_modifiers,
)


@pytest.mark.parametrize("session, expected", [
    ({"minutes_since_open": 10}, SessionWindow.OPENING_DRIVE),
    ({"minutes_since_open": 30}, SessionWindow.MID_MORNING),
    ({"minutes_since_open": 150}, SessionWindow.LUNCH_CHOP),
    ({"minutes_since_open": 360}, SessionWindow.POWER_HOUR),
    ({"minutes_since_open": 400}, SessionWindow.AFTER_HOURS),
    ({"minutes_since_open": -20}, SessionWindow.PRE_MARKET),
    ({"minutes_since_open": -20, "is_regular_hours": False}, SessionWindow.PRE_MARKET),
    ({"is_regular_hours": False}, SessionWindow.AFTER_HOURS),
    ({}, None),
])
def test_session_window(make_snapshot, session, expected):
    assert session_window(make_snapshot(session=session)) is expected


def test_no_context_is_neutral(make_snapshot):
    assert style_modifiers(make_snapshot()) == {
        TradeStyle.SCALP: 1.0, TradeStyle.DAY: 1.0, TradeStyle.SWING: 1.0,
    }
    result = score_styles(make_snapshot(), 70.0)
    assert result.scores == {TradeStyle.SCALP: 70.0, TradeStyle.DAY: 70.0, TradeStyle.SWING: 70.0}
    assert result.recommended is TradeStyle.SCALP  # ties go to the shortest hold


def test_opening_drive_favours_scalps(orb_snapshot):
    mods = style_modifiers(orb_snapshot)
    assert mods[TradeStyle.SCALP] == 1.5  # clamped
    assert mods[TradeStyle.SWING] == pytest.approx(0.66)


def test_lunch_chop_favours_swings(make_snapshot):
    result = score_styles(make_snapshot(session={"minutes_since_open": 150}), 60.0)
    assert result.scores[TradeStyle.SCALP] == pytest.approx(33.0)
    assert result.scores[TradeStyle.DAY] == pytest.approx(45.0)
    assert result.recommended is TradeStyle.SWING
    assert result.recommended_score == 60.0


def test_aligned_timeframes_and_high_volatility_favour_swings(make_snapshot):
    snap = make_snapshot(
        price={"current": 50.0},
        pattern={"atr": 1.5},
        mtf_rsi={"5m": 65, "15m": 70, "60m": 68},
    )
    mods = style_modifiers(snap)
    assert mods[TradeStyle.SWING] == pytest.approx(1.5)  # 1.25 * 1.3, clamped
    assert mods[TradeStyle.SCALP] == pytest.approx(0.7 * 1.05)
    assert score_styles(snap, 60.0).recommended is TradeStyle.SWING


def test_scores_stay_in_range(orb_snapshot):
    result = score_styles(orb_snapshot, 95.0)
    assert all(0.0 <= v <= 100.0 for v in result.scores.values())
