"""Tests for level confluence and King & Queen detection."""

import pytest

from composite_engine.features.levels import (
    Level,
    LevelType,
    build_levels,
    detect_king_queen,
    level_confluence,
)


def test_single_level_exact_touch():
    result = level_confluence(100.0, [Level(LevelType.VWAP, 100.0)], 0.5)
    assert result.count == 1
    assert result.score == pytest.approx(45.0)  # 1.5 * (15 + 15)


def test_tightness_scales_points():
    levels = [Level(LevelType.VWAP, 100.0), Level(LevelType.EMA_8, 100.25)]
    result = level_confluence(100.0, levels, 0.5)
    assert result.count == 2
    assert result.score == pytest.approx(72.0)  # 45 + 1.2 * (15 + 7.5)


def test_levels_outside_zone_are_ignored():
    levels = [Level(LevelType.VWAP, 100.0), Level(LevelType.PRIOR_DAY_HIGH, 101.0)]
    result = level_confluence(100.0, levels, 0.5)
    assert [lvl.type for lvl in result.touching] == [LevelType.VWAP]


def test_more_levels_never_score_lower():
    base = [Level(LevelType.VWAP, 100.1)]
    more = base + [Level(LevelType.ORB_HIGH, 100.2)]
    assert level_confluence(100.0, more, 0.5).score > level_confluence(100.0, base, 0.5).score


def test_confluence_capped_at_100():
    levels = [Level(t, 100.0) for t in LevelType]
    assert level_confluence(100.0, levels, 0.5).score == 100.0


def test_confluence_unknown_price():
    result = level_confluence(None, [Level(LevelType.VWAP, 100.0)], 0.5)
    assert result.score == 0.0
    assert result.count == 0
    assert level_confluence(100.0, [], 0.5).score == 0.0


def test_king_queen_detected():
    levels = [Level(LevelType.VWAP, 100.0), Level(LevelType.EMA_8, 100.2)]
    kq = detect_king_queen(100.0, levels, 0.5)
    assert kq.detected
    assert kq.king.type is LevelType.VWAP
    assert [q.type for q in kq.queens] == [LevelType.EMA_8]
    assert kq.strength == 100.0  # (150 + 96) / 200, capped


def test_king_queen_strength_dilutes_with_weak_queens():
    levels = [
        Level(LevelType.VWAP, 100.0),
        Level(LevelType.OPEN_PRICE, 100.1),
        Level(LevelType.PREMARKET_LOW, 99.9),
    ]
    kq = detect_king_queen(100.0, levels, 0.5)
    # (150 + 48 + 60) / 300
    assert kq.strength == pytest.approx(86.0)


def test_king_without_queens():
    levels = [Level(LevelType.VWAP, 100.0), Level(LevelType.EMA_21, 102.0)]
    kq = detect_king_queen(100.0, levels, 0.5)
    assert not kq.detected
    assert kq.king is not None
    assert kq.queens == ()


def test_no_vwap_no_king():
    kq = detect_king_queen(100.0, [Level(LevelType.EMA_8, 100.0)], 0.5)
    assert not kq.detected
    assert kq.king is None


def test_build_levels_sorted_by_distance(make_snapshot):
    snap = make_snapshot(
        price={"current": 100.0, "open": 98.0},
        vwap={"value": 100.3},
        ema={8: 100.1, 21: 99.0},
        pattern={"orb_high": 0.0, "prior_day_high": 105.0},
    )
    levels = build_levels(snap)
    assert [lvl.type for lvl in levels] == [
        LevelType.EMA_8,
        LevelType.VWAP,
        LevelType.EMA_21,
        LevelType.OPEN_PRICE,
        LevelType.PRIOR_DAY_HIGH,
    ]
