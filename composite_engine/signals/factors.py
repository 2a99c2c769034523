"""Shared building blocks for detector gates and score factors.

Every helper treats a missing input as "unknown" and returns the most
conservative value (False / 0) instead of substituting a default.
"""

from __future__ import annotations

from composite_engine.contracts import Direction, FeatureSnapshot
from composite_engine.features.levels import LevelType, build_levels, level_confluence
from composite_engine.features.patience import detect_patience_candle
from composite_engine.features.trend import (
    TrendDirection,
    TrendResult,
    detect_trend,
    direction_to_trend,
    is_trend_tradeable,
    mtf_alignment,
    trend_score,
)
from composite_engine.signals.base import DetectorTuning, FactorFn, clamp

ANCHOR_BONUS = 20.0
PATIENT_FLAG_SCORE = 50.0


def distance_percent(price: float | None, level: float | None) -> float | None:
    if price is None or level is None or price <= 0:
        return None
    return abs(price - level) / price * 100


def within_percent(price: float | None, level: float | None, percent: float) -> bool:
    distance = distance_percent(price, level)
    return distance is not None and distance <= percent


def snapshot_trend(snapshot: FeatureSnapshot) -> TrendResult:
    return detect_trend(
        snapshot.bars,
        orb_high=snapshot.level("orb_high"),
        orb_low=snapshot.level("orb_low"),
        premarket_high=snapshot.level("premarket_high"),
        premarket_low=snapshot.level("premarket_low"),
    )


def trend_opposes(trend: TrendResult, direction: Direction) -> bool:
    """A full trend the other way, not softened by a micro trend our way."""
    opposite = TrendDirection.DOWNTREND if direction is Direction.LONG else TrendDirection.UPTREND
    return trend.direction is opposite and not trend.is_micro_trend


def tradeable_in_direction(trend: TrendResult, direction: Direction, tuning: DetectorTuning) -> bool:
    return (
        is_trend_tradeable(trend, tuning.trend_min_score)
        and trend.bias is direction_to_trend(direction)
    )


def patient_flag(snapshot: FeatureSnapshot) -> bool:
    return snapshot.pattern.patient_candle is True


# ── Factor factories ───────────────────────────────────────────────────────

def anchored_level_factor(anchor: LevelType, proximity_percent: float) -> FactorFn:
    """Level confluence around price, with a bonus when `anchor` is touched."""

    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        price = snapshot.current_price
        result = level_confluence(price, build_levels(snapshot), proximity_percent)
        score = result.score
        if any(lvl.type is anchor for lvl in result.touching):
            score += ANCHOR_BONUS
        return clamp(score)

    return evaluate


def trend_factor(direction: Direction, require_tradeable: bool = True, chop_score: float = 0.0) -> FactorFn:
    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        trend = snapshot_trend(snapshot)
        if trend.bias is TrendDirection.CHOP:
            return chop_score
        if require_tradeable and not is_trend_tradeable(trend, tuning.trend_min_score):
            return 0.0
        return trend_score(trend, direction, snapshot.mtf_rsi)

    return evaluate


def patience_factor(direction: Direction, no_candle_score: float = 0.0, anchor: str | None = None) -> FactorFn:
    """Patience candle score; `no_candle_score` applies only when the bars were
    actually inspected and nothing qualified.

    `anchor` names a snapshot level (vwap, ema8, orb) the candle should sit near.
    """

    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        atr = snapshot.atr
        bars = snapshot.bars
        reference = _anchor_price(snapshot, direction, anchor)
        candle = detect_patience_candle(bars, atr, direction, reference_level=reference)
        if candle.detected:
            return candle.score
        if patient_flag(snapshot):
            return PATIENT_FLAG_SCORE
        if atr is None or len(bars) < 2:
            return 0.0
        return no_candle_score

    return evaluate


def _anchor_price(snapshot: FeatureSnapshot, direction: Direction, anchor: str | None) -> float | None:
    if anchor == "vwap":
        return snapshot.vwap_value
    if anchor == "ema8":
        return snapshot.ma(8)
    if anchor == "orb":
        return snapshot.level("orb_high" if direction is Direction.LONG else "orb_low")
    return None


def mtf_alignment_factor(direction: Direction) -> FactorFn:
    """EMA stack order plus a healthy RSI for the trade's side."""

    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        price = snapshot.current_price
        ema8, ema21, ema50 = snapshot.ma(8), snapshot.ma(21), snapshot.ma(50)
        if price is None or ema8 is None or ema21 is None:
            return 0.0

        score = 50.0
        if direction is Direction.LONG:
            stacked = price > ema8 > ema21
            full = stacked and ema50 is not None and ema21 > ema50
        else:
            stacked = price < ema8 < ema21
            full = stacked and ema50 is not None and ema21 < ema50
        if stacked:
            score += 25
        if full:
            score += 15

        rsi = snapshot.rsi_value(14)
        if rsi is not None:
            healthy = 40 < rsi < 70 if direction is Direction.LONG else 30 < rsi < 60
            if healthy:
                score += 10

        wanted = direction_to_trend(direction)
        aligned = sum(1 for d in mtf_alignment(snapshot.mtf_rsi).values() if d is wanted)
        return clamp(score + 5 * aligned)

    return evaluate
