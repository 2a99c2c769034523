"""King & Queen detector.

VWAP is the king. When another key level (a queen) stacks on top of it and
price is sitting in that cluster, the zone tends to hold.
"""

from __future__ import annotations

from composite_engine.contracts import DetectorType, Direction, FeatureSnapshot
from composite_engine.features.levels import build_levels, detect_king_queen
from composite_engine.features.trend import TrendDirection
from composite_engine.signals.base import DetectorTuning, OpportunityDetector, ScoreFactor, clamp
from composite_engine.signals.factors import (
    patience_factor,
    snapshot_trend,
    trend_factor,
    trend_opposes,
    within_percent,
)

MIN_MINUTES = 10
EXTENDED_FROM_VWAP = 0.005  # beyond this, only a full trend justifies the trade
VOLUME_SATURATION = 2.5


def _king_queen(snapshot: FeatureSnapshot, tuning: DetectorTuning):
    return detect_king_queen(snapshot.current_price, build_levels(snapshot), tuning.vwap_proximity_percent)


def _gate(direction: Direction):
    def gate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> bool:
        price, vwap = snapshot.current_price, snapshot.vwap_value
        if price is None or vwap is None:
            return False

        minutes = snapshot.minutes_since_open
        if minutes is None or minutes < MIN_MINUTES:
            return False

        if not within_percent(price, vwap, tuning.vwap_proximity_percent):
            return False
        if not _king_queen(snapshot, tuning).detected:
            return False

        trend = snapshot_trend(snapshot)
        if trend_opposes(trend, direction):
            return False

        if direction is Direction.LONG and price > vwap * (1 + EXTENDED_FROM_VWAP):
            return trend.direction is TrendDirection.UPTREND
        if direction is Direction.SHORT and price < vwap * (1 - EXTENDED_FROM_VWAP):
            return trend.direction is TrendDirection.DOWNTREND
        return True

    return gate


def level_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    kq = _king_queen(snapshot, tuning)
    if not kq.detected:
        return 0.0
    score = 50 + min(40, len(kq.queens) * 15) + kq.strength * 0.1
    return clamp(score)


def volume_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    """Non-decreasing up to VOLUME_SATURATION; heavier volume tends to break the zone."""
    rvol = snapshot.relative_volume
    if rvol is None:
        return 0.0
    if rvol > VOLUME_SATURATION:
        return 75.0
    if rvol >= 1.0:
        return 90.0
    return 60.0


def session_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    minutes = snapshot.minutes_since_open
    if minutes is None or minutes < 0:
        return 0.0
    if minutes < MIN_MINUTES:
        return 30.0
    if minutes <= 90:
        return 90.0
    if minutes <= 270:
        return 100.0  # midday suits K&Q best
    if minutes <= 330:
        return 70.0
    return 30.0


def build_king_queen(direction: Direction) -> OpportunityDetector:
    return OpportunityDetector(
        type=DetectorType.KCU_KING_QUEEN,
        direction=direction,
        gate=_gate(direction),
        factors=(
            ScoreFactor("level_confluence", 0.35, level_score),
            ScoreFactor("trend_strength", 0.25, trend_factor(direction, require_tradeable=False, chop_score=20.0)),
            ScoreFactor("patience_candle", 0.2, patience_factor(direction, no_candle_score=20.0, anchor="vwap")),
            ScoreFactor("volume_confirmation", 0.1, volume_score),
            ScoreFactor("session_timing", 0.1, session_score),
        ),
        ideal_timeframe="15m",
        description="VWAP plus stacked key levels",
    )


KING_QUEEN_LONG = build_king_queen(Direction.LONG)
KING_QUEEN_SHORT = build_king_queen(Direction.SHORT)
