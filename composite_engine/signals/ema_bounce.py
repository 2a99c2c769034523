"""8 EMA bounce detector.

In a tradeable trend, price pulls back into the 8 EMA and holds it. A
pullback is either a wick through the EMA that closes back on the trend
side, or a patience candle sitting on it.
"""

from __future__ import annotations

from composite_engine.contracts import DetectorType, Direction, FeatureSnapshot
from composite_engine.features.levels import LevelType
from composite_engine.signals.base import DetectorTuning, OpportunityDetector, ScoreFactor
from composite_engine.signals.factors import (
    anchored_level_factor,
    mtf_alignment_factor,
    patience_factor,
    patient_flag,
    snapshot_trend,
    tradeable_in_direction,
    trend_factor,
    within_percent,
)

EMA_PROXIMITY_PERCENT = 0.5
PULLBACK_TOLERANCE = 0.003
VOLUME_SATURATION = 2.5


def pulled_back_to_ema(snapshot: FeatureSnapshot, direction: Direction) -> bool:
    price, ema8 = snapshot.current_price, snapshot.ma(8)
    if price is None or ema8 is None:
        return False
    if direction is Direction.LONG:
        high = snapshot.price.high
        return high is not None and high > ema8 and price <= ema8 * (1 + PULLBACK_TOLERANCE)
    low = snapshot.price.low
    return low is not None and low < ema8 and price >= ema8 * (1 - PULLBACK_TOLERANCE)


def _gate(direction: Direction):
    def gate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> bool:
        price, ema8 = snapshot.current_price, snapshot.ma(8)
        if price is None or ema8 is None:
            return False

        if not tradeable_in_direction(snapshot_trend(snapshot), direction, tuning):
            return False

        if not within_percent(price, ema8, EMA_PROXIMITY_PERCENT):
            return False

        return pulled_back_to_ema(snapshot, direction) or patient_flag(snapshot)

    return gate


def volume_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    """Healthy pullback volume. Non-decreasing up to VOLUME_SATURATION, where
    heavy volume starts to look climactic."""
    rvol = snapshot.relative_volume
    if rvol is None:
        return 0.0
    if rvol >= VOLUME_SATURATION:
        return 70.0
    if rvol > 1.5:
        return 90.0
    if rvol >= 0.8:
        return 80.0
    return 50.0


def session_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    minutes = snapshot.minutes_since_open
    if minutes is None or minutes < 0:
        return 0.0
    if minutes < 30:
        return 50.0  # trend not established yet
    if minutes <= 90:
        return 100.0
    if minutes <= 210:
        return 80.0
    if minutes <= 330:
        return 70.0
    return 30.0


def build_ema_bounce(direction: Direction) -> OpportunityDetector:
    return OpportunityDetector(
        type=DetectorType.KCU_EMA_BOUNCE,
        direction=direction,
        gate=_gate(direction),
        factors=(
            ScoreFactor("level_confluence", 0.25, anchored_level_factor(LevelType.EMA_8, EMA_PROXIMITY_PERCENT)),
            ScoreFactor("trend_strength", 0.25, trend_factor(direction)),
            ScoreFactor("patience_candle", 0.25, patience_factor(direction, anchor="ema8")),
            ScoreFactor("volume_confirmation", 0.1, volume_score),
            ScoreFactor("session_timing", 0.05, session_score),
            ScoreFactor("mtf_alignment", 0.1, mtf_alignment_factor(direction)),
        ),
        ideal_timeframe="5m",
        description="Pullback to the 8 EMA in a confirmed trend",
    )


EMA_BOUNCE_LONG = build_ema_bounce(Direction.LONG)
EMA_BOUNCE_SHORT = build_ema_bounce(Direction.SHORT)
