"""VWAP standard detector.

After the first half hour, price trading into the VWAP zone. Longs need the
trend not against them. Shorts need a tradeable downtrend plus a rejection
from above VWAP or a patience candle. The zone width comes from the active
profile.
"""

from __future__ import annotations

from composite_engine.contracts import DetectorType, Direction, FeatureSnapshot
from composite_engine.signals.base import DetectorTuning, OpportunityDetector, ScoreFactor, clamp
from composite_engine.signals.factors import (
    distance_percent,
    patience_factor,
    patient_flag,
    snapshot_trend,
    tradeable_in_direction,
    trend_factor,
    trend_opposes,
    within_percent,
)

MIN_MINUTES = 30
APPROACH_TOLERANCE = 0.003
HOLD_TOLERANCE = 0.002
NEARBY_LEVEL_PERCENT = 0.5


def approaching_vwap(snapshot: FeatureSnapshot, direction: Direction) -> bool:
    """Longs: dipped under VWAP and reclaimed it. Shorts: the mirror."""
    price, vwap = snapshot.current_price, snapshot.vwap_value
    if price is None or vwap is None:
        return False
    if direction is Direction.LONG:
        low = snapshot.price.low
        return low is not None and low < vwap and price >= vwap * (1 - APPROACH_TOLERANCE)
    high = snapshot.price.high
    return high is not None and high > vwap and price <= vwap * (1 + APPROACH_TOLERANCE)


def holding_vwap(price: float, vwap: float) -> bool:
    """Long side only: at or just under VWAP."""
    return price >= vwap * (1 - HOLD_TOLERANCE)


def _gate(direction: Direction):
    def gate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> bool:
        price, vwap = snapshot.current_price, snapshot.vwap_value
        if price is None or vwap is None:
            return False

        minutes = snapshot.minutes_since_open
        if minutes is None or minutes < MIN_MINUTES:
            return False

        trend = snapshot_trend(snapshot)
        if direction is Direction.SHORT:
            if not tradeable_in_direction(trend, direction, tuning):
                return False
        elif trend_opposes(trend, direction):
            return False

        if not within_percent(price, vwap, tuning.vwap_proximity_percent):
            return False

        if approaching_vwap(snapshot, direction) or patient_flag(snapshot):
            return True
        return direction is Direction.LONG and holding_vwap(price, vwap)

    return gate


def level_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    """Tightness inside the VWAP zone plus nearby EMAs and opening range."""
    price = snapshot.current_price
    distance = distance_percent(price, snapshot.vwap_value)
    if distance is None:
        return 0.0

    zone = tuning.vwap_proximity_percent
    score = 0.0
    if distance <= zone * 0.4:
        score += 60
    elif distance <= zone:
        score += 45
    elif distance <= zone * 1.4:
        score += 30

    if within_percent(price, snapshot.ma(8), NEARBY_LEVEL_PERCENT):
        score += 20
    if within_percent(price, snapshot.ma(21), NEARBY_LEVEL_PERCENT):
        score += 15
    if within_percent(price, snapshot.level("orb_high"), 0.3):
        score += 15
    if within_percent(price, snapshot.level("orb_low"), 0.3):
        score += 15

    return clamp(score)


def volume_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    """Non-decreasing up to 2x; heavier volume is fine but not ideal."""
    rvol = snapshot.relative_volume
    if rvol is None:
        return 0.0
    if rvol > 2.0:
        return 70.0
    if rvol >= 0.8:
        return 85.0
    return 50.0


def session_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    minutes = snapshot.minutes_since_open
    if minutes is None or minutes < 0:
        return 0.0
    if minutes < MIN_MINUTES:
        return 20.0
    if minutes <= 180:
        return 100.0
    if minutes <= 300:
        return 80.0
    return 40.0


def build_vwap_standard(direction: Direction) -> OpportunityDetector:
    return OpportunityDetector(
        type=DetectorType.KCU_VWAP_STANDARD,
        direction=direction,
        gate=_gate(direction),
        factors=(
            ScoreFactor("level_confluence", 0.3, level_score),
            ScoreFactor("trend_strength", 0.25, trend_factor(direction)),
            ScoreFactor("patience_candle", 0.25, patience_factor(direction, anchor="vwap")),
            ScoreFactor("volume_confirmation", 0.1, volume_score),
            ScoreFactor("session_timing", 0.1, session_score),
        ),
        ideal_timeframe="5m",
        description="Trade into and off VWAP",
    )


VWAP_STANDARD_LONG = build_vwap_standard(Direction.LONG)
VWAP_STANDARD_SHORT = build_vwap_standard(Direction.SHORT)
