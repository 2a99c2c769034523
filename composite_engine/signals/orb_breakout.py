"""Opening range breakout detector.

Fires once price clears the first-15-minute range by a small buffer, with a
range that is neither too tight nor too wide for the day's ATR and at least
some participation.
"""

from __future__ import annotations

import logging

from composite_engine.contracts import DetectorType, Direction, FeatureSnapshot
from composite_engine.features.levels import LevelType
from composite_engine.signals.base import DetectorTuning, OpportunityDetector, ScoreFactor, clamp
from composite_engine.signals.factors import anchored_level_factor, patience_factor

logger = logging.getLogger(__name__)

GATE_BREAK_BUFFER = 0.001  # 0.1% beyond the range
STRONG_BREAK_BUFFER = 0.002
MIN_MINUTES = 15
MIN_RANGE_ATR = 0.5
MAX_RANGE_ATR = 2.5
MIN_RVOL = 0.8
LEVEL_PROXIMITY_PERCENT = 0.5


def broke_range(price: float, orb_high: float, orb_low: float, direction: Direction, buffer: float) -> bool:
    if direction is Direction.LONG:
        return price > orb_high * (1 + buffer)
    return price < orb_low * (1 - buffer)


def _gate(direction: Direction):
    def gate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> bool:
        price = snapshot.current_price
        orb_high = snapshot.level("orb_high")
        orb_low = snapshot.level("orb_low")
        if price is None or orb_high is None or orb_low is None:
            return False

        minutes = snapshot.minutes_since_open
        if minutes is None or minutes < MIN_MINUTES:
            return False

        if not broke_range(price, orb_high, orb_low, direction, GATE_BREAK_BUFFER):
            return False

        atr = snapshot.atr
        if atr is None:
            return False
        range_to_atr = (orb_high - orb_low) / atr
        if not MIN_RANGE_ATR <= range_to_atr <= MAX_RANGE_ATR:
            return False

        rvol = snapshot.relative_volume
        if rvol is None or rvol < MIN_RVOL:
            return False

        logger.debug(
            "%s ORB %s break: price=%.2f range=%.2f-%.2f range/atr=%.2f rvol=%.2f",
            snapshot.symbol, direction.value, price, orb_low, orb_high, range_to_atr, rvol,
        )
        return True

    return gate


def _break_strength(direction: Direction):
    """Base 50, +30 for a decisive break, +20 for closing at the session extreme."""

    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        price = snapshot.current_price
        orb_high = snapshot.level("orb_high")
        orb_low = snapshot.level("orb_low")
        if price is None or orb_high is None or orb_low is None:
            return 0.0

        score = 50.0
        if broke_range(price, orb_high, orb_low, direction, STRONG_BREAK_BUFFER):
            score += 30

        high, low = snapshot.price.high, snapshot.price.low
        if high is not None and low is not None and high > low:
            position = (price - low) / (high - low)
            if direction is Direction.LONG and position > 0.7:
                score += 20
            elif direction is Direction.SHORT and position < 0.3:
                score += 20

        return clamp(score)

    return evaluate


def volume_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    """Volume is critical for breakouts. Non-decreasing, saturates at 2x."""
    rvol = snapshot.relative_volume
    if rvol is None:
        return 0.0
    if rvol >= 2.0:
        return 100.0
    if rvol >= 1.5:
        return 85.0
    if rvol >= 1.2:
        return 70.0
    if rvol >= 1.0:
        return 55.0
    return 30.0


def session_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    minutes = snapshot.minutes_since_open
    if minutes is None or minutes < MIN_MINUTES:
        return 0.0
    if minutes <= 30:
        return 100.0  # just after the range forms
    if minutes <= 60:
        return 90.0
    if minutes <= 90:
        return 70.0
    return 40.0


def build_orb_breakout(direction: Direction) -> OpportunityDetector:
    anchor = LevelType.ORB_HIGH if direction is Direction.LONG else LevelType.ORB_LOW
    return OpportunityDetector(
        type=DetectorType.KCU_ORB_BREAKOUT,
        direction=direction,
        gate=_gate(direction),
        factors=(
            ScoreFactor("level_confluence", 0.25, anchored_level_factor(anchor, LEVEL_PROXIMITY_PERCENT)),
            ScoreFactor("trend_strength", 0.25, _break_strength(direction)),
            ScoreFactor("patience_candle", 0.2, patience_factor(direction, no_candle_score=30.0, anchor="orb")),
            ScoreFactor("volume_confirmation", 0.2, volume_score),
            ScoreFactor("session_timing", 0.1, session_score),
        ),
        ideal_timeframe="5m",
        description="Opening range breakout",
    )


ORB_BREAKOUT_LONG = build_orb_breakout(Direction.LONG)
ORB_BREAKOUT_SHORT = build_orb_breakout(Direction.SHORT)
