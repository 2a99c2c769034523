"""Per-style scoring: how well a setup suits a scalp, a day trade or a swing.

The detector score is multiplied by a context modifier per style (time of
day, volatility, volume, key-level proximity, RSI extremes, timeframe
alignment, runway to the close). Inputs the snapshot lacks leave the
modifiers untouched. The best-scoring style is the recommendation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from composite_engine.contracts import FeatureSnapshot, TradeStyle
from composite_engine.features.trend import TrendDirection, mtf_alignment
from composite_engine.signals.base import clamp
from composite_engine.signals.factors import within_percent

REGULAR_SESSION_MINUTES = 390
MODIFIER_BOUNDS = (0.5, 1.5)
KEY_LEVEL_PERCENT = 0.25
VOLUME_SPIKE = 1.5


class SessionWindow(str, Enum):
    PRE_MARKET = "pre_market"
    OPENING_DRIVE = "opening_drive"
    MID_MORNING = "mid_morning"
    LATE_MORNING = "late_morning"
    LUNCH_CHOP = "lunch_chop"
    EARLY_AFTERNOON = "early_afternoon"
    AFTERNOON = "afternoon"
    POWER_HOUR = "power_hour"
    AFTER_HOURS = "after_hours"


# (scalp, day, swing)
WINDOW_MODIFIERS: dict[SessionWindow, tuple[float, float, float]] = {
    SessionWindow.PRE_MARKET: (0.6, 0.7, 0.9),
    SessionWindow.OPENING_DRIVE: (1.35, 1.15, 0.75),
    SessionWindow.MID_MORNING: (1.1, 1.15, 1.0),
    SessionWindow.LATE_MORNING: (1.0, 1.1, 1.05),
    SessionWindow.LUNCH_CHOP: (0.55, 0.75, 1.0),
    SessionWindow.EARLY_AFTERNOON: (0.85, 1.0, 1.05),
    SessionWindow.AFTERNOON: (0.95, 1.1, 1.0),
    SessionWindow.POWER_HOUR: (1.25, 1.2, 0.85),
    SessionWindow.AFTER_HOURS: (0.5, 0.6, 0.9),
}

# Upper bound of each regular-session window, in minutes since the open.
WINDOW_ENDS: tuple[tuple[float, SessionWindow], ...] = (
    (30, SessionWindow.OPENING_DRIVE),
    (90, SessionWindow.MID_MORNING),
    (120, SessionWindow.LATE_MORNING),
    (240, SessionWindow.LUNCH_CHOP),
    (300, SessionWindow.EARLY_AFTERNOON),
    (330, SessionWindow.AFTERNOON),
    (REGULAR_SESSION_MINUTES, SessionWindow.POWER_HOUR),
)


@dataclass(frozen=True)
class StyleScores:
    scores: dict[TradeStyle, float]
    recommended: TradeStyle

    @property
    def recommended_score(self) -> float:
        return self.scores[self.recommended]


def session_window(snapshot: FeatureSnapshot) -> SessionWindow | None:
    minutes = snapshot.minutes_since_open
    if snapshot.session.is_regular_hours is False:
        if minutes is not None and minutes < 0:
            return SessionWindow.PRE_MARKET
        return SessionWindow.AFTER_HOURS
    if minutes is None:
        return None
    if minutes < 0:
        return SessionWindow.PRE_MARKET
    for end, window in WINDOW_ENDS:
        if minutes < end:
            return window
    return SessionWindow.AFTER_HOURS


def _timeframe_alignment(snapshot: FeatureSnapshot) -> float | None:
    """Share (0-100) of timeframes leaning the same way; None without data."""
    directions = list(mtf_alignment(snapshot.mtf_rsi).values())
    if not directions:
        return None
    up = directions.count(TrendDirection.UPTREND)
    down = directions.count(TrendDirection.DOWNTREND)
    return max(up, down) / len(directions) * 100


def style_modifiers(snapshot: FeatureSnapshot) -> dict[TradeStyle, float]:
    scalp = day = swing = 1.0

    def apply(mods: tuple[float, float, float]) -> None:
        nonlocal scalp, day, swing
        scalp *= mods[0]
        day *= mods[1]
        swing *= mods[2]

    window = session_window(snapshot)
    if window is not None:
        apply(WINDOW_MODIFIERS[window])

    price, atr = snapshot.current_price, snapshot.atr
    if price is not None and atr is not None:
        atr_pct = atr / price * 100
        if atr_pct > 2.5:
            apply((0.7, 1.05, 1.25))
        elif atr_pct > 1.5:
            apply((0.9, 1.1, 1.15))
        elif atr_pct < 0.5:
            apply((1.15, 0.85, 0.65))
        elif atr_pct < 1.0:
            apply((1.1, 0.95, 0.8))

    rvol = snapshot.relative_volume
    if rvol is not None:
        if rvol > VOLUME_SPIKE:
            apply((1.3, 1.15, 1.0))
        elif rvol < 0.5:
            apply((0.6, 0.75, 0.95))
        elif rvol < 0.75:
            apply((0.8, 0.9, 0.98))

    levels = (snapshot.vwap_value, snapshot.level("orb_high"), snapshot.level("orb_low"))
    if any(within_percent(price, lvl, KEY_LEVEL_PERCENT) for lvl in levels):
        apply((1.25, 1.15, 1.1))

    rsi = snapshot.rsi_value(14)
    if rsi is not None and (rsi < 30 or rsi > 70):
        apply((0.85, 1.1, 1.25))

    alignment = _timeframe_alignment(snapshot)
    if alignment is not None:
        if alignment > 80:
            apply((1.05, 1.15, 1.3))
        elif alignment > 60:
            apply((1.0, 1.05, 1.1))
        elif alignment < 40:
            apply((1.0, 0.8, 0.6))

    if window not in (None, SessionWindow.PRE_MARKET, SessionWindow.AFTER_HOURS):
        to_close = REGULAR_SESSION_MINUTES - snapshot.minutes_since_open
        if to_close < 30:
            apply((1.1, 0.6, 1.0))
        elif to_close < 60:
            apply((1.0, 0.85, 1.0))

    low, high = MODIFIER_BOUNDS
    return {
        TradeStyle.SCALP: clamp(scalp, low, high),
        TradeStyle.DAY: clamp(day, low, high),
        TradeStyle.SWING: clamp(swing, low, high),
    }


def score_styles(snapshot: FeatureSnapshot, base_score: float) -> StyleScores:
    """Base score per style; ties go to the shorter holding period."""
    modifiers = style_modifiers(snapshot)
    scores = {style: round(clamp(base_score * m), 2) for style, m in modifiers.items()}
    recommended = max(TradeStyle, key=lambda s: scores[s])
    return StyleScores(scores=scores, recommended=recommended)
