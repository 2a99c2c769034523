"""Trend classification from swing structure.

Uptrend: higher highs + higher lows. Downtrend: lower highs + lower lows.
Anything mixed is chop. A break of the opening range (and to a lesser
degree the premarket range) in the trend direction strengthens the read.

Short-lived moves are tracked as "micro trends": the last few bars, read
at a finer swing resolution, point somewhere the full structure does not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from composite_engine.contracts import Bar, Direction

logger = logging.getLogger(__name__)

MIN_TREND_BARS = 10
MICRO_TREND_BARS = 10
SWING_LOOKBACK = 2
MICRO_SWING_LOOKBACK = 1

MTF_BULLISH_RSI = 60.0
MTF_BEARISH_RSI = 40.0


class TrendDirection(str, Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    CHOP = "CHOP"


class LevelBreak(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"
    NONE = "NONE"


@dataclass(frozen=True)
class SwingPoint:
    kind: str  # "high" | "low"
    price: float
    index: int
    time: float


@dataclass(frozen=True)
class SwingStructure:
    higher_highs: int = 0
    higher_lows: int = 0
    lower_highs: int = 0
    lower_lows: int = 0

    @property
    def bullish(self) -> int:
        return self.higher_highs + self.higher_lows

    @property
    def bearish(self) -> int:
        return self.lower_highs + self.lower_lows


@dataclass(frozen=True)
class TrendResult:
    direction: TrendDirection = TrendDirection.CHOP
    strength: float = 0.0  # 0-100
    higher_highs: int = 0
    higher_lows: int = 0
    lower_highs: int = 0
    lower_lows: int = 0
    orb_break: LevelBreak = LevelBreak.NONE
    premarket_break: LevelBreak = LevelBreak.NONE
    is_micro_trend: bool = False
    micro_direction: TrendDirection = TrendDirection.CHOP
    micro_strength: float = 0.0
    confirmed_at: float | None = None  # time of the first swing point

    @property
    def bias(self) -> TrendDirection:
        """Direction a trade would actually lean on.

        The full structure wins when it has one. In chop, a micro trend
        is the only tradeable read.
        """
        if self.direction is not TrendDirection.CHOP:
            return self.direction
        if self.is_micro_trend:
            return self.micro_direction
        return TrendDirection.CHOP


def direction_to_trend(direction: Direction) -> TrendDirection:
    return TrendDirection.UPTREND if direction is Direction.LONG else TrendDirection.DOWNTREND


def find_swing_points(bars: Sequence[Bar], lookback: int = SWING_LOOKBACK) -> list[SwingPoint]:
    """Center bar strictly higher (lower) than `lookback` bars on each side."""
    points: list[SwingPoint] = []
    if lookback < 1 or len(bars) < lookback * 2 + 1:
        return points

    for i in range(lookback, len(bars) - lookback):
        bar = bars[i]
        neighbours = [bars[i - j] for j in range(1, lookback + 1)]
        neighbours += [bars[i + j] for j in range(1, lookback + 1)]

        if all(n.high < bar.high for n in neighbours):
            points.append(SwingPoint("high", bar.high, i, bar.time))
        if all(n.low > bar.low for n in neighbours):
            points.append(SwingPoint("low", bar.low, i, bar.time))

    return points


def count_swing_structure(points: Sequence[SwingPoint]) -> SwingStructure:
    highs = [p.price for p in points if p.kind == "high"]
    lows = [p.price for p in points if p.kind == "low"]

    hh = sum(1 for prev, cur in zip(highs, highs[1:]) if cur > prev)
    lh = sum(1 for prev, cur in zip(highs, highs[1:]) if cur < prev)
    hl = sum(1 for prev, cur in zip(lows, lows[1:]) if cur > prev)
    ll = sum(1 for prev, cur in zip(lows, lows[1:]) if cur < prev)

    return SwingStructure(higher_highs=hh, higher_lows=hl, lower_highs=lh, lower_lows=ll)


def classify_structure(structure: SwingStructure) -> TrendDirection:
    bullish, bearish = structure.bullish, structure.bearish
    if bullish >= 2 and bullish > bearish * 2:
        return TrendDirection.UPTREND
    if bearish >= 2 and bearish > bullish * 2:
        return TrendDirection.DOWNTREND
    return TrendDirection.CHOP


def level_break_status(price: float | None, high: float | None, low: float | None) -> LevelBreak:
    """Where price sits relative to a high/low pair. Unknown levels never break."""
    if price is None or high is None or low is None or high < low:
        return LevelBreak.NONE
    if price > high:
        return LevelBreak.HIGH
    if price < low:
        return LevelBreak.LOW
    return LevelBreak.NONE


def _structure_strength(direction: TrendDirection, structure: SwingStructure) -> float:
    if direction is TrendDirection.CHOP:
        return 0.0

    strength = 50.0
    if direction is TrendDirection.UPTREND:
        strength += min(20, structure.higher_highs * 5)
        strength += min(15, structure.higher_lows * 5)
        strength -= structure.lower_highs * 3
        strength -= structure.lower_lows * 3
    else:
        strength += min(20, structure.lower_highs * 5)
        strength += min(15, structure.lower_lows * 5)
        strength -= structure.higher_highs * 3
        strength -= structure.higher_lows * 3
    return strength


def _clean_break_bonus(
    direction: TrendDirection, price: float, high: float | None, low: float | None,
) -> float:
    """Up to 5 extra points for a break that extends well past the range."""
    if high is None or low is None or high <= low:
        return 0.0
    width = high - low
    if direction is TrendDirection.UPTREND:
        extension = (price - high) / width
    else:
        extension = (low - price) / width
    if extension <= 0:
        return 0.0
    return min(5.0, extension * 10)


def _trend_strength(
    direction: TrendDirection,
    structure: SwingStructure,
    orb_break: LevelBreak,
    premarket_break: LevelBreak,
    price: float,
    orb_high: float | None,
    orb_low: float | None,
) -> float:
    if direction is TrendDirection.CHOP:
        return 0.0

    strength = _structure_strength(direction, structure)
    wanted = LevelBreak.HIGH if direction is TrendDirection.UPTREND else LevelBreak.LOW
    if orb_break is wanted:
        strength += 10
        strength += _clean_break_bonus(direction, price, orb_high, orb_low)
    if premarket_break is wanted:
        strength += 5

    return max(0.0, min(100.0, strength))


def detect_trend(
    bars: Sequence[Bar],
    orb_high: float | None = None,
    orb_low: float | None = None,
    premarket_high: float | None = None,
    premarket_low: float | None = None,
) -> TrendResult:
    """Classify the current trend from a chronological bar sequence.

    Never raises: fewer than MIN_TREND_BARS bars returns CHOP with zero
    strength, and unknown levels simply contribute no break.
    """
    if len(bars) < MIN_TREND_BARS:
        return TrendResult()

    price = bars[-1].close
    points = find_swing_points(bars, SWING_LOOKBACK)
    structure = count_swing_structure(points)
    direction = classify_structure(structure)

    orb_break = level_break_status(price, orb_high, orb_low)
    premarket_break = level_break_status(price, premarket_high, premarket_low)
    strength = _trend_strength(direction, structure, orb_break, premarket_break, price, orb_high, orb_low)

    recent = bars[-MICRO_TREND_BARS:]
    micro_structure = count_swing_structure(find_swing_points(recent, MICRO_SWING_LOOKBACK))
    micro_direction = classify_structure(micro_structure)
    is_micro = micro_direction is not TrendDirection.CHOP and micro_direction is not direction
    micro_strength = max(0.0, min(100.0, _structure_strength(micro_direction, micro_structure)))

    return TrendResult(
        direction=direction,
        strength=round(strength, 2),
        higher_highs=structure.higher_highs,
        higher_lows=structure.higher_lows,
        lower_highs=structure.lower_highs,
        lower_lows=structure.lower_lows,
        orb_break=orb_break,
        premarket_break=premarket_break,
        is_micro_trend=is_micro,
        micro_direction=micro_direction,
        micro_strength=round(micro_strength, 2),
        confirmed_at=points[0].time if points else None,
    )


def is_trend_tradeable(trend: TrendResult, min_strength: float = 40.0) -> bool:
    """No trend, no trade. Chop is tradeable only through a micro trend."""
    if trend.direction is TrendDirection.CHOP:
        return trend.is_micro_trend

    if trend.strength < min_strength:
        return False

    if trend.direction is TrendDirection.UPTREND:
        return trend.higher_highs >= 1 and trend.higher_lows >= 1
    return trend.lower_highs >= 1 and trend.lower_lows >= 1


def mtf_alignment(mtf_rsi: Mapping[str, float]) -> dict[str, TrendDirection]:
    """Per-timeframe direction read from RSI: >60 up, <40 down, else chop."""
    alignment = {}
    for timeframe, rsi in mtf_rsi.items():
        if rsi > MTF_BULLISH_RSI:
            alignment[timeframe] = TrendDirection.UPTREND
        elif rsi < MTF_BEARISH_RSI:
            alignment[timeframe] = TrendDirection.DOWNTREND
        else:
            alignment[timeframe] = TrendDirection.CHOP
    return alignment


def trend_score(
    trend: TrendResult,
    direction: Direction,
    mtf_rsi: Mapping[str, float] | None = None,
) -> float:
    """0-100 trend contribution for a trade in `direction`.

    Zero when the effective trend does not point the trade's way.
    """
    wanted = direction_to_trend(direction)
    if trend.bias is not wanted:
        return 0.0

    if trend.direction is TrendDirection.CHOP:
        score = trend.micro_strength
    else:
        score = trend.strength
        wanted_break = LevelBreak.HIGH if wanted is TrendDirection.UPTREND else LevelBreak.LOW
        if trend.orb_break is wanted_break:
            score += 10

    if mtf_rsi:
        aligned = sum(1 for d in mtf_alignment(mtf_rsi).values() if d is wanted)
        score += aligned * 5

    if trend.is_micro_trend:
        score -= 15

    return max(0.0, min(100.0, score))
