"""Patience candle detection.

A patience candle is a small consolidation bar, ideally an inside bar, that
marks where to enter once price breaks it: above its high for longs, below
its low for shorts, with the stop on the other side.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from composite_engine.contracts import Bar, Direction

MIN_BARS = 2
CANDIDATE_LOOKBACK = 3  # most recent bars checked as candidates
MAX_BODY_ATR_RATIO = 0.4
MAX_BODY_VS_PREVIOUS = 0.6
CONTAINED_LOOKBACK = 3
CONTAINED_TOLERANCE = 0.1  # fraction of the mother bar range
VOLUME_LOOKBACK = 3
VOLUME_DECREASE_RATIO = 0.8
NEAR_LEVEL_ATR = 0.5
TRIGGER_BUFFER = 0.01


class SetupQuality(str, Enum):
    A_PLUS = "A+"
    A = "A"
    B = "B"
    AVOID = "Avoid"


_QUALITY_BASE_SCORE = {
    SetupQuality.A_PLUS: 85,
    SetupQuality.A: 70,
    SetupQuality.B: 50,
    SetupQuality.AVOID: 0,
}


@dataclass(frozen=True)
class PatienceCandle:
    detected: bool = False
    quality: SetupQuality = SetupQuality.AVOID
    score: float = 0.0  # 0-100
    index: int | None = None  # position in the bar sequence
    body_ratio: float = 0.0  # body / ATR
    is_inside_bar: bool = False
    contained_bars: int = 0
    volume_decreasing: bool = False
    confirmed: bool | None = None  # None = no following bar yet
    near_level: bool = False
    entry_trigger: float | None = None
    stop: float | None = None
    time: float | None = None


NOT_DETECTED = PatienceCandle()


def _is_inside(bar: Bar, mother: Bar) -> bool:
    return bar.high < mother.high and bar.low > mother.low


def _contained_count(bars: Sequence[Bar], index: int) -> int:
    """Consecutive bars ending at `index` that sit inside the bar before them."""
    count = 0
    for run in range(1, CONTAINED_LOOKBACK + 1):
        mother_index = index - run
        if mother_index < 0:
            break
        mother = bars[mother_index]
        tolerance = mother.range * CONTAINED_TOLERANCE
        run_bars = bars[mother_index + 1:index + 1]
        if all(b.high <= mother.high + tolerance and b.low >= mother.low - tolerance for b in run_bars):
            count = run
        else:
            break
    return count


def _volume_decreasing(bars: Sequence[Bar], index: int) -> bool:
    if index < VOLUME_LOOKBACK:
        return False
    prior = bars[index - VOLUME_LOOKBACK:index]
    avg = sum(b.volume for b in prior) / VOLUME_LOOKBACK
    return bars[index].volume < avg * VOLUME_DECREASE_RATIO


def _quality(is_inside: bool, body_ratio: float, contained: int, volume_decreasing: bool) -> SetupQuality:
    points = 0
    if is_inside:
        points += 30

    if body_ratio < 0.2:
        points += 25
    elif body_ratio < 0.3:
        points += 20
    elif body_ratio < 0.4:
        points += 15
    else:
        points += 5

    if contained >= 3:
        points += 25
    elif contained >= 2:
        points += 15
    elif contained >= 1:
        points += 10

    if volume_decreasing:
        points += 20

    if points >= 80:
        return SetupQuality.A_PLUS
    if points >= 60:
        return SetupQuality.A
    if points >= 40:
        return SetupQuality.B
    return SetupQuality.AVOID


def _confirmation(bar: Bar, following: Bar | None, direction: Direction) -> bool | None:
    """True on a close through the trigger, False on a close through the stop side."""
    if following is None:
        return None
    if direction is Direction.LONG:
        if following.close > bar.high + TRIGGER_BUFFER:
            return True
        if following.close < bar.low:
            return False
    else:
        if following.close < bar.low - TRIGGER_BUFFER:
            return True
        if following.close > bar.high:
            return False
    return None


def _near_level(bar: Bar, level: float | None, atr: float) -> bool:
    if level is None:
        return False
    if bar.low <= level <= bar.high:
        return True
    distance = min(abs(level - bar.high), abs(level - bar.low))
    return distance <= atr * NEAR_LEVEL_ATR


def patience_score(candle: PatienceCandle) -> float:
    if not candle.detected:
        return 0.0

    score = _QUALITY_BASE_SCORE[candle.quality]
    if candle.is_inside_bar:
        score += 10
    if candle.contained_bars >= 2:
        score += 5
    if candle.body_ratio < 0.2:
        score += 5
    if candle.confirmed:
        score += 5
    if candle.near_level:
        score += 5
    return float(min(100, score))


def _evaluate_candidate(
    bars: Sequence[Bar],
    index: int,
    atr: float,
    direction: Direction,
    reference_level: float | None,
) -> PatienceCandle | None:
    bar = bars[index]
    previous = bars[index - 1]

    body_ratio = bar.body / atr
    if body_ratio > MAX_BODY_ATR_RATIO:
        return None
    if previous.body > 0 and bar.body / previous.body > MAX_BODY_VS_PREVIOUS:
        return None

    following = bars[index + 1] if index + 1 < len(bars) else None
    confirmed = _confirmation(bar, following, direction)
    if confirmed is False:
        return None

    is_inside = _is_inside(bar, previous)
    contained = _contained_count(bars, index)
    volume_decreasing = _volume_decreasing(bars, index)

    if direction is Direction.LONG:
        trigger, stop = bar.high + TRIGGER_BUFFER, bar.low
    else:
        trigger, stop = bar.low - TRIGGER_BUFFER, bar.high

    candle = PatienceCandle(
        detected=True,
        quality=_quality(is_inside, body_ratio, contained, volume_decreasing),
        index=index,
        body_ratio=round(body_ratio, 4),
        is_inside_bar=is_inside,
        contained_bars=contained,
        volume_decreasing=volume_decreasing,
        confirmed=confirmed,
        near_level=_near_level(bar, reference_level, atr),
        entry_trigger=round(trigger, 2),
        stop=round(stop, 2),
        time=bar.time,
    )
    return replace(candle, score=patience_score(candle))


def detect_patience_candle(
    bars: Sequence[Bar],
    atr: float | None,
    direction: Direction = Direction.LONG,
    reference_level: float | None = None,
) -> PatienceCandle:
    """Find the best patience candle among the most recent bars.

    Returns NOT_DETECTED (score 0) for short sequences or an unknown ATR.
    Ties in score go to the most recent candle.
    """
    if len(bars) < MIN_BARS or atr is None or atr <= 0:
        return NOT_DETECTED

    best: PatienceCandle | None = None
    last = len(bars) - 1
    for index in range(last, max(0, last - CANDIDATE_LOOKBACK), -1):
        candidate = _evaluate_candidate(bars, index, atr, direction, reference_level)
        if candidate is None:
            continue
        if best is None or candidate.score > best.score:
            best = candidate

    return best if best is not None else NOT_DETECTED
