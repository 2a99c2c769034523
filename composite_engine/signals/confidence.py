"""Data-availability confidence.

A detector scored on a thin snapshot should not look as sure as one scored
on a full feed. Each input carries a weight; the critical ones (price,
volume, VWAP, ATR) also cap the score when missing, 15 points apiece.
Missing inputs are never filled in, only counted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from composite_engine.contracts import FeatureSnapshot

CRITICAL_PENALTY = 15.0


@dataclass(frozen=True)
class DataPoint:
    name: str
    weight: float
    critical: bool
    present: Callable[[FeatureSnapshot], bool]


def _has_volume(s: FeatureSnapshot) -> bool:
    return (s.volume.current or 0) > 0 or s.relative_volume is not None


DATA_POINTS: tuple[DataPoint, ...] = (
    DataPoint("price", 20, True, lambda s: s.current_price is not None),
    DataPoint("prev_close", 5, False, lambda s: (s.price.prev or 0) > 0),
    DataPoint("volume", 12, True, _has_volume),
    DataPoint("relative_volume", 8, False, lambda s: s.relative_volume is not None),
    DataPoint("vwap", 10, True, lambda s: s.vwap_value is not None),
    DataPoint("rsi", 8, False, lambda s: s.rsi_value(14) is not None),
    DataPoint("ema", 6, False, lambda s: s.ma(8) is not None or s.ma(21) is not None),
    DataPoint("atr", 10, True, lambda s: s.atr is not None),
    DataPoint("mtf", 5, False, lambda s: bool(s.mtf_rsi)),
    DataPoint("bars", 4, False, lambda s: bool(s.bars)),
    DataPoint("flow", 5, False, lambda s: s.flow is not None),
    DataPoint("orb", 3, False, lambda s: s.level("orb_high") is not None and s.level("orb_low") is not None),
    DataPoint("prior_day", 4, False,
              lambda s: s.level("prior_day_high") is not None and s.level("prior_day_low") is not None),
    DataPoint("session", 3, False,
              lambda s: s.minutes_since_open is not None or s.session.is_regular_hours is not None),
)


@dataclass(frozen=True)
class DataConfidence:
    completeness: float  # 0-100, weighted share of inputs present
    missing_critical: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()

    @property
    def score_cap(self) -> float:
        return max(0.0, 100.0 - CRITICAL_PENALTY * len(self.missing_critical))

    @property
    def confidence(self) -> float:
        """Cap scaled by completeness, nudged down for very thin data."""
        value = self.score_cap * self.completeness / 100
        if self.completeness < 50:
            value -= 20
        elif self.completeness < 70:
            value -= 10
        elif self.completeness >= 90:
            value += 5
        return round(max(0.0, min(100.0, value)), 1)

    @property
    def level(self) -> str:
        c = self.confidence
        if c >= 80:
            return "high"
        if c >= 60:
            return "medium"
        if c >= 40:
            return "low"
        return "very_low"


def assess_data(snapshot: FeatureSnapshot) -> DataConfidence:
    total = sum(p.weight for p in DATA_POINTS)
    available = 0.0
    missing, missing_critical = [], []
    for point in DATA_POINTS:
        if point.present(snapshot):
            available += point.weight
            continue
        missing.append(point.name)
        if point.critical:
            missing_critical.append(point.name)

    return DataConfidence(
        completeness=round(available / total * 100, 1),
        missing_critical=tuple(missing_critical),
        missing=tuple(missing),
    )


def apply_confidence(score: float, confidence: DataConfidence) -> float:
    return min(score, confidence.score_cap)
