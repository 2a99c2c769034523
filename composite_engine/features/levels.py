"""Price-level confluence.

Reference levels (VWAP, moving averages, opening range, premarket and
prior-day extremes) are collected from a snapshot. Confluence measures how
many of them price is touching at once, weighted by level importance and by
how tight each touch is. VWAP is the "king" level; other levels stacked on
top of it are its "queens".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from composite_engine.contracts import FeatureSnapshot


class LevelType(str, Enum):
    VWAP = "VWAP"
    EMA_8 = "EMA_8"
    EMA_21 = "EMA_21"
    SMA_200 = "SMA_200"
    ORB_HIGH = "ORB_HIGH"
    ORB_LOW = "ORB_LOW"
    PREMARKET_HIGH = "PREMARKET_HIGH"
    PREMARKET_LOW = "PREMARKET_LOW"
    PRIOR_DAY_HIGH = "PRIOR_DAY_HIGH"
    PRIOR_DAY_LOW = "PRIOR_DAY_LOW"
    OPEN_PRICE = "OPEN_PRICE"


LEVEL_WEIGHTS: dict[LevelType, float] = {
    LevelType.VWAP: 1.5,
    LevelType.EMA_8: 1.2,
    LevelType.EMA_21: 1.2,
    LevelType.SMA_200: 1.3,
    LevelType.ORB_HIGH: 1.1,
    LevelType.ORB_LOW: 1.1,
    LevelType.PREMARKET_HIGH: 1.0,
    LevelType.PREMARKET_LOW: 1.0,
    LevelType.PRIOR_DAY_HIGH: 1.1,
    LevelType.PRIOR_DAY_LOW: 1.1,
    LevelType.OPEN_PRICE: 0.8,
}

# Standalone importance of each level (0-100), used for king/queen strength.
LEVEL_STRENGTH: dict[LevelType, float] = {
    LevelType.VWAP: 100,
    LevelType.EMA_8: 80,
    LevelType.EMA_21: 80,
    LevelType.SMA_200: 95,
    LevelType.ORB_HIGH: 60,
    LevelType.ORB_LOW: 60,
    LevelType.PREMARKET_HIGH: 60,
    LevelType.PREMARKET_LOW: 60,
    LevelType.PRIOR_DAY_HIGH: 80,
    LevelType.PRIOR_DAY_LOW: 80,
    LevelType.OPEN_PRICE: 60,
}

# Points for a single level: TOUCH_BASE at the edge of the zone, up to
# TOUCH_BASE + TOUCH_TIGHTNESS when price sits exactly on it (before weighting).
TOUCH_BASE = 15.0
TOUCH_TIGHTNESS = 15.0


@dataclass(frozen=True)
class Level:
    type: LevelType
    price: float

    def distance_percent(self, price: float) -> float:
        return abs(price - self.price) / price * 100


@dataclass(frozen=True)
class ConfluenceResult:
    score: float = 0.0  # 0-100
    touching: tuple[Level, ...] = ()

    @property
    def count(self) -> int:
        return len(self.touching)


@dataclass(frozen=True)
class KingQueen:
    detected: bool = False
    king: Level | None = None
    queens: tuple[Level, ...] = field(default_factory=tuple)
    strength: float = 0.0  # 0-100


def build_levels(snapshot: FeatureSnapshot) -> list[Level]:
    """All known reference levels, nearest to the current price first."""
    candidates = [
        (LevelType.VWAP, snapshot.vwap_value),
        (LevelType.EMA_8, snapshot.ma(8)),
        (LevelType.EMA_21, snapshot.ma(21)),
        (LevelType.SMA_200, snapshot.ma(200)),
        (LevelType.ORB_HIGH, snapshot.level("orb_high")),
        (LevelType.ORB_LOW, snapshot.level("orb_low")),
        (LevelType.PREMARKET_HIGH, snapshot.level("premarket_high")),
        (LevelType.PREMARKET_LOW, snapshot.level("premarket_low")),
        (LevelType.PRIOR_DAY_HIGH, snapshot.level("prior_day_high")),
        (LevelType.PRIOR_DAY_LOW, snapshot.level("prior_day_low")),
        (LevelType.OPEN_PRICE, snapshot.price.open if snapshot.price.open and snapshot.price.open > 0 else None),
    ]
    levels = [Level(t, p) for t, p in candidates if p is not None]

    price = snapshot.current_price
    if price is not None:
        levels.sort(key=lambda lvl: lvl.distance_percent(price))
    return levels


def level_confluence(
    price: float | None,
    levels: Sequence[Level],
    proximity_percent: float,
) -> ConfluenceResult:
    """Weighted proximity count of levels within `proximity_percent` of price.

    Each touching level adds its weight times a tightness-scaled base, so
    more levels and tighter touches both raise the score. Capped at 100.
    """
    if price is None or price <= 0 or proximity_percent <= 0 or not levels:
        return ConfluenceResult()

    score = 0.0
    touching: list[Level] = []
    for level in levels:
        distance = level.distance_percent(price)
        if distance > proximity_percent:
            continue
        tightness = 1 - distance / proximity_percent
        score += LEVEL_WEIGHTS[level.type] * (TOUCH_BASE + TOUCH_TIGHTNESS * tightness)
        touching.append(level)

    return ConfluenceResult(score=round(min(100.0, score), 2), touching=tuple(touching))


def detect_king_queen(
    price: float | None,
    levels: Sequence[Level],
    proximity_percent: float,
) -> KingQueen:
    """VWAP (king) plus any levels within `proximity_percent` of it (queens)."""
    if price is None or price <= 0 or proximity_percent <= 0:
        return KingQueen()

    king = next((lvl for lvl in levels if lvl.type is LevelType.VWAP), None)
    if king is None:
        return KingQueen()

    threshold = price * proximity_percent / 100
    queens = tuple(
        lvl for lvl in levels
        if lvl.type is not LevelType.VWAP and abs(lvl.price - king.price) <= threshold
    )
    if not queens:
        return KingQueen(king=king)

    total = LEVEL_STRENGTH[LevelType.VWAP] * LEVEL_WEIGHTS[LevelType.VWAP]
    total += sum(LEVEL_STRENGTH[q.type] * LEVEL_WEIGHTS[q.type] for q in queens)
    strength = min(100.0, total / (100 * (1 + len(queens))) * 100)

    return KingQueen(detected=True, king=king, queens=queens, strength=round(strength, 2))
