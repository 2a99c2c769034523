"""Technical primitives feeding detector gates and score factors."""

from composite_engine.features.levels import (
    Level,
    LevelType,
    build_levels,
    detect_king_queen,
    level_confluence,
)
from composite_engine.features.patience import PatienceCandle, SetupQuality, detect_patience_candle
from composite_engine.features.trend import (
    TrendDirection,
    TrendResult,
    detect_trend,
    is_trend_tradeable,
    trend_score,
)

__all__ = [
    "Level",
    "LevelType",
    "PatienceCandle",
    "SetupQuality",
    "TrendDirection",
    "TrendResult",
    "build_levels",
    "detect_king_queen",
    "detect_patience_candle",
    "detect_trend",
    "is_trend_tradeable",
    "level_confluence",
    "trend_score",
]
