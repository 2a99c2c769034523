"""Detectors, scoring, grading and the composite signal type."""

from composite_engine.signals.base import (
    ConfigurationError,
    DetectorTuning,
    OpportunityDetector,
    ScoreFactor,
)
from composite_engine.signals.confidence import DataConfidence, assess_data
from composite_engine.signals.ema_bounce import EMA_BOUNCE_LONG, EMA_BOUNCE_SHORT
from composite_engine.signals.grading import Grade, Tier, grade_score
from composite_engine.signals.institutional_flow import INSTITUTIONAL_FLOW_LONG, INSTITUTIONAL_FLOW_SHORT
from composite_engine.signals.king_queen import KING_QUEEN_LONG, KING_QUEEN_SHORT
from composite_engine.signals.orb_breakout import ORB_BREAKOUT_LONG, ORB_BREAKOUT_SHORT
from composite_engine.signals.risk import RiskLevels, compute_risk_levels
from composite_engine.signals.signal import CompositeSignal
from composite_engine.signals.style import StyleScores, score_styles
from composite_engine.signals.vwap_standard import VWAP_STANDARD_LONG, VWAP_STANDARD_SHORT

ALL_DETECTORS: tuple[OpportunityDetector, ...] = (
    EMA_BOUNCE_LONG,
    EMA_BOUNCE_SHORT,
    VWAP_STANDARD_LONG,
    VWAP_STANDARD_SHORT,
    KING_QUEEN_LONG,
    KING_QUEEN_SHORT,
    ORB_BREAKOUT_LONG,
    ORB_BREAKOUT_SHORT,
    INSTITUTIONAL_FLOW_LONG,
    INSTITUTIONAL_FLOW_SHORT,
)

__all__ = [
    "ALL_DETECTORS",
    "CompositeSignal",
    "ConfigurationError",
    "DataConfidence",
    "DetectorTuning",
    "Grade",
    "OpportunityDetector",
    "RiskLevels",
    "ScoreFactor",
    "StyleScores",
    "Tier",
    "assess_data",
    "compute_risk_levels",
    "grade_score",
    "score_styles",
]
