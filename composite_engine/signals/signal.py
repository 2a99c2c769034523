"""CompositeSignal: the engine's only output type."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime

from composite_engine.contracts import (
    AssetClass,
    DetectorType,
    Direction,
    FeatureSnapshot,
    SignalStatus,
    TradeStyle,
)
from composite_engine.signals.grading import Grade


def signal_id(snapshot: FeatureSnapshot, detector_type: DetectorType, direction: Direction) -> str:
    """Deterministic id: the same snapshot and detector always hash the same."""
    if snapshot.bars:
        stamp = repr(snapshot.bars[-1].time)
    elif snapshot.as_of is not None:
        stamp = snapshot.as_of.isoformat()
    else:
        stamp = ""
    key = f"{snapshot.symbol}|{detector_type.value}|{direction.value}|{stamp}"
    return hashlib.sha1(key.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class CompositeSignal:
    id: str
    symbol: str
    detector_type: DetectorType
    direction: Direction
    asset_class: AssetClass
    score: float  # 0-100
    grade: Grade
    threshold: float
    trade_style: TradeStyle
    entry: float | None
    stop: float | None
    targets: tuple[float, ...]
    risk_reward: float | None
    created_at: datetime
    profile_name: str
    factor_scores: dict[str, float] = field(default_factory=dict)
    style_scores: dict[TradeStyle, float] = field(default_factory=dict)
    recommended_style: TradeStyle | None = None
    data_completeness: float | None = None  # 0-100
    missing_critical: tuple[str, ...] = ()
    status: SignalStatus = SignalStatus.ACTIVE

    def expired(self) -> CompositeSignal:
        """A copy marked EXPIRED. Expiry policy belongs to the caller."""
        return replace(self, status=SignalStatus.EXPIRED)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "detector_type": self.detector_type.value,
            "direction": self.direction.value,
            "asset_class": self.asset_class.value,
            "score": self.score,
            "grade": self.grade.tier.value,
            "bucket": self.grade.bucket,
            "sizing": self.grade.sizing,
            "threshold": self.threshold,
            "trade_style": self.trade_style.value,
            "entry": self.entry,
            "stop": self.stop,
            "targets": list(self.targets),
            "risk_reward": self.risk_reward,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "profile": self.profile_name,
            "factor_scores": dict(self.factor_scores),
            "style_scores": {style.value: v for style, v in self.style_scores.items()},
            "recommended_style": self.recommended_style.value if self.recommended_style else None,
            "data_completeness": self.data_completeness,
            "missing_critical": list(self.missing_critical),
        }
