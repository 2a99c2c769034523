"""Parameter profiles: named, immutable tuning for the detector set.

A profile decides which detectors run and at what score they clear, plus the
few tunables gates read (VWAP zone width, minimum trend strength) and the
ATR multiples used for stops and targets, with the minimum reward-to-risk a
signal must offer. Profiles are plain data: switching
profile never touches detector code, and nothing here is mutable global
state. The host picks one profile and passes it into every evaluation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from composite_engine.contracts import DetectorType, TradeStyle
from composite_engine.signals.base import DetectorTuning

logger = logging.getLogger(__name__)


class ProfileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class DetectorOverride(ProfileModel):
    enabled: bool = True
    min_score: float | None = Field(default=None, ge=0, le=100)


class StyleRisk(ProfileModel):
    stop_atr: float = Field(gt=0)
    target_atr: tuple[float, ...] = Field(min_length=1)
    min_risk_reward: float = Field(default=0.0, ge=0)  # measured to the second target

    @field_validator("target_atr")
    @classmethod
    def _ascending_positive(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if any(m <= 0 for m in v):
            raise ValueError("target multiples must be positive")
        if list(v) != sorted(v):
            raise ValueError("target multiples must be ascending")
        return v


STANDARD_RISK: dict[TradeStyle, StyleRisk] = {
    TradeStyle.SCALP: StyleRisk(stop_atr=0.75, target_atr=(1.0, 1.5, 2.0), min_risk_reward=1.5),
    TradeStyle.DAY: StyleRisk(stop_atr=1.0, target_atr=(1.5, 2.5, 3.5), min_risk_reward=1.8),
    TradeStyle.SWING: StyleRisk(stop_atr=1.5, target_atr=(2.0, 3.0, 4.0), min_risk_reward=2.0),
}


class ParameterProfile(ProfileModel):
    name: str = Field(min_length=1)
    description: str = ""
    min_score_by_style: dict[TradeStyle, float]
    detector_overrides: dict[DetectorType, DetectorOverride] = Field(default_factory=dict)
    vwap_proximity_percent: float = Field(default=0.5, gt=0, le=5)
    trend_min_score: float = Field(default=40.0, ge=0, le=100)
    risk: dict[TradeStyle, StyleRisk] = Field(default_factory=lambda: dict(STANDARD_RISK))

    @model_validator(mode="after")
    def _complete_per_style(self) -> ParameterProfile:
        for style in TradeStyle:
            if style not in self.min_score_by_style:
                raise ValueError(f"min_score_by_style is missing '{style.value}'")
            if style not in self.risk:
                raise ValueError(f"risk is missing '{style.value}'")
        for style, score in self.min_score_by_style.items():
            if not 0 <= score <= 100:
                raise ValueError(f"min score for '{style.value}' must be within [0, 100]")
        return self

    def is_detector_enabled(self, detector_type: DetectorType) -> bool:
        override = self.detector_overrides.get(detector_type)
        return override.enabled if override is not None else True

    def get_detector_min_score(self, detector_type: DetectorType, style: TradeStyle) -> float:
        """Per-detector override first, then the trade-style default."""
        override = self.detector_overrides.get(detector_type)
        if override is not None and override.min_score is not None:
            return override.min_score
        return self.min_score_by_style[style]

    def risk_for(self, style: TradeStyle) -> StyleRisk:
        return self.risk[style]

    @property
    def tuning(self) -> DetectorTuning:
        return DetectorTuning(
            vwap_proximity_percent=self.vwap_proximity_percent,
            trend_min_score=self.trend_min_score,
        )

    @property
    def enabled_detectors(self) -> list[DetectorType]:
        return [t for t in DetectorType if self.is_detector_enabled(t)]


DEFAULT = ParameterProfile(
    name="default",
    description="Balanced thresholds; every price-action detector enabled",
    min_score_by_style={TradeStyle.SCALP: 65, TradeStyle.DAY: 60, TradeStyle.SWING: 60},
    detector_overrides={
        DetectorType.INSTITUTIONAL_FLOW: DetectorOverride(enabled=False),
    },
    vwap_proximity_percent=0.5,
    trend_min_score=40,
)

CONSERVATIVE = ParameterProfile(
    name="conservative",
    description="Higher thresholds, breakout and trend-pullback setups only, wider targets",
    min_score_by_style={TradeStyle.SCALP: 75, TradeStyle.DAY: 72, TradeStyle.SWING: 70},
    detector_overrides={
        DetectorType.KCU_VWAP_STANDARD: DetectorOverride(enabled=False),
        DetectorType.KCU_KING_QUEEN: DetectorOverride(enabled=False),
        DetectorType.INSTITUTIONAL_FLOW: DetectorOverride(enabled=False),
        DetectorType.KCU_ORB_BREAKOUT: DetectorOverride(min_score=75),
    },
    vwap_proximity_percent=0.3,
    trend_min_score=55,
    risk={
        TradeStyle.SCALP: StyleRisk(stop_atr=0.75, target_atr=(1.5, 2.0, 2.5), min_risk_reward=1.5),
        TradeStyle.DAY: StyleRisk(stop_atr=1.0, target_atr=(2.0, 3.0, 4.0), min_risk_reward=1.8),
        TradeStyle.SWING: StyleRisk(stop_atr=1.5, target_atr=(2.5, 3.5, 5.0), min_risk_reward=2.0),
    },
)

AGGRESSIVE = ParameterProfile(
    name="aggressive",
    description="Lower thresholds, every detector enabled, wider VWAP zone",
    min_score_by_style={TradeStyle.SCALP: 55, TradeStyle.DAY: 50, TradeStyle.SWING: 50},
    detector_overrides={
        DetectorType.INSTITUTIONAL_FLOW: DetectorOverride(enabled=True, min_score=60),
    },
    vwap_proximity_percent=0.7,
    trend_min_score=30,
)

PROFILES: dict[str, ParameterProfile] = {p.name: p for p in (DEFAULT, CONSERVATIVE, AGGRESSIVE)}


def get_profile(name: str) -> ParameterProfile:
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown profile '{name}'. Known profiles: {', '.join(sorted(PROFILES))}"
        ) from None


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def profile_from_dict(data: dict[str, Any]) -> ParameterProfile:
    """Build a profile, optionally layered on a built-in via `extends: <name>`."""
    data = dict(data)
    base_name = data.pop("extends", None)
    if base_name:
        base = get_profile(base_name).model_dump(mode="json")
        data = _merge(base, data)
    return ParameterProfile.model_validate(data)


def load_profile(path: str | Path) -> ParameterProfile:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Profile file {path} must contain a mapping")
    profile = profile_from_dict(raw)
    logger.info("Loaded profile '%s' from %s", profile.name, path)
    return profile
