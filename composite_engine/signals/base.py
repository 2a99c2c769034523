"""Detector contract: gate predicate + weighted score factors.

A detector is built once at import time and never mutated. Profile tunables
reach gates and factors through a DetectorTuning argument instead of being
baked into the detector, so one registry serves every profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from composite_engine.contracts import AssetClass, DetectorType, Direction, FeatureSnapshot

ALL_ASSET_CLASSES = frozenset(AssetClass)


class ConfigurationError(ValueError):
    """A detector, registry or profile is mis-specified (deployment bug)."""


@dataclass(frozen=True)
class DetectorTuning:
    """Profile-controlled knobs visible to gates and factors."""

    vwap_proximity_percent: float = 0.5
    trend_min_score: float = 40.0


DEFAULT_TUNING = DetectorTuning()

GateFn = Callable[[FeatureSnapshot, DetectorTuning], bool]
FactorFn = Callable[[FeatureSnapshot, DetectorTuning], float]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ScoreFactor:
    name: str
    weight: float
    evaluate: FactorFn

    def __post_init__(self) -> None:
        if not 0 < self.weight <= 1:
            raise ConfigurationError(
                f"factor '{self.name}' weight {self.weight} outside (0, 1]"
            )


@dataclass(frozen=True)
class OpportunityDetector:
    type: DetectorType
    direction: Direction
    gate: GateFn
    factors: tuple[ScoreFactor, ...]
    asset_classes: frozenset[AssetClass] = ALL_ASSET_CLASSES
    requires_options_data: bool = False
    ideal_timeframe: str = "5m"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.factors:
            raise ConfigurationError(f"{self.key} has no score factors")
        names = [f.name for f in self.factors]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"{self.key} has duplicate factors: {', '.join(duplicates)}")

    @property
    def key(self) -> str:
        return f"{self.type.value}:{self.direction.value}"

    @property
    def weight_sum(self) -> float:
        return sum(f.weight for f in self.factors)

    def applies_to(self, snapshot: FeatureSnapshot) -> bool:
        """Asset-class and options-data scope check."""
        if snapshot.resolved_asset_class not in self.asset_classes:
            return False
        if self.requires_options_data and not snapshot.has_options_data:
            return False
        return True

    def passes_gate(self, snapshot: FeatureSnapshot, tuning: DetectorTuning = DEFAULT_TUNING) -> bool:
        return bool(self.gate(snapshot, tuning))

    def score(
        self, snapshot: FeatureSnapshot, tuning: DetectorTuning = DEFAULT_TUNING,
    ) -> tuple[float, dict[str, float]]:
        """Weighted sum of factor scores, clamped to [0, 100].

        Weights are used as given. A weight set that does not sum to 1 is a
        registry warning, never a silent renormalization here.
        """
        factor_scores = {f.name: float(f.evaluate(snapshot, tuning)) for f in self.factors}
        total = sum(f.weight * factor_scores[f.name] for f in self.factors)
        return clamp(total), factor_scores
