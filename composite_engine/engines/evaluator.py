"""Composite evaluator: runs every registered detector over one snapshot.

Per detector, a single stateless pass:
  scope → run gate → profile enabled → gate → weighted score
    → data-confidence cap → threshold → reward-to-risk floor → emit

Nothing here mutates shared state. The registry and active profile are held
in one immutable EngineConfig that is swapped by reference, so concurrent
evaluations always see a consistent pair.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Sequence

from composite_engine.config import Settings
from composite_engine.contracts import FeatureSnapshot, TradeStyle
from composite_engine.engines.registry import DetectorRegistry, build_default_registry
from composite_engine.engines.run_gate import RunGate, always_run, run_gate_from_settings
from composite_engine.profiles import DEFAULT, ParameterProfile, get_profile, load_profile
from composite_engine.signals.base import OpportunityDetector
from composite_engine.signals.confidence import DataConfidence, apply_confidence, assess_data
from composite_engine.signals.grading import grade_score
from composite_engine.signals.risk import RiskLevels, compute_risk_levels
from composite_engine.signals.signal import CompositeSignal, signal_id
from composite_engine.signals.style import score_styles

logger = logging.getLogger(__name__)


@dataclass
class EvaluationFunnel:
    """Counts how many detector passes drop out at each stage.

    If most detectors die at the gate the feed is probably missing fields;
    if most die at the threshold the profile may be too strict.
    """

    considered: int = 0
    out_of_scope: int = 0
    run_gate_closed: int = 0
    disabled: int = 0
    failed_gate: int = 0
    below_threshold: int = 0
    poor_risk_reward: int = 0
    emitted: int = 0

    def merge(self, other: EvaluationFunnel) -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def log_summary(self) -> None:
        """Log the funnel as a readable summary."""
        logger.info(
            "Detector funnel: %d considered → %d emitted | "
            "scope=%d, run_gate=%d, disabled=%d, gate=%d, threshold=%d, risk_reward=%d dropped",
            self.considered,
            self.emitted,
            self.out_of_scope,
            self.run_gate_closed,
            self.disabled,
            self.failed_gate,
            self.below_threshold,
            self.poor_risk_reward,
        )

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _emit(
    snapshot: FeatureSnapshot,
    detector: OpportunityDetector,
    profile: ParameterProfile,
    style: TradeStyle,
    score: float,
    factor_scores: dict[str, float],
    threshold: float,
    levels: RiskLevels,
    confidence: DataConfidence,
    created_at: datetime,
) -> CompositeSignal:
    rounded = round(score, 2)
    styles = score_styles(snapshot, rounded)
    return CompositeSignal(
        id=signal_id(snapshot, detector.type, detector.direction),
        symbol=snapshot.symbol,
        detector_type=detector.type,
        direction=detector.direction,
        asset_class=snapshot.resolved_asset_class,
        score=rounded,
        grade=grade_score(rounded),
        threshold=threshold,
        trade_style=style,
        entry=levels.entry,
        stop=levels.stop,
        targets=levels.targets,
        risk_reward=levels.risk_reward,
        created_at=created_at,
        profile_name=profile.name,
        factor_scores={k: round(v, 2) for k, v in factor_scores.items()},
        style_scores=styles.scores,
        recommended_style=styles.recommended,
        data_completeness=confidence.completeness,
        missing_critical=confidence.missing_critical,
    )


def evaluate_snapshot(
    snapshot: FeatureSnapshot,
    registry: DetectorRegistry,
    profile: ParameterProfile,
    *,
    style: TradeStyle = TradeStyle.DAY,
    run_gate: RunGate = always_run,
    funnel: EvaluationFunnel | None = None,
    now: datetime | None = None,
) -> list[CompositeSignal]:
    """Evaluate every registered detector against one snapshot.

    Returns signals ordered by score (highest first, registry order on ties).
    An empty list is the normal outcome. Long and short variants are
    evaluated independently and may both emit.

    Scores are capped by data confidence before the threshold check. A
    signal whose reward-to-risk is known and below the style's floor is
    dropped; an unknown one (no ATR) is not.
    """
    funnel = funnel if funnel is not None else EvaluationFunnel()
    tuning = profile.tuning
    risk = profile.risk_for(style)
    created_at = now or snapshot.as_of or datetime.now(timezone.utc)
    run_ok: bool | None = None
    confidence: DataConfidence | None = None

    signals: list[CompositeSignal] = []
    for detector in registry:
        funnel.considered += 1

        if not detector.applies_to(snapshot):
            funnel.out_of_scope += 1
            continue

        if run_ok is None:
            run_ok = bool(run_gate(snapshot))
        if not run_ok:
            funnel.run_gate_closed += 1
            continue

        if not profile.is_detector_enabled(detector.type):
            funnel.disabled += 1
            continue

        if not detector.passes_gate(snapshot, tuning):
            funnel.failed_gate += 1
            continue

        if confidence is None:
            confidence = assess_data(snapshot)
        raw_score, factor_scores = detector.score(snapshot, tuning)
        score = apply_confidence(raw_score, confidence)
        if score < raw_score:
            logger.debug(
                "%s %s capped %.1f → %.1f, missing %s", snapshot.symbol, detector.key,
                raw_score, score, ", ".join(confidence.missing_critical),
            )

        threshold = profile.get_detector_min_score(detector.type, style)
        if score < threshold:
            funnel.below_threshold += 1
            logger.debug(
                "%s %s scored %.1f < %.1f", snapshot.symbol, detector.key, score, threshold,
            )
            continue

        levels = compute_risk_levels(snapshot, detector.direction, risk.stop_atr, risk.target_atr)
        if levels.risk_reward is not None and levels.risk_reward < risk.min_risk_reward:
            funnel.poor_risk_reward += 1
            logger.debug(
                "%s %s R:R %.2f < %.2f", snapshot.symbol, detector.key,
                levels.risk_reward, risk.min_risk_reward,
            )
            continue

        signal = _emit(
            snapshot, detector, profile, style, score, factor_scores, threshold,
            levels, confidence, created_at,
        )
        funnel.emitted += 1
        logger.debug(
            "%s %s emitted: score=%.1f grade=%s", snapshot.symbol, detector.key,
            signal.score, signal.grade.tier.value,
        )
        signals.append(signal)

    signals.sort(key=lambda s: s.score, reverse=True)
    return signals


@dataclass(frozen=True)
class EngineConfig:
    registry: DetectorRegistry
    profile: ParameterProfile


class CompositeEvaluator:
    """Host-facing wrapper: owns the active config and fans out across symbols."""

    def __init__(
        self,
        registry: DetectorRegistry | None = None,
        profile: ParameterProfile = DEFAULT,
        *,
        style: TradeStyle = TradeStyle.DAY,
        run_gate: RunGate = always_run,
        max_workers: int = 4,
    ):
        registry = registry if registry is not None else build_default_registry()
        registry.validate_profile(profile)
        self._config = EngineConfig(registry=registry, profile=profile)
        self.style = style
        self.run_gate = run_gate
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, settings: Settings) -> CompositeEvaluator:
        if settings.profile_file:
            profile = load_profile(settings.profile_file)
        else:
            profile = get_profile(settings.active_profile)
        return cls(
            profile=profile,
            style=settings.trade_style,
            run_gate=run_gate_from_settings(settings),
            max_workers=settings.max_workers,
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def profile(self) -> ParameterProfile:
        return self._config.profile

    def swap_profile(self, profile: ParameterProfile) -> None:
        """Validate, then replace the active profile in one reference swap."""
        current = self._config
        current.registry.validate_profile(profile)
        self._config = EngineConfig(registry=current.registry, profile=profile)
        logger.info("Active profile switched: %s → %s", current.profile.name, profile.name)

    def swap_registry(self, registry: DetectorRegistry) -> None:
        current = self._config
        registry.validate_profile(current.profile)
        self._config = EngineConfig(registry=registry, profile=current.profile)

    def evaluate(
        self,
        snapshot: FeatureSnapshot,
        *,
        funnel: EvaluationFunnel | None = None,
        now: datetime | None = None,
    ) -> list[CompositeSignal]:
        config = self._config
        return evaluate_snapshot(
            snapshot,
            config.registry,
            config.profile,
            style=self.style,
            run_gate=self.run_gate,
            funnel=funnel,
            now=now,
        )

    def evaluate_many(
        self,
        snapshots: Sequence[FeatureSnapshot],
        *,
        now: datetime | None = None,
    ) -> list[list[CompositeSignal]]:
        """Evaluate many symbols concurrently; results keep input order."""
        if not snapshots:
            return []

        config = self._config
        funnels = [EvaluationFunnel() for _ in snapshots]

        def _run(i: int) -> list[CompositeSignal]:
            return evaluate_snapshot(
                snapshots[i],
                config.registry,
                config.profile,
                style=self.style,
                run_gate=self.run_gate,
                funnel=funnels[i],
                now=now,
            )

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results = list(pool.map(_run, range(len(snapshots))))

        total = EvaluationFunnel()
        for f in funnels:
            total.merge(f)
        total.log_summary()
        return results
