"""Detector registry: the fixed set of detectors the evaluator runs.

All configuration checking happens here, once, at construction: a registry
that builds is a registry that can be evaluated without configuration
errors.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from composite_engine.contracts import DetectorType, Direction
from composite_engine.profiles import ParameterProfile
from composite_engine.signals import ALL_DETECTORS
from composite_engine.signals.base import ConfigurationError, OpportunityDetector

logger = logging.getLogger(__name__)

WEIGHT_SUM_TOLERANCE = 0.01


class DetectorRegistry:
    """Immutable collection of detectors keyed by (type, direction)."""

    def __init__(self, detectors: Iterable[OpportunityDetector]):
        by_key: dict[tuple[DetectorType, Direction], OpportunityDetector] = {}
        for detector in detectors:
            key = (detector.type, detector.direction)
            if key in by_key:
                raise ConfigurationError(f"Duplicate detector registered: {detector.key}")
            _check_weights(detector)
            by_key[key] = detector

        self._by_key = by_key
        self._detectors = tuple(by_key.values())
        logger.debug("Registry built with %d detectors", len(self._detectors))

    def __iter__(self) -> Iterator[OpportunityDetector]:
        return iter(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    @property
    def detectors(self) -> tuple[OpportunityDetector, ...]:
        return self._detectors

    @property
    def types(self) -> frozenset[DetectorType]:
        return frozenset(t for t, _ in self._by_key)

    def get(self, detector_type: DetectorType, direction: Direction) -> OpportunityDetector | None:
        return self._by_key.get((detector_type, direction))

    def validate_profile(self, profile: ParameterProfile) -> None:
        """Reject a profile that overrides detectors this registry doesn't run."""
        unknown = sorted(t.value for t in profile.detector_overrides if t not in self.types)
        if unknown:
            raise ConfigurationError(
                f"Profile '{profile.name}' overrides unregistered detectors: {', '.join(unknown)}"
            )


def _check_weights(detector: OpportunityDetector) -> None:
    total = detector.weight_sum
    if total <= 0:
        raise ConfigurationError(f"{detector.key} factor weights sum to {total}")
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        logger.warning(
            "%s factor weights sum to %.3f, not 1.0, scores are not renormalized",
            detector.key, total,
        )


def build_default_registry() -> DetectorRegistry:
    """Every DetectorType, long and short."""
    registry = DetectorRegistry(ALL_DETECTORS)
    missing = [
        f"{t.value}:{d.value}"
        for t in DetectorType for d in Direction
        if registry.get(t, d) is None
    ]
    if missing:
        raise ConfigurationError(f"No detector registered for: {', '.join(missing)}")
    return registry
