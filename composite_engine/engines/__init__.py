"""Registry, evaluator and run gates."""

from composite_engine.engines.evaluator import (
    CompositeEvaluator,
    EngineConfig,
    EvaluationFunnel,
    evaluate_snapshot,
)
from composite_engine.engines.registry import DetectorRegistry, build_default_registry
from composite_engine.engines.run_gate import always_run, market_hours_gate, run_gate_from_settings

__all__ = [
    "CompositeEvaluator",
    "DetectorRegistry",
    "EngineConfig",
    "EvaluationFunnel",
    "always_run",
    "build_default_registry",
    "evaluate_snapshot",
    "market_hours_gate",
    "run_gate_from_settings",
]
