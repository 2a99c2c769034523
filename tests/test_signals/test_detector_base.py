"""Tests for the detector contract: gates, weighted scores, scope."""

import pytest

from composite_engine.contracts import AssetClass, DetectorType, Direction
from composite_engine.signals import ALL_DETECTORS
from composite_engine.signals.base import (
    ConfigurationError,
    DetectorTuning,
    OpportunityDetector,
    ScoreFactor,
    clamp,
)


def _const(value):
    return lambda snapshot, tuning: value


def _detector(factors, gate=None, **kwargs):
    return OpportunityDetector(
        type=DetectorType.KCU_EMA_BOUNCE,
        direction=Direction.LONG,
        gate=gate or (lambda snapshot, tuning: True),
        factors=tuple(factors),
        **kwargs,
    )


def test_score_is_weighted_sum(make_snapshot):
    det = _detector([
        ScoreFactor("a", 0.6, _const(80.0)),
        ScoreFactor("b", 0.4, _const(50.0)),
    ])
    score, factors = det.score(make_snapshot())
    assert score == pytest.approx(68.0)
    assert factors == {"a": 80.0, "b": 50.0}


def test_weights_are_not_renormalized(make_snapshot):
    det = _detector([
        ScoreFactor("a", 0.5, _const(100.0)),
        ScoreFactor("b", 0.3, _const(100.0)),
    ])
    score, _ = det.score(make_snapshot())
    assert score == pytest.approx(80.0)


def test_score_clamped_to_100(make_snapshot):
    det = _detector([
        ScoreFactor("a", 1.0, _const(100.0)),
        ScoreFactor("b", 1.0, _const(100.0)),
    ])
    score, _ = det.score(make_snapshot())
    assert score == 100.0


def test_tuning_reaches_factors(make_snapshot):
    det = _detector([ScoreFactor("zone", 1.0, lambda s, t: t.vwap_proximity_percent * 100)])
    score, _ = det.score(make_snapshot(), DetectorTuning(vwap_proximity_percent=0.3))
    assert score == pytest.approx(30.0)


@pytest.mark.parametrize("weight", [0.0, -0.1, 1.5])
def test_factor_weight_must_be_in_unit_interval(weight):
    with pytest.raises(ConfigurationError):
        ScoreFactor("bad", weight, _const(0.0))


def test_detector_needs_factors():
    with pytest.raises(ConfigurationError, match="no score factors"):
        _detector([])


def test_duplicate_factor_names_rejected():
    with pytest.raises(ConfigurationError, match="duplicate"):
        _detector([ScoreFactor("a", 0.5, _const(1)), ScoreFactor("a", 0.5, _const(1))])


def test_asset_class_scope(make_snapshot):
    det = _detector([ScoreFactor("a", 1.0, _const(1))], asset_classes=frozenset({AssetClass.STOCK}))
    assert det.applies_to(make_snapshot(symbol="AAPL"))
    assert not det.applies_to(make_snapshot(symbol="SPY"))


def test_options_data_scope(make_snapshot, flow_snapshot):
    det = _detector([ScoreFactor("a", 1.0, _const(1))], requires_options_data=True)
    assert not det.applies_to(make_snapshot())
    assert det.applies_to(flow_snapshot)


def test_clamp():
    assert clamp(-5) == 0.0
    assert clamp(105) == 100.0
    assert clamp(42.5) == 42.5


@pytest.mark.parametrize("detector", ALL_DETECTORS, ids=lambda d: d.key)
def test_builtin_weights_sum_to_one(detector):
    assert detector.weight_sum == pytest.approx(1.0)


@pytest.mark.parametrize("detector", ALL_DETECTORS, ids=lambda d: d.key)
def test_builtin_gates_fail_on_empty_snapshot(detector, make_snapshot):
    assert detector.passes_gate(make_snapshot()) is False


@pytest.mark.parametrize("detector", ALL_DETECTORS, ids=lambda d: d.key)
def test_builtin_scores_bounded_and_deterministic(detector, orb_snapshot, flow_snapshot):
    for snap in (orb_snapshot, flow_snapshot):
        first = detector.score(snap)
        assert 0.0 <= first[0] <= 100.0
        assert detector.score(snap) == first
