"""Tests for data-availability confidence."""

import pytest

from composite_engine.signals.confidence import DATA_POINTS, apply_confidence, assess_data


def test_full_critical_set_leaves_score_alone(orb_snapshot):
    confidence = assess_data(orb_snapshot)
    assert confidence.missing_critical == ()
    assert confidence.score_cap == 100.0
    assert confidence.completeness == pytest.approx(69.9)
    assert "rsi" in confidence.missing
    assert apply_confidence(80.0, confidence) == 80.0


def test_empty_snapshot(make_snapshot):
    confidence = assess_data(make_snapshot())
    assert confidence.missing_critical == ("price", "volume", "vwap", "atr")
    assert confidence.score_cap == 40.0
    assert confidence.completeness == 0.0
    assert confidence.confidence == 0.0
    assert confidence.level == "very_low"
    assert apply_confidence(95.0, confidence) == 40.0


@pytest.mark.parametrize("sections, missing", [
    ({"price": {"current": 10.0}, "vwap": {"value": 10.0}, "pattern": {"atr": 0.2}}, ("volume",)),
    ({"price": {"current": 10.0}, "volume": {"current": 5000}, "pattern": {"atr": 0.2}}, ("vwap",)),
    ({"price": {"current": 10.0}, "volume": {"relative_to_avg": 1.2}, "vwap": {"value": 10.0}}, ("atr",)),
])
def test_each_missing_critical_input_costs_fifteen(make_snapshot, sections, missing):
    confidence = assess_data(make_snapshot(**sections))
    assert confidence.missing_critical == missing
    assert confidence.score_cap == 85.0
    assert apply_confidence(70.0, confidence) == 70.0
    assert apply_confidence(90.0, confidence) == 85.0


def test_non_positive_values_count_as_missing(make_snapshot):
    confidence = assess_data(make_snapshot(price={"current": 0.0}, pattern={"atr": -1.0}))
    assert "price" in confidence.missing_critical
    assert "atr" in confidence.missing_critical


def test_critical_inputs():
    assert [p.name for p in DATA_POINTS if p.critical] == ["price", "volume", "vwap", "atr"]
