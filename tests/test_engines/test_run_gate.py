"""Tests for host run gates and settings wiring."""

import pytest

from composite_engine.config import Settings
from composite_engine.engines.run_gate import (
    always_run,
    make_market_hours_gate,
    market_hours_gate,
    run_gate_from_settings,
)


@pytest.mark.parametrize("session, expected", [
    ({"is_regular_hours": True, "minutes_since_open": -30}, True),
    ({"is_regular_hours": False, "minutes_since_open": 60}, False),
    ({"minutes_since_open": 0}, True),
    ({"minutes_since_open": 390}, True),
    ({"minutes_since_open": 391}, False),
    ({"minutes_since_open": -5}, False),
    ({}, False),
])
def test_market_hours_gate(make_snapshot, session, expected):
    assert market_hours_gate(make_snapshot(session=session)) is expected


def test_custom_session_length(make_snapshot):
    half_day = make_market_hours_gate(210)
    assert half_day(make_snapshot(session={"minutes_since_open": 200}))
    assert not half_day(make_snapshot(session={"minutes_since_open": 240}))


def test_always_run(make_snapshot):
    assert always_run(make_snapshot())


def test_gate_from_settings(make_snapshot):
    unknown_timing = make_snapshot()
    assert run_gate_from_settings(Settings(market_hours_only=False, _env_file=None)) is always_run

    gate = run_gate_from_settings(Settings(regular_session_minutes=210, _env_file=None))
    assert not gate(unknown_timing)
    assert not gate(make_snapshot(session={"minutes_since_open": 240}))


def test_settings_env_prefix(monkeypatch):
    monkeypatch.setenv("COMPOSITE_ACTIVE_PROFILE", "aggressive")
    monkeypatch.setenv("COMPOSITE_MAX_WORKERS", "8")
    settings = Settings(_env_file=None)
    assert settings.active_profile == "aggressive"
    assert settings.max_workers == 8


def test_unknown_profile_name_warns(caplog):
    Settings(active_profile="yolo", _env_file=None)
    assert "Unrecognized profile 'yolo'" in caplog.text
