"""Run gates: host-supplied "should any detector run now?" predicates."""

from __future__ import annotations

from typing import Callable

from composite_engine.config import Settings
from composite_engine.contracts import FeatureSnapshot

RunGate = Callable[[FeatureSnapshot], bool]

REGULAR_SESSION_MINUTES = 390


def always_run(snapshot: FeatureSnapshot) -> bool:
    return True


def make_market_hours_gate(session_minutes: int = REGULAR_SESSION_MINUTES) -> RunGate:
    """Regular-hours flag when the feed supplies one, else minutes since open.

    Unknown session timing never runs.
    """

    def market_hours_gate(snapshot: FeatureSnapshot) -> bool:
        if snapshot.session.is_regular_hours is not None:
            return snapshot.session.is_regular_hours
        minutes = snapshot.minutes_since_open
        if minutes is None:
            return False
        return 0 <= minutes <= session_minutes

    return market_hours_gate


market_hours_gate = make_market_hours_gate()


def run_gate_from_settings(settings: Settings) -> RunGate:
    if not settings.market_hours_only:
        return always_run
    return make_market_hours_gate(settings.regular_session_minutes)
