"""Institutional options-flow detector.

Fires on heavy, aggressive, one-sided flow: a high institutional score,
repeated sweeps, lopsided buy (or sell) pressure, and a large share of
block-sized trades.
"""

from __future__ import annotations

import logging

from composite_engine.contracts import (
    Aggressiveness,
    DetectorType,
    Direction,
    FeatureSnapshot,
    FlowBias,
    FlowData,
)
from composite_engine.signals.base import DetectorTuning, OpportunityDetector, ScoreFactor, clamp

logger = logging.getLogger(__name__)

MIN_FLOW_SCORE = 80.0
MIN_SWEEPS = 5
MIN_PRESSURE = 70.0  # buy pressure for longs, sell pressure (100 - buy) for shorts
MIN_LARGE_TRADE_PCT = 40.0
AGGRESSIVE = {Aggressiveness.AGGRESSIVE, Aggressiveness.VERY_AGGRESSIVE}


def directional_pressure(flow: FlowData, direction: Direction) -> float | None:
    if flow.buy_pressure is None:
        return None
    if direction is Direction.LONG:
        return flow.buy_pressure
    return 100 - flow.buy_pressure


def _gate(direction: Direction):
    wanted_bias = FlowBias.BULLISH if direction is Direction.LONG else FlowBias.BEARISH

    def gate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> bool:
        flow = snapshot.flow
        if flow is None:
            return False
        if flow.flow_score is None or flow.flow_score < MIN_FLOW_SCORE:
            return False
        if flow.sweep_count < MIN_SWEEPS:
            return False
        pressure = directional_pressure(flow, direction)
        if pressure is None or pressure < MIN_PRESSURE:
            return False
        if flow.large_trade_pct is None or flow.large_trade_pct < MIN_LARGE_TRADE_PCT:
            return False
        if flow.aggressiveness not in AGGRESSIVE:
            return False
        if flow.flow_bias is not wanted_bias:
            return False

        logger.debug(
            "%s flow alert (%s): %d sweeps, score %.0f, %.0f%% pressure, %.0f%% large trades",
            snapshot.symbol, direction.value, flow.sweep_count, flow.flow_score,
            pressure, flow.large_trade_pct,
        )
        return True

    return gate


def institutional_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    flow = snapshot.flow
    if flow is None or flow.flow_score is None:
        return 0.0
    score = flow.flow_score
    if score >= 95:
        return 100.0
    if score >= 90:
        return 95.0
    if score >= 85:
        return 90.0
    if score >= 80:
        return 85.0
    return clamp(score)


def sweep_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    flow = snapshot.flow
    if flow is None:
        return 0.0
    if flow.sweep_count >= 10:
        return 100.0
    if flow.sweep_count >= 8:
        return 95.0
    if flow.sweep_count >= 6:
        return 90.0
    if flow.sweep_count >= 5:
        return 85.0
    return 0.0


def _pressure_score(direction: Direction):
    def evaluate(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
        if snapshot.flow is None:
            return 0.0
        pressure = directional_pressure(snapshot.flow, direction)
        if pressure is None:
            return 0.0
        if pressure >= 85:
            return 100.0
        if pressure >= 80:
            return 95.0
        if pressure >= 75:
            return 90.0
        if pressure >= 70:
            return 85.0
        return 0.0

    return evaluate


def large_trade_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    flow = snapshot.flow
    if flow is None or flow.large_trade_pct is None:
        return 0.0
    if flow.large_trade_pct >= 60:
        return 100.0
    if flow.large_trade_pct >= 50:
        return 90.0
    if flow.large_trade_pct >= 40:
        return 80.0
    return 0.0


def aggressiveness_score(snapshot: FeatureSnapshot, tuning: DetectorTuning) -> float:
    flow = snapshot.flow
    if flow is None or flow.aggressiveness is None:
        return 0.0
    if flow.aggressiveness is Aggressiveness.VERY_AGGRESSIVE:
        return 100.0
    if flow.aggressiveness is Aggressiveness.AGGRESSIVE:
        return 90.0
    return 50.0


def build_institutional_flow(direction: Direction) -> OpportunityDetector:
    return OpportunityDetector(
        type=DetectorType.INSTITUTIONAL_FLOW,
        direction=direction,
        gate=_gate(direction),
        factors=(
            ScoreFactor("institutional_score", 0.35, institutional_score),
            ScoreFactor("sweep_intensity", 0.25, sweep_score),
            ScoreFactor("buy_sell_pressure", 0.2, _pressure_score(direction)),
            ScoreFactor("large_trade_pct", 0.15, large_trade_score),
            ScoreFactor("aggressiveness", 0.05, aggressiveness_score),
        ),
        requires_options_data=True,
        ideal_timeframe="1m",
        description="Aggressive one-sided institutional options flow",
    )


INSTITUTIONAL_FLOW_LONG = build_institutional_flow(Direction.LONG)
INSTITUTIONAL_FLOW_SHORT = build_institutional_flow(Direction.SHORT)
