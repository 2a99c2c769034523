"""ATR-based entry, stop and targets per trade style."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from composite_engine.contracts import Direction, FeatureSnapshot

PRIMARY_TARGET_INDEX = 1  # R:R is measured to the second target


@dataclass(frozen=True)
class RiskLevels:
    entry: float | None = None
    stop: float | None = None
    targets: tuple[float, ...] = field(default_factory=tuple)
    risk_reward: float | None = None


def compute_risk_levels(
    snapshot: FeatureSnapshot,
    direction: Direction,
    stop_atr: float,
    target_atr: Sequence[float],
) -> RiskLevels:
    """Entry at the current price; stop and targets are ATR multiples away.

    An unknown ATR leaves stop, targets and R:R unset rather than guessing
    a volatility figure.
    """
    entry = snapshot.current_price
    if entry is None:
        return RiskLevels()

    atr = snapshot.atr
    if atr is None or not target_atr:
        return RiskLevels(entry=round(entry, 2))

    sign = 1 if direction is Direction.LONG else -1
    stop = entry - sign * atr * stop_atr
    targets = tuple(round(entry + sign * atr * m, 2) for m in target_atr)

    risk = abs(entry - stop)
    primary = targets[min(PRIMARY_TARGET_INDEX, len(targets) - 1)]
    reward = abs(primary - entry)
    risk_reward = round(reward / risk, 2) if risk > 0 else None

    return RiskLevels(
        entry=round(entry, 2),
        stop=round(stop, 2),
        targets=targets,
        risk_reward=risk_reward,
    )
