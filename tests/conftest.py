"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

from composite_engine.contracts import Bar, FeatureSnapshot

SESSION_OPEN = 1_700_000_000.0  # epoch seconds of the regular-session open

# One swing per wave: up two legs, back one and a half. Read at lookback 2
# this gives strictly higher highs and higher lows; the last ten bars alone
# show no structure at lookback 1.
WAVE_OFFSETS = (0.0, 0.8, 1.6, 1.0, 0.5)


def _bars_from_mids(mids, spread=0.3, body=0.1, start=SESSION_OPEN, volume=1000.0):
    bars = []
    for i, mid in enumerate(mids):
        bars.append(Bar(
            time=start + i * 60,
            open=mid - body,
            high=mid + spread,
            low=mid - spread,
            close=mid + body,
            volume=volume,
        ))
    return tuple(bars)


@pytest.fixture
def bars_from_mids():
    """Build one-minute bars around a list of mid prices."""
    return _bars_from_mids


@pytest.fixture
def wave_bars():
    """Return a builder for a clean stair-step trend (4 waves = 20 bars)."""

    def build(n_waves: int = 4, base: float = 100.0, step: float = 1.0, up: bool = True):
        sign = 1 if up else -1
        mids = [base + sign * step * (k + offset) for k in range(n_waves) for offset in WAVE_OFFSETS]
        return _bars_from_mids(mids)

    return build


@pytest.fixture
def uptrend_bars(wave_bars):
    return wave_bars(up=True)


@pytest.fixture
def downtrend_bars(wave_bars):
    return wave_bars(up=False)


@pytest.fixture
def micro_uptrend_bars(bars_from_mids):
    """Choppy main structure with a clean micro uptrend in the last ten bars."""
    mids = [
        110, 109, 110, 108, 109, 107, 108, 106, 107, 105,
        106, 105.5, 107, 106.5, 108, 107.5, 109, 108.5, 110, 109.5,
    ]
    return bars_from_mids(mids)


@pytest.fixture
def make_snapshot():
    """Return a FeatureSnapshot factory; keyword sections accept plain dicts."""

    def build(symbol: str = "SPY", **sections) -> FeatureSnapshot:
        return FeatureSnapshot(symbol=symbol, **sections)

    return build


@pytest.fixture
def orb_snapshot(make_snapshot) -> FeatureSnapshot:
    """SPY 20 minutes in, breaking out of a 99.00-100.60 opening range on 2x volume."""
    return make_snapshot(
        as_of=datetime(2025, 3, 3, 14, 50, tzinfo=timezone.utc),
        price={"current": 101.0, "open": 99.6, "high": 101.1, "low": 99.5},
        volume={"current": 250_000, "average": 125_000, "relative_to_avg": 2.0},
        ema={8: 100.9},
        vwap={"value": 100.8},
        session={"minutes_since_open": 20},
        pattern={"orb_high": 100.6, "orb_low": 99.0, "atr": 1.0},
    )


@pytest.fixture
def flow_snapshot(make_snapshot) -> FeatureSnapshot:
    """Heavy bullish sweep activity with no price-action setup."""
    return make_snapshot(
        symbol="AAPL",
        price={"current": 190.0},
        volume={"current": 1_200_000, "relative_to_avg": 1.1},
        vwap={"value": 186.0},
        session={"minutes_since_open": 45},
        pattern={"atr": 2.0},
        flow={
            "flow_score": 92,
            "sweep_count": 8,
            "buy_pressure": 82,
            "large_trade_pct": 55,
            "aggressiveness": "VERY_AGGRESSIVE",
            "flow_bias": "bullish",
        },
    )


@pytest.fixture
def sample_intraday() -> pd.DataFrame:
    """Generate 60 one-minute bars of synthetic regular-session OHLCV data."""
    np.random.seed(42)
    n = 60
    times = SESSION_OPEN + np.arange(n) * 60.0

    close = 100 + np.cumsum(np.random.randn(n) * 0.15)

    df = pd.DataFrame({
        "time": times,
        "open": close + np.random.randn(n) * 0.05,
        "high": close + abs(np.random.randn(n)) * 0.2,
        "low": close - abs(np.random.randn(n)) * 0.2,
        "close": close,
        "volume": np.random.randint(50_000, 250_000, n).astype(float),
    })
    # Ensure high >= close >= low
    df["high"] = df[["open", "high", "close"]].max(axis=1)
    df["low"] = df[["open", "low", "close"]].min(axis=1)
    return df
