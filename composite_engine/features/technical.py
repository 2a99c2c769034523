"""Intraday feature engineering: EMAs, SMA 200, RSI, ATR, session VWAP, RVOL,
opening range and premarket range, folded into a FeatureSnapshot.

This is a reference pipeline for hosts (and the CLI) that only have raw
bars. Production hosts usually build snapshots from their own feeds.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pandas_ta as ta

from composite_engine.contracts import (
    Bar,
    FeatureSnapshot,
    PatternData,
    PriceData,
    SessionData,
    VolumeData,
    VWAPData,
    asset_class_for_symbol,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("time", "open", "high", "low", "close", "volume")
EMA_PERIODS = (8, 21, 50)
ORB_MINUTES = 15
MAX_RAW_BARS = 120  # bars carried on the snapshot for pattern primitives


def _or_nan(series: pd.Series | None, df: pd.DataFrame) -> pd.Series:
    """pandas_ta returns None when there are fewer bars than the indicator length."""
    if series is None:
        return pd.Series(np.nan, index=df.index, dtype=float)
    return series


def compute_intraday_features(df: pd.DataFrame, session_open: float | None = None) -> pd.DataFrame:
    """Compute indicator columns on a one-minute OHLCV DataFrame.

    Expects columns: time (epoch seconds), open, high, low, close, volume.
    Bars before `session_open` (default: first bar) are treated as premarket
    and excluded from VWAP. Returns a copy with indicator columns appended.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"bars are missing columns: {', '.join(missing)}")
    if df.empty:
        return df

    df = df.sort_values("time").reset_index(drop=True).copy()
    if session_open is None:
        session_open = float(df["time"].iloc[0])
    df["is_regular"] = df["time"] >= session_open

    # --- Moving averages ---
    for period in EMA_PERIODS:
        df[f"ema_{period}"] = _or_nan(ta.ema(df["close"], length=period), df)
    df["sma_200"] = _or_nan(ta.sma(df["close"], length=200), df)

    # --- Momentum / volatility ---
    df["rsi_14"] = _or_nan(ta.rsi(df["close"], length=14), df)
    df["atr_14"] = _or_nan(ta.atr(df["high"], df["low"], df["close"], length=14), df)

    # --- Volume ---
    df["vol_sma_20"] = _or_nan(ta.sma(df["volume"], length=20), df)
    df["rvol"] = df["volume"] / df["vol_sma_20"].replace(0, np.nan)

    # --- Session VWAP (regular session only) ---
    typical_price = (df["high"] + df["low"] + df["close"]) / 3
    regular_volume = df["volume"].where(df["is_regular"], 0.0)
    cum_tp_vol = (typical_price * regular_volume).cumsum()
    cum_vol = regular_volume.cumsum()
    df["vwap"] = cum_tp_vol / cum_vol.replace(0, np.nan)

    return df


def _last(df: pd.DataFrame, column: str) -> float | None:
    if column not in df.columns or df.empty:
        return None
    value = df[column].iloc[-1]
    if value is None or pd.isna(value):
        return None
    return float(value)


def _range(frame: pd.DataFrame) -> tuple[float | None, float | None]:
    if frame.empty:
        return None, None
    return float(frame["high"].max()), float(frame["low"].min())


def build_snapshot(
    symbol: str,
    df: pd.DataFrame,
    session_open: float | None = None,
    prior_day_high: float | None = None,
    prior_day_low: float | None = None,
    regular_session_minutes: int = 390,
) -> FeatureSnapshot:
    """Fold the latest bar's features into an immutable FeatureSnapshot."""
    features = compute_intraday_features(df, session_open)
    if features.empty:
        return FeatureSnapshot(symbol=symbol, asset_class=asset_class_for_symbol(symbol))

    if session_open is None:
        session_open = float(features["time"].iloc[0])

    regular = features[features["is_regular"]]
    premarket = features[~features["is_regular"]]
    opening_range = regular[regular["time"] < session_open + ORB_MINUTES * 60]

    last_time = float(features["time"].iloc[-1])
    minutes = (last_time - session_open) / 60
    orb_complete = minutes >= ORB_MINUTES
    orb_high, orb_low = _range(opening_range) if orb_complete else (None, None)
    pm_high, pm_low = _range(premarket)

    bars = tuple(
        Bar(
            time=float(r.time), open=float(r.open), high=float(r.high),
            low=float(r.low), close=float(r.close), volume=float(r.volume),
        )
        for r in features.tail(MAX_RAW_BARS).itertuples(index=False)
    )

    ema = {period: _last(features, f"ema_{period}") for period in EMA_PERIODS}
    ema[200] = _last(features, "sma_200")
    rsi_14 = _last(features, "rsi_14")

    session_open_price = float(regular["open"].iloc[0]) if not regular.empty else None
    prev_close = float(features["close"].iloc[-2]) if len(features) > 1 else None

    snapshot = FeatureSnapshot(
        symbol=symbol,
        asset_class=asset_class_for_symbol(symbol),
        as_of=datetime.fromtimestamp(last_time, tz=timezone.utc),
        price=PriceData(
            current=_last(features, "close"),
            open=session_open_price,
            high=float(regular["high"].max()) if not regular.empty else None,
            low=float(regular["low"].min()) if not regular.empty else None,
            prev=prev_close,
        ),
        volume=VolumeData(
            current=_last(features, "volume"),
            average=_last(features, "vol_sma_20"),
            relative_to_avg=_last(features, "rvol"),
        ),
        ema={k: v for k, v in ema.items() if v is not None},
        vwap=VWAPData(value=_last(features, "vwap")),
        rsi={14: rsi_14} if rsi_14 is not None else {},
        session=SessionData(
            minutes_since_open=round(minutes, 2),
            is_regular_hours=0 <= minutes <= regular_session_minutes,
        ),
        pattern=PatternData(
            orb_high=orb_high,
            orb_low=orb_low,
            premarket_high=pm_high,
            premarket_low=pm_low,
            prior_day_high=prior_day_high,
            prior_day_low=prior_day_low,
            atr=_last(features, "atr_14"),
            raw_bars=bars,
        ),
    )
    logger.debug(
        "Built snapshot for %s: price=%s atr=%s rvol=%s minutes=%.0f",
        symbol, snapshot.current_price, snapshot.atr, snapshot.relative_volume, minutes,
    )
    return snapshot
