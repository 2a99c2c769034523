"""Data contracts: the typed feature snapshot consumed by every detector.

A FeatureSnapshot is built once per (symbol, tick) by the feature pipeline
and is immutable afterwards. Every optional numeric field is either a finite
float or None. NaN/inf from upstream is normalized to None on construction,
so consumers only ever have to test for absence.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


class FrozenModel(BaseModel):
    """Base for all snapshot models: unknown fields are forbidden, no mutation."""

    model_config = ConfigDict(extra="forbid", frozen=True)


def _finite_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    if not math.isfinite(value):
        return None
    return value


OptFloat = Annotated[Optional[float], AfterValidator(_finite_or_none)]


def _positive(value: float | None) -> float | None:
    """Prices, ATR and averages are only meaningful when > 0."""
    if value is None or value <= 0:
        return None
    return value


# ── Enums ──────────────────────────────────────────────────────────────────

class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class AssetClass(str, Enum):
    INDEX = "INDEX"
    EQUITY_ETF = "EQUITY_ETF"
    STOCK = "STOCK"


class DetectorType(str, Enum):
    """Closed set of strategy identifiers understood by the registry."""
    KCU_EMA_BOUNCE = "kcu_ema_bounce"
    KCU_VWAP_STANDARD = "kcu_vwap_standard"
    KCU_KING_QUEEN = "kcu_king_queen"
    KCU_ORB_BREAKOUT = "kcu_orb_breakout"
    INSTITUTIONAL_FLOW = "institutional_flow"


class TradeStyle(str, Enum):
    SCALP = "scalp"
    DAY = "day"
    SWING = "swing"


class SignalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class FlowBias(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Aggressiveness(str, Enum):
    PASSIVE = "PASSIVE"
    NORMAL = "NORMAL"
    AGGRESSIVE = "AGGRESSIVE"
    VERY_AGGRESSIVE = "VERY_AGGRESSIVE"


INDEX_SYMBOLS = {"SPX", "NDX", "RUT", "VIX"}
EQUITY_ETF_SYMBOLS = {
    "SPY", "QQQ", "IWM", "DIA",
    "XLF", "XLE", "XLK", "XLV", "XLI", "XLP", "XLU", "XLY", "XLB",
}


def asset_class_for_symbol(symbol: str) -> AssetClass:
    """Classify a ticker. Index prefixes ($SPX, I:SPX) are stripped first."""
    root = symbol.upper().strip()
    for prefix in ("I:", "$"):
        if root.startswith(prefix):
            root = root[len(prefix):]
    if root in INDEX_SYMBOLS:
        return AssetClass.INDEX
    if root in EQUITY_ETF_SYMBOLS:
        return AssetClass.EQUITY_ETF
    return AssetClass.STOCK


# ── Snapshot parts ─────────────────────────────────────────────────────────

class Bar(FrozenModel):
    """One OHLCV bar. Bars with non-finite values are rejected outright."""

    time: float  # epoch seconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @field_validator("time", "open", "high", "low", "close", "volume")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("bar values must be finite")
        return v

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low


class PriceData(FrozenModel):
    current: OptFloat = None
    open: OptFloat = None
    high: OptFloat = None
    low: OptFloat = None
    prev: OptFloat = None


class VolumeData(FrozenModel):
    current: OptFloat = None
    average: OptFloat = None
    relative_to_avg: OptFloat = None


class VWAPData(FrozenModel):
    value: OptFloat = None
    distance_percent: OptFloat = None


class SessionData(FrozenModel):
    minutes_since_open: OptFloat = None
    is_regular_hours: bool | None = None


class PatternData(FrozenModel):
    orb_high: OptFloat = None
    orb_low: OptFloat = None
    premarket_high: OptFloat = None
    premarket_low: OptFloat = None
    prior_day_high: OptFloat = None
    prior_day_low: OptFloat = None
    atr: OptFloat = None
    patient_candle: bool | None = None
    raw_bars: tuple[Bar, ...] = ()


class FlowData(FrozenModel):
    """Aggregated options-flow metrics for the symbol."""

    flow_score: OptFloat = None  # 0-100
    sweep_count: int = 0
    buy_pressure: OptFloat = None  # 0-100, share of flow at the ask
    large_trade_pct: OptFloat = None  # 0-100
    aggressiveness: Aggressiveness | None = None
    flow_bias: FlowBias = FlowBias.NEUTRAL


class OptionsData(FrozenModel):
    gamma_exposure: OptFloat = None
    max_pain: OptFloat = None
    put_call_ratio: OptFloat = None
    iv_percentile: OptFloat = None


# ── Snapshot ───────────────────────────────────────────────────────────────

class FeatureSnapshot(FrozenModel):
    """Read-only per-symbol bundle of derived market data."""

    symbol: str = Field(min_length=1)
    asset_class: AssetClass | None = None
    as_of: datetime | None = None

    price: PriceData = Field(default_factory=PriceData)
    volume: VolumeData = Field(default_factory=VolumeData)
    ema: dict[int, float] = Field(default_factory=dict)
    vwap: VWAPData = Field(default_factory=VWAPData)
    rsi: dict[int, float] = Field(default_factory=dict)
    mtf_rsi: dict[str, float] = Field(default_factory=dict)  # timeframe -> RSI
    session: SessionData = Field(default_factory=SessionData)
    pattern: PatternData = Field(default_factory=PatternData)

    flow: FlowData | None = None
    options: OptionsData | None = None

    @field_validator("ema", "rsi", "mtf_rsi")
    @classmethod
    def _drop_non_finite(cls, v: dict) -> dict:
        return {k: val for k, val in v.items() if val is not None and math.isfinite(val)}

    # Accessors: absence (or an out-of-range value) comes back as None.

    @property
    def current_price(self) -> float | None:
        return _positive(self.price.current)

    @property
    def vwap_value(self) -> float | None:
        return _positive(self.vwap.value)

    @property
    def atr(self) -> float | None:
        return _positive(self.pattern.atr)

    @property
    def relative_volume(self) -> float | None:
        rv = self.volume.relative_to_avg
        if rv is None or rv < 0:
            return None
        return rv

    @property
    def minutes_since_open(self) -> float | None:
        return self.session.minutes_since_open

    @property
    def bars(self) -> tuple[Bar, ...]:
        return self.pattern.raw_bars

    def ma(self, period: int) -> float | None:
        return _positive(self.ema.get(period))

    def rsi_value(self, period: int = 14) -> float | None:
        value = self.rsi.get(period)
        if value is None or not 0 <= value <= 100:
            return None
        return value

    def level(self, name: str) -> float | None:
        """Positive pattern level by field name (orb_high, premarket_low, ...)."""
        return _positive(getattr(self.pattern, name))

    @property
    def resolved_asset_class(self) -> AssetClass:
        return self.asset_class or asset_class_for_symbol(self.symbol)

    @property
    def has_options_data(self) -> bool:
        return self.options is not None or self.flow is not None
