# dca_agent/core/domain/entities/market_entity.py

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from ..enums.dca_enums import Trend


@dataclass(frozen=True)
class PricePoint:
    price: float
    timestamp: int  # unix seconds


@dataclass(frozen=True)
class VolumeStats:
    volume_24h: float
    previous_volume_24h: float
    swap_count: int

    @property
    def ratio(self) -> float:
        """Last 24h volume relative to the 24h window before it (1.0 when unknown)."""
        if self.swap_count <= 0 or self.previous_volume_24h <= 0:
            return 1.0
        return self.volume_24h / self.previous_volume_24h


@dataclass(frozen=True)
class LiquidityStats:
    total_liquidity: float
    net_flow_24h: float
    net_flow_7d: float


@dataclass(frozen=True)
class BuySignal:
    should: bool
    reason: str
    confidence: float


class MarketSnapshot(BaseModel):
    """
    Normalized view of a pair, recomputed on every evaluation.
    ma7 / ma30 stay None when history is too short.
    """

    price: float
    volatility: float = Field(..., ge=0)
    ma7: Optional[float] = None
    ma30: Optional[float] = None
    trend: Trend = Trend.NEUTRAL
    price_change_24h: float = 0.0
    volume_ratio: float = 1.0
    liquidity_score: float = Field(..., ge=0, le=1)
