from typing import List, Optional, Sequence

import numpy as np

from ..domain.entities.market_entity import BuySignal, MarketSnapshot
from ..domain.enums.dca_enums import RiskLevel, Trend


class IndicatorCalculationService:
    """
    Stateless indicator math over plain price series.

    Series are expected ascending by time. Nothing here does I/O; see
    MarketAnalysisService for the feed-backed snapshot.
    """

    @staticmethod
    def volatility(prices: Sequence[float]) -> float:
        """
        Coefficient of variation in percent: population stddev / mean * 100.
        0 for fewer than two samples or a zero mean.
        """
        if len(prices) < 2:
            return 0.0
        arr = np.asarray(prices, dtype=float)
        mean = float(arr.mean())
        if mean == 0:
            return 0.0
        return float(arr.std() / mean * 100.0)

    @staticmethod
    def moving_average(series: Sequence[float], period: int) -> Optional[float]:
        """
        Mean of the last `period` samples, None when the series is shorter.
        """
        if period <= 0 or len(series) < period:
            return None
        return float(np.mean(np.asarray(series[-period:], dtype=float)))

    @staticmethod
    def trend(price: float, ma7: Optional[float], ma30: Optional[float]) -> Trend:
        if ma7 is None or ma30 is None:
            return Trend.NEUTRAL
        if ma7 > ma30 and price > ma7:
            return Trend.BULLISH
        if ma7 < ma30 and price < ma7:
            return Trend.BEARISH
        return Trend.NEUTRAL

    @staticmethod
    def price_change(baseline: float, current: float) -> float:
        """Signed percent change from baseline to current."""
        if baseline == 0:
            return 0.0
        return (current - baseline) / baseline * 100.0

    @staticmethod
    def liquidity_score(total_liquidity: float, net_flow_24h: float, net_flow_7d: float) -> float:
        """
        0.5 is neutral. Inflows push towards 1, outflows towards 0.
        """
        if total_liquidity <= 0:
            return 0.5
        flow_24h_pct = net_flow_24h / total_liquidity * 100.0
        flow_7d_pct = net_flow_7d / total_liquidity * 100.0
        score = 0.5 + 0.06 * flow_24h_pct + 0.04 * flow_7d_pct
        return float(np.clip(score, 0.0, 1.0))

    @staticmethod
    def should_buy(snapshot: MarketSnapshot) -> BuySignal:
        score = 0.5
        reasons: List[str] = []

        if snapshot.volatility < 2:
            score += 0.1
            reasons.append("low volatility")
        elif snapshot.volatility > 10:
            score -= 0.2
            reasons.append("high volatility")

        # a falling market is still a buying opportunity for DCA
        if snapshot.trend is Trend.BULLISH:
            score += 0.2
            reasons.append("bullish trend")
        elif snapshot.trend is Trend.BEARISH:
            score += 0.1
            reasons.append("bearish trend, accumulating")

        if snapshot.price_change_24h < -5:
            score += 0.3
            reasons.append(f"price dip {snapshot.price_change_24h:.2f}%")

        if snapshot.liquidity_score < 0.3:
            score -= 0.2
            reasons.append("low liquidity")
        elif snapshot.liquidity_score > 0.7:
            score += 0.1
            reasons.append("strong liquidity")

        if snapshot.volume_ratio > 2:
            score -= 0.1
            reasons.append("volume spike")

        return BuySignal(
            should=score > 0.4,
            reason=", ".join(reasons) if reasons else "normal market conditions",
            confidence=float(np.clip(score, 0.0, 1.0)),
        )

    @staticmethod
    def assess_risk(snapshot: MarketSnapshot) -> RiskLevel:
        if snapshot.volatility > 15 or snapshot.liquidity_score < 0.2:
            return RiskLevel.HIGH
        if snapshot.volatility > 5 or snapshot.liquidity_score < 0.5:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
