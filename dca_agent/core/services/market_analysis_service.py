import logging
from typing import Optional

from ..domain.entities.market_entity import MarketSnapshot
from ..exceptions import DataUnavailableError
from ..gateways.market_gateway import FlowFeed, PriceFeed
from .indicator_calculation_service import IndicatorCalculationService

# moving averages run over hourly samples of the 7d / 30d windows
MA7_HOURS = 7 * 24
MA30_HOURS = 30 * 24


class MarketAnalysisService:
    """
    Builds a MarketSnapshot for a pair from the price and flow feeds.

    Missing current price or an empty 24h series raises DataUnavailableError;
    the decision layer turns that into a skip. Nothing is defaulted here.
    """

    def __init__(
        self,
        price_feed: PriceFeed,
        flow_feed: FlowFeed,
        indicators: Optional[IndicatorCalculationService] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._prices = price_feed
        self._flows = flow_feed
        self._ind = indicators or IndicatorCalculationService()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def analyze_market(self, pair_id: str) -> MarketSnapshot:
        current = await self._prices.current_price(pair_id)
        if current is None or current.price <= 0:
            raise DataUnavailableError("no price data available")

        prices_24h = await self._prices.historical_prices(pair_id, 24)
        if not prices_24h:
            raise DataUnavailableError(f"no 24h price history for {pair_id}")

        prices_7d = await self._prices.historical_prices(pair_id, MA7_HOURS)
        prices_30d = await self._prices.historical_prices(pair_id, MA30_HOURS)
        volume = await self._flows.volume_24h(pair_id)
        liquidity = await self._flows.pool_liquidity(pair_id)

        ma7 = self._ind.moving_average(prices_7d, 7)
        ma30 = self._ind.moving_average(prices_30d, 30)

        snapshot = MarketSnapshot(
            price=current.price,
            volatility=self._ind.volatility(prices_24h),
            ma7=ma7,
            ma30=ma30,
            trend=self._ind.trend(current.price, ma7, ma30),
            price_change_24h=self._ind.price_change(prices_24h[0], current.price),
            volume_ratio=volume.ratio,
            liquidity_score=self._ind.liquidity_score(
                liquidity.total_liquidity, liquidity.net_flow_24h, liquidity.net_flow_7d
            ),
        )
        self._logger.debug("snapshot %s: %s", pair_id, snapshot.model_dump())
        return snapshot
