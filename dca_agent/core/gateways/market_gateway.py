from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.entities.market_entity import LiquidityStats, PricePoint, VolumeStats


class PriceFeed(ABC):
    """
    Pair-level prices, normally backed by the swap indexer.
    Prices are quoted as <buy> per <spend> as the pool reports them.
    """

    @abstractmethod
    async def current_price(self, pair_id: str) -> Optional[PricePoint]:
        """Latest traded price, None when the pair has no swaps at all."""
        raise NotImplementedError

    @abstractmethod
    async def historical_prices(self, pair_id: str, hours: int) -> List[float]:
        """Prices of the last `hours`, ascending by time."""
        raise NotImplementedError


class FlowFeed(ABC):

    @abstractmethod
    async def volume_24h(self, pair_id: str) -> VolumeStats:
        raise NotImplementedError

    @abstractmethod
    async def pool_liquidity(self, pair_id: str) -> LiquidityStats:
        """Pool liquidity and its net change over 24h / 7d."""
        raise NotImplementedError


class ReferencePriceFeed(ABC):

    @abstractmethod
    async def reference_price(self, symbol: str) -> float:
        """
        Spot price of `symbol` (e.g. "ETH/USD") from an oracle.
        Raises DataUnavailableError when stale or missing.
        """
        raise NotImplementedError
