import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ....core.domain.entities.market_entity import LiquidityStats, PricePoint, VolumeStats
from ....core.exceptions import DataUnavailableError
from ....core.gateways.market_gateway import FlowFeed, PriceFeed
from ..pricing.ttl_cache import TtlCache

DAY_SEC = 86_400

SWAPS_QUERY = """
query Swaps($pair: String!, $since: numeric!, $limit: Int!) {
  Swap(
    where: {pairId: {_eq: $pair}, timestamp: {_gte: $since}}
    order_by: {timestamp: asc}
    limit: $limit
  ) {
    amountIn
    amountOut
    timestamp
  }
}
"""

LATEST_SWAP_QUERY = """
query LatestSwap($pair: String!) {
  Swap(where: {pairId: {_eq: $pair}}, order_by: {timestamp: desc}, limit: 1) {
    amountIn
    amountOut
    timestamp
  }
}
"""

LIQUIDITY_QUERY = """
query Liquidity($pair: String!) {
  ModifyLiquidity(where: {pairId: {_eq: $pair}}, order_by: {timestamp: desc}) {
    liquidityDelta
    timestamp
  }
}
"""


def _swap_price(swap: Dict[str, Any]) -> Optional[float]:
    amount_in = float(swap["amountIn"])
    if amount_in == 0:
        return None
    return abs(float(swap["amountOut"]) / amount_in)


def _swap_volume(swaps: List[Dict[str, Any]]) -> float:
    return sum(abs(float(s["amountIn"])) + abs(float(s["amountOut"])) for s in swaps)


class IndexerGraphqlClient(PriceFeed, FlowFeed):
    """
    Price and flow feed backed by the swap indexer's GraphQL endpoint.

    Price of a swap = amountOut / amountIn. Volume of a window is the sum of
    |amountIn| + |amountOut|. Liquidity is the running sum of liquidityDelta.
    Historical series are cached per (pair, hours) for the cache TTL.
    """

    def __init__(
        self,
        graphql_url: str,
        cache: Optional[TtlCache] = None,
        timeout_sec: float = 15.0,
        max_rows: int = 5_000,
        logger: Optional[logging.Logger] = None,
    ):
        self._url = graphql_url
        self._cache = cache
        self._timeout = timeout_sec
        self._max_rows = max_rows
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.post(self._url, json={"query": query, "variables": variables})
        except httpx.HTTPError as exc:
            raise DataUnavailableError(f"indexer request failed: {exc}") from exc
        if r.status_code != 200:
            self._logger.warning("indexer non-200 %s: %s %s", self._url, r.status_code, r.text[:300])
            raise DataUnavailableError(f"indexer error: {r.status_code}")
        body = r.json()
        if body.get("errors"):
            raise DataUnavailableError(f"indexer query error: {body['errors'][0].get('message')}")
        return body.get("data") or {}

    async def _swaps_since(self, pair_id: str, since: int) -> List[Dict[str, Any]]:
        data = await self._query(SWAPS_QUERY, {"pair": pair_id, "since": since, "limit": self._max_rows})
        return data.get("Swap") or []

    async def current_price(self, pair_id: str) -> Optional[PricePoint]:
        data = await self._query(LATEST_SWAP_QUERY, {"pair": pair_id})
        swaps = data.get("Swap") or []
        if not swaps:
            self._logger.warning("no swaps found for pair %s", pair_id)
            return None
        price = _swap_price(swaps[0])
        if price is None:
            return None
        return PricePoint(price=price, timestamp=int(swaps[0]["timestamp"]))

    async def historical_prices(self, pair_id: str, hours: int) -> List[float]:
        key = ("prices", pair_id, int(hours))
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        since = int(time.time()) - int(hours) * 3600
        swaps = await self._swaps_since(pair_id, since)
        prices = [p for p in (_swap_price(s) for s in swaps) if p is not None]
        self._logger.debug("%s: %d prices over %dh", pair_id, len(prices), hours)

        if self._cache is not None:
            self._cache.set(key, prices)
        return prices

    async def volume_24h(self, pair_id: str) -> VolumeStats:
        now = int(time.time())
        swaps = await self._swaps_since(pair_id, now - 2 * DAY_SEC)
        last = [s for s in swaps if int(s["timestamp"]) >= now - DAY_SEC]
        previous = [s for s in swaps if int(s["timestamp"]) < now - DAY_SEC]
        return VolumeStats(
            volume_24h=_swap_volume(last),
            previous_volume_24h=_swap_volume(previous),
            swap_count=len(last),
        )

    async def pool_liquidity(self, pair_id: str) -> LiquidityStats:
        data = await self._query(LIQUIDITY_QUERY, {"pair": pair_id})
        mods = data.get("ModifyLiquidity") or []
        now = int(time.time())
        total = net_24h = net_7d = 0
        for mod in mods:
            delta = int(mod["liquidityDelta"])
            age = now - int(mod["timestamp"])
            total += delta
            if age <= DAY_SEC:
                net_24h += delta
            if age <= 7 * DAY_SEC:
                net_7d += delta
        return LiquidityStats(total_liquidity=float(total), net_flow_24h=float(net_24h), net_flow_7d=float(net_7d))
