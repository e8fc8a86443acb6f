import logging
import time
from typing import Dict, Optional

import httpx

from ....core.exceptions import DataUnavailableError
from ....core.gateways.market_gateway import ReferencePriceFeed
from .ttl_cache import TtlCache

PRICE_FEED_IDS: Dict[str, str] = {
    "ETH/USD": "0xff61491a931112ddf1bd8147cd1b641375f79f5825126d665480874634fd0ace",
    "BTC/USD": "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    "SOL/USD": "0xef0d8b6fda2ceba41da15d4095d1da392a0d2f8ed0c6c7bc0f4cfac8c280b56d",
}


class PythHermesClient(ReferencePriceFeed):
    """
    Reference spot prices from the Pyth Hermes REST API.

    GET {base_url}/v2/updates/price/latest?ids[]=<feed id>
    price = price.price * 10**price.expo, rejected when older than max_age_sec.
    """

    def __init__(
        self,
        base_url: str,
        cache: Optional[TtlCache] = None,
        max_age_sec: int = 60,
        timeout_sec: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._cache = cache
        self._max_age = max_age_sec
        self._timeout = timeout_sec
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def parse_price(payload: Dict, symbol: str, max_age_sec: int, now: Optional[float] = None) -> float:
        parsed = payload.get("parsed") or []
        if not parsed:
            raise DataUnavailableError(f"No price data returned for {symbol}")
        price_data = parsed[0]["price"]
        price = int(price_data["price"]) * (10 ** int(price_data["expo"]))
        age = int(now if now is not None else time.time()) - int(price_data["publish_time"])
        if age > max_age_sec:
            raise DataUnavailableError(f"Price for {symbol} is too stale: {age}s old (max: {max_age_sec}s)")
        return float(price)

    async def reference_price(self, symbol: str) -> float:
        feed_id = PRICE_FEED_IDS.get(symbol.upper())
        if feed_id is None:
            raise DataUnavailableError(f"Price feed not found for symbol: {symbol}")

        if self._cache is not None:
            cached = self._cache.get(("pyth", feed_id))
            if cached is not None:
                return cached

        url = f"{self._base_url}/v2/updates/price/latest"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.get(url, params={"ids[]": feed_id}, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise DataUnavailableError(f"Hermes request failed for {symbol}: {exc}") from exc
        if r.status_code != 200:
            self._logger.warning("hermes non-200 %s: %s %s", url, r.status_code, r.text[:300])
            raise DataUnavailableError(f"Hermes API error: {r.status_code}")

        price = self.parse_price(r.json(), symbol, self._max_age)
        self._logger.info("%s from Pyth: %.2f", symbol, price)
        if self._cache is not None:
            self._cache.set(("pyth", feed_id), price)
        return price
