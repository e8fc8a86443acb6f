import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict

from dotenv import load_dotenv

load_dotenv()

# Sepolia defaults (SwapRouter02 / QuoterV2 and the test USDC / WETH deployments)
DEFAULT_TOKENS = {
    "USDC": {"address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238", "decimals": 6},
    "WETH": {"address": "0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14", "decimals": 18},
    "DAI": {"address": "0xFF34B3d4Aee8ddCd6F9AFFFB6Fe49bD371b8a357", "decimals": 18},
}


# shares of STEP_TIMEOUT_SEC: 4 requests before broadcast + receipt wait + replay <= 1
RPC_REQUEST_SHARE = 0.1
RECEIPT_WAIT_SHARE = 0.5


@dataclass
class TokenInfo:
    symbol: str
    address: str
    decimals: int


@dataclass
class Settings:
    # storage
    MONGODB_URI: str
    MONGODB_DB_NAME: str

    # chain / signing
    RPC_URL: str
    ENCRYPTION_SECRET_KEY: str  # 64 hex chars, AES-256
    SWAP_ROUTER_ADDRESS: str
    QUOTER_ADDRESS: str
    DEFAULT_SWAP_POOL_FEE: int

    # market data
    INDEXER_GRAPHQL_URL: str
    HERMES_API_URL: str
    REFERENCE_SYMBOL: str  # asset used to value swap output, e.g. ETH/USD

    # pipeline bounds
    STEP_TIMEOUT_SEC: float = 45.0
    CHECK_INTERVAL_SEC: int = 60
    APPROVE_GAS_LIMIT: int = 100_000
    SWAP_GAS_LIMIT: int = 300_000
    FUNDING_GAS_LIMIT: int = 800_000
    GAS_RESERVE_WEI: int = 0  # 0 = gas is sponsored, no native top-up
    PRICE_CACHE_TTL_SEC: int = 300

    # notifications
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    TOKENS: Dict[str, TokenInfo] = field(default_factory=dict)

    @property
    def rpc_request_timeout_sec(self) -> float:
        return self.STEP_TIMEOUT_SEC * RPC_REQUEST_SHARE

    @property
    def receipt_timeout_sec(self) -> float:
        """
        Node-side bounds are carved out of STEP_TIMEOUT_SEC (a few RPC requests
        before broadcast, the receipt wait, one revert replay) so the worker
        thread is done before the step times out and the delegate lock is freed.
        """
        return self.STEP_TIMEOUT_SEC * RECEIPT_WAIT_SHARE

    def token(self, symbol: str) -> TokenInfo:
        tok = self.TOKENS.get(symbol.upper())
        if tok is None:
            # ETH trades as WETH on the v3 router
            if symbol.upper() == "ETH" and "WETH" in self.TOKENS:
                return self.TOKENS["WETH"]
            raise ValueError(f"Unknown token: {symbol}")
        return tok


def _tokens(raw: str | None) -> Dict[str, TokenInfo]:
    table = json.loads(raw) if raw else DEFAULT_TOKENS
    return {
        sym.upper(): TokenInfo(symbol=sym.upper(), address=meta["address"], decimals=int(meta["decimals"]))
        for sym, meta in table.items()
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        MONGODB_URI=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        MONGODB_DB_NAME=os.getenv("MONGODB_DB_NAME", "dca_agent"),

        RPC_URL=os.getenv("RPC_URL", "https://rpc.sepolia.org"),
        ENCRYPTION_SECRET_KEY=os.environ.get("ENCRYPTION_SECRET_KEY", ""),  # keep empty when missing
        SWAP_ROUTER_ADDRESS=os.getenv("SWAP_ROUTER_ADDRESS", "0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E"),
        QUOTER_ADDRESS=os.getenv("QUOTER_ADDRESS", "0xEd1f6473345F45b75F8179591dd5bA1888cf2FB3"),
        DEFAULT_SWAP_POOL_FEE=int(os.getenv("DEFAULT_SWAP_POOL_FEE", 3000)),

        INDEXER_GRAPHQL_URL=os.getenv("INDEXER_GRAPHQL_URL", "http://localhost:8080/v1/graphql"),
        HERMES_API_URL=os.getenv("HERMES_API_URL", "https://hermes.pyth.network"),
        REFERENCE_SYMBOL=os.getenv("REFERENCE_SYMBOL", "ETH/USD"),

        STEP_TIMEOUT_SEC=float(os.getenv("STEP_TIMEOUT_SEC", "45")),
        CHECK_INTERVAL_SEC=int(os.getenv("CHECK_INTERVAL_SEC", "60")),
        APPROVE_GAS_LIMIT=int(os.getenv("APPROVE_GAS_LIMIT", "100000")),
        SWAP_GAS_LIMIT=int(os.getenv("SWAP_GAS_LIMIT", "300000")),
        FUNDING_GAS_LIMIT=int(os.getenv("FUNDING_GAS_LIMIT", "800000")),
        GAS_RESERVE_WEI=int(os.getenv("GAS_RESERVE_WEI", "0")),
        PRICE_CACHE_TTL_SEC=int(os.getenv("PRICE_CACHE_TTL_SEC", "300")),

        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        TELEGRAM_CHAT_ID=os.getenv("TELEGRAM_CHAT_ID", ""),

        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        TOKENS=_tokens(os.getenv("TOKENS")),
    )
