"""
Shared fixtures: in-memory repositories and fake gateways for the DCA core.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from eth_account import Account

from dca_agent.config import DEFAULT_TOKENS, Settings, TokenInfo
from dca_agent.core.domain.entities.account_entity import SessionAccountEntity, UserEntity
from dca_agent.core.domain.entities.chain_entity import ContractCall, TxReceipt
from dca_agent.core.domain.entities.execution_entity import ExecutionEntity
from dca_agent.core.domain.entities.market_entity import LiquidityStats, PricePoint, VolumeStats
from dca_agent.core.domain.entities.permission_entity import Erc20PeriodicPermission, NativePeriodicPermission
from dca_agent.core.domain.entities.strategy_entity import StrategyEntity
from dca_agent.core.domain.enums.dca_enums import ExecutionStatus, PermissionKind, StrategyFrequency
from dca_agent.core.gateways.chain_gateway import ChainReader, DelegationExecutor, SwapBuilder
from dca_agent.core.gateways.execution_publisher import ExecutionPublisher
from dca_agent.core.gateways.market_gateway import FlowFeed, PriceFeed, ReferencePriceFeed
from dca_agent.core.repositories.account_repository import SessionAccountRepository, UserRepository
from dca_agent.core.repositories.execution_repository import ExecutionRepository
from dca_agent.core.repositories.permission_repository import PermissionRepository
from dca_agent.core.repositories.strategy_repository import StrategyRepository
from dca_agent.core.services.session_key_cipher import SessionKeyCipher

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
SECRET_KEY_HEX = "ab" * 32
DELEGATE_KEY = "0x" + "11" * 32
PRINCIPAL = "0x000000000000000000000000000000000000bEEF"
ROUTER = "0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E"
USDC = DEFAULT_TOKENS["USDC"]["address"]
WETH = DEFAULT_TOKENS["WETH"]["address"]


def make_settings(**overrides) -> Settings:
    fields = dict(
        MONGODB_URI="mongodb://localhost:27017",
        MONGODB_DB_NAME="dca_test",
        RPC_URL="http://localhost:8545",
        ENCRYPTION_SECRET_KEY=SECRET_KEY_HEX,
        SWAP_ROUTER_ADDRESS=ROUTER,
        QUOTER_ADDRESS="0xEd1f6473345F45b75F8179591dd5bA1888cf2FB3",
        DEFAULT_SWAP_POOL_FEE=3000,
        INDEXER_GRAPHQL_URL="http://localhost:8080/v1/graphql",
        HERMES_API_URL="https://hermes.pyth.network",
        REFERENCE_SYMBOL="ETH/USD",
        STEP_TIMEOUT_SEC=2.0,
        TOKENS={
            sym: TokenInfo(symbol=sym, address=meta["address"], decimals=meta["decimals"])
            for sym, meta in DEFAULT_TOKENS.items()
        },
    )
    fields.update(overrides)
    return Settings(**fields)


def topic_for(address: str) -> str:
    return "0x" + "0" * 24 + address.lower()[2:]


def transfer_log(token: str, src: str, dst: str, amount: int) -> Dict:
    return {
        "address": token,
        "topics": [TRANSFER_TOPIC, topic_for(src), topic_for(dst)],
        "data": hex(amount),
    }


def make_strategy(**overrides) -> StrategyEntity:
    fields = dict(
        id="strat-1",
        user_id="user-1",
        pair_id="USDC/WETH",
        frequency=StrategyFrequency.HOURLY,
        base_amount=1_000_000,
        slippage=0.5,
        next_check_time=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return StrategyEntity(**fields)


# ---------- repositories ----------

class InMemoryStrategyRepository(StrategyRepository):
    def __init__(self, strategies: Optional[List[StrategyEntity]] = None):
        self.items: Dict[str, StrategyEntity] = {s.id: s for s in strategies or []}

    async def ensure_indexes(self) -> None:
        return None

    async def upsert(self, strategy: StrategyEntity) -> StrategyEntity:
        self.items[strategy.id] = strategy.model_copy()
        return strategy

    async def get_by_id(self, strategy_id: str) -> Optional[StrategyEntity]:
        s = self.items.get(strategy_id)
        return s.model_copy() if s else None

    async def list_due(self, now: datetime) -> List[StrategyEntity]:
        due = [s for s in self.items.values() if s.is_active and s.next_check_time <= now]
        return [s.model_copy() for s in sorted(due, key=lambda s: s.next_check_time)]

    async def update_schedule(self, strategy_id: str, *, is_active: bool, next_check_time: datetime) -> None:
        s = self.items[strategy_id]
        self.items[strategy_id] = s.model_copy(update={"is_active": is_active, "next_check_time": next_check_time})


class InMemoryExecutionRepository(ExecutionRepository):
    def __init__(self):
        self.items: Dict[str, ExecutionEntity] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def create(self, execution: ExecutionEntity) -> ExecutionEntity:
        self.items[execution.id] = execution.model_copy()
        return execution

    async def get_by_id(self, execution_id: str) -> Optional[ExecutionEntity]:
        e = self.items.get(execution_id)
        return e.model_copy() if e else None

    async def mark_executed(self, execution_id: str, **fields) -> None:
        e = self.items[execution_id]
        if e.status is ExecutionStatus.PENDING:
            self.items[execution_id] = e.model_copy(update={"status": ExecutionStatus.EXECUTED, **fields})

    async def mark_failed(self, execution_id: str, error_message: str, tx_hash: Optional[str] = None) -> None:
        e = self.items[execution_id]
        if e.status is ExecutionStatus.PENDING:
            self.items[execution_id] = e.model_copy(update={
                "status": ExecutionStatus.FAILED, "error_message": error_message, "tx_hash": tx_hash,
            })

    async def list_by_strategy(self, strategy_id: str, limit: int = 50) -> List[ExecutionEntity]:
        rows = [e for e in self.items.values() if e.strategy_id == strategy_id]
        return sorted(rows, key=lambda e: e.created_at, reverse=True)[:limit]

    async def list_executed_by_user_since(self, user_id: str, since: datetime) -> List[ExecutionEntity]:
        return [
            e for e in self.items.values()
            if e.user_id == user_id and e.status is ExecutionStatus.EXECUTED
            and e.executed_at is not None and e.executed_at >= since
        ]


class InMemoryPermissionRepository(PermissionRepository):
    def __init__(self, permissions=None):
        self.items = list(permissions or [])

    async def ensure_indexes(self) -> None:
        return None

    async def active_permission(self, user_id: str, kind: PermissionKind, now: datetime):
        valid = [
            p for p in self.items
            if p.user_id == user_id and p.kind == PermissionKind(kind).value and p.is_valid(now)
        ]
        return max(valid, key=lambda p: p.created_at) if valid else None


class InMemoryUserRepository(UserRepository):
    def __init__(self, users=None):
        self.items = {u.id: u for u in users or []}

    async def ensure_indexes(self) -> None:
        return None

    async def get_by_id(self, user_id: str):
        return self.items.get(user_id)


class InMemorySessionAccountRepository(SessionAccountRepository):
    def __init__(self, sessions=None):
        self.items = list(sessions or [])

    async def ensure_indexes(self) -> None:
        return None

    async def get_active_for_user(self, user_id: str):
        for s in self.items:
            if s.user_id == user_id and s.is_active:
                return s
        return None


# ---------- gateways ----------

class FakePriceFeed(PriceFeed):
    def __init__(self, price: Optional[float] = 100.0, history: Optional[Dict[int, List[float]]] = None):
        self.price = price
        self.history = history or {}

    async def current_price(self, pair_id: str) -> Optional[PricePoint]:
        if self.price is None:
            return None
        return PricePoint(price=self.price, timestamp=1_700_000_000)

    async def historical_prices(self, pair_id: str, hours: int) -> List[float]:
        return list(self.history.get(hours, []))


class FakeFlowFeed(FlowFeed):
    def __init__(self, volume: Optional[VolumeStats] = None, liquidity: Optional[LiquidityStats] = None):
        self.volume = volume or VolumeStats(volume_24h=1000.0, previous_volume_24h=1000.0, swap_count=10)
        self.liquidity = liquidity or LiquidityStats(total_liquidity=0.0, net_flow_24h=0.0, net_flow_7d=0.0)

    async def volume_24h(self, pair_id: str) -> VolumeStats:
        return self.volume

    async def pool_liquidity(self, pair_id: str) -> LiquidityStats:
        return self.liquidity


class FakeReferenceFeed(ReferencePriceFeed):
    def __init__(self, price: float = 3000.0):
        self.price = price

    async def reference_price(self, symbol: str) -> float:
        return self.price


class FakeChainReader(ChainReader):
    def __init__(self):
        self.erc20: Dict[tuple, int] = {}
        self.native: Dict[str, int] = {}

    def set_erc20(self, token: str, owner: str, amount: int) -> None:
        self.erc20[(token.lower(), owner.lower())] = amount

    async def native_balance(self, address: str) -> int:
        return self.native.get(address.lower(), 0)

    async def erc20_balance(self, token_address: str, address: str) -> int:
        return self.erc20.get((token_address.lower(), address.lower()), 0)


class FakeDelegationExecutor(DelegationExecutor):
    """
    Moves balances in the fake chain reader and records every call.
    The swap receipt carries Transfer logs for `swap_out`.
    """

    def __init__(self, chain: FakeChainReader, principal: str, swap_out: int = 500_000_000_000_000):
        self.chain = chain
        self.principal = principal
        self.swap_out = swap_out
        self.redeems: List[Dict] = []
        self.submits: List[ContractCall] = []
        self.fail_on: Optional[str] = None
        self.error: Optional[Exception] = None
        self.delay: float = 0.0
        self.active = 0
        self.max_active = 0

    async def redeem_transfer(self, signer, permission, recipient, amount, gas_limit) -> TxReceipt:
        self.redeems.append({"kind": permission.kind, "recipient": recipient, "amount": amount, "gas": gas_limit})
        if self.fail_on == "redeem":
            raise self.error
        if isinstance(permission, Erc20PeriodicPermission):
            token = permission.token_address
            self.chain.set_erc20(token, self.principal, await self.chain.erc20_balance(token, self.principal) - amount)
            self.chain.set_erc20(token, recipient, await self.chain.erc20_balance(token, recipient) + amount)
        else:
            self.chain.native[recipient.lower()] = self.chain.native.get(recipient.lower(), 0) + amount
        return TxReceipt(tx_hash="0xfund", status=1)

    async def submit(self, signer, call, gas_limit) -> TxReceipt:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.submits.append(call)
            is_swap = call.to.lower() == ROUTER.lower()
            if self.fail_on == ("swap" if is_swap else "approve"):
                raise self.error
            if not is_swap:
                return TxReceipt(tx_hash="0xapprove", status=1)
            spent = int(call.data.split(":")[1])
            return TxReceipt(
                tx_hash="0xswap",
                status=1,
                logs=[
                    transfer_log(USDC, signer.address, "0x00000000000000000000000000000000000000aa", spent),
                    transfer_log(WETH, "0x00000000000000000000000000000000000000aa", signer.address, self.swap_out),
                ],
            )
        finally:
            self.active -= 1


class FakeSwapBuilder(SwapBuilder):
    @property
    def router_address(self) -> str:
        return ROUTER

    def build_approve(self, token_address: str, spender: str, amount: int) -> ContractCall:
        return ContractCall(to=token_address, data=f"approve:{amount}")

    async def build_swap(self, pair_id: str, amount_in: int, slippage_pct: float, recipient: str) -> ContractCall:
        return ContractCall(to=ROUTER, data=f"swap:{amount_in}")


class RecordingPublisher(ExecutionPublisher):
    def __init__(self):
        self.events: List[tuple] = []

    async def publish(self, event: str, payload: Dict) -> None:
        self.events.append((event, payload))


# ---------- fixtures ----------

@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def cipher() -> SessionKeyCipher:
    return SessionKeyCipher(SECRET_KEY_HEX)


@pytest.fixture
def delegate_address() -> str:
    return Account.from_key(DELEGATE_KEY).address


def make_erc20_permission(delegate: str, **overrides) -> Erc20PeriodicPermission:
    now = datetime.now(timezone.utc)
    fields = dict(
        id="perm-erc20",
        user_id="user-1",
        delegate_address=delegate,
        permission_context="0x1234",
        delegation_manager="0xdb9B1e94B5b69Df7e401DDbedE43491141047dB3",
        period_amount=100_000_000,
        period_duration=86_400,
        token_decimals=6,
        token_address=USDC,
        expires_at=now + timedelta(days=7),
        created_at=now - timedelta(hours=1),
    )
    fields.update(overrides)
    return Erc20PeriodicPermission(**fields)


def make_native_permission(delegate: str, **overrides) -> NativePeriodicPermission:
    now = datetime.now(timezone.utc)
    fields = dict(
        id="perm-native",
        user_id="user-1",
        delegate_address=delegate,
        permission_context="0x5678",
        delegation_manager="0xdb9B1e94B5b69Df7e401DDbedE43491141047dB3",
        period_amount=10**16,
        period_duration=86_400,
        expires_at=now + timedelta(days=7),
        created_at=now - timedelta(hours=1),
    )
    fields.update(overrides)
    return NativePeriodicPermission(**fields)


def make_session(cipher: SessionKeyCipher, delegate: str, user_id: str = "user-1") -> SessionAccountEntity:
    return SessionAccountEntity(
        id=f"session-{user_id}",
        user_id=user_id,
        address=delegate,
        encrypted_private_key=cipher.encrypt(DELEGATE_KEY),
    )


def make_user(user_id: str = "user-1") -> UserEntity:
    return UserEntity(id=user_id, wallet_address=PRINCIPAL)


def make_pending_execution(execution_id: str = "exec-1", amount: int = 1_000_000, **overrides) -> ExecutionEntity:
    fields = dict(
        id=execution_id,
        strategy_id="strat-1",
        user_id="user-1",
        decision={"kind": "execute", "recommended_amount": amount, "confidence": 0.8,
                  "reason": "low volatility", "indicators": {}},
        recommended_amount=amount,
        status=ExecutionStatus.PENDING,
        created_at=datetime.now(timezone.utc),
    )
    fields.update(overrides)
    return ExecutionEntity(**fields)
