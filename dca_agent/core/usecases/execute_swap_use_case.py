import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Dict, List, Optional, Set, Tuple

from ...config import Settings, TokenInfo
from ..domain.entities.account_entity import UserEntity
from ..domain.entities.chain_entity import DelegateSigner, SwapAmounts, SwapResult, TxReceipt
from ..domain.entities.execution_entity import ExecutionEntity
from ..domain.entities.permission_entity import Erc20PeriodicPermission, NativePeriodicPermission
from ..domain.entities.strategy_entity import StrategyEntity
from ..domain.enums.dca_enums import ExecutionStatus, PermissionKind
from ..exceptions import (
    ConfirmationTimeoutError,
    DelegationPermissionError,
    InsufficientBalanceError,
)
from ..gateways.chain_gateway import ChainReader, DelegationExecutor, SwapBuilder
from ..gateways.execution_publisher import ExecutionPublisher
from ..gateways.market_gateway import ReferencePriceFeed
from ..repositories.account_repository import SessionAccountRepository, UserRepository
from ..repositories.execution_repository import ExecutionRepository
from ..repositories.permission_repository import PermissionRepository
from ..repositories.strategy_repository import StrategyRepository
from ..services.error_formatter import format_error_message
from ..services.session_key_cipher import SessionKeyCipher

# keccak("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


@dataclass
class _PipelineContext:
    strategy: StrategyEntity
    user: UserEntity
    signer: DelegateSigner
    erc20_permission: Erc20PeriodicPermission
    native_permission: Optional[NativePeriodicPermission]
    spend: TokenInfo
    buy: TokenInfo
    amount: int


def _topic_address(topic: Any) -> str:
    return "0x" + str(topic)[-40:].lower()


def _log_amount(data: Any) -> int:
    raw = str(data)
    return int(raw, 16) if raw not in ("", "0x") else 0


def parse_transfer_amounts(logs: List[Dict[str, Any]], token_in: str, token_out: str, wallet: str) -> SwapAmounts:
    """
    Sum ERC-20 Transfer events of the swap tx: token_in leaving `wallet`
    and token_out arriving at `wallet`. None when no matching log exists.
    """
    wallet = wallet.lower()
    amount_in: Optional[int] = None
    amount_out: Optional[int] = None
    for log in logs:
        topics = log.get("topics") or []
        if len(topics) < 3 or str(topics[0]).lower() != TRANSFER_TOPIC:
            continue
        token = str(log.get("address", "")).lower()
        src, dst = _topic_address(topics[1]), _topic_address(topics[2])
        value = _log_amount(log.get("data"))
        if token == token_in.lower() and src == wallet:
            amount_in = (amount_in or 0) + value
        elif token == token_out.lower() and dst == wallet:
            amount_out = (amount_out or 0) + value
    return SwapAmounts(amount_in=amount_in, amount_out=amount_out)


class ExecuteSwapUseCase:
    """
    Runs one PENDING execution through the on-chain pipeline:

      resolve context -> fund shortfall -> approve router -> swap -> reconcile

    Linear, forward-only: a confirmed step is never undone. Any exception marks
    the record FAILED with a user-facing message; execute_swap itself never raises.

    Pipelines of the same delegate are serialized by a per-address lock so two
    runs never race on the delegate nonce. Each external call is bounded by
    STEP_TIMEOUT_SEC and a timeout counts as a failure.
    """

    def __init__(
        self,
        settings: Settings,
        execution_repo: ExecutionRepository,
        strategy_repo: StrategyRepository,
        user_repo: UserRepository,
        session_repo: SessionAccountRepository,
        permission_repo: PermissionRepository,
        chain_reader: ChainReader,
        delegation_executor: DelegationExecutor,
        swap_builder: SwapBuilder,
        reference_feed: ReferencePriceFeed,
        publisher: ExecutionPublisher,
        cipher: SessionKeyCipher,
        logger: Optional[logging.Logger] = None,
    ):
        self._settings = settings
        self._executions = execution_repo
        self._strategies = strategy_repo
        self._users = user_repo
        self._sessions = session_repo
        self._permissions = permission_repo
        self._chain = chain_reader
        self._delegation = delegation_executor
        self._swaps = swap_builder
        self._reference = reference_feed
        self._publisher = publisher
        self._cipher = cipher
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._in_flight: Set[str] = set()

    def _lock_for(self, address: str) -> asyncio.Lock:
        key = address.lower()
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _bounded(self, step: str, aw: Awaitable, tx_hash: Optional[str] = None):
        timeout = self._settings.STEP_TIMEOUT_SEC
        try:
            return await asyncio.wait_for(aw, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ConfirmationTimeoutError(step, timeout, tx_hash=tx_hash) from exc

    async def _publish(self, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self._publisher.publish(event, payload)
        except Exception as exc:
            self._logger.warning("publish %s failed: %s", event, exc)

    # ---------- public API ----------

    async def execute_swap(self, execution_id: str) -> SwapResult:
        # claimed synchronously, so a concurrent call on the same id bails out
        if execution_id in self._in_flight:
            return SwapResult(success=False, error="execution is already in flight")
        self._in_flight.add(execution_id)
        try:
            return await self._execute_claimed(execution_id)
        finally:
            self._in_flight.discard(execution_id)

    async def _execute_claimed(self, execution_id: str) -> SwapResult:
        execution = await self._executions.get_by_id(execution_id)
        if execution is None:
            return SwapResult(success=False, error="execution not found")
        if execution.status is not ExecutionStatus.PENDING:
            return SwapResult(success=False, error=f"execution is already {execution.status.value}")

        try:
            ctx = await self._resolve_context(execution)
            async with self._lock_for(ctx.signer.address):
                # another process may have finished it while we waited
                current = await self._executions.get_by_id(execution_id)
                if current is None or current.status is not ExecutionStatus.PENDING:
                    status = current.status.value if current else "gone"
                    return SwapResult(success=False, error=f"execution is already {status}")
                tx_hash = await self._run_pipeline(execution, ctx)
            return SwapResult(success=True, tx_hash=tx_hash)
        except Exception as exc:
            self._logger.exception("execution %s failed: %s", execution_id, exc)
            message = format_error_message(exc)
            tx_hash = getattr(exc, "tx_hash", None)
            try:
                await self._executions.mark_failed(execution_id, message, tx_hash=tx_hash)
            except Exception as persist_exc:
                self._logger.error("could not mark execution %s FAILED: %s", execution_id, persist_exc)
            await self._publish("execution.failed", {
                "execution_id": execution_id,
                "strategy_id": execution.strategy_id,
                "user_id": execution.user_id,
                "error": message,
            })
            return SwapResult(success=False, tx_hash=tx_hash, error=message)

    # ---------- steps ----------

    async def _resolve_context(self, execution: ExecutionEntity) -> _PipelineContext:
        now = datetime.now(timezone.utc)
        strategy = await self._strategies.get_by_id(execution.strategy_id)
        if strategy is None:
            raise DelegationPermissionError(f"Strategy {execution.strategy_id} not found")
        user = await self._users.get_by_id(strategy.user_id)
        if user is None:
            raise DelegationPermissionError(f"User {strategy.user_id} not found", user_id=strategy.user_id)

        session = await self._sessions.get_active_for_user(user.id)
        if session is None:
            raise DelegationPermissionError("No active session account. Please set up trading permissions.", user_id=user.id)

        erc20_perm = await self._permissions.active_permission(user.id, PermissionKind.ERC20_PERIODIC, now)
        if erc20_perm is None:
            raise DelegationPermissionError(
                "No valid token permission found. Please grant a new permission.",
                user_id=user.id, kind=PermissionKind.ERC20_PERIODIC.value,
            )

        native_perm = None
        if self._settings.GAS_RESERVE_WEI > 0:
            native_perm = await self._permissions.active_permission(user.id, PermissionKind.NATIVE_PERIODIC, now)
            if native_perm is None:
                raise DelegationPermissionError(
                    "No valid gas permission found. Please grant a new permission.",
                    user_id=user.id, kind=PermissionKind.NATIVE_PERIODIC.value,
                )

        spend_symbol, buy_symbol = strategy.tokens
        spend = self._settings.token(spend_symbol)
        buy = self._settings.token(buy_symbol)

        if erc20_perm.token_address.lower() != spend.address.lower():
            raise DelegationPermissionError(
                f"Token permission does not cover {spend.symbol}", user_id=user.id,
                kind=PermissionKind.ERC20_PERIODIC.value,
            )
        for perm in (erc20_perm, native_perm):
            if perm is not None and perm.delegate_address.lower() != session.address.lower():
                raise DelegationPermissionError(
                    "Permission was granted to a different session account", user_id=user.id, kind=perm.kind,
                )

        signer = self._cipher.signer_for(session)
        return _PipelineContext(
            strategy=strategy,
            user=user,
            signer=signer,
            erc20_permission=erc20_perm,
            native_permission=native_perm,
            spend=spend,
            buy=buy,
            amount=execution.recommended_amount,
        )

    async def _run_pipeline(self, execution: ExecutionEntity, ctx: _PipelineContext) -> str:
        eid = execution.id
        s = self._settings

        self._logger.info("execution %s: funding check (%s %s)", eid, ctx.amount, ctx.spend.symbol)
        await self._ensure_gas(ctx)
        await self._ensure_funds(ctx)

        self._logger.info("execution %s: approving router", eid)
        approve = self._swaps.build_approve(ctx.spend.address, self._swaps.router_address, ctx.amount)
        await self._bounded("approve", self._delegation.submit(ctx.signer, approve, s.APPROVE_GAS_LIMIT))

        self._logger.info("execution %s: swapping %s -> %s", eid, ctx.spend.symbol, ctx.buy.symbol)
        call = await self._bounded(
            "quote",
            self._swaps.build_swap(ctx.strategy.pair_id, ctx.amount, ctx.strategy.slippage, ctx.signer.address),
        )
        receipt: TxReceipt = await self._bounded("swap", self._delegation.submit(ctx.signer, call, s.SWAP_GAS_LIMIT))

        self._logger.info("execution %s: reconciling %s", eid, receipt.tx_hash)
        amounts = parse_transfer_amounts(receipt.logs, ctx.spend.address, ctx.buy.address, ctx.signer.address)
        realized_in = amounts.amount_in
        if realized_in is None or amounts.amount_out is None:
            self._logger.warning("execution %s: no matching Transfer logs in %s, realized amounts left empty", eid, receipt.tx_hash)
        realized_price, settlement = await self._settlement(ctx, amounts.amount_out)

        await self._executions.mark_executed(
            eid,
            tx_hash=receipt.tx_hash,
            executed_at=datetime.now(timezone.utc),
            realized_amount_in=realized_in,
            realized_amount_out=amounts.amount_out,
            realized_price=realized_price,
            settlement_value=settlement,
        )
        await self._publish("execution.completed", {
            "execution_id": eid,
            "strategy_id": execution.strategy_id,
            "user_id": execution.user_id,
            "tx_hash": receipt.tx_hash,
            "pair_id": ctx.strategy.pair_id,
            "amount_in": None if realized_in is None else str(realized_in),
            "amount_out": None if amounts.amount_out is None else str(amounts.amount_out),
            "realized_price": realized_price,
        })
        self._logger.info("execution %s: EXECUTED tx=%s out=%s", eid, receipt.tx_hash, amounts.amount_out)
        return receipt.tx_hash

    async def _ensure_gas(self, ctx: _PipelineContext) -> None:
        reserve = self._settings.GAS_RESERVE_WEI
        if reserve <= 0 or ctx.native_permission is None:
            return
        balance = await self._bounded("native balance", self._chain.native_balance(ctx.signer.address))
        if balance >= reserve:
            return
        shortfall = reserve - balance
        self._logger.info("delegate %s gas top-up %s wei", ctx.signer.address, shortfall)
        await self._bounded(
            "gas funding",
            self._delegation.redeem_transfer(
                ctx.signer, ctx.native_permission, ctx.signer.address, shortfall, self._settings.FUNDING_GAS_LIMIT
            ),
        )

    async def _ensure_funds(self, ctx: _PipelineContext) -> None:
        token = ctx.spend
        balance = await self._bounded("delegate balance", self._chain.erc20_balance(token.address, ctx.signer.address))
        if balance >= ctx.amount:
            self._logger.info("delegate %s already holds %s %s, no funding", ctx.signer.address, balance, token.symbol)
            return

        shortfall = ctx.amount - balance
        principal = await self._bounded(
            "principal balance", self._chain.erc20_balance(token.address, ctx.user.wallet_address)
        )
        if principal < shortfall:
            raise InsufficientBalanceError(
                f"Insufficient balance in wallet: {principal} {token.symbol} available, {shortfall} needed",
                token=token.symbol, required=shortfall, available=principal,
            )

        self._logger.info("funding delegate %s with shortfall %s %s", ctx.signer.address, shortfall, token.symbol)
        await self._bounded(
            "funding",
            self._delegation.redeem_transfer(
                ctx.signer, ctx.erc20_permission, ctx.signer.address, shortfall, self._settings.FUNDING_GAS_LIMIT
            ),
        )

        funded = await self._bounded("delegate balance", self._chain.erc20_balance(token.address, ctx.signer.address))
        if funded < ctx.amount:
            raise InsufficientBalanceError(
                f"Session account {token.symbol} balance still below trade amount after funding",
                token=token.symbol, required=ctx.amount, available=funded,
            )

    async def _settlement(self, ctx: _PipelineContext, amount_out: Optional[int]) -> Tuple[Optional[float], Optional[int]]:
        """
        Value the received tokens in spend-token units at a fresh oracle price.
        The swap is already confirmed, so a missing price only leaves these empty.
        """
        try:
            price = await self._bounded("reference price", self._reference.reference_price(self._settings.REFERENCE_SYMBOL))
        except Exception as exc:
            self._logger.warning("reference price unavailable after swap: %s", exc)
            return None, None
        if amount_out is None:
            return price, None
        value = (
            Decimal(amount_out) / (Decimal(10) ** ctx.buy.decimals)
            * Decimal(str(price))
            * (Decimal(10) ** ctx.spend.decimals)
        )
        return price, int(value)
