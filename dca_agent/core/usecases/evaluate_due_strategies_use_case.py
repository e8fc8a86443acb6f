import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..domain.entities.chain_entity import SwapResult
from ..domain.entities.execution_entity import ExecutionEntity
from ..domain.entities.strategy_entity import StrategyEntity
from ..domain.enums.dca_enums import ExecutionStatus
from ..gateways.execution_publisher import ExecutionPublisher
from ..repositories.execution_repository import ExecutionRepository
from ..repositories.strategy_repository import StrategyRepository
from ..services.allowance_service import AllowanceService
from ..services.decision_service import DecisionService
from ..services.strategy_schedule_service import StrategyScheduleService
from .execute_swap_use_case import ExecuteSwapUseCase


class EvaluateDueStrategiesUseCase:
    """
    One scheduler tick: every due strategy is evaluated sequentially.

    Per strategy:
      allowance -> decision -> execution record (PENDING / SKIPPED)
      -> advance next_check_time -> orchestrate swap (PENDING only)

    A strategy blocked by its daily allowance gets no record, but its
    next_check_time still moves forward. Errors are isolated per strategy.
    """

    def __init__(
        self,
        strategy_repo: StrategyRepository,
        execution_repo: ExecutionRepository,
        schedule_service: StrategyScheduleService,
        allowance_service: AllowanceService,
        decision_service: DecisionService,
        execute_swap_use_case: ExecuteSwapUseCase,
        publisher: ExecutionPublisher,
        logger: Optional[logging.Logger] = None,
    ):
        self._strategies = strategy_repo
        self._executions = execution_repo
        self._schedule = schedule_service
        self._allowance = allowance_service
        self._decisions = decision_service
        self._swap = execute_swap_use_case
        self._publisher = publisher
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Process all strategies due at `now`. Returns counters for logging.
        """
        now = now or datetime.now(timezone.utc)
        due: List[StrategyEntity] = await self._schedule.find_due(now)
        stats = {"due": len(due), "executed": 0, "skipped": 0, "failed": 0, "blocked": 0, "errors": 0}
        if not due:
            return stats

        self._logger.info("tick %s: %d strategies due", now.isoformat(), len(due))
        for strategy in due:
            try:
                outcome = await self._evaluate(strategy, now)
                stats[outcome] += 1
            except Exception as exc:
                stats["errors"] += 1
                self._logger.exception("strategy %s evaluation error: %s", strategy.id, exc)
        return stats

    async def trigger(self, strategy_id: str) -> Optional[str]:
        """
        Manual run of one strategy regardless of its schedule.
        Returns the outcome, or None when the strategy does not exist.
        """
        strategy = await self._strategies.get_by_id(strategy_id)
        if strategy is None:
            return None
        return await self._evaluate(strategy, datetime.now(timezone.utc))

    async def _evaluate(self, strategy: StrategyEntity, now: datetime) -> str:
        allowance = await self._allowance.check_daily_allowance(strategy.user_id, now)
        if not allowance.has_allowance:
            self._logger.info(
                "strategy %s blocked: spent %s of %s today",
                strategy.id, allowance.spent_today, allowance.daily_limit,
            )
            await self._schedule.advance(strategy, now)
            return "blocked"

        decision = await self._decisions.should_execute(strategy)
        status = ExecutionStatus.PENDING if decision.should_execute else ExecutionStatus.SKIPPED
        indicators = decision.indicators

        execution = await self._executions.create(ExecutionEntity(
            id=str(uuid.uuid4()),
            strategy_id=strategy.id,
            user_id=strategy.user_id,
            decision=decision.model_dump(mode="json"),
            recommended_amount=decision.recommended_amount,
            status=status,
            price=indicators.price,
            volatility=indicators.volatility,
            liquidity_score=indicators.liquidity,
            trend=indicators.trend,
            created_at=now,
        ))
        await self._schedule.advance(strategy, now)

        if status is ExecutionStatus.SKIPPED:
            self._logger.info("strategy %s skipped: %s", strategy.id, decision.reason)
            return "skipped"

        try:
            await self._publisher.publish("execution.ready", {
                "execution_id": execution.id,
                "strategy_id": strategy.id,
                "user_id": strategy.user_id,
                "recommended_amount": str(execution.recommended_amount),
                "reason": decision.reason,
            })
        except Exception as exc:
            self._logger.warning("publish execution.ready failed: %s", exc)

        result: SwapResult = await self._swap.execute_swap(execution.id)
        return "executed" if result.success else "failed"
