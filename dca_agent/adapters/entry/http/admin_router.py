from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from ....core.services.allowance_service import AllowanceService
from ....core.services.strategy_schedule_service import StrategyScheduleService
from ....core.usecases.evaluate_due_strategies_use_case import EvaluateDueStrategiesUseCase
from ...external.database.execution_repository_mongodb import ExecutionRepositoryMongoDB
from .deps import get_allowance_service, get_db, get_evaluate_use_case, get_schedule_service

router = APIRouter(prefix="/admin", tags=["admin"])


class AllowanceOutDTO(BaseModel):
    user_id: str
    has_allowance: bool
    daily_limit: Decimal
    spent_today: Decimal


class ExecutionOutDTO(BaseModel):
    id: str
    strategy_id: str
    status: str
    recommended_amount: str
    decision: Dict[str, Any]
    tx_hash: Optional[str] = None
    error_message: Optional[str] = None
    price: float
    volatility: float
    liquidity_score: float
    trend: str
    realized_amount_in: Optional[str] = None
    realized_amount_out: Optional[str] = None
    realized_price: Optional[float] = None
    settlement_value: Optional[str] = None
    created_at: datetime
    executed_at: Optional[datetime] = None


class StrategyStateOutDTO(BaseModel):
    id: str
    is_active: bool
    next_check_time: datetime


def _opt_str(v: Optional[int]) -> Optional[str]:
    return None if v is None else str(v)


@router.post("/strategies/{strategy_id}/trigger")
async def trigger_strategy(
    strategy_id: str,
    uc: EvaluateDueStrategiesUseCase = Depends(get_evaluate_use_case),
):
    """
    Evaluate one strategy now, ignoring its schedule.
    """
    outcome = await uc.trigger(strategy_id)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return {"strategy_id": strategy_id, "outcome": outcome}


@router.post("/strategies/{strategy_id}/activate", response_model=StrategyStateOutDTO)
async def activate_strategy(strategy_id: str, svc: StrategyScheduleService = Depends(get_schedule_service)):
    strategy = await svc.activate(strategy_id)
    if strategy is None:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return StrategyStateOutDTO(id=strategy.id, is_active=strategy.is_active, next_check_time=strategy.next_check_time)


@router.post("/strategies/{strategy_id}/deactivate", response_model=StrategyStateOutDTO)
async def deactivate_strategy(strategy_id: str, svc: StrategyScheduleService = Depends(get_schedule_service)):
    strategy = await svc.deactivate(strategy_id)
    if strategy is None:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return StrategyStateOutDTO(id=strategy.id, is_active=strategy.is_active, next_check_time=strategy.next_check_time)


@router.get("/strategies/{strategy_id}/executions", response_model=List[ExecutionOutDTO])
async def list_executions(
    strategy_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Execution history of a strategy, most recent first.
    """
    repo = ExecutionRepositoryMongoDB(db)
    rows = await repo.list_by_strategy(strategy_id, limit=limit)
    return [
        ExecutionOutDTO(
            **e.model_dump(
                include={
                    "id", "strategy_id", "decision", "tx_hash", "error_message", "price", "volatility",
                    "liquidity_score", "realized_price", "created_at", "executed_at",
                },
            ),
            status=e.status.value,
            trend=e.trend.value,
            recommended_amount=str(e.recommended_amount),
            realized_amount_in=_opt_str(e.realized_amount_in),
            realized_amount_out=_opt_str(e.realized_amount_out),
            settlement_value=_opt_str(e.settlement_value),
        )
        for e in rows
    ]


@router.get("/users/{user_id}/allowance", response_model=AllowanceOutDTO)
async def get_allowance(user_id: str, svc: AllowanceService = Depends(get_allowance_service)):
    allowance = await svc.check_daily_allowance(user_id)
    return AllowanceOutDTO(user_id=user_id, **allowance.model_dump())
