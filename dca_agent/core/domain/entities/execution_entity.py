# dca_agent/core/domain/entities/execution_entity.py

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, field_validator

from ..enums.dca_enums import ExecutionStatus, Trend
from .decision_entity import ExecuteDecision, SkipDecision, decision_from_dict


class ExecutionEntity(BaseModel):
    """
    One record per evaluation cycle, stored in the 'executions' collection.

    Created by the scheduler tick with the decision already known, then
    mutated only by the swap orchestrator. Never deleted; terminal states
    are never rewritten (a retry is a new record).

    indicator columns (price, volatility, liquidity_score, trend) are
    denormalized from the decision so history queries need no JSON parsing.
    """

    id: str
    strategy_id: str
    user_id: str
    decision: Dict[str, Any]
    recommended_amount: int
    status: ExecutionStatus

    tx_hash: Optional[str] = None
    error_message: Optional[str] = None

    price: float = 0.0
    volatility: float = 0.0
    liquidity_score: float = 0.0
    trend: Trend = Trend.NEUTRAL

    # filled in on reconciliation
    realized_amount_in: Optional[int] = None
    realized_amount_out: Optional[int] = None
    realized_price: Optional[float] = None
    settlement_value: Optional[int] = None  # output valued in spend-token units

    created_at: datetime
    executed_at: Optional[datetime] = None

    @field_validator("recommended_amount", "realized_amount_in", "realized_amount_out", "settlement_value", mode="before")
    @classmethod
    def parse_big_int(cls, v):
        return None if v is None else int(v)

    def parsed_decision(self) -> Union[ExecuteDecision, SkipDecision]:
        return decision_from_dict(self.decision)
