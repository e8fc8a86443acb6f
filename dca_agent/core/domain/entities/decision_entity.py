# dca_agent/core/domain/entities/decision_entity.py

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from ..enums.dca_enums import RiskLevel, Trend


class IndicatorSummary(BaseModel):
    """
    Indicator values frozen into the decision for auditing.
    """
    price: float = 0.0
    volatility: float = 0.0
    liquidity: float = 0.0
    trend: Trend = Trend.NEUTRAL
    price_change_24h: float = 0.0
    ma7: Optional[float] = None
    ma30: Optional[float] = None
    risk: Optional[RiskLevel] = None


class ExecuteDecision(BaseModel):
    kind: Literal["execute"] = "execute"
    recommended_amount: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    reason: str
    indicators: IndicatorSummary

    @property
    def should_execute(self) -> bool:
        return True


class SkipDecision(BaseModel):
    """
    Non-executing outcome. recommended_amount / confidence are kept when the
    engine got far enough to compute them, otherwise they stay 0.
    """
    kind: Literal["skip"] = "skip"
    reason: str
    recommended_amount: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0, le=1)
    indicators: IndicatorSummary = Field(default_factory=IndicatorSummary)

    @property
    def should_execute(self) -> bool:
        return False


ExecutionDecision = Annotated[Union[ExecuteDecision, SkipDecision], Field(discriminator="kind")]

_decision_adapter = TypeAdapter(ExecutionDecision)


def decision_from_dict(raw: Dict[str, Any]) -> Union[ExecuteDecision, SkipDecision]:
    return _decision_adapter.validate_python(raw)
