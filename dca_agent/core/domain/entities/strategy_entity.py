# dca_agent/core/domain/entities/strategy_entity.py

from datetime import datetime
from typing import Tuple

from pydantic import BaseModel, Field, field_validator

from ..enums.dca_enums import StrategyFrequency


class StrategyEntity(BaseModel):
    """
    User-owned DCA configuration, as stored in the 'strategies' collection.

    pair_id reads "<spend>/<buy>", e.g. "USDC/WETH" spends USDC to accumulate WETH.
    base_amount is in the smallest unit of the spend token.
    """

    id: str
    user_id: str
    pair_id: str
    frequency: StrategyFrequency
    base_amount: int = Field(..., gt=0)
    slippage: float = Field(default=0.5, ge=0, le=100)  # percent

    enable_smart_sizing: bool = True
    enable_volatility_adjustment: bool = True
    enable_liquidity_check: bool = True

    is_active: bool = True
    next_check_time: datetime

    @field_validator("base_amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        # big integers travel as strings through Mongo / JSON
        return int(v)

    @property
    def tokens(self) -> Tuple[str, str]:
        spend, buy = self.pair_id.split("/")
        return spend.strip().upper(), buy.strip().upper()
