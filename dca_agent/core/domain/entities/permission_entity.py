# dca_agent/core/domain/entities/permission_entity.py

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class _PeriodicPermission(BaseModel):
    """
    Capped, time-boxed spending grant redeemable by the delegate (session account).

    permission_context / delegation_manager are opaque to this service; they
    are handed as-is to the delegation executor on redeem.
    """

    id: str
    user_id: str
    delegate_address: str
    permission_context: str
    delegation_manager: str

    period_amount: int = Field(..., ge=0)   # smallest unit, cap per period
    period_duration: int = Field(..., gt=0)  # seconds
    token_decimals: int = 18

    expires_at: datetime
    revoked_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("period_amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        return int(v)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.revoked_at is None and self.expires_at > now

    def to_display(self, raw_amount: int) -> Decimal:
        return Decimal(raw_amount) / (Decimal(10) ** self.token_decimals)


class NativePeriodicPermission(_PeriodicPermission):
    kind: Literal["native-token-periodic"] = "native-token-periodic"


class Erc20PeriodicPermission(_PeriodicPermission):
    kind: Literal["erc20-token-periodic"] = "erc20-token-periodic"
    token_address: str


Permission = Annotated[
    Union[NativePeriodicPermission, Erc20PeriodicPermission],
    Field(discriminator="kind"),
]

_permission_adapter = TypeAdapter(Permission)


def permission_from_dict(raw: dict) -> Union[NativePeriodicPermission, Erc20PeriodicPermission]:
    return _permission_adapter.validate_python(raw)


class DailyAllowance(BaseModel):
    """
    Remaining spend capacity of a user for the current UTC day, in display units.
    """
    has_allowance: bool
    daily_limit: Decimal
    spent_today: Decimal
