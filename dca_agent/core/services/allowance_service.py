import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ..domain.entities.permission_entity import DailyAllowance
from ..domain.enums.dca_enums import PermissionKind
from ..repositories.execution_repository import ExecutionRepository
from ..repositories.permission_repository import PermissionRepository


def utc_midnight(now: datetime) -> datetime:
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


class AllowanceService:
    """
    Per-user daily spend cap, derived from the authoritative erc20-periodic
    permission. Spend is summed over every strategy of the user.
    """

    def __init__(
        self,
        permission_repo: PermissionRepository,
        execution_repo: ExecutionRepository,
        logger: Optional[logging.Logger] = None,
    ):
        self._permissions = permission_repo
        self._executions = execution_repo
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def check_daily_allowance(self, user_id: str, now: Optional[datetime] = None) -> DailyAllowance:
        now = now or datetime.now(timezone.utc)
        permission = await self._permissions.active_permission(user_id, PermissionKind.ERC20_PERIODIC, now)
        if permission is None:
            return DailyAllowance(has_allowance=False, daily_limit=Decimal(0), spent_today=Decimal(0))

        executed = await self._executions.list_executed_by_user_since(user_id, utc_midnight(now))
        spent_raw = sum(e.recommended_amount for e in executed)

        daily_limit = permission.to_display(permission.period_amount)
        spent_today = permission.to_display(spent_raw)
        allowance = DailyAllowance(
            has_allowance=spent_today < daily_limit,
            daily_limit=daily_limit,
            spent_today=spent_today,
        )
        if not allowance.has_allowance:
            self._logger.info("user %s reached daily limit: spent=%s limit=%s", user_id, spent_today, daily_limit)
        return allowance
