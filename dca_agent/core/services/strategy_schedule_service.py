import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..domain.entities.strategy_entity import StrategyEntity
from ..domain.enums.dca_enums import StrategyFrequency
from ..repositories.strategy_repository import StrategyRepository

FREQUENCY_STEP = {
    StrategyFrequency.FIVE_MINUTES: timedelta(minutes=5),
    StrategyFrequency.HOURLY: timedelta(hours=1),
    StrategyFrequency.DAILY: timedelta(days=1),
    StrategyFrequency.WEEKLY: timedelta(weeks=1),
}


class StrategyScheduleService:
    """
    Owns next_check_time bookkeeping for strategies.
    """

    def __init__(self, strategy_repo: StrategyRepository, logger: Optional[logging.Logger] = None):
        self._strategies = strategy_repo
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def next_check_time(frequency: StrategyFrequency, now: datetime) -> datetime:
        return now + FREQUENCY_STEP[StrategyFrequency(frequency)]

    async def find_due(self, now: Optional[datetime] = None) -> List[StrategyEntity]:
        now = now or datetime.now(timezone.utc)
        return await self._strategies.list_due(now)

    async def advance(self, strategy: StrategyEntity, now: Optional[datetime] = None) -> datetime:
        """
        Move next_check_time one step past max(now, current value) so it always
        strictly increases, even when the clock is behind the stored value.
        """
        now = now or datetime.now(timezone.utc)
        base = max(now, strategy.next_check_time)
        nxt = self.next_check_time(strategy.frequency, base)
        await self._strategies.update_schedule(strategy.id, is_active=strategy.is_active, next_check_time=nxt)
        strategy.next_check_time = nxt
        return nxt

    async def activate(self, strategy_id: str, now: Optional[datetime] = None) -> Optional[StrategyEntity]:
        strategy = await self._strategies.get_by_id(strategy_id)
        if strategy is None:
            return None
        now = now or datetime.now(timezone.utc)
        strategy.is_active = True
        strategy.next_check_time = self.next_check_time(strategy.frequency, now)
        await self._strategies.update_schedule(
            strategy.id, is_active=True, next_check_time=strategy.next_check_time
        )
        self._logger.info("strategy %s activated, next check %s", strategy.id, strategy.next_check_time.isoformat())
        return strategy

    async def deactivate(self, strategy_id: str) -> Optional[StrategyEntity]:
        strategy = await self._strategies.get_by_id(strategy_id)
        if strategy is None:
            return None
        strategy.is_active = False
        await self._strategies.update_schedule(
            strategy.id, is_active=False, next_check_time=strategy.next_check_time
        )
        self._logger.info("strategy %s deactivated", strategy.id)
        return strategy
