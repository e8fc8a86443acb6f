from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..domain.entities.strategy_entity import StrategyEntity


class StrategyRepository(ABC):
    """
    Repository interface for user DCA strategies.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Indexes for (is_active, next_check_time) and user lookups."""
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, strategy: StrategyEntity) -> StrategyEntity:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, strategy_id: str) -> Optional[StrategyEntity]:
        raise NotImplementedError

    @abstractmethod
    async def list_due(self, now: datetime) -> List[StrategyEntity]:
        """Active strategies with next_check_time <= now, oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def update_schedule(self, strategy_id: str, *, is_active: bool, next_check_time: datetime) -> None:
        raise NotImplementedError
