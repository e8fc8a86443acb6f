from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..domain.entities.execution_entity import ExecutionEntity


class ExecutionRepository(ABC):
    """
    Repository interface for execution records.

    Records are append-only from the scheduler side; the orchestrator only
    moves a PENDING record to one terminal state.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def create(self, execution: ExecutionEntity) -> ExecutionEntity:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, execution_id: str) -> Optional[ExecutionEntity]:
        raise NotImplementedError

    @abstractmethod
    async def mark_executed(
        self,
        execution_id: str,
        *,
        tx_hash: str,
        executed_at: datetime,
        realized_amount_in: Optional[int],
        realized_amount_out: Optional[int],
        realized_price: Optional[float],
        settlement_value: Optional[int],
    ) -> None:
        """PENDING -> EXECUTED. No-op on records already terminal."""
        raise NotImplementedError

    @abstractmethod
    async def mark_failed(self, execution_id: str, error_message: str, tx_hash: Optional[str] = None) -> None:
        """PENDING -> FAILED. No-op on records already terminal."""
        raise NotImplementedError

    @abstractmethod
    async def list_by_strategy(self, strategy_id: str, limit: int = 50) -> List[ExecutionEntity]:
        """Most recent first."""
        raise NotImplementedError

    @abstractmethod
    async def list_executed_by_user_since(self, user_id: str, since: datetime) -> List[ExecutionEntity]:
        """EXECUTED records of a user (any strategy) with executed_at >= since."""
        raise NotImplementedError
