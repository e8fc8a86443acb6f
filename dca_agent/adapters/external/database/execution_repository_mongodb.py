import time
from datetime import datetime
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.entities.execution_entity import ExecutionEntity
from ....core.domain.enums.dca_enums import ExecutionStatus
from ....core.repositories.execution_repository import ExecutionRepository

# stored as strings, uint256 does not fit in a BSON int64
_BIG_INT_FIELDS = ("recommended_amount", "realized_amount_in", "realized_amount_out", "settlement_value")


def _big(v: Optional[int]) -> Optional[str]:
    return None if v is None else str(v)


class ExecutionRepositoryMongoDB(ExecutionRepository):
    """
    Mongo implementation for execution records.

    Terminal transitions are conditional on status == PENDING, so a record
    that already reached EXECUTED / FAILED / SKIPPED is never rewritten.
    """

    COLLECTION = "executions"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    @staticmethod
    def _to_entity(doc: Optional[Dict]) -> Optional[ExecutionEntity]:
        if not doc:
            return None
        doc = dict(doc)
        doc["id"] = doc.pop("_id")
        return ExecutionEntity.model_validate(doc)

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("strategy_id", 1), ("created_at", -1)], name="ix_strategy_created")
        await self._col.create_index(
            [("user_id", 1), ("status", 1), ("executed_at", 1)], name="ix_user_status_executed"
        )

    async def create(self, execution: ExecutionEntity) -> ExecutionEntity:
        doc = execution.model_dump(mode="python", exclude={"id"})
        doc["status"] = execution.status.value
        doc["trend"] = execution.trend.value
        for key in _BIG_INT_FIELDS:
            doc[key] = _big(doc.get(key))
        now_ms = int(time.time() * 1000)
        await self._col.insert_one({"_id": execution.id, **doc, "created_at_ms": now_ms, "updated_at": now_ms})
        return execution

    async def get_by_id(self, execution_id: str) -> Optional[ExecutionEntity]:
        return self._to_entity(await self._col.find_one({"_id": execution_id}))

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
        await self._col.update_one(
            {"_id": execution_id, "status": ExecutionStatus.PENDING.value},
            {"$set": {
                "status": ExecutionStatus.EXECUTED.value,
                "tx_hash": tx_hash,
                "executed_at": executed_at,
                "realized_amount_in": _big(realized_amount_in),
                "realized_amount_out": _big(realized_amount_out),
                "realized_price": realized_price,
                "settlement_value": _big(settlement_value),
                "updated_at": int(time.time() * 1000),
            }},
        )

    async def mark_failed(self, execution_id: str, error_message: str, tx_hash: Optional[str] = None) -> None:
        await self._col.update_one(
            {"_id": execution_id, "status": ExecutionStatus.PENDING.value},
            {"$set": {
                "status": ExecutionStatus.FAILED.value,
                "error_message": error_message,
                "tx_hash": tx_hash,
                "updated_at": int(time.time() * 1000),
            }},
        )

    async def list_by_strategy(self, strategy_id: str, limit: int = 50) -> List[ExecutionEntity]:
        cursor = self._col.find({"strategy_id": strategy_id}).sort("created_at", -1).limit(int(limit))
        return [self._to_entity(doc) async for doc in cursor]

    async def list_executed_by_user_since(self, user_id: str, since: datetime) -> List[ExecutionEntity]:
        cursor = self._col.find({
            "user_id": user_id,
            "status": ExecutionStatus.EXECUTED.value,
            "executed_at": {"$gte": since},
        })
        return [self._to_entity(doc) async for doc in cursor]
