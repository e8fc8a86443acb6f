import time
from datetime import datetime
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.entities.strategy_entity import StrategyEntity
from ....core.repositories.strategy_repository import StrategyRepository


class StrategyRepositoryMongoDB(StrategyRepository):
    """
    Mongo implementation for strategies. Documents are keyed by the strategy id.
    """

    COLLECTION = "strategies"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    @staticmethod
    def _to_entity(doc: Optional[Dict]) -> Optional[StrategyEntity]:
        if not doc:
            return None
        doc = dict(doc)
        doc["id"] = doc.pop("_id")
        return StrategyEntity.model_validate(doc)

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("is_active", 1), ("next_check_time", 1)], name="ix_active_next_check")
        await self._col.create_index([("user_id", 1)], name="ix_user")

    async def upsert(self, strategy: StrategyEntity) -> StrategyEntity:
        now_ms = int(time.time() * 1000)
        body = strategy.model_dump(mode="python", exclude={"id"})
        body["frequency"] = strategy.frequency.value
        body["base_amount"] = str(strategy.base_amount)
        await self._col.update_one(
            {"_id": strategy.id},
            {"$set": {**body, "updated_at": now_ms}, "$setOnInsert": {"created_at": now_ms}},
            upsert=True,
        )
        return await self.get_by_id(strategy.id)

    async def get_by_id(self, strategy_id: str) -> Optional[StrategyEntity]:
        return self._to_entity(await self._col.find_one({"_id": strategy_id}))

    async def list_due(self, now: datetime) -> List[StrategyEntity]:
        cursor = self._col.find(
            {"is_active": True, "next_check_time": {"$lte": now}},
        ).sort("next_check_time", 1)
        return [self._to_entity(doc) async for doc in cursor]

    async def update_schedule(self, strategy_id: str, *, is_active: bool, next_check_time: datetime) -> None:
        await self._col.update_one(
            {"_id": strategy_id},
            {"$set": {
                "is_active": is_active,
                "next_check_time": next_check_time,
                "updated_at": int(time.time() * 1000),
            }},
        )
