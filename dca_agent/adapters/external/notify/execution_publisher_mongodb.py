import logging
import time
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.gateways.execution_publisher import ExecutionPublisher


class ExecutionOutboxMongoDB(ExecutionPublisher):
    """
    Appends execution events to the 'execution_events' collection, then fans
    out to any extra subscribers (e.g. Telegram). Subscriber errors are logged.
    """

    COLLECTION = "execution_events"

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        subscribers: Optional[List[ExecutionPublisher]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._col = db[self.COLLECTION]
        self._subscribers = list(subscribers or [])
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("execution_id", 1), ("ts", 1)], name="ix_execution_ts")

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        await self._col.insert_one({
            "event": event,
            "execution_id": payload.get("execution_id"),
            "payload": payload,
            "ts": int(time.time() * 1000),
        })
        for sub in self._subscribers:
            try:
                await sub.publish(event, payload)
            except Exception as exc:
                self._logger.warning("subscriber %s failed on %s: %s", sub.__class__.__name__, event, exc)
