from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.entities.account_entity import SessionAccountEntity, UserEntity
from ....core.repositories.account_repository import SessionAccountRepository, UserRepository


class UserRepositoryMongoDB(UserRepository):

    COLLECTION = "users"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("wallet_address", 1)], unique=True, name="ux_wallet")

    async def get_by_id(self, user_id: str) -> Optional[UserEntity]:
        doc = await self._col.find_one({"_id": user_id})
        if not doc:
            return None
        return UserEntity(id=str(doc["_id"]), wallet_address=doc["wallet_address"])


class SessionAccountRepositoryMongoDB(SessionAccountRepository):

    COLLECTION = "session_accounts"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("user_id", 1), ("is_active", 1)], name="ix_user_active")

    async def get_active_for_user(self, user_id: str) -> Optional[SessionAccountEntity]:
        doc = await self._col.find_one({"user_id": user_id, "is_active": True}, sort=[("created_at", -1)])
        if not doc:
            return None
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return SessionAccountEntity.model_validate(doc)
