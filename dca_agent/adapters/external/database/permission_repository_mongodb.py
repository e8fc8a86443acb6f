from datetime import datetime
from typing import Dict, Optional, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.entities.permission_entity import (
    Erc20PeriodicPermission,
    NativePeriodicPermission,
    permission_from_dict,
)
from ....core.domain.enums.dca_enums import PermissionKind
from ....core.repositories.permission_repository import PermissionRepository


class PermissionRepositoryMongoDB(PermissionRepository):
    """
    Read side of the 'permissions' collection. Documents carry a `kind`
    discriminator and are parsed into the matching permission variant.
    """

    COLLECTION = "permissions"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("user_id", 1), ("kind", 1), ("created_at", -1)], name="ix_user_kind_created"
        )

    async def active_permission(
        self, user_id: str, kind: PermissionKind, now: datetime
    ) -> Optional[Union[NativePeriodicPermission, Erc20PeriodicPermission]]:
        doc: Optional[Dict] = await self._col.find_one(
            {
                "user_id": user_id,
                "kind": PermissionKind(kind).value,
                "revoked_at": None,
                "expires_at": {"$gt": now},
            },
            sort=[("created_at", -1)],
        )
        if not doc:
            return None
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return permission_from_dict(doc)
