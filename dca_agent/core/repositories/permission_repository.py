from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Union

from ..domain.entities.permission_entity import Erc20PeriodicPermission, NativePeriodicPermission
from ..domain.enums.dca_enums import PermissionKind


class PermissionRepository(ABC):
    """
    Read access to the permissions granted by users to their session accounts.
    Granting and revoking happen outside this service.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def active_permission(
        self, user_id: str, kind: PermissionKind, now: datetime
    ) -> Optional[Union[NativePeriodicPermission, Erc20PeriodicPermission]]:
        """
        Most recently created permission of the given kind that is
        neither revoked nor expired at `now`.
        """
        raise NotImplementedError
