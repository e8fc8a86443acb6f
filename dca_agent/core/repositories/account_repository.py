from abc import ABC, abstractmethod
from typing import Optional

from ..domain.entities.account_entity import SessionAccountEntity, UserEntity


class UserRepository(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserEntity]:
        raise NotImplementedError


class SessionAccountRepository(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_active_for_user(self, user_id: str) -> Optional[SessionAccountEntity]:
        """The user's active delegate signer, if any."""
        raise NotImplementedError
