# dca_agent/core/domain/entities/account_entity.py

from pydantic import BaseModel


class UserEntity(BaseModel):
    id: str
    wallet_address: str  # principal EOA that granted the permissions


class SessionAccountEntity(BaseModel):
    """
    Delegate signer of a user. The private key is only ever stored encrypted;
    see SessionKeyCipher for the envelope format.
    """
    id: str
    user_id: str
    address: str
    encrypted_private_key: str
    is_active: bool = True

    def __repr__(self) -> str:
        return f"SessionAccountEntity(id={self.id!r}, user_id={self.user_id!r}, address={self.address!r})"

    __str__ = __repr__
