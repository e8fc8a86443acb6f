import json
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from eth_account import Account

from ..domain.entities.account_entity import SessionAccountEntity
from ..domain.entities.chain_entity import DelegateSigner
from ..exceptions import DelegationPermissionError

IV_SIZE = 16
TAG_SIZE = 16


class SessionKeyCipher:
    """
    AES-256-GCM envelope for session account private keys.

    Stored format is JSON with hex fields: {"encrypted", "iv", "authTag"}.
    The tag is kept apart from the ciphertext, so it is re-joined before
    handing the blob to AESGCM.
    """

    def __init__(self, secret_key_hex: str):
        key = bytes.fromhex(secret_key_hex or "")
        if len(key) != 32:
            raise ValueError("ENCRYPTION_SECRET_KEY must be 32 bytes (64 hex chars)")
        self._aes = AESGCM(key)

    def encrypt(self, plaintext: str, iv: Optional[bytes] = None) -> str:
        iv = iv or os.urandom(IV_SIZE)
        blob = self._aes.encrypt(iv, plaintext.encode("utf-8"), None)
        return json.dumps({
            "encrypted": blob[:-TAG_SIZE].hex(),
            "iv": iv.hex(),
            "authTag": blob[-TAG_SIZE:].hex(),
        })

    def decrypt(self, envelope: str) -> str:
        data = json.loads(envelope)
        blob = bytes.fromhex(data["encrypted"]) + bytes.fromhex(data["authTag"])
        return self._aes.decrypt(bytes.fromhex(data["iv"]), blob, None).decode("utf-8")

    def signer_for(self, session: SessionAccountEntity) -> DelegateSigner:
        """
        Build a transient signer. The decrypted key only lives in this frame
        and inside the returned LocalAccount.
        """
        try:
            account = Account.from_key(self.decrypt(session.encrypted_private_key))
        except (InvalidTag, ValueError, KeyError) as exc:
            raise DelegationPermissionError(
                "Session account key could not be decrypted", user_id=session.user_id
            ) from exc
        if account.address.lower() != session.address.lower():
            raise DelegationPermissionError(
                "Session account key does not match its address", user_id=session.user_id
            )
        return DelegateSigner(address=account.address, account=account)
