"""
Tests for the session key envelope.
"""
import json

import pytest
from eth_account import Account

from dca_agent.core.domain.entities.account_entity import SessionAccountEntity
from dca_agent.core.exceptions import DelegationPermissionError
from dca_agent.core.services.session_key_cipher import SessionKeyCipher

from conftest import DELEGATE_KEY, SECRET_KEY_HEX


class TestSessionKeyCipher:

    def test_envelope_shape(self, cipher):
        env = json.loads(cipher.encrypt("secret"))
        assert set(env) == {"encrypted", "iv", "authTag"}
        assert len(bytes.fromhex(env["authTag"])) == 16
        assert cipher.decrypt(json.dumps(env)) == "secret"

    def test_rejects_short_key(self):
        with pytest.raises(ValueError):
            SessionKeyCipher("abcd")

    def test_signer_for(self, cipher, delegate_address):
        session = SessionAccountEntity(
            id="s1", user_id="u1", address=delegate_address, encrypted_private_key=cipher.encrypt(DELEGATE_KEY)
        )
        signer = cipher.signer_for(session)
        assert signer.address == Account.from_key(DELEGATE_KEY).address
        assert DELEGATE_KEY[2:] not in repr(signer)
        assert DELEGATE_KEY[2:] not in repr(session)

    def test_wrong_key_fails_as_permission_error(self, delegate_address):
        other = SessionKeyCipher("cd" * 32)
        session = SessionAccountEntity(
            id="s1", user_id="u1", address=delegate_address,
            encrypted_private_key=other.encrypt(DELEGATE_KEY),
        )
        with pytest.raises(DelegationPermissionError):
            SessionKeyCipher(SECRET_KEY_HEX).signer_for(session)

    def test_address_mismatch(self, cipher):
        session = SessionAccountEntity(
            id="s1", user_id="u1", address="0x0000000000000000000000000000000000000001",
            encrypted_private_key=cipher.encrypt(DELEGATE_KEY),
        )
        with pytest.raises(DelegationPermissionError):
            cipher.signer_for(session)
