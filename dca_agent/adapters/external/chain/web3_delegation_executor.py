import asyncio
import logging
from typing import Optional, Union

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ....core.domain.entities.chain_entity import ContractCall, DelegateSigner, TxReceipt
from ....core.domain.entities.permission_entity import Erc20PeriodicPermission, NativePeriodicPermission
from ....core.exceptions import ChainRevertError, ConfirmationTimeoutError
from ....core.gateways.chain_gateway import DelegationExecutor
from .abis import ABI_DELEGATION_MANAGER
from .calldata import encode_call, encode_single_execution
from .utils import to_json_safe

# ERC-7579 mode: single call, revert on failure
SINGLE_DEFAULT_MODE = b"\x00" * 32


class Web3DelegationExecutor(DelegationExecutor):
    """
    Build, sign and broadcast delegate (session account) transactions.

    - redeem_transfer: DelegationManager.redeemDelegations with one execution
      that moves funds from the principal to `recipient`.
    - submit: plain call from the delegate's own balance (approve / swap).

    Both wait for the receipt (bounded by receipt_timeout_sec). A mined tx
    with status == 0 raises ChainRevertError; the reason is recovered by
    replaying the call at the receipt block.
    """

    def __init__(self, w3: Web3, receipt_timeout_sec: float = 45.0, logger: Optional[logging.Logger] = None):
        self.w3 = w3
        self._receipt_timeout = receipt_timeout_sec
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    # ---------- internal helpers ----------

    def _next_nonce(self, address: str) -> int:
        return self.w3.eth.get_transaction_count(address, "pending")

    def _finalize_fee_fields(self, tx: dict) -> dict:
        if "maxFeePerGas" in tx or "maxPriorityFeePerGas" in tx:
            return tx
        if "gasPrice" not in tx:
            tx["gasPrice"] = self.w3.eth.gas_price
        return tx

    def _revert_reason(self, tx: dict, block_number: Optional[int]) -> Optional[str]:
        call = {k: tx[k] for k in ("from", "to", "data", "value") if k in tx}
        try:
            self.w3.eth.call(call, block_identifier=block_number or "latest")
        except ContractLogicError as exc:
            msg = exc.message or str(exc)
            return msg.replace("execution reverted: ", "").replace("execution reverted", "").strip() or None
        except Exception as exc:
            self._logger.debug("revert replay failed: %s", exc)
        return None

    def _send_and_wait(self, signer: DelegateSigner, tx: dict) -> TxReceipt:
        tx = self._finalize_fee_fields(tx)
        signed = signer.account.sign_transaction(tx)
        tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        self._logger.info("sent tx %s from %s", tx_hash, signer.address)

        try:
            rcpt = dict(self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout))
        except TimeExhausted as exc:
            raise ConfirmationTimeoutError("receipt", self._receipt_timeout, tx_hash=tx_hash) from exc

        safe = to_json_safe(rcpt)
        status = int(rcpt.get("status", 0))
        if status == 0:
            reason = self._revert_reason(tx, rcpt.get("blockNumber"))
            raise ChainRevertError(
                tx_hash=tx_hash,
                receipt=safe,
                msg=f"Transaction reverted (status=0){': ' + reason if reason else ''}",
                reason=reason,
            )

        return TxReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=rcpt.get("blockNumber"),
            gas_used=rcpt.get("gasUsed"),
            logs=safe.get("logs") or [],
        )

    def _redeem_sync(
        self,
        signer: DelegateSigner,
        permission: Union[NativePeriodicPermission, Erc20PeriodicPermission],
        recipient: str,
        amount: int,
        gas_limit: int,
    ) -> TxReceipt:
        recipient = Web3.to_checksum_address(recipient)
        if isinstance(permission, Erc20PeriodicPermission):
            transfer = encode_call("transfer(address,uint256)", ["address", "uint256"], [recipient, int(amount)])
            execution = encode_single_execution(permission.token_address, 0, transfer)
        else:
            execution = encode_single_execution(recipient, int(amount), "0x")

        manager = self.w3.eth.contract(
            address=Web3.to_checksum_address(permission.delegation_manager), abi=ABI_DELEGATION_MANAGER
        )
        fn = manager.functions.redeemDelegations(
            [bytes.fromhex(permission.permission_context.removeprefix("0x"))],
            [SINGLE_DEFAULT_MODE],
            [execution],
        )
        tx = fn.build_transaction({
            "from": signer.address,
            "nonce": self._next_nonce(signer.address),
            "value": 0,
            "gas": int(gas_limit),
        })
        return self._send_and_wait(signer, tx)

    def _submit_sync(self, signer: DelegateSigner, call: ContractCall, gas_limit: int) -> TxReceipt:
        tx = {
            "from": signer.address,
            "to": Web3.to_checksum_address(call.to),
            "data": call.data,
            "value": int(call.value or 0),
            "nonce": self._next_nonce(signer.address),
            "gas": int(gas_limit),
            "chainId": self.w3.eth.chain_id,
        }
        return self._send_and_wait(signer, tx)

    # ---------- public API ----------

    async def redeem_transfer(
        self,
        signer: DelegateSigner,
        permission: Union[NativePeriodicPermission, Erc20PeriodicPermission],
        recipient: str,
        amount: int,
        gas_limit: int,
    ) -> TxReceipt:
        return await asyncio.to_thread(self._redeem_sync, signer, permission, recipient, amount, gas_limit)

    async def submit(self, signer: DelegateSigner, call: ContractCall, gas_limit: int) -> TxReceipt:
        return await asyncio.to_thread(self._submit_sync, signer, call, gas_limit)
