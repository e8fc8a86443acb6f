"""
User-facing messages for pipeline failures.

Lookup order: revert reason decoded from Error(string) data, the contract
error table, then the text pattern table. Anything unrecognized maps to
GENERIC_MESSAGE so raw node output never reaches the user.
"""
import re
from typing import Iterable, Optional, Tuple

from eth_abi import decode
from hexbytes import HexBytes

from ..exceptions import ChainRevertError, ConfirmationTimeoutError, DcaError

ERROR_STRING_SELECTOR = "0x08c379a0"

GENERIC_MESSAGE = "Transaction failed. Please try again later."
TIMEOUT_MESSAGE = "Transaction was not confirmed in time. It will be retried on the next scheduled check."

CONTRACT_ERRORS: Tuple[Tuple[str, str], ...] = (
    ("ERC20PeriodTransferEnforcer:transfer-amount-exceeded",
     "Daily spending limit reached. Please grant a new permission to continue trading."),
    ("NativeTokenPeriodTransferEnforcer:transfer-amount-exceeded",
     "Daily gas allowance reached. Please grant a new permission to continue trading."),
    ("ERC20PeriodTransferEnforcer:invalid-execution-length",
     "Invalid permission configuration. Please grant a new permission."),
    ("DelegationManager:invalid-delegation", "Permission is invalid or was revoked. Please grant a new permission."),
    ("delegation-expired", "Permission has expired. Please grant a new permission."),
    ("Unauthorized", "Session account is not authorized to use this permission."),
    ("Insufficient allowance", "Token allowance is too low for this trade."),
    ("Transfer amount exceeds balance", "Insufficient token balance for this trade."),
)

PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"transfer-amount-exceeded|allowance exceeded", re.I),
     "Daily spending limit reached. Please grant a new permission to continue trading."),
    (re.compile(r"insufficient (funds|balance)|exceeds balance", re.I), "Insufficient balance to complete the trade."),
    (re.compile(r"\bSTF\b|SafeTransferFrom|TRANSFER_FROM_FAILED", re.I), "Token transfer failed. Check balance and allowance."),
    # case-sensitive: router reverts with a bare "AS"
    (re.compile(r"Too little received|\bAS\b|[Aa]ssertion"),
     "Price moved beyond the slippage tolerance. The trade was not executed."),
    (re.compile(r"out of gas", re.I), "Transaction ran out of gas."),
    (re.compile(r"user rejected|user denied", re.I), "Transaction was rejected."),
    (re.compile(r"nonce too low", re.I), "Transaction nonce conflict. It will be retried on the next scheduled check."),
    (re.compile(r"permission.*expired|expired.*permission", re.I), "Permission has expired. Please grant a new permission."),
)


def decode_revert_reason(data) -> Optional[str]:
    """
    Decode Error(string) revert data. Returns None for custom errors,
    panics, or anything that is not well-formed.
    """
    if data is None:
        return None
    raw = data.hex() if isinstance(data, (bytes, bytearray)) else str(data)
    raw = raw.lower()
    if not raw.startswith("0x"):
        raw = "0x" + raw
    if not raw.startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], bytes(HexBytes(raw))[4:])
    except Exception:
        return None
    return reason


def _embedded_revert_data(text: str) -> Optional[str]:
    m = re.search(r"0x08c379a0[0-9a-fA-F]+", text)
    return m.group(0) if m else None


def _candidates(error: BaseException) -> Iterable[str]:
    if isinstance(error, ChainRevertError) and error.reason:
        yield error.reason
    for arg in getattr(error, "args", ()):
        if isinstance(arg, (bytes, bytearray)):
            reason = decode_revert_reason(arg)
            if reason:
                yield reason
        elif isinstance(arg, dict):
            for key in ("message", "data"):
                if isinstance(arg.get(key), str):
                    yield arg[key]
    text = str(error)
    embedded = _embedded_revert_data(text)
    if embedded:
        reason = decode_revert_reason(embedded)
        if reason:
            yield reason
    yield text


def format_error_message(error: BaseException) -> str:
    if isinstance(error, ConfirmationTimeoutError):
        return TIMEOUT_MESSAGE

    for text in _candidates(error):
        for needle, message in CONTRACT_ERRORS:
            if needle in text:
                return message
        for pattern, message in PATTERNS:
            if pattern.search(text):
                return message

    # our own errors already carry a readable message, chain reverts do not
    if isinstance(error, DcaError) and not isinstance(error, ChainRevertError):
        return str(error)
    return GENERIC_MESSAGE
