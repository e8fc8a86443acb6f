from collections.abc import Mapping
from typing import Any

from hexbytes import HexBytes
from web3 import Web3


def to_json_safe(obj: Any) -> Any:
    """
    Turn web3 receipt structures into plain JSON-able values.

    - HexBytes / bytes -> "0x..." str
    - Mapping (incl. web3 AttributeDict) -> dict
    - list / tuple -> list
    - anything else non-primitive -> str(obj)
    """
    if isinstance(obj, (HexBytes, bytes, bytearray)):
        return Web3.to_hex(bytes(obj))
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    if isinstance(obj, Mapping):
        return {str(k): to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(v) for v in obj]
    return str(obj)
