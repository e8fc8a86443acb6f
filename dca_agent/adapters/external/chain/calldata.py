from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3


def selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, arg_types, args) -> str:
    """
    0x-prefixed calldata for `signature`, e.g. encode_call("approve(address,uint256)", ...).
    """
    return Web3.to_hex(selector(signature) + encode(list(arg_types), list(args)))


def encode_single_execution(target: str, value: int, call_data: str) -> bytes:
    """
    ERC-7579 single execution: abi.encodePacked(target, value, callData).
    """
    return (
        bytes(HexBytes(Web3.to_checksum_address(target)))
        + int(value).to_bytes(32, "big")
        + bytes(HexBytes(call_data or "0x"))
    )
