# dca_agent/core/domain/entities/chain_entity.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eth_account.signers.local import LocalAccount


@dataclass(frozen=True)
class ContractCall:
    to: str
    data: str  # 0x-prefixed calldata
    value: int = 0


@dataclass
class TxReceipt:
    """
    Normalized mined-transaction result. logs keep the raw web3 shape
    ({"address", "topics", "data", ...}) after to_json_safe().
    """
    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    logs: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DelegateSigner:
    """
    Transient signer for a session account. Built per pipeline run from the
    encrypted key and dropped afterwards.
    """
    address: str
    account: LocalAccount = field(repr=False)


@dataclass
class SwapResult:
    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SwapAmounts:
    amount_in: Optional[int]
    amount_out: Optional[int]
