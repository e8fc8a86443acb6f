import asyncio
import logging
from decimal import Decimal
from typing import Optional

from web3 import Web3

from ....config import Settings
from ....core.domain.entities.chain_entity import ContractCall
from ....core.gateways.chain_gateway import SwapBuilder
from .abis import ABI_QUOTER_V2
from .calldata import encode_call

EXACT_INPUT_SINGLE = "exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))"
EXACT_INPUT_SINGLE_TYPES = ["(address,address,uint24,address,uint256,uint256,uint160)"]


def min_amount_out(quoted_out: int, slippage_pct: float) -> int:
    factor = (Decimal(100) - Decimal(str(slippage_pct))) / Decimal(100)
    return int(Decimal(quoted_out) * factor)


class UniswapV3SwapBuilder(SwapBuilder):
    """
    SwapRouter02 exactInputSingle calls for "<spend>/<buy>" pairs.
    The minimum output comes from a QuoterV2 static call at build time.
    """

    def __init__(self, w3: Web3, settings: Settings, logger: Optional[logging.Logger] = None):
        self.w3 = w3
        self._settings = settings
        self._router = Web3.to_checksum_address(settings.SWAP_ROUTER_ADDRESS)
        self._quoter = w3.eth.contract(address=Web3.to_checksum_address(settings.QUOTER_ADDRESS), abi=ABI_QUOTER_V2)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def router_address(self) -> str:
        return self._router

    def build_approve(self, token_address: str, spender: str, amount: int) -> ContractCall:
        data = encode_call(
            "approve(address,uint256)", ["address", "uint256"],
            [Web3.to_checksum_address(spender), int(amount)],
        )
        return ContractCall(to=Web3.to_checksum_address(token_address), data=data, value=0)

    def _quote(self, token_in: str, token_out: str, amount_in: int, fee: int) -> int:
        out = self._quoter.functions.quoteExactInputSingle(
            (token_in, token_out, int(amount_in), int(fee), 0)
        ).call()
        return int(out[0])

    async def build_swap(self, pair_id: str, amount_in: int, slippage_pct: float, recipient: str) -> ContractCall:
        spend_sym, buy_sym = [p.strip() for p in pair_id.split("/")]
        token_in = Web3.to_checksum_address(self._settings.token(spend_sym).address)
        token_out = Web3.to_checksum_address(self._settings.token(buy_sym).address)
        fee = self._settings.DEFAULT_SWAP_POOL_FEE

        quoted = await asyncio.to_thread(self._quote, token_in, token_out, amount_in, fee)
        min_out = min_amount_out(quoted, slippage_pct)
        self._logger.info(
            "swap %s %s -> %s quoted=%s min_out=%s (slippage %.2f%%)",
            amount_in, spend_sym, buy_sym, quoted, min_out, slippage_pct,
        )

        params = (token_in, token_out, int(fee), Web3.to_checksum_address(recipient), int(amount_in), min_out, 0)
        data = encode_call(EXACT_INPUT_SINGLE, EXACT_INPUT_SINGLE_TYPES, [params])
        return ContractCall(to=self._router, data=data, value=0)
