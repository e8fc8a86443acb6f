import asyncio

from web3 import Web3

from ....core.gateways.chain_gateway import ChainReader
from .abis import ABI_ERC20


class Web3ChainReader(ChainReader):
    """
    Balance reads over a sync HTTPProvider, each call moved off the event loop.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3

    def _erc20(self, token_address: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ABI_ERC20)

    async def native_balance(self, address: str) -> int:
        return int(await asyncio.to_thread(self.w3.eth.get_balance, Web3.to_checksum_address(address)))

    async def erc20_balance(self, token_address: str, address: str) -> int:
        fn = self._erc20(token_address).functions.balanceOf(Web3.to_checksum_address(address))
        return int(await asyncio.to_thread(fn.call))
