from abc import ABC, abstractmethod
from typing import Union

from ..domain.entities.chain_entity import ContractCall, DelegateSigner, TxReceipt
from ..domain.entities.permission_entity import Erc20PeriodicPermission, NativePeriodicPermission


class ChainReader(ABC):

    @abstractmethod
    async def native_balance(self, address: str) -> int:
        raise NotImplementedError

    @abstractmethod
    async def erc20_balance(self, token_address: str, address: str) -> int:
        raise NotImplementedError


class DelegationExecutor(ABC):
    """
    Sends transactions signed by a delegate (session account).

    Both calls block until the tx is mined and raise ChainRevertError when
    the receipt status is 0. Timeouts are enforced by the caller.
    """

    @abstractmethod
    async def redeem_transfer(
        self,
        signer: DelegateSigner,
        permission: Union[NativePeriodicPermission, Erc20PeriodicPermission],
        recipient: str,
        amount: int,
        gas_limit: int,
    ) -> TxReceipt:
        """
        Redeem `permission` to move `amount` from the principal to `recipient`.
        ERC-20 permissions move their token, native permissions move ETH.
        """
        raise NotImplementedError

    @abstractmethod
    async def submit(self, signer: DelegateSigner, call: ContractCall, gas_limit: int) -> TxReceipt:
        raise NotImplementedError


class SwapBuilder(ABC):
    """
    Encodes router calls. Stateless apart from read-only quoting.
    """

    @property
    @abstractmethod
    def router_address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def build_approve(self, token_address: str, spender: str, amount: int) -> ContractCall:
        raise NotImplementedError

    @abstractmethod
    async def build_swap(self, pair_id: str, amount_in: int, slippage_pct: float, recipient: str) -> ContractCall:
        """
        exactInputSingle of `amount_in` spend tokens for the buy token of `pair_id`,
        minimum output derived from a fresh quote and `slippage_pct`.
        """
        raise NotImplementedError
