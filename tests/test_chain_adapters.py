"""
Tests for calldata helpers and the swap builder pieces that need no node.
"""
from decimal import Decimal

import pytest
from hexbytes import HexBytes

from dca_agent.adapters.external.chain.calldata import encode_call, encode_single_execution, selector
from dca_agent.adapters.external.chain.uniswap_v3_swap_builder import min_amount_out
from dca_agent.adapters.external.chain.utils import to_json_safe

from conftest import ROUTER, USDC


class TestCalldata:

    def test_known_selectors(self):
        assert selector("approve(address,uint256)").hex() == "095ea7b3"
        assert selector("transfer(address,uint256)").hex() == "a9059cbb"

    def test_encode_call_layout(self):
        data = encode_call("approve(address,uint256)", ["address", "uint256"], [ROUTER, 5])
        assert data.startswith("0x095ea7b3")
        # selector + two 32-byte words
        assert len(HexBytes(data)) == 4 + 64
        assert int(data[-64:], 16) == 5

    def test_single_execution_is_packed(self):
        inner = encode_call("transfer(address,uint256)", ["address", "uint256"], [ROUTER, 7])
        packed = encode_single_execution(USDC, 0, inner)
        assert len(packed) == 20 + 32 + len(HexBytes(inner))
        assert "0x" + packed[:20].hex() == USDC.lower()
        assert int.from_bytes(packed[20:52], "big") == 0
        assert packed[52:] == bytes(HexBytes(inner))

    def test_single_execution_native_value(self):
        packed = encode_single_execution(ROUTER, 10**15, "0x")
        assert len(packed) == 52
        assert int.from_bytes(packed[20:], "big") == 10**15


class TestMinAmountOut:

    @pytest.mark.parametrize("quoted,slippage,expected", [
        (1_000_000, 0.5, 995_000),
        (1_000_000, 0, 1_000_000),
        (333, 1, 329),
        (10**18, 0.3, 997 * 10**15),
    ])
    def test_floor(self, quoted, slippage, expected):
        assert min_amount_out(quoted, slippage) == expected


class TestJsonSafe:

    def test_receipt_like_structure(self):
        receipt = {
            "transactionHash": HexBytes("0xab"),
            "status": 1,
            "logs": ({"topics": [HexBytes("0x01")], "data": b"\x02"},),
            "effectiveGasPrice": Decimal("1.5"),
        }
        assert to_json_safe(receipt) == {
            "transactionHash": "0xab",
            "status": 1,
            "logs": [{"topics": ["0x01"], "data": "0x02"}],
            "effectiveGasPrice": "1.5",
        }
