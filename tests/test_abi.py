import pytest
from eth_abi import encode

from chain.abi import (
    argument_types,
    decode_uint,
    decode_uint_array,
    encode_call,
    function_selector,
)


def test_get_amounts_out_selector():
    assert function_selector("getAmountsOut(uint256,address[])").hex() == "d06ca61f"


def test_decimals_selector():
    assert encode_call("decimals()", []) == bytes.fromhex("313ce567")


def test_argument_types_parses_signature():
    assert argument_types("executeArbitrage(address,address,address,uint256)") == [
        "address",
        "address",
        "address",
        "uint256",
    ]
    assert argument_types("decimals()") == []


def test_argument_types_rejects_garbage():
    with pytest.raises(ValueError):
        argument_types("not a signature")


def test_encode_call_checks_arity():
    with pytest.raises(ValueError, match="takes 2 arguments"):
        encode_call("getAmountsOut(uint256,address[])", [1])


def test_decode_uint_array():
    data = encode(["uint256[]"], [[100, 250]])
    assert decode_uint_array(data) == [100, 250]


def test_decode_uint():
    assert decode_uint(encode(["uint256"], [18])) == 18
