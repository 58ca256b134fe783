"""Minimal ABI helpers for the handful of contract methods we call."""

from __future__ import annotations

import re
from typing import Any

from eth_abi import decode
from eth_abi import encode as abi_encode
from eth_utils import keccak

_SIGNATURE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\((.*)\)$")


def function_selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


def argument_types(signature: str) -> list[str]:
    """``"f(address,uint256[])"`` -> ``["address", "uint256[]"]``."""
    match = _SIGNATURE.match(signature.replace(" ", ""))
    if match is None:
        raise ValueError(f"Invalid function signature: {signature!r}")
    args = match.group(2)
    return args.split(",") if args else []


def encode_call(signature: str, args: list[Any]) -> bytes:
    arg_types = argument_types(signature)
    if len(arg_types) != len(args):
        raise ValueError(
            f"{signature} takes {len(arg_types)} arguments, got {len(args)}"
        )
    return function_selector(signature) + abi_encode(arg_types, args)


def decode_uint_array(data: bytes) -> list[int]:
    (values,) = decode(["uint256[]"], data)
    return [int(v) for v in values]


def decode_uint(data: bytes) -> int:
    (value,) = decode(["uint256"], data)
    return int(value)
