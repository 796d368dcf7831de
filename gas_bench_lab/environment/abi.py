"""
Minimal ABI encoding helpers.

Enough of the Solidity ABI to build calldata for cost accounting and to
produce the fixed-width parameter encodings some variants expect.
"""

import hashlib
import re
from typing import Any, Sequence

from ..exceptions import TransactionRejected

WORD_SIZE = 32

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_UINT_RE = re.compile(r"^uint(\d*)$")

DYNAMIC_TYPES = frozenset({"string", "bytes"})


def encode_bytes32_string(text: str) -> bytes:
    """Encode a short string as a null-terminated, zero-padded bytes32.

    Mirrors ethers' ``encodeBytes32String``: at most 31 UTF-8 bytes.
    """
    data = text.encode("utf-8")
    if len(data) > 31:
        raise ValueError("bytes32 string must be less than 32 bytes")
    return data.ljust(WORD_SIZE, b"\x00")


def decode_bytes32_string(value: bytes) -> str:
    """Inverse of :func:`encode_bytes32_string`."""
    if len(value) != WORD_SIZE:
        raise ValueError("invalid bytes32 - not 32 bytes long")
    if value[31] != 0:
        raise ValueError("invalid bytes32 string - no null terminator")
    return value.rstrip(b"\x00").decode("utf-8")


def is_address(value: Any) -> bool:
    """True for a 0x-prefixed, 20-byte hex address string."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def function_selector(signature: str) -> bytes:
    """Four-byte function selector.

    sha3-256 stands in for keccak-256; only the byte pattern matters for
    calldata pricing.
    """
    return hashlib.sha3_256(signature.encode("ascii")).digest()[:4]


def _word(n: int) -> bytes:
    return n.to_bytes(WORD_SIZE, "big")


def _pad(data: bytes) -> bytes:
    remainder = len(data) % WORD_SIZE
    if remainder:
        data += b"\x00" * (WORD_SIZE - remainder)
    return data


def _encode_static(abi_type: str, value: Any) -> bytes:
    if abi_type == "address":
        if not is_address(value):
            raise TransactionRejected(f"invalid address argument: {value!r}")
        return bytes(12) + bytes.fromhex(value[2:])

    if abi_type == "bool":
        if not isinstance(value, bool):
            raise TransactionRejected(f"invalid bool argument: {value!r}")
        return _word(int(value))

    if abi_type == "bytes32":
        if not isinstance(value, (bytes, bytearray)) or len(value) != WORD_SIZE:
            raise TransactionRejected(f"invalid bytes32 argument: {value!r}")
        return bytes(value)

    match = _UINT_RE.match(abi_type)
    if match:
        bits = int(match.group(1) or 256)
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 2**bits:
            raise TransactionRejected(f"invalid {abi_type} argument: {value!r}")
        return _word(value)

    raise TransactionRejected(f"unsupported ABI type: {abi_type}")


def _encode_dynamic(abi_type: str, value: Any) -> bytes:
    if abi_type == "string":
        if not isinstance(value, str):
            raise TransactionRejected(f"invalid string argument: {value!r}")
        data = value.encode("utf-8")
    else:
        if not isinstance(value, (bytes, bytearray)):
            raise TransactionRejected(f"invalid bytes argument: {value!r}")
        data = bytes(value)
    return _word(len(data)) + _pad(data)


def encode_arguments(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode ``values`` as a head/tail tuple of ``types``."""
    if len(types) != len(values):
        raise TransactionRejected(
            f"expected {len(types)} arguments, got {len(values)}"
        )

    head_size = WORD_SIZE * len(types)
    heads: list[bytes] = []
    tails: list[bytes] = []

    for abi_type, value in zip(types, values):
        if abi_type in DYNAMIC_TYPES:
            offset = head_size + sum(len(t) for t in tails)
            heads.append(_word(offset))
            tails.append(_encode_dynamic(abi_type, value))
        else:
            heads.append(_encode_static(abi_type, value))

    return b"".join(heads) + b"".join(tails)


def calldata_gas(data: bytes) -> int:
    """Calldata cost: 4 gas per zero byte, 16 per non-zero byte."""
    zeros = data.count(0)
    return zeros * 4 + (len(data) - zeros) * 16
