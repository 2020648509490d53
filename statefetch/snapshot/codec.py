# MIT License
# Copyright (c) 2025 Hashborn

"""
Binary encoding of an ordered list of key/value pairs.

Layout (SCALE-compatible `Vec<(Vec<u8>, Vec<u8>)>`):

    compact(count) || for each pair: compact(len(k)) k compact(len(v)) v

`compact(n)` uses the low two bits of the first byte as a mode flag:
0b00 single byte, 0b01 two bytes, 0b10 four bytes, 0b11 big-integer mode
where the upper six bits hold (byte length - 4).
"""

import struct
from typing import Iterable, Tuple

from ..protocol.types.common import DecodeError, KeyPair, KeyPairs

_SINGLE_MAX = 1 << 6
_TWO_MAX = 1 << 14
_FOUR_MAX = 1 << 30
_BIG_MAX_BYTES = 4 + 63


def encode_compact(n: int) -> bytes:
    if n < 0:
        raise ValueError(f"Compact integers are unsigned, got {n}")
    if n < _SINGLE_MAX:
        return struct.pack("<B", n << 2)
    if n < _TWO_MAX:
        return struct.pack("<H", (n << 2) | 0b01)
    if n < _FOUR_MAX:
        return struct.pack("<I", (n << 2) | 0b10)

    body = n.to_bytes((n.bit_length() + 7) // 8, "little")
    if len(body) > _BIG_MAX_BYTES:
        raise ValueError(f"Integer too large for compact encoding: {n}")
    return struct.pack("<B", ((len(body) - 4) << 2) | 0b11) + body


def decode_compact(data: bytes, offset: int) -> Tuple[int, int]:
    """
    Decode one compact integer at `offset`.

    Returns:
        (value, new_offset)

    Raises:
        DecodeError: if truncated or not canonically encoded
    """
    if offset >= len(data):
        raise DecodeError("Unexpected end of input reading compact prefix", operation="decode")
    mode = data[offset] & 0b11

    if mode == 0b00:
        return data[offset] >> 2, offset + 1

    if mode == 0b01:
        _require(data, offset, 2)
        (raw,) = struct.unpack_from("<H", data, offset)
        value = raw >> 2
        if value < _SINGLE_MAX:
            raise DecodeError(f"Non-canonical compact integer {value}", operation="decode")
        return value, offset + 2

    if mode == 0b10:
        _require(data, offset, 4)
        (raw,) = struct.unpack_from("<I", data, offset)
        value = raw >> 2
        if value < _TWO_MAX:
            raise DecodeError(f"Non-canonical compact integer {value}", operation="decode")
        return value, offset + 4

    length = (data[offset] >> 2) + 4
    _require(data, offset + 1, length)
    body = data[offset + 1:offset + 1 + length]
    value = int.from_bytes(body, "little")
    if value < _FOUR_MAX or body[-1] == 0:
        raise DecodeError(f"Non-canonical compact integer {value}", operation="decode")
    return value, offset + 1 + length


def _require(data: bytes, offset: int, size: int):
    if offset + size > len(data):
        raise DecodeError(
            f"Unexpected end of input: need {size} bytes at offset {offset}, have {len(data) - offset}",
            operation="decode",
        )


def _read_bytes(data: bytes, offset: int) -> Tuple[bytes, int]:
    length, offset = decode_compact(data, offset)
    _require(data, offset, length)
    return bytes(data[offset:offset + length]), offset + length


def encode_pairs(pairs: Iterable[KeyPair]) -> bytes:
    """Encode pairs in order. Keys and values must be bytes."""
    pairs = list(pairs)
    out = bytearray(encode_compact(len(pairs)))
    for key, value in pairs:
        out += encode_compact(len(key))
        out += key
        out += encode_compact(len(value))
        out += value
    return bytes(out)


def decode_pairs(data: bytes) -> KeyPairs:
    """
    Exact inverse of `encode_pairs`.

    Raises:
        DecodeError: on truncated input, bad length prefixes or trailing bytes
    """
    count, offset = decode_compact(data, 0)
    # Every pair needs at least two prefix bytes.
    if count > (len(data) - offset) // 2:
        raise DecodeError(f"Pair count {count} exceeds input size {len(data)}", operation="decode")

    pairs: KeyPairs = []
    for _ in range(count):
        key, offset = _read_bytes(data, offset)
        value, offset = _read_bytes(data, offset)
        pairs.append((key, value))

    if offset != len(data):
        raise DecodeError(f"{len(data) - offset} trailing bytes after {count} pairs", operation="decode")
    return pairs
