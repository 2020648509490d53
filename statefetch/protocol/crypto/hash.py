import hashlib
from typing import List

import xxhash


def twox_64(data: bytes, seed: int = 0) -> bytes:
    """Returns XXH64 of bytes, little-endian."""
    return xxhash.xxh64_intdigest(data, seed=seed).to_bytes(8, "little")


def twox_128(data: bytes) -> bytes:
    """Returns the 128-bit twox hash: XXH64 seed 0 followed by XXH64 seed 1."""
    return twox_64(data, seed=0) + twox_64(data, seed=1)


def module_prefix(name: str) -> bytes:
    """Storage prefix under which a module keeps all of its keys."""
    return twox_128(name.encode("utf-8"))


def module_prefixes(names: List[str]) -> List[bytes]:
    """
    One prefix per module, in input order.

    An empty list means no filtering and maps to the single empty prefix,
    which matches every key.
    """
    if not names:
        return [b""]
    return [module_prefix(name) for name in names]


def sha256_hex(data: bytes) -> str:
    """Returns SHA256 hash of bytes as hex string."""
    return hashlib.sha256(data).hexdigest()
