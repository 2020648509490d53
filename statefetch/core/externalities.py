# MIT License
# Copyright (c) 2025 Hashborn

from typing import Callable, Dict, Iterable, Iterator, Optional, TypeVar

from ..protocol.types.common import KeyPair, KeyPairs, StorageKey, StorageValue

T = TypeVar("T")


class Externalities:
    """
    In-memory key/value store handed to the caller after a build.

    Iteration follows the order in which each key was first inserted.
    """

    def __init__(self):
        self._storage: Dict[StorageKey, StorageValue] = {}

    def insert(self, key: StorageKey, value: StorageValue):
        self._storage[bytes(key)] = bytes(value)

    def get(self, key: StorageKey) -> Optional[StorageValue]:
        return self._storage.get(key)

    def remove(self, key: StorageKey) -> Optional[StorageValue]:
        return self._storage.pop(key, None)

    def keys_with_prefix(self, prefix: StorageKey) -> Iterator[StorageKey]:
        return (k for k in self._storage if k.startswith(prefix))

    def items(self) -> Iterator[KeyPair]:
        return iter(self._storage.items())

    def pairs(self) -> KeyPairs:
        return list(self._storage.items())

    def execute_with(self, fn: Callable[["Externalities"], T]) -> T:
        """Run `fn` against this store and return its result."""
        return fn(self)

    def __contains__(self, key: object) -> bool:
        return key in self._storage

    def __len__(self) -> int:
        return len(self._storage)

    def __repr__(self) -> str:
        return f"Externalities(keys={len(self._storage)})"


def apply_pairs(ext: Externalities, pairs: Iterable[KeyPair]) -> Externalities:
    """Insert pairs strictly in order; a later pair overrides an earlier one with the same key."""
    for key, value in pairs:
        ext.insert(key, value)
    return ext
