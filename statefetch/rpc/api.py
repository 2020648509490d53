# MIT License
# Copyright (c) 2025 Hashborn

import logging
from typing import List, Optional

from .transport import RpcTransport
from ..observability.metrics import record_rpc
from ..protocol.config.params import RPC_FINALIZED_HEAD, RPC_GET_KEYS_PAGED, RPC_GET_STORAGE
from ..protocol.types.common import BlockHash, StorageKey, StorageValue, TransportError

logger = logging.getLogger(__name__)


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """Decode a "0x"-prefixed hex string as sent by the node."""
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


class RpcApi:
    """
    The three remote procedures a retrieval session needs.

    Keys, values and prefixes travel as "0x" hex; the block hash is passed
    through as the node returned it.
    """

    def __init__(self, transport: RpcTransport):
        self.transport = transport

    def _call(self, method: str, params: list):
        logger.debug(f"rpc: {method}")
        try:
            result = self.transport.request(method, params)
        except TransportError:
            record_rpc(method, ok=False)
            raise
        record_rpc(method, ok=True)
        return result

    def get_storage(self, key: StorageKey, at: Optional[BlockHash] = None) -> StorageValue:
        result = self._call(RPC_GET_STORAGE, [to_hex(key), at])
        # null means no value at this block
        if result is None:
            return b""
        try:
            return from_hex(result)
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"Bad storage value {result!r}", operation=RPC_GET_STORAGE, cause=e) from e

    def get_keys_paged(
        self,
        prefix: Optional[StorageKey],
        count: int,
        start_key: Optional[StorageKey] = None,
        at: Optional[BlockHash] = None,
    ) -> List[StorageKey]:
        params = [
            to_hex(prefix) if prefix is not None else None,
            count,
            to_hex(start_key) if start_key is not None else None,
            at,
        ]
        result = self._call(RPC_GET_KEYS_PAGED, params)
        if not isinstance(result, list):
            raise TransportError(f"Expected a list of keys, got {result!r}", operation=RPC_GET_KEYS_PAGED)
        try:
            return [from_hex(k) for k in result]
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError("Bad key in page", operation=RPC_GET_KEYS_PAGED, cause=e) from e

    def finalized_head(self) -> BlockHash:
        result = self._call(RPC_FINALIZED_HEAD, [])
        if not isinstance(result, str):
            raise TransportError(f"Expected a block hash, got {result!r}", operation=RPC_FINALIZED_HEAD)
        return result
