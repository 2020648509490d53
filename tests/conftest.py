import pytest
from typing import Dict, List, Optional, Tuple

from statefetch.protocol.types.common import TransportError
from statefetch.rpc.api import from_hex, to_hex
from statefetch.rpc.transport import RpcTransport

HEAD = "0x" + "ab" * 32


class FakeNode(RpcTransport):
    """
    In-process stand-in for a node's JSON-RPC endpoint.

    Serves state_getKeysPaged / state_getStorage / chain_getFinalizedHead
    from a dict and records every call.
    """

    def __init__(self, storage: Dict[bytes, bytes], head: str = HEAD, uri: str = "ws://fake"):
        super().__init__(uri)
        self.storage = dict(storage)
        self.head = head
        self.calls: List[Tuple[str, list]] = []
        self.fail_on: Dict[str, int] = {}  # method -> fail on Nth call (1-based)
        self.closed = False
        self.opened_uri: Optional[str] = None

    def fail(self, method: str, nth: int = 1):
        self.fail_on[method] = nth
        return self

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def _send(self, method: str, payload: dict):
        params = payload["params"]
        self.calls.append((method, params))
        if self.fail_on.get(method) == self.count(method):
            raise TransportError("connection reset", operation=method)

        if method == "chain_getFinalizedHead":
            result = self.head
        elif method == "state_getKeysPaged":
            result = self._keys_paged(*params)
        elif method == "state_getStorage":
            value = self.storage.get(from_hex(params[0]))
            result = to_hex(value) if value is not None else None
        else:
            return {"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": "Method not found"}}
        return {"jsonrpc": "2.0", "id": payload["id"], "result": result}

    def _keys_paged(self, prefix: Optional[str], count: int, start_key: Optional[str], at: Optional[str]):
        prefix_b = from_hex(prefix) if prefix else b""
        start_b = from_hex(start_key) if start_key else None
        keys = sorted(k for k in self.storage if k.startswith(prefix_b))
        if start_b is not None:
            keys = [k for k in keys if k > start_b]
        return [to_hex(k) for k in keys[:count]]

    def open(self, uri: str) -> "FakeNode":
        """Use as a Builder transport factory."""
        self.opened_uri = uri
        return self

    def close(self):
        self.closed = True


@pytest.fixture
def make_node():
    def factory(storage=None, **kwargs):
        return FakeNode(storage or {}, **kwargs)
    return factory

