from .api import RpcApi, from_hex, to_hex
from .transport import HttpTransport, RpcTransport, WebSocketTransport, connect

__all__ = ["RpcApi", "RpcTransport", "HttpTransport", "WebSocketTransport", "connect", "to_hex", "from_hex"]
