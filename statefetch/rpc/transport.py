# MIT License
# Copyright (c) 2025 Hashborn

"""
JSON-RPC transports.

A transport is a reliable request/response channel to one node. It is owned
by exactly one build session and closed when the session ends.
"""

import itertools
import json
import logging
import time
from typing import Any, List, Optional

import requests
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from ..protocol.config.params import RPC_TIMEOUT_SEC
from ..protocol.types.common import TransportError

logger = logging.getLogger(__name__)


class RpcTransport:
    """
    Base class for JSON-RPC 2.0 channels.

    Subclasses implement `_send` (one raw round trip); framing and error
    mapping live here.
    """

    def __init__(self, uri: str, timeout: float = RPC_TIMEOUT_SEC):
        self.uri = uri
        self.timeout = timeout
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Call `method` with positional `params` and return its `result`.

        Raises:
            TransportError: on channel failure, RPC error object or malformed reply
        """
        request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params or [],
        }
        reply = self._send(method, payload)

        if not isinstance(reply, dict):
            raise TransportError(f"Malformed response: {reply!r}", operation=method)
        if reply.get("error") is not None:
            err = reply["error"]
            if isinstance(err, dict):
                detail = f"RPC error {err.get('code')}: {err.get('message')}"
            else:
                detail = f"RPC error: {err}"
            raise TransportError(detail, operation=method)
        if "result" not in reply:
            raise TransportError(f"Response has no result: {reply!r}", operation=method)
        return reply["result"]

    def _send(self, method: str, payload: dict) -> Any:
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class HttpTransport(RpcTransport):
    """JSON-RPC over HTTP(S) POST."""

    def __init__(self, uri: str, timeout: float = RPC_TIMEOUT_SEC):
        super().__init__(uri, timeout)
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def _send(self, method: str, payload: dict) -> Any:
        try:
            resp = self.session.post(self.uri, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError("HTTP request failed", operation=method, cause=e) from e

        if resp.status_code != 200:
            raise TransportError(f"HTTP {resp.status_code}: {resp.text[:200]}", operation=method)
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError("Response is not JSON", operation=method, cause=e) from e

    def close(self):
        self.session.close()


class WebSocketTransport(RpcTransport):
    """JSON-RPC over a single WebSocket connection, one request in flight."""

    def __init__(self, uri: str, timeout: float = RPC_TIMEOUT_SEC):
        super().__init__(uri, timeout)
        try:
            # Storage responses can be large; no frame size cap.
            self.websocket = ws_connect(uri, open_timeout=timeout, max_size=None)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"Failed to connect to {uri}", operation="connect", cause=e) from e
        logger.debug(f"WebSocket connected | url={uri}")

    def _send(self, method: str, payload: dict) -> Any:
        try:
            self.websocket.send(json.dumps(payload))
            deadline = time.monotonic() + self.timeout
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(f"No reply within {self.timeout}s")
                raw = self.websocket.recv(timeout=remaining)
                try:
                    reply = json.loads(raw)
                except ValueError as e:
                    raise TransportError("Response is not JSON", operation=method, cause=e) from e
                # Skip subscription notifications and stale replies
                if isinstance(reply, dict) and reply.get("id") == payload["id"]:
                    return reply
                logger.debug(f"Ignoring unrelated message while waiting for {method}")
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError("WebSocket request failed", operation=method, cause=e) from e

    def close(self):
        try:
            self.websocket.close()
        except (OSError, WebSocketException) as e:
            logger.debug(f"Error while closing websocket: {e}")


def connect(uri: str, timeout: float = RPC_TIMEOUT_SEC) -> RpcTransport:
    """
    Open a transport for `uri`, picking the implementation by scheme.

    Raises:
        TransportError: unsupported scheme or connection failure
    """
    scheme = uri.split("://", 1)[0].lower() if "://" in uri else ""
    if scheme in ("ws", "wss"):
        return WebSocketTransport(uri, timeout)
    if scheme in ("http", "https"):
        return HttpTransport(uri, timeout)
    raise TransportError(f"Unsupported transport scheme in {uri!r}", operation="connect")
