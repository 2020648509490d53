# MIT License
# Copyright (c) 2025 Hashborn

"""
Remote state externalities.

Load a node's storage at a given block, either live over JSON-RPC or from a
local snapshot file, into an in-memory key/value store.
"""

from .core import Builder, Externalities, OfflineConfig, OnlineConfig, Transport
from .protocol.types.common import (
    ConfigurationError,
    DecodeError,
    SnapshotIOError,
    StateFetchError,
    TransportError,
)
from .snapshot import SnapshotConfig

__version__ = "0.1.0"

__all__ = [
    "Builder",
    "Externalities",
    "OnlineConfig",
    "OfflineConfig",
    "Transport",
    "SnapshotConfig",
    "StateFetchError",
    "TransportError",
    "SnapshotIOError",
    "DecodeError",
    "ConfigurationError",
]
