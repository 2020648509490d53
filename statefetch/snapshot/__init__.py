# MIT License
# Copyright (c) 2025 Hashborn

"""
State Snapshot System

Durable, re-loadable captures of a scraped key/value set.
"""

from .codec import decode_pairs, encode_pairs
from .snapshot_manager import SnapshotManager
from .types import SnapshotConfig, SnapshotMetadata

__all__ = ["SnapshotManager", "SnapshotConfig", "SnapshotMetadata", "encode_pairs", "decode_pairs"]
