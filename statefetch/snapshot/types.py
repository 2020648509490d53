# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Data Structures
"""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ..protocol.config.params import DEFAULT_SNAPSHOT_PATH, SNAPSHOT_FORMAT_VERSION


class SnapshotConfig(BaseModel):
    """
    Location of a state snapshot file.
    """
    path: Path = Field(default=Path(DEFAULT_SNAPSHOT_PATH), description="Path to the snapshot file")

    @property
    def meta_path(self) -> Path:
        return self.path.with_name(self.path.name + ".meta.json")


class SnapshotMetadata(BaseModel):
    """
    Sidecar metadata (informational; never required to load a snapshot).
    """
    version: str = Field(default=SNAPSHOT_FORMAT_VERSION, description="Snapshot format version")
    uri: Optional[str] = Field(default=None, description="Endpoint the state was scraped from")
    at: Optional[str] = Field(default=None, description="Block hash the state was pinned to")
    modules: List[str] = Field(default_factory=list, description="Modules scraped (empty = all)")
    pairs_count: int = Field(..., description="Number of key/value pairs")
    size: int = Field(..., description="Encoded payload size (bytes)")
    compressed: bool = Field(default=False, description="Payload gzip-compressed on disk")
    hash: str = Field(..., description="SHA256 of the encoded payload")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
