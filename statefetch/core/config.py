# MIT License
# Copyright (c) 2025 Hashborn

"""
Execution mode configuration.

`Mode` is a closed union of `OnlineConfig` and `OfflineConfig`; code that
needs one variant receives it as an argument instead of asking a builder to
coerce its mode.
"""

import re
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..protocol.config.params import DEFAULT_TARGET
from ..snapshot.types import SnapshotConfig

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


class Transport(BaseModel):
    """Where to connect. The live client is owned by the build session."""
    uri: str = Field(default=DEFAULT_TARGET, description="ws(s):// or http(s):// node endpoint")


class OnlineConfig(BaseModel):
    """
    Scrape state from a live node.

    A state snapshot config may be present and will be written to in that case.
    """
    kind: Literal["online"] = "online"
    at: Optional[str] = Field(default=None, description="Block hash; latest finalized if not set")
    state_snapshot: Optional[SnapshotConfig] = Field(default=None, description="Snapshot to WRITE, not read")
    modules: List[str] = Field(default_factory=list, description="Modules to scrape; empty = entire state")
    transport: Transport = Field(default_factory=Transport)

    @field_validator("at")
    @classmethod
    def _check_at(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _HEX_RE.match(v):
            raise ValueError(f"Block hash must be 0x-prefixed hex, got {v!r}")
        return v


class OfflineConfig(BaseModel):
    """Use a state snapshot file; needs no client config."""
    kind: Literal["offline"] = "offline"
    state_snapshot: SnapshotConfig


Mode = Union[OnlineConfig, OfflineConfig]
