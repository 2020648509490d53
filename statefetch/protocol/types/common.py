# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum
from typing import List, Optional, Tuple

# Raw storage keys and values are opaque byte strings.
StorageKey = bytes
StorageValue = bytes
KeyPair = Tuple[StorageKey, StorageValue]
KeyPairs = List[KeyPair]

# Block hash as returned by the node ("0x..." hex).
BlockHash = str


class Phase(str, Enum):
    CONFIGURING = "Configuring"
    RESOLVING = "Resolving"     # Online only
    RETRIEVING = "Retrieving"
    FINALIZING = "Finalizing"   # Snapshot write + injection
    DONE = "Done"


class StateFetchError(Exception):
    """
    Base class for every failure surfaced by a build.

    Carries the name of the operation that failed and the underlying cause
    (if any) so a caller can tell a dropped socket from a corrupt file.
    """

    def __init__(self, message: str, operation: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        msg = super().__str__()
        if self.operation:
            msg = f"{self.operation}: {msg}"
        if self.cause is not None:
            msg = f"{msg} ({type(self.cause).__name__}: {self.cause})"
        return msg


class TransportError(StateFetchError):
    pass


class SnapshotIOError(StateFetchError):
    pass


class DecodeError(StateFetchError):
    pass


class ConfigurationError(StateFetchError):
    pass
