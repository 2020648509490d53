# MIT License
# Copyright (c) 2025 Hashborn

"""
Snapshot Manager

Reads and writes state snapshot files.

A snapshot is the encoded pair list (see `codec`), gzip-compressed when the
path ends in ".gz". Writes go through a temporary file in the same directory
and are moved into place, so a failed write leaves the target untouched.
"""

import gzip
import logging
import os
import tempfile
import zlib
from contextlib import suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .codec import decode_pairs, encode_pairs
from .types import SnapshotConfig, SnapshotMetadata
from ..observability.metrics import snapshot_bytes_read_total, snapshot_bytes_written_total
from ..protocol.crypto.hash import sha256_hex
from ..protocol.types.common import DecodeError, KeyPairs, SnapshotIOError

logger = logging.getLogger(__name__)


def _is_compressed(path: Path) -> bool:
    return path.suffix == ".gz"


class SnapshotManager:
    """
    Manages one state snapshot file and its metadata sidecar.
    """

    def __init__(self, config: SnapshotConfig):
        """
        Args:
            config: Snapshot location
        """
        self.config = config

    @property
    def path(self) -> Path:
        return self.config.path

    def save(
        self,
        pairs: KeyPairs,
        uri: Optional[str] = None,
        at: Optional[str] = None,
        modules: Optional[List[str]] = None,
    ) -> SnapshotMetadata:
        """
        Encode and write `pairs`, then the metadata sidecar.

        Returns:
            SnapshotMetadata for the written file

        Raises:
            SnapshotIOError: if the file cannot be written
        """
        logger.info(f"Writing to state snapshot file {self.path}")

        payload = encode_pairs(pairs)
        compressed = _is_compressed(self.path)
        data = gzip.compress(payload, compresslevel=6) if compressed else payload

        self._atomic_write(self.path, data)
        snapshot_bytes_written_total.inc(len(payload))

        metadata = SnapshotMetadata(
            uri=uri,
            at=at,
            modules=list(modules or []),
            pairs_count=len(pairs),
            size=len(payload),
            compressed=compressed,
            hash=sha256_hex(payload),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._atomic_write(self.config.meta_path, metadata.model_dump_json(indent=2).encode())

        logger.info(f"Snapshot written: {len(pairs)} pairs, {len(data) / 1024:.2f} KB on disk")
        return metadata

    def load(self) -> KeyPairs:
        """
        Read and decode the snapshot.

        A missing file is an error, not an empty state.

        Raises:
            SnapshotIOError: if the file cannot be read
            DecodeError: if its contents are not a valid encoding
        """
        logger.info(f"Scraping keypairs from state snapshot {self.path}")
        payload = self._read_payload()
        pairs = decode_pairs(payload)
        logger.info(f"Snapshot loaded: {len(pairs)} pairs")
        return pairs

    def load_metadata(self) -> Optional[SnapshotMetadata]:
        """
        Returns the sidecar metadata, or None if there is none.
        """
        meta_path = self.config.meta_path
        if not meta_path.exists():
            return None
        try:
            return SnapshotMetadata.model_validate_json(meta_path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to load metadata from {meta_path}: {e}")
            return None

    def verify(self) -> bool:
        """
        Check the payload hash against the sidecar.

        Returns:
            True if the sidecar exists and matches, False otherwise
        """
        metadata = self.load_metadata()
        if metadata is None:
            return False
        return sha256_hex(self._read_payload()) == metadata.hash

    def delete(self):
        """Delete the snapshot and its metadata."""
        for p in (self.path, self.config.meta_path):
            if p.exists():
                p.unlink()
                logger.info(f"Deleted {p}")

    def _read_payload(self) -> bytes:
        try:
            if _is_compressed(self.path):
                with gzip.open(self.path, "rb") as f:
                    payload = f.read()
            else:
                payload = self.path.read_bytes()
        except (zlib.error, gzip.BadGzipFile, EOFError) as e:
            raise DecodeError(f"Corrupt compressed snapshot {self.path}", operation="snapshot_read", cause=e) from e
        except OSError as e:
            raise SnapshotIOError(f"Cannot read snapshot {self.path}", operation="snapshot_read", cause=e) from e
        snapshot_bytes_read_total.inc(len(payload))
        return payload

    @staticmethod
    def _atomic_write(target: Path, data: bytes):
        tmp_path = None
        try:
            fd, name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
            tmp_path = Path(name)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, target)
        except OSError as e:
            if tmp_path is not None:
                with suppress(FileNotFoundError):
                    tmp_path.unlink()
            raise SnapshotIOError(f"Cannot write {target}", operation="snapshot_write", cause=e) from e
