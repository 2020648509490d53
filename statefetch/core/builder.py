# MIT License
# Copyright (c) 2025 Hashborn

"""
Builder for externalities backed by remote or snapshotted state.

Phases run strictly in order:
Configuring -> Resolving (online) -> Retrieving -> Finalizing -> Done.
A builder is consumed by `pre_build`/`build` and cannot be reused.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional

from .config import Mode, OfflineConfig, OnlineConfig
from .events import EventBus, ERROR, PHASE, SNAPSHOT_WRITTEN
from .externalities import Externalities, apply_pairs
from .scraper import RemoteScraper
from ..observability.metrics import build_duration_seconds, builds_failed_total, last_build_pairs
from ..protocol.types.common import (
    BlockHash,
    ConfigurationError,
    KeyPair,
    KeyPairs,
    Phase,
    StateFetchError,
)
from ..rpc.api import RpcApi
from ..rpc.transport import RpcTransport, connect
from ..snapshot.snapshot_manager import SnapshotManager

logger = logging.getLogger(__name__)


def overlay(base: KeyPairs, extra: Iterable[KeyPair]) -> KeyPairs:
    """`base` followed by `extra`. No deduplication; the sink resolves duplicates."""
    return list(base) + list(extra)


class Builder:
    """
    Configure with `mode()` / `inject()`, then call `build()` once.

    Example:
        ext = (
            Builder()
            .mode(OnlineConfig(modules=["System"]))
            .build()
        )
    """

    def __init__(self, transport_factory: Callable[[str], RpcTransport] = connect):
        """
        Args:
            transport_factory: Opens a transport for a URI (tests pass a fake)
        """
        self._mode: Mode = OnlineConfig()
        self._inject: KeyPairs = []
        self._transport_factory = transport_factory
        self._consumed = False

        self.events = EventBus()
        self.phase = Phase.CONFIGURING
        # Block the online state was pinned to, once resolved.
        self.resolved_at: Optional[BlockHash] = None

    # --- Configuration ---
    def mode(self, mode: Mode) -> "Builder":
        self._ensure_configuring()
        if not isinstance(mode, (OnlineConfig, OfflineConfig)):
            raise ConfigurationError(f"Unknown mode {mode!r}", operation="mode")
        self._mode = mode
        return self

    def inject(self, injections: Iterable[KeyPair]) -> "Builder":
        """Append key/value pairs to be written over the scraped state."""
        self._ensure_configuring()
        for key, value in injections:
            self._inject.append((bytes(key), bytes(value)))
        return self

    def subscribe(self, event_type: str, callback: Callable) -> "Builder":
        self.events.subscribe(event_type, callback)
        return self

    def online_config(self) -> OnlineConfig:
        """
        Raises:
            ConfigurationError: if the builder is in offline mode
        """
        if not isinstance(self._mode, OnlineConfig):
            raise ConfigurationError("Unexpected mode: expected Online", operation="online_config")
        return self._mode

    @property
    def injected(self) -> List[KeyPair]:
        return list(self._inject)

    # --- Build ---
    def pre_build(self) -> KeyPairs:
        """
        Retrieve or load the state and append the injected pairs.

        Raises:
            TransportError, SnapshotIOError, DecodeError: on any failure; nothing is returned
            ConfigurationError: if the builder was already consumed
        """
        kv = self._retrieve()
        self._set_phase(Phase.DONE)
        return kv

    def build(self) -> Externalities:
        """
        Build the externalities.

        Raises:
            StateFetchError: on any failure, with no externalities produced
        """
        kv = self._retrieve()
        ext = Externalities()

        logger.info(f"Injecting a total of {len(kv)} keys")
        apply_pairs(ext, kv)
        last_build_pairs.set(len(kv))

        self._set_phase(Phase.DONE)
        return ext

    # --- Internal ---
    def _retrieve(self) -> KeyPairs:
        self._ensure_configuring()
        self._consumed = True
        mode = self._mode
        label = mode.kind
        started = time.time()

        try:
            if isinstance(mode, OfflineConfig):
                base_kv = self._load_offline(mode)
            else:
                base_kv = self._load_online(mode)

            logger.info(f"Extending externalities with {len(self._inject)} manually injected keys")
            kv = overlay(base_kv, self._inject)
        except StateFetchError as e:
            builds_failed_total.labels(mode=label).inc()
            logger.error(f"Build failed in phase {self.phase.value}: {e}")
            self.events.emit(ERROR, error=e)
            raise

        build_duration_seconds.labels(mode=label).observe(time.time() - started)
        return kv

    def _load_offline(self, config: OfflineConfig) -> KeyPairs:
        self._set_phase(Phase.RETRIEVING)
        kv = SnapshotManager(config.state_snapshot).load()
        self._set_phase(Phase.FINALIZING)
        return kv

    def _load_online(self, config: OnlineConfig) -> KeyPairs:
        self._set_phase(Phase.RESOLVING)
        uri = config.transport.uri
        logger.info(f"Initializing remote client to {uri}")

        with self._transport_factory(uri) as transport:
            api = RpcApi(transport)
            at = config.at
            if at is None:
                at = api.finalized_head()
                logger.info(f"No block given, using latest finalized {at}")
            self.resolved_at = at

            self._set_phase(Phase.RETRIEVING)
            kv = RemoteScraper(api, self.events).load_remote(config.modules, at)

        self._set_phase(Phase.FINALIZING)
        if config.state_snapshot is not None:
            SnapshotManager(config.state_snapshot).save(kv, uri=uri, at=at, modules=config.modules)
            self.events.emit(SNAPSHOT_WRITTEN, path=config.state_snapshot.path, pairs=len(kv))
        return kv

    def _set_phase(self, phase: Phase):
        logger.debug(f"Phase {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.events.emit(PHASE, phase=phase)

    def _ensure_configuring(self):
        if self._consumed:
            raise ConfigurationError("Builder already consumed by build()", operation="build")
