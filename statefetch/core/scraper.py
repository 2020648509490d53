# MIT License
# Copyright (c) 2025 Hashborn

"""
Remote state scraping.

Keys are enumerated with the paged RPC, then mapped to values one by one at
the same block. This works against public nodes, but expect it to be slow.
"""

import logging
from typing import List, Optional

from .events import EventBus, MODULE_DOWNLOADED, PROGRESS
from ..observability.metrics import record_page, record_value
from ..protocol.config.params import PAGE_SIZE, PROGRESS_INTERVAL
from ..protocol.crypto.hash import module_prefixes
from ..protocol.types.common import BlockHash, KeyPairs, StorageKey
from ..rpc.api import RpcApi

logger = logging.getLogger(__name__)


class RemoteScraper:
    """
    Reads state under one or more prefixes at a fixed block.

    All calls are sequential: pages in increasing key order, then values in
    the order their keys were enumerated.
    """

    def __init__(
        self,
        api: RpcApi,
        events: Optional[EventBus] = None,
        page_size: int = PAGE_SIZE,
        progress_interval: int = PROGRESS_INTERVAL,
    ):
        self.api = api
        self.events = events or EventBus()
        self.page_size = page_size
        self.progress_interval = progress_interval

    def get_keys_paged(self, prefix: StorageKey, at: BlockHash) -> List[StorageKey]:
        """
        Get all the keys under `prefix` at `at`.

        A page shorter than `page_size` is the last one; otherwise the next
        page starts after the last key received.

        Raises:
            TransportError: if any page request fails
        """
        last_key: Optional[StorageKey] = None
        all_keys: List[StorageKey] = []

        while True:
            page = self.api.get_keys_paged(prefix, self.page_size, last_key, at)
            record_page(len(page))
            all_keys.extend(page)

            if len(page) < self.page_size:
                logger.debug(f"last page received: {len(page)}")
                return all_keys

            last_key = all_keys[-1]
            logger.debug(f"new total = {len(all_keys)}, full page received: 0x{last_key.hex()}")

    def get_pairs_paged(self, prefix: StorageKey, at: BlockHash) -> KeyPairs:
        """
        Enumerate the keys under `prefix`, then fetch each value.

        An empty value (key gone between enumeration and fetch) is kept as b"".

        Raises:
            TransportError: if any request fails
        """
        keys = self.get_keys_paged(prefix, at)
        keys_count = len(keys)
        logger.info(f"Querying a total of {keys_count} keys")

        key_values: KeyPairs = []
        for key in keys:
            value = self.api.get_storage(key, at)
            record_value(value)
            key_values.append((key, value))

            if len(key_values) % self.progress_interval == 0:
                ratio = len(key_values) / keys_count
                logger.debug(f"progress = {ratio:.2f} [{len(key_values)} / {keys_count}]")
                self.events.emit(PROGRESS, done=len(key_values), total=keys_count)

        return key_values

    def load_remote(self, modules: List[str], at: BlockHash) -> KeyPairs:
        """
        Scrape the given modules, in order, or the whole state if none.

        Results are concatenated per module without deduplication.
        """
        logger.info(f"Scraping keypairs from remote @ {at}")

        if not modules:
            logger.info("Downloading data for all modules.")
            return self.get_pairs_paged(b"", at)

        filtered_kv: KeyPairs = []
        for module, prefix in zip(modules, module_prefixes(modules)):
            module_kv = self.get_pairs_paged(prefix, at)
            logger.info(
                f"Downloaded data for module {module} "
                f"(count: {len(module_kv)} / prefix: 0x{prefix.hex()})."
            )
            self.events.emit(MODULE_DOWNLOADED, module=module, count=len(module_kv), prefix=prefix)
            filtered_kv.extend(module_kv)

        return filtered_kv
