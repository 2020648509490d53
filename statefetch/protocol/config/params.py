# MIT License
# Copyright (c) 2025 Hashborn

import os

# Public node used when no endpoint is configured.
DEFAULT_TARGET = "wss://rpc.polkadot.io"

# Env override for the CLI (same role as CPC_NODE in the wallet CLI).
URI_ENV_VAR = "STATEFETCH_URI"

# Keys requested per state_getKeysPaged call.
PAGE_SIZE = 512

# Emit a progress event every N fetched values.
PROGRESS_INTERVAL = 1000

# Seconds to wait for a single RPC response.
RPC_TIMEOUT_SEC = 60.0

# Default path of a state snapshot file.
DEFAULT_SNAPSHOT_PATH = "SNAPSHOT"

# Snapshot sidecar format version.
SNAPSHOT_FORMAT_VERSION = "1.0.0"

# RPC method names
RPC_GET_STORAGE = "state_getStorage"
RPC_GET_KEYS_PAGED = "state_getKeysPaged"
RPC_FINALIZED_HEAD = "chain_getFinalizedHead"


def default_uri() -> str:
    return os.environ.get(URI_ENV_VAR, DEFAULT_TARGET)
