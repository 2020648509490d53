# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from ..core.builder import Builder
from ..core.config import OfflineConfig, OnlineConfig, Transport
from ..core.events import PROGRESS
from ..protocol.config.params import default_uri
from ..protocol.types.common import StateFetchError
from ..snapshot.snapshot_manager import SnapshotManager
from ..snapshot.types import SnapshotConfig


def _print_progress(done, total):
    print(f"  {done} / {total} values")


def _preview(value: bytes, width: int = 32) -> str:
    hex_value = value.hex()
    if len(hex_value) > width * 2:
        return f"0x{hex_value[:width * 2]}... ({len(value)} bytes)"
    return f"0x{hex_value}"


def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


# --- Commands ---
def cmd_fetch(args):
    try:
        config = OnlineConfig(
            at=args.at,
            modules=args.module or [],
            transport=Transport(uri=args.uri or default_uri()),
            state_snapshot=SnapshotConfig(path=Path(args.snapshot)) if args.snapshot else None,
        )
    except ValidationError as e:
        print(f"Error: invalid options: {e}")
        sys.exit(1)
    builder = Builder().mode(config).subscribe(PROGRESS, _print_progress)

    scope = ", ".join(config.modules) if config.modules else "all modules"
    print(f"Fetching {scope} from {config.transport.uri}...")
    try:
        ext = builder.build()
    except StateFetchError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Block:  {builder.resolved_at}")
    print(f"Keys:   {len(ext)}")
    if config.state_snapshot:
        print(f"Snapshot written to {config.state_snapshot.path}")


def cmd_load(args):
    config = OfflineConfig(state_snapshot=SnapshotConfig(path=Path(args.path)))
    try:
        ext = Builder().mode(config).build()
    except StateFetchError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"Loaded {len(ext)} keys from {args.path}")


def cmd_inspect(args):
    manager = SnapshotManager(SnapshotConfig(path=Path(args.path)))
    try:
        pairs = manager.load()
    except StateFetchError as e:
        print(f"Error: {e}")
        sys.exit(1)

    metadata = manager.load_metadata()
    if metadata:
        print(f"Endpoint: {metadata.uri}")
        print(f"Block:    {metadata.at}")
        print(f"Modules:  {', '.join(metadata.modules) or 'all'}")
        print(f"Created:  {metadata.timestamp}")
        print(f"Verified: {manager.verify()}")
    print(f"Pairs:    {len(pairs)}")

    if args.limit:
        print(f"{'Key':<70} {'Value'}")
        print("-" * 110)
        for key, value in pairs[:args.limit]:
            print(f"{_preview(key):<70} {_preview(value)}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Remote state snapshot CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_fetch = subparsers.add_parser("fetch", help="Scrape state from a live node")
    p_fetch.add_argument("--uri", help="Node endpoint (default: $STATEFETCH_URI or public node)")
    p_fetch.add_argument("--at", help="Block hash (default: latest finalized)")
    p_fetch.add_argument("--module", action="append", help="Module to scrape (repeatable; default: all)")
    p_fetch.add_argument("--snapshot", help="Write the scraped state to this file")

    p_load = subparsers.add_parser("load", help="Load a snapshot file into externalities")
    p_load.add_argument("path", help="Snapshot file")

    p_inspect = subparsers.add_parser("inspect", help="Show snapshot metadata and contents")
    p_inspect.add_argument("path", help="Snapshot file")
    p_inspect.add_argument("--limit", type=_non_negative_int, default=10, help="Pairs to print (0 = none)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "fetch":
        cmd_fetch(args)
    elif args.command == "load":
        cmd_load(args)
    elif args.command == "inspect":
        cmd_inspect(args)


if __name__ == "__main__":
    main()
