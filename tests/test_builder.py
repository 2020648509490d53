import pytest
from pydantic import ValidationError

from statefetch.core.builder import Builder, overlay
from statefetch.core.config import OfflineConfig, OnlineConfig, Transport
from statefetch.core.events import ERROR, PHASE, SNAPSHOT_WRITTEN
from statefetch.protocol.crypto.hash import module_prefix
from statefetch.protocol.types.common import (
    ConfigurationError,
    DecodeError,
    Phase,
    SnapshotIOError,
    StateFetchError,
    TransportError,
)
from statefetch.snapshot.snapshot_manager import SnapshotManager
from statefetch.snapshot.types import SnapshotConfig

SYSTEM = module_prefix("System")


def system_state():
    return {
        SYSTEM + b"\x01": b"v1",
        SYSTEM + b"\x02": b"v2",
        SYSTEM + b"\x03": b"v3",
        module_prefix("Balances") + b"\x01": b"other",
    }


def write_snapshot(path, pairs):
    SnapshotManager(SnapshotConfig(path=path)).save(pairs)
    return path


def test_defaults_are_online_whole_state():
    builder = Builder()
    config = builder.online_config()
    assert config.at is None
    assert config.modules == []
    assert config.state_snapshot is None
    assert config.transport.uri == "wss://rpc.polkadot.io"
    assert builder.injected == []
    assert builder.phase == Phase.CONFIGURING


def test_online_module_scenario_with_snapshot(make_node, tmp_path):
    node = make_node(system_state())
    snapshot = SnapshotConfig(path=tmp_path / "system.bin")
    config = OnlineConfig(modules=["System"], state_snapshot=snapshot, transport=Transport(uri="ws://node:9944"))

    builder = Builder(transport_factory=node.open).mode(config)
    ext = builder.build()

    expected = [(SYSTEM + b"\x01", b"v1"), (SYSTEM + b"\x02", b"v2"), (SYSTEM + b"\x03", b"v3")]
    assert ext.pairs() == expected
    assert SnapshotManager(snapshot).load() == expected
    assert node.opened_uri == "ws://node:9944"
    assert node.closed
    assert builder.resolved_at == node.head
    assert builder.phase == Phase.DONE


def test_finalized_head_resolved_first(make_node):
    node = make_node(system_state())
    Builder(transport_factory=node.open).build()

    assert node.calls[0][0] == "chain_getFinalizedHead"
    assert node.count("chain_getFinalizedHead") == 1
    assert all(params[-1] == node.head for m, params in node.calls if m == "state_getKeysPaged")
    assert all(params[-1] == node.head for m, params in node.calls if m == "state_getStorage")


def test_explicit_block_skips_head_lookup(make_node):
    at = "0x" + "cd" * 32
    node = make_node(system_state())
    builder = Builder(transport_factory=node.open).mode(OnlineConfig(at=at))
    ext = builder.build()

    assert node.count("chain_getFinalizedHead") == 0
    assert builder.resolved_at == at
    assert len(ext) == 4


def test_offline_scenario(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [(b"\x01", b"\xaa"), (b"\x02", b"\xbb")])
    ext = Builder().mode(OfflineConfig(state_snapshot=SnapshotConfig(path=path))).build()
    assert ext.pairs() == [(b"\x01", b"\xaa"), (b"\x02", b"\xbb")]


def test_offline_never_touches_network(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [(b"\x01", b"\xaa")])

    def no_network(uri):
        raise AssertionError("offline build opened a transport")

    Builder(transport_factory=no_network).mode(OfflineConfig(state_snapshot=SnapshotConfig(path=path))).build()


def test_offline_load_is_idempotent(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [(b"\x03", b"c"), (b"\x01", b"a")])
    config = OfflineConfig(state_snapshot=SnapshotConfig(path=path))
    assert Builder().mode(config).pre_build() == Builder().mode(config).pre_build()


def test_offline_missing_file_fails(tmp_path):
    config = OfflineConfig(state_snapshot=SnapshotConfig(path=tmp_path / "missing.bin"))
    with pytest.raises(SnapshotIOError):
        Builder().mode(config).build()


def test_offline_corrupt_file_fails(tmp_path):
    path = tmp_path / "bad.bin"
    path.write_bytes(b"\x08\x04\x01")
    with pytest.raises(DecodeError):
        Builder().mode(OfflineConfig(state_snapshot=SnapshotConfig(path=path))).build()


def test_injection_overrides_base(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [(b"k1", b"v1"), (b"k2", b"x")])
    config = OfflineConfig(state_snapshot=SnapshotConfig(path=path))

    builder = Builder().mode(config).inject([(b"k1", b"v2")]).inject([(b"k3", b"new")])
    kv = builder.pre_build()
    assert kv == [(b"k1", b"v1"), (b"k2", b"x"), (b"k1", b"v2"), (b"k3", b"new")]

    ext = Builder().mode(config).inject([(b"k1", b"v2")]).build()
    assert ext.get(b"k1") == b"v2"
    assert ext.get(b"k2") == b"x"


def test_snapshot_excludes_injected_pairs(make_node, tmp_path):
    node = make_node({b"\x01": b"a"})
    snapshot = SnapshotConfig(path=tmp_path / "out.bin")
    ext = (
        Builder(transport_factory=node.open)
        .mode(OnlineConfig(state_snapshot=snapshot))
        .inject([(b"\x02", b"b")])
        .build()
    )
    assert len(ext) == 2
    assert SnapshotManager(snapshot).load() == [(b"\x01", b"a")]


def test_overlay_is_plain_concatenation():
    assert overlay([(b"a", b"1")], [(b"a", b"2"), (b"b", b"3")]) == [(b"a", b"1"), (b"a", b"2"), (b"b", b"3")]


def test_fetch_failure_fails_build_without_snapshot(make_node, tmp_path):
    node = make_node(system_state()).fail("state_getStorage", nth=2)
    snapshot = SnapshotConfig(path=tmp_path / "out.bin")
    builder = Builder(transport_factory=node.open).mode(OnlineConfig(state_snapshot=snapshot))
    errors = []
    builder.subscribe(ERROR, lambda error: errors.append(error))

    with pytest.raises(TransportError):
        builder.build()

    assert not snapshot.path.exists()
    assert node.closed
    assert len(errors) == 1
    assert builder.phase == Phase.RETRIEVING


def test_page_failure_fails_build(make_node):
    node = make_node(system_state()).fail("state_getKeysPaged")
    with pytest.raises(StateFetchError):
        Builder(transport_factory=node.open).build()


def test_head_failure_fails_build(make_node):
    node = make_node(system_state()).fail("chain_getFinalizedHead")
    with pytest.raises(TransportError):
        Builder(transport_factory=node.open).build()
    assert node.count("state_getKeysPaged") == 0


def test_connect_failure_fails_build():
    def refuse(uri):
        raise TransportError("connection refused", operation="connect")

    with pytest.raises(TransportError, match="connect"):
        Builder(transport_factory=refuse).build()


def test_snapshot_write_failure_fails_build(make_node, tmp_path):
    node = make_node({b"\x01": b"a"})
    snapshot = SnapshotConfig(path=tmp_path / "no-such-dir" / "out.bin")
    with pytest.raises(SnapshotIOError):
        Builder(transport_factory=node.open).mode(OnlineConfig(state_snapshot=snapshot)).build()


def test_phases_in_order(make_node, tmp_path):
    node = make_node({b"\x01": b"a"})
    phases = []
    written = []
    snapshot = SnapshotConfig(path=tmp_path / "out.bin")
    builder = (
        Builder(transport_factory=node.open)
        .mode(OnlineConfig(state_snapshot=snapshot))
        .subscribe(PHASE, lambda phase: phases.append(phase))
        .subscribe(SNAPSHOT_WRITTEN, lambda path, pairs: written.append((path, pairs)))
    )
    builder.build()

    assert phases == [Phase.RESOLVING, Phase.RETRIEVING, Phase.FINALIZING, Phase.DONE]
    assert written == [(snapshot.path, 1)]


def test_offline_phases_skip_resolving(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [])
    phases = []
    (
        Builder()
        .mode(OfflineConfig(state_snapshot=SnapshotConfig(path=path)))
        .subscribe(PHASE, lambda phase: phases.append(phase))
        .build()
    )
    assert phases == [Phase.RETRIEVING, Phase.FINALIZING, Phase.DONE]


def test_failing_subscriber_does_not_break_build(make_node):
    node = make_node({b"\x01": b"a"})

    def broken(**_):
        raise RuntimeError("listener bug")

    ext = Builder(transport_factory=node.open).subscribe(PHASE, broken).build()
    assert len(ext) == 1


def test_builder_is_consumed_once(make_node):
    node = make_node({b"\x01": b"a"})
    builder = Builder(transport_factory=node.open)
    builder.build()

    with pytest.raises(ConfigurationError):
        builder.build()
    with pytest.raises(ConfigurationError):
        builder.inject([(b"k", b"v")])


def test_pre_build_finishes_in_done(tmp_path):
    path = write_snapshot(tmp_path / "snap.bin", [(b"\x01", b"a")])
    builder = Builder().mode(OfflineConfig(state_snapshot=SnapshotConfig(path=path)))
    builder.pre_build()

    assert builder.phase == Phase.DONE
    with pytest.raises(ConfigurationError):
        builder.pre_build()


def test_online_accessor_rejects_offline_mode(tmp_path):
    builder = Builder().mode(OfflineConfig(state_snapshot=SnapshotConfig(path=tmp_path / "s.bin")))
    with pytest.raises(ConfigurationError):
        builder.online_config()


def test_offline_requires_snapshot_path():
    with pytest.raises(ValidationError):
        OfflineConfig()


def test_block_hash_must_be_hex():
    with pytest.raises(ValidationError):
        OnlineConfig(at="latest")
    with pytest.raises(ValidationError):
        OnlineConfig(at="0x")
    assert OnlineConfig(at="0x01").at == "0x01"
