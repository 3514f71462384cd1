# tests/test_otmm_io.py
"""
OTMM codec: header layout, round trips, corruption tolerance and the
tmp-file save policy.
"""
from __future__ import annotations

import io
import random
import struct
import zlib

import pytest

from otminimap.core.block import MinimapBlock
from otminimap.core.errors import OtmmInvariantError
from otminimap.core.minimap import Minimap
from otminimap.core.otmm_io import (
    OtmmStatus,
    describe_otmm,
    load_otmm,
    read_otmm,
    save_otmm,
    write_otmm,
)
from otminimap.core.position import Position
from otminimap.core.tile import NULL_TILE, MapTile, TileFlags, TileRecord
from otminimap.utils.settings import MAX_Z, OTMM_DESCRIPTION

WRITES = [
    (Position(100, 100, 7), MapTile(42, walkable=True, pathable=True, ground_speed=55)),
    (Position(101, 100, 7), MapTile(43, walkable=False, pathable=True, ground_speed=100)),
    (Position(40000, 1234, 0), MapTile(7, walkable=True, pathable=False, ground_speed=250)),
    (Position(65535, 65535, MAX_Z), MapTile(215, ground_speed=2550)),
    (Position(500, 500, 3), None),
]


def _filled() -> Minimap:
    mm = Minimap()
    for pos, tile in WRITES:
        mm.update_tile(pos, tile)
    return mm


def _encode(mm: Minimap) -> bytes:
    buf = io.BytesIO()
    write_otmm(buf, mm)
    return buf.getvalue()


def _decode(data: bytes):
    mm = Minimap()
    return mm, read_otmm(io.BytesIO(data), mm)


# --------------------------------------------------------------------------- #
# Layout
# --------------------------------------------------------------------------- #

def test_header_layout():
    data = _encode(_filled())
    assert data[:4] == b"OTMM"
    sig, start, version, flags = struct.unpack_from("<IHHI", data, 0)
    assert version == 1 and flags == 0
    (desc_len,) = struct.unpack_from("<H", data, 12)
    assert data[14:14 + desc_len].decode() == OTMM_DESCRIPTION
    assert start == 14 + desc_len


def test_stream_ends_with_null_position():
    data = _encode(_filled())
    assert data[-5:] == struct.pack("<HHB", 65535, 65535, MAX_Z + 1)


def test_empty_cache_is_header_plus_terminator():
    data = _encode(Minimap())
    mm, result = _decode(data)
    assert result.status is OtmmStatus.OK and result.blocks == 0
    assert mm.block_count() == 0


def test_first_record_is_block_origin_with_compressed_payload():
    mm = Minimap()
    mm.update_tile(Position(100, 100, 7), MapTile(42, ground_speed=55))
    data = _encode(mm)
    (start,) = struct.unpack_from("<H", data, 4)
    x, y, z, length = struct.unpack_from("<HHBH", data, start)
    assert (x, y, z) == (64, 64, 7)
    raw = zlib.decompress(data[start + 7:start + 7 + length])
    assert raw == mm.layer(7).get(64, 64).to_bytes()


# --------------------------------------------------------------------------- #
# Round trip
# --------------------------------------------------------------------------- #

def test_round_trip_restores_every_seen_tile():
    source = _filled()
    mm, result = _decode(_encode(source))
    assert result.status is OtmmStatus.OK
    assert result.blocks == source.block_count()
    for pos, _ in WRITES:
        assert mm.get_tile(pos) == source.get_tile(pos)
    # untouched neighbours stay unseen
    assert mm.get_tile(Position(102, 100, 7)) == NULL_TILE
    assert mm.get_tile(Position(100, 100, 6)) == NULL_TILE


def test_scenario_record_survives_save_and_load(tmp_path):
    mm = Minimap()
    pos = Position(100, 100, 7)
    mm.update_tile(pos, MapTile(42, walkable=True, pathable=True, ground_speed=55))
    path = tmp_path / "minimap.otmm"
    assert save_otmm(mm, path, min_size=0)

    fresh = Minimap()
    assert load_otmm(fresh, path)
    assert fresh.get_tile(pos) == TileRecord(42, TileFlags.WAS_SEEN, 6)


def test_loaded_blocks_are_dirty_and_seen():
    mm, _ = _decode(_encode(_filled()))
    for _, block in mm.iter_blocks():
        assert block.must_update
        assert block.was_seen


def test_unseen_blocks_are_not_written():
    mm = Minimap()
    mm.get_or_create_block(Position(0, 0, 1))     # created, never written
    mm.update_tile(Position(200, 200, 1), MapTile(5))
    loaded, result = _decode(_encode(mm))
    assert result.blocks == 1
    assert not loaded.has_block(Position(0, 0, 1))


# --------------------------------------------------------------------------- #
# Corruption
# --------------------------------------------------------------------------- #

def _three_layer_cache() -> Minimap:
    mm = Minimap()
    for z in (5, 6, 7):
        mm.update_tile(Position(10, 10, z), MapTile(z * 10))
    return mm


def test_truncated_stream_keeps_blocks_before_cut():
    data = _encode(_three_layer_cache())
    # drop the terminator and the tail of the last block's payload
    mm, result = _decode(data[:-5 - 4])
    assert result.status is OtmmStatus.PARTIAL
    assert result  # partial loads still count as success
    assert result.blocks == 2
    assert mm.get_tile(Position(10, 10, 5)).color == 50
    assert mm.get_tile(Position(10, 10, 6)).color == 60
    assert not mm.has_block(Position(10, 10, 7))


def test_garbage_payload_stops_reading():
    data = bytearray(_encode(_three_layer_cache()))
    (start,) = struct.unpack_from("<H", data, 4)
    _, _, _, first_len = struct.unpack_from("<HHBH", data, start)
    second = start + 7 + first_len
    # smash the second block's zlib stream
    data[second + 7:second + 11] = b"\xff\xff\xff\xff"
    mm, result = _decode(bytes(data))
    assert result.status is OtmmStatus.PARTIAL
    assert result.blocks == 1
    assert mm.has_block(Position(0, 0, 5))
    assert not mm.has_block(Position(0, 0, 6))
    assert not mm.has_block(Position(0, 0, 7))


def test_wrong_inflated_size_is_corruption():
    body = zlib.compress(b"\x00" * 100)
    head = _encode(Minimap())[:-5]
    data = head + struct.pack("<HHBH", 0, 0, 1, len(body)) + body + struct.pack("<HHB", 65535, 65535, 16)
    mm, result = _decode(data)
    assert result.status is OtmmStatus.PARTIAL
    assert result.blocks == 0


def test_bad_signature_loads_nothing():
    data = b"XXXX" + _encode(_filled())[4:]
    mm, result = _decode(data)
    assert result.status is OtmmStatus.BAD_SIGNATURE
    assert not result
    assert mm.block_count() == 0


def test_unsupported_version_loads_nothing():
    data = bytearray(_encode(_filled()))
    struct.pack_into("<H", data, 6, 2)
    mm, result = _decode(bytes(data))
    assert result.status is OtmmStatus.UNSUPPORTED_VERSION
    assert not result
    assert mm.block_count() == 0


def test_truncated_header_fails():
    _, result = _decode(b"OTMM\x00")
    assert not result


# --------------------------------------------------------------------------- #
# Files
# --------------------------------------------------------------------------- #

def test_load_missing_file_is_io_error(tmp_path):
    result = load_otmm(Minimap(), tmp_path / "nope.otmm")
    assert result.status is OtmmStatus.IO_ERROR
    assert not result


def test_small_save_does_not_replace_previous_file(tmp_path):
    path = tmp_path / "minimap.otmm"
    path.write_bytes(b"previous good save")
    assert not save_otmm(_filled(), path)       # default 1 KiB floor
    assert path.read_bytes() == b"previous good save"
    assert (tmp_path / "minimap.otmm.tmp").exists()


def test_save_replaces_target_and_removes_tmp(tmp_path):
    path = tmp_path / "sub" / "minimap.otmm"
    assert save_otmm(_filled(), path, min_size=0)
    assert path.exists()
    assert not (tmp_path / "sub" / "minimap.otmm.tmp").exists()


def test_large_save_passes_default_floor(tmp_path):
    mm = Minimap()
    rng = random.Random(1)
    # noisy colours so the block compresses poorly
    for i in range(4096):
        mm.update_tile(Position(i % 64, i // 64, 7), MapTile(rng.randrange(216)))
    path = tmp_path / "big.otmm"
    assert save_otmm(mm, path)
    assert path.stat().st_size > 1024


def test_invariant_violation_propagates(tmp_path, monkeypatch):
    monkeypatch.setattr(MinimapBlock, "to_bytes", lambda self: b"\x00")
    with pytest.raises(OtmmInvariantError):
        save_otmm(_filled(), tmp_path / "x.otmm", min_size=0)


def test_minimap_facade_methods(tmp_path):
    path = tmp_path / "m.otmm"
    assert _filled().save_otmm(path, min_size=0)
    mm = Minimap()
    result = mm.load_otmm(path)
    assert result.status is OtmmStatus.OK


def test_describe_skips_block_with_truncated_payload(tmp_path):
    path = tmp_path / "m.otmm"
    path.write_bytes(_encode(_three_layer_cache())[:-5 - 4])
    assert describe_otmm(path).blocks_per_layer == {5: 1, 6: 1}
    assert load_otmm(Minimap(), path).blocks == 2


def test_describe_counts_blocks_per_layer(tmp_path):
    path = tmp_path / "m.otmm"
    assert save_otmm(_filled(), path, min_size=0)
    header = describe_otmm(path)
    assert header.version == 1
    assert header.description == OTMM_DESCRIPTION
    assert header.blocks_per_layer == {0: 1, 3: 1, 7: 1, MAX_Z: 1}
