# src/otminimap/core/otmm_io.py
"""
OTMM reader/writer: the on-disk format of the minimap cache.

Layout (little-endian):

    u32 signature   b"OTMM"
    u16 data start  (offset of the first block record, back-patched)
    u16 version     (1)
    u32 flags       (reserved, 0)
    version 1: u16 length + UTF-8 description
    -- at data start, repeated --
    u16 x, u16 y, u8 z        block origin
    u16 length                compressed payload length
    bytes                     zlib(level 3) of BLOCK_SIZE^2 records (flags, color, speed)
    -- terminated by a record whose position is NULL_POSITION --

Only blocks that were ever seen are written. Reading stops quietly at the
first invalid position; a damaged block also stops reading but keeps every
block read before it (status PARTIAL).
"""
from __future__ import annotations

import enum
import logging
import os
import struct
import time
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, TYPE_CHECKING

from otminimap.core.errors import (
    OtmmFormatError,
    OtmmInvariantError,
    OtmmSignatureError,
    OtmmVersionError,
)
from otminimap.core.position import NULL_POSITION, Position
from otminimap.utils.settings import (
    BLOCK_PAYLOAD_SIZE,
    OTMM_COMPRESS_LEVEL,
    OTMM_DESCRIPTION,
    OTMM_MIN_SAVE_SIZE,
    OTMM_SIGNATURE,
    OTMM_TMP_SUFFIX,
    OTMM_VERSION,
)

if TYPE_CHECKING:
    from otminimap.core.minimap import Minimap

__all__ = [
    "OtmmStatus", "OtmmResult", "OtmmHeader",
    "write_otmm", "read_otmm", "read_header",
    "save_otmm", "load_otmm", "describe_otmm",
]

log = logging.getLogger(__name__)

_HEADER_FMT = "<IHHI"
_HEADER_SIZE = struct.calcsize(_HEADER_FMT)     # 12
_DATA_START_OFFSET = 4                          # where the u16 data start lives
_POS_FMT = "<HHB"
_POS_SIZE = struct.calcsize(_POS_FMT)           # 5
_LEN_FMT = "<H"
_LEN_SIZE = struct.calcsize(_LEN_FMT)
_MAX_U16 = 0xFFFF


class OtmmStatus(enum.Enum):
    OK = "ok"
    PARTIAL = "partial"                 # stopped at a damaged block, earlier blocks kept
    IO_ERROR = "io_error"
    BAD_SIGNATURE = "bad_signature"
    UNSUPPORTED_VERSION = "unsupported_version"


@dataclass
class OtmmResult:
    status: OtmmStatus
    blocks: int = 0
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (OtmmStatus.OK, OtmmStatus.PARTIAL)

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class OtmmHeader:
    signature: int
    data_start: int
    version: int
    flags: int
    description: str = ""
    blocks_per_layer: Dict[int, int] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Primitive helpers
# -----------------------------------------------------------------------------

def _read_exact(stream: BinaryIO, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise EOFError(f"wanted {n} bytes, got {len(data)}")
    return data


def _write_string(stream: BinaryIO, text: str) -> None:
    raw = text.encode("utf-8")
    stream.write(struct.pack(_LEN_FMT, len(raw)))
    stream.write(raw)


def _read_string(stream: BinaryIO) -> str:
    (n,) = struct.unpack(_LEN_FMT, _read_exact(stream, _LEN_SIZE))
    return _read_exact(stream, n).decode("utf-8", errors="replace")


def read_header(stream: BinaryIO) -> OtmmHeader:
    """Parse and validate the header; raises OtmmFormatError or EOFError."""
    signature, data_start, version, flags = struct.unpack(_HEADER_FMT, _read_exact(stream, _HEADER_SIZE))
    if signature != OTMM_SIGNATURE:
        raise OtmmSignatureError("invalid OTMM file")
    header = OtmmHeader(signature, data_start, version, flags)
    if version == 1:
        header.description = _read_string(stream)
    else:
        raise OtmmVersionError(f"OTMM version {version} not supported")
    return header


# -----------------------------------------------------------------------------
# Stream level
# -----------------------------------------------------------------------------

def write_otmm(stream: BinaryIO, minimap: "Minimap") -> int:
    """
    Write the whole cache to a seekable binary stream. Returns the block count.
    """
    stream.write(struct.pack(_HEADER_FMT, OTMM_SIGNATURE, 0, OTMM_VERSION, 0))
    _write_string(stream, OTMM_DESCRIPTION)

    start = stream.tell()
    stream.seek(_DATA_START_OFFSET)
    stream.write(struct.pack(_LEN_FMT, start))
    stream.seek(start)

    count = 0
    for origin, block in minimap.iter_blocks(seen_only=True):
        raw = block.to_bytes()
        if len(raw) != BLOCK_PAYLOAD_SIZE:
            raise OtmmInvariantError(f"block at {origin} has {len(raw)} payload bytes")
        packed = zlib.compress(raw, OTMM_COMPRESS_LEVEL)
        if len(packed) > _MAX_U16:
            raise OtmmInvariantError(f"compressed block at {origin} is {len(packed)} bytes")

        stream.write(struct.pack(_POS_FMT, origin.x, origin.y, origin.z))
        stream.write(struct.pack(_LEN_FMT, len(packed)))
        stream.write(packed)
        count += 1

    stream.write(struct.pack(_POS_FMT, NULL_POSITION.x, NULL_POSITION.y, NULL_POSITION.z))
    return count


def read_otmm(stream: BinaryIO, minimap: "Minimap") -> OtmmResult:
    """
    Read block records into ``minimap``. Header problems load nothing; a
    damaged block ends the load with the blocks read so far.
    """
    try:
        header = read_header(stream)
    except EOFError as e:
        return OtmmResult(OtmmStatus.BAD_SIGNATURE, 0, f"truncated header: {e}")
    except OtmmSignatureError as e:
        return OtmmResult(OtmmStatus.BAD_SIGNATURE, 0, str(e))
    except OtmmVersionError as e:
        return OtmmResult(OtmmStatus.UNSUPPORTED_VERSION, 0, str(e))

    stream.seek(header.data_start)
    count = 0
    while True:
        try:
            x, y, z = struct.unpack(_POS_FMT, _read_exact(stream, _POS_SIZE))
            pos = Position(x, y, z)
            # end of file or file is corrupted
            if not pos.is_valid():
                return OtmmResult(OtmmStatus.OK, count)

            (length,) = struct.unpack(_LEN_FMT, _read_exact(stream, _LEN_SIZE))
            raw = zlib.decompress(_read_exact(stream, length))
            if len(raw) != BLOCK_PAYLOAD_SIZE:
                raise OtmmFormatError(f"block at {pos} inflates to {len(raw)} bytes")
        except (EOFError, zlib.error, OtmmFormatError) as e:
            return OtmmResult(OtmmStatus.PARTIAL, count, f"corrupted after {count} blocks: {e}")

        block = minimap.get_or_create_block(pos)
        block.load_bytes(raw)
        block.mark_dirty()
        block.just_saw()
        count += 1


# -----------------------------------------------------------------------------
# File level
# -----------------------------------------------------------------------------

def load_otmm(minimap: "Minimap", path: str | Path) -> OtmmResult:
    p = Path(path)
    try:
        with p.open("rb") as f:
            result = read_otmm(f, minimap)
    except OSError as e:
        log.error("failed to load OTMM minimap %s: %s", p, e)
        return OtmmResult(OtmmStatus.IO_ERROR, 0, str(e))

    if result.status is OtmmStatus.OK:
        log.info("Loaded %d minimap blocks from %s", result.blocks, p)
    elif result.status is OtmmStatus.PARTIAL:
        log.warning("OTMM minimap %s: %s", p, result.message)
    else:
        log.error("failed to load OTMM minimap %s: %s", p, result.message)
    return result


def save_otmm(minimap: "Minimap", path: str | Path, *, min_size: int = OTMM_MIN_SAVE_SIZE) -> bool:
    """
    Save through ``<path>.tmp``; the target is replaced only when the finished
    file is larger than ``min_size`` bytes. Returns True when replaced.
    """
    p = Path(path)
    tmp = p.with_name(p.name + OTMM_TMP_SUFFIX)
    started = time.perf_counter()
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("wb") as f:
            count = write_otmm(f, minimap)
            f.flush()
            os.fsync(f.fileno())

        size = tmp.stat().st_size
        if size <= min_size:
            log.warning("OTMM minimap %s not replaced: only %d bytes written", p, size)
            return False
        os.replace(tmp, p)
    except OSError as e:
        log.error("failed to save OTMM minimap %s: %s", p, e)
        return False

    log.info("Saved %d minimap blocks to %s in %.1f ms", count, p, (time.perf_counter() - started) * 1000.0)
    return True


def describe_otmm(path: str | Path) -> OtmmHeader:
    """
    Header plus block counts per layer, without decompressing payloads.
    Raises OSError / OtmmFormatError / EOFError.
    """
    with Path(path).open("rb") as f:
        size = os.fstat(f.fileno()).st_size
        header = read_header(f)
        f.seek(header.data_start)
        while True:
            data = f.read(_POS_SIZE)
            if len(data) != _POS_SIZE:
                break
            x, y, z = struct.unpack(_POS_FMT, data)
            if not Position(x, y, z).is_valid():
                break
            raw_len = f.read(_LEN_SIZE)
            if len(raw_len) != _LEN_SIZE:
                break
            (length,) = struct.unpack(_LEN_FMT, raw_len)
            if f.seek(length, os.SEEK_CUR) > size:
                break
            header.blocks_per_layer[z] = header.blocks_per_layer.get(z, 0) + 1
    return header
