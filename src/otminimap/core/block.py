# src/otminimap/core/block.py
from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

from otminimap.core.errors import OtmmFormatError
from otminimap.core.palette import RGBA_TABLE
from otminimap.core.tile import NULL_TILE, TILE_DTYPE, TileRecord
from otminimap.utils.settings import BLOCK_PAYLOAD_SIZE, BLOCK_SIZE, TRANSPARENT_COLOR

# Builds a renderable texture from a (BLOCK_SIZE, BLOCK_SIZE, 4) uint8 RGBA buffer.
TextureFactory = Callable[[np.ndarray], Any]


def _blank_tiles() -> np.ndarray:
    tiles = np.empty((BLOCK_SIZE, BLOCK_SIZE), dtype=TILE_DTYPE)
    tiles[...] = NULL_TILE.as_row()
    return tiles


class MinimapBlock:
    """
    BLOCK_SIZE x BLOCK_SIZE tile records of one layer plus their rendered texture.

    ``tiles`` is indexed ``[y, x]`` so its raw bytes are the OTMM block
    payload (row-major, index = y * BLOCK_SIZE + x).
    """

    __slots__ = ("tiles", "texture", "must_update", "was_seen")

    def __init__(self) -> None:
        self.tiles: np.ndarray = _blank_tiles()
        self.texture: Optional[Any] = None
        self.must_update = False
        self.was_seen = False

    def get_tile(self, x: int, y: int) -> TileRecord:
        return TileRecord.from_row(self.tiles[y, x])

    def update_tile(self, x: int, y: int, tile: TileRecord) -> None:
        # Only the colour shows up in the texture.
        if int(self.tiles[y, x]["color"]) != tile.color:
            self.must_update = True
        self.tiles[y, x] = tile.as_row()
        self.was_seen = True

    def mark_dirty(self) -> None:
        self.must_update = True

    def just_saw(self) -> None:
        self.was_seen = True

    def has_visible_tiles(self) -> bool:
        return bool(np.any(self.tiles["color"] != TRANSPARENT_COLOR))

    def update(self, make_texture: TextureFactory) -> None:
        """Rebuild the texture if dirty; fully transparent blocks keep none."""
        if not self.must_update:
            return
        try:
            if self.has_visible_tiles():
                self.texture = make_texture(RGBA_TABLE[self.tiles["color"]])
            else:
                self.texture = None
        finally:
            self.must_update = False

    def clean(self) -> None:
        self.tiles[...] = NULL_TILE.as_row()
        self.texture = None
        self.must_update = False

    # ---- Raw payload ----------------------------------------------------------

    def to_bytes(self) -> bytes:
        return self.tiles.tobytes()

    def load_bytes(self, raw: bytes) -> None:
        if len(raw) != BLOCK_PAYLOAD_SIZE:
            raise OtmmFormatError(f"block payload is {len(raw)} bytes, expected {BLOCK_PAYLOAD_SIZE}")
        self.tiles[...] = np.frombuffer(raw, dtype=TILE_DTYPE).reshape(BLOCK_SIZE, BLOCK_SIZE)
