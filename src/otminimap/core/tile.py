# src/otminimap/core/tile.py
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from otminimap.utils.settings import (
    EMPTY_TILE_SPEED,
    GROUND_SPEED_DIVISOR,
    MAX_TILE_SPEED,
    TRANSPARENT_COLOR,
)


class TileFlags(enum.IntFlag):
    NONE = 0
    WAS_SEEN = 1
    NOT_PATHABLE = 2
    NOT_WALKABLE = 4
    EMPTY = 8


# One record as stored in a block and in OTMM payloads: flags, color, speed.
TILE_DTYPE = np.dtype([("flags", np.uint8), ("color", np.uint8), ("speed", np.uint8)])


@runtime_checkable
class TileAttributes(Protocol):
    """What the world-tile model exposes for one map cell."""
    minimap_color: int
    walkable: bool
    pathable: bool
    ground_speed: int


@dataclass(frozen=True)
class TileRecord:
    """
    Minimap attributes of one map cell.

    The default value is the "unseen" sentinel; the cache treats a derived
    record equal to it as "nothing to store".
    """
    color: int = TRANSPARENT_COLOR
    flags: TileFlags = TileFlags.NONE
    speed: int = 0

    @property
    def was_seen(self) -> bool:
        return bool(self.flags & TileFlags.WAS_SEEN)

    @property
    def walkable(self) -> bool:
        return not self.flags & TileFlags.NOT_WALKABLE

    @property
    def pathable(self) -> bool:
        return not self.flags & TileFlags.NOT_PATHABLE

    @classmethod
    def from_attributes(cls, attrs: Optional[TileAttributes]) -> "TileRecord":
        if attrs is None:
            return cls(TRANSPARENT_COLOR, TileFlags.EMPTY, EMPTY_TILE_SPEED)

        flags = TileFlags.WAS_SEEN
        if not attrs.walkable:
            flags |= TileFlags.NOT_WALKABLE
        if not attrs.pathable:
            flags |= TileFlags.NOT_PATHABLE
        speed = min(math.ceil(attrs.ground_speed / GROUND_SPEED_DIVISOR), MAX_TILE_SPEED)
        return cls(int(attrs.minimap_color) & 0xFF, flags, speed)

    @classmethod
    def from_row(cls, row: np.void) -> "TileRecord":
        return cls(int(row["color"]), TileFlags(int(row["flags"])), int(row["speed"]))

    def as_row(self) -> tuple:
        return int(self.flags), self.color, self.speed


NULL_TILE = TileRecord()


@dataclass(frozen=True)
class MapTile:
    """Plain TileAttributes implementation for callers without a tile model."""
    minimap_color: int
    walkable: bool = True
    pathable: bool = True
    ground_speed: int = 100
