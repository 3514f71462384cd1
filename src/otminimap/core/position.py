# src/otminimap/core/position.py
from __future__ import annotations

from dataclasses import dataclass
from otminimap.utils.settings import MAP_EXTENT, MAX_Z


@dataclass(frozen=True)
class Position:
    """Map coordinate: x, y in [0, 65535], z is the elevation layer."""
    x: int
    y: int
    z: int

    def is_valid(self) -> bool:
        return 0 <= self.x < MAP_EXTENT and 0 <= self.y < MAP_EXTENT and 0 <= self.z <= MAX_Z

    def translated(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy, self.z)


# End-of-stream marker in OTMM files and the "no position" result.
NULL_POSITION = Position(MAP_EXTENT - 1, MAP_EXTENT - 1, MAX_Z + 1)
