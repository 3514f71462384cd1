# src/otminimap/__init__.py
"""
otminimap: block-partitioned minimap cache with OTMM persistence.

The cache stores one compressed colour/attribute record per visited map
coordinate across the elevation layers, renders it as a scaled overlay and
reads/writes the versioned OTMM binary format.
"""
from otminimap.core.position import Position, NULL_POSITION
from otminimap.core.tile import TileFlags, TileRecord, NULL_TILE
from otminimap.core.minimap import Minimap
from otminimap.core.otmm_io import OtmmResult, OtmmStatus

__all__ = [
    "Position", "NULL_POSITION",
    "TileFlags", "TileRecord", "NULL_TILE",
    "Minimap", "OtmmResult", "OtmmStatus",
]
__version__ = "1.0.0"
