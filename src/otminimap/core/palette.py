# src/otminimap/core/palette.py
"""
8-bit minimap palette.

Colour indices 0..215 form a 6x6x6 cube with 51-step channels
(index = r/51*36 + g/51*6 + b/51). Indices outside the cube render black,
except TRANSPARENT_COLOR (255) which renders fully transparent.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from otminimap.utils.settings import TRANSPARENT_COLOR

RGB = Tuple[int, int, int]

_CUBE = 216
_STEP = 51


def from_8bit(index: int) -> RGB:
    if index >= _CUBE or index <= 0:
        return 0, 0, 0
    return (index // 36) % 6 * _STEP, (index // 6) % 6 * _STEP, index % 6 * _STEP


def to_8bit(rgb: RGB) -> int:
    r, g, b = rgb
    return (int(r) // _STEP) * 36 + (int(g) // _STEP) * 6 + int(b) // _STEP


def _build_rgba_table() -> np.ndarray:
    table = np.zeros((256, 4), dtype=np.uint8)
    for i in range(256):
        table[i, :3] = from_8bit(i)
        table[i, 3] = 255
    table[TRANSPARENT_COLOR] = (0, 0, 0, 0)
    return table


# Lookup table: colour index -> RGBA; indexing it with a uint8 array converts
# a whole block in one step.
RGBA_TABLE = _build_rgba_table()


def to_8bit_array(rgb: np.ndarray) -> np.ndarray:
    """Vectorised ``to_8bit`` over an (..., 3) array of 0..255 channels."""
    q = np.clip(rgb, 0, 255).astype(np.int32) // _STEP
    return (q[..., 0] * 36 + q[..., 1] * 6 + q[..., 2]).astype(np.uint8)
