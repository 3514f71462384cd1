# src/otminimap/core/minimap.py
"""
Minimap: sparse, block-partitioned cache of minimap tiles across all layers.

- One ``BlockIndex`` per elevation layer; blocks are created on first write
  and only dropped by ``clean()``
- Lazy texture rebuild at draw time (``MinimapBlock.update``)
- Draw into a ``DrawQueue``: background, visible blocks, markers, then clip
- Bulk import from an exported map image (fills unexplored tiles only)
- PNG export of a map region, OTMM load/save through ``otmm_io``

Threading: the render thread owns block contents and textures. The lock
guards the index structure (block insertion, ``clean``) and
``thread_safe_get_tile``, which copies out what it needs before releasing.
"""
from __future__ import annotations

import logging
import math
import threading
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pygame

from otminimap.core import otmm_io
from otminimap.core.block import MinimapBlock
from otminimap.core.block_index import BlockIndex, block_origin
from otminimap.core.markers import Marker, MarkerStore, load_markers_from_json
from otminimap.core.palette import RGBA_TABLE, to_8bit, to_8bit_array
from otminimap.core.position import Position
from otminimap.core.tile import NULL_TILE, TileAttributes, TileFlags, TileRecord
from otminimap.core.transform import map_rect, center_offset, map_to_screen
from otminimap.render.draw_queue import DrawQueue, surface_from_rgba
from otminimap.utils.settings import (
    BLOCK_SIZE,
    DEFAULT_MARKER_ICON,
    MAP_EXTENT,
    MARKER_CULL_PADDING_TILES,
    MARKER_ICON_SIZE,
    MAX_Z,
    MIN_COLOR_FACTOR,
    NON_PATHABLE_COLORS,
    NON_WALKABLE_COLORS,
    TRANSPARENT_COLOR,
    WATER_COLOR,
)

log = logging.getLogger(__name__)

Color = Sequence[int]


def _match_any(rgb: np.ndarray, colors: Sequence[Tuple[int, int, int]]) -> np.ndarray:
    mask = np.zeros(rgb.shape[:2], dtype=bool)
    for col in colors:
        mask |= np.all(rgb == np.asarray(col, dtype=rgb.dtype), axis=-1)
    return mask


class Minimap:
    """Owns the per-layer block indexes, the marker store and the cache lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._layers: List[BlockIndex] = [BlockIndex() for _ in range(MAX_Z + 1)]
        self.markers = MarkerStore()
        self.marker_icons: Optional[pygame.Surface] = None

    # ---- Lifecycle -------------------------------------------------------------

    def init(self) -> None:
        """Nothing to allocate up front; kept for symmetry with ``terminate``."""

    def terminate(self) -> None:
        self.clean()
        self.markers.clear()

    def clean(self) -> None:
        with self._lock:
            for layer in self._layers:
                layer.clear()

    # ---- Spatial index -------------------------------------------------------

    def layer(self, z: int) -> BlockIndex:
        return self._layers[z]

    def has_block(self, pos: Position) -> bool:
        return 0 <= pos.z <= MAX_Z and self._layers[pos.z].has(pos.x, pos.y)

    def get_or_create_block(self, pos: Position) -> MinimapBlock:
        if not pos.is_valid():
            raise ValueError(f"position {pos} outside the map")
        with self._lock:
            return self._layers[pos.z].get_or_create(pos.x, pos.y)

    def iter_blocks(self, *, seen_only: bool = False) -> Iterator[Tuple[Position, MinimapBlock]]:
        """Yield ``(block origin, block)`` for every layer, lowest layer first."""
        for z, layer in enumerate(self._layers):
            items = layer.seen_items() if seen_only else layer.items()
            for key, block in items:
                x, y = BlockIndex.origin_of(key)
                yield Position(x, y, z), block

    def block_count(self) -> int:
        return sum(len(layer) for layer in self._layers)

    # ---- Tiles -----------------------------------------------------------------

    def update_tile(self, pos: Position, tile: Optional[TileAttributes]) -> None:
        record = TileRecord.from_attributes(tile)
        if record == NULL_TILE:
            return
        block = self.get_or_create_block(pos)
        ox, oy = block_origin(pos.x, pos.y)
        block.update_tile(pos.x - ox, pos.y - oy, record)

    def get_tile(self, pos: Position) -> TileRecord:
        if not 0 <= pos.z <= MAX_Z:
            return NULL_TILE
        block = self._layers[pos.z].get(pos.x, pos.y)
        if block is None:
            return NULL_TILE
        ox, oy = block_origin(pos.x, pos.y)
        return block.get_tile(pos.x - ox, pos.y - oy)

    def thread_safe_get_tile(self, pos: Position) -> Tuple[Optional[MinimapBlock], TileRecord]:
        """Lookup for non-render threads: the block reference and a copy of the record."""
        with self._lock:
            if not 0 <= pos.z <= MAX_Z:
                return None, NULL_TILE
            block = self._layers[pos.z].get(pos.x, pos.y)
            if block is None:
                return None, NULL_TILE
            ox, oy = block_origin(pos.x, pos.y)
            return block, block.get_tile(pos.x - ox, pos.y - oy)

    # ---- Drawing -------------------------------------------------------------

    def set_marker_icons(self, atlas: Optional[pygame.Surface]) -> None:
        """Icon atlas: MARKER_ICON_SIZE cells, row-major by icon id."""
        self.marker_icons = atlas

    def draw(
        self,
        screen_rect: pygame.Rect,
        center: Position,
        scale: float,
        color: Color,
        queue: DrawQueue,
    ) -> None:
        if screen_rect.width <= 0 or screen_rect.height <= 0:
            return
        if BLOCK_SIZE * scale <= 1 or not center.is_valid():
            return

        start_index = queue.size()
        queue.add_filled_rect(screen_rect, color)

        mrect = map_rect(screen_rect, center, scale)
        ox, oy = center_offset(mrect, screen_rect, scale)
        bx0, by0 = block_origin(mrect.left, mrect.top)
        start_x = screen_rect.left - (mrect.left - bx0) * scale - ox
        start_y = screen_rect.top - (mrect.top - by0) * scale - oy
        step = BLOCK_SIZE * scale
        layer = self._layers[center.z]
        src = pygame.Rect(0, 0, BLOCK_SIZE, BLOCK_SIZE)

        row = 0
        while start_y + row * step < screen_rect.bottom:
            y = by0 + row * BLOCK_SIZE
            ys0 = math.floor(start_y + row * step)
            ys1 = math.floor(start_y + (row + 1) * step)
            row += 1

            col = 0
            while start_x + col * step < screen_rect.right:
                x = bx0 + col * BLOCK_SIZE
                xs0 = math.floor(start_x + col * step)
                xs1 = math.floor(start_x + (col + 1) * step)
                col += 1
                if not BlockIndex.in_range(BlockIndex.key_for(x, y)):
                    continue

                block = layer.get(x, y)
                if block is None:
                    continue
                block.update(queue.create_texture)
                if block.texture is not None:
                    queue.add_textured_rect(pygame.Rect(xs0, ys0, xs1 - xs0, ys1 - ys0), block.texture, src)

        self._draw_markers(screen_rect, center, scale, queue)
        queue.set_clip(start_index, screen_rect)

    def _draw_markers(self, screen_rect: pygame.Rect, center: Position, scale: float, queue: DrawQueue) -> None:
        atlas = self.marker_icons
        if atlas is None or not len(self.markers):
            return
        icons_per_row = atlas.get_width() // MARKER_ICON_SIZE
        if icons_per_row <= 0:
            return

        half_x = int(screen_rect.width / scale) // 2 + MARKER_CULL_PADDING_TILES
        half_y = int(screen_rect.height / scale) // 2 + MARKER_CULL_PADDING_TILES
        icon_rows = atlas.get_height() // MARKER_ICON_SIZE

        for marker in self.markers:
            if marker.pos.z != center.z:
                continue
            if abs(marker.pos.x - center.x) > half_x or abs(marker.pos.y - center.y) > half_y:
                continue

            icon = marker.icon
            if icon // icons_per_row >= icon_rows:
                icon = DEFAULT_MARKER_ICON
            sx, sy = map_to_screen(marker.pos, screen_rect, center, scale)
            dest = pygame.Rect(0, 0, MARKER_ICON_SIZE, MARKER_ICON_SIZE)
            dest.center = (sx, sy)
            src = pygame.Rect(
                (icon % icons_per_row) * MARKER_ICON_SIZE,
                (icon // icons_per_row) * MARKER_ICON_SIZE,
                MARKER_ICON_SIZE,
                MARKER_ICON_SIZE,
            )
            queue.add_textured_rect(dest, atlas, src)

    # ---- Image import / export -------------------------------------------

    def load_image(
        self,
        path: str | Path,
        top_left: Position,
        color_factor: float = 1.0,
        *,
        mark_seen: bool = False,
    ) -> bool:
        """
        Seed the cache from an exported map image, one pixel per tile.

        Tiles already marked WAS_SEEN are never touched. Water and fully
        transparent pixels are skipped. Touched blocks are only flagged as
        seen (and so written by ``save_otmm``) with ``mark_seen``. Returns
        False (and logs) on failure.
        """
        if color_factor <= MIN_COLOR_FACTOR:
            color_factor = 1.0
        if not top_left.is_valid():
            log.error("failed to load minimap image %s: top left %s outside the map", path, top_left)
            return False

        try:
            image = pygame.image.load(str(path))
            # surfarray is indexed [x, y]; blocks are [y, x]
            rgb = pygame.surfarray.array3d(image).transpose(1, 0, 2).astype(np.int32)
            alpha = pygame.surfarray.array_alpha(image).T
        except (pygame.error, OSError, ValueError) as e:
            log.error("failed to load minimap image %s: %s", path, e)
            return False

        colors = to_8bit_array(rgb * color_factor)
        transparent = (colors == to_8bit(WATER_COLOR)) | (alpha == 0)
        flags = np.zeros(colors.shape, dtype=np.uint8)
        flags[_match_any(rgb, NON_WALKABLE_COLORS)] |= int(TileFlags.NOT_WALKABLE)
        flags[_match_any(rgb, NON_PATHABLE_COLORS)] |= int(TileFlags.NOT_PATHABLE)

        height, width = colors.shape
        x_end = min(top_left.x + width, MAP_EXTENT)
        y_end = min(top_left.y + height, MAP_EXTENT)
        bx_start, by_start = block_origin(top_left.x, top_left.y)
        written = 0

        for by in range(by_start, y_end, BLOCK_SIZE):
            my0, my1 = max(by, top_left.y), min(by + BLOCK_SIZE, y_end)
            for bx in range(bx_start, x_end, BLOCK_SIZE):
                mx0, mx1 = max(bx, top_left.x), min(bx + BLOCK_SIZE, x_end)
                img = np.s_[my0 - top_left.y:my1 - top_left.y, mx0 - top_left.x:mx1 - top_left.x]
                wanted = ~transparent[img]
                if not wanted.any():
                    continue

                block = self.get_or_create_block(Position(bx, by, top_left.z))
                tiles = block.tiles[my0 - by:my1 - by, mx0 - bx:mx1 - bx]
                wanted &= (tiles["flags"] & int(TileFlags.WAS_SEEN)) == 0
                if not wanted.any():
                    continue
                tiles["color"][wanted] = colors[img][wanted]
                tiles["flags"][wanted] = flags[img][wanted]
                block.mark_dirty()
                if mark_seen:
                    block.just_saw()
                written += int(wanted.sum())

        log.info("Imported %d minimap tiles from %s at %s", written, path, top_left)
        return True

    def render_region(self, region: pygame.Rect, z: int) -> np.ndarray:
        """RGBA pixels (height, width, 4) of ``region`` on layer ``z``, one per tile."""
        out = np.zeros((region.height, region.width, 4), dtype=np.uint8)
        layer = self._layers[z]
        bx_start, by_start = block_origin(max(region.left, 0), max(region.top, 0))
        x_end, y_end = min(region.right, MAP_EXTENT), min(region.bottom, MAP_EXTENT)
        for by in range(by_start, y_end, BLOCK_SIZE):
            my0, my1 = max(by, region.top), min(by + BLOCK_SIZE, y_end)
            for bx in range(bx_start, x_end, BLOCK_SIZE):
                block = layer.get(bx, by)
                if block is None:
                    continue
                mx0, mx1 = max(bx, region.left), min(bx + BLOCK_SIZE, x_end)
                colors = block.tiles["color"][my0 - by:my1 - by, mx0 - bx:mx1 - bx]
                out[my0 - region.top:my1 - region.top, mx0 - region.left:mx1 - region.left] = RGBA_TABLE[colors]
        return out

    def save_image(self, path: str | Path, region: pygame.Rect, z: int) -> bool:
        """Export ``region`` of layer ``z`` as an image (format from the file suffix)."""
        if not 0 <= z <= MAX_Z or region.width <= 0 or region.height <= 0:
            log.error("failed to save minimap image %s: empty region or bad layer", path)
            return False
        try:
            p = Path(path)
            p.parent.mkdir(parents=True, exist_ok=True)
            pygame.image.save(surface_from_rgba(self.render_region(region, z)), str(p))
        except (pygame.error, OSError) as e:
            log.error("failed to save minimap image %s: %s", path, e)
            return False
        return True

    # ---- Persistence -----------------------------------------------------------

    def load_otmm(self, path: str | Path) -> otmm_io.OtmmResult:
        return otmm_io.load_otmm(self, path)

    def save_otmm(self, path: str | Path, **kwargs: Any) -> bool:
        return otmm_io.save_otmm(self, path, **kwargs)

    # ---- Markers -------------------------------------------------------------

    def add_marker(self, pos: Position, icon: int = DEFAULT_MARKER_ICON, description: str = "") -> Marker:
        return self.markers.add(pos, icon, description)

    def remove_marker(self, pos: Position) -> bool:
        return self.markers.remove(pos)

    def clear_markers(self) -> None:
        self.markers.clear()

    def has_marker(self, pos: Position) -> bool:
        return self.markers.has(pos)

    def get_marker(self, pos: Position) -> Marker:
        return self.markers.get(pos)

    def get_markers_in_range(self, center: Position, radius: int) -> List[Marker]:
        return self.markers.in_range(center, radius)

    def load_markers_from_json(self, path: str | Path) -> int:
        return load_markers_from_json(self.markers, path)
