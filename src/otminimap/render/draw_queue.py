# src/otminimap/render/draw_queue.py
"""
Deferred draw calls for the minimap.

The cache never touches a display directly: it appends filled and textured
rectangles to a ``DrawQueue`` and may clip a range of them afterwards. The
owner of the render loop flushes the queue onto a ``pygame.Surface``.
Textures are plain ``pygame.Surface`` objects built from RGBA buffers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np
import pygame

from otminimap.render.image_cache import ScaledImageCache

Color = Sequence[int]


def surface_from_rgba(pixels: np.ndarray) -> pygame.Surface:
    """Build a texture from an (height, width, 4) uint8 RGBA buffer."""
    h, w = pixels.shape[:2]
    buf = np.ascontiguousarray(pixels, dtype=np.uint8).tobytes()
    # frombuffer shares memory with ``buf``; copy so the surface owns its pixels.
    return pygame.image.frombuffer(buf, (w, h), "RGBA").copy()


@dataclass
class FilledRect:
    rect: pygame.Rect
    color: Color
    clip: Optional[pygame.Rect] = None


@dataclass
class TexturedRect:
    dest: pygame.Rect
    texture: pygame.Surface
    src: pygame.Rect
    clip: Optional[pygame.Rect] = None


DrawCommand = Union[FilledRect, TexturedRect]


class DrawQueue:
    """Ordered list of draw commands with per-command clipping."""

    def __init__(self, scaled_cache: Optional[ScaledImageCache] = None) -> None:
        self.commands: List[DrawCommand] = []
        self._scaled = scaled_cache or ScaledImageCache()

    def size(self) -> int:
        return len(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def create_texture(self, pixels: np.ndarray) -> pygame.Surface:
        return surface_from_rgba(pixels)

    def add_filled_rect(self, rect: pygame.Rect, color: Color) -> None:
        self.commands.append(FilledRect(pygame.Rect(rect), tuple(color)))

    def add_textured_rect(self, dest: pygame.Rect, texture: pygame.Surface, src: pygame.Rect) -> None:
        self.commands.append(TexturedRect(pygame.Rect(dest), texture, pygame.Rect(src)))

    def set_clip(self, start: int, rect: pygame.Rect) -> None:
        """Clip every command from index ``start`` on to ``rect``."""
        clip = pygame.Rect(rect)
        for cmd in self.commands[start:]:
            cmd.clip = clip if cmd.clip is None else cmd.clip.clip(clip)

    def clear(self) -> None:
        self.commands.clear()

    def flush(self, target: pygame.Surface) -> None:
        """Paint all queued commands onto ``target`` and empty the queue."""
        previous_clip = target.get_clip()
        try:
            for cmd in self.commands:
                target.set_clip(cmd.clip if cmd.clip is not None else previous_clip)
                if isinstance(cmd, FilledRect):
                    self._draw_filled(target, cmd)
                else:
                    self._draw_textured(target, cmd)
        finally:
            target.set_clip(previous_clip)
            self.commands.clear()
            self._scaled.sweep()

    @staticmethod
    def _draw_filled(target: pygame.Surface, cmd: FilledRect) -> None:
        if len(cmd.color) == 4 and cmd.color[3] < 255:
            overlay = pygame.Surface(cmd.rect.size, pygame.SRCALPHA)
            overlay.fill(cmd.color)
            target.blit(overlay, cmd.rect.topleft)
        else:
            target.fill(cmd.color, cmd.rect)

    def _draw_textured(self, target: pygame.Surface, cmd: TexturedRect) -> None:
        if cmd.dest.width <= 0 or cmd.dest.height <= 0:
            return
        tex = cmd.texture
        if cmd.src != tex.get_rect():
            tex = tex.subsurface(cmd.src)
            # subsurfaces are fresh objects every call; skip the cache for them
            target.blit(pygame.transform.scale(tex, cmd.dest.size), cmd.dest.topleft)
            return
        target.blit(self._scaled.get(tex, cmd.dest.size), cmd.dest.topleft)
