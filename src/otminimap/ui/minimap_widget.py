# src/otminimap/ui/minimap_widget.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import pygame

from otminimap.core.minimap import Minimap
from otminimap.core.position import Position
from otminimap.core.transform import screen_to_map, tile_rect
from otminimap.render.draw_queue import DrawQueue
from otminimap.utils.settings import MINIMAP_DEFAULT_SCALE_INDEX, MINIMAP_SCALE_STEPS


@dataclass
class MiniMapConfig:
    # Use default_factory for mutable pygame.Rect
    rect: pygame.Rect = field(default_factory=lambda: pygame.Rect(10, 10, 160, 120))
    border_color: Tuple[int, int, int] = (80, 84, 92)
    bg_color: Tuple[int, int, int] = (20, 22, 26)
    alpha: int = 210
    scale_steps: Tuple[float, ...] = MINIMAP_SCALE_STEPS
    scale_index: int = MINIMAP_DEFAULT_SCALE_INDEX


class MiniMapWidget:
    """Draws a ``Minimap`` cache into a fixed screen rect around a centre position."""

    def __init__(
        self,
        surface: pygame.Surface,
        minimap: Minimap,
        config: Optional[MiniMapConfig] = None,
        center: Optional[Position] = None,
    ) -> None:
        self.surface = surface
        self.minimap = minimap
        self.config = config or MiniMapConfig()
        self.center = center or Position(0, 0, 7)
        self._scale_index = max(0, min(self.config.scale_index, len(self.config.scale_steps) - 1))
        self._queue = DrawQueue()
        self._buffer = pygame.Surface((self.config.rect.width, self.config.rect.height), pygame.SRCALPHA)

    # ---- View state ------------------------------------------------------------

    @property
    def scale(self) -> float:
        return float(self.config.scale_steps[self._scale_index])

    def zoom_in(self) -> bool:
        if self._scale_index + 1 >= len(self.config.scale_steps):
            return False
        self._scale_index += 1
        return True

    def zoom_out(self) -> bool:
        if self._scale_index <= 0:
            return False
        self._scale_index -= 1
        return True

    def set_center(self, pos: Position) -> None:
        self.center = pos

    # ---- Hit testing -----------------------------------------------------------

    def _local_rect(self) -> pygame.Rect:
        return pygame.Rect(0, 0, self.config.rect.width, self.config.rect.height)

    def pick(self, screen_point: Tuple[int, int]) -> Optional[Position]:
        """Map position under a point in surface coordinates, or None outside the widget."""
        if not self.config.rect.collidepoint(screen_point):
            return None
        return screen_to_map(screen_point, self.config.rect, self.center, self.scale)

    def marker_rect(self, pos: Position) -> pygame.Rect:
        return tile_rect(pos, self.config.rect, self.center, self.scale)

    # ---- Frame -----------------------------------------------------------------

    def draw(self) -> None:
        cfg = self.config
        self._buffer.fill((0, 0, 0, 0))
        self.minimap.draw(self._local_rect(), self.center, self.scale, (*cfg.bg_color, cfg.alpha), self._queue)
        self._queue.flush(self._buffer)
        pygame.draw.rect(self._buffer, cfg.border_color, self._buffer.get_rect(), 1, border_radius=3)
        self.surface.blit(self._buffer, cfg.rect.topleft)
