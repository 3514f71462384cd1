# src/otminimap/render/image_cache.py
from __future__ import annotations
import pygame
from typing import Dict, Set, Tuple

CacheKey = Tuple[int, int, int]


class ScaledImageCache:
    """
    Cache scaled versions of a pygame.Surface keyed by (id(surface), width, height).
    Saves a lot of CPU when the same block textures are blitted every frame
    at an unchanged zoom.

    The source surface is kept alongside its scaled copy, so its id cannot be
    reused by another surface while the entry lives. ``sweep()`` drops every
    entry not requested since the previous sweep; called once per frame it
    releases textures that were rebuilt or scrolled out of view.
    """
    def __init__(self, max_entries: int = 4096) -> None:
        self.max_entries = max_entries
        self._cache: Dict[CacheKey, Tuple[pygame.Surface, pygame.Surface]] = {}
        self._used: Set[CacheKey] = set()

    def get(self, surface: pygame.Surface, size: Tuple[int, int]) -> pygame.Surface:
        """
        Returns ``surface`` scaled to ``size`` (nearest neighbour, tiles stay crisp).
        """
        w, h = int(size[0]), int(size[1])
        if surface.get_size() == (w, h):
            return surface

        key = (id(surface), w, h)
        self._used.add(key)
        hit = self._cache.get(key)
        if hit is not None and hit[0] is surface:
            return hit[1]

        if len(self._cache) >= self.max_entries:
            self._cache.clear()

        scaled = pygame.transform.scale(surface, (w, h))
        self._cache[key] = (surface, scaled)
        return scaled

    def sweep(self) -> None:
        for key in [k for k in self._cache if k not in self._used]:
            del self._cache[key]
        self._used.clear()

    def clear(self) -> None:
        self._cache.clear()
        self._used.clear()

    def __len__(self) -> int:
        return len(self._cache)
