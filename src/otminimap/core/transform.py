# src/otminimap/core/transform.py
"""
Screen <-> map coordinate transforms for the minimap.

All functions are pure. A minimap view is described by the screen rectangle
it is drawn into, the map position at its centre and a zoom ``scale``
(screen pixels per map tile).

Draw and pick share ``map_rect`` and ``center_offset`` so a tile is always
picked where it was drawn. Divisions floor, which keeps the grid aligned for
coordinates left of / above the map rectangle too.

Round trip: ``map_to_screen(screen_to_map(P))`` is the centre of the tile
under ``P``. Per axis it differs from ``P`` by at most
``round_trip_tolerance(scale)`` pixels: one pixel for scale <= 1 and for
scale 2, roughly half a tile at larger zooms.
"""
from __future__ import annotations

import math
from typing import Tuple

import pygame

from otminimap.core.position import NULL_POSITION, Position
from otminimap.utils.settings import SPRITE_SIZE

Point = Tuple[int, int]

NOT_VISIBLE: Point = (-1, -1)


def map_rect(screen_rect: pygame.Rect, center: Position, scale: float) -> pygame.Rect:
    """Map-space area shown in ``screen_rect``; height rounds up so no row is missed."""
    w = int(screen_rect.width / scale)
    h = math.ceil(screen_rect.height / scale)
    rect = pygame.Rect(0, 0, w, h)
    rect.center = (center.x, center.y)
    return rect


def center_offset(mrect: pygame.Rect, screen_rect: pygame.Rect, scale: float) -> Point:
    """How far the scaled map rect overhangs the screen rect on each side."""
    ox = (int(mrect.width * scale) - screen_rect.width) // 2
    oy = (int(mrect.height * scale) - screen_rect.height) // 2
    return ox, oy


def map_to_screen(pos: Position, screen_rect: pygame.Rect, center: Position, scale: float) -> Point:
    """Screen point at the centre of tile ``pos``; ``NOT_VISIBLE`` on another layer."""
    if screen_rect.width <= 0 or screen_rect.height <= 0 or pos.z != center.z:
        return NOT_VISIBLE

    mrect = map_rect(screen_rect, center, scale)
    ox, oy = center_offset(mrect, screen_rect, scale)
    half = int(scale) // 2
    sx = math.floor((pos.x - mrect.left) * scale) + screen_rect.left - ox + half
    sy = math.floor((pos.y - mrect.top) * scale) + screen_rect.top - oy + half
    return sx, sy


def screen_to_map(point: Point, screen_rect: pygame.Rect, center: Position, scale: float) -> Position:
    """Map position under a screen point, on the centre's layer."""
    if screen_rect.width <= 0 or screen_rect.height <= 0:
        return NULL_POSITION

    mrect = map_rect(screen_rect, center, scale)
    ox, oy = center_offset(mrect, screen_rect, scale)
    x = math.floor((point[0] - screen_rect.left + ox) / scale) + mrect.left
    y = math.floor((point[1] - screen_rect.top + oy) / scale) + mrect.top
    return Position(x, y, center.z)


def tile_rect(pos: Position, screen_rect: pygame.Rect, center: Position, scale: float) -> pygame.Rect:
    """Sprite-sized rect centred on ``pos``; empty when not visible."""
    if screen_rect.width <= 0 or screen_rect.height <= 0 or pos.z != center.z:
        return pygame.Rect(0, 0, 0, 0)

    size = int(SPRITE_SIZE * scale)
    rect = pygame.Rect(0, 0, size, size)
    rect.center = map_to_screen(pos, screen_rect, center, scale)
    return rect


def round_trip_tolerance(scale: float) -> int:
    # floor(floor(a / s) * s) lies in (a - s - 1, a]; centring adds int(s) // 2.
    return max(1, math.ceil(scale) - int(scale) // 2)
