# tests/test_widget.py
"""
MiniMapWidget: composes the cache onto a surface and hit-tests clicks.
"""
from __future__ import annotations

import pygame

from otminimap.core.minimap import Minimap
from otminimap.core.position import Position
from otminimap.core.tile import MapTile
from otminimap.ui.minimap_widget import MiniMapConfig, MiniMapWidget
from util_asserts import assert_rgb

CENTER = Position(100, 100, 7)


def _widget(**cfg):
    mm = Minimap()
    mm.update_tile(CENTER, MapTile(42))
    config = MiniMapConfig(rect=pygame.Rect(10, 10, 128, 128), scale_index=2, **cfg)
    surface = pygame.Surface((200, 200))
    return MiniMapWidget(surface, mm, config, CENTER), surface


def test_default_scale_comes_from_config():
    widget, _ = _widget()
    assert widget.scale == 1.0


def test_draw_puts_center_tile_at_widget_center():
    widget, surface = _widget()
    widget.draw()
    assert_rgb(surface.get_at((74, 74)), (51, 51, 0))
    # outside the widget rect nothing is painted
    assert_rgb(surface.get_at((150, 150)), (0, 0, 0))


def test_pick_inverts_draw():
    widget, _ = _widget()
    assert widget.pick((74, 74)) == CENTER
    assert widget.pick((75, 74)) == Position(101, 100, 7)
    assert widget.pick((5, 5)) is None
    assert widget.pick((138, 74)) is None


def test_zoom_steps_stop_at_limits():
    widget, _ = _widget()
    steps = widget.config.scale_steps
    while widget.zoom_in():
        pass
    assert widget.scale == steps[-1]
    assert not widget.zoom_in()
    while widget.zoom_out():
        pass
    assert widget.scale == steps[0]
    assert not widget.zoom_out()


def test_out_of_range_scale_index_is_clamped():
    mm = Minimap()
    widget = MiniMapWidget(pygame.Surface((10, 10)), mm, MiniMapConfig(scale_index=99))
    assert widget.scale == widget.config.scale_steps[-1]


def test_marker_rect_follows_center():
    widget, _ = _widget()
    rect = widget.marker_rect(CENTER)
    assert rect.center == (74, 74)
    widget.set_center(Position(0, 0, 6))
    assert widget.marker_rect(CENTER).size == (0, 0)
