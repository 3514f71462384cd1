# src/otminimap/render/__init__.py
"""pygame-backed draw collaborator used by the minimap cache."""
from otminimap.render.draw_queue import DrawQueue, surface_from_rgba

__all__ = ["DrawQueue", "surface_from_rgba"]
