# src/otminimap/ui/__init__.py
__all__ = ["minimap_widget"]
