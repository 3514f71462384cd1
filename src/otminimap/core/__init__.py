# src/otminimap/core/__init__.py
"""Domain core: positions, tile records, blocks, the cache and its codec."""
__all__ = ["position", "tile", "palette", "block", "block_index", "transform",
           "minimap", "otmm_io", "markers", "errors"]
