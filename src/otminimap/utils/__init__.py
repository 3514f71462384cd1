# src/otminimap/utils/__init__.py
"""
Utilities package marker (settings and logging helpers).
"""
__all__ = ["settings", "logging_setup"]
