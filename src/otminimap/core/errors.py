# src/otminimap/core/errors.py
"""Exception types raised inside the minimap core.

Public load/save/import entry points catch the expected ones and report a
result instead; ``OtmmInvariantError`` is never caught there.
"""
from __future__ import annotations


class MinimapError(Exception):
    """Base class for minimap errors."""


class OtmmFormatError(MinimapError):
    """The OTMM stream is malformed (signature, version or block payload)."""


class OtmmInvariantError(MinimapError):
    """Internal bug: data about to be written would corrupt the file."""


class OtmmSignatureError(OtmmFormatError):
    """The stream does not start with the OTMM signature."""


class OtmmVersionError(OtmmFormatError):
    """The OTMM header carries a version this reader does not know."""
