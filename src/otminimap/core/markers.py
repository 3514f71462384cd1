# src/otminimap/core/markers.py
"""
Minimap markers: small annotations (icon + text) pinned to map positions.

Markers live apart from the tile cache and only meet it at draw time. They
are loaded in bulk from JSON (a list of ``{"x", "y", "z", "icon",
"description"}`` objects) and never written back.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List

from otminimap.core.position import NULL_POSITION, Position
from otminimap.utils.settings import DEFAULT_MARKER_DESCRIPTION, DEFAULT_MARKER_ICON

log = logging.getLogger(__name__)

# Icon name -> index into the marker atlas.
ICON_IDS: Dict[str, int] = {
    "checkmark": 0, "?": 1, "!": 2, "star": 3,
    "crossmark": 4, "temple": 5, "brush": 6, "sword": 7,
    "flag": 8, "lock": 9, "skull": 10, "$": 11,
    "dollar": 11, "red up": 12, "red down": 13,
    "red right": 14, "red left": 15, "green up": 16,
    "green down": 17, "green right": 18, "green left": 19,
    "up": 12, "down": 13, "right": 14, "left": 15,
}


@dataclass(frozen=True)
class Marker:
    pos: Position
    icon: int = DEFAULT_MARKER_ICON
    description: str = ""


def marker_key(pos: Position) -> int:
    """Pack a position into 64 bits: x | y | z in 16-bit fields."""
    return (pos.x << 32) | (pos.y << 16) | pos.z


def parse_icon_string(name: str) -> int:
    return ICON_IDS.get(name.lower(), DEFAULT_MARKER_ICON)


class MarkerStore:
    """Markers keyed by ``marker_key``; one marker per position."""

    def __init__(self) -> None:
        self._markers: Dict[int, Marker] = {}
        self.loaded = False

    def add(self, pos: Position, icon: int = DEFAULT_MARKER_ICON, description: str = "") -> Marker:
        marker = Marker(pos, icon, description)
        self._markers[marker_key(pos)] = marker
        return marker

    def remove(self, pos: Position) -> bool:
        return self._markers.pop(marker_key(pos), None) is not None

    def clear(self) -> None:
        self._markers.clear()

    def has(self, pos: Position) -> bool:
        return marker_key(pos) in self._markers

    def get(self, pos: Position) -> Marker:
        return self._markers.get(marker_key(pos), Marker(NULL_POSITION, DEFAULT_MARKER_ICON, ""))

    def in_range(self, center: Position, radius: int) -> List[Marker]:
        """Markers on ``center.z`` within ``radius`` tiles on both axes."""
        return [
            m for m in self._markers.values()
            if m.pos.z == center.z
            and abs(m.pos.x - center.x) <= radius
            and abs(m.pos.y - center.y) <= radius
        ]

    def __iter__(self) -> Iterator[Marker]:
        return iter(list(self._markers.values()))

    def __len__(self) -> int:
        return len(self._markers)


def load_markers_from_json(store: MarkerStore, path: str | Path) -> int:
    """
    Replace the store's markers with those in a JSON file.

    Returns the number of markers loaded, or -1 when the file cannot be read
    or parsed (the store is left untouched). Entries without integer x/y/z
    are skipped.
    """
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            records = json.load(f)
    except (OSError, ValueError) as e:
        log.error("Failed to load markers from %s: %s", p, e)
        return -1
    if not isinstance(records, list):
        log.error("Failed to load markers from %s: expected a JSON list, got %s", p, type(records).__name__)
        return -1

    store.clear()
    loaded = 0
    for rec in records:
        if not isinstance(rec, dict) or not all(isinstance(rec.get(k), int) for k in ("x", "y", "z")):
            continue

        icon = DEFAULT_MARKER_ICON
        if isinstance(rec.get("icon"), str):
            icon = parse_icon_string(rec["icon"])

        desc = rec.get("description")
        if not isinstance(desc, str) or not desc:
            desc = DEFAULT_MARKER_DESCRIPTION

        store.add(Position(rec["x"], rec["y"], rec["z"]), icon, desc)
        loaded += 1

    store.loaded = True
    log.info("Loaded %d markers from %s", loaded, p)
    return loaded
