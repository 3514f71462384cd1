# tests/test_markers.py
"""
Marker store: key packing, CRUD, range queries and the JSON bulk loader.
"""
from __future__ import annotations

import json

from otminimap.core.markers import (
    ICON_IDS,
    MarkerStore,
    load_markers_from_json,
    marker_key,
    parse_icon_string,
)
from otminimap.core.position import NULL_POSITION, Position
from otminimap.utils.settings import DEFAULT_MARKER_DESCRIPTION, DEFAULT_MARKER_ICON, MAX_Z


def test_marker_key_is_injective_over_extremes():
    positions = [
        Position(x, y, z)
        for x in (0, 1, 255, 65534, 65535)
        for y in (0, 1, 255, 65534, 65535)
        for z in range(MAX_Z + 1)
    ]
    keys = {marker_key(p) for p in positions}
    assert len(keys) == len(positions)


def test_marker_key_layout():
    assert marker_key(Position(1, 2, 3)) == (1 << 32) | (2 << 16) | 3


def test_parse_icon_string():
    assert parse_icon_string("Skull") == 10
    assert parse_icon_string("$") == ICON_IDS["dollar"]
    assert parse_icon_string("no such icon") == DEFAULT_MARKER_ICON


def test_add_replace_remove():
    store = MarkerStore()
    pos = Position(100, 200, 7)
    store.add(pos, 3, "shop")
    store.add(pos, 4, "bank")      # same position replaces
    assert len(store) == 1
    assert store.get(pos).icon == 4
    assert store.has(pos)

    assert store.remove(pos)
    assert not store.remove(pos)
    assert not store.has(pos)


def test_get_missing_returns_null_marker():
    marker = MarkerStore().get(Position(1, 1, 1))
    assert marker.pos == NULL_POSITION
    assert marker.icon == DEFAULT_MARKER_ICON
    assert marker.description == ""


def test_in_range_is_per_layer_box():
    store = MarkerStore()
    store.add(Position(100, 100, 7))
    store.add(Position(105, 95, 7))
    store.add(Position(106, 100, 7))
    store.add(Position(100, 100, 6))
    found = {m.pos for m in store.in_range(Position(100, 100, 7), 5)}
    assert found == {Position(100, 100, 7), Position(105, 95, 7)}


def test_iteration_tolerates_mutation():
    store = MarkerStore()
    for x in range(5):
        store.add(Position(x, 0, 7))
    for marker in store:
        store.remove(marker.pos)
    assert len(store) == 0


# --------------------------------------------------------------------------- #
# JSON
# --------------------------------------------------------------------------- #

def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_json_applies_defaults_and_skips_bad_entries(tmp_path):
    path = _write(tmp_path / "markers.json", [
        {"x": 1, "y": 2, "z": 7, "icon": "Skull", "description": "boss"},
        {"x": 3, "y": 4, "icon": "star"},                        # no z
        {"x": 5, "y": 6, "z": 7, "icon": "unknown", "description": ""},
        {"x": 5, "y": 7, "z": 7},
        "not an object",
    ])
    store = MarkerStore()
    store.add(Position(9, 9, 9), 1, "stale")

    assert load_markers_from_json(store, path) == 3
    assert store.loaded
    assert not store.has(Position(9, 9, 9))
    assert not store.has(Position(3, 4, 0))

    boss = store.get(Position(1, 2, 7))
    assert (boss.icon, boss.description) == (10, "boss")
    odd = store.get(Position(5, 6, 7))
    assert (odd.icon, odd.description) == (DEFAULT_MARKER_ICON, DEFAULT_MARKER_DESCRIPTION)
    bare = store.get(Position(5, 7, 7))
    assert (bare.icon, bare.description) == (DEFAULT_MARKER_ICON, DEFAULT_MARKER_DESCRIPTION)


def test_load_malformed_json_keeps_previous_markers(tmp_path):
    path = tmp_path / "markers.json"
    path.write_text("[{not json", encoding="utf-8")
    store = MarkerStore()
    store.add(Position(1, 1, 7), 2, "keep me")

    assert load_markers_from_json(store, path) == -1
    assert store.get(Position(1, 1, 7)).description == "keep me"
    assert not store.loaded


def test_load_non_list_document_fails(tmp_path):
    path = _write(tmp_path / "markers.json", {"x": 1, "y": 1, "z": 7})
    assert load_markers_from_json(MarkerStore(), path) == -1


def test_load_missing_file_fails(tmp_path):
    assert load_markers_from_json(MarkerStore(), tmp_path / "absent.json") == -1


def test_minimap_marker_facade(minimap, tmp_path):
    path = _write(tmp_path / "markers.json", [{"x": 10, "y": 10, "z": 7, "icon": "flag"}])
    assert minimap.load_markers_from_json(path) == 1
    assert minimap.has_marker(Position(10, 10, 7))
    assert [m.icon for m in minimap.get_markers_in_range(Position(12, 12, 7), 2)] == [8]
    minimap.add_marker(Position(11, 10, 7), 3, "x")
    assert minimap.remove_marker(Position(11, 10, 7))
    minimap.clear_markers()
    assert minimap.get_marker(Position(10, 10, 7)).pos == NULL_POSITION
