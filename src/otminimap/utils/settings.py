# src/otminimap/utils/settings.py
"""
Centralized settings and constants for the minimap cache.

Values marked "format" are baked into OTMM files; changing them breaks
compatibility with files already on disk unless the format version moves.
"""

# --- Map geometry ---
MAP_EXTENT = 65536          # x and y live in [0, MAP_EXTENT)
MAX_Z = 15                  # highest elevation layer (inclusive)
BLOCK_SIZE = 64             # tiles per block edge (format)
BLOCKS_PER_AXIS = MAP_EXTENT // BLOCK_SIZE

# --- Tile record ---
TRANSPARENT_COLOR = 255     # colour index of an unseen / see-through tile
TILE_RECORD_SIZE = 3        # bytes: flags, color, speed (format)
BLOCK_PAYLOAD_SIZE = BLOCK_SIZE * BLOCK_SIZE * TILE_RECORD_SIZE
GROUND_SPEED_DIVISOR = 10   # raw ground speed -> stored speed, rounded up
MAX_TILE_SPEED = 255
EMPTY_TILE_SPEED = 1

# --- OTMM persistence ---
OTMM_SIGNATURE = 0x4D4D544F         # b"OTMM" read as a little-endian u32
OTMM_VERSION = 1
OTMM_DESCRIPTION = "OTMM 1.0"
OTMM_COMPRESS_LEVEL = 3
OTMM_MIN_SAVE_SIZE = 1024           # tmp file must exceed this to replace the target
OTMM_TMP_SUFFIX = ".tmp"

# --- Rendering ---
SPRITE_SIZE = 32                    # pixels of one map tile at scale 1.0
MARKER_ICON_SIZE = 11               # edge of one icon in the marker atlas
MARKER_CULL_PADDING_TILES = 2
OVERLAY_COLOR = (0, 0, 0, 255)

# --- Markers ---
DEFAULT_MARKER_ICON = 8             # "flag"
DEFAULT_MARKER_DESCRIPTION = "NO_DESCRIPTION"

# --- Bulk image import palette ---
# Literal colours an exported map image uses for terrain the client cannot
# cross. Fixed tables; not user configurable.
WATER_COLOR = (0x33, 0x00, 0xCC)
NON_PATHABLE_COLORS = (
    (0xFF, 0xFF, 0x00),  # yellow
)
NON_WALKABLE_COLORS = (
    (0x00, 0x00, 0x00),  # oil, black
    (0x00, 0x66, 0x00),  # trees, dark green
    (0xFF, 0x33, 0x00),  # walls, red
    (0x66, 0x66, 0x66),  # mountain, grey
    (0xFF, 0x66, 0x00),  # lava, orange
    (0x00, 0xFF, 0x00),  # position
    (0xCC, 0xFF, 0xFF),  # ice, very light blue
)
MIN_COLOR_FACTOR = 0.01

# --- Widget ---
MINIMAP_SCALE_STEPS = (0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0)
MINIMAP_DEFAULT_SCALE_INDEX = 3
