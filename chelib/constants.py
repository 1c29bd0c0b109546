"""Constants and offset tables for CHE team (CETD) and tournament (CEMD) files."""

TEAM_TAG = b"CETD"
TOURNAMENT_TAG = b"CEMD"

FORMAT_NAMES = {TEAM_TAG: "team", TOURNAMENT_TAG: "match"}

NAME_WIDTH = 24
COLOR_SIZE = 4
PALETTE_COLORS = 16

# Padding bytes that may precede or follow a fixed-width string field
PADDING_BYTES = (0x00, 0xFF)

# --- Team file (team.CHE) ---

TEAM_FILE_SIZE = 24512
TEAM_VERSION_OFFSET = 0x04
TEAM_PALETTE_OFFSET = 0x240
TEAM_NAME_OFFSET = 0x280
TEAM_OWNER_OFFSET = 0x298

# --- Tournament file (match.CHE) ---

TOURNAMENT_FILE_SIZE = 266232
HEADER_SIZE = 0x148
HEADER_SIZE_OFFSET = 0x04
VERSION_OFFSET = 0x08
VERSION_WIDTH = 8
DEFAULT_VERSION = "0.0.44"
TOURNAMENT_NAME_OFFSETS = (0x10, 0x120)
FILL_MARKER_OFFSET = 0x30
TEAM_COUNT_OFFSET = 0x34
MATCH_COUNT_OFFSET = 0x38
DEFAULT_TOURNAMENT_NAME = "新規大会"

MAX_TEAMS = 16
SLOT_BASE = 0x488
SLOT_SIZE = 0x340

# Slot-relative field offsets. The palette region only holds 15 colors before
# the name field starts.
SLOT_PALETTE_OFFSET = 0x18
SLOT_PALETTE_COLORS = 15
SLOT_NAME_OFFSET = 0x54
SLOT_OWNER_OFFSET = 0x6C

# Program reference entries: u32 index, 4-byte type tag, u32 active flag, stats
PROGRAM_ENTRIES = 3
SLOT_PROGRAM_OFFSET = 0x84
PROGRAM_ENTRY_SIZE = 0x40
ENTRY_INDEX = 0x00
ENTRY_TYPE_TAG = 0x04
ENTRY_ACTIVE_FLAG = 0x08
ENTRY_STATS = 0x0C
PROGRAM_TYPE_TAG = b"CEPG"
PROGRAM_ACTIVE = 1
DEFAULT_BLOCK_INDICES = (28, 29, 30)

MAX_BLOCKS = 31
BLOCK_TABLE_OFFSET = 0x3A00
BLOCK_SIZE = 0x1F00
BLOCK_NAME_OFFSET = 0x10

# Raw fill left in never-initialized regions of the template
UNINITIALIZED_FILL = 0xCDCDCDCD
UNINITIALIZED_BYTE = 0xCD

# --- Result matrix ---

RESULT_MATRIX_TEAMS = 15
# Where the earlier generator wrote its all-empty bitstream. It overlaps the
# 16th slot, so no layout uses it unless asked to.
LEGACY_RESULTS_OFFSET = SLOT_BASE + 15 * SLOT_SIZE

RESULT_NAMES = {0: "none", 1: "win", 2: "loss", 3: "draw"}
RESULT_VALUES = {v: k for k, v in RESULT_NAMES.items()}

# --- Synthesized template defaults ---

TEMPLATE_FLOAT_OFFSET = 0x44
TEMPLATE_FLOATS = (528.0, 120.0, 1.0)
TEMPLATE_FLAG_START = 0x70
TEMPLATE_FLAG_END = 0xE4
