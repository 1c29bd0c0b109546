"""Synthetic CHE buffers for the test suite."""

import pytest

from chelib.constants import (
    TEAM_TAG, TEAM_FILE_SIZE, TEAM_VERSION_OFFSET, PALETTE_COLORS,
    TEAM_PALETTE_OFFSET, TEAM_NAME_OFFSET, TEAM_OWNER_OFFSET,
    TOURNAMENT_NAME_OFFSETS, TEAM_COUNT_OFFSET, MATCH_COUNT_OFFSET,
    SLOT_PALETTE_OFFSET, SLOT_PALETTE_COLORS, SLOT_NAME_OFFSET, SLOT_OWNER_OFFSET,
    ENTRY_TYPE_TAG, ENTRY_ACTIVE_FLAG, PROGRAM_TYPE_TAG, PROGRAM_ACTIVE,
    BLOCK_SIZE, BLOCK_NAME_OFFSET,
)
from chelib.layout import (
    write_u32, write_fixed_string, write_palette, slot_offset, block_offset, program_entry_offset,
)
from chelib.models import Color
from chelib.template import synthesize_template, template_cache


def make_palette(primary=Color(200, 30, 30)):
    colors = [Color(i * 10, i * 10, i * 10) for i in range(PALETTE_COLORS)]
    colors[1] = primary
    return colors


def make_team_file(name="Red Team", owner="Alice", primary=Color(200, 30, 30), owner_field=None):
    """Team file image. `owner_field` writes raw bytes into the owner field instead."""
    buf = bytearray(TEAM_FILE_SIZE)
    buf[0:4] = TEAM_TAG
    write_u32(buf, TEAM_VERSION_OFFSET, 1)
    write_palette(buf, TEAM_PALETTE_OFFSET, make_palette(primary), PALETTE_COLORS)
    write_fixed_string(buf, TEAM_NAME_OFFSET, name)
    if owner_field is not None:
        buf[TEAM_OWNER_OFFSET:TEAM_OWNER_OFFSET + len(owner_field)] = owner_field
    else:
        write_fixed_string(buf, TEAM_OWNER_OFFSET, owner)
    return bytes(buf)


def block_payload(name, fill):
    payload = bytearray([fill]) * BLOCK_SIZE
    payload[BLOCK_NAME_OFFSET:BLOCK_NAME_OFFSET + 24] = bytes(24)
    write_fixed_string(payload, BLOCK_NAME_OFFSET, name)
    return bytes(payload)


def make_tournament_file(slots, name="Spring Cup", template=None):
    """Tournament image built on the skeleton template.

    Each slot is a dict with name, owner, optional primary color and
    optional blocks: a list of (index, block_name, fill) tuples, one per
    program entry.
    """
    buf = bytearray(template if template is not None else synthesize_template())
    for offset in TOURNAMENT_NAME_OFFSETS:
        write_fixed_string(buf, offset, name)
    n = len(slots)
    write_u32(buf, TEAM_COUNT_OFFSET, n)
    write_u32(buf, MATCH_COUNT_OFFSET, n * (n - 1) // 2)

    for i, slot in enumerate(slots):
        start = slot_offset(i)
        primary = slot.get('primary', Color(10 * i, 100, 200))
        write_palette(buf, start + SLOT_PALETTE_OFFSET, make_palette(primary), SLOT_PALETTE_COLORS)
        write_fixed_string(buf, start + SLOT_NAME_OFFSET, slot['name'])
        write_fixed_string(buf, start + SLOT_OWNER_OFFSET, slot.get('owner', ''))
        for e, (index, block_name, fill) in enumerate(slot.get('blocks', [])):
            entry = start + program_entry_offset(e)
            write_u32(buf, entry, index)
            buf[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] = PROGRAM_TYPE_TAG
            write_u32(buf, entry + ENTRY_ACTIVE_FLAG, PROGRAM_ACTIVE)
            off = block_offset(index)
            buf[off:off + BLOCK_SIZE] = block_payload(block_name, fill)
    return bytes(buf)


@pytest.fixture(autouse=True)
def empty_template_cache():
    template_cache.clear()
    yield
    template_cache.clear()


@pytest.fixture
def template():
    return synthesize_template()


@pytest.fixture
def red_team_file():
    return make_team_file("Red Team", "Alice", Color(200, 30, 30))


@pytest.fixture
def blue_team_file():
    return make_team_file("Blue Team", "Bob", Color(30, 30, 200))


@pytest.fixture
def cup_file():
    """Three teams; the first two share block 5."""
    return make_tournament_file([
        {'name': 'Falcons', 'owner': 'Carol', 'primary': Color(250, 200, 0),
         'blocks': [(5, 'Shared Plan', 0x55), (7, 'Falcon Dive', 0x77)]},
        {'name': 'Wolves', 'owner': 'Dave', 'primary': Color(90, 90, 90),
         'blocks': [(5, 'Shared Plan', 0x55)]},
        {'name': 'Owls', 'owner': 'Erin', 'primary': Color(120, 60, 20),
         'blocks': [(12, 'Night Watch', 0x12)]},
    ], name="Spring Cup")
