"""Binary layout helpers: little-endian integers, fixed-width strings, palettes.

Integer reads that would run past the end of the buffer return 0 rather than
raising; callers treat an overrun as "stop here".
"""

import struct
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .constants import (
    NAME_WIDTH, COLOR_SIZE, PADDING_BYTES,
    SLOT_BASE, SLOT_SIZE, SLOT_PALETTE_OFFSET, SLOT_PALETTE_COLORS,
    SLOT_NAME_OFFSET, SLOT_OWNER_OFFSET, SLOT_PROGRAM_OFFSET, PROGRAM_ENTRY_SIZE,
    BLOCK_TABLE_OFFSET, BLOCK_SIZE, TOURNAMENT_NAME_OFFSETS,
    TEAM_PALETTE_OFFSET, TEAM_NAME_OFFSET, TEAM_OWNER_OFFSET,
)
from .encoding import decode_text, encode_fixed
from .models import Color


def fits(buf, offset, size):
    """True if `size` bytes starting at `offset` lie inside `buf`."""
    return offset >= 0 and offset + size <= len(buf)


def read_u16(buf, offset):
    if not fits(buf, offset, 2):
        return 0
    return struct.unpack_from('<H', buf, offset)[0]


def read_u32(buf, offset):
    if not fits(buf, offset, 4):
        return 0
    return struct.unpack_from('<I', buf, offset)[0]


def write_u32(buf, offset, value):
    struct.pack_into('<I', buf, offset, value & 0xFFFFFFFF)


def read_tag(buf):
    return bytes(buf[:4])


def read_ascii(buf, offset, width):
    """Read a NUL-padded ASCII field, dropping every zero byte."""
    chunk = bytes(buf[offset:offset + width])
    return ''.join(chr(b) for b in chunk if b)


def read_fixed_string(buf, offset, width=NAME_WIDTH):
    """Read a fixed-width Shift-JIS field.

    Leading 0x00/0xFF padding is skipped, the span is cut at the first
    terminator, and trailing 0xFF fill is dropped before decoding. An
    all-padding field reads as ''.
    """
    if offset >= len(buf):
        return ''
    end = min(offset + width, len(buf))
    start = offset
    while start < end and buf[start] in PADDING_BYTES:
        start += 1
    if start >= end:
        return ''

    span = bytes(buf[start:end])
    terminator = span.find(0)
    if terminator != -1:
        span = span[:terminator]
    span = span.rstrip(b'\xff')
    return decode_text(span).strip()


def write_fixed_string(buf, offset, text, width=NAME_WIDTH):
    """Zero the field, then write the encoded text into it."""
    buf[offset:offset + width] = encode_fixed(text, width)


def read_palette(buf, offset, count):
    colors = []
    for i in range(count):
        off = offset + i * COLOR_SIZE
        if not fits(buf, off, COLOR_SIZE):
            colors.append(Color(0, 0, 0, 0))
            continue
        colors.append(Color.from_bytes(buf[off:off + COLOR_SIZE]))
    return colors


def write_palette(buf, offset, colors, count):
    """Write `count` colors, repeating the first one where `colors` runs short."""
    for i in range(count):
        if i < len(colors):
            color = colors[i]
        elif colors:
            color = colors[0]
        else:
            color = Color(0, 0, 0, 0)
        off = offset + i * COLOR_SIZE
        buf[off:off + COLOR_SIZE] = color.to_bytes()


def slot_offset(index):
    return SLOT_BASE + index * SLOT_SIZE


def block_offset(index):
    return BLOCK_TABLE_OFFSET + index * BLOCK_SIZE


def program_entry_offset(entry):
    """Slot-relative offset of program reference entry 0-2."""
    return SLOT_PROGRAM_OFFSET + entry * PROGRAM_ENTRY_SIZE


@dataclass(frozen=True)
class FieldRemap:
    """Copies one field from a team file into a tournament slot."""

    field: str
    source_offset: int
    dest_offset: int  # Slot-relative
    size: int
    strip_leading: bool = False  # Drop leading 0x00 padding before copying

    def copy(self, dest, slot_start, source):
        chunk = bytes(source[self.source_offset:self.source_offset + self.size])
        if self.strip_leading:
            chunk = chunk.lstrip(b'\x00')
        start = slot_start + self.dest_offset
        dest[start:start + self.size] = chunk.ljust(self.size, b'\x00')


@dataclass(frozen=True)
class TournamentLayout:
    """Slot and header offsets that differ between observed tournament files.

    The defaults match the files the tool was built against. Alternative
    tables can be tried against a template with verify_tournament().
    """

    slot_palette_offset: int = SLOT_PALETTE_OFFSET
    slot_palette_colors: int = SLOT_PALETTE_COLORS
    slot_name_offset: int = SLOT_NAME_OFFSET
    slot_owner_offset: int = SLOT_OWNER_OFFSET
    name_width: int = NAME_WIDTH
    tournament_name_offsets: Tuple[int, ...] = TOURNAMENT_NAME_OFFSETS
    results_offset: Optional[int] = None  # None: location unknown, results not read or written

    def team_field_remap(self):
        """Field copies from a team file into a slot of this layout."""
        return (
            FieldRemap('palette', TEAM_PALETTE_OFFSET, self.slot_palette_offset,
                       self.slot_palette_colors * COLOR_SIZE),
            FieldRemap('name', TEAM_NAME_OFFSET, self.slot_name_offset, self.name_width),
            FieldRemap('owner', TEAM_OWNER_OFFSET, self.slot_owner_offset, self.name_width,
                       strip_leading=True),
        )

    def shifted(self, delta):
        """Same layout with name and owner moved by `delta` bytes."""
        return replace(
            self,
            slot_name_offset=self.slot_name_offset + delta,
            slot_owner_offset=self.slot_owner_offset + delta,
        )


DEFAULT_LAYOUT = TournamentLayout()
