"""File writing: build team files and tournament files from a team selection.

A tournament file is always built on top of a copy of a template file. Only
the header fields, the slots of the selected teams and the block table
entries that get relocated are touched; every other byte keeps its template
value.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from .constants import (
    TEAM_TAG, TEAM_FILE_SIZE, PALETTE_COLORS,
    TEAM_PALETTE_OFFSET, TEAM_NAME_OFFSET, TEAM_OWNER_OFFSET,
    TEAM_COUNT_OFFSET, MATCH_COUNT_OFFSET, DEFAULT_TOURNAMENT_NAME,
    MAX_TEAMS, SLOT_SIZE, PROGRAM_ENTRIES, PROGRAM_ENTRY_SIZE,
    ENTRY_INDEX, ENTRY_TYPE_TAG, ENTRY_ACTIVE_FLAG, ENTRY_STATS,
    PROGRAM_TYPE_TAG, PROGRAM_ACTIVE, DEFAULT_BLOCK_INDICES,
    MAX_BLOCKS, BLOCK_SIZE, BLOCK_NAME_OFFSET, UNINITIALIZED_FILL, RESULT_MATRIX_TEAMS,
)
from .layout import (
    DEFAULT_LAYOUT, read_u32, write_u32, read_fixed_string, write_fixed_string,
    write_palette, slot_offset, block_offset, program_entry_offset,
)
from .models import Origin
from .results import encode_results
from .template import check_template, template_cache

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """What build_tournament() placed and what it had to leave out."""

    team_count: int = 0
    match_count: int = 0
    dropped_teams: List[str] = field(default_factory=list)
    placed_blocks: int = 0
    dropped_blocks: List[Tuple[str, int]] = field(default_factory=list)  # (team name, original index)
    results_written: bool = False


class RelocationContext:
    """Block table allocator for one generation call.

    Maps original block index to new index. Any teams in the call that
    reference the same original index share one copy of the block.
    """

    def __init__(self):
        self.mapping = {}
        self.next_index = 0
        self.dropped = []

    def place_blocks(self, out, team):
        for block in team.blocks:
            if block.index in self.mapping:
                continue
            if self.next_index >= MAX_BLOCKS:
                logger.warning("Block table full, dropping block %d of '%s'", block.index, team.name)
                self.dropped.append((team.name, block.index))
                continue
            start = block_offset(self.next_index)
            out[start:start + BLOCK_SIZE] = block.payload
            self.mapping[block.index] = self.next_index
            self.next_index += 1

    def rewrite_references(self, out, slot_start):
        """Point the slot's program entries at the relocated blocks.

        Entries whose block was never placed keep their old index.
        """
        for e in range(PROGRAM_ENTRIES):
            entry = slot_start + program_entry_offset(e) + ENTRY_INDEX
            index = read_u32(out, entry)
            if index >= MAX_BLOCKS:
                continue
            new_index = self.mapping.get(index)
            if new_index is not None:
                write_u32(out, entry, new_index)

    def relocate(self, out, team, slot_start):
        self.place_blocks(out, team)
        self.rewrite_references(out, slot_start)


def _is_empty_reference(buf, index):
    if index == UNINITIALIZED_FILL or index >= MAX_BLOCKS:
        return True
    return buf[block_offset(index) + BLOCK_NAME_OFFSET] == 0


def init_default_programs(out, slot_start):
    """Give a team-file slot usable program entries.

    Empty references get the default block index, the type tag, the active
    flag and zeroed statistics. Valid references only get the tag and flag
    repaired.
    """
    for e, default_index in enumerate(DEFAULT_BLOCK_INDICES):
        entry = slot_start + program_entry_offset(e)
        index = read_u32(out, entry + ENTRY_INDEX)
        if _is_empty_reference(out, index):
            write_u32(out, entry + ENTRY_INDEX, default_index)
            out[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] = PROGRAM_TYPE_TAG
            write_u32(out, entry + ENTRY_ACTIVE_FLAG, PROGRAM_ACTIVE)
            out[entry + ENTRY_STATS:entry + PROGRAM_ENTRY_SIZE] = bytes(PROGRAM_ENTRY_SIZE - ENTRY_STATS)
            continue
        if out[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] != PROGRAM_TYPE_TAG:
            out[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] = PROGRAM_TYPE_TAG
        if read_u32(out, entry + ENTRY_ACTIVE_FLAG) != PROGRAM_ACTIVE:
            write_u32(out, entry + ENTRY_ACTIVE_FLAG, PROGRAM_ACTIVE)


def _encode_slot_fields(out, slot_start, team, layout):
    write_palette(out, slot_start + layout.slot_palette_offset, team.colors, layout.slot_palette_colors)
    write_fixed_string(out, slot_start + layout.slot_name_offset, team.name, layout.name_width)
    write_fixed_string(out, slot_start + layout.slot_owner_offset, team.owner, layout.name_width)


def _apply_renames(out, slot_start, team, layout):
    """Re-encode name and owner if the team was renamed after parsing."""
    name_off = slot_start + layout.slot_name_offset
    owner_off = slot_start + layout.slot_owner_offset
    width = layout.name_width
    if (read_fixed_string(out, name_off, width) == team.name
            and read_fixed_string(out, owner_off, width) == team.owner):
        return False
    write_fixed_string(out, name_off, team.name, width)
    write_fixed_string(out, owner_off, team.owner, width)
    return True


def write_team_slot(out, index, team, context, layout=DEFAULT_LAYOUT):
    """Write one team into slot `index` of `out`."""
    start = slot_offset(index)

    if team.origin is Origin.TOURNAMENT_FILE and team.raw is not None and len(team.raw) == SLOT_SIZE:
        out[start:start + SLOT_SIZE] = team.raw
        context.relocate(out, team, start)
    else:
        if team.origin is Origin.TEAM_FILE and team.raw is not None:
            for remap in layout.team_field_remap():
                remap.copy(out, start, team.raw)
        else:
            _encode_slot_fields(out, start, team, layout)
        init_default_programs(out, start)

    if _apply_renames(out, start, team, layout):
        logger.debug("Slot %d: re-encoded renamed team '%s'", index, team.name)


def build_tournament(teams, name=None, template=None, layout=DEFAULT_LAYOUT, results=None):
    """Build a tournament file from up to 16 teams of either origin.

    Args:
        teams: ordered team selection; slot i receives teams[i]
        name: tournament name, DEFAULT_TOURNAMENT_NAME if blank
        template: template buffer; falls back to the loaded template
        layout: slot offset table
        results: optional ResultMatrix, written only if the layout has a results offset

    Returns:
        (file_bytes, GenerationReport)
    """
    if template is None:
        template = template_cache.get()
    check_template(template)
    out = bytearray(template)

    teams = list(teams)
    report = GenerationReport()
    if len(teams) > MAX_TEAMS:
        report.dropped_teams = [t.name for t in teams[MAX_TEAMS:]]
        logger.warning("%d teams selected, dropping %d beyond slot %d",
                       len(teams), len(teams) - MAX_TEAMS, MAX_TEAMS)
        teams = teams[:MAX_TEAMS]

    name = (name or '').strip() or DEFAULT_TOURNAMENT_NAME
    for offset in layout.tournament_name_offsets:
        write_fixed_string(out, offset, name, layout.name_width)

    n = len(teams)
    report.team_count = n
    report.match_count = n * (n - 1) // 2
    write_u32(out, TEAM_COUNT_OFFSET, n)
    write_u32(out, MATCH_COUNT_OFFSET, report.match_count)

    context = RelocationContext()
    for i, team in enumerate(teams):
        write_team_slot(out, i, team, context, layout)

    report.placed_blocks = context.next_index
    report.dropped_blocks = list(context.dropped)

    if results is not None:
        if layout.results_offset is None:
            logger.warning("Layout has no results offset, result matrix not written")
        else:
            if n > RESULT_MATRIX_TEAMS:
                logger.warning("Result stream holds %d teams, results of %d teams beyond slot %d not written",
                               RESULT_MATRIX_TEAMS, n - RESULT_MATRIX_TEAMS, RESULT_MATRIX_TEAMS)
            packed = encode_results(results)
            out[layout.results_offset:layout.results_offset + len(packed)] = packed
            report.results_written = True

    logger.info("Built tournament '%s': %d teams, %d matches, %d blocks placed, %d dropped",
                name, n, report.match_count, report.placed_blocks, len(report.dropped_blocks))
    return bytes(out), report


def generate_tournament(teams, name=None, template=None, layout=DEFAULT_LAYOUT):
    """Like build_tournament() but returns only the file bytes."""
    data, _ = build_tournament(teams, name, template, layout)
    return data


def synthesize_team_image(team):
    """Zero-filled team file image carrying the team's palette, name and owner."""
    buf = bytearray(TEAM_FILE_SIZE)
    buf[0:4] = TEAM_TAG
    write_palette(buf, TEAM_PALETTE_OFFSET, team.colors, PALETTE_COLORS)
    write_fixed_string(buf, TEAM_NAME_OFFSET, team.name)
    write_fixed_string(buf, TEAM_OWNER_OFFSET, team.owner)
    return bytes(buf)


def generate_team_file(teams):
    """Concatenate one team file image per team.

    Teams read from a team file are copied verbatim; all others are
    synthesized.
    """
    parts = []
    for team in teams:
        if team.origin is Origin.TEAM_FILE and team.raw is not None:
            parts.append(team.raw)
        else:
            parts.append(synthesize_team_image(team))
    return b''.join(parts)
