"""File reading: dispatch on the tag and decode team and tournament files."""

import hashlib
import logging

from .constants import (
    TEAM_TAG, TOURNAMENT_TAG, FORMAT_NAMES, PALETTE_COLORS,
    TEAM_VERSION_OFFSET, TEAM_PALETTE_OFFSET, TEAM_NAME_OFFSET, TEAM_OWNER_OFFSET,
    HEADER_SIZE_OFFSET, VERSION_OFFSET, VERSION_WIDTH,
    TEAM_COUNT_OFFSET, MATCH_COUNT_OFFSET,
    MAX_TEAMS, SLOT_SIZE, PROGRAM_ENTRIES, ENTRY_INDEX,
    MAX_BLOCKS, BLOCK_SIZE, BLOCK_NAME_OFFSET,
)
from .errors import UnrecognizedFormatError
from .layout import (
    DEFAULT_LAYOUT, fits, read_u16, read_u32, read_tag, read_ascii,
    read_fixed_string, read_palette, slot_offset, block_offset, program_entry_offset,
)
from .models import (
    Origin, Team, ProgramBlock, TeamHeader, TournamentHeader, TeamFile, TournamentFile,
    TRANSPARENT, FALLBACK_PRIMARY,
)
from .results import ResultMatrix, decode_results, packed_size

logger = logging.getLogger(__name__)


def digest_of(buf):
    return hashlib.md5(buf).hexdigest()


def _tag_text(tag):
    return tag.decode('ascii', errors='replace')


def _primary(colors):
    return colors[1] if len(colors) > 1 else FALLBACK_PRIMARY


def parse(buffer, layout=DEFAULT_LAYOUT):
    """Parse a CHE buffer, dispatching on its 4-byte tag.

    Returns a TeamFile or TournamentFile. Raises UnrecognizedFormatError for
    any other tag.
    """
    tag = read_tag(buffer)
    if tag == TEAM_TAG:
        return parse_team_file(buffer)
    if tag == TOURNAMENT_TAG:
        return parse_tournament_file(buffer, layout)
    raise UnrecognizedFormatError(tag)


def parse_team_file(buffer):
    """Decode a CETD file. Yields one team, or none if the name is blank."""
    buf = bytes(buffer)
    tag = read_tag(buf)
    if tag != TEAM_TAG:
        raise UnrecognizedFormatError(tag, expected=FORMAT_NAMES[TEAM_TAG])

    digest = digest_of(buf)
    header = TeamHeader(tag=_tag_text(tag), version=read_u32(buf, TEAM_VERSION_OFFSET))

    colors = read_palette(buf, TEAM_PALETTE_OFFSET, PALETTE_COLORS)
    name = read_fixed_string(buf, TEAM_NAME_OFFSET)
    owner = read_fixed_string(buf, TEAM_OWNER_OFFSET)

    teams = []
    if name:
        teams.append(Team(
            name=name,
            owner=owner,
            colors=tuple(colors),
            primary_color=_primary(colors),
            origin=Origin.TEAM_FILE,
            raw=buf,
            source=digest,
        ))
    else:
        logger.info("Team file %s has an empty name field", digest[:8])

    return TeamFile(header=header, teams=teams, raw=buf, digest=digest)


def decode_program_blocks(buf, slot_start):
    """Collect the blocks a slot's program entries point at, in entry order."""
    blocks = []
    seen = set()
    for e in range(PROGRAM_ENTRIES):
        index = read_u32(buf, slot_start + program_entry_offset(e) + ENTRY_INDEX)
        if index >= MAX_BLOCKS or index in seen:
            continue
        start = block_offset(index)
        if not fits(buf, start, BLOCK_SIZE):
            continue
        payload = buf[start:start + BLOCK_SIZE]
        blocks.append(ProgramBlock(
            index=index,
            payload=payload,
            name=read_fixed_string(payload, BLOCK_NAME_OFFSET),
        ))
        seen.add(index)
    return blocks


def decode_slot(buf, index, layout=DEFAULT_LAYOUT, source=""):
    """Decode team slot `index`, or return None if its name field is blank."""
    start = slot_offset(index)
    name = read_fixed_string(buf, start + layout.slot_name_offset, layout.name_width)
    if not name:
        return None

    colors = read_palette(buf, start + layout.slot_palette_offset, layout.slot_palette_colors)
    colors.append(TRANSPARENT)

    return Team(
        name=name,
        owner=read_fixed_string(buf, start + layout.slot_owner_offset, layout.name_width),
        colors=tuple(colors),
        primary_color=_primary(colors),
        origin=Origin.TOURNAMENT_FILE,
        raw=buf[start:start + SLOT_SIZE],
        source=source,
        source_index=index,
        blocks=tuple(decode_program_blocks(buf, start)),
    )


def parse_tournament_file(buffer, layout=DEFAULT_LAYOUT):
    """Decode a CEMD file: header, team slots, their program blocks and results."""
    buf = bytes(buffer)
    tag = read_tag(buf)
    if tag != TOURNAMENT_TAG:
        raise UnrecognizedFormatError(tag, expected=FORMAT_NAMES[TOURNAMENT_TAG])

    digest = digest_of(buf)
    team_count = read_u32(buf, TEAM_COUNT_OFFSET)
    header = TournamentHeader(
        tag=_tag_text(tag),
        header_size=read_u16(buf, HEADER_SIZE_OFFSET),
        version=read_ascii(buf, VERSION_OFFSET, VERSION_WIDTH),
        name=read_fixed_string(buf, layout.tournament_name_offsets[0], layout.name_width),
        team_count=team_count,
        match_count=read_u32(buf, MATCH_COUNT_OFFSET),
    )

    teams = []
    for i in range(min(team_count, MAX_TEAMS)):
        if not fits(buf, slot_offset(i), SLOT_SIZE):
            logger.warning("Slot %d runs past end of file (%d bytes), stopping", i, len(buf))
            break
        team = decode_slot(buf, i, layout, digest)
        if team is None:
            logger.debug("Slot %d is empty, skipping", i)
            continue
        teams.append(team)

    if team_count > MAX_TEAMS:
        logger.warning("Header claims %d teams, only %d slots exist", team_count, MAX_TEAMS)

    size = packed_size()
    if layout.results_offset is not None and fits(buf, layout.results_offset, size):
        start = layout.results_offset
        slots = decode_results(buf[start:start + size], min(team_count, MAX_TEAMS))
        # Bit positions follow slot numbers; blank slots are left out
        matrix = slots.subset([t.source_index for t in teams])
    else:
        matrix = ResultMatrix(len(teams))

    return TournamentFile(header=header, teams=teams, matrix=matrix, raw=buf, digest=digest)
