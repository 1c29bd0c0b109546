import logging
from dataclasses import replace

import pytest

from chelib import (
    parse, build_tournament, generate_tournament, generate_team_file, load_template,
    Origin, Result, ResultMatrix, TemplateMissingError, InvalidTemplateError,
)
from chelib.constants import (
    TEAM_FILE_SIZE, SLOT_SIZE, SLOT_OWNER_OFFSET, MAX_TEAMS, BLOCK_TABLE_OFFSET,
    PROGRAM_TYPE_TAG, ENTRY_TYPE_TAG, ENTRY_ACTIVE_FLAG, ENTRY_STATS, PROGRAM_ENTRY_SIZE,
    DEFAULT_BLOCK_INDICES, DEFAULT_TOURNAMENT_NAME, BLOCK_SIZE, MAX_BLOCKS,
)
from chelib.layout import (
    TournamentLayout, read_u32, write_u32, slot_offset, block_offset, program_entry_offset,
)
from chelib.generate import RelocationContext
from chelib.models import Color, Team, ProgramBlock

from conftest import make_team_file, make_tournament_file, block_payload


def _teams(*buffers):
    teams = []
    for data in buffers:
        teams.extend(parse(data).teams)
    return teams


def test_team_file_round_trip(red_team_file, blue_team_file, template):
    teams = _teams(red_team_file, blue_team_file)
    data, report = build_tournament(teams, "Summer Cup", template=template)

    assert len(data) == len(template)
    assert report.team_count == 2
    assert report.match_count == 1

    parsed = parse(data)
    assert parsed.header.name == "Summer Cup"
    assert parsed.header.team_count == 2
    assert parsed.header.match_count == 1
    assert [t.name for t in parsed.teams] == ["Red Team", "Blue Team"]
    assert [t.owner for t in parsed.teams] == ["Alice", "Bob"]
    assert [t.primary_color for t in parsed.teams] == [Color(200, 30, 30), Color(30, 30, 200)]


def test_tournament_round_trip(cup_file, template):
    source = parse(cup_file)
    data = generate_tournament(source.teams, "Rematch", template=template)

    parsed = parse(data)
    assert parsed.header.name == "Rematch"
    for want, got in zip(source.teams, parsed.teams):
        assert got.name == want.name
        assert got.owner == want.owner
        assert got.primary_color == want.primary_color
        assert [b.payload for b in got.blocks] == [b.payload for b in want.blocks]


def test_mixed_selection_keeps_order(cup_file, red_team_file, template):
    cup = parse(cup_file).teams
    red = parse(red_team_file).teams[0]
    data = generate_tournament([cup[2], red, cup[0]], template=template)
    assert [t.name for t in parse(data).teams] == ["Owls", "Red Team", "Falcons"]


def test_shared_block_is_placed_once(cup_file, template):
    falcons, wolves, _ = parse(cup_file).teams
    data, report = build_tournament([falcons, wolves], template=template)

    assert report.placed_blocks == 2
    parsed = parse(data)
    assert parsed.teams[0].block_indices == [0, 1]
    assert parsed.teams[1].block_indices == [0]
    assert parsed.teams[0].blocks[0].name == "Shared Plan"
    assert parsed.teams[0].blocks[1].name == "Falcon Dive"


def test_equal_indices_from_different_files_share_one_copy(template):
    a = make_tournament_file([{'name': 'A', 'blocks': [(3, 'Plan A', 0xA0)]}])
    b = make_tournament_file([{'name': 'B', 'blocks': [(3, 'Plan B', 0xB0)]}])
    data, report = build_tournament(_teams(a, b), template=template)

    assert report.placed_blocks == 1
    parsed = parse(data)
    assert parsed.teams[0].block_indices == [0]
    assert parsed.teams[1].block_indices == [0]
    # First team to reference the index supplies the payload
    assert parsed.teams[1].blocks[0].name == "Plan A"
    assert parsed.teams[1].blocks[0].payload[0] == 0xA0


def test_full_block_table(template):
    sources = []
    for i in range(MAX_TEAMS):
        blocks = [(k, f'P{k}', k) for k in (2 * i, 2 * i + 1) if k < MAX_BLOCKS]
        sources.append(make_tournament_file([{'name': f'T{i}', 'blocks': blocks}]))
    data, report = build_tournament(_teams(*sources), template=template)

    assert report.team_count == MAX_TEAMS
    assert report.placed_blocks == MAX_BLOCKS
    assert report.dropped_blocks == []
    parsed = parse(data)
    assert parsed.teams[-1].block_indices == [30]
    assert parsed.teams[-1].blocks[0].name == "P30"


def test_block_table_overflow_drops_block(template):
    payload = block_payload("Late", 0x09)
    team = Team(name="Late", owner="", colors=(Color(0, 0, 0), Color(1, 2, 3)),
                primary_color=Color(1, 2, 3), origin=Origin.TOURNAMENT_FILE,
                blocks=(ProgramBlock(4, payload, "Late"), ProgramBlock(9, payload, "Late")))
    out = bytearray(template)
    start = slot_offset(0)
    write_u32(out, start + program_entry_offset(0), 4)
    write_u32(out, start + program_entry_offset(1), 9)

    context = RelocationContext()
    context.next_index = MAX_BLOCKS - 1
    context.relocate(out, team, start)

    assert context.mapping == {4: MAX_BLOCKS - 1}
    assert context.dropped == [("Late", 9)]
    assert read_u32(out, start + program_entry_offset(0)) == MAX_BLOCKS - 1
    # Never placed: the entry keeps its original (now stale) index
    assert read_u32(out, start + program_entry_offset(1)) == 9


def test_more_than_sixteen_teams_are_dropped(template):
    buffers = [make_team_file(f"Team {i}", "x") for i in range(MAX_TEAMS + 1)]
    data, report = build_tournament(_teams(*buffers), template=template)

    assert report.team_count == MAX_TEAMS
    assert report.match_count == MAX_TEAMS * (MAX_TEAMS - 1) // 2
    assert report.dropped_teams == [f"Team {MAX_TEAMS}"]
    assert len(parse(data).teams) == MAX_TEAMS


def test_unused_slots_and_blocks_keep_template_bytes(red_team_file, template):
    marked = bytearray(template)
    for i in range(2, MAX_TEAMS):
        start = slot_offset(i)
        marked[start + 0x20:start + 0x24] = b"KEEP"
    marked[BLOCK_TABLE_OFFSET:BLOCK_TABLE_OFFSET + 4] = b"BLK0"
    marked = bytes(marked)

    data = generate_tournament(_teams(red_team_file, red_team_file), template=marked)
    assert data[slot_offset(2):] == marked[slot_offset(2):]
    assert data[:4] == marked[:4]


def test_team_file_slot_gets_default_programs(red_team_file, template):
    data = generate_tournament(_teams(red_team_file), template=template)
    start = slot_offset(0)
    for e, default in enumerate(DEFAULT_BLOCK_INDICES):
        entry = start + program_entry_offset(e)
        assert read_u32(data, entry) == default
        assert data[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] == PROGRAM_TYPE_TAG
        assert read_u32(data, entry + ENTRY_ACTIVE_FLAG) == 1
        assert data[entry + ENTRY_STATS:entry + PROGRAM_ENTRY_SIZE] == bytes(PROGRAM_ENTRY_SIZE - ENTRY_STATS)


def test_valid_reference_only_gets_tag_and_flag_repaired(red_team_file, template):
    buf = bytearray(template)
    entry = slot_offset(0) + program_entry_offset(0)
    write_u32(buf, entry, 4)
    buf[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] = b"JUNK"
    write_u32(buf, entry + ENTRY_ACTIVE_FLAG, 0)
    buf[entry + ENTRY_STATS:entry + ENTRY_STATS + 4] = b"STAT"
    buf[block_offset(4):block_offset(4) + BLOCK_SIZE] = block_payload("Kept", 0x44)

    data = generate_tournament(_teams(red_team_file), template=bytes(buf))
    assert read_u32(data, entry) == 4
    assert data[entry + ENTRY_TYPE_TAG:entry + ENTRY_TYPE_TAG + 4] == PROGRAM_TYPE_TAG
    assert read_u32(data, entry + ENTRY_ACTIVE_FLAG) == 1
    assert data[entry + ENTRY_STATS:entry + ENTRY_STATS + 4] == b"STAT"


def test_reference_to_unnamed_block_is_reset(red_team_file, template):
    buf = bytearray(template)
    entry = slot_offset(0) + program_entry_offset(1)
    write_u32(buf, entry, 4)

    data = generate_tournament(_teams(red_team_file), template=bytes(buf))
    assert read_u32(data, entry) == DEFAULT_BLOCK_INDICES[1]


def test_owner_padding_is_stripped(template):
    team_file = make_team_file("Pad Team", owner_field=b"\x00\x00Bob")
    data = generate_tournament(_teams(team_file), template=template)
    owner = slot_offset(0) + SLOT_OWNER_OFFSET
    assert data[owner:owner + 4] == b"Bob\x00"
    assert parse(data).teams[0].owner == "Bob"


@pytest.mark.parametrize("fixture", ["red_team_file", "cup_file"])
def test_renamed_team_is_reencoded(fixture, request, template):
    team = parse(request.getfixturevalue(fixture)).teams[0]
    renamed = replace(team, name="青い竜", owner="Zed")
    parsed = parse(generate_tournament([renamed], template=template))
    assert parsed.teams[0].name == "青い竜"
    assert parsed.teams[0].owner == "Zed"
    assert parsed.teams[0].primary_color == team.primary_color


def test_in_memory_team_is_encoded(template):
    team = Team(name="Fresh", owner="New", colors=(Color(1, 1, 1), Color(9, 8, 7)),
                primary_color=Color(9, 8, 7), origin=Origin.TEAM_FILE)
    parsed = parse(generate_tournament([team], template=template))
    assert parsed.teams[0].name == "Fresh"
    assert parsed.teams[0].primary_color == Color(9, 8, 7)


def test_blank_name_uses_default(red_team_file, template):
    data = generate_tournament(_teams(red_team_file), "  ", template=template)
    assert parse(data).header.name == DEFAULT_TOURNAMENT_NAME


def test_name_is_written_to_both_fields(red_team_file, template):
    data = generate_tournament(_teams(red_team_file), "Cup", template=template)
    assert data[0x10:0x14] == b"Cup\x00"
    assert data[0x120:0x124] == b"Cup\x00"


def test_missing_template(red_team_file):
    with pytest.raises(TemplateMissingError):
        build_tournament(_teams(red_team_file))


def test_cached_template_is_used(red_team_file, template):
    load_template(template)
    data = generate_tournament(_teams(red_team_file))
    assert parse(data).teams[0].name == "Red Team"


@pytest.mark.parametrize("bad", [b"CEMD" + bytes(100), b"CETD" + bytes(266228)])
def test_invalid_template(bad, red_team_file):
    with pytest.raises(InvalidTemplateError):
        build_tournament(_teams(red_team_file), template=bad)


def test_results_not_written_without_offset(red_team_file, blue_team_file, template):
    matrix = ResultMatrix(2)
    matrix.set(0, 1, Result.WIN)
    data, report = build_tournament(_teams(red_team_file, blue_team_file), template=template,
                                    results=matrix)
    assert not report.results_written
    assert data[:slot_offset(0)] == generate_tournament(
        _teams(red_team_file, blue_team_file), template=template)[:slot_offset(0)]


def test_results_written_with_offset(red_team_file, blue_team_file, template):
    layout = TournamentLayout(results_offset=0x150)
    matrix = ResultMatrix(2)
    matrix.set(0, 1, Result.LOSS)
    data, report = build_tournament(_teams(red_team_file, blue_team_file), template=template,
                                    layout=layout, results=matrix)
    assert report.results_written
    assert parse(data, layout).matrix.get(1, 0) is Result.WIN


def test_results_beyond_stream_capacity_warn(template, caplog):
    teams = _teams(*[make_team_file(f"Team {i}", "x") for i in range(MAX_TEAMS)])
    matrix = ResultMatrix(MAX_TEAMS)
    matrix.set(0, MAX_TEAMS - 1, Result.WIN)
    layout = TournamentLayout(results_offset=0x150)

    with caplog.at_level(logging.WARNING, logger="chelib.generate"):
        data, report = build_tournament(teams, template=template, layout=layout, results=matrix)

    assert report.results_written
    assert any("beyond slot 15" in r.getMessage() for r in caplog.records)
    assert parse(data, layout).matrix.get(0, MAX_TEAMS - 1) is Result.NONE


def test_generate_team_file(red_team_file, cup_file):
    red = parse(red_team_file).teams[0]
    owls = parse(cup_file).teams[2]
    data = generate_team_file([red, owls])

    assert len(data) == 2 * TEAM_FILE_SIZE
    assert data[:TEAM_FILE_SIZE] == red_team_file

    synthesized = parse(data[TEAM_FILE_SIZE:])
    assert synthesized.kind == "team"
    team = synthesized.teams[0]
    assert team.name == "Owls"
    assert team.owner == "Erin"
    assert team.primary_color == owls.primary_color


def test_source_slot_is_not_modified(cup_file, template):
    falcons = parse(cup_file).teams[0]
    generate_tournament([falcons], template=template)
    assert len(falcons.raw) == SLOT_SIZE
    assert read_u32(falcons.raw, program_entry_offset(0)) == 5
