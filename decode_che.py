#!/usr/bin/env python3
"""
CHE save file decoder.

Prints the header, teams, program blocks and results of a team file (CETD)
or tournament file (CEMD). With --json, prints the same data as JSON.

Usage:
    python3 decode_che.py <file.CHE> [--json] [--results-offset N]
"""

import sys
import json
import argparse
from dataclasses import replace

from chelib import parse, compute_standings, UnrecognizedFormatError
from chelib.layout import DEFAULT_LAYOUT
from chelib.results import Result
from chelib.standings import format_standings, format_result_text


def print_team_file(parsed):
    print(f"{'#'*60}")
    print(f"# TEAM FILE  tag={parsed.header.tag}  version={parsed.header.version}  "
          f"md5={parsed.digest}")
    print(f"{'#'*60}")
    if not parsed.teams:
        print("(no team: name field is empty)")
    for team in parsed.teams:
        print(f"Team:  {team.name}")
        print(f"Owner: {team.owner}")
        print(f"Color: {team.primary_color.hex}")
        print("Palette: " + ' '.join(c.hex for c in team.colors))


def print_tournament_file(parsed):
    h = parsed.header
    print(f"{'#'*60}")
    print(f"# TOURNAMENT '{h.name}'  version={h.version}  header=0x{h.header_size:X}")
    print(f"# {h.team_count} teams, {h.match_count} matches  md5={parsed.digest}")
    print(f"{'#'*60}")
    for i, team in enumerate(parsed.teams):
        print(f"\n{'='*60}")
        print(f"Slot {team.source_index:2d}: {team.name}  (owner: {team.owner})  "
              f"{team.primary_color.hex}")
        if not team.blocks:
            print("  no program blocks")
        for block in team.blocks:
            print(f"  block {block.index:2d}: {block.name or '(unnamed)'}")

    matrix = parsed.matrix
    played = any(matrix.get(i, j) is not Result.NONE
                 for i in range(matrix.size) for j in range(matrix.size))
    if played:
        print(f"\n{'='*60}")
        table = compute_standings(matrix, [t.name for t in parsed.teams],
                                  owners=[t.owner for t in parsed.teams])
        print(format_standings(table, title=h.name))
        print()
        print(format_result_text(table, matrix))


def main():
    parser = argparse.ArgumentParser(description='Decode a CHE team or tournament file')
    parser.add_argument('file', help='Input .CHE file')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of text')
    parser.add_argument('--results-offset', type=lambda s: int(s, 0),
                        help='Read the result matrix at this offset (e.g. 0x3548)')
    args = parser.parse_args()

    with open(args.file, 'rb') as f:
        data = f.read()

    try:
        parsed = parse(data, replace(DEFAULT_LAYOUT, results_offset=args.results_offset))
    except UnrecognizedFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(parsed.to_dict(), indent=2, ensure_ascii=False))
    elif parsed.kind == 'team':
        print_team_file(parsed)
    else:
        print_tournament_file(parsed)


if __name__ == '__main__':
    main()
