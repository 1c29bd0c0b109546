#!/usr/bin/env python3
"""
CHE tournament builder.

Collects teams from any mix of team files (CETD) and tournament files (CEMD)
and writes a new tournament file on top of a template, relocating the
program blocks the selected tournament teams refer to. With --format team,
writes a team file instead.

Teams are numbered in the order they are found across the inputs; --teams
selects and orders them by that number.

Usage:
    python3 build_tournament.py a.CHE b.CHE match.CHE -o out.CHE --template match.CHE
    python3 build_tournament.py a.CHE b.CHE --list
"""

import os
import sys
import argparse

from chelib import (
    parse, build_tournament, generate_team_file, synthesize_template,
    validate_selection, verify_tournament, UnrecognizedFormatError,
    InvalidTemplateError,
)
from chelib.constants import DEFAULT_TOURNAMENT_NAME
from chelib.template import check_template
from backend.logging_config import setup_logging


def collect_teams(paths):
    """Parse every input and return [(path, team)] in discovery order."""
    found = []
    for path in paths:
        with open(path, 'rb') as f:
            data = f.read()
        parsed = parse(data)
        for team in parsed.teams:
            found.append((path, team))
    return found


def parse_selection(text, count):
    """Turn '0,2,1' into [0, 2, 1], checking each index against `count`."""
    picks = []
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        idx = int(part)
        if not (0 <= idx < count):
            raise ValueError(f"team index {idx} out of range 0-{count - 1}")
        picks.append(idx)
    return picks


def main():
    parser = argparse.ArgumentParser(description='Build a CHE tournament file from team selections')
    parser.add_argument('inputs', nargs='+', help='Input .CHE files (team or tournament)')
    parser.add_argument('-o', '--output', help='Output .CHE file (required unless --list)')
    parser.add_argument('--template', help='Tournament file to build on')
    parser.add_argument('--synthesize-template', action='store_true',
                        help='Build on a blank skeleton instead of a real template')
    parser.add_argument('--name', default=DEFAULT_TOURNAMENT_NAME, help='Tournament name')
    parser.add_argument('--teams', help='Comma-separated team numbers, in slot order')
    parser.add_argument('--format', choices=('match', 'team'), default='match',
                        help='Output format (default: match)')
    parser.add_argument('--validate', action='store_true',
                        help='Re-parse the output and compare it with the selection')
    parser.add_argument('--list', action='store_true', help='List the numbered teams and exit')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'WARNING'))
    args = parser.parse_args()

    setup_logging(args.log_level, json_format=False)

    if not args.list and not args.output:
        parser.error('-o/--output is required when not using --list')
    if args.output and args.output in args.inputs:
        print("Error: output file must differ from the inputs", file=sys.stderr)
        sys.exit(1)

    try:
        found = collect_teams(args.inputs)
    except UnrecognizedFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.list:
        for i, (path, team) in enumerate(found):
            print(f"{i:3d}. {team.name:24s} {team.owner:24s} {team.origin.value:6s} {path}")
        return

    if args.teams:
        try:
            picks = parse_selection(args.teams, len(found))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        picks = list(range(len(found)))
    teams = [found[i][1] for i in picks]

    errors, warnings = validate_selection(teams, args.format)
    if errors:
        print("Validation errors:", file=sys.stderr)
        for e in errors:
            print(f"  {e}", file=sys.stderr)
        sys.exit(1)
    if warnings:
        print("Warnings:", file=sys.stderr)
        for w in warnings:
            print(f"  {w}", file=sys.stderr)

    if args.format == 'team':
        data = generate_team_file(teams)
        with open(args.output, 'wb') as f:
            f.write(data)
        print(f"Wrote {len(teams)} teams ({len(data)} bytes) to {args.output}")
        return

    if args.template:
        with open(args.template, 'rb') as f:
            template = f.read()
        try:
            check_template(template)
        except InvalidTemplateError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.synthesize_template:
        template = synthesize_template()
    else:
        parser.error('--template or --synthesize-template is required for --format match')

    data, report = build_tournament(teams, args.name, template=template)

    if args.validate:
        errors, warnings = verify_tournament(data, teams, args.name)
        for w in warnings:
            print(f"  warning: {w}", file=sys.stderr)
        if errors:
            print("Output failed verification:", file=sys.stderr)
            for e in errors:
                print(f"  {e}", file=sys.stderr)
            sys.exit(1)

    with open(args.output, 'wb') as f:
        f.write(data)

    print(f"Wrote '{args.name}' to {args.output}: {report.team_count} teams, "
          f"{report.match_count} matches, {report.placed_blocks} blocks")
    if report.dropped_teams:
        print(f"  dropped teams: {', '.join(report.dropped_teams)}")
    for name, index in report.dropped_blocks:
        print(f"  dropped block {index} of '{name}' (block table full)")


if __name__ == '__main__':
    main()
