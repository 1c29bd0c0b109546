#!/usr/bin/env python3
"""Check the slot offset table against a real tournament file.

Probes the slot name/owner offsets a few bytes either side of the default
and reports how many slots decode to clean names at each shift, then runs a
generate/re-parse round trip with the file's own teams.

Usage:
    python3 verify_layout.py <match.CHE> [--template T]
"""

import sys
import argparse

from chelib import (
    build_tournament, parse_tournament_file, verify_tournament,
    UnrecognizedFormatError, InvalidTemplateError,
)
from chelib.encoding import SUBSTITUTE
from chelib.layout import DEFAULT_LAYOUT
from backend.logging_config import setup_logging

PROBE_SHIFTS = range(-2, 3)


def probe_offsets(data, shifts=PROBE_SHIFTS):
    """Return [(shift, layout, clean_names, names)] for each probed shift."""
    results = []
    for shift in shifts:
        layout = DEFAULT_LAYOUT.shifted(shift)
        parsed = parse_tournament_file(data, layout)
        names = [t.name for t in parsed.teams]
        clean = sum(1 for n in names if SUBSTITUTE not in n and n.isprintable())
        results.append((shift, layout, clean, names))
    return results


def main():
    parser = argparse.ArgumentParser(description='Verify CHE tournament slot offsets')
    parser.add_argument('file', help='Tournament .CHE file')
    parser.add_argument('--template', help='Template for the round trip (default: the file itself)')
    args = parser.parse_args()

    setup_logging('WARNING', json_format=False)

    with open(args.file, 'rb') as f:
        data = f.read()

    try:
        parsed = parse_tournament_file(data)
    except UnrecognizedFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"=== '{parsed.header.name}': header claims {parsed.header.team_count} teams ===")
    print("\n=== Name offset probe ===")
    best = None
    for shift, layout, clean, names in probe_offsets(data):
        marker = ' (default)' if shift == 0 else ''
        print(f"  name@0x{layout.slot_name_offset:02X} owner@0x{layout.slot_owner_offset:02X}"
              f"  clean={clean:2d}/{len(names):2d}{marker}")
        if best is None or clean > best[1]:
            best = (shift, clean)
    if best and best[0] != 0:
        print(f"  WARNING: shift {best[0]:+d} decodes more clean names than the default")

    if args.template:
        with open(args.template, 'rb') as f:
            template = f.read()
    else:
        template = data

    print("\n=== Round trip ===")
    try:
        out, report = build_tournament(parsed.teams, parsed.header.name, template=template)
    except InvalidTemplateError as e:
        print(f"  skipped: {e}")
        return

    errors, warnings = verify_tournament(out, parsed.teams, parsed.header.name)
    print(f"  {report.team_count} teams, {report.placed_blocks} blocks placed, "
          f"{len(report.dropped_blocks)} dropped")
    for w in warnings:
        print(f"  warning: {w}")
    for e in errors:
        print(f"  MISMATCH: {e}")
    print("  OK" if not errors else f"  {len(errors)} mismatches")
    if errors:
        sys.exit(1)


if __name__ == '__main__':
    main()
