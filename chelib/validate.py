"""Selection checks and post-generation verification."""

from .constants import MAX_TEAMS, NAME_WIDTH, FORMAT_NAMES, DEFAULT_TOURNAMENT_NAME
from .decode import parse_tournament_file
from .encoding import encode_fixed, encoded_length
from .errors import UnrecognizedFormatError
from .layout import DEFAULT_LAYOUT, read_fixed_string

FORMATS = tuple(FORMAT_NAMES.values())


def validate_selection(teams, fmt='match'):
    """Check a team selection before generating a file.

    Returns:
        (errors, warnings), both lists of strings.
    """
    errors = []
    warnings = []

    if fmt not in FORMATS:
        errors.append(f"format must be one of {list(FORMATS)}, got '{fmt}'")
    if not teams:
        errors.append("No teams selected")
        return errors, warnings

    if fmt == 'match':
        if len(teams) < 2:
            warnings.append(f"Only {len(teams)} team selected, a tournament needs at least 2")
        if len(teams) > MAX_TEAMS:
            dropped = ', '.join(t.name for t in teams[MAX_TEAMS:])
            warnings.append(f"{len(teams)} teams selected, only the first {MAX_TEAMS} are kept "
                            f"(dropping {dropped})")

    for i, team in enumerate(teams):
        for label in ('name', 'owner'):
            value = getattr(team, label)
            size = encoded_length(value)
            if size > NAME_WIDTH:
                warnings.append(f"team {i+1} '{team.name}' {label}: {size} bytes, "
                                f"truncated to {NAME_WIDTH}")
    return errors, warnings


def _stored_form(text, width):
    """What `text` reads back as once written to a fixed-width field."""
    return read_fixed_string(encode_fixed(text, width), 0, width)


def verify_tournament(buffer, teams, name, layout=DEFAULT_LAYOUT):
    """Re-parse a generated tournament file and compare it with its inputs.

    Returns:
        (errors, warnings)
    """
    errors = []
    warnings = []

    try:
        parsed = parse_tournament_file(buffer, layout)
    except UnrecognizedFormatError as e:
        errors.append(str(e))
        return errors, warnings

    expected = list(teams)[:MAX_TEAMS]
    width = layout.name_width

    if parsed.header.team_count != len(expected):
        errors.append(f"team count: expected {len(expected)}, got {parsed.header.team_count}")
    name = (name or '').strip() or DEFAULT_TOURNAMENT_NAME
    if parsed.header.name != _stored_form(name, width):
        errors.append(f"tournament name: expected '{name}', got '{parsed.header.name}'")
    if len(parsed.teams) != len(expected):
        errors.append(f"recovered {len(parsed.teams)} teams, expected {len(expected)}")

    for i, (want, got) in enumerate(zip(expected, parsed.teams)):
        ctx = f"slot {i}"
        if got.name != _stored_form(want.name, width):
            errors.append(f"{ctx} name: expected '{want.name}', got '{got.name}'")
        if got.owner != _stored_form(want.owner, width):
            errors.append(f"{ctx} owner: expected '{want.owner}', got '{got.owner}'")
        if got.primary_color != want.primary_color:
            errors.append(f"{ctx} primary color: expected {want.primary_color.hex}, "
                          f"got {got.primary_color.hex}")
        if got.name != want.name and got.name == _stored_form(want.name, width):
            warnings.append(f"{ctx} name stored as '{got.name}'")

    return errors, warnings
