"""Codec for CHE team (CETD) and tournament (CEMD) files."""

from .decode import parse, parse_team_file, parse_tournament_file
from .encoding import decode_text, encode_text
from .errors import (
    CheError, UnrecognizedFormatError, FormatError, TemplateMissingError, InvalidTemplateError,
)
from .generate import (
    GenerationReport, RelocationContext, build_tournament, generate_tournament, generate_team_file,
)
from .layout import DEFAULT_LAYOUT, TournamentLayout
from .models import (
    Color, Origin, Team, ProgramBlock, TeamHeader, TournamentHeader, TeamFile, TournamentFile,
)
from .results import Result, ResultMatrix, decode_results, encode_results
from .standings import Standing, compute_standings, format_standings, format_result_text
from .template import load_template, load_template_file, get_template, synthesize_template, template_cache
from .validate import validate_selection, verify_tournament
