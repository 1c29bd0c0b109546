"""Data models for parsed CHE files."""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Tuple


class Origin(Enum):
    """Which file format a team was read from."""

    TEAM_FILE = "team"
    TOURNAMENT_FILE = "match"


@dataclass(frozen=True)
class Color:
    """One RGBA palette entry."""

    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def from_bytes(cls, data: bytes) -> "Color":
        return cls(data[0], data[1], data[2], data[3])

    def to_bytes(self) -> bytes:
        return bytes((self.r, self.g, self.b, self.a))

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def to_dict(self):
        return {'r': self.r, 'g': self.g, 'b': self.b, 'a': self.a}


TRANSPARENT = Color(0, 0, 0, 0)
FALLBACK_PRIMARY = Color(128, 128, 128, 255)


@dataclass(frozen=True)
class ProgramBlock:
    """One entry of a tournament file's block table, owned by the team that referenced it."""

    index: int  # Original position in the source block table (0-30)
    payload: bytes = field(repr=False)
    name: str = ""


@dataclass(frozen=True)
class Team:
    """A team record and the raw bytes it was parsed from.

    `raw` is the whole team file for TEAM_FILE origin and the whole slot for
    TOURNAMENT_FILE origin. It is None for teams built in memory, in which
    case the generators encode the fields instead.
    """

    name: str
    owner: str
    colors: Tuple[Color, ...]
    primary_color: Color
    origin: Origin
    raw: Optional[bytes] = field(default=None, repr=False)
    source: str = ""  # md5 of the source buffer
    source_index: int = 0
    blocks: Tuple[ProgramBlock, ...] = ()

    def __post_init__(self):
        if not self.name:
            raise ValueError("Team name must not be empty")

    @property
    def block_indices(self) -> List[int]:
        return [b.index for b in self.blocks]

    def to_dict(self):
        return {
            'name': self.name,
            'owner': self.owner,
            'origin': self.origin.value,
            'primary_color': self.primary_color.hex,
            'colors': [c.to_dict() for c in self.colors],
            'source': self.source,
            'source_index': self.source_index,
            'blocks': [{'index': b.index, 'name': b.name} for b in self.blocks],
        }


@dataclass
class TeamHeader:
    tag: str
    version: int


@dataclass
class TournamentHeader:
    tag: str
    header_size: int
    version: str
    name: str
    team_count: int
    match_count: int


@dataclass
class TeamFile:
    """A parsed team.CHE (CETD) file."""

    kind: ClassVar[str] = "team"

    header: TeamHeader
    teams: List[Team]
    raw: bytes = field(repr=False)
    digest: str = ""

    def to_dict(self):
        return {
            'type': self.kind,
            'header': {'tag': self.header.tag, 'version': self.header.version},
            'teams': [t.to_dict() for t in self.teams],
        }


@dataclass
class TournamentFile:
    """A parsed match.CHE (CEMD) file."""

    kind: ClassVar[str] = "match"

    header: TournamentHeader
    teams: List[Team]
    matrix: "ResultMatrix"
    raw: bytes = field(repr=False)
    digest: str = ""

    def to_dict(self):
        h = self.header
        return {
            'type': self.kind,
            'header': {
                'tag': h.tag,
                'header_size': h.header_size,
                'version': h.version,
                'tournament_name': h.name,
                'team_count': h.team_count,
                'match_count': h.match_count,
            },
            'teams': [t.to_dict() for t in self.teams],
            'results': self.matrix.to_list(),
        }
