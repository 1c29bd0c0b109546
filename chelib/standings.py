"""League standings from a result matrix."""

from dataclasses import dataclass

from .results import Result


@dataclass
class Standing:
    index: int  # Position of the team in the matrix
    name: str
    owner: str
    wins: int
    draws: int
    losses: int
    played: int
    points: int
    win_rate: float  # Percentage, one decimal
    multiplier: float = 1.0
    rank: int = 0

    @property
    def adjusted_points(self):
        return round(self.points * self.multiplier, 1)

    def to_dict(self):
        return {
            'rank': self.rank,
            'index': self.index,
            'name': self.name,
            'owner': self.owner,
            'wins': self.wins,
            'draws': self.draws,
            'losses': self.losses,
            'played': self.played,
            'points': self.points,
            'multiplier': self.multiplier,
            'adjusted_points': self.adjusted_points,
            'win_rate': self.win_rate,
        }


def compute_standings(matrix, names, win_points=3, draw_points=1, loss_points=0, multipliers=None,
                      owners=None):
    """Tally each team's row and rank by points, then wins, then win rate.

    `multipliers` only feeds adjusted_points; it does not affect the ranking.
    """
    standings = []
    for i in range(matrix.size):
        wins = draws = losses = 0
        for j, result in enumerate(matrix.row(i)):
            if i == j:
                continue
            if result is Result.WIN:
                wins += 1
            elif result is Result.LOSS:
                losses += 1
            elif result is Result.DRAW:
                draws += 1
        played = wins + draws + losses
        standings.append(Standing(
            index=i,
            name=names[i] if i < len(names) else f"Team {i + 1}",
            owner=owners[i] if owners and i < len(owners) else "",
            wins=wins,
            draws=draws,
            losses=losses,
            played=played,
            points=wins * win_points + draws * draw_points + losses * loss_points,
            win_rate=round(wins / played * 100, 1) if played else 0.0,
            multiplier=multipliers[i] if multipliers and i < len(multipliers) else 1.0,
        ))

    standings.sort(key=lambda s: (-s.points, -s.wins, -s.win_rate))
    for rank, s in enumerate(standings, 1):
        s.rank = rank
    return standings


def format_standings(standings, title=None):
    """Plain-text summary, one line per team."""
    lines = []
    if title:
        lines.append(f"[{title}]")
    for s in standings:
        line = f"{s.rank}. {s.name} {s.wins}W {s.draws}D {s.losses}L {s.points}pts "
        if s.multiplier != 1.0:
            line += f"(x{s.multiplier}={s.adjusted_points}) "
        line += f"{s.win_rate}%"
        lines.append(line)
    return '\n'.join(lines)


MATRIX_SYMBOLS = {
    Result.WIN: '○',
    Result.LOSS: '×',
    Result.DRAW: '△',
    Result.NONE: '－',
}
DIAGONAL = '＼'
REPORT_TEAMS = 10  # The grid and the team list stop here; the ranking does not
DEFAULT_REPORT_LABEL = '正順データ'


def _row_record(matrix, i):
    row = matrix.row(i)
    wins = sum(1 for j, r in enumerate(row) if j != i and r is Result.WIN)
    losses = sum(1 for j, r in enumerate(row) if j != i and r is Result.LOSS)
    draws = sum(1 for j, r in enumerate(row) if j != i and r is Result.DRAW)
    return wins, losses, draws


def format_match_grid(standings, matrix, label=DEFAULT_REPORT_LABEL):
    """Pairwise grid in ranking order, each row ending with that team's W-L-D."""
    shown = standings[:REPORT_TEAMS]
    lines = [f"対戦マトリクス ({label})"]
    lines.append("No " + ''.join(f"{s.index + 1:02d} " for s in shown))
    for s in shown:
        i = s.index
        cells = ''.join(
            f"{DIAGONAL} " if i == o.index else f"{MATRIX_SYMBOLS[matrix.get(i, o.index)]} "
            for o in shown
        )
        wins, losses, draws = _row_record(matrix, i)
        lines.append(f"{i + 1:02d} {cells}{wins:02d}-{losses:02d}-{draws:02d}")
    return '\n'.join(lines)


def format_result_text(standings, matrix, label=DEFAULT_REPORT_LABEL):
    """Full text report: match grid, team list and the ranking block.

    Team numbers are 1-based matrix positions, zero-padded to two digits.
    """
    lines = [format_match_grid(standings, matrix, label), ""]

    lines.append("No チーム名 オーナー名")
    for s in standings[:REPORT_TEAMS]:
        line = f"{s.index + 1:02d} {s.name}"
        if s.owner:
            line += f" {s.owner}"
        lines.append(line)
    lines.append("")

    lines.append(f"==順位表 ({label})==")
    lines.append("Rank No Point Adj Result : Team")
    lines.append('-' * 50)
    for s in standings:
        line = f"{s.rank:02d}位 {s.index + 1:02d} {s.points:02d}p "
        if s.multiplier != 1.0:
            line += f"(×{s.multiplier:g}={s.points * s.multiplier:.1f}) "
        line += f"({s.wins:02d}-{s.draws:02d}-{s.losses:02d}) : {s.name}"
        if s.owner:
            line += f" [{s.owner}]"
        lines.append(line)
    lines.append("==ここまで==")
    return '\n'.join(lines)
