"""Pairwise result matrix and its packed 2-bit codec.

Each unordered pair (i, j) with i < j takes two bits, walked row-major over
the upper triangle of a fixed-size grid, least-significant bits first within
each byte. The stored value is from team i's point of view; team j's view is
the mirror.
"""

from enum import IntEnum

from .constants import RESULT_MATRIX_TEAMS, RESULT_NAMES


class Result(IntEnum):
    NONE = 0
    WIN = 1
    LOSS = 2
    DRAW = 3

    @property
    def label(self):
        return RESULT_NAMES[int(self)]

    def mirror(self):
        if self is Result.WIN:
            return Result.LOSS
        if self is Result.LOSS:
            return Result.WIN
        return self


class ResultMatrix:
    """Square n x n grid of results, kept symmetric by set()."""

    def __init__(self, size):
        if size < 0:
            raise ValueError(f"Matrix size must be >= 0, got {size}")
        self.size = size
        self._cells = [[Result.NONE] * size for _ in range(size)]

    def get(self, i, j):
        return self._cells[i][j]

    def set(self, i, j, result):
        """Record `result` for team i against team j and its mirror for j against i.

        Setting the diagonal is a no-op.
        """
        if i == j:
            return
        result = Result(result)
        self._cells[i][j] = result
        self._cells[j][i] = result.mirror()

    def __eq__(self, other):
        if not isinstance(other, ResultMatrix):
            return NotImplemented
        return self.size == other.size and self._cells == other._cells

    def __repr__(self):
        return f"ResultMatrix(size={self.size})"

    def row(self, i):
        return list(self._cells[i])

    def is_symmetric(self):
        for i in range(self.size):
            if self._cells[i][i] is not Result.NONE:
                return False
            for j in range(i + 1, self.size):
                if self._cells[j][i] is not self._cells[i][j].mirror():
                    return False
        return True

    def subset(self, indices):
        """Matrix restricted to the given rows, in the given order."""
        sub = ResultMatrix(len(indices))
        for a, i in enumerate(indices):
            for b in range(a + 1, len(indices)):
                sub.set(a, b, self._cells[i][indices[b]])
        return sub

    def to_list(self):
        """Matrix as nested lists of result labels."""
        return [[r.label for r in row] for row in self._cells]

    @classmethod
    def from_list(cls, rows):
        """Build from nested lists of labels or ints, upper triangle wins."""
        matrix = cls(len(rows))
        for i, row in enumerate(rows):
            for j in range(i + 1, min(len(row), matrix.size)):
                value = row[j]
                if isinstance(value, str):
                    value = Result[value.upper()]
                matrix.set(i, j, value)
        return matrix


def packed_size(max_teams=RESULT_MATRIX_TEAMS):
    """Bytes needed for every unordered pair of `max_teams` teams."""
    pairs = max_teams * (max_teams - 1) // 2
    return (pairs * 2 + 7) // 8


def _pairs(max_teams):
    for i in range(max_teams):
        for j in range(i + 1, max_teams):
            yield i, j


def decode_results(data, team_count, max_teams=RESULT_MATRIX_TEAMS):
    """Unpack a result bitstream into a team_count x team_count matrix.

    The stream always covers `max_teams` teams; pairs involving teams beyond
    `team_count` are skipped. Stops quietly if the data runs out.
    """
    matrix = ResultMatrix(team_count)
    for k, (i, j) in enumerate(_pairs(max_teams)):
        byte_idx, shift = divmod(k * 2, 8)
        if byte_idx >= len(data):
            break
        if i >= team_count or j >= team_count:
            continue
        matrix.set(i, j, (data[byte_idx] >> shift) & 0x03)
    return matrix


def encode_results(matrix, max_teams=RESULT_MATRIX_TEAMS):
    """Pack a matrix into the 2-bit stream, zero-padding the final byte."""
    out = bytearray(packed_size(max_teams))
    for k, (i, j) in enumerate(_pairs(max_teams)):
        if i >= matrix.size or j >= matrix.size:
            continue
        byte_idx, shift = divmod(k * 2, 8)
        out[byte_idx] |= (int(matrix.get(i, j)) & 0x03) << shift
    return bytes(out)
