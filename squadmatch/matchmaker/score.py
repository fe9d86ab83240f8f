"""
Placeholder skill score computed from a win/loss record
"""

from typing import NamedTuple, Optional

# Largest integer a float holds exactly. Corrupted records are pinned here and
# every computed score is clamped to it.
MAX_SCORE = float(2 ** 53 - 1)

SCORE_SCALE = 1000


class ScoreResult(NamedTuple):
    score: float
    wins: int
    losses: int
    corrupted: bool


def _default(value: Optional[int]) -> int:
    # No history collapses to a neutral ratio
    if value is None or value == 0:
        return 1
    return value


def compute_score(wins: Optional[int], losses: Optional[int]) -> ScoreResult:
    """
    Convert a win/loss record into a score.

    Absent or zero counts are replaced by 1. A negative count marks the record
    as corrupted and yields `MAX_SCORE` instead of raising.

    # Examples
    >>> compute_score(3, 2).score
    1500.0
    >>> compute_score(0, None) == compute_score(1, 1)
    True
    >>> compute_score(-1, 4).corrupted
    True
    """
    wins, losses = _default(wins), _default(losses)

    if wins < 0 or losses < 0:
        return ScoreResult(MAX_SCORE, wins, losses, True)

    # The quotient of huge counts does not fit in a float
    if wins * SCORE_SCALE >= losses * int(MAX_SCORE):
        return ScoreResult(MAX_SCORE, wins, losses, False)

    score = min((wins / losses) * SCORE_SCALE, MAX_SCORE)
    return ScoreResult(score, wins, losses, False)
