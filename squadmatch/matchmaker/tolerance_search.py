"""
Widening tolerance search shared by team building and match building.

Starting from an initial tolerance, the source population is scanned in queue
order and every candidate whose score lies strictly within the tolerance of
the current center is committed. The center follows the accumulator after
every commit. If the accumulator is still incomplete after a full pass the
tolerance doubles, until it reaches the stopping bound.

The search is greedy: earlier queue entries win ties, which favours whoever
has waited longest.
"""

from typing import Iterable, NamedTuple, Protocol, TypeVar

from ..config import TRACE
from ..decorators import with_logger
from .match_pool import MatchPool
from .team_pool import TeamBucket, TeamPool
from .user_queue import UserQueue

C = TypeVar("C")


class SearchTarget(Protocol[C]):
    def is_complete(self) -> bool: ...
    def center_score(self) -> float: ...
    def candidates(self) -> Iterable[C]: ...
    def candidate_score(self, candidate: C) -> float: ...
    def accepts(self, candidate: C) -> bool: ...
    def commit(self, candidate: C) -> bool: ...


class SearchResult(NamedTuple):
    success: bool
    tolerance: float
    passes: int


def initial_tolerance(aggressiveness: float, seed_score: float) -> float:
    """
    # Examples
    >>> initial_tolerance(100, 1000)
    0.1
    """
    return aggressiveness / seed_score


@with_logger
class ToleranceSearch:
    """Runs the widening search over one `SearchTarget`."""

    def __init__(self, target: SearchTarget, name: str = "search"):
        self.target = target
        self.name = name

    def run(self, tolerance: float, max_tolerance: float) -> SearchResult:
        target = self.target
        passes = 0

        while True:
            if target.is_complete():
                return SearchResult(True, tolerance, passes)

            if tolerance >= max_tolerance:
                self._logger.debug(
                    "%s gave up at tolerance %s (bound %s) after %d passes",
                    self.name, tolerance, max_tolerance, passes
                )
                return SearchResult(False, tolerance, passes)

            passes += 1
            if self._scan(tolerance):
                return SearchResult(True, tolerance, passes)

            tolerance *= 2
            self._logger.log(
                TRACE, "%s widening tolerance to %s", self.name, tolerance
            )

    def _scan(self, tolerance: float) -> bool:
        target = self.target
        center = target.center_score()

        for candidate in target.candidates():
            if abs(target.candidate_score(candidate) - center) >= tolerance:
                continue
            if not target.accepts(candidate):
                continue
            if not target.commit(candidate):
                continue

            self._logger.log(
                TRACE, "%s accepted %r at tolerance %s",
                self.name, candidate, tolerance
            )
            if target.is_complete():
                return True
            center = target.center_score()

        return False


def widening_search(
    target: SearchTarget,
    tolerance: float,
    max_tolerance: float,
    name: str = "search",
) -> SearchResult:
    return ToleranceSearch(target, name).run(tolerance, max_tolerance)


class TeamFill:
    """Fill a forming team bucket with participants from the user queue."""

    def __init__(self, user_queue: UserQueue, team_pool: TeamPool, bucket_id: str):
        self.user_queue = user_queue
        self.team_pool = team_pool
        self.bucket_id = bucket_id
        self.bucket = team_pool.get_bucket(bucket_id)

    def _refresh(self) -> None:
        self.bucket = self.team_pool.get_bucket(self.bucket_id)

    def is_complete(self) -> bool:
        return self.bucket is not None and self.bucket.is_full

    def center_score(self) -> float:
        return self.bucket.avg_score

    def candidates(self):
        return self.user_queue.snapshot()

    def candidate_score(self, candidate) -> float:
        return candidate.score

    def accepts(self, candidate) -> bool:
        return candidate.name not in self.bucket.members

    def commit(self, candidate) -> bool:
        count = self.team_pool.add_member(self.bucket_id, candidate)
        self._refresh()
        return count is not None and candidate.name in self.bucket.members


class OpponentSearch:
    """
    Find an opponent for a home team among the queued teams.

    The home team is the copy taken when the attempt started. Its score is
    the center for the whole attempt.
    """

    def __init__(
        self,
        team_pool: TeamPool,
        match_pool: MatchPool,
        match_id: str,
        home_team: TeamBucket,
    ):
        self.team_pool = team_pool
        self.match_pool = match_pool
        self.match_id = match_id
        self.home_team = home_team
        self.opponent_id = None

    def is_complete(self) -> bool:
        return self.opponent_id is not None

    def center_score(self) -> float:
        return self.home_team.avg_score

    def candidates(self):
        return self.team_pool.queued_buckets()

    def candidate_score(self, candidate) -> float:
        return candidate.avg_score

    def accepts(self, candidate) -> bool:
        return (
            candidate.bucket_id != self.home_team.bucket_id
            and candidate.team_size == self.home_team.team_size
        )

    def commit(self, candidate) -> bool:
        if self.match_pool.add_opponent(self.match_id, candidate.bucket_id):
            self.opponent_id = candidate.bucket_id
            return True
        return False
