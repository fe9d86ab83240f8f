import copy
import uuid
from typing import Optional

from ..decorators import with_logger
from ..timing import timestamp_now
from .team_pool import BucketStatus, TeamBucket, TeamPool

TEAMS_PER_MATCH = 2


class MatchBucket:
    """
    A head to head match between two teams of the same size. The first team
    is the home team the match was created for.
    """

    def __init__(self, match_id: str, home_team: TeamBucket):
        self.match_id = match_id
        self.team_size = home_team.team_size
        self.teams: list[TeamBucket] = [home_team]
        self.status = BucketStatus.FORMING
        self.created_at = timestamp_now()

    @property
    def home_team(self) -> TeamBucket:
        return self.teams[0]

    @property
    def is_full(self) -> bool:
        return len(self.teams) >= TEAMS_PER_MATCH

    @property
    def is_finalized(self) -> bool:
        return self.status is BucketStatus.FINALIZED

    def copy(self) -> "MatchBucket":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "team_size": self.team_size,
            "teams": [team.to_dict() for team in self.teams],
            "status": self.status.value,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        teams = " vs ".join(team.bucket_id for team in self.teams)
        return f"MatchBucket({self.match_id}, {teams}, {self.status.value})"


@with_logger
class MatchPool:
    """
    Matches in formation and finalized matches, by id.

    Teams inside a match are snapshots of the team pool entries at the time
    they joined. The team pool keeps owning the buckets themselves.
    """

    def __init__(self, team_pool: TeamPool):
        self.team_pool = team_pool
        self._matches: dict[str, MatchBucket] = {}

    def create_match(self, home_bucket_id: str) -> Optional[str]:
        """
        Start a match for a home team.

        # Returns
        The match id, or `None` if the team is not in the team pool.
        """
        home_team = self.team_pool.get_bucket(home_bucket_id)
        if home_team is None:
            return None

        match_id = str(uuid.uuid4())
        self._matches[match_id] = MatchBucket(match_id, home_team)
        self._logger.debug(
            "Created match %s for home team %s", match_id, home_bucket_id
        )
        return match_id

    def add_opponent(self, match_id: str, opponent_bucket_id: str) -> bool:
        """
        Add the second team and finalize the match. The opponent is taken off
        the team queue.

        # Returns
        `True` on success. `False` leaves everything untouched.
        """
        match = self._matches.get(match_id)
        if match is None:
            return False
        if match.is_full or match.is_finalized:
            return False
        if any(team.bucket_id == opponent_bucket_id for team in match.teams):
            return False

        opponent = self.team_pool.get_bucket(opponent_bucket_id)
        if opponent is None:
            return False
        if opponent.team_size != match.team_size:
            return False

        self.team_pool.remove_from_queue(opponent_bucket_id)
        match.teams.append(opponent)
        match.status = BucketStatus.FINALIZED
        self._logger.info("Match %r finalized", match)
        return True

    def get_match(self, match_id: str) -> Optional[MatchBucket]:
        match = self._matches.get(match_id)
        if match is None:
            return None
        return match.copy()

    def all_matches(self) -> list[MatchBucket]:
        return [match.copy() for match in self._matches.values()]

    def discard_match(
        self,
        match_id: str,
        requeue_teams: bool = False
    ) -> Optional[MatchBucket]:
        """
        Remove a match. With `requeue_teams` its teams go back onto the team
        queue. They never leave the team pool.
        """
        match = self._matches.pop(match_id, None)
        if match is None:
            return None

        if requeue_teams:
            for team in match.teams:
                self.team_pool.enqueue_team(team.bucket_id)

        self._logger.debug(
            "Discarded match %r (requeue_teams=%s)", match, requeue_teams
        )
        return match

    def clear_match(self, match_id: str) -> Optional[MatchBucket]:
        """
        Consume a finalized match. The match and its teams are removed from
        their pools. Unknown or unfinished matches are left alone.
        """
        match = self._matches.get(match_id)
        if match is None or not match.is_finalized:
            return None

        del self._matches[match_id]
        for team in match.teams:
            self.team_pool.remove_bucket(team.bucket_id)

        self._logger.info("Cleared match %r", match)
        return match

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, match_id: object) -> bool:
        return match_id in self._matches
