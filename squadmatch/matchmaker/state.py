from collections import Counter
from typing import Iterable

from ..decorators import with_logger
from ..participants import Participant
from .match_pool import MatchPool
from .team_pool import TeamPool
from .user_queue import UserQueue


@with_logger
class MatchmakingState:
    """
    Owns all matchmaking containers.

    Concepts:
    - There are 2 pools (team, match) and 2 queues (user, team).
    - Participants wait in the user queue until they are pulled into a team
      bucket.
    - A finalized team bucket is put on the team queue. This does not remove
      it from the team pool.
    - Teams leave the team queue when they are paired into a match, and leave
      the team pool when that match is cleared.

    The state is not thread or task safe on its own. Callers serialize access,
    see `MatchmakingService`.
    """

    def __init__(self):
        self.user_queue = UserQueue()
        self.team_pool = TeamPool(self.user_queue)
        self.match_pool = MatchPool(self.team_pool)

    def load_queue(self, participants: Iterable[Participant]) -> int:
        """Seed the user queue. Returns the number of participants queued."""
        count = 0
        for participant in participants:
            if self.is_known(participant.name):
                self._logger.warning(
                    "Skipping duplicate participant %s", participant.name
                )
                continue
            self.user_queue.enqueue(participant)
            count += 1

        self._logger.info(
            "Loaded %d participants into the matchmaking queue", count
        )
        return count

    def is_known(self, name: str) -> bool:
        """Whether the participant is queued or already placed in a team."""
        return name in self.user_queue or self.team_pool.contains_member(name)

    def report(self) -> dict:
        """Sizes of every container, for logging and metrics."""
        return {
            "users_queued": len(self.user_queue),
            "teams_queued": len(self.team_pool.queue_snapshot()),
            "teams": dict(Counter(
                bucket.status.value for bucket in self.team_pool.all_buckets()
            )),
            "matches": dict(Counter(
                match.status.value for match in self.match_pool.all_matches()
            )),
        }
