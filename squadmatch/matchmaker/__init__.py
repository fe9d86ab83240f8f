"""
The matchmaking state engine

Participants wait in a user queue until they are grouped into teams of
similar score. Finalized teams wait in a team queue until they are paired
with an opponent of the same size. Both steps use the same widening tolerance
search.
"""
from .match_pool import MatchBucket, MatchPool
from .score import MAX_SCORE, ScoreResult, compute_score
from .state import MatchmakingState
from .team_pool import BucketStatus, TeamBucket, TeamPool
from .tolerance_search import (
    OpponentSearch,
    SearchResult,
    SearchTarget,
    TeamFill,
    ToleranceSearch,
    initial_tolerance,
    widening_search
)
from .user_queue import UserQueue

__all__ = (
    "MAX_SCORE",
    "BucketStatus",
    "MatchBucket",
    "MatchPool",
    "MatchmakingState",
    "OpponentSearch",
    "ScoreResult",
    "SearchResult",
    "SearchTarget",
    "TeamBucket",
    "TeamFill",
    "TeamPool",
    "ToleranceSearch",
    "UserQueue",
    "compute_score",
    "initial_tolerance",
    "widening_search",
)
