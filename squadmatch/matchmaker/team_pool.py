import copy
import statistics
import uuid
from collections import OrderedDict
from enum import Enum, unique
from typing import Optional

from ..config import config
from ..decorators import with_logger
from ..participants import Participant
from ..timing import timestamp_now
from .user_queue import UserQueue


@unique
class BucketStatus(Enum):
    FORMING = "forming"
    FINALIZED = "finalized"
    DELETING = "deleting"


class TeamBucket:
    """
    A team in formation or a finalized team.

    Members are copies taken out of the user queue, the seed included.
    """

    def __init__(
        self,
        bucket_id: str,
        seed_user: Participant,
        team_size: int,
        score_tolerance_max: float,
    ):
        self.bucket_id = bucket_id
        self.seed_user = seed_user
        self.team_size = team_size
        self.score_tolerance_max = score_tolerance_max
        self.members: dict[str, Participant] = OrderedDict(
            [(seed_user.name, seed_user)]
        )
        self.avg_score = seed_user.score
        self.status = BucketStatus.FORMING
        self.enqueued_at: Optional[float] = None

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.team_size

    @property
    def is_finalized(self) -> bool:
        return self.status is BucketStatus.FINALIZED

    def recompute_avg_score(self) -> None:
        self.avg_score = statistics.mean(m.score for m in self.members.values())

    def copy(self) -> "TeamBucket":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "bucket_id": self.bucket_id,
            "seed_user": self.seed_user.to_dict(),
            "team_size": self.team_size,
            "members": [m.to_dict() for m in self.members.values()],
            "avg_score": self.avg_score,
            "score_tolerance_max": self.score_tolerance_max,
            "status": self.status.value,
            "enqueued_at": self.enqueued_at,
        }

    def __repr__(self) -> str:
        return (
            f"TeamBucket({self.bucket_id}, {list(self.members)}, "
            f"size={self.team_size}, avg={self.avg_score}, "
            f"{self.status.value})"
        )


@with_logger
class TeamPool:
    """
    Every team bucket by id, plus a FIFO queue of finalized bucket ids waiting
    for an opponent.

    Pool and queue membership are independent. A bucket stays in the pool
    while it is queued, and leaving the queue does not remove it from the
    pool.
    """

    def __init__(self, user_queue: UserQueue):
        self.user_queue = user_queue
        self._pool: dict[str, TeamBucket] = {}
        self._queue: list[str] = []

    def create_bucket(self, seed: Participant, team_size: int) -> str:
        """
        Create a bucket around `seed`. A bucket of size 1 is finalized and
        queued immediately.
        """
        bucket_id = str(uuid.uuid4())
        bucket = TeamBucket(
            bucket_id,
            seed.copy(),
            team_size,
            max(config.TEAM_BUILD_MIN_SCORE_TOLERANCE, seed.score),
        )
        self._pool[bucket_id] = bucket
        self._logger.debug(
            "Created bucket %s of size %d for %s", bucket_id, team_size, seed
        )

        if bucket.is_full:
            self._finalize(bucket)

        return bucket_id

    def add_member(
        self,
        bucket_id: str,
        participant: Participant
    ) -> Optional[int]:
        """
        Move `participant` out of the user queue and into the bucket.

        # Returns
        The member count after the call, or `None` if the bucket is unknown.
        """
        bucket = self._pool.get(bucket_id)
        if bucket is None:
            return None
        if bucket.status is not BucketStatus.FORMING or bucket.is_full:
            return len(bucket.members)
        if participant.name in bucket.members:
            return len(bucket.members)

        self.user_queue.remove_by_id(participant.name)
        bucket.members[participant.name] = participant.copy()
        bucket.recompute_avg_score()

        if bucket.is_full:
            self._finalize(bucket)

        return len(bucket.members)

    def _finalize(self, bucket: TeamBucket) -> None:
        bucket.status = BucketStatus.FINALIZED
        self._logger.info("Team %r finalized", bucket)
        self.enqueue_team(bucket.bucket_id)

    def discard_bucket(self, bucket_id: str) -> Optional[TeamBucket]:
        """
        Destroy a bucket and put every member except the seed back at the tail
        of the user queue. The seed is left to the caller.
        """
        bucket = self._pool.get(bucket_id)
        if bucket is None:
            return None

        bucket.status = BucketStatus.DELETING
        for name, member in bucket.members.items():
            if name == bucket.seed_user.name:
                continue
            self.user_queue.enqueue(member)

        self.remove_from_queue(bucket_id)
        del self._pool[bucket_id]
        self._logger.debug("Discarded bucket %r", bucket)
        return bucket.copy()

    def remove_bucket(self, bucket_id: str) -> Optional[TeamBucket]:
        """Drop a bucket from the pool and the queue without requeueing."""
        bucket = self._pool.pop(bucket_id, None)
        if bucket is None:
            return None

        self.remove_from_queue(bucket_id)
        return bucket.copy()

    def dequeue_team(self) -> Optional[TeamBucket]:
        """Pop the oldest queued team. Returns `None` if the queue is empty."""
        while self._queue:
            bucket_id = self._queue.pop(0)
            bucket = self._pool.get(bucket_id)
            if bucket is not None:
                return bucket.copy()

            self._logger.warning(
                "Queued team %s is no longer in the team pool", bucket_id
            )
        return None

    def enqueue_team(self, bucket_id: str) -> bool:
        """
        Put a bucket at the tail of the team queue.

        # Returns
        `False` if the bucket is unknown or already queued.
        """
        bucket = self._pool.get(bucket_id)
        if bucket is None:
            return False
        if bucket_id in self._queue:
            return False

        if bucket.enqueued_at is None:
            bucket.enqueued_at = timestamp_now()
        self._queue.append(bucket_id)
        return True

    def remove_from_queue(self, bucket_id: str) -> bool:
        """Remove a bucket from the team queue. Returns whether it was queued."""
        try:
            self._queue.remove(bucket_id)
        except ValueError:
            return False
        return True

    def contains_member(self, name: str) -> bool:
        return any(name in bucket.members for bucket in self._pool.values())

    def get_bucket(self, bucket_id: str) -> Optional[TeamBucket]:
        bucket = self._pool.get(bucket_id)
        if bucket is None:
            return None
        return bucket.copy()

    def all_buckets(self) -> list[TeamBucket]:
        return [bucket.copy() for bucket in self._pool.values()]

    def queue_snapshot(self) -> list[str]:
        return list(self._queue)

    def queued_buckets(self) -> list[TeamBucket]:
        return [
            self._pool[bucket_id].copy()
            for bucket_id in self._queue
            if bucket_id in self._pool
        ]

    def __len__(self) -> int:
        return len(self._pool)

    def __contains__(self, bucket_id: object) -> bool:
        return bucket_id in self._pool
