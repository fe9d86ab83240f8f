from collections import OrderedDict
from typing import Iterator, Optional

import squadmatch.metrics as metrics

from ..decorators import with_logger
from ..participants import Participant
from ..timing import timestamp_now
from .score import compute_score


@with_logger
class UserQueue:
    """
    FIFO queue of participants waiting to be placed into a team.

    The queue stores its own copies of the participants it is given. Scores
    and queue times are assigned on the first insertion only, so a participant
    that comes back from a discarded team keeps the values it had.
    """

    def __init__(self):
        self._queue: dict[str, Participant] = OrderedDict()

    def enqueue(
        self,
        participant: Participant,
        at_front: bool = False
    ) -> Participant:
        """
        Put a participant at the tail (or the head with `at_front`) of the
        queue and return the stored copy.
        """
        participant = participant.copy()
        if not participant.is_scored:
            self._assign_score(participant)

        # Re-inserting a name moves it instead of leaving it in place
        self._queue.pop(participant.name, None)
        self._queue[participant.name] = participant
        if at_front:
            self._queue.move_to_end(participant.name, last=False)

        self._logger.debug(
            "%s joined the queue (W:%s/L:%s/Score:%s)",
            participant.name,
            participant.wins,
            participant.losses,
            participant.score,
        )
        return participant.copy()

    def _assign_score(self, participant: Participant) -> None:
        result = compute_score(participant.wins, participant.losses)
        if result.corrupted:
            self._logger.warning(
                "Participant %s has corrupted win/loss stats %s/%s",
                participant.name, result.wins, result.losses
            )
            metrics.corrupted_records.inc()

        participant.wins = result.wins
        participant.losses = result.losses
        participant.score = result.score
        participant.corrupted = result.corrupted
        if participant.queued_at is None:
            participant.queued_at = timestamp_now()

    def dequeue_front(self) -> Optional[Participant]:
        """Remove and return the oldest participant, or `None` if empty."""
        if not self._queue:
            self._logger.debug("No more participants in queue")
            return None

        _, participant = self._queue.popitem(last=False)
        self._logger.debug(
            "Dequeueing %s, %d participants left in queue",
            participant.name, len(self._queue)
        )
        return participant

    def remove_by_id(self, name: str) -> Optional[Participant]:
        """Remove a participant by name. Returns `None` if not queued."""
        participant = self._queue.pop(name, None)
        if participant is not None:
            self._logger.debug("Removed %s from queue", name)
        return participant

    def snapshot(self) -> list[Participant]:
        """Copies of the queued participants, oldest first."""
        return [participant.copy() for participant in self._queue.values()]

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, name: object) -> bool:
        return name in self._queue

    def __iter__(self) -> Iterator[Participant]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"UserQueue({list(self._queue)})"
