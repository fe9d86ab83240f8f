"""
Participant type definitions
"""

import copy
from typing import Any, Optional


class Participant:
    """
    A single user waiting to be matched.

    `score` and `queued_at` are filled in when the participant first enters
    the user queue and are never changed afterwards, so a participant that is
    put back into the queue keeps its original place in the waiting order
    statistics.
    """

    def __init__(
        self,
        name: str,
        wins: Optional[int] = None,
        losses: Optional[int] = None,
        score: Optional[float] = None,
        queued_at: Optional[float] = None,
        corrupted: bool = False,
    ) -> None:
        self.name = name
        self.wins = wins
        self.losses = losses
        self.score = score
        self.queued_at = queued_at
        self.corrupted = corrupted

    @classmethod
    def from_record(cls, record: Any) -> "Participant":
        """
        Build a participant from a roster record or a mapping with `name`,
        `wins` and `losses` keys.
        """
        if isinstance(record, dict):
            return cls(record["name"], record.get("wins"), record.get("losses"))
        return cls(record.name, record.wins, record.losses)

    @property
    def is_scored(self) -> bool:
        return self.score is not None and self.queued_at is not None

    def wait_time(self, now: float) -> float:
        """Seconds since the participant was first queued"""
        if self.queued_at is None:
            return 0.0
        return max(now - self.queued_at, 0.0)

    def copy(self) -> "Participant":
        return copy.copy(self)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "wins": self.wins,
            "losses": self.losses,
            "score": self.score,
            "queued_at": self.queued_at,
            "corrupted": self.corrupted,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"Participant({self.name}, {self.score})"

    def __repr__(self) -> str:
        return (
            f"Participant(name={self.name}, wins={self.wins}, "
            f"losses={self.losses}, score={self.score}, "
            f"queued_at={self.queued_at})"
        )


def optional_count(record: dict, key: str) -> Optional[int]:
    """
    Read a win or loss count from a mapping. Missing values are `None`.

    # Errors
    Raises `ValueError` if the value is present but not an integer.
    """
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value
