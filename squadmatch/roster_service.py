"""
Read-only source of participant win/loss records
"""

from typing import NamedTuple, Optional

import yaml

from .config import config
from .core import Service
from .decorators import with_logger
from .exceptions import RosterError
from .participants import optional_count


class RosterRecord(NamedTuple):
    name: str
    wins: Optional[int] = None
    losses: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RosterRecord":
        return cls(
            data["name"],
            optional_count(data, "wins"),
            optional_count(data, "losses"),
        )


@with_logger
class RosterService(Service):
    """
    Loads the participant roster once when the server starts.

    The roster file is a YAML (or JSON) list of objects with `name`, `wins`
    and `losses` keys.
    """

    def __init__(self, roster_file: Optional[str] = None):
        self.roster_file = roster_file
        self._records: list[RosterRecord] = []

    async def initialize(self) -> None:
        self.load(self.roster_file or config.ROSTER_FILE)

    def load(self, path: str) -> None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise RosterError(path, f"could not be read: {e}") from e
        except yaml.YAMLError as e:
            raise RosterError(path, f"is not valid YAML or JSON: {e}") from e

        if data is None:
            data = []
        if not isinstance(data, list):
            raise RosterError(path, "expected a list of participant records")

        records = []
        for i, entry in enumerate(data):
            try:
                records.append(RosterRecord.from_dict(entry))
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                raise RosterError(path, f"record {i} is malformed: {entry!r}") from e

        self._records = records
        self._logger.info("Loaded %d roster records from %s", len(records), path)

    def list_participants(self) -> list[RosterRecord]:
        return list(self._records)

    def get(self, name: str) -> Optional[RosterRecord]:
        for record in self._records:
            if record.name == name:
                return record
        return None

    def get_by_win_range(
        self,
        win_low: Optional[int] = None,
        win_high: Optional[int] = None,
    ) -> dict[str, dict]:
        """
        Records whose win count lies within the inclusive bounds, keyed by
        name. With neither bound given nothing is returned.
        """
        if win_low is None and win_high is None:
            return {}

        def in_range(record: RosterRecord) -> bool:
            if record.wins is None:
                return False
            if win_low is not None and record.wins < win_low:
                return False
            if win_high is not None and record.wins > win_high:
                return False
            return True

        return {
            record.name: {"wins": record.wins, "losses": record.losses}
            for record in self._records
            if in_range(record)
        }

    def __len__(self) -> int:
        return len(self._records)
