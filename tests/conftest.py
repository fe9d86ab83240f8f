"""
This module is the 'top level' configuration for all the unit tests.

'Real world' fixtures are put here.
If a test suite needs specific mocked versions of dependencies,
these should be put in the ``conftest.py'' relative to it.
"""

import logging
import time
from pathlib import Path
from typing import Optional
from unittest import mock

import hypothesis
import pytest

from squadmatch.config import TRACE
from squadmatch.matchmaker import MatchmakingState
from squadmatch.matchmaking_service import MatchmakingService
from squadmatch.participants import Participant
from squadmatch.roster_service import RosterService

DATA_DIR = Path(__file__).parent / "data"

logging.getLogger().setLevel(TRACE)
hypothesis.settings.register_profile(
    "nightly",
    max_examples=10_000,
    deadline=None,
    print_blob=True
)


def pytest_configure(config):
    config.addinivalue_line(
        "addopts", "--strict-markers"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def make_participant(
    name: str,
    score: Optional[float] = None,
    wins: Optional[int] = None,
    losses: Optional[int] = None,
    waited: Optional[float] = None,
) -> Participant:
    """
    Make a participant. Passing `score` makes it look like it was queued
    `waited` seconds ago (default: just now) so the queue keeps that score.
    """
    queued_at = None
    if score is not None or waited is not None:
        queued_at = time.time() - (waited or 0)
    return Participant(
        name,
        wins=wins,
        losses=losses,
        score=score,
        queued_at=queued_at,
    )


@pytest.fixture(scope="session")
def participant_factory():
    return make_participant


@pytest.fixture
def state():
    return MatchmakingState()


@pytest.fixture
def enqueue(state):
    """Put participants with the given `{name: score}` into the user queue."""
    def _enqueue(scores: dict[str, float], waited: Optional[float] = None):
        for name, score in scores.items():
            state.user_queue.enqueue(
                make_participant(name, score=score, waited=waited)
            )
    return _enqueue


@pytest.fixture
def make_team(state):
    """
    Build a finalized team straight into the team pool, bypassing the search.
    Returns the bucket id.
    """
    def _make_team(prefix: str, scores: list[float]) -> str:
        members = [
            make_participant(f"{prefix}{i}", score=score)
            for i, score in enumerate(scores)
        ]
        bucket_id = state.team_pool.create_bucket(members[0], len(members))
        for member in members[1:]:
            state.team_pool.add_member(bucket_id, member)
        return bucket_id
    return _make_team


@pytest.fixture
def roster_service():
    service = mock.create_autospec(RosterService)
    service.list_participants.return_value = []
    service.get.return_value = None
    return service


@pytest.fixture
def matchmaking_service(roster_service, state):
    return MatchmakingService(roster_service, state)


@pytest.fixture
def roster_file():
    return str(DATA_DIR / "users.yaml")
