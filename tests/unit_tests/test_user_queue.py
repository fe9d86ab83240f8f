from unittest import mock

import pytest
from hypothesis import given

from squadmatch.matchmaker import MAX_SCORE, UserQueue
from squadmatch.participants import Participant

from .strategies import st_participant_lists


@pytest.fixture
def queue():
    return UserQueue()


def names(queue):
    return [p.name for p in queue.snapshot()]


def test_empty_queue(queue):
    assert len(queue) == 0
    assert queue.dequeue_front() is None
    assert queue.remove_by_id("nobody") is None
    assert queue.snapshot() == []


def test_fifo_order(queue):
    for name in ("A", "B", "C"):
        queue.enqueue(Participant(name))

    assert queue.dequeue_front().name == "A"
    assert queue.dequeue_front().name == "B"
    assert queue.dequeue_front().name == "C"
    assert queue.dequeue_front() is None


def test_enqueue_at_front(queue):
    queue.enqueue(Participant("A"))
    queue.enqueue(Participant("B"))
    queue.enqueue(Participant("C"), at_front=True)

    assert names(queue) == ["C", "A", "B"]


def test_enqueue_assigns_score_and_time(queue):
    with mock.patch(
        "squadmatch.matchmaker.user_queue.timestamp_now", return_value=123.0
    ):
        stored = queue.enqueue(Participant("A", wins=3, losses=2))

    assert stored.score == 1500
    assert stored.queued_at == 123.0
    assert stored.corrupted is False


def test_enqueue_defaults_missing_history(queue):
    stored = queue.enqueue(Participant("frank", wins=0, losses=None))

    assert (stored.wins, stored.losses, stored.score) == (1, 1, 1000)


def test_enqueue_corrupted_record(queue, caplog):
    stored = queue.enqueue(Participant("mallory", wins=-3, losses=4))

    assert stored.score == MAX_SCORE
    assert stored.corrupted is True
    assert "corrupted" in caplog.text


def test_requeue_keeps_score_and_time(queue):
    first = queue.enqueue(Participant("A", wins=1, losses=4))
    popped = queue.dequeue_front()

    # Simulate the participant coming back from a discarded team
    with mock.patch(
        "squadmatch.matchmaker.user_queue.timestamp_now", return_value=0.0
    ):
        again = queue.enqueue(popped)

    assert again.score == first.score == 250
    assert again.queued_at == first.queued_at


def test_enqueue_stores_a_copy(queue):
    p = Participant("A")
    queue.enqueue(p)
    p.name = "changed"

    assert names(queue) == ["A"]
    assert p.score is None


def test_snapshot_returns_copies(queue):
    queue.enqueue(Participant("A"))
    queue.snapshot()[0].score = -1

    assert queue.snapshot()[0].score == 1000


def test_reinsert_moves_participant(queue):
    for name in ("A", "B", "C"):
        queue.enqueue(Participant(name))

    queue.enqueue(Participant("A"))

    assert names(queue) == ["B", "C", "A"]
    assert len(queue) == 3


def test_remove_by_id(queue):
    for name in ("A", "B", "C"):
        queue.enqueue(Participant(name))

    removed = queue.remove_by_id("B")

    assert removed.name == "B"
    assert "B" not in queue
    assert names(queue) == ["A", "C"]


@given(participants=st_participant_lists())
def test_dequeue_order_matches_enqueue_order(participants):
    queue = UserQueue()
    for p in participants:
        queue.enqueue(p)

    dequeued = []
    while (p := queue.dequeue_front()) is not None:
        dequeued.append(p.name)
        assert p.score is not None

    assert dequeued == [p.name for p in participants]


def test_enqueue_huge_record(queue):
    stored = queue.enqueue(Participant("X", wins=10 ** 400, losses=1))

    assert stored.score == MAX_SCORE
    assert stored.corrupted is False
