"""
Drives the team and match building cycles and serializes all access to the
matchmaking state
"""

import asyncio
from typing import Any, Optional, Union

import humanize

import squadmatch.metrics as metrics

from .config import config
from .core import Service
from .decorators import timed, with_logger
from .matchmaker import (
    MatchBucket,
    MatchmakingState,
    OpponentSearch,
    TeamBucket,
    TeamFill,
    initial_tolerance,
    widening_search
)
from .metrics import MatchBuild, TeamBuild
from .participants import Participant
from .roster_service import RosterService
from .timing import Timer, at_interval, timestamp_now


@with_logger
class MatchmakingService(Service):
    """
    Service responsible for matchmaking. Builds teams out of the user queue
    and matches out of the team queue on two independent timers.

    Every command and query takes the same lock, so the periodic cycles and
    outside callers never observe or cause a partial mutation. Queries return
    copies.
    """

    def __init__(
        self,
        roster_service: RosterService,
        state: Optional[MatchmakingState] = None,
    ):
        self.roster_service = roster_service
        self.state = state or MatchmakingState()
        self._lock = asyncio.Lock()
        self._timers: dict[str, Timer] = {}

    async def initialize(self) -> None:
        participants = [
            Participant.from_record(record)
            for record in self.roster_service.list_participants()
        ]
        async with self._lock:
            self.state.load_queue(participants)

        self.start_timers()
        config.register_callback("TEAM_BUILD_INTERVAL", self.start_timers)
        config.register_callback("MATCH_BUILD_INTERVAL", self.start_timers)
        config.register_callback("STATUS_REPORT_INTERVAL", self.start_timers)

    def start_timers(self) -> None:
        """(Re)start the periodic cycles with the configured intervals."""
        self.stop_timers()
        self._timers = {
            "team_build": at_interval(
                config.TEAM_BUILD_INTERVAL, func=self.run_team_build_cycle
            ),
            "match_build": at_interval(
                config.MATCH_BUILD_INTERVAL, func=self.run_match_build_cycle
            ),
            "status_report": at_interval(
                config.STATUS_REPORT_INTERVAL, func=self.report_status
            ),
        }
        self._logger.info(
            "Building teams every %ss and matches every %ss",
            config.TEAM_BUILD_INTERVAL,
            config.MATCH_BUILD_INTERVAL,
        )

    def stop_timers(self) -> None:
        for timer in self._timers.values():
            timer.stop()
        self._timers = {}

    async def shutdown(self) -> None:
        self.stop_timers()
        self._logger.info("Matchmaking stopped")

    # ========
    # Commands
    # ========

    async def enqueue_user(
        self,
        record: Union[Participant, dict, Any]
    ) -> Optional[Participant]:
        """
        Add a participant to the tail of the user queue. A participant without
        any win/loss record takes the one from the roster, if listed there.

        # Returns
        The queued participant, or `None` if a participant with that name is
        already queued or in a team.
        """
        if not isinstance(record, Participant):
            record = Participant.from_record(record)
        if record.wins is None and record.losses is None:
            record = self._with_roster_record(record)

        async with self._lock:
            if self.state.is_known(record.name):
                self._logger.info(
                    "Refusing to enqueue %s, already in matchmaking",
                    record.name
                )
                return None
            return self.state.user_queue.enqueue(record)

    def _with_roster_record(self, participant: Participant) -> Participant:
        roster_record = self.roster_service.get(participant.name)
        if roster_record is None:
            return participant

        participant = participant.copy()
        participant.wins = roster_record.wins
        participant.losses = roster_record.losses
        return participant

    async def remove_user_by_name(self, name: str) -> Optional[Participant]:
        async with self._lock:
            return self.state.user_queue.remove_by_id(name)

    @timed(limit=0.5)
    async def run_team_build_cycle(self) -> Optional[str]:
        async with self._lock:
            with metrics.cycle_duration.labels("team_build").time():
                return self._build_team()

    @timed(limit=0.5)
    async def run_match_build_cycle(self) -> Optional[str]:
        async with self._lock:
            with metrics.cycle_duration.labels("match_build").time():
                return self._build_match()

    async def clear_match(self, match_id: str) -> Optional[MatchBucket]:
        """Consume a finalized match, removing its teams from the team pool."""
        async with self._lock:
            return self.state.match_pool.clear_match(match_id)

    # =======
    # Queries
    # =======

    async def get_user_queue(self) -> list[Participant]:
        async with self._lock:
            return self.state.user_queue.snapshot()

    async def get_team_bucket(
        self,
        bucket_id: Optional[str] = None
    ) -> Union[Optional[TeamBucket], list[TeamBucket]]:
        """One bucket by id, or every bucket in the team pool."""
        async with self._lock:
            if bucket_id is None:
                return self.state.team_pool.all_buckets()
            return self.state.team_pool.get_bucket(bucket_id)

    async def get_team_queue(self) -> list[TeamBucket]:
        async with self._lock:
            return self.state.team_pool.queued_buckets()

    async def get_match(
        self,
        match_id: Optional[str] = None
    ) -> Union[Optional[MatchBucket], list[MatchBucket]]:
        """One match by id, or every match in the match pool."""
        async with self._lock:
            if match_id is None:
                return self.state.match_pool.all_matches()
            return self.state.match_pool.get_match(match_id)

    async def report_status(self) -> dict:
        async with self._lock:
            report = self.state.report()

        metrics.user_queue_size.set(report["users_queued"])
        metrics.team_queue_size.set(report["teams_queued"])
        for status, count in report["teams"].items():
            metrics.team_pool_size.labels(status).set(count)
        for status, count in report["matches"].items():
            metrics.match_pool_size.labels(status).set(count)

        self._logger.debug(
            "Participants in queue - %d, teams in queue - %d, teams - %s, "
            "matches - %s",
            report["users_queued"],
            report["teams_queued"],
            report["teams"],
            report["matches"],
        )
        return report

    # ======
    # Cycles
    # ======

    def _build_team(self) -> Optional[str]:
        """
        Try to build one team around the oldest queued participant.

        Team sizes are tried in configured order. If none can be filled, a
        participant that waited long enough plays in a team of one, otherwise
        it goes back to the tail of the queue.
        """
        user_queue = self.state.user_queue
        team_pool = self.state.team_pool

        seed = user_queue.dequeue_front()
        if seed is None:
            metrics.team_builds.labels(TeamBuild.EMPTY).inc()
            return None

        self._logger.debug("Finding a team for %s", seed)
        for team_size in config.TEAM_BUILD_TEAM_SIZES:
            bucket_id = team_pool.create_bucket(seed, team_size)
            bucket = team_pool.get_bucket(bucket_id)
            result = widening_search(
                TeamFill(user_queue, team_pool, bucket_id),
                initial_tolerance(
                    config.TEAM_BUILD_EXPANSION_AGGRESSIVENESS, seed.score
                ),
                bucket.score_tolerance_max,
                name=f"Team search for {seed.name} (size {team_size})",
            )
            if result.success:
                self._logger.info(
                    "Formed team %s of size %d around %s at tolerance %s",
                    bucket_id, team_size, seed.name, result.tolerance
                )
                metrics.team_builds.labels(TeamBuild.FORMED).inc()
                metrics.teams_formed.labels(team_size).inc()
                metrics.search_tolerance.labels("team").observe(result.tolerance)
                return bucket_id

            self._logger.debug(
                "No team of size %d for %s, clearing bucket %s",
                team_size, seed.name, bucket_id
            )
            team_pool.discard_bucket(bucket_id)

        waited = seed.wait_time(timestamp_now())
        if waited >= config.TEAM_BUILD_SINGLE_USER_TEAM_THRESHOLD:
            bucket_id = team_pool.create_bucket(seed, 1)
            self._logger.info(
                "%s waited %s, forming a team of one %s",
                seed.name, humanize.naturaldelta(waited), bucket_id
            )
            metrics.team_builds.labels(TeamBuild.SINGLE).inc()
            metrics.teams_formed.labels(1).inc()
            return bucket_id

        user_queue.enqueue(seed)
        self._logger.debug(
            "No team found for %s after %s, requeued",
            seed.name, humanize.naturaldelta(waited)
        )
        metrics.team_builds.labels(TeamBuild.REQUEUED).inc()
        return None

    def _build_match(self) -> Optional[str]:
        """
        Try to find an opponent for the oldest queued team. On failure the
        home team goes back to the tail of the team queue.
        """
        team_pool = self.state.team_pool
        match_pool = self.state.match_pool

        home = team_pool.dequeue_team()
        if home is None:
            metrics.match_builds.labels(MatchBuild.EMPTY, "").inc()
            return None

        match_id = match_pool.create_match(home.bucket_id)
        if match_id is None:
            return None

        # The home team is finalized, so its score is fixed for this attempt
        max_tolerance = max(home.avg_score, config.MATCH_BUILD_MIN_SCORE_TOLERANCE)
        result = widening_search(
            OpponentSearch(team_pool, match_pool, match_id, home),
            initial_tolerance(
                config.MATCH_BUILD_EXPANSION_AGGRESSIVENESS, home.avg_score
            ),
            max_tolerance,
            name=f"Opponent search for {home.bucket_id}",
        )
        if result.success:
            self._logger.info(
                "Formed match %s for team %s at tolerance %s",
                match_id, home.bucket_id, result.tolerance
            )
            metrics.match_builds.labels(
                MatchBuild.FINALIZED, home.team_size
            ).inc()
            metrics.search_tolerance.labels("match").observe(result.tolerance)
            return match_id

        self._logger.debug(
            "No opponent for team %s, requeueing", home.bucket_id
        )
        match_pool.discard_match(match_id, requeue_teams=True)
        metrics.match_builds.labels(MatchBuild.REQUEUED, home.team_size).inc()
        return None
