"""
Team matchmaking server.

# Overview
Participants join a user queue with a score derived from their win/loss
record. The server repeatedly takes the oldest participant and tries to build
a team of similarly scored participants around them, widening the accepted
score range until a team is complete or the range becomes too wide. Finished
teams join a team queue, and a second cycle pairs queued teams of equal size
into head to head matches using the same widening search.

## Teams
A team build cycle tries the configured team sizes in order (5 then 3 by
default). If no size can be filled, the participants that were tentatively
pulled in go back to the user queue. The seed participant either goes back
too, or, after waiting longer than a configured threshold, plays in a team of
one.

## Matches
A match build cycle takes the oldest queued team and looks for an opponent of
the same size among the other queued teams. If none is close enough, the team
goes back to the tail of the team queue.

## State
All state lives in memory and is owned by a single `MatchmakingState`. The
`MatchmakingService` serializes every access to it, both from its own timers
and from the HTTP control server.

# Legal
Distributed under GPLv3
"""

import asyncio
import logging
import time
from typing import Optional

import squadmatch.metrics as metrics

from .asyncio_extensions import map_suppress
from .config import TRACE, config
from .configuration_service import ConfigurationService
from .control import ControlServer, run_control_server
from .core import Service
from .matchmaker import MatchmakingState
from .matchmaking_service import MatchmakingService
from .roster_service import RosterService

__author__ = "squadmatch developers"
__license__ = "GPLv3"

__all__ = (
    "ConfigurationService",
    "ControlServer",
    "MatchmakingService",
    "RosterService",
    "ServerInstance",
    "config",
    "metrics",
    "run_control_server",
)

logger = logging.getLogger("squadmatch")


class ServerInstance(object):
    """
    A class representing a shared server state. Services are created once in
    dependency order and share the same `MatchmakingState`.
    """

    def __init__(
        self,
        name: str,
        roster_file: Optional[str] = None,
        # For testing
        _override_services: Optional[dict[str, Service]] = None
    ):
        self.name = name
        self._logger = logging.getLogger(self.name)
        self.started = False
        self._start_lock = asyncio.Lock()

        if _override_services is not None:
            self.services = _override_services
        else:
            self.services = self._create_services(roster_file)

    @staticmethod
    def _create_services(roster_file: Optional[str]) -> dict[str, Service]:
        configuration_service = ConfigurationService()
        roster_service = RosterService(roster_file)
        matchmaking_service = MatchmakingService(
            roster_service,
            MatchmakingState(),
        )
        return {
            service.service_name: service
            for service in (
                configuration_service,
                roster_service,
                matchmaking_service,
            )
        }

    async def start_services(self) -> None:
        """
        Initialize services one after the other. Later services depend on
        earlier ones being ready, e.g. the matchmaker needs the roster.
        """
        async with self._start_lock:
            if self.started:
                return

            num_services = len(self.services)
            self._logger.debug("Initializing %s services", num_services)

            for service in self.services.values():
                start = time.perf_counter()
                await service.initialize()
                self._logger.log(
                    TRACE,
                    "%s initialized in %0.2f seconds",
                    service.__class__.__name__,
                    time.perf_counter() - start
                )

            self._logger.debug("Initialized %s services", num_services)

            self.started = True

    async def shutdown(self):
        self._logger.info("Initiating full shutdown")

        await map_suppress(
            lambda service: service.shutdown(),
            self.services.values(),
            logger=self._logger,
            msg="when shutting down service "
        )

        self.started = False
