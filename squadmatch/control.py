"""
Tiny http server for triggering matchmaking and introspecting state
"""

import http
import json
from typing import Optional

from aiohttp import web

from .config import config
from .decorators import with_logger
from .matchmaking_service import MatchmakingService
from .participants import optional_count
from .roster_service import RosterService


def to_dict_list(items):
    return [item.to_dict() for item in items]


def json_response(data, status: int = http.HTTPStatus.OK) -> web.Response:
    return web.json_response(data, status=status)


def _optional_int(request: web.Request, key: str) -> Optional[int]:
    value = request.query.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise web.HTTPBadRequest(reason=f"{key} must be an integer")


@with_logger
class ControlServer:
    def __init__(
        self,
        lobby_server: "ServerInstance",
        host: str,
        port: int
    ):
        self.lobby_server = lobby_server
        self.matchmaking_service: MatchmakingService = \
            lobby_server.services["matchmaking_service"]
        self.roster_service: RosterService = \
            lobby_server.services["roster_service"]
        self.host = host
        self.port = port

        self.app = web.Application()
        self.runner = web.AppRunner(self.app)

        self.app.add_routes([
            web.get("/users", self.users),
            web.get("/matchmaking/users/queue", self.user_queue),
            web.post("/matchmaking/users", self.enqueue_user),
            web.delete("/matchmaking/users/{name}", self.remove_user),
            web.post("/matchmaking/team", self.build_team),
            web.get("/matchmaking/team", self.teams),
            web.get("/matchmaking/team/queue", self.team_queue),
            web.get("/matchmaking/team/{bucket_id}", self.team),
            web.post("/matchmaking/matches", self.build_match),
            web.get("/matchmaking/matches", self.matches),
            web.get("/matchmaking/matches/{match_id}", self.match),
            web.delete("/matchmaking/matches/{match_id}", self.clear_match),
            # Healthcheck endpoints
            web.get("/ready", self.ready)
        ])

    async def start(self) -> None:
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        self._logger.info(
            "Control server listening on http://%s:%s", self.host, self.port
        )

    async def shutdown(self) -> None:
        await self.runner.cleanup()

    async def users(self, request):
        users = self.roster_service.get_by_win_range(
            win_low=_optional_int(request, "win_low"),
            win_high=_optional_int(request, "win_high"),
        )
        return json_response(users)

    async def user_queue(self, request):
        queue = await self.matchmaking_service.get_user_queue()
        return json_response({
            "count": len(queue),
            "users": to_dict_list(queue),
        })

    async def enqueue_user(self, request):
        try:
            body = await request.json()
        except json.JSONDecodeError:
            raise web.HTTPBadRequest(reason="Body must be a JSON object")

        if not isinstance(body, dict) or not body.get("name"):
            raise web.HTTPBadRequest(reason="Missing participant name")

        try:
            wins = optional_count(body, "wins")
            losses = optional_count(body, "losses")
        except ValueError as e:
            raise web.HTTPBadRequest(reason=str(e))

        participant = await self.matchmaking_service.enqueue_user({
            "name": str(body["name"]),
            "wins": wins,
            "losses": losses,
        })
        if participant is None:
            raise web.HTTPConflict(reason="Participant is already queued")

        return json_response(participant.to_dict(), http.HTTPStatus.CREATED)

    async def remove_user(self, request):
        name = request.match_info["name"]
        participant = await self.matchmaking_service.remove_user_by_name(name)
        if participant is None:
            raise web.HTTPNotFound()
        return json_response(participant.to_dict())

    async def build_team(self, request):
        bucket_id = await self.matchmaking_service.run_team_build_cycle()
        if bucket_id is None:
            return web.Response(status=http.HTTPStatus.NO_CONTENT)

        bucket = await self.matchmaking_service.get_team_bucket(bucket_id)
        return json_response(bucket.to_dict())

    async def teams(self, request):
        teams = await self.matchmaking_service.get_team_bucket()
        return json_response({
            "count": len(teams),
            "teams": to_dict_list(teams),
        })

    async def team(self, request):
        bucket = await self.matchmaking_service.get_team_bucket(
            request.match_info["bucket_id"]
        )
        if bucket is None:
            raise web.HTTPNotFound()
        return json_response(bucket.to_dict())

    async def team_queue(self, request):
        teams = await self.matchmaking_service.get_team_queue()
        return json_response({
            "count": len(teams),
            "teams": to_dict_list(teams),
        })

    async def build_match(self, request):
        match_id = await self.matchmaking_service.run_match_build_cycle()
        if match_id is None:
            return web.Response(status=http.HTTPStatus.NO_CONTENT)

        match = await self.matchmaking_service.get_match(match_id)
        return json_response(match.to_dict())

    async def matches(self, request):
        matches = await self.matchmaking_service.get_match()
        return json_response({
            "count": len(matches),
            "matches": to_dict_list(matches),
        })

    async def match(self, request):
        match = await self.matchmaking_service.get_match(
            request.match_info["match_id"]
        )
        if match is None:
            raise web.HTTPNotFound()
        return json_response(match.to_dict())

    async def clear_match(self, request):
        match = await self.matchmaking_service.clear_match(
            request.match_info["match_id"]
        )
        if match is None:
            raise web.HTTPNotFound()
        return json_response(match.to_dict())

    async def ready(self, request):
        code_map = {
            True: http.HTTPStatus.OK.value,
            False: http.HTTPStatus.SERVICE_UNAVAILABLE.value
        }

        return web.Response(
            status=code_map[self.lobby_server.started]
        )


async def run_control_server(lobby_server: "ServerInstance") -> ControlServer:
    """
    Initialize the http control server
    """
    host = config.CONTROL_SERVER_HOST
    port = config.CONTROL_SERVER_PORT

    ctrl_server = ControlServer(lobby_server, host, port)
    await ctrl_server.start()

    return ctrl_server
