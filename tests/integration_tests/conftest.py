import pytest
import pytest_asyncio
from aiohttp.test_utils import unused_port

from squadmatch import ServerInstance
from squadmatch.config import config
from squadmatch.control import ControlServer


@pytest.fixture
def quiet_timers(monkeypatch):
    """Push the periodic cycles far enough out that only tests drive them."""
    monkeypatch.setattr(config, "TEAM_BUILD_INTERVAL", 10_000)
    monkeypatch.setattr(config, "MATCH_BUILD_INTERVAL", 10_000)
    monkeypatch.setattr(config, "STATUS_REPORT_INTERVAL", 10_000)


@pytest_asyncio.fixture
async def server_instance(quiet_timers, roster_file):
    instance = ServerInstance("TestInstance", roster_file)
    await instance.start_services()

    yield instance

    await instance.shutdown()


@pytest.fixture
def matchmaking_service(server_instance):
    return server_instance.services["matchmaking_service"]


@pytest_asyncio.fixture
async def control_server(server_instance):
    server = ControlServer(server_instance, "127.0.0.1", unused_port())
    await server.start()

    yield server

    await server.shutdown()
