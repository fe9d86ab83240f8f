import asyncio
from unittest import mock

import pytest

from squadmatch.config import ConfigurationStore
from squadmatch.configuration_service import ConfigurationService
from squadmatch.exceptions import ConfigurationError
from tests.conftest import DATA_DIR
from tests.utils import fast_forward


@pytest.fixture
def store(monkeypatch):
    monkeypatch.delenv("CONFIGURATION_FILE", raising=False)
    return ConfigurationStore()


def use_file(monkeypatch, name):
    monkeypatch.setenv("CONFIGURATION_FILE", str(DATA_DIR / name))


def test_defaults_are_valid(store):
    store.validate()

    assert store.TEAM_BUILD_TEAM_SIZES == [5, 3]
    assert store.TEAM_BUILD_SINGLE_USER_TEAM_THRESHOLD == 60


def test_refresh_loads_file(store, monkeypatch):
    use_file(monkeypatch, "test_conf.yaml")

    store.refresh()

    assert store.TEAM_BUILD_INTERVAL == 5
    assert store.TEAM_BUILD_TEAM_SIZES == [3]
    assert store.MATCH_BUILD_MIN_SCORE_TOLERANCE == 75
    # Keys missing from the file fall back to the defaults
    assert store.MATCH_BUILD_INTERVAL == 2


def test_refresh_file_not_found(store, monkeypatch, caplog):
    use_file(monkeypatch, "nonexistent_conf.yaml")

    store.refresh()

    assert store.TEAM_BUILD_INTERVAL == 1
    assert "No configuration file found" in caplog.text


def test_refresh_empty_file(store, monkeypatch):
    use_file(monkeypatch, "empty.yaml")

    store.refresh()

    assert store.TEAM_BUILD_INTERVAL == 1


def test_refresh_with_invalid_file_keeps_values(store, monkeypatch):
    use_file(monkeypatch, "invalid_conf.yaml")

    with pytest.raises(ConfigurationError) as e:
        store.refresh(validate=True)

    assert e.value.key == "TEAM_BUILD_EXPANSION_AGGRESSIVENESS"
    assert store.TEAM_BUILD_EXPANSION_AGGRESSIVENESS == 100


def test_invalid_file_without_validation(store, monkeypatch):
    use_file(monkeypatch, "invalid_conf.yaml")
    store.refresh()

    assert store.TEAM_BUILD_EXPANSION_AGGRESSIVENESS is None
    with pytest.raises(ConfigurationError):
        store.validate()


@pytest.mark.parametrize("key", (
    "TEAM_BUILD_INTERVAL",
    "MATCH_BUILD_INTERVAL",
    "TEAM_BUILD_MIN_SCORE_TOLERANCE",
    "MATCH_BUILD_EXPANSION_AGGRESSIVENESS",
))
@pytest.mark.parametrize("value", (None, 0, -5, "fast", True))
def test_validate_rejects_bad_tuning_values(store, key, value):
    setattr(store, key, value)

    with pytest.raises(ConfigurationError) as e:
        store.validate()

    assert e.value.key == key


@pytest.mark.parametrize("sizes", (None, [], [4], [5, 2], "5"))
def test_validate_rejects_bad_team_sizes(store, sizes):
    store.TEAM_BUILD_TEAM_SIZES = sizes

    with pytest.raises(ConfigurationError) as e:
        store.validate()

    assert e.value.key == "TEAM_BUILD_TEAM_SIZES"


def test_validate_accepts_fractional_values(store):
    store.TEAM_BUILD_INTERVAL = 0.5

    store.validate()


def test_validate_values_argument(store):
    values = {key: getattr(store, key) for key in vars(store) if key.isupper()}
    values["MATCH_BUILD_MIN_SCORE_TOLERANCE"] = -1

    with pytest.raises(ConfigurationError):
        store.validate(values)
    # The store itself is untouched
    store.validate()


def test_callback_on_change(store, monkeypatch):
    callback = mock.Mock()
    store.register_callback("team_build_interval", callback)

    store.refresh()
    callback.assert_not_called()

    use_file(monkeypatch, "test_conf.yaml")
    store.refresh()
    callback.assert_called_once()

    store.refresh()
    callback.assert_called_once()


@pytest.mark.asyncio
async def test_async_callback_on_change(store, monkeypatch):
    callback = mock.AsyncMock()
    store.register_callback("TEAM_BUILD_TEAM_SIZES", callback)

    use_file(monkeypatch, "test_conf.yaml")
    store.refresh()
    await asyncio.sleep(0)

    callback.assert_awaited_once()


@pytest.mark.asyncio
@fast_forward(10)
async def test_configuration_service_refreshes_periodically():
    service = ConfigurationService()
    service._store = mock.Mock(CONFIGURATION_REFRESH_TIME=1)

    await service.initialize()
    await asyncio.sleep(2.5)
    await service.shutdown()

    assert service._store.refresh.call_count == 2
    service._store.refresh.assert_called_with(validate=True)


@pytest.mark.asyncio
@fast_forward(100)
async def test_configuration_service_backs_off_after_errors(caplog):
    service = ConfigurationService()
    service._store = mock.Mock(CONFIGURATION_REFRESH_TIME=1)
    service._store.refresh.side_effect = OSError("disk on fire")

    await service.initialize()
    await asyncio.sleep(1.5)
    assert "Error while refreshing config" in caplog.text

    await asyncio.sleep(30)
    assert service._store.refresh.call_count == 1

    await asyncio.sleep(31)
    await service.shutdown()

    assert service._store.refresh.call_count == 2


@pytest.mark.asyncio
@fast_forward(10)
async def test_configuration_service_rejects_invalid_file(caplog):
    service = ConfigurationService()
    service._store = mock.Mock(CONFIGURATION_REFRESH_TIME=1)
    service._store.refresh.side_effect = ConfigurationError(
        "TEAM_BUILD_INTERVAL", "missing required value"
    )

    await service.initialize()
    await asyncio.sleep(2.5)
    await service.shutdown()

    # No back off, the next refresh happens on schedule
    assert service._store.refresh.call_count == 2
    assert (
        "Rejected configuration, invalid value for TEAM_BUILD_INTERVAL: "
        "missing required value"
    ) in caplog.messages
    assert "Error while refreshing config" not in caplog.text


def test_configuration_service_keeps_values_of_invalid_file(store, monkeypatch):
    service = ConfigurationService()
    service._store = store
    use_file(monkeypatch, "invalid_conf.yaml")

    assert service.refresh() is True
    assert store.TEAM_BUILD_EXPANSION_AGGRESSIVENESS == 100

    use_file(monkeypatch, "test_conf.yaml")
    assert service.refresh() is True
    assert store.TEAM_BUILD_INTERVAL == 5
