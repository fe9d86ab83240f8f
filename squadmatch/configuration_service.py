"""
Periodic hot reload of the configuration file
"""

import asyncio

import squadmatch.metrics as metrics

from .config import config
from .core import Service
from .decorators import with_logger
from .exceptions import ConfigurationError
from .metrics import ConfigRefresh

# Seconds to wait after an unexpected failure before trying again
ERROR_BACKOFF = 60


@with_logger
class ConfigurationService(Service):
    """
    Reloads the configuration store every `CONFIGURATION_REFRESH_TIME`
    seconds. A file with invalid tuning values is rejected as a whole and the
    values already in effect stay in place.
    """

    def __init__(self) -> None:
        self._store = config
        self._task = None

    async def initialize(self) -> None:
        self._task = asyncio.create_task(self._worker_loop())
        self._logger.info("Configuration service initialized")

    async def _worker_loop(self) -> None:
        while True:
            await asyncio.sleep(self._store.CONFIGURATION_REFRESH_TIME)
            if not self.refresh():
                await asyncio.sleep(ERROR_BACKOFF)

    def refresh(self) -> bool:
        """
        Reload the configuration once.

        # Returns
        `False` only for unexpected errors. A rejected file counts as handled.
        """
        self._logger.debug("Refreshing configuration variables")
        try:
            self._store.refresh(validate=True)
        except ConfigurationError as e:
            self._logger.warning(
                "Rejected configuration, invalid value for %s: %s",
                e.key, e.message
            )
            metrics.config_refreshes.labels(ConfigRefresh.INVALID).inc()
            return True
        except Exception:
            self._logger.exception("Error while refreshing config")
            metrics.config_refreshes.labels(ConfigRefresh.ERROR).inc()
            return False

        metrics.config_refreshes.labels(ConfigRefresh.APPLIED).inc()
        return True

    async def shutdown(self) -> None:
        if self._task is not None:
            self._logger.info("Configuration service stopping.")
            self._task.cancel()
        self._task = None
