"""
Server config variables
"""

import asyncio
import inspect
import logging
import numbers
import os
from typing import Callable, Optional

import yaml

from .decorators import with_logger
from .exceptions import ConfigurationError

# Logging setup
TRACE = 5
logging.addLevelName(TRACE, "TRACE")
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

# Team sizes the engine knows how to build
VALID_TEAM_SIZES = (1, 3, 5)

# Tuning values that must be present and positive before any cycle runs
REQUIRED_TUNING_KEYS = (
    "TEAM_BUILD_INTERVAL",
    "MATCH_BUILD_INTERVAL",
    "TEAM_BUILD_EXPANSION_AGGRESSIVENESS",
    "TEAM_BUILD_MIN_SCORE_TOLERANCE",
    "TEAM_BUILD_SINGLE_USER_TEAM_THRESHOLD",
    "MATCH_BUILD_EXPANSION_AGGRESSIVENESS",
    "MATCH_BUILD_MIN_SCORE_TOLERANCE",
)


@with_logger
class ConfigurationStore:
    def __init__(self):
        """
        Change default values here.
        """
        self.CONFIGURATION_REFRESH_TIME = 300
        self.LOG_LEVEL = "DEBUG"
        # Whether or not to use uvloop as a drop-in replacement for asyncio's
        # default event loop
        self.USE_UVLOOP = True

        self.CONTROL_SERVER_HOST = "127.0.0.1"
        self.CONTROL_SERVER_PORT = 4000
        self.METRICS_PORT = 8011
        self.ENABLE_METRICS = False
        # How often the queue and pool sizes are logged and exported
        self.STATUS_REPORT_INTERVAL = 2

        # Participant records loaded once at startup. Relative paths are
        # resolved against the working directory.
        self.ROSTER_FILE = "data/users.json"

        # Seconds between two team building attempts
        self.TEAM_BUILD_INTERVAL = 1
        # Seconds between two match building attempts
        self.MATCH_BUILD_INTERVAL = 2

        # Initial tolerance is aggressiveness / seed score, so larger values
        # start the search wider
        self.TEAM_BUILD_EXPANSION_AGGRESSIVENESS = 100
        # Lower bound for the maximum tolerance of a team bucket
        self.TEAM_BUILD_MIN_SCORE_TOLERANCE = 50
        # Seconds a seed may wait before it is placed in a team of one
        self.TEAM_BUILD_SINGLE_USER_TEAM_THRESHOLD = 60
        # Team sizes to attempt, in order of priority
        self.TEAM_BUILD_TEAM_SIZES = [5, 3]

        self.MATCH_BUILD_EXPANSION_AGGRESSIVENESS = 100
        self.MATCH_BUILD_MIN_SCORE_TOLERANCE = 50

        self._defaults = {
            key: value for key, value in vars(self).items() if key.isupper()
        }

        self._callbacks: dict[str, Callable] = {}
        self.refresh()

    def refresh(self, validate: bool = False) -> None:
        """
        Reload values from the configuration file. With `validate`, invalid
        values raise `ConfigurationError` and nothing is applied.
        """
        new_values = self._defaults.copy()

        config_file = os.getenv("CONFIGURATION_FILE")
        if config_file is not None:
            try:
                with open(config_file) as f:
                    new_values.update(yaml.safe_load(f))
            except FileNotFoundError:
                self._logger.warning(
                    "No configuration file found at %s",
                    config_file
                )
            except TypeError:
                self._logger.info(
                    "Configuration file at %s appears to be empty",
                    config_file
                )

        if validate:
            self.validate(new_values)

        triggered_callback_keys = tuple(
            key
            for key in new_values
            if key in self._callbacks
            and hasattr(self, key)
            and getattr(self, key) != new_values[key]
        )

        for key, new_value in new_values.items():
            old_value = getattr(self, key, None)
            if new_value != old_value:
                self._logger.info(
                    "New value for %s: %r -> %r", key, old_value, new_value
                )
            setattr(self, key, new_value)

        for key in triggered_callback_keys:
            self._dispatch_callback(key)

    def validate(self, values: Optional[dict] = None) -> None:
        """
        Check that every matchmaking tuning value is usable. Checks `values`
        if given, otherwise the current configuration.

        # Errors
        Raises `ConfigurationError` for the first offending key.
        """
        if values is None:
            values = {key: getattr(self, key, None) for key in vars(self)}

        for key in REQUIRED_TUNING_KEYS:
            value = values.get(key)
            if value is None:
                raise ConfigurationError(key, "missing required value")
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigurationError(key, f"expected a number, got {value!r}")
            if value <= 0:
                raise ConfigurationError(key, f"must be positive, got {value!r}")

        sizes = values.get("TEAM_BUILD_TEAM_SIZES")
        if not sizes or not isinstance(sizes, (list, tuple)):
            raise ConfigurationError(
                "TEAM_BUILD_TEAM_SIZES", f"expected a list, got {sizes!r}"
            )
        for size in sizes:
            if size not in VALID_TEAM_SIZES:
                raise ConfigurationError(
                    "TEAM_BUILD_TEAM_SIZES",
                    f"team size {size!r} is not one of {VALID_TEAM_SIZES}"
                )

    def register_callback(self, key: str, callback: Callable) -> None:
        self._callbacks[key.upper()] = callback

    def _dispatch_callback(self, key: str) -> None:
        result = self._callbacks[key]()
        if inspect.isawaitable(result):
            asyncio.ensure_future(result)


def set_log_level():
    logger = logging.getLogger()
    logger.setLevel(config.LOG_LEVEL)


config = ConfigurationStore()
config.register_callback("LOG_LEVEL", set_log_level)
