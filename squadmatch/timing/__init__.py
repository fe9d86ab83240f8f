"""
Helpers for executing async functions on a timer
"""

import time

from .timer import Timer, at_interval


def timestamp_now() -> float:
    """Current unix time in seconds, used for queue and wait times"""
    return time.time()


__all__ = (
    "Timer",
    "at_interval",
    "timestamp_now",
)
