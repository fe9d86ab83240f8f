"""
This code is a modified version of Gael Pasgrimaud's library `aiocron`.

See the original code here:
https://github.com/gawel/aiocron/blob/e82a53c3f9a7950209cee7b3e493204c1dfc8b12/aiocron/__init__.py

Unlike `aiocron`, a tick is skipped when the previous call of the function is
still running, so one timer never runs its function concurrently with itself.
"""

import asyncio
import functools
import inspect
import logging
from typing import Optional

logger = logging.getLogger(__name__)


async def null_callback(*args):
    return args


def wrap_func(func):
    """wrap in a coroutine"""
    if inspect.iscoroutinefunction(func):
        return func

    @functools.wraps(func)
    async def coro(*args, **kwargs):
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return coro


class Timer(object):
    """Schedules a function to be called asynchronously on a fixed interval"""

    def __init__(self, interval, func=None, args=(), start=False, loop=None):
        self.interval = interval
        if func is not None:
            self.func = func if not args else functools.partial(func, *args)
        else:
            self.func = null_callback
        self.cron = wrap_func(self.func)
        self.auto_start = start
        self.handle = None
        self.task: Optional[asyncio.Task] = None
        self.skipped = 0
        self.loop = loop if loop is not None else asyncio.get_running_loop()
        if start and self.func is not null_callback:
            self.handle = self.loop.call_soon_threadsafe(self.start)

    @property
    def is_running(self) -> bool:
        """Whether the timer is scheduled to fire again"""
        return self.handle is not None

    def start(self):
        """Start scheduling"""
        self.stop()
        self.handle = self.loop.call_later(self.get_delay(), self.call_next)

    def stop(self):
        """Stop scheduling. A call that is already running is not cancelled."""
        if self.handle is not None:
            self.handle.cancel()
        self.handle = None

    def get_delay(self):
        """Return next interval to wait between calls"""
        return self.interval

    def call_next(self):
        """Set next hop in the loop. Call task"""
        if self.handle is not None:
            self.handle.cancel()
        self.handle = self.loop.call_later(self.get_delay(), self.call_next)
        self.call_func()

    def call_func(self, *args, **kwargs):
        """Run the function unless the previous run is still in progress"""
        if self.task is not None and not self.task.done():
            self.skipped += 1
            logger.info(
                "Skipping tick of %r, previous call has not finished", self
            )
            return

        self.task = self.loop.create_task(self.cron(*args, **kwargs))
        self.task.add_done_callback(self.set_result)

    def set_result(self, task: asyncio.Task):
        """Log errors raised by the function. The timer keeps running."""
        if task.cancelled():
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unexpected error in timer %r", self, exc_info=exc
            )

    def __call__(self, func):
        """Used as a decorator"""
        self.func = func
        self.cron = wrap_func(func)
        if self.auto_start:
            self.loop.call_soon_threadsafe(self.start)
        return self

    def __str__(self):
        return f"{self.interval} {getattr(self.func, '__qualname__', self.func)}"

    def __repr__(self):
        return f"<Timer {str(self)}>"


def at_interval(interval, func=None, args=(), start=True, loop=None):
    return Timer(interval, func=func, args=args, start=start, loop=loop)
