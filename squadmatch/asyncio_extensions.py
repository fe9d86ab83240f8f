"""
Some helper functions for common async tasks
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


async def map_suppress(
    func: Callable[[Any], Awaitable[Any]],
    iterable: Iterable[Any],
    logger: logging.Logger = logger,
    msg: str = ""
) -> list[Optional[BaseException]]:
    """
    Call `func` on every item concurrently. Exceptions are logged, not raised,
    so one failing item does not prevent the others from completing.
    """
    items = list(iterable)
    results = await asyncio.gather(
        *(func(item) for item in items),
        return_exceptions=True
    )
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            logger.error(
                "Unexpected error %s%s", msg, item, exc_info=result
            )
    return [
        result if isinstance(result, BaseException) else None
        for result in results
    ]
