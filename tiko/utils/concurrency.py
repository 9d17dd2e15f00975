"""Concurrency helpers for fan-out to event sources and paced batch jobs.

1. **throttled_gather** -- ``asyncio.gather`` with a semaphore around each
   awaitable.  The event service uses it to query every configured
   source at once without opening unbounded connections.

2. **paced** -- async iterator that yields items with a fixed pause
   between them.  Maintenance jobs walk the artist collection with it so
   Spotify sees at most one request per ``delay`` seconds.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Awaitable, Iterable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  A fresh semaphore of
        size 4 is used when omitted.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(4)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def paced(
    items: Iterable[_T],
    delay: float,
    stop: asyncio.Event | None = None,
) -> AsyncIterator[_T]:
    """Yield ``items`` one at a time, sleeping ``delay`` seconds between them.

    No sleep happens before the first item or after the last.  When
    ``stop`` is set, iteration ends before the next item is yielded.
    """
    first = True
    for item in items:
        if stop is not None and stop.is_set():
            return
        if not first and delay > 0:
            await asyncio.sleep(delay)
            if stop is not None and stop.is_set():
                return
        first = False
        yield item
