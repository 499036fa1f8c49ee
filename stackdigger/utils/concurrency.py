"""Shared concurrency primitives for the stack-build fan-out stages.

Every stage of a build (seeds -> containers -> tracks -> enrichment) has the
same shape: dispatch one coroutine per input element, let them finish in any
order, and reassemble the results in *input* order.  ``asyncio.gather``
already preserves input order; the helpers here add bounded concurrency and
a per-call timeout so one slow upstream cannot stall the whole stage.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")

# Default cap on in-flight upstream requests per stage.  NTS and Spotify both
# rate-limit bursts; eight keeps a typical build well under their thresholds.
_DEFAULT_CONCURRENCY = 8


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Each coroutine acquires the semaphore before executing, so at most
    ``semaphore``'s initial value run simultaneously.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore for concurrency control.  A fresh one sized
        ``_DEFAULT_CONCURRENCY`` is created per call when omitted.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(_DEFAULT_CONCURRENCY)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def with_timeout(coro: Awaitable[_T], timeout: float | None) -> _T:
    """Await *coro*, raising :class:`asyncio.TimeoutError` after *timeout* seconds.

    ``None`` or a non-positive timeout disables the limit.
    """
    if timeout is None or timeout <= 0:
        return await coro
    return await asyncio.wait_for(coro, timeout=timeout)
