"""Politeness delay between consecutive page requests of one harvest."""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from harvester.core.exceptions import Cancelled

T = TypeVar("T")


class PolitenessDelay:
    """Fixed pause between page requests to one storefront.

    A harvest issues one request at a time and waits delay_ms after each
    page before asking for the next one, so upstream rate limiting and
    anti-bot defenses are not tripped. The wait is measured from the end of
    the previous page, and is skipped for the first request.
    """

    def __init__(self, delay_ms: int, sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        """Initialize the delay.

        Args:
            delay_ms: Milliseconds to wait between pages (0 disables)
            sleep: Sleep coroutine, injectable for tests (default asyncio.sleep)
        """
        self.delay_ms = max(0, int(delay_ms))
        self._sleep = sleep or asyncio.sleep
        self._last_page_at: Optional[float] = None

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    def mark(self) -> None:
        """Record that a page just finished."""
        self._last_page_at = time.monotonic()

    async def wait(self, cancel_event: Optional[asyncio.Event] = None) -> None:
        """Sleep out the remainder of the delay since the last page.

        Raises:
            Cancelled: If cancel_event is set before or during the wait
        """
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled()
        if self._last_page_at is None or self.delay_ms == 0:
            return

        remaining = self.delay_seconds - (time.monotonic() - self._last_page_at)
        if remaining <= 0:
            return

        if cancel_event is None:
            await self._sleep(remaining)
            return

        await run_cancellable(self._sleep(remaining), cancel_event)


async def run_cancellable(awaitable: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
    """Await something, aborting it as soon as cancel_event is set.

    Raises:
        Cancelled: If cancel_event fires first
    """
    if cancel_event is None:
        return await awaitable
    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise Cancelled()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()

    task.cancel()
    try:
        await task
    except (asyncio.CancelledError, Exception):
        # The aborted request's outcome is irrelevant once cancelled
        pass
    raise Cancelled()
