"""Restartable single-shot timer for collapsing bursts of input"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Run a coroutine function once input has been quiet for `delay` seconds.

    Arming the timer cancels any previous one that has not fired yet. A
    callback that already fired keeps running; callers discard its result
    themselves if it went stale.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, callback: Callable[..., Awaitable[Any]], *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, callback, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Debounce timer cancelled")

    def _fire(self, callback: Callable[..., Awaitable[Any]], args: tuple) -> None:
        self._handle = None
        task = asyncio.ensure_future(callback(*args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        """Wait for callbacks that already fired to finish"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def settle(self) -> None:
        """Wait until an armed timer has fired and every fired callback finished"""
        while self._handle is not None:
            await asyncio.sleep(self.delay / 4 or 0.01)
        await self.wait()

    async def aclose(self) -> None:
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        await self.wait()
