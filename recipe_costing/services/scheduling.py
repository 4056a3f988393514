"""
Scheduling primitives for the ingredient editing session.

- Scheduler: cancellable delayed callbacks (asyncio event loop by default)
- Debouncer: trailing-edge coalescing of rapid triggers; the last call wins
- LatestRequest: cancel-then-replace runner for reloads; a superseded
  request is cancelled and never returns a result to its caller

Everything here runs on a single event loop thread. No locks.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from .exceptions import StaleRequestDiscarded

logger = logging.getLogger(__name__)


class Handle(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    """Runs a callback after a delay; the returned handle cancels it."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> Handle:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class Debouncer:
    """
    Trailing-edge debounce.

    Each trigger() cancels the pending call and schedules a new one with the
    latest arguments, so only the last trigger in a burst runs.

    Example:
        debouncer = Debouncer(AsyncioScheduler(), 0.3, recompute_cost)
        debouncer.trigger(line_id)   # cancelled by the next keystroke
        debouncer.trigger(line_id)   # runs 0.3s later
    """

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[..., Any]):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self._handle: Optional[Handle] = None
        self._args: tuple = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args) -> None:
        """Schedule the callback, replacing any call still pending."""
        if self._handle is not None:
            self._handle.cancel()
        self._args = args
        self._handle = self.scheduler.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        self.callback(*args)

    def flush(self) -> bool:
        """
        Run the pending call now instead of waiting for the delay.

        Returns:
            True if a call was pending
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._args = ()


class LatestRequest:
    """
    Cancel-then-replace runner.

    Every run() starts a new generation and cancels the task of the previous
    one. A caller whose request was superseded gets StaleRequestDiscarded
    instead of a result, so stale data can never be applied.
    """

    def __init__(self):
        self.generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Cancel the in-flight request and invalidate its generation."""
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def run(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run factory() as the latest request.

        Raises:
            StaleRequestDiscarded: If a newer request replaced this one
        """
        self.cancel()
        generation = self.generation
        task = asyncio.ensure_future(factory())
        self._task = task

        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self.generation:
                logger.debug(f"Request generation {generation} cancelled by a newer request")
                raise StaleRequestDiscarded(generation)
            raise
        finally:
            if self._task is task:
                self._task = None

        if generation != self.generation:
            raise StaleRequestDiscarded(generation)
        return result
