"""Keyed, cancellable delayed tasks used for debouncing.

Scheduling a key cancels that key's pending task, so rapid edits never
stack.  Callbacks may be plain functions or return an awaitable.

Two implementations:

  - ``AsyncioScheduler``: real timers on the running event loop
  - ``ManualScheduler``:  virtual clock advanced explicitly; deterministic,
    used by tests and hosts that drive time themselves
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class Scheduler(ABC):
    """Keyed debounce timers."""

    @abstractmethod
    def schedule(self, key: str, delay_ms: int, callback: Callback) -> None:
        """Run ``callback`` after ``delay_ms``, replacing any pending task for ``key``."""
        ...

    @abstractmethod
    def cancel(self, key: str) -> bool:
        """Cancel the pending task for ``key``; True if one was pending."""
        ...

    @abstractmethod
    def cancel_all(self) -> None:
        ...

    @abstractmethod
    def is_pending(self, key: str) -> bool:
        ...


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler.

    Usage::

        scheduler = ManualScheduler()
        scheduler.schedule("k", 300, fire)
        await scheduler.advance(299)   # nothing runs
        await scheduler.advance(1)     # fire() runs
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._seq = 0
        # key -> (due_ms, seq, callback)
        self._tasks: dict[str, tuple[int, int, Callback]] = {}

    def schedule(self, key: str, delay_ms: int, callback: Callback) -> None:
        self._seq += 1
        self._tasks[key] = (self.now_ms + max(delay_ms, 0), self._seq, callback)

    def cancel(self, key: str) -> bool:
        return self._tasks.pop(key, None) is not None

    def cancel_all(self) -> None:
        self._tasks.clear()

    def is_pending(self, key: str) -> bool:
        return key in self._tasks

    @property
    def pending_keys(self) -> list[str]:
        return sorted(self._tasks)

    async def advance(self, ms: int) -> None:
        """Move the clock forward, running due tasks in (due, schedule) order.

        Tasks scheduled by a callback run in the same call if they fall due
        before the target time.
        """
        target = self.now_ms + ms
        while True:
            due = [(when, seq, key) for key, (when, seq, _) in self._tasks.items() if when <= target]
            if not due:
                break
            when, _, key = min(due)
            _, _, callback = self._tasks.pop(key)
            self.now_ms = when
            result = callback()
            if inspect.isawaitable(result):
                await result
        self.now_ms = target

    async def run_all(self) -> None:
        """Advance until no task is pending."""
        while self._tasks:
            next_due = min(when for when, _, _ in self._tasks.values())
            await self.advance(max(next_due - self.now_ms, 0))


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``.

    Coroutine callbacks run as tasks; :meth:`drain` awaits them.  Failures
    inside a callback are logged, never propagated to the loop.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task] = set()

    def schedule(self, key: str, delay_ms: int, callback: Callback) -> None:
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(
            max(delay_ms, 0) / 1000, self._fire, key, callback
        )

    def _fire(self, key: str, callback: Callback) -> None:
        self._handles.pop(key, None)
        try:
            result = callback()
        except Exception:
            logger.exception("Scheduled task %s failed", key)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scheduled task failed", exc_info=task.exception())

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def is_pending(self, key: str) -> bool:
        return key in self._handles

    async def drain(self) -> None:
        """Wait for every in-flight callback task to finish."""
        while True:
            pending = [task for task in self._running if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
