"""Lifecycle registry for background asyncio tasks (timers, stream readers)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Track named and anonymous background tasks so they can be cancelled."""

    def __init__(self) -> None:
        self._named: dict[str, asyncio.Task[Any]] = {}
        self._anonymous: set[asyncio.Task[Any]] = set()

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        """Register a task, optionally under a unique name.

        A named task replaces the previous holder of that name without
        cancelling it; use ``replace`` for cancel-and-swap semantics.
        """
        if name is not None:
            self._named[name] = task
            task.add_done_callback(lambda done: self._forget(name, done))
        else:
            self._anonymous.add(task)
            task.add_done_callback(self._anonymous.discard)
        task.add_done_callback(self._log_exception)

    def replace(self, name: str, task: asyncio.Task[Any]) -> None:
        """Cancel any running task registered as ``name`` and register ``task``."""
        previous = self._named.get(name)
        if previous is not None and not previous.done():
            previous.cancel()
        self.add(task, name=name)

    def call_later(self, name: str, delay: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` after ``delay`` seconds unless rescheduled first.

        Requires a running event loop; silently skips otherwise so sync callers
        (CLI, tests without a loop) keep working.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug(
                "task.timer.no_loop",
                extra={"event": "task.timer.no_loop", "task": name},
            )
            return

        async def _timer() -> None:
            await asyncio.sleep(delay)
            callback()

        self.replace(name, loop.create_task(_timer()))

    def _forget(self, name: str, task: asyncio.Task[Any]) -> None:
        if self._named.get(name) is task:
            del self._named[name]

    def _log_exception(self, task: asyncio.Task[Any]) -> None:
        """Log unhandled exceptions from background tasks so they are not lost."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "task.exception",
                extra={
                    "event": "task.exception",
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )

    def get(self, name: str) -> asyncio.Task[Any] | None:
        """Return the named task or ``None`` if not registered."""
        return self._named.get(name)

    async def cancel(self, name: str) -> None:
        """Cancel a named task and await its completion."""
        task = self._named.pop(name, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def cancel_all(self) -> None:
        """Cancel every tracked task and await them all."""
        pending = [t for t in (*self._named.values(), *self._anonymous) if not t.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._named.clear()
        self._anonymous.clear()
