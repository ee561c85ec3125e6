"""
Tk / asyncio bridge.

Runs an asyncio event loop inside the Tk main loop: every few
milliseconds ``after()`` lets the loop process whatever is ready and then
hands control back to Tk.  Widgets and coroutines therefore share one
thread, and views never need ``after(0, ...)`` to get back onto the UI
thread.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

import customtkinter as ctk

from authshell.logger import StructuredLogger

T = TypeVar("T")


class AsyncTkBridge:
    """Pumps *loop* from *root*'s Tk event loop.

    Parameters
    ----------
    root:
        The application window.
    loop:
        A loop that is not running anywhere else.
    logger:
        Structured logger for failures of spawned tasks.
    interval_ms:
        Delay between pumps.
    """

    def __init__(
        self,
        root: ctk.CTk,
        loop: asyncio.AbstractEventLoop,
        logger: StructuredLogger,
        interval_ms: int = 20,
    ) -> None:
        self._root = root
        self._loop = loop
        self._logger = logger
        self._interval_ms = interval_ms
        self._job: Optional[str] = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def start(self) -> None:
        if self._job is None:
            self._job = self._root.after(self._interval_ms, self._pump)

    def stop(self) -> None:
        if self._job is not None:
            self._root.after_cancel(self._job)
            self._job = None

    def spawn(self, coro: Coroutine[Any, Any, T], name: str = "") -> asyncio.Task[T]:
        """Schedule *coro*; failures are logged, never raised into Tk."""
        task = self._loop.create_task(coro, name=name or None)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _pump(self) -> None:
        self._loop.call_soon(self._loop.stop)
        self._loop.run_forever()
        self._job = self._root.after(self._interval_ms, self._pump)

    def _on_task_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "Background task %s failed: %s", task.get_name(), exc,
                exc_info=exc,
                extra={"event": "TASK_FAILED"},
            )
