"""Detached asyncio tasks that outlive the request that started them."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Coroutine

_logger = logging.getLogger("publish")

FailureHandler = Callable[[BaseException], Awaitable[None]]


class BackgroundTaskRunner:
    """Spawns fire-and-forget tasks and keeps them referenced until done.

    A task that raises hands its exception to ``on_failure``; that handler is
    the only error channel, so it must record the failure somewhere durable.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def active(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine,
        on_failure: FailureHandler | None = None,
        name: str | None = None,
    ) -> asyncio.Task:
        task = asyncio.create_task(self._guard(coro, on_failure, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(
        self,
        coro: Coroutine,
        on_failure: FailureHandler | None,
        name: str | None,
    ) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            _logger.error(f"Background task {name or '?'} failed: {e}")
            if on_failure is None:
                raise
            try:
                await on_failure(e)
            except Exception as handler_error:
                _logger.exception(f"Failure handler for {name or '?'} raised: {handler_error}")

    async def join(self) -> None:
        """Wait for every task spawned so far (tests and shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
