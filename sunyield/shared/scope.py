"""View-scoped task ownership.

A view spawns its background requests through a ``ViewScope``. Leaving the
scope cancels whatever is still in flight, so completion handlers never run
against a view that has been closed.
"""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

logger = structlog.get_logger()


class ViewScope:
    def __init__(self, name: str = "view") -> None:
        self.name = name
        self._tasks: set[asyncio.Task] = set()
        self._cleanups: list[Callable[[], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        if self._closed:
            coro.close()
            raise RuntimeError(f"scope {self.name!r} is closed")
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` when the scope closes (at once if already closed)."""
        if self._closed:
            callback()
            return
        self._cleanups.append(callback)

    async def wait(self) -> None:
        """Wait for every task spawned so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("view_scope_cancelled", scope=self.name, cancelled=len(pending))
        cleanups, self._cleanups = self._cleanups, []
        for callback in cleanups:
            callback()

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
