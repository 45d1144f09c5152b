import asyncio
from typing import Awaitable, Optional, Set

from fastapi import Request

from dietcoach.utils.logger import get_logger

logger = get_logger("background")


class BackgroundTaskRunner:
    """
    Runs fire-and-forget coroutines on the event loop.

    Every job gets its own error boundary: a failing job is logged and
    dropped, it never reaches the request that scheduled it. The runner
    keeps strong references to pending tasks so they are not garbage
    collected mid-flight, and drains them on shutdown.
    """

    def __init__(self, shutdown_timeout: float = 10.0):
        self.shutdown_timeout = shutdown_timeout
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: Optional[str] = None) -> Optional[asyncio.Task]:
        if self._closed:
            logger.warning(f"Runner is shut down, dropping job {name or coro!r}")
            coro.close()
            return None

        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Awaitable, name: Optional[str]):
        try:
            return await coro
        except asyncio.CancelledError:
            logger.info(f"Background job {name} cancelled")
            raise
        except Exception as e:
            logger.exception(f"Background job {name} failed: {e}")
            return None

    async def drain(self):
        """Wait until every job scheduled so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        self._closed = True
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} background jobs")
        try:
            await asyncio.wait_for(self.drain(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cancelling {len(self._tasks)} background jobs after timeout")
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def get_task_runner(request: Request) -> BackgroundTaskRunner:
    return request.app.state.task_runner
