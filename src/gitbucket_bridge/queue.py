import asyncio
from typing import Awaitable, Callable

from sanic.log import logger

from gitbucket_bridge import metrics

Task = Callable[[], Awaitable[None]]


class SerialQueue:
    """Runs queued tasks one at a time in submission order.

    The worker is started on the first ``execute`` call, so the queue has to be
    fed from a running event loop. A failing task is logged and the worker
    moves on to the next one.
    """

    def __init__(self, name: str = "gitbucket-push"):
        self.name = name
        self._queue: asyncio.Queue[Task] = asyncio.Queue()
        self._worker: asyncio.Task | None = None

    def execute(self, task: Task):
        self._queue.put_nowait(task)
        metrics.queued_tasks.inc()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        while True:
            task = await self._queue.get()
            metrics.queued_tasks.dec()
            try:
                await task()
            except Exception as e:
                logger.error("Queued task failed on %s: %s", self.name, e, exc_info=e)
            finally:
                self._queue.task_done()

    def __len__(self) -> int:
        return self._queue.qsize()

    async def join(self):
        await self._queue.join()

    async def close(self, timeout: float | None = None):
        """Wait up to ``timeout`` seconds for queued tasks, then stop the worker."""
        if self._worker is None:
            return
        if not self._worker.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Dropping %d queued task(s) on %s", len(self), self.name
                )
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
