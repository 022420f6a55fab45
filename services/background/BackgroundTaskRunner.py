"""Fire-and-forget task runner.

Keeps strong references to detached tasks so they are not garbage collected
mid-flight, and logs their failures instead of leaving them unretrieved.
"""

import asyncio
from typing import Any, Coroutine

from shared.helper.HelperConfig import HelperConfig


class BackgroundTaskRunner:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Start `coro` detached from the caller.

        Args:
            coro: The coroutine to run.
            name (str): Task name used in logs.

        Returns:
            asyncio.Task: The running task, mostly useful in tests.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        self.logging.debug("Background task %s started.", name)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.logging.debug("Background task %s was cancelled.", task.get_name())
            return
        error = task.exception()
        if error is not None:
            self.logging.error("Background task %s failed: %s", task.get_name(), error, exc_info=error)

    def pending(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for all currently running tasks, e.g. in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every pending task and wait until they are gone."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logging.info("Cancelled %d background task(s).", len(tasks))
