"""Deferred auto-advance of quiz cards."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple

from hskdeck.config import settings

logger = logging.getLogger(__name__)

AdvanceCallback = Callable[[int, int], Awaitable[None]]


class AdvanceScheduler:
    """Runs a callback once the result of a quiz card has been shown for a while.

    Each task is keyed by the session generation and card position it was
    created for, and the callback receives both so a stale firing can be
    recognised by the session.
    """

    def __init__(self, delay: Optional[float] = None):
        self.delay = settings.quiz.auto_advance_delay if delay is None else delay
        self.tasks: Dict[Tuple[int, int], asyncio.Task] = {}

    def schedule(self, generation: int, position: int, callback: AdvanceCallback) -> asyncio.Task:
        """Schedule `callback(generation, position)` after the delay."""
        key = (generation, position)
        previous = self.tasks.get(key)
        if previous is not None and not previous.done():
            logger.debug(f"Advance already pending for generation {generation}, card {position}")
            return previous
        task = asyncio.create_task(self._run(key, callback))
        self.tasks[key] = task
        return task

    async def _run(self, key: Tuple[int, int], callback: AdvanceCallback) -> None:
        try:
            await asyncio.sleep(self.delay)
            await callback(*key)
        except asyncio.CancelledError:
            logger.debug(f"Advance {key} cancelled")
            raise
        except Exception as e:
            logger.error(f"Auto-advance {key} failed: {e}")
        finally:
            if self.tasks.get(key) is asyncio.current_task():
                del self.tasks[key]

    def pending(self) -> int:
        return sum(1 for task in self.tasks.values() if not task.done())

    def cancel(self, generation: int, position: int) -> bool:
        task = self.tasks.pop((generation, position), None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def stop(self) -> None:
        """Cancel all pending advances."""
        tasks = list(self.tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.tasks.clear()
