import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class Clock:
    """
    Countdown timer driving a session's time budget.

    Runs as an asyncio task and ticks once per `tick_interval` with the
    remaining whole seconds, strictly decreasing. Reaching zero fires the
    expire callbacks exactly once and stops the clock. After `cancel()` returns
    no tick or expire callback fires. Elapsed time is not persisted.
    """

    def __init__(self, *, tick_interval: float = 1.0):
        self.tick_interval = tick_interval
        self._tick_callbacks: List[TickCallback] = []
        self._expire_callbacks: List[ExpireCallback] = []
        self._task: Optional[asyncio.Task] = None
        self._remaining: Optional[int] = None
        self._cancelled = False
        self._expired = False

    # ----- Public API -----

    def on_tick(self, callback: TickCallback) -> None:
        self._tick_callbacks.append(callback)

    def on_expire(self, callback: ExpireCallback) -> None:
        self._expire_callbacks.append(callback)

    def start(self, total_seconds: int) -> None:
        if self._task is not None:
            raise RuntimeError("clock already started")
        self._remaining = max(0, int(total_seconds))
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    @property
    def remaining_seconds(self) -> Optional[int]:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    @property
    def expired(self) -> bool:
        return self._expired

    # ----- Internals -----

    async def _run(self) -> None:
        while self._remaining > 0:
            await asyncio.sleep(self.tick_interval)
            if self._cancelled:
                return
            self._remaining -= 1
            for callback in list(self._tick_callbacks):
                callback(self._remaining)
                if self._cancelled:
                    return
        self._expire()

    def _expire(self) -> None:
        if self._expired or self._cancelled:
            return
        self._expired = True
        logger.debug("clock expired")
        for callback in list(self._expire_callbacks):
            callback()
