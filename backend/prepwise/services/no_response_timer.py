import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

class NoResponseTimer:
    """Single-shot countdown that re-prompts when no answer arrives.

    ``arm`` replaces any previous countdown; each arm fires at most once.
    """

    def __init__(self, on_expire: Callable[[], Awaitable[None]], timeout: float = 10.0):
        self.on_expire = on_expire
        self.timeout = timeout
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._fire)
        logger.debug(f"[TIMER] Armed for {self.timeout}s")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        # The expiry handler may itself re-arm; it must not cancel its own task
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _fire(self) -> None:
        self._handle = None
        logger.info("⏰ [TIMER] No response detected")
        self._task = asyncio.ensure_future(self.on_expire())
        self._task.add_done_callback(self._on_expire_done)

    def _on_expire_done(self, task: asyncio.Task) -> None:
        if task is self._task:
            self._task = None
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ [TIMER] No-response handler failed: {error!r}")
