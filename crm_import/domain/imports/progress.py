"""
Synthetic progress for imports.

The import RPC answers once, with no intermediate signal, so progress is
estimated: seeded low, stepped on a timer up to a ceiling, and only snapped
to 100 once the response has been observed.
"""
import asyncio
import logging
from typing import Callable, Optional

from crm_import.core.config import settings

logger = logging.getLogger(__name__)

COMPLETE = 100


class ProgressEstimator:
    """
    Cancellable timer that advances a progress percentage while a request is outstanding.

    Use as an async context manager around the request; the timer task is
    cancelled on exit whether or not ``complete()`` was called.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        step: Optional[int] = None,
        ceiling: Optional[int] = None,
        interval_seconds: Optional[float] = None,
        on_change: Optional[Callable[[int], None]] = None,
    ):
        self.ceiling = min(settings.progress_ceiling if ceiling is None else ceiling, COMPLETE - 1)
        self.seed = min(settings.progress_seed if seed is None else seed, self.ceiling)
        self.step = settings.progress_step if step is None else step
        self.interval_seconds = (
            settings.progress_interval_ms / 1000 if interval_seconds is None else interval_seconds
        )
        self.on_change = on_change
        self._value = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def value(self) -> int:
        return self._value

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set(self, value: int) -> None:
        if value <= self._value:
            return
        self._value = value
        if self.on_change is not None:
            self.on_change(value)

    def start(self) -> None:
        """Seed the value and begin ticking. Must be called from a running event loop."""
        if self.running:
            return
        self._set(self.seed)
        self._task = asyncio.get_running_loop().create_task(self._tick())

    async def _tick(self) -> None:
        while self._value < self.ceiling:
            await asyncio.sleep(self.interval_seconds)
            self._set(min(self._value + self.step, self.ceiling))

    def stop(self) -> None:
        """Cancel the timer without touching the value."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def complete(self) -> None:
        """Stop ticking and report 100; call once the response has arrived."""
        self.stop()
        self._set(COMPLETE)

    async def __aenter__(self) -> "ProgressEstimator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()
