"""Trailing-edge debounce for async callbacks."""
import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_DELAY = 0.3


class Debouncer(Generic[T]):
    """Runs `callback(value)` once no new value has arrived for `delay` seconds.

    Each `submit` cancels the pending run, including one already awaiting
    its callback, so a slow answer to old input never lands after newer input.
    """

    def __init__(
        self,
        callback: Callable[[T], Awaitable[None]],
        delay: float = DEFAULT_DELAY,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._callback = callback
        self._delay = delay
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, value: T) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.create_task(self._run(value))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, value: T) -> None:
        await self._sleep(self._delay)
        await self._callback(value)
