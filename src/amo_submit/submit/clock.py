"""
Time source for the pollers.

Pollers never call asyncio directly for timing; they go through a Clock so tests
can substitute virtual time and assert exactly when polls happen.
"""

import asyncio
from typing import Awaitable, Protocol, TypeVar

T = TypeVar("T")


class Clock(Protocol):
    """Monotonic time, cooperative sleeping and deadline enforcement."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...

    async def wait_for(self, awaitable: Awaitable[T], timeout: float) -> T:
        """Await `awaitable`, raising asyncio.TimeoutError after `timeout` seconds."""
        ...


class AsyncioClock:
    """Clock backed by the running asyncio event loop."""

    def monotonic(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))

    async def wait_for(self, awaitable: Awaitable[T], timeout: float) -> T:
        return await asyncio.wait_for(awaitable, timeout=max(0.0, timeout))
