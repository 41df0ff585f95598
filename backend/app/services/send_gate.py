"""
Send Gate - process-wide spacing between outgoing emails

The SMTP relay throttles the account, so every message waits until at
least ``min_interval`` seconds have passed since the previous one started.
Callers queue on a single lock; the gate records the start time of each
send, not its completion.

The clock is injectable so tests can advance time without sleeping.
"""

import asyncio
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class SendGate:
    def __init__(self, min_interval: float, clock: Optional[Clock] = None):
        self.min_interval = min_interval
        self.clock = clock or SystemClock()
        self._last_send: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def last_send(self) -> Optional[float]:
        return self._last_send

    def seconds_until_open(self) -> float:
        if self._last_send is None:
            return 0.0
        return max(0.0, self._last_send + self.min_interval - self.clock.monotonic())

    async def wait(self) -> float:
        """Block until the next send may start; returns the time waited"""
        async with self._lock:
            delay = self.seconds_until_open()
            if delay > 0:
                await self.clock.sleep(delay)
            self._last_send = self.clock.monotonic()
            return delay
