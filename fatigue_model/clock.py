"""
Clock abstraction shared by every detector and loop.

Detectors never read the wall clock themselves; they receive ``now`` from
a clock so tests can drive timing with a controllable one.
"""

import asyncio
import time


class SystemClock:
    """Wall clock (epoch seconds) with an asyncio-friendly sleep."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

