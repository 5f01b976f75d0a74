"""Cooperative cancellation for a single flow run."""

import asyncio
import time


class CancellationToken:
    """
    One-shot cancellation flag shared by the executor and every handler of a run.

    The executor checks it before each node; long-running handlers await
    ``wait()`` or ``sleep()`` so that an abort interrupts them early.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for ``seconds`` unless cancelled first.

        Returns:
            True if the full duration elapsed, False if cancelled
        """
        deadline = time.monotonic() + max(seconds, 0.0)
        while not self._event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            try:
                await asyncio.wait_for(self._event.wait(), timeout=remaining)
            except TimeoutError:
                # Loop again: the timer may fire a hair early
                continue
        return False
