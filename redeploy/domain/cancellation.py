"""
Cancellation Token

Architectural Intent:
- A single cancellation signal threaded through one deployment run
- Interrupts retry sleeps and service waits immediately
- Parallel copy/verify workers poll it between files, never mid-file
"""

import asyncio

from redeploy.domain.exceptions import OperationCancelledError


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()

    async def sleep(self, seconds: float) -> None:
        """Sleeps for `seconds`, raising OperationCancelledError as soon as cancelled."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelledError()
