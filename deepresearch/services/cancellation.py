from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Awaitable, TypeVar

from deepresearch.exceptions import ResearchCancelled

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation shared by every call of one research run.

    ``run`` races an awaitable against cancellation so an in-flight adapter,
    fetch or completion call is aborted as soon as ``cancel`` is requested.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Research stopped by user") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ResearchCancelled(self.reason or "cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _pending = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
                with suppress(asyncio.CancelledError):
                    await work

        if work in done and not work.cancelled():
            return work.result()
        self.raise_if_cancelled()
        # work was cancelled from outside the token
        raise asyncio.CancelledError()

    async def sleep(self, seconds: float) -> None:
        """Pause for ``seconds`` unless cancellation arrives first."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        self.raise_if_cancelled()
