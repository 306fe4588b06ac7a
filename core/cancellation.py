"""Cooperative cancellation token threaded through the fetch pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from utils.exceptions import OperationCancelled


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Read side of a cancellation signal.

    Fetch loops poll ``is_cancellation_requested`` between pages and use
    ``race`` to abort the request currently in flight.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def on_cancellation_requested(self, callback: Callable[[], None]) -> None:
        """Register a callback; runs immediately when already cancelled."""
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    async def wait(self) -> None:
        await self._get_event().wait()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless cancellation fires first.

        The pending operation is cancelled and ``OperationCancelled`` is
        raised when the token wins.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise OperationCancelled()

    def _cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                logger.warning("cancellation callback failed: %s", exc)


class CancellationTokenSource:
    """Write side: owns a token and requests its cancellation."""

    def __init__(self) -> None:
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        return self._token

    def cancel(self) -> None:
        self._token._cancel()


def never_cancelled() -> CancellationToken:
    """Token for callers that do not support cancellation."""
    return CancellationToken()
