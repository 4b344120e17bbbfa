"""Single-consumer FIFO queue for paced API calls.

Queued calls run one at a time, in submission order. A pacing coroutine is
awaited before each call; at most one drain task exists per queue.
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Tuple

from coffeebreak.domain.models.limits import QueueState

logger = logging.getLogger(__name__)


@dataclass
class QueuedCall:
    """A pending call and the future its caller awaits."""
    func: Callable[..., Any]
    args: Tuple[Any, ...]
    kwargs: Dict[str, Any]
    future: "asyncio.Future[Any]"
    sequence: int = 0


class CallQueue:
    """Runs submitted calls strictly in FIFO order behind a pacing step."""

    def __init__(
        self,
        pace: Callable[[], Awaitable[Any]],
        name: str = "calls",
        release: Optional[Callable[[], Any]] = None,
    ):
        """Initializes the queue.

        Args:
            pace: Coroutine function awaited before every call. It decides
                when the next call may run and accounts for it.
            name: Used in log messages.
            release: Called when a call is cancelled after its pacing step
                but before it ran, to give back what ``pace`` accounted.
        """
        self._pace = pace
        self._release = release
        self.name = name
        self._pending: Deque[QueuedCall] = deque()
        self._state = QueueState.IDLE
        self._drain_task: Optional["asyncio.Task[None]"] = None
        self._submitted = 0

    @property
    def state(self) -> QueueState:
        return self._state

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> "asyncio.Future[Any]":
        """Appends a call and returns a future resolving with its result.

        Must be called from a running event loop. The call is queued before
        this method returns, so submission order is execution order.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._submitted += 1
        self._pending.append(QueuedCall(func=func, args=args, kwargs=kwargs, future=future, sequence=self._submitted))
        logger.debug(f"Queued call #{self._submitted} on '{self.name}' ({len(self._pending)} pending).")
        if self._state is QueueState.IDLE:
            self._state = QueueState.DRAINING
            self._drain_task = loop.create_task(self._drain())
        return future

    async def join(self) -> None:
        """Waits until the active drain, if any, has emptied the queue."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.wait([self._drain_task])

    async def _drain(self) -> None:
        try:
            while self._pending:
                item = self._pending.popleft()
                if item.future.cancelled():
                    logger.debug(f"Skipping cancelled call #{item.sequence} on '{self.name}'.")
                    continue
                try:
                    await self._pace()
                    if item.future.cancelled():
                        # Cancelled while waiting for its slot
                        logger.debug(f"Call #{item.sequence} on '{self.name}' cancelled during pacing.")
                        if self._release is not None:
                            self._release()
                        continue
                    result = item.func(*item.args, **item.kwargs)
                    if inspect.isawaitable(result):
                        result = await result
                except asyncio.CancelledError:
                    item.future.cancel()
                    if asyncio.current_task().cancelling():
                        self._cancel_pending()
                        raise
                    logger.warning(f"Queued call #{item.sequence} on '{self.name}' was cancelled.")
                except Exception as e:
                    logger.error(f"Queued call #{item.sequence} on '{self.name}' failed: {e}", exc_info=True)
                    if not item.future.done():
                        item.future.set_exception(e)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
        finally:
            # No await between the emptiness check above and this reset
            self._state = QueueState.IDLE
            logger.debug(f"Queue '{self.name}' drained.")

    def _cancel_pending(self) -> None:
        logger.warning(f"Drain of '{self.name}' cancelled; dropping {len(self._pending)} pending call(s).")
        while self._pending:
            self._pending.popleft().future.cancel()
