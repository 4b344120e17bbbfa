import asyncio
import pytest

from coffeebreak.domain.models.limits import QueueState
from coffeebreak.infrastructure.resilience.call_queue import CallQueue


class PaceRecorder:
    """Pacing step that records how often it ran and can be slowed down."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)


@pytest.mark.asyncio
async def test_calls_run_in_submission_order():
    queue = CallQueue(PaceRecorder())
    order = []

    async def call(number, duration):
        await asyncio.sleep(duration)
        order.append(number)
        return number

    # Later calls are faster; FIFO must still hold
    futures = [queue.submit(call, n, 0.01 * (5 - n)) for n in range(1, 6)]
    results = await asyncio.gather(*futures)

    assert order == [1, 2, 3, 4, 5]
    assert results == [1, 2, 3, 4, 5]

@pytest.mark.asyncio
async def test_calls_submitted_during_a_drain_join_the_same_drain():
    pace = PaceRecorder(delay=0.005)
    queue = CallQueue(pace)
    order = []

    first = queue.submit(order.append, "c1")
    second = queue.submit(order.append, "c2")
    drain_task = queue._drain_task
    assert queue.state is QueueState.DRAINING

    await first
    # Drain is still busy with c2; these are appended to it
    third = queue.submit(order.append, "c3")
    fourth = queue.submit(order.append, "c4")
    assert queue._drain_task is drain_task

    await asyncio.gather(second, third, fourth)
    await queue.join()

    assert order == ["c1", "c2", "c3", "c4"]
    assert pace.calls == 4
    assert queue.state is QueueState.IDLE
    assert len(queue) == 0

@pytest.mark.asyncio
async def test_new_drain_starts_after_the_queue_went_idle():
    queue = CallQueue(PaceRecorder())
    assert await queue.submit(lambda: "first") == "first"
    await queue.join()
    assert queue.state is QueueState.IDLE

    assert await queue.submit(lambda: "second") == "second"
    await queue.join()
    assert queue.state is QueueState.IDLE

@pytest.mark.asyncio
async def test_failing_call_rejects_its_future_and_drain_continues():
    queue = CallQueue(PaceRecorder())

    def boom():
        raise ValueError("remote said no")

    failing = queue.submit(boom)
    succeeding = queue.submit(lambda: 42)

    with pytest.raises(ValueError, match="remote said no"):
        await failing
    assert await succeeding == 42
    await queue.join()
    assert queue.state is QueueState.IDLE

@pytest.mark.asyncio
async def test_cancelled_call_is_skipped_without_pacing():
    pace = PaceRecorder(delay=0.005)
    queue = CallQueue(pace)
    executed = []

    first = queue.submit(executed.append, 1)
    cancelled = queue.submit(executed.append, 2)
    last = queue.submit(executed.append, 3)
    cancelled.cancel()

    await asyncio.gather(first, last)
    await queue.join()

    assert executed == [1, 3]
    assert pace.calls == 2

@pytest.mark.asyncio
async def test_join_on_idle_queue_returns_immediately():
    queue = CallQueue(PaceRecorder())
    await queue.join()
    assert queue.state is QueueState.IDLE

@pytest.mark.asyncio
async def test_call_raising_cancelled_error_does_not_stall_the_drain():
    queue = CallQueue(PaceRecorder())

    async def cancelled_upstream():
        raise asyncio.CancelledError()

    bad = queue.submit(cancelled_upstream)
    good = queue.submit(lambda: "ok")

    assert await asyncio.wait_for(good, timeout=1) == "ok"
    assert bad.cancelled()
    await queue.join()
    assert queue.state is QueueState.IDLE
    assert len(queue) == 0

@pytest.mark.asyncio
async def test_release_runs_when_call_is_cancelled_during_pacing():
    released = []
    queue = CallQueue(PaceRecorder(delay=0.05), release=lambda: released.append(True))
    executed = []

    future = queue.submit(executed.append, 1)
    await asyncio.sleep(0.01)
    future.cancel()
    await queue.join()

    assert executed == []
    assert released == [True]

@pytest.mark.asyncio
async def test_cancelling_the_drain_cancels_pending_calls():
    queue = CallQueue(PaceRecorder(delay=1.0))
    first = queue.submit(lambda: 1)
    second = queue.submit(lambda: 2)
    await asyncio.sleep(0.01)

    queue._drain_task.cancel()
    await queue.join()

    assert first.cancelled()
    assert second.cancelled()
    assert queue.state is QueueState.IDLE
    assert len(queue) == 0
