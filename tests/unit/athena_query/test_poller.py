import asyncio

import pytest

from athena_query.errors import ExecutionFailed, ExecutionTimeout, ServiceError, StatusQueryError
from athena_query.models import ExecutionHandle, ExecutionStatus
from athena_query.poller import ExecutionPoller
from tests._support.fake_athena import FakeExecutionService, RecordingSleep


def _poller(service, sleep=None, **kwargs):
    return ExecutionPoller(
        service.get_execution_status,
        stop_execution=service.stop_execution,
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_polls_until_succeeded_with_fixed_delay():
    """RUNNING, RUNNING, SUCCEEDED settles after three queries and two 0.8s waits."""
    service = FakeExecutionService(statuses=["RUNNING", "RUNNING", "SUCCEEDED"])
    sleep = RecordingSleep()
    handle = ExecutionHandle("exec-1")

    result = await _poller(service, sleep=sleep).await_completion(handle)

    assert result == handle
    assert len(service.status_calls) == 3
    assert sleep.delays == [0.8, 0.8]


@pytest.mark.asyncio
async def test_queued_is_non_terminal():
    service = FakeExecutionService(statuses=["QUEUED", "RUNNING", "SUCCEEDED"])

    await _poller(service).await_completion(ExecutionHandle("exec-1"))

    assert len(service.status_calls) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("state", [ExecutionStatus.FAILED, ExecutionStatus.CANCELLED])
async def test_terminal_failure_states_raise(state):
    """FAILED and CANCELLED settle with ExecutionFailed naming the state."""
    service = FakeExecutionService(statuses=["RUNNING", state])

    with pytest.raises(ExecutionFailed) as exc_info:
        await _poller(service).await_completion(ExecutionHandle("exec-1"))

    assert exc_info.value.state == state
    assert state.value in str(exc_info.value)
    assert len(service.status_calls) == 2


@pytest.mark.asyncio
async def test_status_query_failure_is_not_retried():
    service = FakeExecutionService(statuses=[ServiceError("boom"), "SUCCEEDED"])

    with pytest.raises(StatusQueryError) as exc_info:
        await _poller(service).await_completion(ExecutionHandle("exec-1"))

    assert isinstance(exc_info.value.__cause__, ServiceError)
    assert len(service.status_calls) == 1


@pytest.mark.asyncio
async def test_concurrent_awaiters_share_one_settlement():
    """Awaiters of one pending operation see the same result from a single chain."""
    service = FakeExecutionService(statuses=["RUNNING", "SUCCEEDED"])
    handle = ExecutionHandle("exec-1")

    pending = _poller(service).start(handle)
    first, second = await asyncio.gather(pending, pending)

    assert first == second == handle
    assert pending.done()
    assert pending.status_queries == 2
    assert len(service.status_calls) == 2
    assert pending.succeed() is False


@pytest.mark.asyncio
async def test_independent_invocations_are_not_deduplicated():
    service = FakeExecutionService(statuses=["SUCCEEDED"])
    poller = _poller(service)
    handle = ExecutionHandle("exec-1")

    first = poller.start(handle)
    second = poller.start(handle)
    await asyncio.gather(first, second)

    assert first is not second
    assert len(service.status_calls) == 2


@pytest.mark.asyncio
async def test_timeout_stops_execution_and_raises():
    service = FakeExecutionService(statuses=["RUNNING"])
    handle = ExecutionHandle("exec-1")
    poller = _poller(
        service, sleep=asyncio.sleep, poll_interval_seconds=0.01, timeout_seconds=0.05
    )

    with pytest.raises(ExecutionTimeout) as exc_info:
        await poller.await_completion(handle)

    assert exc_info.value.timeout_seconds == 0.05
    assert service.stop_calls == [handle]


@pytest.mark.asyncio
async def test_cancel_aborts_chain_and_stops_execution():
    service = FakeExecutionService(statuses=["RUNNING"])
    handle = ExecutionHandle("exec-1")
    poller = _poller(service, sleep=asyncio.sleep, poll_interval_seconds=10)

    pending = poller.start(handle)
    await asyncio.sleep(0)
    cancelled = await poller.cancel(pending)

    assert cancelled is True
    assert service.stop_calls == [handle]
    with pytest.raises(asyncio.CancelledError):
        await pending
    assert await poller.cancel(pending) is False


@pytest.mark.asyncio
async def test_cancel_before_first_status_query():
    service = FakeExecutionService(statuses=["RUNNING"])
    poller = _poller(service, sleep=asyncio.sleep, poll_interval_seconds=10)

    pending = poller.start(ExecutionHandle("exec-1"))
    await poller.cancel(pending)

    assert pending.done()
    assert service.status_calls == []


@pytest.mark.asyncio
async def test_stop_failure_during_timeout_is_logged(caplog):
    service = FakeExecutionService(statuses=["RUNNING"])

    async def _failing_stop(handle):
        raise ServiceError("stop denied", handle)

    poller = ExecutionPoller(
        service.get_execution_status,
        stop_execution=_failing_stop,
        sleep=asyncio.sleep,
        poll_interval_seconds=0.01,
        timeout_seconds=0.03,
    )

    with pytest.raises(ExecutionTimeout):
        await poller.await_completion(ExecutionHandle("exec-1"))

    assert any("Stopping query exec-1 failed" in r.message for r in caplog.records)


@pytest.mark.asyncio
async def test_sleep_failure_settles_awaiters():
    """An error between status checks reaches the caller instead of hanging it."""
    service = FakeExecutionService(statuses=["RUNNING"])

    async def _broken_sleep(delay):
        raise RuntimeError("timer unavailable")

    poller = _poller(service, sleep=_broken_sleep)

    with pytest.raises(RuntimeError, match="timer unavailable"):
        await asyncio.wait_for(poller.await_completion(ExecutionHandle("exec-1")), 1.0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw,expected",
    [("FAILED", ExecutionFailed), ("cancelled", ExecutionFailed), ("SUCCEEDED", None)],
)
async def test_plain_string_statuses_are_classified(raw, expected):
    async def _status(handle):
        return raw

    poller = ExecutionPoller(_status, sleep=RecordingSleep())
    handle = ExecutionHandle("exec-1")

    if expected is None:
        assert await asyncio.wait_for(poller.await_completion(handle), 1.0) == handle
    else:
        with pytest.raises(expected):
            await asyncio.wait_for(poller.await_completion(handle), 1.0)


@pytest.mark.asyncio
async def test_sleeps_only_while_non_terminal():
    service = FakeExecutionService(statuses=["QUEUED", "CANCELLED"])
    sleep = RecordingSleep()

    with pytest.raises(ExecutionFailed):
        await _poller(service, sleep=sleep).await_completion(ExecutionHandle("exec-1"))

    assert sleep.delays == [0.8]
    assert not ExecutionStatus.RUNNING.is_terminal
    assert ExecutionStatus.CANCELLED.is_terminal
