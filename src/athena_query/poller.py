"""Status polling for submitted executions.

Each call to :meth:`ExecutionPoller.start` creates one :class:`PendingOperation` and
one asyncio task. The task checks status, sleeps for the poll interval while the
execution is non-terminal, and settles the pending operation exactly once. Every
coroutine awaiting that operation observes the same outcome.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from athena_query.async_utils import best_effort, with_timeout
from athena_query.config import DEFAULT_POLL_INTERVAL_SECONDS
from athena_query.errors import ExecutionFailed, ExecutionTimeout, StatusQueryError
from athena_query.models import ExecutionHandle, ExecutionStatus
from common.observability.context import execution_id_var
from common.observability.metrics import query_metrics

logger = logging.getLogger(__name__)

StatusQuery = Callable[[ExecutionHandle], Awaitable[ExecutionStatus]]
StopExecution = Callable[[ExecutionHandle], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


class PendingOperation:
    """Outstanding poll chain for one execution."""

    def __init__(self, handle: ExecutionHandle, loop: asyncio.AbstractEventLoop) -> None:
        self.handle = handle
        self.started_at = time.monotonic()
        self.status_queries = 0
        self._future: asyncio.Future = loop.create_future()
        self._task: Optional[asyncio.Task] = None

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_at

    def done(self) -> bool:
        return self._future.done()

    def succeed(self) -> bool:
        """Settle with the handle; returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_result(self.handle)
        return True

    def fail(self, exc: BaseException) -> bool:
        """Settle with ``exc``; returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_exception(exc)
        return True

    def _abandon(self) -> None:
        if not self._future.done():
            self._future.cancel()

    def __await__(self):
        # Shielded so one cancelled awaiter does not settle the chain for the others.
        return asyncio.shield(self._future).__await__()


class ExecutionPoller:
    """Wait for executions to reach a terminal state."""

    def __init__(
        self,
        get_status: StatusQuery,
        stop_execution: Optional[StopExecution] = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout_seconds: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._get_status = get_status
        self._stop_execution = stop_execution
        self._poll_interval_seconds = poll_interval_seconds
        self._timeout_seconds = timeout_seconds
        self._sleep = sleep

    def start(self, handle: ExecutionHandle) -> PendingOperation:
        """Begin a poll chain for ``handle`` and return its pending operation."""
        loop = asyncio.get_running_loop()
        pending = PendingOperation(handle, loop)
        pending._task = loop.create_task(self._drive(pending))
        return pending

    async def await_completion(self, handle: ExecutionHandle) -> ExecutionHandle:
        """Resolve with ``handle`` on SUCCEEDED; raise on failure, cancellation or timeout."""
        return await self.start(handle)

    async def cancel(self, pending: PendingOperation) -> bool:
        """Abort a poll chain and ask the service to stop the execution.

        Returns False when the chain had already settled.
        """
        if pending.done() or pending._task is None:
            return False
        pending._task.cancel()
        await asyncio.gather(pending._task, return_exceptions=True)
        # A task cancelled before its first step never reaches _drive's handler.
        pending._abandon()
        await self._stop(pending.handle)
        return True

    async def _drive(self, pending: PendingOperation) -> None:
        execution_id_var.set(pending.handle.execution_id)
        try:
            await with_timeout(
                self._poll(pending),
                self._timeout_seconds,
                on_timeout=lambda: self._stop(pending.handle),
            )
        except asyncio.TimeoutError:
            pending.fail(ExecutionTimeout(pending.handle, self._timeout_seconds))
        except asyncio.CancelledError:
            pending._abandon()
            raise
        except Exception as exc:
            pending.fail(exc)

    async def _poll(self, pending: PendingOperation) -> None:
        handle = pending.handle
        while True:
            pending.status_queries += 1
            try:
                status = _as_status(await self._get_status(handle))
            except StatusQueryError as exc:
                pending.fail(exc)
                return
            except Exception as exc:
                error = StatusQueryError(f"Status query for {handle} failed: {exc}", handle)
                error.__cause__ = exc
                pending.fail(error)
                return

            if not status.is_terminal:
                await self._sleep(self._poll_interval_seconds)
                continue

            self._record_terminal(pending, status)
            if status.is_failure:
                pending.fail(ExecutionFailed(status, handle))
            else:
                pending.succeed()
            return

    async def _stop(self, handle: ExecutionHandle) -> None:
        if self._stop_execution is None:
            return
        await best_effort(lambda: self._stop_execution(handle), f"Stopping query {handle}")

    def _record_terminal(self, pending: PendingOperation, status: ExecutionStatus) -> None:
        elapsed_ms = pending.elapsed_seconds * 1000
        attributes = {"status": status.value}
        query_metrics.add_counter(
            "athena_query.poll.status_queries",
            pending.status_queries,
            description="Status queries issued per poll chain.",
            attributes=attributes,
        )
        if status != ExecutionStatus.SUCCEEDED:
            return
        logger.debug(
            "Query %s succeeded after %d status queries (%.0f ms).",
            pending.handle,
            pending.status_queries,
            elapsed_ms,
        )
        query_metrics.record_histogram(
            "athena_query.poll.duration_ms",
            elapsed_ms,
            description="Time from poll start to SUCCEEDED.",
            attributes=attributes,
        )


def _as_status(status) -> ExecutionStatus:
    if isinstance(status, ExecutionStatus):
        return status
    return ExecutionStatus.parse(status)
