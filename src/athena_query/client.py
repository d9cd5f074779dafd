import asyncio
import logging
import re
from typing import Any, List, Optional, Tuple

from athena_query.config import ExecutionConfig
from athena_query.errors import StatusQueryError, SubmissionError
from athena_query.models import (
    ColumnDescriptor,
    ExecutionContext,
    ExecutionHandle,
    ExecutionStatus,
    TypedRow,
)
from athena_query.paginator import ResultPaginator
from athena_query.poller import ExecutionPoller, PendingOperation, Sleep
from athena_query.service import BotoAthenaService, ExecutionService
from athena_query.tracing import trace_query_operation
from common.observability.context import execution_id_var

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_sql(sql: str) -> str:
    """Collapse runs of whitespace for single-line logging."""
    return _WHITESPACE.sub(" ", sql).strip()


class ExecutionClient:
    """Submit, wait for and fetch Athena query executions.

    The client holds an immutable :class:`ExecutionConfig` snapshot. ``configure``
    swaps that snapshot without synchronisation, so runs already in flight may see
    either value for fields they have not read yet (the page size is read when
    result fetching starts). Prefer ``with_config`` to get an independent client.
    """

    def __init__(
        self,
        service: Optional[ExecutionService] = None,
        config: Optional[ExecutionConfig] = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or ExecutionConfig()
        self._service = service or BotoAthenaService(region=self._config.region)
        self._sleep = sleep
        self._paginator = ResultPaginator(self._service)

    @classmethod
    def from_env(cls, service: Optional[ExecutionService] = None) -> "ExecutionClient":
        """Build a client configured from environment variables."""
        return cls(service=service, config=ExecutionConfig.from_env())

    @property
    def config(self) -> ExecutionConfig:
        return self._config

    def configure(self, **options: Any) -> ExecutionConfig:
        """Shallow-merge ``options`` over the current config; unset options keep their value."""
        self._config = self._config.merged(**options)
        return self._config

    def with_config(self, **options: Any) -> "ExecutionClient":
        """Return a new client sharing this service with ``options`` merged in."""
        return ExecutionClient(self._service, self._config.merged(**options), sleep=self._sleep)

    async def submit(self, sql: str) -> ExecutionHandle:
        """Start an execution for ``sql`` using the configured database and output location."""
        config = self._config
        context = ExecutionContext(
            database=config.database,
            output_location=config.output_location,
            workgroup=config.workgroup,
        )
        logger.debug("[ExecutionClient] %s", normalize_sql(sql))

        async def _run() -> ExecutionHandle:
            try:
                return await self._service.start_execution(sql, context)
            except Exception as exc:
                raise SubmissionError(f"Query submission failed: {exc}") from exc

        return await trace_query_operation("athena.query.submit", sql=sql, operation=_run())

    async def get_status(self, handle: ExecutionHandle) -> ExecutionStatus:
        """Return the execution's current status without waiting."""

        async def _run() -> ExecutionStatus:
            try:
                return await self._service.get_execution_status(handle)
            except Exception as exc:
                raise StatusQueryError(
                    f"Status query for {handle} failed: {exc}", handle
                ) from exc

        return await trace_query_operation("athena.query.poll", sql=None, operation=_run())

    def start_polling(self, handle: ExecutionHandle) -> PendingOperation:
        """Begin a poll chain whose pending operation can be awaited or cancelled."""
        return self._poller().start(handle)

    async def await_completion(self, handle: ExecutionHandle) -> ExecutionHandle:
        """Wait until ``handle`` reaches SUCCEEDED."""
        return await self._poller().await_completion(handle)

    async def cancel(self, pending: PendingOperation) -> bool:
        """Abort a poll chain started by :meth:`start_polling` and stop the execution."""
        return await self._poller().cancel(pending)

    async def fetch_results(self, handle: ExecutionHandle) -> List[TypedRow]:
        """Fetch every decoded row of a finished execution."""
        rows, _ = await self.fetch_results_with_columns(handle)
        return rows

    async def fetch_results_with_columns(
        self, handle: ExecutionHandle
    ) -> Tuple[List[TypedRow], Tuple[ColumnDescriptor, ...]]:
        """Fetch every decoded row plus the result set's column descriptors."""
        page_size = self._config.max_results
        return await trace_query_operation(
            "athena.query.fetch",
            sql=None,
            operation=self._paginator.fetch_all_with_columns(handle, page_size),
        )

    async def run(self, sql: str) -> List[TypedRow]:
        """Submit ``sql``, wait for it to succeed and return all of its rows."""

        async def _run() -> List[TypedRow]:
            handle = await self.submit(sql)
            token = execution_id_var.set(handle.execution_id)
            try:
                await self.await_completion(handle)
                return await self.fetch_results(handle)
            finally:
                execution_id_var.reset(token)

        return await trace_query_operation("athena.query.run", sql=sql, operation=_run())

    def _poller(self) -> ExecutionPoller:
        config = self._config
        return ExecutionPoller(
            self.get_status,
            stop_execution=getattr(self._service, "stop_execution", None),
            poll_interval_seconds=config.poll_interval_seconds,
            timeout_seconds=config.timeout_seconds,
            sleep=self._sleep,
        )
