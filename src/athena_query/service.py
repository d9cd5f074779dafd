import asyncio
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from athena_query.errors import ServiceError
from athena_query.models import (
    ColumnDescriptor,
    ExecutionContext,
    ExecutionHandle,
    ExecutionStatus,
    ResultPage,
)


@runtime_checkable
class ExecutionService(Protocol):
    """Remote operations of a submit-then-poll query service."""

    async def start_execution(self, sql: str, context: ExecutionContext) -> ExecutionHandle:
        """Start executing ``sql`` and return its handle."""
        ...

    async def get_execution_status(self, handle: ExecutionHandle) -> ExecutionStatus:
        """Return the current state of an execution."""
        ...

    async def get_results_page(
        self,
        handle: ExecutionHandle,
        max_results: Optional[int] = None,
        next_token: Optional[str] = None,
    ) -> ResultPage:
        """Fetch one page of results for a finished execution."""
        ...

    async def stop_execution(self, handle: ExecutionHandle) -> None:
        """Ask the service to stop a running execution."""
        ...


class BotoAthenaService:
    """ExecutionService backed by the boto3 Athena client.

    boto3 calls block, so each one runs in a worker thread.
    """

    def __init__(self, region: Optional[str] = None, client: Any = None) -> None:
        """Initialize with an existing Athena client or build one for ``region``."""
        if client is None:
            import boto3

            client = boto3.client("athena", region_name=region)
        self._client = client

    async def start_execution(self, sql: str, context: ExecutionContext) -> ExecutionHandle:
        response = await self._call("start_query_execution", None, **_start_kwargs(sql, context))
        return ExecutionHandle(response["QueryExecutionId"])

    async def get_execution_status(self, handle: ExecutionHandle) -> ExecutionStatus:
        response = await self._call(
            "get_query_execution", handle, QueryExecutionId=handle.execution_id
        )
        return ExecutionStatus.parse(response["QueryExecution"]["Status"]["State"])

    async def get_results_page(
        self,
        handle: ExecutionHandle,
        max_results: Optional[int] = None,
        next_token: Optional[str] = None,
    ) -> ResultPage:
        kwargs: Dict[str, Any] = {"QueryExecutionId": handle.execution_id}
        if max_results is not None:
            kwargs["MaxResults"] = max_results
        if next_token:
            kwargs["NextToken"] = next_token
        response = await self._call("get_query_results", handle, **kwargs)
        return _page_from_response(response)

    async def stop_execution(self, handle: ExecutionHandle) -> None:
        await self._call("stop_query_execution", handle, QueryExecutionId=handle.execution_id)

    async def _call(self, operation: str, handle: Optional[ExecutionHandle], **kwargs: Any):
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            return await asyncio.to_thread(getattr(self._client, operation), **kwargs)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            raise ServiceError(
                f"Athena {operation} failed: {error.get('Message') or exc}",
                handle,
                service_code=error.get("Code"),
            ) from exc
        except BotoCoreError as exc:
            raise ServiceError(f"Athena {operation} failed: {exc}", handle) from exc


def _start_kwargs(sql: str, context: ExecutionContext) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "QueryString": sql,
        "QueryExecutionContext": {"Database": context.database},
        "ResultConfiguration": {"OutputLocation": context.output_location},
    }
    if context.workgroup:
        kwargs["WorkGroup"] = context.workgroup
    return kwargs


def _page_from_response(response: Dict[str, Any]) -> ResultPage:
    result_set = response["ResultSet"]
    metadata = result_set.get("ResultSetMetadata", {}).get("ColumnInfo", [])
    columns = tuple(
        ColumnDescriptor(name=col["Name"], type=col.get("Type", ""), nullable=col.get("Nullable"))
        for col in metadata
    )
    rows = [[datum.get("VarCharValue") for datum in row["Data"]] for row in result_set["Rows"]]
    return ResultPage(columns=columns, rows=rows, next_token=response.get("NextToken"))
