"""Error taxonomy for the query execution lifecycle."""

from __future__ import annotations

from typing import Optional, Union

from athena_query.models import ExecutionHandle, ExecutionStatus


class QueryLifecycleError(Exception):
    """Base error for every failure surfaced by the lifecycle manager."""

    code = "QUERY_LIFECYCLE_ERROR"

    def __init__(self, message: str, handle: Optional[ExecutionHandle] = None) -> None:
        super().__init__(message)
        self.handle = handle


class ServiceError(QueryLifecycleError):
    """Transport, auth or validation failure reported by the execution service."""

    code = "SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        handle: Optional[ExecutionHandle] = None,
        service_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, handle)
        self.service_code = service_code


class SubmissionError(QueryLifecycleError):
    """The start-execution call failed."""

    code = "SUBMISSION_FAILED"


class StatusQueryError(QueryLifecycleError):
    """A status poll failed; the poll chain settles as failed."""

    code = "STATUS_QUERY_FAILED"


class ExecutionFailed(QueryLifecycleError):
    """The execution reached a terminal failure state."""

    code = "EXECUTION_FAILED"

    def __init__(
        self, state: Union[ExecutionStatus, str], handle: Optional[ExecutionHandle] = None
    ) -> None:
        self.state = ExecutionStatus(state)
        target = f" {handle}" if handle is not None else ""
        super().__init__(f"Query{target} {self.state.value}", handle)


class ExecutionTimeout(QueryLifecycleError):
    """The execution did not reach a terminal state within the configured wait."""

    code = "EXECUTION_TIMEOUT"

    def __init__(self, handle: ExecutionHandle, timeout_seconds: float) -> None:
        super().__init__(
            f"Query {handle} exceeded {timeout_seconds:g}s timeout.",
            handle,
        )
        self.timeout_seconds = timeout_seconds


class PageFetchError(QueryLifecycleError):
    """A result page could not be fetched; accumulated rows are discarded."""

    code = "PAGE_FETCH_FAILED"

    def __init__(self, message: str, handle: ExecutionHandle, page_number: int) -> None:
        super().__init__(message, handle)
        self.page_number = page_number
