"""Async submit/poll/fetch lifecycle for Athena query executions."""

from athena_query.client import ExecutionClient
from athena_query.coercion import coerce_value
from athena_query.config import ExecutionConfig
from athena_query.errors import (
    ExecutionFailed,
    ExecutionTimeout,
    PageFetchError,
    QueryLifecycleError,
    ServiceError,
    StatusQueryError,
    SubmissionError,
)
from athena_query.models import ColumnDescriptor, ExecutionHandle, ExecutionStatus, ResultPage
from athena_query.paginator import ResultPaginator
from athena_query.poller import ExecutionPoller, PendingOperation
from athena_query.service import BotoAthenaService, ExecutionService
from athena_query.where import and_where

__all__ = [
    "BotoAthenaService",
    "ColumnDescriptor",
    "ExecutionClient",
    "ExecutionConfig",
    "ExecutionFailed",
    "ExecutionHandle",
    "ExecutionPoller",
    "ExecutionService",
    "ExecutionStatus",
    "ExecutionTimeout",
    "PageFetchError",
    "PendingOperation",
    "QueryLifecycleError",
    "ResultPage",
    "ResultPaginator",
    "ServiceError",
    "StatusQueryError",
    "SubmissionError",
    "and_where",
    "coerce_value",
]
