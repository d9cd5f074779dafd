"""Value types shared by the poller, paginator and client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

RawCell = Optional[str]
TypedRow = Dict[str, Any]


class ExecutionStatus(str, Enum):
    """Execution lifecycle states as reported by the service."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def is_failure(self) -> bool:
        return self in (ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)

    @classmethod
    def parse(cls, state: str) -> "ExecutionStatus":
        """Map a raw service state to a status; unknown states keep the chain polling."""
        try:
            return cls(str(state).strip().upper())
        except ValueError:
            logger.warning("Unknown execution state %r; treating as RUNNING.", state)
            return cls.RUNNING


_TERMINAL = frozenset(
    {ExecutionStatus.SUCCEEDED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED}
)


@dataclass(frozen=True)
class ExecutionHandle:
    """Opaque identifier of one submitted execution."""

    execution_id: str

    def __str__(self) -> str:
        return self.execution_id


@dataclass(frozen=True)
class ExecutionContext:
    """Where a statement runs and where its results are staged."""

    database: str
    output_location: str
    workgroup: Optional[str] = None


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    type: str
    nullable: Optional[str] = None


@dataclass(frozen=True)
class ResultPage:
    """One page of a result set; a missing ``next_token`` marks the last page."""

    columns: Tuple[ColumnDescriptor, ...] = ()
    rows: List[List[RawCell]] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.next_token
