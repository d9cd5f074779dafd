from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from common.config.env import get_env_float, get_env_int, get_env_str

DEFAULT_DATABASE = "default"
DEFAULT_MAX_RESULTS = 1000
DEFAULT_OUTPUT_LOCATION = "s3://athena-query-results/athena-query-results/"
DEFAULT_POLL_INTERVAL_SECONDS = 0.8


@dataclass(frozen=True)
class ExecutionConfig:
    """Resolved settings carried by every execution request.

    Instances are immutable; use :meth:`merged` to derive an updated copy.
    """

    database: str = DEFAULT_DATABASE
    max_results: int = DEFAULT_MAX_RESULTS
    output_location: str = DEFAULT_OUTPUT_LOCATION
    workgroup: Optional[str] = None
    region: Optional[str] = None
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.database:
            raise ValueError("database must be a non-empty string.")
        if not self.output_location:
            raise ValueError("output_location must be a non-empty string.")
        if isinstance(self.max_results, bool) or not isinstance(self.max_results, int):
            raise ValueError(f"max_results must be an integer, got {self.max_results!r}.")
        if self.max_results <= 0:
            raise ValueError(f"max_results must be positive, got {self.max_results}.")
        if self.poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds must be >= 0.")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive when set.")

    def merged(self, **overrides: Any) -> "ExecutionConfig":
        """Return a copy with ``overrides`` applied; ``None`` values keep the current value."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"Unknown execution config option(s): {', '.join(unknown)}")
        changes = {name: value for name, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, **changes)

    @classmethod
    def from_env(cls) -> "ExecutionConfig":
        """Load config from environment variables, falling back to defaults."""
        return cls().merged(
            database=get_env_str("ATHENA_DATABASE") or None,
            max_results=get_env_int("ATHENA_MAX_RESULTS"),
            output_location=get_env_str("ATHENA_OUTPUT_LOCATION") or None,
            workgroup=get_env_str("ATHENA_WORKGROUP") or None,
            region=get_env_str("AWS_REGION") or None,
            poll_interval_seconds=get_env_float("ATHENA_POLL_INTERVAL_SECONDS"),
            timeout_seconds=get_env_float("ATHENA_QUERY_TIMEOUT_SECONDS"),
        )
