import hashlib
from typing import Awaitable, Optional

from common.observability.context import execution_id_var
from common.observability.metrics import is_metrics_enabled

PROVIDER = "athena"
EXECUTION_MODEL = "async"


def trace_enabled() -> bool:
    """Return True when query tracing is enabled or OTEL exporter defaults apply."""
    return is_metrics_enabled("ATHENA_QUERY_TRACE")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def trace_query_operation(name: str, sql: Optional[str], operation: Awaitable):
    """Trace one lifecycle step with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("athena_query")
    with tracer.start_as_current_span(name) as span:
        execution_id = execution_id_var.get()
        if execution_id:
            span.set_attribute("db.execution_id", execution_id)
        span.set_attribute("db.provider", PROVIDER)
        span.set_attribute("db.execution_model", EXECUTION_MODEL)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception as exc:
            span.set_attribute("db.status", "error")
            span.set_attribute("db.error_code", getattr(exc, "code", type(exc).__name__))
            raise
