from contextvars import ContextVar
from typing import Optional

execution_id_var: ContextVar[Optional[str]] = ContextVar("execution_id", default=None)
