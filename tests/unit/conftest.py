"""Unit test environment helpers."""

import pytest

ATHENA_ENV_VARS = (
    "ATHENA_DATABASE",
    "ATHENA_MAX_RESULTS",
    "ATHENA_OUTPUT_LOCATION",
    "ATHENA_WORKGROUP",
    "ATHENA_POLL_INTERVAL_SECONDS",
    "ATHENA_QUERY_TIMEOUT_SECONDS",
    "AWS_REGION",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Clear Athena settings so config defaults apply unless a test sets them."""
    for name in ATHENA_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
