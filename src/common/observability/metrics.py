"""Optional OTEL metrics for the query lifecycle.

Instruments are created lazily on first use and only when metrics are enabled,
either explicitly through the instance's env flag or implicitly by an OTLP
exporter endpoint.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from opentelemetry import metrics

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)

_ENDPOINT_VARS = ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")


def is_otel_exporter_configured() -> bool:
    """Return True when an OTLP endpoint is set and metrics export is not turned off."""
    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        return False
    if (os.getenv("OTEL_METRICS_EXPORTER") or "").strip().lower() == "none":
        return False
    return any((os.getenv(name) or "").strip() for name in _ENDPOINT_VARS)


def is_metrics_enabled(enabled_env_var: str) -> bool:
    """Resolve enablement from an explicit env override, else from exporter config."""
    raw = os.getenv(enabled_env_var)
    if raw is None:
        return is_otel_exporter_configured()
    try:
        return get_env_bool(enabled_env_var, False) is True
    except ValueError:
        logger.warning("Invalid %s value '%s'; metrics disabled.", enabled_env_var, raw)
        return False


def _attributes(attributes: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        key: value if isinstance(value, (str, int, float)) else str(value)
        for key, value in (attributes or {}).items()
        if value is not None
    }


@dataclass
class OptionalMetrics:
    """Counters and histograms that are no-ops unless metrics are enabled."""

    meter_name: str
    enabled_env_var: str
    _meter: Any = None
    _instruments: Dict[Tuple[str, str], Any] = field(default_factory=dict)

    def _instrument(self, kind: str, name: str, description: str, unit: str):
        key = (kind, name)
        instrument = self._instruments.get(key)
        if instrument is None:
            if self._meter is None:
                self._meter = metrics.get_meter(self.meter_name)
            factory = getattr(self._meter, f"create_{kind}")
            instrument = factory(name=name, description=description, unit=unit)
            self._instruments[key] = instrument
        return instrument

    def _emit(self, kind: str, name: str, value, description, unit, attributes) -> None:
        if not is_metrics_enabled(self.enabled_env_var):
            return
        try:
            instrument = self._instrument(kind, name, description, unit)
            emit = instrument.add if kind == "counter" else instrument.record
            emit(value, _attributes(attributes))
        except Exception as exc:
            logger.debug("Metric emission failed for %s: %s", name, exc)

    def add_counter(
        self,
        name: str,
        value: int = 1,
        *,
        description: str = "",
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add to a monotonic counter when metrics are enabled."""
        self._emit("counter", name, int(value), description, "1", attributes)

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        description: str = "",
        unit: str = "ms",
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a histogram datapoint when metrics are enabled."""
        self._emit("histogram", name, float(value), description, unit, attributes)


query_metrics = OptionalMetrics(
    meter_name="athena-query",
    enabled_env_var="ATHENA_QUERY_METRICS_ENABLED",
)
