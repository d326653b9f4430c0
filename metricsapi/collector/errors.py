"""Exception taxonomy for metric definition, registration and lookup."""

from __future__ import annotations


class MetricsAPIError(Exception):
    """Base class; ``kind`` is the machine-readable classification."""

    kind = "error"


class InvalidMetricName(MetricsAPIError, ValueError):
    """Raised when a name segment is empty, not a string, or contains ``/``."""

    kind = "invalid_metric_name"


class UnknownMetricType(MetricsAPIError, ValueError):
    """Raised for a missing or unrecognised metric type tag."""

    kind = "unknown_metric_type"


class MissingCallback(MetricsAPIError, ValueError):
    """Raised when a callback metric is defined without a callable."""

    kind = "missing_callback"


class TypeConflict(MetricsAPIError):
    """Raised when a name is re-registered with a different type."""

    kind = "type_conflict"

    def __init__(self, name: str, existing: str, requested: str) -> None:
        super().__init__(f"metric {name} already exists, but is not of type {requested}")
        self.name = name
        self.existing = existing
        self.requested = requested


class MetricNotFound(MetricsAPIError, LookupError):
    kind = "not_found"

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f"the metric {name} does not exist")
        self.name = name


class NoMetrics(MetricsAPIError):
    kind = "no_metrics"


class NoGroupPrefix(MetricsAPIError):
    kind = "no_group"


class CollectorUnavailable(MetricsAPIError):
    """Raised when no process-wide collector has been constructed."""

    kind = "collector_fail"


class CallbackFailure(MetricsAPIError):
    """Raised when a callback metric's function fails or times out."""

    kind = "callback_failure"

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"callback for metric {name} failed: {reason}")
        self.name = name
        self.reason = reason
