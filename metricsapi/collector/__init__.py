"""Metric collector package: typed metrics, the registry, and its queries."""

from metricsapi.collector.errors import (
    CallbackFailure,
    CollectorUnavailable,
    InvalidMetricName,
    MetricNotFound,
    MetricsAPIError,
    MissingCallback,
    NoGroupPrefix,
    NoMetrics,
    TypeConflict,
    UnknownMetricType,
)
from metricsapi.collector.metrics import Metric, MetricType, build_metric
from metricsapi.collector.namespace import MetricDefinition, flatten
from metricsapi.collector.query import QueryEngine
from metricsapi.collector.registry import (
    VERSION,
    Collector,
    add_metric,
    get_collector,
    metric,
    reset_collector,
)
from metricsapi.collector.schemas import CALLBACK_FAILURE_SENTINEL, QueryResult

__all__ = [
    "CALLBACK_FAILURE_SENTINEL",
    "CallbackFailure",
    "Collector",
    "CollectorUnavailable",
    "InvalidMetricName",
    "Metric",
    "MetricDefinition",
    "MetricNotFound",
    "MetricType",
    "MetricsAPIError",
    "MissingCallback",
    "NoGroupPrefix",
    "NoMetrics",
    "QueryEngine",
    "QueryResult",
    "TypeConflict",
    "UnknownMetricType",
    "VERSION",
    "add_metric",
    "build_metric",
    "flatten",
    "get_collector",
    "metric",
    "reset_collector",
]
