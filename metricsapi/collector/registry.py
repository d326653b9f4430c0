"""Metric collector: owns every metric of a process (or sub-scope).

The first collector constructed in a process becomes the default one,
reachable through ``get_collector()`` and the module-level ``metric`` and
``add_metric`` helpers.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from metricsapi.collector.errors import CollectorUnavailable, MetricNotFound, TypeConflict
from metricsapi.collector.metrics import Metric, MetricCallback, MetricType, build_metric, coerce_type
from metricsapi.collector.namespace import flatten, matches_prefix, validate_name
from metricsapi.lib.logger import get_logger
from metricsapi.lib.rwlock import ReadWriteLock

logger = get_logger(__name__)

DEFAULT_SERVICE_NAME = "metricsapi"
VERSION = "0.1.0"


class Collector:
    """Registry of named metrics built from a nested definition tree."""

    def __init__(
        self,
        metrics: Mapping[str, Any] | None = None,
        *,
        service_name: str = DEFAULT_SERVICE_NAME,
        version: str = VERSION,
    ) -> None:
        self.service_name = service_name
        self.version = version
        self._lock = ReadWriteLock()

        # build everything before touching state so a bad tree registers nothing
        built: dict[str, Metric] = {}
        for definition in flatten(metrics):
            built[definition.name] = build_metric(definition.name, definition.type, definition.callback)
        self._metrics: dict[str, Metric] = built

        logger.debug("collector.created", extra={"metric_count": len(built)})
        _register_default(self)

    def metric(self, name: str) -> Metric:
        """Return the metric registered under the exact flattened ``name``."""

        with self._lock.read():
            found = self._metrics.get(name)
        if found is None:
            raise MetricNotFound(name)
        return found

    def add_metric(
        self,
        name: str,
        metric_type: MetricType | str,
        callback: MetricCallback | None = None,
    ) -> Metric:
        """Register a metric while the application runs.

        Re-adding an existing name with the same type returns the existing
        metric; a different type raises ``TypeConflict`` and changes nothing.
        """

        validate_name(name)
        resolved = coerce_type(metric_type)
        # validates the callback before the registry is locked
        candidate = build_metric(name, resolved, callback)

        with self._lock.write():
            existing = self._metrics.get(name)
            if existing is None:
                self._metrics[name] = candidate
                created = True
            else:
                created = False

        if created:
            logger.debug("metric.added", extra={"metric": name, "metric_type": resolved.value})
            return candidate

        if existing.type is not resolved:
            logger.warning(
                "metric.type_conflict",
                extra={
                    "metric": name,
                    "existing_type": existing.type.value,
                    "requested_type": resolved.value,
                },
            )
            raise TypeConflict(name, existing.type.value, resolved.value)
        return existing

    def all_metrics(self) -> Mapping[str, Metric]:
        """Return a read-only snapshot of every registered metric."""

        with self._lock.read():
            return MappingProxyType(dict(self._metrics))

    def group(self, prefix: str) -> Mapping[str, Metric]:
        """Return metrics named ``prefix`` or living under ``prefix/``."""

        with self._lock.read():
            selected = {name: entry for name, entry in self._metrics.items() if matches_prefix(name, prefix)}
        return MappingProxyType(selected)

    def names(self) -> list[str]:
        with self._lock.read():
            return list(self._metrics)

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._metrics

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._metrics)

    def __repr__(self) -> str:
        return f"<Collector {self.service_name!r} metrics={len(self)}>"


_default_lock = threading.Lock()
_default_collector: Collector | None = None


def _register_default(collector: Collector) -> None:
    global _default_collector
    with _default_lock:
        if _default_collector is None:
            _default_collector = collector


def get_collector() -> Collector | None:
    """Return the process-wide default collector, if one was constructed."""

    with _default_lock:
        return _default_collector


def reset_collector() -> None:
    """Forget the default collector (testing utility)."""

    global _default_collector
    with _default_lock:
        _default_collector = None


def _require_default() -> Collector:
    collector = get_collector()
    if collector is None:
        raise CollectorUnavailable("Could not access metrics collector.")
    return collector


def metric(name: str) -> Metric:
    """Look up ``name`` on the default collector."""

    return _require_default().metric(name)


def add_metric(name: str, metric_type: MetricType | str, callback: MetricCallback | None = None) -> Metric:
    """Register a metric on the default collector."""

    return _require_default().add_metric(name, metric_type, callback)
