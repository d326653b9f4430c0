"""Read-side queries over a collector: one metric, a namespace group, or all.

Queries never raise: every outcome is a ``QueryResult`` envelope. Metrics
are evaluated and encoded one at a time, so a failing callback or a value
that cannot be serialised only replaces its own entry with
``CALLBACK_FAILURE_SENTINEL``.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from fastapi.encoders import jsonable_encoder

from metricsapi.collector.errors import CallbackFailure, MetricNotFound
from metricsapi.collector.metrics import CallbackMetric, Metric
from metricsapi.collector.namespace import SEPARATOR
from metricsapi.collector.registry import Collector, get_collector
from metricsapi.collector.schemas import (
    CALLBACK_FAILURE_SENTINEL,
    GROUP_NOT_FOUND_MESSAGE,
    QueryResult,
    ServiceInfo,
)
from metricsapi.lib.logger import get_logger

logger = get_logger(__name__)

_TIMEOUT_WORKERS = 8


class QueryEngine:
    """Answer metric queries against a collector.

    When ``collector`` is omitted the process-wide default collector is
    looked up on every call. ``callback_timeout`` bounds how long a single
    callback may run; a callback that overruns is reported as failed. At
    most one run per callback metric is in flight: while an overrunning run
    is still going, later queries wait on that run instead of starting
    another, so a hung callback holds a single worker.

    ``host`` and ``port`` are reported in the ``service`` block when the
    engine is served from a known address.
    """

    def __init__(
        self,
        collector: Collector | None = None,
        *,
        callback_timeout: float | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        if callback_timeout is not None and callback_timeout <= 0:
            raise ValueError("callback_timeout must be positive")
        self._collector = collector
        self.callback_timeout = callback_timeout
        self.host = host
        self.port = port
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._inflight: dict[str, Future] = {}

    @property
    def collector(self) -> Collector | None:
        return self._collector if self._collector is not None else get_collector()

    def get_one(self, name: str) -> QueryResult:
        collector = self.collector
        if collector is None:
            return QueryResult.failure("collector_fail")
        try:
            found = collector.metric(name)
        except MetricNotFound:
            return QueryResult.failure("not_found")
        return QueryResult.success({found.name: self._evaluate(found)}, self._service(collector))

    def get_group(self, prefix: str | None) -> QueryResult:
        collector = self.collector
        if collector is None:
            return QueryResult.failure("collector_fail")
        prefix = (prefix or "").strip(SEPARATOR)
        if not prefix:
            return QueryResult.failure("no_group")
        selected = collector.group(prefix)
        if not selected:
            return QueryResult.failure("not_found", GROUP_NOT_FOUND_MESSAGE)
        return QueryResult.success(self._evaluate_all(selected), self._service(collector))

    def get_all(self) -> QueryResult:
        collector = self.collector
        if collector is None:
            return QueryResult.failure("collector_fail")
        everything = collector.all_metrics()
        if not everything:
            return QueryResult.failure("no_metrics")
        return QueryResult.success(self._evaluate_all(everything), self._service(collector))

    def close(self) -> None:
        """Release the worker threads used for timed callbacks."""

        with self._executor_lock:
            executor, self._executor = self._executor, None
            self._inflight.clear()
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def _evaluate_all(self, metrics: Mapping[str, Metric]) -> dict[str, Any]:
        return {name: self._evaluate(entry) for name, entry in metrics.items()}

    def _evaluate(self, entry: Metric) -> Any:
        if not isinstance(entry, CallbackMetric):
            return self._encode(entry, entry.value())
        try:
            if self.callback_timeout is None:
                value = entry.value()
            else:
                value = self._run_timed(entry)
        except CallbackFailure as exc:
            logger.warning("metric.callback_failed", extra={"metric": entry.name, "reason": exc.reason})
        except TimeoutError:
            logger.warning(
                "metric.callback_timeout",
                extra={"metric": entry.name, "timeout_seconds": self.callback_timeout},
            )
        else:
            return self._encode(entry, value)
        return dict(CALLBACK_FAILURE_SENTINEL)

    def _encode(self, entry: Metric, value: Any) -> Any:
        """Return ``value`` as plain JSON data, or the sentinel if it has none."""

        try:
            encoded = jsonable_encoder(value)
            json.dumps(encoded, allow_nan=False)
        except (TypeError, ValueError) as exc:
            event = "metric.callback_failed" if isinstance(entry, CallbackMetric) else "metric.encode_failed"
            logger.warning(event, extra={"metric": entry.name, "reason": f"unserializable value: {exc}"})
            return dict(CALLBACK_FAILURE_SENTINEL)
        return encoded

    def _run_timed(self, entry: CallbackMetric) -> Any:
        future = self._submit(entry)
        try:
            return future.result(timeout=self.callback_timeout)
        except TimeoutError:
            future.cancel()
            raise
        finally:
            if future.done():
                with self._executor_lock:
                    if self._inflight.get(entry.name) is future:
                        del self._inflight[entry.name]

    def _submit(self, entry: CallbackMetric) -> Future:
        with self._executor_lock:
            future = self._inflight.get(entry.name)
            if future is not None and not future.done():
                return future
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=_TIMEOUT_WORKERS,
                    thread_name_prefix="metricsapi-callback",
                )
            future = self._executor.submit(entry.value)
            self._inflight[entry.name] = future
            return future

    def _service(self, collector: Collector) -> ServiceInfo:
        return ServiceInfo(name=collector.service_name, version=collector.version, host=self.host, port=self.port)
