"""Typed metric cells.

Every metric kind is a small class with its own lock; the set of kinds is
closed and selected through ``build_metric`` by its ``MetricType`` tag.
"""

from __future__ import annotations

import math
import threading
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable

from metricsapi.collector.errors import CallbackFailure, MissingCallback, UnknownMetricType


class MetricType(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    BOOLEAN = "boolean"
    STRING = "string"
    TIMESTAMP = "timestamp"
    CALLBACK = "callback"

    def __str__(self) -> str:
        return self.value


MetricCallback = Callable[[], Any]


def coerce_type(value: MetricType | str | None) -> MetricType:
    """Return the ``MetricType`` for a tag, raising ``UnknownMetricType``."""

    if isinstance(value, MetricType):
        return value
    if not isinstance(value, str) or not value:
        raise UnknownMetricType("metric creation requires a name and type")
    try:
        return MetricType(value.strip().lower())
    except ValueError:
        raise UnknownMetricType(f"unknown metric type {value!r}") from None


class Metric:
    """Base for all metric kinds: a name, a fixed type and a lock."""

    type: MetricType

    def __init__(self, name: str) -> None:
        self._name = name
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def value(self) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name!r}>"


class CounterMetric(Metric):
    type = MetricType.COUNTER

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value = 0

    def add(self, amount: int = 1) -> int:
        """Add ``amount`` and return the new total."""

        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"counter {self.name} can only be incremented by integers")
        with self._lock:
            self._value += amount
            return self._value

    def increment(self) -> int:
        return self.add(1)

    def value(self) -> int:
        with self._lock:
            return self._value


class GaugeMetric(Metric):
    type = MetricType.GAUGE

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value: int | float = 0

    def set(self, value: int | float) -> None:
        self._check(value)
        with self._lock:
            self._value = value

    def add(self, delta: int | float) -> int | float:
        self._check(delta)
        with self._lock:
            total = self._value + delta
            if isinstance(total, float) and not math.isfinite(total):
                raise ValueError(f"gauge {self.name} would overflow to {total}")
            self._value = total
            return total

    def value(self) -> int | float:
        with self._lock:
            return self._value

    def _check(self, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"gauge {self.name} only accepts numbers")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"gauge {self.name} only accepts finite numbers")


class BooleanMetric(Metric):
    """Tri-state flag: unknown (``None``) until explicitly set."""

    type = MetricType.BOOLEAN

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value: bool | None = None

    def set(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise TypeError(f"boolean {self.name} only accepts True or False")
        with self._lock:
            self._value = value

    @property
    def is_unknown(self) -> bool:
        return self.value() is None

    def value(self) -> bool | None:
        with self._lock:
            return self._value


class StringMetric(Metric):
    type = MetricType.STRING

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value: str | None = None

    def set(self, value: Any) -> None:
        """Store ``str(value)``; ``None`` clears the metric back to unset."""

        with self._lock:
            self._value = None if value is None else str(value)

    def value(self) -> str | None:
        with self._lock:
            return self._value


class TimestampMetric(Metric):
    type = MetricType.TIMESTAMP

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value: datetime | None = None

    def now(self) -> datetime:
        moment = datetime.now(tz=UTC)
        with self._lock:
            self._value = moment
        return moment

    def set(self, moment: datetime) -> None:
        if not isinstance(moment, datetime):
            raise TypeError(f"timestamp {self.name} only accepts datetime values")
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        with self._lock:
            self._value = moment.astimezone(UTC)

    @property
    def dt(self) -> datetime | None:
        with self._lock:
            return self._value

    def value(self) -> str | None:
        moment = self.dt
        if moment is None:
            return None
        return moment.isoformat().replace("+00:00", "Z")


class CallbackMetric(Metric):
    """Computes its value by invoking an application function on every read.

    Expensive callbacks should cache on their own side; every query that
    touches the metric runs the function again.
    """

    type = MetricType.CALLBACK

    def __init__(self, name: str, callback: MetricCallback) -> None:
        super().__init__(name)
        self._callback = _require_callable(name, callback)

    def set(self, callback: MetricCallback) -> None:
        """Replace the function used to compute the value."""

        checked = _require_callable(self.name, callback)
        with self._lock:
            self._callback = checked

    @property
    def callback(self) -> MetricCallback:
        with self._lock:
            return self._callback

    def value(self) -> Any:
        # the function runs without holding the lock
        callback = self.callback
        try:
            return callback()
        except Exception as exc:
            raise CallbackFailure(self.name, f"{type(exc).__name__}: {exc}") from exc


def _require_callable(name: str, callback: Any) -> MetricCallback:
    if not callable(callback):
        raise MissingCallback(f"callback metric {name} must also provide a function")
    return callback


_METRIC_CLASSES: dict[MetricType, type[Metric]] = {
    MetricType.COUNTER: CounterMetric,
    MetricType.GAUGE: GaugeMetric,
    MetricType.BOOLEAN: BooleanMetric,
    MetricType.STRING: StringMetric,
    MetricType.TIMESTAMP: TimestampMetric,
}


def build_metric(
    name: str,
    metric_type: MetricType | str,
    callback: MetricCallback | None = None,
) -> Metric:
    """Construct the metric variant for ``metric_type``."""

    resolved = coerce_type(metric_type)
    if resolved is MetricType.CALLBACK:
        return CallbackMetric(name, callback)  # type: ignore[arg-type]
    return _METRIC_CLASSES[resolved](name)
