"""Tests for the collector registry and the process-wide default collector."""

from __future__ import annotations

import threading

import pytest

import metricsapi.collector as collector_api
from metricsapi.collector import (
    Collector,
    CollectorUnavailable,
    InvalidMetricName,
    MetricNotFound,
    MetricType,
    MissingCallback,
    TypeConflict,
    UnknownMetricType,
    get_collector,
)
from metricsapi.collector.metrics import CounterMetric
from metricsapi.lib.rwlock import ReadWriteLock


def test_construction_creates_one_metric_per_leaf(collector: Collector) -> None:
    assert len(collector) == 9
    assert "messages/incoming/total" in collector
    assert "users/total" not in collector
    assert isinstance(collector.metric("messages/incoming/total"), CounterMetric)
    assert collector.metric("users/total/active/web").type is MetricType.GAUGE


def test_metric_lookup_is_exact(collector: Collector) -> None:
    with pytest.raises(MetricNotFound) as info:
        collector.metric("messages/incoming")
    assert info.value.name == "messages/incoming"

    with pytest.raises(MetricNotFound):
        collector.metric("messages/incoming/total/")


def test_handles_share_state_with_registry(collector: Collector) -> None:
    collector.metric("messages/incoming/total").add(3)
    collector.metric("messages/incoming/total").increment()

    assert collector.metric("messages/incoming/total").value() == 4
    assert collector.all_metrics()["messages/incoming/total"].value() == 4


def test_add_metric_creates_and_returns_metric(collector: Collector) -> None:
    created = collector.add_metric("workers/current", "gauge")

    assert collector.metric("workers/current") is created
    created.set(17)
    assert collector.metric("workers/current").value() == 17


def test_add_metric_is_idempotent_for_matching_type(collector: Collector) -> None:
    first = collector.add_metric("workers/limit", MetricType.GAUGE)
    second = collector.add_metric("workers/limit", "gauge")

    assert first is second
    assert collector.names().count("workers/limit") == 1


def test_add_metric_type_conflict_leaves_existing_untouched(collector: Collector, caplog) -> None:
    existing = collector.metric("messages/incoming/total")
    existing.add(9)

    with pytest.raises(TypeConflict) as info:
        collector.add_metric("messages/incoming/total", "gauge")

    assert info.value.existing == "counter"
    assert info.value.requested == "gauge"
    assert collector.metric("messages/incoming/total") is existing
    assert existing.type is MetricType.COUNTER
    assert existing.value() == 9
    assert any(record.getMessage() == "metric.type_conflict" for record in caplog.records)


def test_add_metric_validates_arguments(collector: Collector) -> None:
    before = len(collector)

    with pytest.raises(MissingCallback):
        collector.add_metric("users/online", "callback")
    with pytest.raises(MissingCallback):
        collector.add_metric("users/online", "callback", "not a function")
    with pytest.raises(InvalidMetricName):
        collector.add_metric("", "counter")
    with pytest.raises(InvalidMetricName):
        collector.add_metric("users//online", "counter")
    with pytest.raises(UnknownMetricType):
        collector.add_metric("users/online", "")
    with pytest.raises(UnknownMetricType):
        collector.add_metric("users/online", None)

    assert len(collector) == before


def test_add_metric_callback(collector: Collector) -> None:
    created = collector.add_metric("users/online", "callback", lambda: 5)

    assert created.type is MetricType.CALLBACK
    assert collector.metric("users/online").value() == 5


def test_all_metrics_is_read_only_snapshot(collector: Collector) -> None:
    snapshot = collector.all_metrics()

    with pytest.raises(TypeError):
        snapshot["new"] = None  # type: ignore[index]

    collector.add_metric("late/arrival", "string")
    assert "late/arrival" not in snapshot
    assert "late/arrival" in collector.all_metrics()


def test_group_selects_whole_segments(collector: Collector) -> None:
    assert set(collector.group("messages/outgoing")) == {
        "messages/outgoing/total",
        "messages/outgoing/suppressed",
    }
    assert dict(collector.group("messages/out")) == {}


def test_invalid_tree_fails_fast_and_registers_nothing() -> None:
    with pytest.raises(InvalidMetricName):
        Collector({"ok": "counter", "bad/key": "gauge"})
    with pytest.raises(MissingCallback):
        Collector({"users": {"total": "callback"}})

    assert get_collector() is None


def test_first_collector_becomes_default() -> None:
    first = Collector({"a": "counter"})
    second = Collector({"b": "counter"})

    assert get_collector() is first
    assert get_collector() is not second


def test_module_helpers_use_default_collector() -> None:
    with pytest.raises(CollectorUnavailable):
        collector_api.metric("a")
    with pytest.raises(CollectorUnavailable):
        collector_api.add_metric("a", "counter")

    default = Collector({"a": "counter"})
    collector_api.metric("a").increment()
    added = collector_api.add_metric("b", "boolean")

    assert default.metric("a").value() == 1
    assert default.metric("b") is added


def test_concurrent_add_metric_keeps_single_instance() -> None:
    collector = Collector()
    results: list[object] = []
    results_lock = threading.Lock()
    start = threading.Barrier(10)

    def worker(index: int) -> None:
        start.wait()
        shared = collector.add_metric("shared/counter", "counter")
        own = collector.add_metric(f"own/{index}", "counter")
        shared.add(1)
        own.add(1)
        with results_lock:
            results.append(shared)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len({id(item) for item in results}) == 1
    assert collector.metric("shared/counter").value() == 10
    assert len(collector) == 11


def test_read_write_lock_allows_concurrent_readers() -> None:
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=2)
    errors: list[BaseException] = []

    def reader() -> None:
        try:
            with lock.read():
                both_inside.wait()
        except threading.BrokenBarrierError as exc:
            errors.append(exc)

    readers = [threading.Thread(target=reader) for _ in range(2)]
    for thread in readers:
        thread.start()
    for thread in readers:
        thread.join()

    assert errors == []


def test_read_write_lock_writer_is_exclusive() -> None:
    lock = ReadWriteLock()
    writer_done = threading.Event()

    def writer() -> None:
        with lock.write():
            writer_done.set()

    with lock.read():
        thread = threading.Thread(target=writer)
        thread.start()
        assert not writer_done.wait(0.1)

    thread.join(timeout=2)
    assert writer_done.is_set()
