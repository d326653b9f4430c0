"""Flatten nested metric definitions into slash-delimited names."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator, NamedTuple

from metricsapi.collector.errors import InvalidMetricName, MissingCallback, UnknownMetricType
from metricsapi.collector.metrics import MetricCallback, MetricType, coerce_type

SEPARATOR = "/"


class MetricDefinition(NamedTuple):
    name: str
    type: MetricType
    callback: MetricCallback | None = None


def flatten(tree: Mapping[str, Any] | None) -> list[MetricDefinition]:
    """Return one definition per leaf of ``tree``, depth first.

    ``{"a": {"b": "counter"}, "c": "gauge"}`` yields ``a/b`` (counter) and
    ``c`` (gauge). Leaves may be type names or callables; nested mappings
    are namespace groups and produce no metric of their own.
    """

    if tree is None:
        return []
    if not isinstance(tree, Mapping):
        raise UnknownMetricType("metric definitions must be a mapping")
    return list(_walk(tree, ""))


def _walk(tree: Mapping[str, Any], prefix: str) -> Iterator[MetricDefinition]:
    for key, leaf in tree.items():
        _check_segment(key, prefix)
        name = f"{prefix}{SEPARATOR}{key}" if prefix else key
        if isinstance(leaf, Mapping):
            yield from _walk(leaf, name)
        elif callable(leaf):
            yield MetricDefinition(name, MetricType.CALLBACK, leaf)
        elif isinstance(leaf, str):
            metric_type = coerce_type(leaf)
            if metric_type is MetricType.CALLBACK:
                raise MissingCallback(f"callback metric {name} must also provide a function")
            yield MetricDefinition(name, metric_type)
        else:
            raise UnknownMetricType(f"cannot build metric {name} from {type(leaf).__name__}")


def _check_segment(key: Any, prefix: str) -> None:
    if not isinstance(key, str) or not key or SEPARATOR in key:
        where = f" under {prefix!r}" if prefix else ""
        raise InvalidMetricName(f"invalid metric name segment {key!r}{where}")


def validate_name(name: Any) -> str:
    """Check a full flattened name such as ``messages/incoming/total``."""

    if not isinstance(name, str) or not name:
        raise InvalidMetricName("metric creation requires a name and type")
    if any(not segment for segment in name.split(SEPARATOR)):
        raise InvalidMetricName(f"invalid metric name {name!r}")
    return name


def matches_prefix(name: str, prefix: str) -> bool:
    """True when ``name`` is ``prefix`` or lives in the ``prefix`` namespace."""

    return name == prefix or name.startswith(prefix + SEPARATOR)
