"""Pydantic envelopes returned by the query engine."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from metricsapi.collector.errors import (
    CollectorUnavailable,
    MetricNotFound,
    MetricsAPIError,
    NoGroupPrefix,
    NoMetrics,
)

QueryStatus = Literal["ok", "collector_fail", "no_metrics", "not_found", "no_group"]

MESSAGES: dict[str, str] = {
    "ok": "Request processed successfully.",
    "collector_fail": "Could not access metrics collector.",
    "no_metrics": "The collector does not have any metrics defined.",
    "not_found": "Invalid metric name provided.",
    "no_group": "Must provide metric group prefix.",
}

GROUP_NOT_FOUND_MESSAGE = "Invalid metric group name provided."

# Substituted for the value of a callback metric whose function failed
CALLBACK_FAILURE_SENTINEL: dict[str, str] = {"error": "callback_failure"}

_STATUS_ERRORS: dict[str, type[MetricsAPIError]] = {
    "collector_fail": CollectorUnavailable,
    "no_metrics": NoMetrics,
    "no_group": NoGroupPrefix,
}


class ServiceInfo(BaseModel):
    """Metadata about the reporting service."""

    name: str
    version: str
    host: str | None = None
    port: int | None = None


class QueryResult(BaseModel):
    """Outcome of a query: ``ok`` with metric values, or an error kind."""

    status: QueryStatus
    message: str = Field(..., min_length=1)
    service: ServiceInfo | None = None
    metrics: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, metrics: dict[str, Any], service: ServiceInfo) -> "QueryResult":
        return cls(status="ok", message=MESSAGES["ok"], service=service, metrics=metrics)

    @classmethod
    def failure(cls, status: QueryStatus, message: str | None = None) -> "QueryResult":
        return cls(status=status, message=message or MESSAGES[status])

    def raise_for_status(self) -> "QueryResult":
        """Raise the matching ``MetricsAPIError`` unless the result is ``ok``."""

        if self.status == "ok":
            return self
        if self.status == "not_found":
            raise MetricNotFound("", self.message)
        raise _STATUS_ERRORS[self.status](self.message)

    def payload(self) -> dict[str, Any]:
        """Return the response body; only ``ok`` results carry metrics."""

        data: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.ok:
            if self.service is not None:
                data["service"] = self.service.model_dump(exclude_none=True)
            data["metrics"] = dict(self.metrics or {})
        return data
