"""HTTP routes exposing collector queries as JSON (default) or YAML."""

from __future__ import annotations

from typing import Any

import yaml
from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from metricsapi.collector.query import QueryEngine
from metricsapi.collector.schemas import QueryResult

router = APIRouter()

_STATUS_CODES = {
    "ok": 200,
    "not_found": 404,
    "no_metrics": 404,
    "no_group": 400,
    "collector_fail": 503,
}

_YAML_MEDIA_TYPES = ("text/x-yaml", "application/x-yaml", "application/yaml", "text/yaml")


def get_query_engine(request: Request) -> QueryEngine:
    engine: QueryEngine | None = getattr(request.app.state, "query_engine", None)
    if engine is None:
        engine = QueryEngine()
        request.app.state.query_engine = engine
    return engine


def _wants_yaml(request: Request) -> bool:
    accept = request.headers.get("accept", "").lower()
    return any(media_type in accept for media_type in _YAML_MEDIA_TYPES)


def render(request: Request, body: dict[str, Any], status_code: int = 200) -> Response:
    """Serialize ``body`` in the representation requested by the client."""

    content = jsonable_encoder(body)
    if _wants_yaml(request):
        text = yaml.safe_dump(content, sort_keys=False, allow_unicode=True)
        return Response(content=text, status_code=status_code, media_type="text/x-yaml")
    return JSONResponse(content=content, status_code=status_code)


def _respond(request: Request, result: QueryResult) -> Response:
    return render(request, result.payload(), _STATUS_CODES[result.status])


@router.get("/", summary="Collector heartbeat")
def heartbeat(request: Request) -> Response:
    return render(request, {"status": "ok"})


@router.get("/all", summary="Every metric, including all callback metrics")
def all_metrics(request: Request, engine: QueryEngine = Depends(get_query_engine)) -> Response:
    """Return a full export; this runs every callback metric."""

    return _respond(request, engine.get_all())


@router.get("/metric", include_in_schema=False)
@router.get("/metric/{name:path}", summary="A single metric by full name")
def single_metric(request: Request, name: str = "", engine: QueryEngine = Depends(get_query_engine)) -> Response:
    return _respond(request, engine.get_one(name))


@router.get("/metrics", include_in_schema=False)
@router.get("/metrics/{prefix:path}", summary="Every metric under a namespace")
def metric_group(request: Request, prefix: str = "", engine: QueryEngine = Depends(get_query_engine)) -> Response:
    """Return metrics whose names equal ``prefix`` or start with ``prefix/``.

    Each namespace segment must be complete: ``messages/out`` does not
    match ``messages/outgoing/total``.
    """

    return _respond(request, engine.get_group(prefix))
