"""
Reconciliation API routes.

Mounted under ``settings.RECONCILE_PATH``:
- ``GET  {prefix}``              manifest, or a batch via ``queries``
- ``POST {prefix}``              batch (form or JSON body), data extension
- ``GET  {prefix}/suggest/*``    entity, type and property autocomplete
- ``GET  {prefix}/preview``      HTML card for one entity
- ``GET  {prefix}/properties``   properties proposed for data extension
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from api import protocol
from api.deps import ActiveGeneration, BaseUrl, Config, Engine, ReconcilePath
from api.protocol import ProtocolError
from config.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reconciliation"])


def _respond(payload: Any, callback: Optional[str] = None) -> Response:
    """JSON, or JSONP when the client passed a callback name."""
    if callback:
        return Response(
            content=protocol.jsonp(payload, callback),
            media_type="application/javascript",
        )
    return JSONResponse(content=payload)


async def _reconcile(engine, queries_raw: Any) -> dict:
    batch = protocol.decode_queries(queries_raw)
    results = await engine.reconcile_async(batch)
    failed = sum(1 for r in results.values() if not r.ok)
    if failed:
        logger.info(f"Batch of {len(batch)} queries returned {failed} error note(s)")
    return protocol.encode_results(results)


async def _dispatch(
    engine,
    generation,
    queries_raw: Any,
    extend_raw: Any,
    base_url: str,
    prefix: str,
) -> dict:
    if queries_raw is not None:
        return await _reconcile(engine, queries_raw)
    if extend_raw is not None:
        return protocol.extend(generation, protocol.decode_extend(extend_raw))
    return protocol.build_manifest(
        generation,
        base_url=base_url,
        prefix=prefix,
        name=settings.SERVICE_NAME,
        identifier_space=settings.IDENTIFIER_SPACE,
        schema_space=settings.SCHEMA_SPACE,
        view_url=settings.VIEW_URL,
    )


# ========== Reconciliation ==========


@router.get("")
async def reconcile_get(
    engine: Engine,
    generation: ActiveGeneration,
    base_url: BaseUrl,
    prefix: ReconcilePath,
    queries: Optional[str] = None,
    extend: Optional[str] = None,
    callback: Optional[str] = None,
):
    """Service manifest, or a reconciliation batch passed as ``queries``."""
    payload = await _dispatch(engine, generation, queries, extend, base_url, prefix)
    return _respond(payload, callback)


@router.post("")
async def reconcile_post(
    request: Request,
    engine: Engine,
    generation: ActiveGeneration,
    base_url: BaseUrl,
    prefix: ReconcilePath,
):
    """
    Reconciliation batch or data extension request.

    Accepts a form post (``queries``/``extend`` fields holding JSON text) or
    a JSON body ``{"queries": {...}}``.
    """
    content_type = request.headers.get("content-type", "")
    callback = None
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ProtocolError("request body is not valid JSON")
        if not isinstance(body, dict):
            raise ProtocolError("request body must be a JSON object")
        queries_raw, extend_raw = body.get("queries"), body.get("extend")
    else:
        form = await request.form()
        queries_raw, extend_raw = form.get("queries"), form.get("extend")
        callback = form.get("callback")

    if queries_raw is None and extend_raw is None:
        raise ProtocolError("missing 'queries' parameter")

    payload = await _dispatch(engine, generation, queries_raw, extend_raw, base_url, prefix)
    return _respond(payload, callback)


# ========== Suggest ==========


@router.get("/suggest/entity")
async def suggest_entity(
    generation: ActiveGeneration,
    config: Config,
    prefix: str = "",
    cursor: int = Query(default=0, ge=0),
    callback: Optional[str] = None,
):
    payload = protocol.suggest_entities(
        generation, prefix, limit=config.suggest_limit, offset=cursor
    )
    return _respond(payload, callback)


@router.get("/suggest/type")
async def suggest_type(
    generation: ActiveGeneration,
    config: Config,
    prefix: str = "",
    cursor: int = Query(default=0, ge=0),
    callback: Optional[str] = None,
):
    payload = protocol.suggest_types(
        generation, prefix, limit=config.suggest_limit, offset=cursor
    )
    return _respond(payload, callback)


@router.get("/suggest/property")
async def suggest_property(
    config: Config,
    prefix: str = "",
    cursor: int = Query(default=0, ge=0),
    callback: Optional[str] = None,
):
    payload = protocol.suggest_properties(prefix, limit=config.suggest_limit, offset=cursor)
    return _respond(payload, callback)


# ========== Preview & Extension ==========


@router.get("/preview", response_class=HTMLResponse)
async def preview(generation: ActiveGeneration, id: str):
    entity = generation.store.find(id)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entity not found: {id}",
        )
    return HTMLResponse(protocol.preview_html(entity, generation, settings.VIEW_URL))


@router.get("/properties")
async def properties(
    type: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    callback: Optional[str] = None,
):
    """Properties offered for data extension."""
    return _respond(protocol.propose_properties(type, limit), callback)
