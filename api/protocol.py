"""
Reconciliation wire protocol

Translates between the W3C Reconciliation Service API JSON and the engine's
Query / QueryResult objects, and builds the manifest, suggest, preview and
data extension payloads.
"""

import html
import json
import re
from typing import Any, Optional

from pydantic import ValidationError

from api.schemas import (
    CandidateOut,
    ExtendServices,
    PreviewTemplate,
    ProposedProperties,
    QueryResultOut,
    ServiceEndpoint,
    ServiceManifest,
    SuggestItem,
    SuggestResponse,
    SuggestServices,
    TypeRef,
    ViewTemplate,
    WireExtendRequest,
    WireQuery,
)
from reconciliation import Entity, Generation, Query, QueryResult

# JSONP callback names are restricted to dotted identifiers
CALLBACK_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")

# Properties offered for data extension, in proposal order
PROPERTIES = [
    ("countryCode", "Country code"),
    ("featureCode", "Feature code"),
    ("population", "Population"),
    ("latitude", "Latitude"),
    ("longitude", "Longitude"),
    ("adminCodes", "Admin codes"),
    ("asciiName", "ASCII name"),
    ("alternateNames", "Alternate names"),
]
PROPERTY_NAMES = dict(PROPERTIES)


class ProtocolError(ValueError):
    """The request envelope is malformed (HTTP 400)."""
    pass


# ========== Decoding ==========


def _load_json(raw: Any, what: str) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"{what} is not valid JSON: {e.msg}")
    return raw


def _type_filters(value: Any) -> tuple:
    """
    Normalize the ``type`` member.

    Accepts a string, a ``{"id": ...}`` object, or a list of either. Anything
    else is passed through so the engine can reject that one query.
    """
    if value is None:
        return ()
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        return (value,)
    filters = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("id")
        filters.append(item)
    return tuple(filters)


def decode_queries(raw: Any) -> dict[str, Query]:
    """
    Decode the ``queries`` parameter into engine queries.

    Raises:
        ProtocolError: if the envelope is not a JSON object of query objects
            each carrying a string ``query``
    """
    payload = _load_json(raw, "queries")
    if not isinstance(payload, dict):
        raise ProtocolError("queries must be a JSON object keyed by query id")

    batch = {}
    for key, value in payload.items():
        if not isinstance(value, dict):
            raise ProtocolError(f"query {key!r} is not an object")
        try:
            wire = WireQuery.model_validate(value, strict=True)
        except ValidationError:
            raise ProtocolError(f"query {key!r} must have a string 'query' member")
        batch[key] = Query(
            key=key,
            text=wire.query,
            type_filters=_type_filters(wire.type),
            limit=wire.limit,
            properties=wire.properties if isinstance(wire.properties, list) else [],
        )
    return batch


def decode_extend(raw: Any) -> WireExtendRequest:
    """
    Raises:
        ProtocolError: if the extend request is malformed
    """
    payload = _load_json(raw, "extend")
    try:
        return WireExtendRequest.model_validate(payload)
    except ValidationError as e:
        raise ProtocolError(f"invalid extend request: {e.error_count()} error(s)")


# ========== Encoding ==========


def encode_result(result: QueryResult) -> dict:
    out = QueryResultOut(
        result=[
            CandidateOut(
                id=c.entity_id,
                name=c.name,
                type=[TypeRef(id=c.type_id, name=c.type_name)],
                score=c.score,
                match=c.match,
            )
            for c in result.candidates
        ],
        error=result.error,
    )
    return out.model_dump(exclude_none=True)


def encode_results(results: dict[str, QueryResult]) -> dict:
    """Wire response keyed exactly like the request batch."""
    return {key: encode_result(result) for key, result in results.items()}


def jsonp(payload: Any, callback: Optional[str]) -> str:
    """
    Raises:
        ProtocolError: if the callback is not a plain identifier
    """
    if not CALLBACK_PATTERN.match(callback or ""):
        raise ProtocolError("invalid callback name")
    return f"{callback}({json.dumps(payload)})"


def _endpoint(base_url: str, path: str) -> ServiceEndpoint:
    return ServiceEndpoint(service_url=base_url, service_path=path)


def build_manifest(
    generation: Generation,
    base_url: str,
    prefix: str,
    name: str,
    identifier_space: str,
    schema_space: str,
    view_url: str,
) -> dict:
    """Service manifest; ``base_url`` has no trailing slash."""
    types = [TypeRef(**t) for t in generation.catalog.declared_types()]
    manifest = ServiceManifest(
        name=name,
        identifierSpace=identifier_space,
        schemaSpace=schema_space,
        defaultTypes=types,
        types=types,
        view=ViewTemplate(url=view_url),
        preview=PreviewTemplate(url=f"{base_url}{prefix}/preview?id={{{{id}}}}"),
        suggest=SuggestServices(
            entity=_endpoint(base_url, f"{prefix}/suggest/entity"),
            type=_endpoint(base_url, f"{prefix}/suggest/type"),
            property=_endpoint(base_url, f"{prefix}/suggest/property"),
        ),
        extend=ExtendServices(
            propose_properties=_endpoint(base_url, f"{prefix}/properties"),
        ),
    )
    return manifest.model_dump()


def describe_entity(entity: Entity, generation: Generation) -> str:
    parts = [generation.catalog.name_for(entity.type_id)]
    if entity.country_code:
        parts.append(entity.country_code)
    if entity.population:
        parts.append(f"pop. {entity.population:,}")
    return ", ".join(parts)


def suggest_entities(generation: Generation, prefix: str, limit: int, offset: int) -> dict:
    items = []
    for entity_id in generation.index.suggest(prefix, limit=limit, offset=offset):
        entity = generation.store.find(entity_id)
        if entity is None:
            continue
        items.append(SuggestItem(
            id=entity.id,
            name=entity.display_name,
            description=describe_entity(entity, generation),
            notable=[TypeRef(
                id=entity.type_id,
                name=generation.catalog.name_for(entity.type_id),
            )],
        ))
    return SuggestResponse(result=items).model_dump(exclude_none=True)


def suggest_types(generation: Generation, prefix: str, limit: int, offset: int) -> dict:
    matches = generation.catalog.suggest(
        prefix, generation.store.type_counts(), limit=limit, offset=offset
    )
    return {"result": matches}


def suggest_properties(prefix: str, limit: int, offset: int = 0) -> dict:
    needle = (prefix or "").lower()
    matches = [
        {"id": pid, "name": name}
        for pid, name in PROPERTIES
        if pid.lower().startswith(needle) or name.lower().startswith(needle)
    ]
    return {"result": matches[offset:offset + limit]}


def propose_properties(type_id: Optional[str], limit: Optional[int] = None) -> dict:
    properties = [TypeRef(id=pid, name=name) for pid, name in PROPERTIES]
    if limit is not None:
        properties = properties[:limit]
    return ProposedProperties(type=type_id, properties=properties).model_dump(exclude_none=True)


def property_values(entity: Entity, property_id: str) -> list[dict]:
    """Extension cells for one entity and property."""
    if property_id == "countryCode":
        return [{"str": entity.country_code}] if entity.country_code else []
    if property_id == "featureCode":
        return [{"str": entity.type_id}]
    if property_id == "population":
        return [{"int": entity.population}]
    if property_id == "latitude":
        return [{"float": entity.latitude}] if entity.latitude is not None else []
    if property_id == "longitude":
        return [{"float": entity.longitude}] if entity.longitude is not None else []
    if property_id == "adminCodes":
        return [{"str": code} for code in entity.admin_codes if code]
    if property_id == "asciiName":
        return [{"str": entity.ascii_name}] if entity.ascii_name else []
    if property_id == "alternateNames":
        return [{"str": name} for name in entity.alternate_names]
    return []


def extend(generation: Generation, request: WireExtendRequest) -> dict:
    """Data extension response; unknown ids get empty property lists."""
    meta = [
        {"id": prop.id, "name": PROPERTY_NAMES.get(prop.id, prop.id)}
        for prop in request.properties
    ]
    rows = {}
    for entity_id in request.ids:
        entity = generation.store.find(entity_id)
        rows[entity_id] = {
            prop.id: property_values(entity, prop.id) if entity else []
            for prop in request.properties
        }
    return {"meta": meta, "rows": rows}


def preview_html(entity: Entity, generation: Generation, view_url: str) -> str:
    """Small HTML card shown in the client's preview popup."""
    link = view_url.replace("{{id}}", entity.id)
    coordinates = ""
    if entity.latitude is not None and entity.longitude is not None:
        coordinates = f"<br>{entity.latitude:.4f}, {entity.longitude:.4f}"
    return (
        "<html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"margin:0;font-family:sans-serif;font-size:13px\">"
        f"<a href=\"{html.escape(link)}\" target=\"_blank\"><b>"
        f"{html.escape(entity.display_name)}</b></a> "
        f"<span style=\"color:#888\">({html.escape(entity.id)})</span><br>"
        f"{html.escape(describe_entity(entity, generation))}"
        f"{coordinates}"
        "</body></html>"
    )
