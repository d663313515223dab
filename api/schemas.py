"""
Wire models for the W3C Reconciliation Service API.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ========== Request Models ==========


class WireQuery(BaseModel):
    """
    One query object from the ``queries`` mapping.

    Unknown members such as ``type_strict`` are ignored; every type filter
    is applied strictly.
    """

    query: str
    type: Any = None
    limit: Any = None
    properties: Any = None


class WireExtendProperty(BaseModel):
    id: str
    settings: Optional[dict] = None


class WireExtendRequest(BaseModel):
    """Data extension request: which properties to fetch for which ids."""

    ids: list[str]
    properties: list[WireExtendProperty]


# ========== Response Models ==========


class TypeRef(BaseModel):
    id: str
    name: str


class CandidateOut(BaseModel):
    id: str
    name: str
    type: list[TypeRef]
    score: int = Field(ge=0, le=100)
    match: bool
    description: Optional[str] = None


class QueryResultOut(BaseModel):
    result: list[CandidateOut]
    error: Optional[str] = None


class ServiceEndpoint(BaseModel):
    service_url: str
    service_path: str


class ViewTemplate(BaseModel):
    url: str


class PreviewTemplate(BaseModel):
    url: str
    width: int = 400
    height: int = 130


class SuggestServices(BaseModel):
    entity: ServiceEndpoint
    type: ServiceEndpoint
    property: ServiceEndpoint


class ExtendServices(BaseModel):
    propose_properties: ServiceEndpoint
    property_settings: list = Field(default_factory=list)


class ServiceManifest(BaseModel):
    """Service manifest served at the reconciliation root."""

    versions: list[str] = Field(default_factory=lambda: ["0.1", "0.2"])
    name: str
    identifierSpace: str
    schemaSpace: str
    defaultTypes: list[TypeRef]
    types: list[TypeRef]
    view: ViewTemplate
    preview: PreviewTemplate
    suggest: SuggestServices
    extend: ExtendServices


class SuggestItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    notable: Optional[list[TypeRef]] = None


class SuggestResponse(BaseModel):
    result: list[SuggestItem]


class ProposedProperties(BaseModel):
    type: Optional[str] = None
    properties: list[TypeRef]


class HealthResponse(BaseModel):
    status: str
    generation: Optional[int] = None
    entities: Optional[int] = None
    loaded_at: Optional[str] = None
