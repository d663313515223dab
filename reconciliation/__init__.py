"""
Reconciliation Module

Entity reconciliation over a GeoNames gazetteer:
- Entity store with load-time validation
- Inverted token index (exact, prefix and fuzzy token lookup)
- Token-overlap scoring with population tie-breaks
- Batch engine with per-query isolation and generation swapping
"""

from reconciliation.config import EngineConfig
from reconciliation.engine import ReconciliationEngine
from reconciliation.errors import (
    BatchTooLarge,
    LoadError,
    NotFound,
    PerQueryError,
    QueryTimeout,
    ReconciliationError,
)
from reconciliation.generation import Generation, GenerationManager, build_generation
from reconciliation.index import SearchIndex, TokenMatch
from reconciliation.models import Candidate, Entity, FeatureClass, Query, QueryResult
from reconciliation.scorer import PreparedQuery, Scorer
from reconciliation.store import EntityStore, LoadStats
from reconciliation.types import TypeCatalog

__all__ = [
    "BatchTooLarge",
    "Candidate",
    "EngineConfig",
    "Entity",
    "EntityStore",
    "FeatureClass",
    "Generation",
    "GenerationManager",
    "LoadError",
    "LoadStats",
    "NotFound",
    "PerQueryError",
    "PreparedQuery",
    "Query",
    "QueryResult",
    "QueryTimeout",
    "ReconciliationEngine",
    "ReconciliationError",
    "Scorer",
    "SearchIndex",
    "TokenMatch",
    "TypeCatalog",
    "build_generation",
]
