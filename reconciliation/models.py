"""
GeoNames Reconciliation Service - Core Models

Plain dataclasses shared by the store, index, scorer and engine.
"""

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Optional


class FeatureClass(PyEnum):
    """GeoNames top-level feature classes."""
    ADMINISTRATIVE = "A"  # country, state, region
    HYDROGRAPHIC = "H"    # stream, lake
    AREA = "L"            # parks, area
    POPULATED = "P"       # city, village
    ROAD = "R"            # road, railroad
    SPOT = "S"            # spot, building, farm
    HYPSOGRAPHIC = "T"    # mountain, hill, rock
    UNDERSEA = "U"
    VEGETATION = "V"      # forest, heath

    @property
    def label(self) -> str:
        return FEATURE_CLASS_LABELS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FeatureClass"]:
        """Return the class for a letter, or None if it is not a known class."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


FEATURE_CLASS_LABELS = {
    FeatureClass.ADMINISTRATIVE: "country, state, region,...",
    FeatureClass.HYDROGRAPHIC: "stream, lake,...",
    FeatureClass.AREA: "parks, area,...",
    FeatureClass.POPULATED: "city, village,...",
    FeatureClass.ROAD: "road, railroad",
    FeatureClass.SPOT: "spot, building, farm",
    FeatureClass.HYPSOGRAPHIC: "mountain, hill, rock,...",
    FeatureClass.UNDERSEA: "undersea",
    FeatureClass.VEGETATION: "forest, heath,...",
}


def id_sort_key(entity_id: str) -> tuple:
    """Ascending id order: numeric ids by value, then any other ids as text."""
    if entity_id.isdigit():
        return (0, int(entity_id), "")
    return (1, 0, entity_id)


def make_type_id(feature_class: FeatureClass, feature_code: str) -> str:
    """Hierarchical type id, e.g. ``P.PPLC``; just ``P`` when the code is empty."""
    if feature_code:
        return f"{feature_class.value}.{feature_code}"
    return feature_class.value


@dataclass(frozen=True)
class Entity:
    """
    One gazetteer record.

    Immutable once loaded; the store and index of a generation share the
    same instances.
    """
    id: str
    name: str
    ascii_name: str
    feature_class: FeatureClass
    feature_code: str = ""
    alternate_names: tuple[str, ...] = ()
    country_code: str = ""
    admin_codes: tuple[str, ...] = ()
    population: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def type_id(self) -> str:
        return make_type_id(self.feature_class, self.feature_code)

    @property
    def names(self) -> list[str]:
        """All indexed names: primary, ascii, then alternates (non-empty only)."""
        return [n for n in (self.name, self.ascii_name, *self.alternate_names) if n]

    @property
    def display_name(self) -> str:
        return self.name or self.ascii_name

    def __repr__(self) -> str:
        return f"<Entity(id={self.id}, name={self.display_name}, type={self.type_id})>"


@dataclass
class Query:
    """A single reconciliation query as seen by the engine."""
    key: str
    text: str
    type_filters: tuple[str, ...] = ()
    limit: Optional[int] = None
    properties: list = field(default_factory=list)


@dataclass
class Candidate:
    """A scored match for one query."""
    entity_id: str
    name: str
    type_id: str
    type_name: str
    score: int
    match: bool = False
    country_code: str = ""
    population: int = 0

    def __repr__(self) -> str:
        return f"<Candidate({self.entity_id}, {self.name}, score={self.score}, match={self.match})>"


@dataclass
class QueryResult:
    """Candidates for one query, or an error note when the query failed."""
    candidates: list[Candidate] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
