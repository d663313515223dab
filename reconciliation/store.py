"""
Entity Store

Validated, read-only gazetteer records keyed by id. Built once per generation
from the rows a data loader supplies; never mutated afterwards, so any number
of threads may read it concurrently.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional

from reconciliation.errors import LoadError, NotFound
from reconciliation.models import Entity, FeatureClass
from reconciliation.normalize import tokenize

logger = logging.getLogger(__name__)

# Fixed column set supplied by the data loader
COLUMNS = (
    "id", "name", "asciiname", "alternatenames", "featureClass", "featureCode",
    "countryCode", "adminCodes", "population", "lat", "lon",
)
REQUIRED_COLUMNS = ("id", "name", "featureClass")

# GeoNames dump / database column names accepted in place of the fixed set
COLUMN_ALIASES = {
    "geonameid": "id",
    "ascii_name": "asciiname",
    "alternate_names": "alternatenames",
    "feature_class": "featureClass",
    "feature_code": "featureCode",
    "country_code": "countryCode",
    "admin_codes": "adminCodes",
    "latitude": "lat",
    "longitude": "lon",
}
ADMIN_COLUMNS = ("admin1_code", "admin2_code", "admin3_code", "admin4_code")


@dataclass
class LoadStats:
    """Statistics from a store load."""
    rows_seen: int = 0
    loaded: int = 0
    skipped: Counter = field(default_factory=Counter)

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def as_dict(self) -> dict:
        return {
            "rows_seen": self.rows_seen,
            "loaded": self.loaded,
            "skipped": dict(self.skipped),
        }


class RowRejected(Exception):
    """Raised while parsing a single row; carries the skip reason."""

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(detail or reason)
        self.reason = reason


def canonical_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map loader column names onto the fixed column set."""
    row = {}
    admin_parts = []
    for key, value in raw.items():
        if key in ADMIN_COLUMNS:
            continue
        row[COLUMN_ALIASES.get(key, key)] = value
    if "adminCodes" not in row:
        for column in ADMIN_COLUMNS:
            if column in raw:
                admin_parts.append(raw[column])
        if admin_parts:
            row["adminCodes"] = admin_parts
    return row


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _split_list(value: Any) -> tuple[str, ...]:
    """Alternate names and admin codes arrive either as lists or comma-joined text."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    return tuple(p for p in (_text(p) for p in parts) if p)


def _admin_codes(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(_text(p) for p in value.split(","))
    return tuple(_text(p) for p in value)


def _population(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        population = int(value)
    except (TypeError, ValueError):
        raise RowRejected("bad_value", f"population={value!r}")
    if population < 0:
        raise RowRejected("bad_value", f"population={value!r}")
    return population


def _coordinate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RowRejected("bad_value", f"coordinate={value!r}")


def parse_entity(raw: Mapping[str, Any]) -> Entity:
    """
    Build an Entity from one loader row.

    Raises:
        RowRejected: with reason missing_column, bad_feature_class, no_name
            or bad_value
    """
    row = canonical_row(raw)
    for column in REQUIRED_COLUMNS:
        if column not in row:
            raise RowRejected("missing_column", column)

    entity_id = _text(row["id"])
    if not entity_id:
        raise RowRejected("missing_column", "id")

    feature_class = FeatureClass.parse(_text(row["featureClass"]))
    if feature_class is None:
        raise RowRejected("bad_feature_class", _text(row["featureClass"]))

    name = _text(row.get("name"))
    ascii_name = _text(row.get("asciiname"))
    if not tokenize(name) and not tokenize(ascii_name):
        raise RowRejected("no_name", entity_id)

    return Entity(
        id=entity_id,
        name=name,
        ascii_name=ascii_name,
        feature_class=feature_class,
        feature_code=_text(row.get("featureCode")).upper(),
        alternate_names=_split_list(row.get("alternatenames")),
        country_code=_text(row.get("countryCode")).upper(),
        admin_codes=_admin_codes(row.get("adminCodes")),
        population=_population(row.get("population")),
        latitude=_coordinate(row.get("lat")),
        longitude=_coordinate(row.get("lon")),
    )


class EntityStore:
    """
    Read-only collection of gazetteer entities.

    Usage:
        store = EntityStore.load(loader.rows())
        paris = store.get("2988507")
    """

    def __init__(self, entities: dict[str, Entity], stats: Optional[LoadStats] = None):
        self._entities = entities
        self.stats = stats or LoadStats(rows_seen=len(entities), loaded=len(entities))
        self._type_counts = Counter(e.type_id for e in entities.values())
        self._class_counts = Counter(e.feature_class for e in entities.values())

    @classmethod
    def load(cls, rows: Iterable[Mapping[str, Any]]) -> "EntityStore":
        """
        Validate and load rows into a new store.

        Rejected rows are skipped and counted by reason. The load only fails
        outright when the first row does not carry the required columns
        (schema drift) or when no row survives.

        Raises:
            LoadError: schema drift or zero loaded entities
        """
        stats = LoadStats()
        entities: dict[str, Entity] = {}

        for raw in rows:
            stats.rows_seen += 1
            if stats.rows_seen == 1:
                missing = [c for c in REQUIRED_COLUMNS if c not in canonical_row(raw)]
                if missing:
                    raise LoadError(
                        f"Loader rows are missing required columns: {', '.join(missing)}",
                        stats,
                    )

            try:
                entity = parse_entity(raw)
            except RowRejected as e:
                stats.skipped[e.reason] += 1
                logger.debug(f"Skipped row {stats.rows_seen}: {e.reason} ({e})")
                continue

            if entity.id in entities:
                stats.skipped["duplicate_id"] += 1
                logger.debug(f"Skipped duplicate id {entity.id}")
                continue

            entities[entity.id] = entity

        stats.loaded = len(entities)
        if not entities:
            raise LoadError(
                f"No entities loaded from {stats.rows_seen} rows "
                f"(skipped: {dict(stats.skipped)})",
                stats,
            )

        logger.info(
            f"Loaded {stats.loaded:,} entities from {stats.rows_seen:,} rows "
            f"({stats.total_skipped:,} skipped)"
        )
        if stats.skipped:
            logger.warning(f"Skipped rows by reason: {dict(stats.skipped)}")

        return cls(entities, stats)

    def get(self, entity_id: str) -> Entity:
        """Return the entity or raise NotFound."""
        try:
            return self._entities[str(entity_id)]
        except KeyError:
            raise NotFound(str(entity_id)) from None

    def find(self, entity_id: str) -> Optional[Entity]:
        return self._entities.get(str(entity_id))

    def all_ids(self):
        """Lazy, restartable view over every id."""
        return self._entities.keys()

    def entities(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def type_counts(self) -> Counter:
        return Counter(self._type_counts)

    def class_counts(self) -> Counter:
        return Counter(self._class_counts)

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return str(entity_id) in self._entities

    def __repr__(self) -> str:
        return f"<EntityStore({len(self)} entities)>"
