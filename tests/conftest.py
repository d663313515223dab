"""
Pytest configuration and fixtures for the reconciliation service tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reconciliation import (
    EngineConfig,
    EntityStore,
    GenerationManager,
    ReconciliationEngine,
    SearchIndex,
)


def make_row(
    id,
    name,
    feature_class="P",
    feature_code="PPL",
    country="",
    population=0,
    asciiname=None,
    alternatenames="",
    lat=None,
    lon=None,
    admin_codes=None,
):
    """Loader row in the entity store's column set."""
    return {
        "id": str(id),
        "name": name,
        "asciiname": name if asciiname is None else asciiname,
        "alternatenames": alternatenames,
        "featureClass": feature_class,
        "featureCode": feature_code,
        "countryCode": country,
        "adminCodes": admin_codes or [],
        "population": population,
        "lat": lat,
        "lon": lon,
    }


SAMPLE_ROWS = [
    make_row(1, "London", "P", "PPLC", "GB", 8961989, alternatenames="Londres,Londra",
             lat=51.50853, lon=-0.12574, admin_codes=["ENG", "GLA"]),
    make_row(2, "London", "P", "PPL", "CA", 383822, lat=42.98339, lon=-81.23304,
             admin_codes=["08"]),
    make_row(3, "Paris", "P", "PPLC", "FR", 2138551, alternatenames="Lutetia,Parigi",
             lat=48.85341, lon=2.3488),
    make_row(4, "Paris", "P", "PPLA2", "US", 24171),
    make_row(5, "Berlin", "P", "PPLC", "DE", 3426354),
    make_row(6, "New York City", "P", "PPL", "US", 8175133, alternatenames="NYC,New York"),
    make_row(7, "River Thames", "H", "STM", "GB", 0, alternatenames="Thames"),
    make_row(8, "Mont Blanc", "T", "MT", "FR", 0),
    make_row(9, "São Paulo", "P", "PPLA", "BR", 10021295, asciiname="Sao Paulo"),
    make_row(10, "Newcastle upon Tyne", "P", "PPLA2", "GB", 192382),
    make_row(11, "Zürich", "P", "PPLA", "CH", 341730, asciiname="Zurich"),
]

FEATURE_CODES = {
    "P.PPLC": ("capital of a political entity", ""),
    "P.PPL": ("populated place", "a city, town, village, or other agglomeration"),
    "H.STM": ("stream", "a body of running water moving to a lower level in a channel"),
    "T.MT": ("mountain", "an elevation standing high above the surrounding area"),
}


@pytest.fixture
def rows():
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def store(rows):
    return EntityStore.load(rows)


@pytest.fixture
def index(store):
    return SearchIndex.build(store)


@pytest.fixture
def config():
    return EngineConfig(batch_timeout_seconds=10.0)


@pytest.fixture
def manager(rows, config):
    manager = GenerationManager(config)
    manager.reload(rows, feature_codes=FEATURE_CODES)
    return manager


@pytest.fixture
def engine(manager):
    engine = ReconciliationEngine(manager)
    yield engine
    engine.close()
