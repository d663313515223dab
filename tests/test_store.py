"""
Tests for the entity store.
"""

import pytest

from conftest import make_row
from reconciliation import EntityStore, FeatureClass, LoadError, NotFound


def test_load_builds_entities(store):
    """Every valid sample row becomes an entity."""
    assert len(store) == 11
    london = store.get("1")
    assert london.name == "London"
    assert london.feature_class == FeatureClass.POPULATED
    assert london.type_id == "P.PPLC"
    assert london.alternate_names == ("Londres", "Londra")
    assert london.admin_codes == ("ENG", "GLA")
    assert london.population == 8961989
    assert london.latitude == pytest.approx(51.50853)
    assert store.stats.loaded == 11
    assert store.stats.total_skipped == 0


def test_get_unknown_id_raises_not_found(store):
    with pytest.raises(NotFound) as exc_info:
        store.get("999")
    assert exc_info.value.entity_id == "999"
    # NotFound doubles as a KeyError for mapping-style callers
    with pytest.raises(KeyError):
        store.get("999")
    assert store.find("999") is None
    assert "1" in store
    assert "999" not in store


def test_invalid_rows_are_skipped_and_counted():
    rows = [
        make_row(1, "Berlin", "P", "PPLC", "DE", 3426354),
        make_row(2, "Nowhere", "X", "XXX"),
        make_row(3, "", asciiname=""),
        make_row(4, "---", asciiname=""),
        make_row(5, "Lyon", population="many"),
        make_row(6, "Nice", population=-1),
        make_row(7, "Metz", lat="north"),
        make_row(1, "Berlin again"),
    ]
    store = EntityStore.load(rows)

    assert len(store) == 1
    assert store.get("1").name == "Berlin", "First row for a duplicate id wins"
    assert store.stats.rows_seen == 8
    assert store.stats.skipped == {
        "bad_feature_class": 1,
        "no_name": 2,
        "bad_value": 3,
        "duplicate_id": 1,
    }


def test_schema_drift_is_fatal():
    rows = [{"id": "1", "name": "Berlin"}]
    with pytest.raises(LoadError) as exc_info:
        EntityStore.load(rows)
    assert "featureClass" in str(exc_info.value)


def test_zero_loaded_entities_is_fatal():
    with pytest.raises(LoadError):
        EntityStore.load([])
    with pytest.raises(LoadError) as exc_info:
        EntityStore.load([make_row(1, "Nowhere", "X")])
    assert exc_info.value.stats.skipped["bad_feature_class"] == 1


def test_dump_column_names_are_accepted():
    """Rows keyed by GeoNames dump column names map onto the fixed set."""
    row = {
        "geonameid": "2643743",
        "name": "London",
        "asciiname": "London",
        "alternatenames": "Londres,Londra",
        "feature_class": "p",
        "feature_code": "pplc",
        "country_code": "gb",
        "admin1_code": "ENG",
        "admin2_code": "GLA",
        "population": "8961989",
        "latitude": "51.50853",
        "longitude": "-0.12574",
    }
    entity = EntityStore.load([row]).get("2643743")
    assert entity.type_id == "P.PPLC"
    assert entity.country_code == "GB"
    assert entity.admin_codes == ("ENG", "GLA")
    assert entity.longitude == pytest.approx(-0.12574)


def test_names_and_display_name():
    store = EntityStore.load([make_row(1, "", asciiname="Sao Paulo", alternatenames="SP")])
    entity = store.get("1")
    assert entity.names == ["Sao Paulo", "SP"]
    assert entity.display_name == "Sao Paulo"


def test_all_ids_is_restartable(store):
    ids = store.all_ids()
    assert list(ids) == list(ids)
    assert len(list(ids)) == len(store)


def test_load_is_idempotent(rows):
    first = EntityStore.load(rows)
    second = EntityStore.load(rows)
    assert list(first.all_ids()) == list(second.all_ids())
    assert list(first.entities()) == list(second.entities())
    assert first.type_counts() == second.type_counts()


def test_type_and_class_counts(store):
    assert store.type_counts()["P.PPLC"] == 3
    assert store.class_counts()[FeatureClass.POPULATED] == 9
    assert store.class_counts()[FeatureClass.HYDROGRAPHIC] == 1
