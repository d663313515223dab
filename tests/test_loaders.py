"""
Tests for the GeoNames dump reader and the staging database.
"""

import importlib

import pytest

from gazetteer import database
from gazetteer.database import make_session_factory
from gazetteer.importer import count_by_feature_class, import_feature_codes, import_geonames
from gazetteer.loaders import DatabaseLoader, GeoNamesTsvLoader, load_generation, read_feature_codes
from gazetteer.models import GeoName
from reconciliation import EntityStore, GenerationManager

DUMP_LINES = [
    "2643743\tLondon\tLondon\tLondres,Londra,Lundúnir\t51.50853\t-0.12574\tP\tPPLC\tGB\t\tENG\tGLA\tc7\t\t8961989\t\t25\tEurope/London\t2023-01-12",
    "6058560\tLondon\tLondon\t\t42.98339\t-81.23304\tP\tPPL\tCA\t\t08\t\t\t\t383822\t\t252\tAmerica/Toronto\t2019-08-18",
    "2635980\tRiver Thames\tRiver Thames\tThames,Tamise\t51.5\t0.6\tH\tSTM\tGB\t\t00\t\t\t\t0\t\t-9999\tEurope/London\t2021-04-01",
    "this line is truncated\tonly three\tfields",
    "2988507\tParis\tParis\tParigi,Lutetia\t48.85341\t2.3488\tP\tPPLC\tFR\t\t11\t75\t751\t75056\t2138551\t\t42\tEurope/Paris\t2022-05-20",
]

FEATURE_CODE_LINES = [
    "A.ADM1\tfirst-order administrative division\ta primary administrative division of a country",
    "H.STM\tstream\ta body of running water moving to a lower level in a channel",
    "P.PPL\tpopulated place\ta city, town, village, or other agglomeration",
    "P.PPLC\tcapital of a political entity\t",
    "null\t\t",
]


@pytest.fixture
def dump_file(tmp_path):
    path = tmp_path / "allCountries.txt"
    path.write_text("\n".join(DUMP_LINES) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def feature_codes_file(tmp_path):
    path = tmp_path / "featureCodes_en.txt"
    path.write_text("\n".join(FEATURE_CODE_LINES) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def session_factory(tmp_path):
    return make_session_factory(f"sqlite:///{tmp_path / 'staging' / 'geonames.db'}")


def test_tsv_loader_rows(dump_file):
    loader = GeoNamesTsvLoader(dump_file)
    rows = list(loader.rows())

    assert len(rows) == 4
    assert loader.malformed_lines == 1
    london = rows[0]
    assert london["id"] == "2643743"
    assert london["featureClass"] == "P"
    assert london["adminCodes"] == ["ENG", "GLA", "c7", ""]
    assert london["alternatenames"] == "Londres,Londra,Lundúnir"


def test_tsv_loader_is_restartable_and_limited(dump_file):
    loader = GeoNamesTsvLoader(dump_file)
    assert list(loader.rows()) == list(loader.rows())
    assert len(list(GeoNamesTsvLoader(dump_file, limit=2).rows())) == 2


def test_tsv_rows_load_into_store(dump_file):
    store = EntityStore.load(GeoNamesTsvLoader(dump_file))
    assert len(store) == 4
    thames = store.get("2635980")
    assert thames.type_id == "H.STM"
    assert thames.alternate_names == ("Thames", "Tamise")
    assert store.get("2988507").admin_codes == ("11", "75", "751", "75056")


def test_read_feature_codes(feature_codes_file):
    codes = read_feature_codes(feature_codes_file)
    assert len(codes) == 4
    assert "null" not in codes
    assert codes["P.PPLC"] == ("capital of a political entity", "")
    assert codes["H.STM"][0] == "stream"


def test_import_into_database(dump_file, session_factory):
    db = session_factory()
    try:
        stats = import_geonames(db, GeoNamesTsvLoader(dump_file), batch_size=2)
        assert stats.records_read == 4
        assert stats.inserted == 4
        assert db.query(GeoName).count() == 4
        assert dict(count_by_feature_class(db)) == {"P": 3, "H": 1}

        london = db.get(GeoName, 2643743)
        assert london.population == 8961989
        assert london.modification_date.isoformat() == "2023-01-12"
        assert london.elevation is None
    finally:
        db.close()


def test_reimport_is_idempotent(dump_file, feature_codes_file, session_factory):
    db = session_factory()
    try:
        import_geonames(db, GeoNamesTsvLoader(dump_file))
        import_feature_codes(db, read_feature_codes(feature_codes_file))
        first = [g.to_row() for g in db.query(GeoName).order_by(GeoName.geonameid)]

        import_geonames(db, GeoNamesTsvLoader(dump_file))
        assert import_feature_codes(db, read_feature_codes(feature_codes_file)) == 4
        second = [g.to_row() for g in db.query(GeoName).order_by(GeoName.geonameid)]
    finally:
        db.close()

    assert first == second


def test_database_loader(dump_file, feature_codes_file, session_factory):
    db = session_factory()
    try:
        import_geonames(db, GeoNamesTsvLoader(dump_file))
        import_feature_codes(db, read_feature_codes(feature_codes_file))
    finally:
        db.close()

    loader = DatabaseLoader(session_factory, batch_size=2)
    from_db = EntityStore.load(loader.rows())
    from_tsv = EntityStore.load(GeoNamesTsvLoader(dump_file).rows())

    assert sorted(from_db.all_ids()) == sorted(from_tsv.all_ids())
    for entity_id in from_tsv.all_ids():
        assert from_db.get(entity_id) == from_tsv.get(entity_id)

    codes = loader.feature_codes()
    assert codes["P.PPL"] == ("populated place", "a city, town, village, or other agglomeration")


def test_load_generation_from_tsv(dump_file, feature_codes_file):
    manager = GenerationManager()
    generation = load_generation(
        manager,
        source="tsv",
        tsv_path=str(dump_file),
        feature_codes_path=str(feature_codes_file),
    )
    assert manager.active is generation
    assert len(generation.store) == 4
    assert generation.catalog.name_for("P.PPLC") == "capital of a political entity"


def test_load_generation_rejects_unknown_source():
    with pytest.raises(ValueError):
        load_generation(GenerationManager(), source="elasticsearch")


def test_session_factory_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "staging" / "geonames.db"
    db = make_session_factory(f"sqlite:///{path}")()
    try:
        assert db.query(GeoName).count() == 0
    finally:
        db.close()
    assert path.parent.is_dir()


def test_importing_database_module_has_no_side_effects(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    importlib.reload(database)
    assert list(tmp_path.iterdir()) == []
    assert not hasattr(database, "SessionLocal")
