"""
Tests for generation building and swapping.
"""

import pytest

from conftest import FEATURE_CODES, make_row
from reconciliation import EngineConfig, GenerationManager, LoadError, TypeCatalog
from reconciliation.generation import build_generation


def test_no_generation_before_first_load():
    manager = GenerationManager()
    assert not manager.is_loaded
    with pytest.raises(RuntimeError):
        manager.active


def test_reload_swaps_active_generation(rows):
    manager = GenerationManager(EngineConfig())
    first = manager.reload(rows)
    assert first.number == 1
    assert manager.active is first

    second = manager.reload([make_row(100, "Lisbon", population=504718)])
    assert second.number == 2
    assert manager.active is second
    assert "100" in manager.active.store

    # A generation held by an in-flight batch is unaffected by the swap
    assert len(first.store) == 11
    assert first.index.search("London")


def test_failed_reload_keeps_previous_generation(rows):
    manager = GenerationManager()
    first = manager.reload(rows)
    with pytest.raises(LoadError):
        manager.reload([{"id": "1", "name": "Nowhere"}])
    assert manager.active is first


def test_generation_summary(rows):
    generation = build_generation(rows, number=7, feature_codes=FEATURE_CODES)
    summary = generation.summary()
    assert summary["generation"] == 7
    assert summary["entities"] == 11
    assert summary["tokens"] == generation.index.vocabulary_size
    assert summary["load_stats"]["loaded"] == 11


def test_type_catalog_names():
    catalog = TypeCatalog(FEATURE_CODES)
    assert catalog.name_for("P.PPLC") == "capital of a political entity"
    assert catalog.name_for("P.PPLX") == "city, village,...", "Unknown codes use the class label"
    assert catalog.name_for("H") == "stream, lake,..."
    assert catalog.description_for("H.STM").startswith("a body of running water")
    assert [t["id"] for t in catalog.declared_types()] == list("AHLPRSTUV")


def test_type_catalog_suggest(store):
    catalog = TypeCatalog(FEATURE_CODES)
    counts = store.type_counts()

    result = catalog.suggest("P", counts)
    assert result[0] == {"id": "P", "name": "city, village,..."}
    assert {"id": "P.PPLC", "name": "capital of a political entity"} in result

    assert catalog.suggest("capital", counts) == [
        {"id": "P.PPLC", "name": "capital of a political entity"},
    ]
    assert "H.STM" in [t["id"] for t in catalog.suggest("stream", counts)]
    assert len(catalog.suggest("", counts, limit=3)) == 3
