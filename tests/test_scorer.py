"""
Tests for candidate scoring, ranking and type filters.
"""

import pytest

from conftest import make_row
from reconciliation import EntityStore, PerQueryError, Scorer
from reconciliation.scorer import ScoredEntity, matches_type, parse_type_filters


@pytest.fixture
def scorer():
    return Scorer()


def scored(id, score, population):
    entity = EntityStore.load([make_row(id, f"Place {id}", population=population)]).get(str(id))
    return ScoredEntity(entity=entity, score=score)


def test_exact_name_scores_100(scorer, store):
    assert scorer.score("London", store.get("1")) == 100
    assert scorer.score("  LONDON ", store.get("2")) == 100


def test_diacritics_and_alternate_names(scorer, store):
    assert scorer.score("Sao Paulo", store.get("9")) == 100
    assert scorer.score("zurich", store.get("11")) == 100
    assert scorer.score("Parigi", store.get("3")) == 100


def test_partial_overlap(scorer, store):
    # Best name is the alternate "New York": 1 of 2 tokens
    assert scorer.score("York", store.get("6")) == 50
    assert scorer.score("Berlin", store.get("3")) == 0


def test_typo_scores_below_match_threshold(scorer, store):
    score = scorer.score("Pariss", store.get("3"))
    assert score == 83
    assert 0 < score < scorer.match_threshold


def test_token_weight(scorer):
    assert scorer.token_weight("paris", "paris") == 1.0
    assert 0 < scorer.token_weight("lon", "london") < 1.0, "Prefix tokens weigh their ratio"
    assert scorer.token_weight("berlin", "london") == 0.0


def test_score_conversion_rounds_half_up():
    assert Scorer._to_score(0.125) == 13
    assert Scorer._to_score(1.2) == 100
    assert Scorer._to_score(-0.1) == 0


def test_rank_breaks_near_ties_by_population(scorer):
    a = scored(1, 100, population=10)
    b = scored(2, 99, population=1000)
    c = scored(3, 90, population=5000)
    ranked = scorer.rank([c, a, b])
    assert [s.entity.id for s in ranked] == ["2", "1", "3"]


def test_rank_equal_scores_fall_back_to_id(scorer):
    ranked = scorer.rank([scored(20, 80, 0), scored(3, 80, 0), scored(100, 80, 0)])
    assert [s.entity.id for s in ranked] == ["3", "20", "100"]


def test_is_match(scorer):
    assert scorer.is_match([scored(1, 100, 0), scored(2, 80, 0)])
    assert scorer.is_match([scored(1, 95, 0)])
    assert not scorer.is_match([scored(1, 100, 0), scored(2, 95, 0)])
    assert not scorer.is_match([scored(1, 94, 0)])
    assert not scorer.is_match([])


def test_parse_type_filters():
    assert parse_type_filters(["p"]) == ("P",)
    assert parse_type_filters(["P.PPL", "P.PPL", "H"]) == ("P.PPL", "H")
    assert parse_type_filters([]) == ()
    for bad in ["X", "PP", "P-PPL", "", 5, None]:
        with pytest.raises(PerQueryError):
            parse_type_filters([bad])


def test_matches_type():
    assert matches_type("P.PPLC", ("P",))
    assert matches_type("P.PPLC", ("P.PPL",))
    assert matches_type("P.PPLC", ("H", "P.PPLC"))
    assert not matches_type("P.PPLC", ("H",))
    assert matches_type("H.STM", ())
