"""
Tests for the search index.
"""

from reconciliation import EntityStore, SearchIndex
from conftest import make_row


def ids(matches):
    return [m.entity_id for m in matches]


def test_postings_are_deduplicated(index):
    """An id appears once per token even when several names contain it."""
    assert index.postings("london") == frozenset({"1", "2"})
    assert index.postings("paris") == frozenset({"3", "4"})
    assert index.postings("missing") == frozenset()


def test_exact_token_search(index):
    assert set(ids(index.search("London"))) == {"1", "2"}
    assert ids(index.search("Berlin")) == ["5"]


def test_alternate_and_ascii_names_are_indexed(index):
    assert ids(index.search("Londres")) == ["1"]
    assert ids(index.search("Sao Paulo")) == ["9"]
    assert ids(index.search("zurich")) == ["11"]


def test_prefix_search(index):
    assert set(ids(index.search("Lond"))) == {"1", "2"}
    assert "london" in index.prefix_tokens("lo")
    assert index.prefix_tokens("l") == [], "Single letters do not expand"


def test_fuzzy_search_only_for_unknown_tokens(index):
    assert "paris" in index.fuzzy_tokens("pariss")
    assert set(ids(index.search("Pariss"))) == {"3", "4"}
    assert index.fuzzy_tokens("xq") == []


def test_more_matched_tokens_rank_first(index):
    matches = index.search("New York")
    assert matches[0].entity_id == "6"
    assert matches[0].matched_tokens == 2
    assert matches[0].exact_tokens == 2


def test_candidates_are_bounded(store):
    small = SearchIndex.build(store, max_candidates=1)
    matches = small.search("London")
    assert ids(matches) == ["1"], "Higher population survives the bound"


def test_accept_filters_before_bound(store):
    small = SearchIndex.build(store, max_candidates=1)
    matches = small.search("London", accept=lambda entity_id: entity_id == "2")
    assert ids(matches) == ["2"]


def test_empty_query_returns_nothing(index):
    assert index.search("") == []
    assert index.search("!!!") == []
    assert index.search("Atlantis") == []


def test_suggest_ranks_by_population(index):
    assert index.suggest("par") == ["3", "4"]
    assert index.suggest("new yo") == ["6"]
    assert index.suggest("par", limit=1, offset=1) == ["4"]
    assert index.suggest("") == []


def crowded_rows():
    """Six hundred populous places sharing a token with one obscure exact name."""
    rows = [make_row(i, f"San Place{i}", population=1000 + i) for i in range(1, 601)]
    rows.append(make_row(9999, "San", population=0))
    return rows


def test_exact_name_survives_bound():
    index = SearchIndex.build(EntityStore.load(crowded_rows()), max_candidates=500)
    matches = index.search("San")
    assert len(matches) == 500
    assert matches[0].entity_id == "9999"
    assert matches[0].exact_name


def test_shorter_names_rank_ahead_of_population():
    rows = [
        make_row(1, "Springfield Township", population=50000),
        make_row(2, "Springfield", population=100),
    ]
    index = SearchIndex.build(EntityStore.load(rows), max_candidates=1)
    assert ids(index.search("Springfield")) == ["2"]
