"""
Tests for text normalization.
"""

from reconciliation.normalize import fold, normalize_text, token_set, tokenize


def test_fold_strips_diacritics_and_case():
    assert fold("São Paulo") == "sao paulo"
    assert fold("ZÜRICH") == "zurich"
    assert fold("Kraków") == "krakow"


def test_fold_handles_letters_without_decomposition():
    assert fold("Straße") == "strasse"
    assert fold("Łódź") == "lodz"
    assert fold("Ærøskøbing") == "aeroskobing"


def test_tokenize_splits_on_punctuation():
    assert tokenize("Newcastle-upon-Tyne") == ["newcastle", "upon", "tyne"]
    assert tokenize("St. John's") == ["st", "john", "s"]
    assert tokenize("  ") == []
    assert tokenize("") == []


def test_token_set_and_normalized_text():
    assert token_set("New York, New York") == frozenset({"new", "york"})
    assert normalize_text("  Saint-Étienne ") == "saint etienne"
