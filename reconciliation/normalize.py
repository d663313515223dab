"""
Text normalization shared by indexing, querying and scoring.

Names and queries must go through the same functions, otherwise the index and
the scorer disagree on what a token is.
"""

import re
import unicodedata

TOKEN_PATTERN = re.compile(r"\w+")

# Letters that do not decompose under NFKD
SPECIAL_FOLDS = str.maketrans({
    "ß": "ss",
    "æ": "ae",
    "Æ": "ae",
    "ø": "o",
    "Ø": "o",
    "œ": "oe",
    "Œ": "oe",
    "đ": "d",
    "Đ": "d",
    "ł": "l",
    "Ł": "l",
    "ı": "i",
    "þ": "th",
    "Þ": "th",
})


def fold(text: str) -> str:
    """
    Lower-case and strip diacritics.

    - NFKD decomposition, combining marks dropped
    - A handful of letters without a decomposition mapped by hand
    - casefold() for case-insensitive comparison
    """
    if not text:
        return ""
    text = text.translate(SPECIAL_FOLDS)
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def tokenize(text: str) -> list[str]:
    """Split folded text into word tokens, keeping order and duplicates."""
    return TOKEN_PATTERN.findall(fold(text))


def token_set(text: str) -> frozenset[str]:
    return frozenset(tokenize(text))


def normalize_text(text: str) -> str:
    """Canonical single-string form used for exact-name comparison."""
    return " ".join(tokenize(text))
