"""
Search Index

Inverted token index over every entity name (primary, ascii and alternates).
Maps a free-text query to a bounded, partially ranked set of candidate ids
without touching every entity:

- exact token lookup in the posting lists
- prefix lookup over a sorted vocabulary (partial typing)
- fuzzy lookup for tokens with no exact posting (typos), scored with
  rapidfuzz over a vocabulary bucketed by first letter and token length

The final ranking is the Scorer's job; the order produced here only decides
which ids survive the candidate bound.
"""

import heapq
import logging
from bisect import bisect_left
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

from rapidfuzz import fuzz, process

from reconciliation.models import id_sort_key
from reconciliation.normalize import normalize_text, tokenize
from reconciliation.store import EntityStore

logger = logging.getLogger(__name__)

# Highest code point, used as the upper bound of a prefix range
PREFIX_SENTINEL = "\U0010ffff"


@dataclass
class TokenMatch:
    """How one candidate entity matched the query tokens."""
    entity_id: str
    matched_tokens: int = 0
    exact_tokens: int = 0
    exact_name: bool = False


class SearchIndex:
    """
    Token index derived from an EntityStore.

    Usage:
        index = SearchIndex.build(store)
        matches = index.search("new york")
    """

    def __init__(
        self,
        store: EntityStore,
        fuzzy_threshold: int = 80,
        fuzzy_expansions: int = 10,
        prefix_expansions: int = 200,
        max_candidates: int = 500,
        min_prefix_length: int = 2,
        min_fuzzy_length: int = 3,
        max_length_difference: int = 2,
    ):
        self.store = store
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_expansions = fuzzy_expansions
        self.prefix_expansions = prefix_expansions
        self.max_candidates = max_candidates
        self.min_prefix_length = min_prefix_length
        self.min_fuzzy_length = min_fuzzy_length
        self.max_length_difference = max_length_difference

        self._postings: dict[str, set[str]] = defaultdict(set)
        self._vocabulary: list[str] = []
        self._fuzzy_buckets: dict[tuple[str, int], list[str]] = {}
        # Whole names (joined tokens) and the token count of each entity's shortest name
        self._names: dict[str, set[str]] = defaultdict(set)
        self._name_lengths: dict[str, int] = {}

    @classmethod
    def build(cls, store: EntityStore, **options) -> "SearchIndex":
        """Tokenize every name in the store and build all lookup structures."""
        index = cls(store, **options)
        for entity in store.entities():
            for name in entity.names:
                tokens = tokenize(name)
                for token in tokens:
                    # Posting lists are sets: an id appears once per token no
                    # matter how many of its names contain it
                    index._postings[token].add(entity.id)
                if tokens:
                    index._names[normalize_text(name)].add(entity.id)
                    shortest = index._name_lengths.get(entity.id, len(tokens))
                    index._name_lengths[entity.id] = min(shortest, len(tokens))

        index._postings = dict(index._postings)
        index._names = dict(index._names)
        index._vocabulary = sorted(index._postings)

        buckets: dict[tuple[str, int], list[str]] = defaultdict(list)
        for token in index._vocabulary:
            buckets[(token[0], len(token))].append(token)
        index._fuzzy_buckets = dict(buckets)

        logger.info(
            f"Built search index: {len(index._vocabulary):,} tokens "
            f"over {len(store):,} entities"
        )
        return index

    # ------------------------------------------------------------------
    # Token expansion

    def postings(self, token: str) -> frozenset[str]:
        return frozenset(self._postings.get(token, ()))

    def prefix_tokens(self, token: str, limit: Optional[int] = None) -> list[str]:
        """
        Vocabulary tokens that start with ``token`` (excluding ``token`` itself).

        When more than ``limit`` tokens share the prefix, the ones with the
        longest posting lists are kept.
        """
        if len(token) < self.min_prefix_length:
            return []
        limit = self.prefix_expansions if limit is None else limit

        lo = bisect_left(self._vocabulary, token)
        hi = bisect_left(self._vocabulary, token + PREFIX_SENTINEL, lo)
        tokens = [t for t in self._vocabulary[lo:hi] if t != token]
        if len(tokens) > limit:
            tokens = heapq.nlargest(limit, tokens, key=lambda t: len(self._postings[t]))
        return tokens

    def fuzzy_tokens(self, token: str) -> list[str]:
        """Vocabulary tokens within the fuzzy ratio threshold of ``token``."""
        if len(token) < self.min_fuzzy_length:
            return []

        choices = []
        for length in range(
            len(token) - self.max_length_difference,
            len(token) + self.max_length_difference + 1,
        ):
            choices.extend(self._fuzzy_buckets.get((token[0], length), ()))
        if not choices:
            return []

        results = process.extract(
            token,
            choices,
            scorer=fuzz.ratio,
            score_cutoff=self.fuzzy_threshold,
            limit=self.fuzzy_expansions,
        )
        return [choice for choice, score, _ in results if choice != token]

    # ------------------------------------------------------------------
    # Queries

    def search(
        self,
        text: str,
        accept: Optional[Callable[[str], bool]] = None,
    ) -> list[TokenMatch]:
        """
        Find candidate entities for a query.

        A candidate qualifies when at least one query token equals one of its
        name tokens or is a prefix of one (or, for tokens that match nothing
        exactly, is a close fuzzy match). Entities with a name equal to the
        whole query come first, then those matching more query tokens, then
        those with shorter names; the list is bounded by ``max_candidates``.

        ``accept`` filters ids before the bound is applied, so a hard filter
        never loses candidates to ids it would reject anyway.
        """
        query_tokens = list(dict.fromkeys(tokenize(text)))
        if not query_tokens:
            return []

        matches: dict[str, TokenMatch] = {}
        for token in query_tokens:
            exact_ids = self._postings.get(token, set())

            expanded = self.prefix_tokens(token)
            if not exact_ids:
                expanded.extend(self.fuzzy_tokens(token))

            expanded_ids: set[str] = set()
            for other in expanded:
                expanded_ids.update(self._postings[other])

            for entity_id in exact_ids:
                match = matches.setdefault(entity_id, TokenMatch(entity_id))
                match.matched_tokens += 1
                match.exact_tokens += 1
            for entity_id in expanded_ids - exact_ids:
                match = matches.setdefault(entity_id, TokenMatch(entity_id))
                match.matched_tokens += 1

        for entity_id in self._names.get(normalize_text(text), ()):
            if entity_id in matches:
                matches[entity_id].exact_name = True

        if accept is not None:
            matches = {k: v for k, v in matches.items() if accept(k)}
        if not matches:
            return []

        return heapq.nsmallest(
            self.max_candidates, matches.values(), key=self._candidate_key
        )

    def suggest(self, prefix: str, limit: int = 10, offset: int = 0) -> list[str]:
        """
        Entity ids whose names contain a token starting with every prefix token.

        Ranked by population (most prominent first), then id.
        """
        tokens = list(dict.fromkeys(tokenize(prefix)))
        if not tokens:
            return []

        ids: Optional[set[str]] = None
        for token in tokens:
            token_ids = set(self._postings.get(token, ()))
            for other in self.prefix_tokens(token):
                token_ids.update(self._postings[other])
            ids = token_ids if ids is None else ids & token_ids
            if not ids:
                return []

        ranked = heapq.nsmallest(offset + limit, ids, key=self._popularity_key)
        return ranked[offset:offset + limit]

    def _popularity_key(self, entity_id: str) -> tuple:
        entity = self.store.find(entity_id)
        population = entity.population if entity else 0
        return (-population, id_sort_key(entity_id))

    def _candidate_key(self, match: TokenMatch) -> tuple:
        # Exact whole-name matches and short names survive the bound ahead of
        # more populous entities that merely share a token
        return (
            not match.exact_name,
            -match.matched_tokens,
            -match.exact_tokens,
            self._name_lengths.get(match.entity_id, 0),
            *self._popularity_key(match.entity_id),
        )

    @property
    def vocabulary_size(self) -> int:
        return len(self._vocabulary)

    def __repr__(self) -> str:
        return f"<SearchIndex({self.vocabulary_size} tokens)>"
