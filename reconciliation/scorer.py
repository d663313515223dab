"""
Candidate scoring and ranking.

Token-set similarity on a 0-100 scale:
- Soft Jaccard overlap between query tokens and the tokens of each entity
  name (primary, ascii, alternates); the best name wins
- Equal tokens weigh 1.0; prefix or near-miss tokens weigh their rapidfuzz
  ratio; anything else weighs nothing
- A query equal to a whole normalized name scores 100
- Population breaks near-ties (within a couple of points)
"""

import re
from dataclasses import dataclass
from typing import Iterable

from rapidfuzz import fuzz

from reconciliation.errors import PerQueryError
from reconciliation.models import Entity, FeatureClass, id_sort_key
from reconciliation.normalize import normalize_text, tokenize

TYPE_FILTER_PATTERN = re.compile(r"^[A-Z](\.[A-Z0-9]*)?$")


@dataclass(frozen=True)
class PreparedQuery:
    """Query text tokenized once per query rather than once per candidate."""
    text: str
    tokens: frozenset[str]
    normalized: str

    @classmethod
    def from_text(cls, text: str) -> "PreparedQuery":
        return cls(text=text, tokens=frozenset(tokenize(text)), normalized=normalize_text(text))


@dataclass
class ScoredEntity:
    """An entity with its score and the name that produced it."""
    entity: Entity
    score: int
    matched_name: str = ""

    def __repr__(self) -> str:
        return f"<ScoredEntity({self.entity.id}, {self.matched_name!r}, score={self.score})>"


def parse_type_filters(filters: Iterable[str]) -> tuple[str, ...]:
    """
    Validate and normalize type filter prefixes.

    Accepted forms: ``P`` (feature class) or ``P.PPL`` (class plus a code
    prefix). Unknown classes and anything else are rejected.

    Raises:
        PerQueryError: on malformed filter syntax
    """
    parsed = []
    for raw in filters:
        if not isinstance(raw, str):
            raise PerQueryError(f"Invalid type filter: {raw!r}")
        value = raw.strip().upper()
        if not TYPE_FILTER_PATTERN.match(value):
            raise PerQueryError(f"Invalid type filter: {raw!r}")
        if FeatureClass.parse(value[0]) is None:
            raise PerQueryError(f"Unknown feature class in type filter: {raw!r}")
        if value not in parsed:
            parsed.append(value)
    return tuple(parsed)


def matches_type(type_id: str, filters: tuple[str, ...]) -> bool:
    """True when there is no filter or the type starts with any filter prefix."""
    if not filters:
        return True
    return any(type_id.startswith(f) for f in filters)


class Scorer:
    """
    Scores entities against a query and ranks the results.

    Usage:
        scorer = Scorer()
        query = PreparedQuery.from_text("London")
        ranked = scorer.rank([scorer.score_entity(query, e) for e in entities])
        flagged = scorer.is_match(ranked)
    """

    def __init__(
        self,
        fuzzy_threshold: int = 80,
        tie_break_margin: int = 2,
        match_threshold: int = 95,
        match_margin: int = 10,
    ):
        """
        Initialize scorer.

        Args:
            fuzzy_threshold: Minimum rapidfuzz ratio (0-100) for a non-prefix
                token pair to count as a partial match
            tie_break_margin: Score distance within which population decides
            match_threshold: Minimum top score for an automatic match
            match_margin: Minimum gap between the top two scores for a match
        """
        self.fuzzy_threshold = fuzzy_threshold
        self.tie_break_margin = tie_break_margin
        self.match_threshold = match_threshold
        self.match_margin = match_margin

    def token_weight(self, query_token: str, name_token: str) -> float:
        """Similarity of a single token pair (0.0-1.0)."""
        if query_token == name_token:
            return 1.0
        ratio = fuzz.ratio(query_token, name_token)
        if name_token.startswith(query_token) or ratio >= self.fuzzy_threshold:
            return ratio / 100.0
        return 0.0

    def overlap(self, query_tokens: frozenset[str], name_tokens: frozenset[str]) -> float:
        """
        Soft Jaccard overlap |Q ∩ E| / |Q ∪ E|.

        Token pairs are matched one-to-one, best pairs first, so with exact
        tokens only this is the plain Jaccard ratio.
        """
        if not query_tokens or not name_tokens:
            return 0.0

        pairs = []
        for q in query_tokens:
            for t in name_tokens:
                weight = self.token_weight(q, t)
                if weight > 0:
                    pairs.append((weight, q, t))
        pairs.sort(key=lambda p: (-p[0], p[1], p[2]))

        used_query, used_name = set(), set()
        intersection = 0.0
        for weight, q, t in pairs:
            if q in used_query or t in used_name:
                continue
            used_query.add(q)
            used_name.add(t)
            intersection += weight

        union = len(query_tokens) + len(name_tokens) - intersection
        return intersection / union if union > 0 else 0.0

    def score_entity(self, query: PreparedQuery, entity: Entity) -> ScoredEntity:
        """Score an entity against the best-matching of its names."""
        best_name = ""
        best_overlap = -1.0
        for name in entity.names:
            if query.normalized and normalize_text(name) == query.normalized:
                return ScoredEntity(entity=entity, score=100, matched_name=name)
            value = self.overlap(query.tokens, frozenset(tokenize(name)))
            if value > best_overlap:
                best_overlap = value
                best_name = name

        return ScoredEntity(
            entity=entity,
            score=self._to_score(max(best_overlap, 0.0)),
            matched_name=best_name,
        )

    def score(self, query, entity: Entity, token_match=None) -> int:
        """
        Score one (query, entity) pair on the 0-100 scale.

        ``query`` may be raw text or a PreparedQuery. ``token_match`` is the
        index's match info; it decides candidacy only and does not change
        the score.
        """
        if not isinstance(query, PreparedQuery):
            query = PreparedQuery.from_text(query)
        return self.score_entity(query, entity).score

    def rank(self, scored: list[ScoredEntity]) -> list[ScoredEntity]:
        """
        Order scored entities for output.

        Sorted by score, population and id; then every run of candidates
        within ``tie_break_margin`` of the run's first score is reordered by
        population so the more prominent place wins a near-tie.
        """
        ordered = sorted(scored, key=self._score_key)
        ranked: list[ScoredEntity] = []
        i = 0
        while i < len(ordered):
            head = ordered[i].score
            j = i + 1
            while j < len(ordered) and head - ordered[j].score <= self.tie_break_margin:
                j += 1
            ranked.extend(sorted(ordered[i:j], key=self._population_key))
            i = j
        return ranked

    def is_match(self, ranked: list[ScoredEntity]) -> bool:
        """Whether the first ranked candidate is an unambiguous automatic match."""
        if not ranked:
            return False
        top = ranked[0].score
        if top < self.match_threshold:
            return False
        if len(ranked) > 1 and top - ranked[1].score < self.match_margin:
            return False
        return True

    @staticmethod
    def _to_score(overlap: float) -> int:
        # Half-up rounding, clamped
        return max(0, min(100, int(overlap * 100 + 0.5)))

    @staticmethod
    def _score_key(item: ScoredEntity) -> tuple:
        return (-item.score, -item.entity.population, id_sort_key(item.entity.id))

    @staticmethod
    def _population_key(item: ScoredEntity) -> tuple:
        return (-item.entity.population, -item.score, id_sort_key(item.entity.id))

