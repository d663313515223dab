"""
Engine configuration.
"""

from dataclasses import dataclass

from config.settings import settings


@dataclass
class EngineConfig:
    """Configuration for indexing, scoring and batch handling."""
    # Candidates per query
    default_limit: int = 5
    max_limit: int = 50

    # Batch handling
    max_batch_size: int = 1000
    batch_timeout_seconds: float = 30.0
    worker_concurrency: int = 8

    # Scoring (0-100 scale)
    match_threshold: int = 95
    match_margin: int = 10
    tie_break_margin: int = 2
    fuzzy_token_threshold: int = 80

    # Search index bounds
    fuzzy_expansions: int = 10
    prefix_expansions: int = 200
    max_index_candidates: int = 500
    suggest_limit: int = 10

    @classmethod
    def from_settings(cls) -> "EngineConfig":
        return cls(
            default_limit=settings.DEFAULT_LIMIT,
            max_limit=settings.MAX_LIMIT,
            max_batch_size=settings.MAX_BATCH_SIZE,
            batch_timeout_seconds=settings.BATCH_TIMEOUT_SECONDS,
            worker_concurrency=settings.WORKER_CONCURRENCY,
            match_threshold=settings.MATCH_THRESHOLD,
            match_margin=settings.MATCH_MARGIN,
            tie_break_margin=settings.TIE_BREAK_MARGIN,
            fuzzy_token_threshold=settings.FUZZY_TOKEN_THRESHOLD,
            fuzzy_expansions=settings.FUZZY_EXPANSIONS,
            prefix_expansions=settings.PREFIX_EXPANSIONS,
            max_index_candidates=settings.MAX_INDEX_CANDIDATES,
            suggest_limit=settings.SUGGEST_LIMIT,
        )

    def index_options(self) -> dict:
        """Keyword arguments for SearchIndex.build()."""
        return {
            "fuzzy_threshold": self.fuzzy_token_threshold,
            "fuzzy_expansions": self.fuzzy_expansions,
            "prefix_expansions": self.prefix_expansions,
            "max_candidates": self.max_index_candidates,
        }
