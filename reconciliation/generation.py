"""
Load generations.

A generation is one immutable build of the entity store and search index.
Reloading builds a complete new generation off to the side and then swaps the
active pointer; batches already running keep the generation they started with.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from reconciliation.config import EngineConfig
from reconciliation.index import SearchIndex
from reconciliation.store import EntityStore
from reconciliation.types import TypeCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Generation:
    """One store/index pair plus its type names."""
    number: int
    store: EntityStore
    index: SearchIndex
    catalog: TypeCatalog
    loaded_at: datetime

    def summary(self) -> dict:
        return {
            "generation": self.number,
            "entities": len(self.store),
            "tokens": self.index.vocabulary_size,
            "loaded_at": self.loaded_at.isoformat(),
            "load_stats": self.store.stats.as_dict(),
        }


def build_generation(
    rows: Iterable[Mapping[str, Any]],
    number: int = 1,
    config: Optional[EngineConfig] = None,
    feature_codes: Optional[Mapping[str, tuple[str, str]]] = None,
) -> Generation:
    """
    Build a generation from loader rows.

    Raises:
        LoadError: if the store cannot be built
    """
    config = config or EngineConfig()
    store = EntityStore.load(rows)
    index = SearchIndex.build(store, **config.index_options())
    return Generation(
        number=number,
        store=store,
        index=index,
        catalog=TypeCatalog(feature_codes),
        loaded_at=datetime.now(timezone.utc),
    )


class GenerationManager:
    """
    Holds the active generation and swaps in new ones.

    Usage:
        manager = GenerationManager(config)
        manager.reload(loader.rows(), feature_codes)
        generation = manager.active
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._active: Optional[Generation] = None
        self._swap_lock = threading.Lock()
        self._build_lock = threading.Lock()
        self._counter = 0

    @property
    def active(self) -> Generation:
        generation = self._active
        if generation is None:
            raise RuntimeError("No generation loaded")
        return generation

    @property
    def is_loaded(self) -> bool:
        return self._active is not None

    def reload(
        self,
        rows: Iterable[Mapping[str, Any]],
        feature_codes: Optional[Mapping[str, tuple[str, str]]] = None,
    ) -> Generation:
        """
        Build a new generation and make it active.

        A failed build leaves the current generation in place.

        Raises:
            LoadError: if the new store cannot be built
        """
        with self._build_lock:
            number = self._counter + 1
            logger.info(f"Building generation {number}...")
            generation = build_generation(
                rows, number=number, config=self.config, feature_codes=feature_codes
            )
            self._counter = number

            with self._swap_lock:
                previous = self._active
                self._active = generation

        if previous is not None:
            logger.info(f"Swapped generation {previous.number} -> {generation.number}")
        else:
            logger.info(f"Generation {generation.number} active")
        return generation
