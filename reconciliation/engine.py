"""
Reconciliation Engine

Runs a batch of queries against the active generation:

Received -> PerQueryDispatch -> Aggregating -> Responding

- The whole batch is rejected up front if it is larger than the cap
- Every query runs on its own worker thread, bounded by a semaphore
- A query that fails gets an empty result with an error note; its siblings
  are unaffected
- Queries still running when the wall-clock budget runs out get a timeout
  note; everything that finished is returned
- Timed-out work is told to stop, and its threads are left to a retired
  pool so later batches start on fresh workers
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Optional

from reconciliation.config import EngineConfig
from reconciliation.errors import BatchTooLarge, NotFound, PerQueryError, QueryTimeout
from reconciliation.generation import Generation, GenerationManager
from reconciliation.models import Candidate, Query, QueryResult
from reconciliation.scorer import PreparedQuery, Scorer, matches_type, parse_type_filters

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Batch reconciliation over the active generation.

    Usage:
        engine = ReconciliationEngine(manager)
        results = engine.reconcile({
            "q0": Query(key="q0", text="London", type_filters=("P",)),
        })
        for candidate in results["q0"].candidates:
            print(candidate.name, candidate.score)
    """

    def __init__(
        self,
        generations: GenerationManager,
        config: Optional[EngineConfig] = None,
        scorer: Optional[Scorer] = None,
    ):
        self.generations = generations
        self.config = config or generations.config
        self.scorer = scorer or Scorer(
            fuzzy_threshold=self.config.fuzzy_token_threshold,
            tie_break_margin=self.config.tie_break_margin,
            match_threshold=self.config.match_threshold,
            match_margin=self.config.match_margin,
        )
        self._executor_lock = threading.Lock()
        self._executor = self._new_executor()
        self._cancel_events: set[threading.Event] = set()

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self.config.worker_concurrency,
            thread_name_prefix="reconcile",
        )

    def _retire_executor(self, executor: ThreadPoolExecutor):
        """
        Swap in a fresh pool.

        The retired pool is dropped rather than shut down so work other
        batches already queued on it still runs; its threads exit once idle.
        """
        with self._executor_lock:
            if self._executor is executor:
                self._executor = self._new_executor()

    def reconcile(self, batch: Mapping[str, Query]) -> dict[str, QueryResult]:
        """
        Synchronous entry point for callers without an event loop.

        Raises:
            BatchTooLarge: if the batch exceeds the configured cap
        """
        return asyncio.run(self.reconcile_async(batch))

    async def reconcile_async(self, batch: Mapping[str, Query]) -> dict[str, QueryResult]:
        """
        Reconcile every query in the batch.

        Returns a mapping with exactly the keys of ``batch``.

        Raises:
            BatchTooLarge: if the batch exceeds the configured cap
        """
        # Received
        if len(batch) > self.config.max_batch_size:
            logger.warning(
                f"Rejected batch of {len(batch)} queries "
                f"(max {self.config.max_batch_size})"
            )
            raise BatchTooLarge(len(batch), self.config.max_batch_size)

        generation = self.generations.active
        logger.debug(f"Received batch of {len(batch)} queries (generation {generation.number})")
        if not batch:
            return {}

        # PerQueryDispatch
        semaphore = asyncio.Semaphore(self.config.worker_concurrency)
        loop = asyncio.get_running_loop()
        cancelled = threading.Event()
        with self._executor_lock:
            self._cancel_events.add(cancelled)
        used: set[ThreadPoolExecutor] = set()

        async def dispatch(query: Query) -> QueryResult:
            async with semaphore:
                executor = self._executor
                used.add(executor)
                return await loop.run_in_executor(
                    executor, self._run_isolated, query, generation, cancelled
                )

        tasks = {
            key: asyncio.create_task(dispatch(query))
            for key, query in batch.items()
        }
        timeout = self.config.batch_timeout_seconds
        try:
            done, pending = await asyncio.wait(
                tasks.values(), timeout=timeout if timeout and timeout > 0 else None
            )
        finally:
            with self._executor_lock:
                self._cancel_events.discard(cancelled)
        for task in pending:
            task.cancel()
        if pending:
            cancelled.set()
            for executor in used:
                self._retire_executor(executor)
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"Batch timed out after {timeout}s: "
                f"{len(pending)} of {len(tasks)} queries unfinished"
            )

        # Aggregating
        results: dict[str, QueryResult] = {}
        for key, task in tasks.items():
            if task in done:
                results[key] = task.result()
            else:
                results[key] = QueryResult(error=str(QueryTimeout(key)))

        # Responding
        logger.debug(f"Batch complete: {len(results)} results")
        return results

    def _run_isolated(
        self,
        query: Query,
        generation: Generation,
        cancelled: Optional[threading.Event] = None,
    ) -> QueryResult:
        """Run one query; turn any failure into a per-query error note."""
        try:
            return self.run_query(query, generation, cancelled)
        except QueryTimeout as e:
            logger.debug(f"Query {query.key!r} abandoned after the batch timed out")
            return QueryResult(error=str(e))
        except PerQueryError as e:
            logger.info(f"Query {query.key!r} rejected: {e}")
            return QueryResult(error=str(e))
        except Exception as e:
            logger.error(f"Query {query.key!r} failed: {e}", exc_info=True)
            return QueryResult(error=f"internal error: {e}")

    def run_query(
        self,
        query: Query,
        generation: Optional[Generation] = None,
        cancelled: Optional[threading.Event] = None,
    ) -> QueryResult:
        """
        Run a single query.

        ``cancelled`` is checked before the index lookup and between scored
        candidates; once set, the query stops.

        Raises:
            PerQueryError: on a malformed type filter, limit or query text
            QueryTimeout: if ``cancelled`` is set before the query finishes
        """
        generation = generation or self.generations.active
        if cancelled is not None and cancelled.is_set():
            raise QueryTimeout(query.key)
        if not isinstance(query.text, str):
            raise PerQueryError("Query text must be a string")
        filters = parse_type_filters(query.type_filters)
        limit = self.resolve_limit(query.limit)

        prepared = PreparedQuery.from_text(query.text)
        if not prepared.tokens:
            return QueryResult()

        store = generation.store

        def accept(entity_id: str) -> bool:
            entity = store.find(entity_id)
            return entity is not None and matches_type(entity.type_id, filters)

        matches = generation.index.search(query.text, accept=accept if filters else None)

        scored = []
        for match in matches:
            if cancelled is not None and cancelled.is_set():
                raise QueryTimeout(query.key)
            try:
                entity = store.get(match.entity_id)
            except NotFound:
                logger.debug(f"Index returned unknown id {match.entity_id}")
                continue
            scored.append(self.scorer.score_entity(prepared, entity))

        ranked = self.scorer.rank(scored)
        flagged = self.scorer.is_match(ranked)

        candidates = []
        for position, item in enumerate(ranked[:limit]):
            entity = item.entity
            candidates.append(Candidate(
                entity_id=entity.id,
                name=entity.display_name,
                type_id=entity.type_id,
                type_name=generation.catalog.name_for(entity.type_id),
                score=item.score,
                match=flagged and position == 0,
                country_code=entity.country_code,
                population=entity.population,
            ))

        return QueryResult(candidates=candidates)

    def resolve_limit(self, limit) -> int:
        """
        Apply the default and the hard cap to a requested limit.

        Raises:
            PerQueryError: for a non-integer or non-positive limit
        """
        if limit is None:
            return min(self.config.default_limit, self.config.max_limit)
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise PerQueryError(f"Invalid limit: {limit!r}")
        if limit <= 0:
            raise PerQueryError(f"Limit must be positive: {limit}")
        return min(limit, self.config.max_limit)

    def close(self):
        with self._executor_lock:
            for cancelled in self._cancel_events:
                cancelled.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
