"""
Error taxonomy for the reconciliation engine.

Only LoadError and BatchTooLarge ever reach a caller as a failure of the whole
operation. PerQueryError and QueryTimeout are attached to a single query's
result; NotFound is recovered locally by whoever did the lookup.
"""


class ReconciliationError(Exception):
    """Base class for all engine errors."""


class LoadError(ReconciliationError):
    """The entity store could not be built (fatal at startup)."""

    def __init__(self, message: str, stats=None):
        super().__init__(message)
        self.stats = stats


class NotFound(ReconciliationError, KeyError):
    """Single entity lookup miss."""

    def __init__(self, entity_id: str):
        super().__init__(entity_id)
        self.entity_id = entity_id

    def __str__(self) -> str:
        return f"Entity not found: {self.entity_id}"


class BatchTooLarge(ReconciliationError):
    """The batch exceeds the configured maximum query count."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Batch of {size} queries exceeds the maximum of {limit}")
        self.size = size
        self.limit = limit


class PerQueryError(ReconciliationError):
    """Structurally invalid input for one query (e.g. malformed type filter)."""


class QueryTimeout(ReconciliationError):
    """A query did not finish within the batch wall-clock budget."""

    def __init__(self, key: str):
        super().__init__("timeout")
        self.key = key
