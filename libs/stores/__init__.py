"""MongoDB-backed stores for build and migration audit records."""

from .aggregation import AggregationQueries
from .build_store import BuildAttempt, BuildStore
from .migration_store import MigrationStore

__all__ = [
    "AggregationQueries",
    "BuildAttempt",
    "BuildStore",
    "MigrationStore",
]
