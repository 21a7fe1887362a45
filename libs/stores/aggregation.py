# =============================================================================
# Aggregation Queries
# =============================================================================
# Read-side queries consumed by dashboards and health checks: group-by
# identifier counts, filter-by-state listings and id lookups.
# =============================================================================

from typing import Optional

from ..identifiers import sanitize_index_model_name
from ..models.build import BuildRecord, BuildSummary
from ..models.migration import MigrationRecord, MigrationSummary
from .build_store import BuildStore
from .migration_store import MigrationStore

__all__ = ["AggregationQueries"]


class AggregationQueries:
    """Dashboard queries over the build and migration stores."""

    def __init__(self, builds: BuildStore, migrations: MigrationStore) -> None:
        self.builds = builds
        self.migrations = migrations

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def build_index_models(self) -> list[str]:
        return self.builds.index_models()

    def build_status(self, index_model: str) -> BuildSummary:
        return self.builds.summary(index_model)

    def build_summaries(self) -> list[BuildSummary]:
        """One row per index model with failed, skipped and total counts."""
        return [self.builds.summary(model) for model in self.build_index_models()]

    def failed_builds(self, index_model: str, limit: int = 50) -> list[BuildRecord]:
        return self.builds.failed(sanitize_index_model_name(index_model), limit=limit)

    def find_build(self, record_id: str) -> Optional[BuildRecord]:
        return self.builds.find(record_id)

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    def migration_index_models(self) -> list[str]:
        return self.migrations.index_models()

    def migration_summaries(self) -> list[MigrationSummary]:
        summaries = []
        for model in self.migration_index_models():
            latest = self.migrations.latest(model)
            summaries.append(
                MigrationSummary(
                    index_model=model,
                    latest_version=latest.version if latest else "N/A",
                    latest_state=latest.state if latest else None,
                    total=self.migrations.count(model),
                    last_migrated_at=latest.created_at if latest else None,
                )
            )
        return summaries

    def migration_history(self, index_model: str, limit: int = 50) -> list[MigrationRecord]:
        return self.migrations.history(index_model.strip().lower(), limit=limit)

    def find_migration(self, record_id: str) -> Optional[MigrationRecord]:
        return self.migrations.find(record_id)
