"""Build Lens Resource - Build and migration audit writes from pipeline ops."""

from __future__ import annotations

from functools import cached_property
from typing import Any, Optional

from dagster import ConfigurableResource
from pydantic import Field
from pymongo import MongoClient
from pymongo.database import Database

from libs.models import BuildRecord, LensSettings, LogData, MigrationRecord
from libs.stores import AggregationQueries, BuildStore, MigrationStore

__all__ = ["BuildLensResource"]


class BuildLensResource(ConfigurableResource):
    """
    Dagster resource for the build & migration audit collections.

    Indexing ops call ``record_build`` (or use ``build_store().attempt``)
    after each index write; migration ops call ``record_migration``. Build
    audit failures are swallowed by the store, migration failures propagate.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("build_lens", description="MongoDB database name")
    log_cap: int = Field(10, ge=1, description="Log entries kept per build record")
    write_retries: int = Field(5, ge=1, description="Conditional update retry budget")
    timeout_ms: int = Field(5000, ge=1, description="Store call timeout in milliseconds")

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(
            self.connection_string,
            serverSelectionTimeoutMS=self.timeout_ms,
            socketTimeoutMS=self.timeout_ms,
        )

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _settings(self) -> LensSettings:
        return LensSettings(
            log_cap=self.log_cap,
            write_retries=self.write_retries,
            timeout_ms=self.timeout_ms,
        )

    def build_store(self) -> BuildStore:
        return BuildStore(self._get_db()[BuildStore.COLLECTION], self._settings())

    def migration_store(self) -> MigrationStore:
        return MigrationStore(self._get_db()[MigrationStore.COLLECTION], self._settings())

    def queries(self) -> AggregationQueries:
        return AggregationQueries(self.build_store(), self.migration_store())

    def record_build(
        self,
        index_model: str,
        model_id: Any,
        model: str,
        success: bool,
        data: LogData | dict[str, Any] | None = None,
        source: str = "",
        state_data: Optional[dict[str, Any]] = None,
        *,
        skipped: bool = False,
    ) -> Optional[BuildRecord]:
        """Record a build attempt. Returns None if the audit write failed."""
        return self.build_store().record_attempt(
            index_model,
            model_id,
            model,
            success,
            data,
            source,
            state_data,
            skipped=skipped,
        )

    def record_migration(
        self,
        index_model: str,
        version_major: int,
        version_minor: int,
        schema_map: Optional[dict[str, Any]] = None,
        error: str | BaseException | None = None,
    ) -> MigrationRecord:
        """Append a migration record. Write failures are raised."""
        return self.migration_store().record_migration(
            index_model,
            version_major,
            version_minor,
            schema_map=schema_map,
            error=error,
        )
