# =============================================================================
# Migration Record Store
# =============================================================================
# Append-only history of index schema migrations. Unlike build writes,
# failures here propagate: migration outcomes are the authoritative history.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Optional

from bson import ObjectId
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..errors import InvalidVersion, RecordNotFound
from ..models.config import LensSettings, MongoSettings
from ..models.migration import MigrationRecord, MigrationState
from ._mongo import connect, find_by_id, reading, translate_write_error

__all__ = ["MigrationStore"]

logger = logging.getLogger(__name__)

# Missing version fields sort below any real version in descending order
VERSION_SORT = [
    ("version_major", DESCENDING),
    ("version_minor", DESCENDING),
    ("created_at", DESCENDING),
]


def _validate_version_part(name: str, value: Any) -> int:
    if value is None:
        raise InvalidVersion(f"{name} is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidVersion(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidVersion(f"{name} must be non-negative, got {value}")
    return value


class MigrationStore:
    """Store for the indexable_migration_logs collection."""

    COLLECTION: ClassVar[str] = "indexable_migration_logs"

    def __init__(
        self, collection: Collection, settings: Optional[LensSettings] = None
    ) -> None:
        self._collection = collection
        self.settings = settings or LensSettings()

    @classmethod
    def from_client(
        cls, client: MongoClient, database: str, settings: Optional[LensSettings] = None
    ) -> "MigrationStore":
        return cls(client[database][cls.COLLECTION], settings)

    @classmethod
    def from_settings(cls, mongo: MongoSettings, lens: LensSettings) -> "MigrationStore":
        return cls.from_client(connect(mongo, lens), mongo.database, lens)

    @property
    def collection(self) -> Collection:
        return self._collection

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_migration(
        self,
        index_model: str,
        version_major: int,
        version_minor: int,
        schema_map: Optional[dict[str, Any]] = None,
        error: str | BaseException | None = None,
    ) -> MigrationRecord:
        """
        Append an immutable migration record.

        Args:
            index_model: Resolved index-model identifier
            version_major: Major schema version (non-negative int)
            version_minor: Minor schema version (non-negative int)
            schema_map: Resulting schema snapshot (state=success)
            error: Failure description (state=failed); takes precedence

        With neither ``schema_map`` nor ``error`` the record is ``undefined``,
        which is reserved for administrative repair entries.

        Raises:
            InvalidVersion: Version fields are malformed, or a successful
                migration would move the version backwards
            WriteFailure: The write was rejected or timed out
            StoreUnavailable: The store could not be reached
        """
        major = _validate_version_part("version_major", version_major)
        minor = _validate_version_part("version_minor", version_minor)

        if error is not None:
            state = MigrationState.FAILED
            snapshot: dict[str, Any] = {"error": str(error) or type(error).__name__}
        elif schema_map is not None:
            state = MigrationState.SUCCESS
            snapshot = dict(schema_map)
        else:
            state = MigrationState.UNDEFINED
            snapshot = {}

        if state == MigrationState.SUCCESS:
            current = self.latest_successful(index_model)
            if current is not None and (major, minor) < (
                current.version_major or 0,
                current.version_minor or 0,
            ):
                raise InvalidVersion(
                    f"Migration {major}.{minor} for {index_model} is older than "
                    f"the current version {current.version}"
                )

        object_id = ObjectId()
        document = {
            "_id": object_id,
            "record_id": str(object_id),
            "index_model": index_model,
            "state": state.value,
            "version_major": major,
            "version_minor": minor,
            "map": snapshot,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            self._collection.insert_one(document)
        except PyMongoError as e:
            logger.error(
                f"Failed to record migration {major}.{minor} for {index_model}: {e}"
            )
            raise translate_write_error(e) from e

        if state == MigrationState.FAILED:
            logger.error(f"Migration {major}.{minor} for {index_model} failed: {snapshot['error']}")
        else:
            logger.info(f"Recorded migration {major}.{minor} for {index_model} ({state.value})")

        return MigrationRecord.from_document(document)

    def run(
        self,
        index_model: str,
        version_major: int,
        version_minor: int,
        apply: Callable[[], dict[str, Any]],
    ) -> MigrationRecord:
        """
        Execute a caller-supplied migration and record its outcome.

        ``apply`` performs the schema change and returns the resulting schema
        map. If it raises, the failure is recorded and the exception re-raised.
        """
        try:
            schema_map = apply()
        except Exception as e:
            self.record_migration(index_model, version_major, version_minor, error=e)
            raise
        return self.record_migration(
            index_model, version_major, version_minor, schema_map=schema_map or {}
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find_first(self, criteria: dict[str, Any]) -> Optional[MigrationRecord]:
        with reading():
            document = self._collection.find_one(criteria, sort=VERSION_SORT)
        return MigrationRecord.from_document(document) if document else None

    def latest(self, index_model: str) -> Optional[MigrationRecord]:
        """Record with the highest (major, minor); ties go to the newest."""
        return self._find_first({"index_model": index_model})

    def latest_successful(self, index_model: str) -> Optional[MigrationRecord]:
        return self._find_first(
            {"index_model": index_model, "state": MigrationState.SUCCESS.value}
        )

    def history(self, index_model: str, limit: int = 50) -> list[MigrationRecord]:
        """Migration records, highest version first."""
        if limit < 1:
            return []
        with reading():
            cursor = (
                self._collection.find({"index_model": index_model})
                .sort(VERSION_SORT)
                .limit(limit)
            )
            return [MigrationRecord.from_document(doc) for doc in cursor]

    def errors(self, index_model: str, limit: int = 50) -> list[MigrationRecord]:
        """Failed migrations, newest first."""
        if limit < 1:
            return []
        with reading():
            cursor = (
                self._collection.find(
                    {"index_model": index_model, "state": MigrationState.FAILED.value}
                )
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            return [MigrationRecord.from_document(doc) for doc in cursor]

    def count(self, index_model: str) -> int:
        with reading():
            return self._collection.count_documents({"index_model": index_model})

    def index_models(self) -> list[str]:
        with reading():
            return sorted(self._collection.distinct("index_model"))

    def next_version(self, index_model: str, breaking: bool = False) -> tuple[int, int]:
        """
        Version for the next migration of an index model.

        A breaking change (fields removed or retyped) bumps the major version
        and resets minor; anything else bumps minor. The first migration is 1.0.
        """
        current = self.latest_successful(index_model)
        if current is None or current.version_major is None:
            return 1, 0
        if breaking:
            return current.version_major + 1, 0
        return current.version_major, (current.version_minor or 0) + 1

    def find(self, record_id: str) -> Optional[MigrationRecord]:
        document = find_by_id(
            self._collection, record_id, prefix_lookup=self.settings.prefix_lookup
        )
        return MigrationRecord.from_document(document) if document else None

    def get(self, record_id: str) -> MigrationRecord:
        record = self.find(record_id)
        if record is None:
            raise RecordNotFound(record_id, kind="migration log")
        return record
