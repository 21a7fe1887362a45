# =============================================================================
# Build Record Store
# =============================================================================
# Persistence and state-machine logic for per-record index build attempts.
# Writes are best-effort: the indexing pipeline must never fail because the
# audit write failed.
# =============================================================================

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, ClassVar, Iterator, Optional

from bson import ObjectId
from bson.errors import BSONError
from pydantic import ValidationError
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import BuildLensError, RecordNotFound, WriteFailure
from ..models.build import BuildRecord, BuildState, BuildSummary, LogData, LogEntry
from ..models.config import LensSettings, MongoSettings
from ._mongo import connect, find_by_id, reading

__all__ = ["BuildStore", "BuildAttempt"]

logger = logging.getLogger(__name__)


class BuildAttempt:
    """
    Handle yielded by :meth:`BuildStore.attempt`.

    The indexing code can mark the attempt as skipped and attach diagnostic
    context before the block exits. ``record`` holds the stored result
    afterwards (None when the audit write failed).
    """

    def __init__(self) -> None:
        self.skipped = False
        self.message: Optional[str] = None
        self.state_data: dict[str, Any] = {}
        self.problematic_field_map: Optional[dict[str, Any]] = None
        self.record: Optional[BuildRecord] = None
        self.duration_ms: Optional[float] = None

    def skip(self, reason: Optional[str] = None) -> None:
        self.skipped = True
        self.message = reason


class BuildStore:
    """
    Store for the indexable_builds collection.

    One document per (index_model, model_id). Each attempt is applied with a
    read / modify / conditional-update loop keyed on the document ``version``
    so that concurrent attempts on the same pair never lose or duplicate a
    log entry. Different pairs are written independently.
    """

    COLLECTION: ClassVar[str] = "indexable_builds"

    def __init__(
        self, collection: Collection, settings: Optional[LensSettings] = None
    ) -> None:
        self._collection = collection
        self.settings = settings or LensSettings()

    @classmethod
    def from_client(
        cls, client: MongoClient, database: str, settings: Optional[LensSettings] = None
    ) -> "BuildStore":
        return cls(client[database][cls.COLLECTION], settings)

    @classmethod
    def from_settings(cls, mongo: MongoSettings, lens: LensSettings) -> "BuildStore":
        return cls.from_client(connect(mongo, lens), mongo.database, lens)

    @property
    def collection(self) -> Collection:
        return self._collection

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_attempt(
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
        """
        Record one build attempt for an (index_model, model_id) pair.

        Creates the record in state ``init`` on first sight, then prepends a
        log entry, evicts entries beyond the log cap and moves the state.
        Re-invocation always appends a new entry.

        Returns:
            The stored record, or None when the write failed. Failures are
            logged and never raised.
        """
        state = BuildState.for_attempt(success, skipped)
        try:
            if data is None:
                log_data = LogData()
            elif isinstance(data, LogData):
                log_data = data
            else:
                log_data = LogData.model_validate(data)
            entry = LogEntry(success=success, skipped=skipped, data=log_data)

            return self._apply(
                index_model,
                str(model_id),
                model,
                entry,
                state,
                source,
                state_data or {},
            )
        except (PyMongoError, BSONError, ValidationError, BuildLensError) as e:
            logger.warning(
                f"Failed to record build attempt for {index_model}/{model_id}: {e}"
            )
            return None

    def record_success(self, index_model: str, model_id: Any, model: str, **kwargs: Any) -> Optional[BuildRecord]:
        return self.record_attempt(index_model, model_id, model, True, **kwargs)

    def record_failure(self, index_model: str, model_id: Any, model: str, **kwargs: Any) -> Optional[BuildRecord]:
        return self.record_attempt(index_model, model_id, model, False, **kwargs)

    def record_skip(self, index_model: str, model_id: Any, model: str, **kwargs: Any) -> Optional[BuildRecord]:
        return self.record_attempt(index_model, model_id, model, True, skipped=True, **kwargs)

    @contextmanager
    def attempt(
        self, index_model: str, model_id: Any, model: str, source: str = ""
    ) -> Iterator[BuildAttempt]:
        """
        Time an indexing block and record its outcome.

        Example:
            >>> with builds.attempt("user", 42, "App\\\\Models\\\\User", "observer:saved") as attempt:
            ...     index_user(42)

        An exception inside the block is recorded as a failed attempt and
        re-raised. The audit write itself never raises.
        """
        tracker = BuildAttempt()
        start_time = time.perf_counter()
        try:
            yield tracker
        except Exception as e:
            tracker.duration_ms = (time.perf_counter() - start_time) * 1000
            tracker.record = self.record_attempt(
                index_model,
                model_id,
                model,
                False,
                {
                    "message": str(e) or type(e).__name__,
                    "details": traceback.format_exc(),
                    "duration_ms": tracker.duration_ms,
                    "problematic_field_map": tracker.problematic_field_map,
                },
                source,
                tracker.state_data,
            )
            raise

        tracker.duration_ms = (time.perf_counter() - start_time) * 1000
        tracker.record = self.record_attempt(
            index_model,
            model_id,
            model,
            True,
            {"message": tracker.message, "duration_ms": tracker.duration_ms},
            source,
            tracker.state_data,
            skipped=tracker.skipped,
        )

    def _apply(
        self,
        index_model: str,
        model_id: str,
        model: str,
        entry: LogEntry,
        state: BuildState,
        source: str,
        state_data: dict[str, Any],
    ) -> BuildRecord:
        entry_doc = entry.model_dump(exclude_none=True)
        cap = self.settings.log_cap

        for attempt in range(1, self.settings.write_retries + 1):
            document = self._load_or_create(index_model, model_id, model)
            logs = [entry_doc, *(document.get("logs") or [])][:cap]

            condition: dict[str, Any] = {"_id": document["_id"]}
            if "version" in document:
                condition["version"] = document["version"]
            else:
                condition["version"] = {"$exists": False}

            updated = self._collection.find_one_and_update(
                condition,
                {
                    "$set": {
                        "model": model,
                        "state": state.value,
                        "logs": logs,
                        "last_source": source,
                        "state_data": state_data,
                        "updated_at": datetime.now(timezone.utc),
                    },
                    "$inc": {"version": 1},
                },
                return_document=ReturnDocument.AFTER,
            )
            if updated is not None:
                return BuildRecord.from_document(updated)

            logger.debug(
                f"Concurrent write on {index_model}/{model_id}, retrying "
                f"({attempt}/{self.settings.write_retries})"
            )

        raise WriteFailure(
            f"Gave up on {index_model}/{model_id} after "
            f"{self.settings.write_retries} conflicting writes"
        )

    def _load_or_create(self, index_model: str, model_id: str, model: str) -> dict[str, Any]:
        key = {"index_model": index_model, "model_id": model_id}
        document = self._collection.find_one(key)
        if document is not None:
            return document

        now = datetime.now(timezone.utc)
        object_id = ObjectId()
        document = {
            "_id": object_id,
            "record_id": str(object_id),
            "model": model,
            "model_id": model_id,
            "index_model": index_model,
            "state": BuildState.INIT.value,
            "last_source": None,
            "state_data": {},
            "logs": [],
            "version": 0,
            "created_at": now,
            "updated_at": now,
        }
        try:
            self._collection.insert_one(document)
        except DuplicateKeyError:
            # Another writer created the pair between our read and insert
            document = self._collection.find_one(key)
            if document is None:
                raise WriteFailure(f"Build record {index_model}/{model_id} vanished")
        return document

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, record_id: str) -> Optional[BuildRecord]:
        """Exact lookup by id, or best-effort prefix lookup for short ids."""
        document = find_by_id(
            self._collection, record_id, prefix_lookup=self.settings.prefix_lookup
        )
        return BuildRecord.from_document(document) if document else None

    def get(self, record_id: str) -> BuildRecord:
        record = self.find(record_id)
        if record is None:
            raise RecordNotFound(record_id, kind="build")
        return record

    def find_pair(self, index_model: str, model_id: Any) -> Optional[BuildRecord]:
        with reading():
            document = self._collection.find_one(
                {"index_model": index_model, "model_id": str(model_id)}
            )
        return BuildRecord.from_document(document) if document else None

    def query(
        self,
        index_model: str,
        state: Optional[BuildState] = None,
        *,
        by_latest: bool = False,
        limit: Optional[int] = None,
    ) -> list[BuildRecord]:
        """Build records for an index model, optionally filtered by state."""
        if limit is not None and limit < 1:
            return []
        criteria: dict[str, Any] = {"index_model": index_model}
        if state is not None:
            criteria["state"] = BuildState(state).value

        with reading():
            cursor = self._collection.find(criteria)
            if by_latest:
                cursor = cursor.sort("created_at", DESCENDING)
            if limit is not None:
                cursor = cursor.limit(limit)
            return [BuildRecord.from_document(doc) for doc in cursor]

    def failed(self, index_model: str, limit: int = 50) -> list[BuildRecord]:
        """Most recently updated failed builds for an index model."""
        if limit < 1:
            return []
        with reading():
            cursor = (
                self._collection.find(
                    {"index_model": index_model, "state": BuildState.FAILED.value}
                )
                .sort("updated_at", DESCENDING)
                .limit(limit)
            )
            return [BuildRecord.from_document(doc) for doc in cursor]

    def index_models(self) -> list[str]:
        with reading():
            return sorted(self._collection.distinct("index_model"))

    # ------------------------------------------------------------------
    # Aggregate counts
    # ------------------------------------------------------------------

    def _count(self, criteria: dict[str, Any]) -> int:
        with reading():
            return self._collection.count_documents(criteria)

    def count_errors(self, index_model: str) -> int:
        return self._count({"index_model": index_model, "state": BuildState.FAILED.value})

    def count_skips(self, index_model: str) -> int:
        return self._count({"index_model": index_model, "state": BuildState.SKIPPED.value})

    def count_total(self, index_model: str) -> int:
        return self._count({"index_model": index_model})

    def summary(self, index_model: str) -> BuildSummary:
        return BuildSummary(
            index_model=index_model,
            total=self.count_total(index_model),
            errors=self.count_errors(index_model),
            skips=self.count_skips(index_model),
        )
