# =============================================================================
# Build Record Models
# =============================================================================
# Defines models for per-record index build tracking:
# - BuildState: Build state machine values
# - LogData / LogEntry: One recorded build attempt
# - BuildRecord: Persisted contract (what gets stored in indexable_builds)
# - BuildSummary: Per index-model counts for dashboards
# - BUILD_STATE_PRESENTATION: Display metadata keyed by state
# =============================================================================

import json
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

__all__ = [
    "BuildState",
    "LogData",
    "LogEntry",
    "BuildRecord",
    "BuildSummary",
    "StatePresentation",
    "BUILD_STATE_PRESENTATION",
    "build_state_presentation",
]

logger = logging.getLogger(__name__)


# =============================================================================
# Build State Enum
# =============================================================================


class BuildState(str, Enum):
    """State of the most recent build attempt for one (index model, record) pair."""

    INIT = "init"
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"

    @classmethod
    def for_attempt(cls, success: bool, skipped: bool = False) -> "BuildState":
        """Map an attempt outcome onto the state machine."""
        if skipped:
            return cls.SKIPPED
        return cls.SUCCESS if success else cls.FAILED


# =============================================================================
# Presentation Table
# =============================================================================


class StatePresentation(NamedTuple):
    color: str
    style: str
    label: str


BUILD_STATE_PRESENTATION: dict[BuildState, StatePresentation] = {
    BuildState.INIT: StatePresentation("slate", "text-slate-500", "Build Initializing"),
    BuildState.SUCCESS: StatePresentation(
        "emerald", "text-emerald-500", "Index Build Successful"
    ),
    BuildState.SKIPPED: StatePresentation(
        "emerald", "text-emerald-500", "Index Build Skipped"
    ),
    BuildState.FAILED: StatePresentation("rose", "text-rose-500", "Index Build Failed"),
}


def build_state_presentation(state: BuildState) -> StatePresentation:
    return BUILD_STATE_PRESENTATION[BuildState(state)]


# =============================================================================
# Log Entry Models
# =============================================================================


class LogData(BaseModel):
    """
    Diagnostic payload of one build attempt.

    Older documents stored ``msg``, ``took: {ms}`` and ``map``; those keys are
    accepted when reading.
    """

    message: Optional[str] = Field(
        None, validation_alias=AliasChoices("message", "msg")
    )
    details: Optional[Any] = Field(None, description="Free-form error details")
    duration_ms: Optional[float] = Field(None, ge=0, description="Attempt duration")
    problematic_field_map: Optional[dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("problematic_field_map", "map")
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def unwrap_legacy_timing(cls, data: Any) -> Any:
        if isinstance(data, dict) and "duration_ms" not in data:
            took = data.get("took")
            if isinstance(took, dict) and "ms" in took:
                data = {**data, "duration_ms": took["ms"]}
        return data


_LEGACY_PAYLOAD_KEYS = ("msg", "message", "details", "took", "duration_ms", "map")


class LogEntry(BaseModel):
    """One recorded build attempt. Entries are stored newest first."""

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the attempt was recorded (UTC)",
    )
    success: bool = Field(..., description="Whether the index write succeeded")
    skipped: bool = Field(False, description="Attempt was intentionally bypassed")
    data: LogData = Field(default_factory=LogData)

    @model_validator(mode="before")
    @classmethod
    def unwrap_legacy_entry(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "timestamp" not in data and isinstance(data.get("ts"), (int, float)):
            data = {**data, "timestamp": datetime.fromtimestamp(data["ts"], timezone.utc)}
        if "data" not in data:
            # Older entries kept the payload keys beside success/ts
            payload = {key: data[key] for key in _LEGACY_PAYLOAD_KEYS if key in data}
            if payload:
                data = {**data, "data": payload}
        return data


# =============================================================================
# Build Record Model
# =============================================================================


def _readable_logs(raw_logs: list[Any], record_id: Optional[str]) -> list[LogEntry]:
    logs = []
    for raw in raw_logs:
        try:
            logs.append(LogEntry.model_validate(raw))
        except ValidationError:
            logger.warning(f"Dropping unreadable log entry on build {record_id}")
    return logs


def _truncate(text: str, length: int) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    if len(text) <= length:
        return text
    return text[: length - 3] + "..."


class BuildRecord(BaseModel):
    """
    Build document model for the indexable_builds collection.

    One record exists per (index_model, model_id) pair. Every attempt updates
    it in place: a log entry is prepended, the state moves, and ``version``
    is incremented so concurrent writers can detect each other.

    Attributes:
        id: Document id as a string
        model: Source domain type name
        model_id: Natural key of the source record (opaque)
        index_model: Resolved index-model identifier
        state: Current build state
        last_source: Description of the event that triggered the last attempt
        state_data: Diagnostic payload of the most recent attempt
        logs: Attempt history, newest first, bounded by the configured cap
        version: Optimistic-concurrency counter
        created_at: When the record was first created
        updated_at: When the record was last written
    """

    id: Optional[str] = Field(None, description="Document id")
    model: str = Field(..., description="Source domain type name")
    model_id: str = Field(..., description="Source record natural key")
    index_model: str = Field(..., description="Resolved index-model identifier")
    state: BuildState = Field(BuildState.INIT, description="Current build state")
    last_source: Optional[str] = Field(None, description="Last triggering event")
    state_data: dict[str, Any] = Field(default_factory=dict)
    logs: list[LogEntry] = Field(default_factory=list)
    version: int = Field(0, ge=0, description="Optimistic-concurrency counter")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(protected_namespaces=())

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "BuildRecord":
        doc = dict(document)
        object_id = doc.pop("_id", None)
        doc.pop("record_id", None)
        if object_id is not None:
            doc["id"] = str(object_id)
        if doc.get("model_id") is not None:
            doc["model_id"] = str(doc["model_id"])
        doc["logs"] = _readable_logs(doc.get("logs") or [], doc.get("id"))
        return cls.model_validate(doc)

    @property
    def short_id(self) -> str:
        return (self.id or "")[:8]

    @property
    def state_name(self) -> str:
        return build_state_presentation(self.state).label

    @property
    def latest_log(self) -> Optional[LogEntry]:
        return self.logs[0] if self.logs else None

    def error_snippet(self, length: int = 50) -> str:
        """Short description of the newest attempt, for list views."""
        latest = self.latest_log
        if latest is None:
            return "No error details"
        if latest.data.message:
            return _truncate(latest.data.message, length)
        if latest.data.details is not None:
            details = latest.data.details
            if not isinstance(details, str):
                details = json.dumps(details, default=str)
            return _truncate(details, length)
        return "See details"


class BuildSummary(BaseModel):
    """Per index-model build counts. ``success`` is derived."""

    index_model: str
    total: int = 0
    errors: int = 0
    skips: int = 0

    @property
    def success(self) -> int:
        return self.total - self.errors - self.skips
