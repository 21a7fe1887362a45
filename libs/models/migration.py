# =============================================================================
# Migration Log Models
# =============================================================================
# Defines models for index schema migration tracking:
# - MigrationState: Outcome of one migration run
# - MigrationRecord: Persisted contract (indexable_migration_logs)
# - MigrationSummary: Per index-model dashboard row
# =============================================================================

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .build import StatePresentation

__all__ = [
    "MigrationState",
    "MigrationRecord",
    "MigrationSummary",
    "MIGRATION_STATE_PRESENTATION",
    "version_key",
]


class MigrationState(str, Enum):
    """Outcome of a migration run. UNDEFINED is reserved for repair entries."""

    SUCCESS = "success"
    FAILED = "failed"
    UNDEFINED = "undefined"


MIGRATION_STATE_PRESENTATION: dict[MigrationState, StatePresentation] = {
    MigrationState.SUCCESS: StatePresentation(
        "emerald", "text-emerald-500", "Migration Successful"
    ),
    MigrationState.FAILED: StatePresentation("rose", "text-rose-500", "Migration Failed"),
    MigrationState.UNDEFINED: StatePresentation(
        "amber", "text-amber-500", "Migration Undefined"
    ),
}


def version_key(major: Optional[int], minor: Optional[int]) -> tuple[float, float]:
    """Sort key for migration versions. Missing parts order below everything."""
    return (
        -math.inf if major is None else float(major),
        -math.inf if minor is None else float(minor),
    )


class MigrationRecord(BaseModel):
    """
    Migration log document model for the indexable_migration_logs collection.

    Append-only: one immutable record per migration run.

    Attributes:
        id: Document id as a string
        index_model: Resolved index-model identifier
        state: Outcome of the run
        version_major: Major schema version
        version_minor: Minor schema version
        map: Resulting schema snapshot, or {"error": message} on failure
        created_at: When the run was recorded
    """

    id: Optional[str] = Field(None, description="Document id")
    index_model: str = Field(..., description="Resolved index-model identifier")
    state: MigrationState = Field(..., description="Outcome of the run")
    version_major: Optional[int] = Field(None, description="Major schema version")
    version_minor: Optional[int] = Field(None, description="Minor schema version")
    map: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "MigrationRecord":
        doc = dict(document)
        object_id = doc.pop("_id", None)
        doc.pop("record_id", None)
        if object_id is not None:
            doc["id"] = str(object_id)
        return cls.model_validate(doc)

    @property
    def version(self) -> str:
        if self.version_major is None and self.version_minor is None:
            return "N/A"
        major = "?" if self.version_major is None else self.version_major
        minor = "?" if self.version_minor is None else self.version_minor
        return f"{major}.{minor}"

    @property
    def version_key(self) -> tuple[float, float]:
        return version_key(self.version_major, self.version_minor)

    @property
    def error(self) -> Optional[str]:
        value = self.map.get("error") if self.map else None
        return str(value) if value is not None else None

    @property
    def short_id(self) -> str:
        return (self.id or "")[:8]


class MigrationSummary(BaseModel):
    """Per index-model migration dashboard row."""

    index_model: str
    latest_version: str = "N/A"
    latest_state: Optional[MigrationState] = None
    total: int = 0
    last_migrated_at: Optional[datetime] = None
