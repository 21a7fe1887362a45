# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the build & migration tracking engine.
# =============================================================================

"""
Data models for the tracking engine.

This library provides:
- BuildRecord: Per-record index build audit document
- MigrationRecord: Index schema migration audit document
- HealthReport: Severity-ranked health report
- Configuration models
"""

__version__ = "0.1.0"

# Build models
from .build import (
    BUILD_STATE_PRESENTATION,
    BuildRecord,
    BuildState,
    BuildSummary,
    LogData,
    LogEntry,
    StatePresentation,
    build_state_presentation,
)

# Migration models
from .migration import (
    MIGRATION_STATE_PRESENTATION,
    MigrationRecord,
    MigrationState,
    MigrationSummary,
    version_key,
)

# Health models
from .health import (
    ConfigFinding,
    ConfigFindings,
    HealthReport,
    HealthStatus,
    StatusCheck,
    most_severe,
)

# Configuration models
from .config import (
    LensSettings,
    MongoSettings,
)

__all__ = [
    # Build models
    "BUILD_STATE_PRESENTATION",
    "BuildRecord",
    "BuildState",
    "BuildSummary",
    "LogData",
    "LogEntry",
    "StatePresentation",
    "build_state_presentation",
    # Migration models
    "MIGRATION_STATE_PRESENTATION",
    "MigrationRecord",
    "MigrationState",
    "MigrationSummary",
    "version_key",
    # Health models
    "ConfigFinding",
    "ConfigFindings",
    "HealthReport",
    "HealthStatus",
    "StatusCheck",
    "most_severe",
    # Configuration models
    "LensSettings",
    "MongoSettings",
]
