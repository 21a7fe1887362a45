# =============================================================================
# Health Report Models
# =============================================================================
# Defines the severity-ranked health report for one index model.
# =============================================================================

from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

__all__ = [
    "HealthStatus",
    "StatusCheck",
    "ConfigFinding",
    "ConfigFindings",
    "HealthReport",
    "most_severe",
]


class HealthStatus(str, Enum):
    """Status of one health section, ordered by severity."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    OK = "ok"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    HealthStatus.OK: 0,
    HealthStatus.INFO: 1,
    HealthStatus.WARNING: 2,
    HealthStatus.CRITICAL: 3,
}


def most_severe(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Return the most severe status, ``ok`` for an empty input."""
    return max(statuses, key=lambda status: status.severity, default=HealthStatus.OK)


class StatusCheck(BaseModel):
    status: HealthStatus
    title: str
    detail: str = ""
    help: list[str] = Field(default_factory=list)


class ConfigFinding(BaseModel):
    name: str
    help: list[str] = Field(default_factory=list)


class ConfigFindings(BaseModel):
    critical: list[ConfigFinding] = Field(default_factory=list)
    warning: list[ConfigFinding] = Field(default_factory=list)

    @property
    def status(self) -> HealthStatus:
        if self.critical:
            return HealthStatus.CRITICAL
        if self.warning:
            return HealthStatus.WARNING
        return HealthStatus.OK


class HealthReport(BaseModel):
    """
    Synthesized health report for one index model.

    ``overall`` is the most severe of the four section statuses. The
    ``*_data`` dicts are flat detail -> value rows for display.
    """

    title: str
    index_model: str
    qualified_name: Optional[str] = None
    overall: HealthStatus
    index_status: StatusCheck
    model_status: StatusCheck
    build_status: StatusCheck
    config_status: StatusCheck
    index_data: dict[str, Any] = Field(default_factory=dict)
    model_data: dict[str, Any] = Field(default_factory=dict)
    build_data: dict[str, Any] = Field(default_factory=dict)
    config_data: dict[str, Any] = Field(default_factory=dict)
    observers: list[dict[str, str]] = Field(default_factory=list)
    config_findings: ConfigFindings = Field(default_factory=ConfigFindings)
