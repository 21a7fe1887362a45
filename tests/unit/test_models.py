"""
Unit tests for the build, migration and health models.
"""

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from libs.models import (
    BUILD_STATE_PRESENTATION,
    MIGRATION_STATE_PRESENTATION,
    BuildRecord,
    BuildState,
    BuildSummary,
    ConfigFinding,
    ConfigFindings,
    HealthStatus,
    LensSettings,
    LogData,
    LogEntry,
    MigrationRecord,
    MigrationState,
    most_severe,
    version_key,
)


# =============================================================================
# Build Models
# =============================================================================

class TestBuildState:

    @pytest.mark.parametrize(
        "success,skipped,expected",
        [
            (True, False, BuildState.SUCCESS),
            (False, False, BuildState.FAILED),
            (True, True, BuildState.SKIPPED),
        ],
    )
    def test_for_attempt(self, success, skipped, expected):
        assert BuildState.for_attempt(success, skipped) == expected

    def test_every_state_has_presentation(self):
        assert set(BUILD_STATE_PRESENTATION) == set(BuildState)
        assert BUILD_STATE_PRESENTATION[BuildState.FAILED].color == "rose"
        assert BUILD_STATE_PRESENTATION[BuildState.FAILED].label == "Index Build Failed"


class TestLogData:

    def test_legacy_keys_are_accepted(self):
        data = LogData.model_validate(
            {"msg": "boom", "took": {"ms": 12.5}, "map": {"title": "text"}}
        )
        assert data.message == "boom"
        assert data.duration_ms == 12.5
        assert data.problematic_field_map == {"title": "text"}

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            LogData(duration_ms=-1)

    def test_legacy_timestamp(self):
        entry = LogEntry.model_validate({"ts": 0, "success": True})
        assert entry.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestBuildRecord:

    def _document(self, **overrides):
        object_id = ObjectId()
        document = {
            "_id": object_id,
            "record_id": str(object_id),
            "model": "Modules\\HelpCenter\\Topic",
            "model_id": 42,
            "index_model": "topic_help_center",
            "state": "failed",
            "logs": [
                {
                    "timestamp": datetime(2024, 1, 2, tzinfo=timezone.utc),
                    "success": False,
                    "data": {"message": "mapper_parsing_exception: failed to parse field [title]"},
                }
            ],
            "version": 3,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        document.update(overrides)
        return document

    def test_from_document(self):
        document = self._document()
        record = BuildRecord.from_document(document)
        assert record.id == str(document["_id"])
        assert record.model_id == "42"
        assert record.state == BuildState.FAILED
        assert record.short_id == str(document["_id"])[:8]
        assert record.state_name == "Index Build Failed"

    def test_error_snippet_truncates_message(self):
        record = BuildRecord.from_document(self._document())
        snippet = record.error_snippet(20)
        assert len(snippet) == 20
        assert snippet.endswith("...")

    def test_error_snippet_serializes_details(self):
        record = BuildRecord.from_document(
            self._document(logs=[{"success": False, "data": {"details": {"code": 400}}}])
        )
        assert record.error_snippet() == '{"code": 400}'

    def test_error_snippet_without_logs(self):
        record = BuildRecord.from_document(self._document(logs=[]))
        assert record.latest_log is None
        assert record.error_snippet() == "No error details"


class TestBuildSummary:

    def test_success_is_derived(self):
        summary = BuildSummary(index_model="topic", total=10, errors=3, skips=2)
        assert summary.success == 5


# =============================================================================
# Migration Models
# =============================================================================

class TestMigrationRecord:

    def test_version_string(self):
        record = MigrationRecord(
            index_model="topic", state=MigrationState.SUCCESS, version_major=2, version_minor=1
        )
        assert record.version == "2.1"

    def test_missing_version(self):
        record = MigrationRecord(index_model="topic", state=MigrationState.UNDEFINED)
        assert record.version == "N/A"
        assert record.version_key < version_key(0, 0)

    def test_error_from_map(self):
        record = MigrationRecord(
            index_model="topic",
            state=MigrationState.FAILED,
            version_major=1,
            version_minor=0,
            map={"error": "index exists"},
        )
        assert record.error == "index exists"

    def test_records_are_immutable(self):
        record = MigrationRecord(index_model="topic", state=MigrationState.SUCCESS)
        with pytest.raises(ValidationError):
            record.state = MigrationState.FAILED

    def test_every_state_has_presentation(self):
        assert set(MIGRATION_STATE_PRESENTATION) == set(MigrationState)

    def test_version_ordering(self):
        assert version_key(1, 10) > version_key(1, 9)
        assert version_key(2, 0) > version_key(1, 99)


# =============================================================================
# Health Models
# =============================================================================

class TestHealthStatus:

    def test_most_severe(self):
        statuses = [HealthStatus.OK, HealthStatus.WARNING, HealthStatus.CRITICAL, HealthStatus.INFO]
        assert most_severe(statuses) == HealthStatus.CRITICAL

    def test_most_severe_of_nothing_is_ok(self):
        assert most_severe([]) == HealthStatus.OK

    def test_config_findings_status(self):
        findings = ConfigFindings(warning=[ConfigFinding(name="replicas")])
        assert findings.status == HealthStatus.WARNING
        findings.critical.append(ConfigFinding(name="shards"))
        assert findings.status == HealthStatus.CRITICAL
        assert ConfigFindings().status == HealthStatus.OK


# =============================================================================
# Settings
# =============================================================================

class TestLensSettings:

    def test_defaults(self, monkeypatch):
        for var in ("LENS_LOG_CAP", "LENS_WRITE_RETRIES", "LENS_PREFIX_LOOKUP"):
            monkeypatch.delenv(var, raising=False)
        settings = LensSettings()
        assert settings.log_cap == 10
        assert settings.write_retries == 5
        assert settings.prefix_lookup is True

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("LENS_LOG_CAP", "25")
        monkeypatch.setenv("LENS_NAMESPACES", '{"Modules\\\\Faq": "faq"}')
        settings = LensSettings()
        assert settings.log_cap == 25
        assert settings.namespaces == {"Modules\\Faq": "faq"}

    def test_log_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            LensSettings(log_cap=0)
