"""
Unit tests for the dashboard aggregation queries.
"""

from libs.models import BuildState, MigrationState

TOPIC = "Modules\\HelpCenter\\Topic"
SCHEMA = {"title": {"type": "text"}}


def test_build_summaries(build_store, queries):
    build_store.record_success("topic_help_center", 1, TOPIC)
    build_store.record_failure("topic_help_center", 2, TOPIC)
    build_store.record_skip("topic_help_center", 3, TOPIC)
    build_store.record_failure("topic_faq", 1, "Modules\\Faq\\Topic")

    summaries = {summary.index_model: summary for summary in queries.build_summaries()}

    assert list(summaries) == ["topic_faq", "topic_help_center"]
    assert summaries["topic_help_center"].errors == 1
    assert summaries["topic_help_center"].skips == 1
    assert summaries["topic_help_center"].success == 1
    assert summaries["topic_faq"].total == 1


def test_build_status(build_store, queries):
    build_store.record_failure("topic_help_center", 1, TOPIC)
    assert queries.build_status("topic_help_center").errors == 1
    assert queries.build_status("unknown").total == 0


def test_failed_builds_accepts_type_names(build_store, queries):
    build_store.record_failure("topic_help_center", 1, TOPIC, data={"message": "boom"})
    build_store.record_success("topic_help_center", 2, TOPIC)

    failed = queries.failed_builds("Modules\\HelpCenter\\Topic")

    assert [record.model_id for record in failed] == ["1"]
    assert failed[0].state == BuildState.FAILED
    assert queries.failed_builds(" topic_help_center ")[0].model_id == "1"


def test_find_build(build_store, queries):
    record = build_store.record_success("topic_help_center", 1, TOPIC)
    assert queries.find_build(record.short_id).id == record.id
    assert queries.find_build("zzzz") is None


def test_migration_summaries(migration_store, queries):
    migration_store.record_migration("topic_help_center", 1, 0, schema_map=SCHEMA)
    migration_store.record_migration("topic_help_center", 1, 1, error="conflict")

    (summary,) = queries.migration_summaries()

    assert summary.index_model == "topic_help_center"
    assert summary.latest_version == "1.1"
    assert summary.latest_state == MigrationState.FAILED
    assert summary.total == 2
    assert summary.last_migrated_at is not None


def test_migration_history_normalizes_input(migration_store, queries):
    migration_store.record_migration("topic_help_center", 1, 0, schema_map=SCHEMA)
    assert len(queries.migration_history("  Topic_Help_Center ")) == 1


def test_find_migration(migration_store, queries):
    record = migration_store.record_migration("topic_help_center", 1, 0, schema_map=SCHEMA)
    assert queries.find_migration(record.id).version == "1.0"
    assert queries.migration_index_models() == ["topic_help_center"]
