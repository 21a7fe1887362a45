"""
Schema parity tests - verify Pydantic models match the migration validators.

These tests FAIL when the record models change without a corresponding
migration, which keeps Python validation and MongoDB validation in step.

NOTE: Migration files start with digits (e.g., 001_indexable_builds.py) which
can't be imported directly. We use importlib to load them dynamically.
"""

import importlib.util
from pathlib import Path

from libs.models import BuildRecord, BuildState, MigrationRecord, MigrationState


def load_migration_schema(migration_filename: str):
    """Load a migration module using importlib (handles digit-prefixed names)."""
    migrations_dir = (
        Path(__file__).parent.parent.parent / "services" / "mongodb" / "migrations"
    )
    file_path = migrations_dir / migration_filename

    spec = importlib.util.spec_from_file_location("migration", file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load migration from {file_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


BUILDS_SCHEMA = load_migration_schema("001_indexable_builds.py").INDEXABLE_BUILDS_SCHEMA_V001
MIGRATION_LOGS_SCHEMA = load_migration_schema(
    "002_indexable_migration_logs.py"
).INDEXABLE_MIGRATION_LOGS_SCHEMA_V002

# Stored copy of _id used for prefix lookups; not part of the models
STORAGE_ONLY_FIELDS = {"record_id"}


class TestBuildRecordSchemaParity:

    def test_required_fields_are_model_fields(self):
        mongo_required = set(BUILDS_SCHEMA["$jsonSchema"]["required"]) - STORAGE_ONLY_FIELDS
        missing = mongo_required - set(BuildRecord.model_fields)
        assert not missing, f"MongoDB requires fields the model lacks: {missing}"

    def test_model_required_fields_in_schema(self):
        pydantic_required = {
            name for name, info in BuildRecord.model_fields.items() if info.is_required()
        }
        mongo_required = set(BUILDS_SCHEMA["$jsonSchema"]["required"])
        assert pydantic_required <= mongo_required

    def test_state_enum_matches(self):
        mongo_states = set(BUILDS_SCHEMA["$jsonSchema"]["properties"]["state"]["enum"])
        assert mongo_states == {state.value for state in BuildState}


class TestMigrationRecordSchemaParity:

    def test_required_fields_are_model_fields(self):
        mongo_required = (
            set(MIGRATION_LOGS_SCHEMA["$jsonSchema"]["required"]) - STORAGE_ONLY_FIELDS
        )
        missing = mongo_required - set(MigrationRecord.model_fields)
        assert not missing, f"MongoDB requires fields the model lacks: {missing}"

    def test_state_enum_matches(self):
        mongo_states = set(MIGRATION_LOGS_SCHEMA["$jsonSchema"]["properties"]["state"]["enum"])
        assert mongo_states == {state.value for state in MigrationState}
