"""
Migration 002: Indexable Migration Logs Collection

Creates the append-only indexable_migration_logs collection holding one
document per index schema migration run.

Indexes:
- index_model + version_major desc + version_minor desc + created_at desc
  (latest / history lookups)
- index_model + state (migration error listings)
- record_id (string copy of _id for short-id prefix lookups)

Schema constants are FROZEN - do not modify. Create new migration for changes.
"""

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import CollectionInvalid

VERSION = "002"

COLLECTION = "indexable_migration_logs"

# =============================================================================
# FROZEN SCHEMA CONSTANTS - DO NOT MODIFY
# =============================================================================

INDEXABLE_MIGRATION_LOGS_SCHEMA_V002 = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": [
            "record_id",
            "index_model",
            "state",
            "version_major",
            "version_minor",
            "map",
            "created_at",
        ],
        "properties": {
            "record_id": {"bsonType": "string"},
            "index_model": {"bsonType": "string"},
            "state": {"enum": ["success", "failed", "undefined"]},
            "version_major": {"bsonType": ["int", "long"], "minimum": 0},
            "version_minor": {"bsonType": ["int", "long"], "minimum": 0},
            "map": {"bsonType": "object"},
            "created_at": {"bsonType": "date"},
        },
    }
}


def up(db: Database) -> None:
    """Create indexable_migration_logs collection with validator and indexes."""
    try:
        db.create_collection(
            COLLECTION,
            validator=INDEXABLE_MIGRATION_LOGS_SCHEMA_V002,
            validationLevel="strict",
            validationAction="error",
        )
    except CollectionInvalid:
        db.command(
            "collMod",
            COLLECTION,
            validator=INDEXABLE_MIGRATION_LOGS_SCHEMA_V002,
            validationLevel="strict",
            validationAction="error",
        )

    collection = db[COLLECTION]
    collection.create_index(
        [
            ("index_model", 1),
            ("version_major", DESCENDING),
            ("version_minor", DESCENDING),
            ("created_at", DESCENDING),
        ],
        name="index_model_version_desc",
    )
    collection.create_index([("index_model", 1), ("state", 1)], name="index_model_state")
    collection.create_index([("record_id", 1)], name="record_id")


def down(db: Database) -> None:
    """Drop indexable_migration_logs collection."""
    if COLLECTION in db.list_collection_names():
        db.drop_collection(COLLECTION)
