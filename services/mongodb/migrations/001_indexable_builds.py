"""
Migration 001: Indexable Builds Collection

Creates the indexable_builds collection holding one build audit document per
(index_model, model_id) pair.

Indexes:
- index_model + model_id (unique; one record per pair, guards concurrent creation)
- index_model + state + updated_at descending (failed-build listings, counts)
- record_id (string copy of _id for short-id prefix lookups)
- last_source text (full-text variant of the exact-match last_source field)

Schema constants are FROZEN - do not modify. Create new migration for changes.
"""

from pymongo import DESCENDING, TEXT
from pymongo.database import Database
from pymongo.errors import CollectionInvalid

VERSION = "001"

COLLECTION = "indexable_builds"

# =============================================================================
# FROZEN SCHEMA CONSTANTS - DO NOT MODIFY
# =============================================================================

INDEXABLE_BUILDS_SCHEMA_V001 = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": [
            "record_id",
            "model",
            "model_id",
            "index_model",
            "state",
            "logs",
            "version",
            "created_at",
        ],
        "properties": {
            "record_id": {"bsonType": "string"},
            "model": {"bsonType": "string"},
            "model_id": {"bsonType": "string"},
            "index_model": {"bsonType": "string"},
            "state": {"enum": ["init", "success", "skipped", "failed"]},
            "last_source": {"bsonType": ["string", "null"]},
            "state_data": {"bsonType": ["object", "null"]},
            "logs": {
                "bsonType": "array",
                "items": {
                    "bsonType": "object",
                    "required": ["timestamp", "success"],
                    "properties": {
                        "timestamp": {"bsonType": "date"},
                        "success": {"bsonType": "bool"},
                        "skipped": {"bsonType": "bool"},
                        "data": {"bsonType": "object"},
                    },
                },
            },
            "version": {"bsonType": ["int", "long"], "minimum": 0},
            "created_at": {"bsonType": "date"},
            "updated_at": {"bsonType": ["date", "null"]},
        },
    }
}


def up(db: Database) -> None:
    """Create indexable_builds collection with validator and indexes."""
    try:
        db.create_collection(
            COLLECTION,
            validator=INDEXABLE_BUILDS_SCHEMA_V001,
            validationLevel="strict",
            validationAction="error",
        )
    except CollectionInvalid:
        db.command(
            "collMod",
            COLLECTION,
            validator=INDEXABLE_BUILDS_SCHEMA_V001,
            validationLevel="strict",
            validationAction="error",
        )

    collection = db[COLLECTION]
    collection.create_index(
        [("index_model", 1), ("model_id", 1)],
        unique=True,
        name="index_model_model_id_unique",
    )
    collection.create_index(
        [("index_model", 1), ("state", 1), ("updated_at", DESCENDING)],
        name="index_model_state_updated_desc",
    )
    collection.create_index([("record_id", 1)], name="record_id")
    collection.create_index([("last_source", TEXT)], name="last_source_text")


def down(db: Database) -> None:
    """Drop indexable_builds collection (purges all build records)."""
    if COLLECTION in db.list_collection_names():
        db.drop_collection(COLLECTION)
