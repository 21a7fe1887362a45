"""
Shared pytest fixtures for the tracking engine tests.

Stores run against an in-memory mongomock client with the same unique and
lookup indexes the migrations create.
"""

import mongomock
import pytest
from pymongo import ASCENDING

from libs.identifiers import ModelRegistry
from libs.models import LensSettings
from libs.stores import AggregationQueries, BuildStore, MigrationStore


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def lens_settings():
    """Small log cap so eviction is easy to observe."""
    return LensSettings(log_cap=3, write_retries=3, prefix_lookup=True)


@pytest.fixture
def build_store(mongomock_client, lens_settings):
    store = BuildStore.from_client(mongomock_client, "build_lens", lens_settings)
    store.collection.create_index(
        [("index_model", ASCENDING), ("model_id", ASCENDING)], unique=True
    )
    store.collection.create_index("record_id")
    return store


@pytest.fixture
def migration_store(mongomock_client, lens_settings):
    store = MigrationStore.from_client(mongomock_client, "build_lens", lens_settings)
    store.collection.create_index("record_id")
    return store


@pytest.fixture
def queries(build_store, migration_store):
    return AggregationQueries(build_store, migration_store)


# =============================================================================
# Registry Fixtures
# =============================================================================

@pytest.fixture
def topic_field_map():
    """Declared field map of the help-center topic index."""
    return {
        "title": {"type": "text"},
        "slug": {"type": "keyword"},
        "author": {"properties": {"name": {"type": "text"}}},
    }


@pytest.fixture
def registry(topic_field_map):
    """Registry with a help-center topic and an FAQ topic sharing a short name."""
    registry = ModelRegistry(
        {
            "Modules\\HelpCenter": "help_center",
            "Modules\\Faq": "faq",
        }
    )
    registry.add_type("Modules\\HelpCenter\\Base\\Topic")
    registry.register(
        "Modules\\HelpCenter\\Topic",
        base_model="Modules\\HelpCenter\\Base\\Topic",
        observers=["TopicObserver"],
        field_map=topic_field_map,
        settings={"shards": 1},
    )
    registry.register(
        "Modules\\Faq\\Topic",
        base_model="Modules\\Faq\\Base\\Topic",
    )
    registry.register(
        "Modules\\HelpCenter\\Article",
        base_model="Modules\\HelpCenter\\Base\\Topic",
        observers=["ArticleObserver"],
    )
    return registry
