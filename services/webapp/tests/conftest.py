# =============================================================================
# Webapp conftest.py - Shared test fixtures
# =============================================================================

import sys
from pathlib import Path

import pytest

# Add webapp app to path for imports
WEBAPP_DIR = Path(__file__).parent.parent / "app"
sys.path.insert(0, str(WEBAPP_DIR.parent))

# Add repo root to path for libs/ imports
REPO_ROOT = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(REPO_ROOT))

from types import SimpleNamespace  # noqa: E402
from unittest.mock import patch  # noqa: E402

import mongomock  # noqa: E402
from pymongo import ASCENDING  # noqa: E402

from libs.health import HealthAggregator  # noqa: E402
from libs.identifiers import ModelRegistry  # noqa: E402
from libs.models import LensSettings  # noqa: E402
from libs.stores import AggregationQueries, BuildStore, MigrationStore  # noqa: E402

ROUTER_MODULES = [
    "app.routers.builds",
    "app.routers.migrations",
    "app.routers.lens_health",
    "app.routers.health",
]


@pytest.fixture
def lens():
    """
    Lens service backed by mongomock, patched into every router.

    Registers a help-center topic and an FAQ topic so the short name
    ``Topic`` is ambiguous.
    """
    db = mongomock.MongoClient()["build_lens"]
    settings = LensSettings(log_cap=5)
    builds = BuildStore(db[BuildStore.COLLECTION], settings)
    builds.collection.create_index(
        [("index_model", ASCENDING), ("model_id", ASCENDING)], unique=True
    )
    migrations = MigrationStore(db[MigrationStore.COLLECTION], settings)

    registry = ModelRegistry({"Modules\\HelpCenter": "help_center", "Modules\\Faq": "faq"})
    registry.add_type("Modules\\HelpCenter\\Base\\Topic")
    registry.register(
        "Modules\\HelpCenter\\Topic",
        base_model="Modules\\HelpCenter\\Base\\Topic",
        observers=["TopicObserver"],
    )
    registry.register("Modules\\Faq\\Topic")
    registry.register("Modules\\HelpCenter\\Article")

    service = SimpleNamespace(
        builds=builds,
        migrations=migrations,
        queries=AggregationQueries(builds, migrations),
        registry=registry,
        health=HealthAggregator(registry, builds, migrations),
        ping=lambda: True,
    )

    patchers = [
        patch(f"{module}.get_lens_service", return_value=service)
        for module in ROUTER_MODULES
    ]
    for patcher in patchers:
        patcher.start()
    yield service
    for patcher in patchers:
        patcher.stop()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import app

    return TestClient(app)
