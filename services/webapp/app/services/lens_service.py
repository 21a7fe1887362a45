# =============================================================================
# Lens Service - Build & Migration Audit Queries
# =============================================================================
# Service wrapper wiring the stores, aggregation queries and health
# aggregator to the webapp settings.
# =============================================================================

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from libs.health import HealthAggregator
from libs.identifiers import ModelRegistry
from libs.models import LensSettings
from libs.stores import AggregationQueries, BuildStore, MigrationStore

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


def load_registry(path: Optional[str], namespaces: dict[str, str]) -> ModelRegistry:
    """
    Build the model registry from a JSON declaration file.

    The file holds a list of objects with ``qualified_name`` and optional
    ``base_model``, ``observers``, ``field_map``, ``settings`` and
    ``index_model`` keys, plus an optional top-level ``types`` list naming
    other domain types that exist. Without a file the registry is empty.
    """
    registry = ModelRegistry(namespaces)
    if not path:
        return registry

    content = json.loads(Path(path).read_text())
    if isinstance(content, list):
        content = {"models": content}

    for qualified_name in content.get("types", []):
        registry.add_type(qualified_name)

    for declaration in content.get("models", []):
        registry.register(
            declaration["qualified_name"],
            base_model=declaration.get("base_model"),
            observers=declaration.get("observers"),
            field_map=declaration.get("field_map"),
            settings=declaration.get("settings"),
            index_model=declaration.get("index_model"),
        )
        if declaration.get("base_model"):
            registry.add_type(declaration["base_model"])

    logger.info(f"Loaded {len(registry.index_models())} index model(s) from {path}")
    return registry


class LensService:
    """Read-side access to the build and migration audit collections."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ModelRegistry] = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = MongoClient(
            settings.mongo_connection_string,
            serverSelectionTimeoutMS=settings.lens_timeout_ms,
        )
        self._db_name = self._extract_db_name(settings.mongo_connection_string)

        lens = LensSettings(
            log_cap=settings.lens_log_cap,
            prefix_lookup=settings.lens_prefix_lookup,
            timeout_ms=settings.lens_timeout_ms,
            namespaces=settings.lens_namespaces,
        )
        self.builds = BuildStore.from_client(self._client, self._db_name, lens)
        self.migrations = MigrationStore.from_client(self._client, self._db_name, lens)
        self.queries = AggregationQueries(self.builds, self.migrations)
        self.registry = registry or load_registry(
            settings.lens_registry_file, settings.lens_namespaces
        )
        self.health = HealthAggregator(self.registry, self.builds, self.migrations)

    @staticmethod
    def _extract_db_name(connection_string: str) -> str:
        """Extract database name from MongoDB connection string."""
        hosts = connection_string.split("://", 1)[-1].split("@")[-1]
        match = re.search(r"/([^/?]+)", hosts)
        if match:
            return match.group(1)
        return "build_lens"

    def ping(self) -> bool:
        """Return True if MongoDB answers a ping."""
        try:
            self._client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
        return True


# Singleton instance
_lens_service: Optional[LensService] = None


def get_lens_service() -> LensService:
    """Get or create the LensService singleton."""
    global _lens_service
    if _lens_service is None:
        _lens_service = LensService()
    return _lens_service
