# =============================================================================
# Audit Collection Migration Runner
# =============================================================================
# Creates and evolves the indexable_builds / indexable_migration_logs
# collections. Discovers migration files in services/mongodb/migrations/ and
# applies them in version order, tracking applied versions in
# schema_migrations. --recreate drops the audit collections first, which is
# the only way build records are ever purged.
# =============================================================================

import argparse
import importlib.util
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from libs.models import LensSettings, MongoSettings

logger = logging.getLogger("migrate_db")

SCHEMA_MIGRATIONS = "schema_migrations"
MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "services" / "mongodb" / "migrations"

MigrationFunc = Callable[[Database], None]


@dataclass
class Migration:
    version: str
    path: Path
    up: MigrationFunc
    down: Optional[MigrationFunc] = None


def discover_migrations(migrations_dir: Path) -> list[tuple[str, Path]]:
    """
    Discover migration files named NNN_*.py, sorted by version.

    Raises:
        ValueError: If the directory is missing or a version is duplicated
    """
    if not migrations_dir.exists():
        raise ValueError(f"Migrations directory does not exist: {migrations_dir}")

    migrations = []
    seen_versions = set()

    for file_path in migrations_dir.glob("*.py"):
        filename = file_path.name
        if filename.startswith("__"):
            continue
        if not filename[0:3].isdigit():
            logger.warning(f"Skipping '{filename}': does not start with a 3-digit version")
            continue

        version = filename[0:3]
        if version in seen_versions:
            raise ValueError(f"Duplicate migration version '{version}' found in '{filename}'")
        seen_versions.add(version)
        migrations.append((version, file_path))

    migrations.sort(key=lambda item: item[0])
    return migrations


def load_migration_module(file_path: Path) -> Migration:
    """
    Load a migration module and validate its VERSION / up() / down() interface.

    Raises:
        ImportError: If the file cannot be loaded
        ValueError: If the module does not follow the migration interface
    """
    spec = importlib.util.spec_from_file_location(f"migration_{file_path.stem}", file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load migration module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    version = getattr(module, "VERSION", None)
    if version is None:
        raise ValueError(f"Migration '{file_path.name}' missing VERSION constant")
    if not isinstance(version, str):
        raise ValueError(
            f"Migration '{file_path.name}' VERSION must be a string, got {type(version).__name__}"
        )

    up_func = getattr(module, "up", None)
    if up_func is None:
        raise ValueError(f"Migration '{file_path.name}' missing up() function")
    if not callable(up_func):
        raise ValueError(
            f"Migration '{file_path.name}' up must be callable, got {type(up_func).__name__}"
        )

    down_func = getattr(module, "down", None)
    if down_func is not None and not callable(down_func):
        raise ValueError(f"Migration '{file_path.name}' down must be callable")

    if version != file_path.name[0:3]:
        raise ValueError(
            f"Migration '{file_path.name}' VERSION '{version}' does not match "
            f"filename version '{file_path.name[0:3]}'"
        )

    return Migration(version=version, path=file_path, up=up_func, down=down_func)


def ensure_schema_migrations_collection(db: Database) -> None:
    """Ensure schema_migrations exists with a unique index on version."""
    try:
        db.create_collection(SCHEMA_MIGRATIONS)
    except CollectionInvalid:
        pass
    try:
        db[SCHEMA_MIGRATIONS].create_index("version", unique=True)
    except OperationFailure:
        pass


def get_applied_versions(db: Database) -> set[str]:
    return {doc["version"] for doc in db[SCHEMA_MIGRATIONS].find({}, {"version": 1})}


def apply_migration(db: Database, migration: Migration) -> int:
    """
    Apply one migration and record it. Returns the duration in milliseconds.

    A failed migration is not recorded, so it is retried on the next run.
    """
    start_time = time.perf_counter()
    try:
        migration.up(db)
    except Exception:
        logger.exception(f"Migration {migration.version} failed")
        raise

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    db[SCHEMA_MIGRATIONS].insert_one(
        {
            "version": migration.version,
            "applied_at": datetime.now(timezone.utc),
            "duration_ms": duration_ms,
        }
    )
    logger.info(f"Applied migration {migration.version} ({migration.path.name}, {duration_ms}ms)")
    return duration_ms


def revert_migrations(db: Database, migrations: list[Migration]) -> None:
    """Run down() for every migration, newest first, and forget them."""
    for migration in reversed(migrations):
        if migration.down is None:
            logger.warning(f"Migration {migration.version} has no down(); skipping")
            continue
        migration.down(db)
        db[SCHEMA_MIGRATIONS].delete_one({"version": migration.version})
        logger.info(f"Reverted migration {migration.version}")


def run_migrations(db: Database, migrations_dir: Path = MIGRATIONS_DIR, *, recreate: bool = False) -> list[str]:
    """
    Apply pending migrations. Returns the versions applied in this run.

    With ``recreate`` every migration is reverted first, dropping the audit
    collections, and then applied again.
    """
    ensure_schema_migrations_collection(db)
    migrations = [load_migration_module(path) for _, path in discover_migrations(migrations_dir)]
    if not migrations:
        raise ValueError(f"No migrations found in {migrations_dir}")

    if recreate:
        revert_migrations(db, migrations)

    applied_versions = get_applied_versions(db)
    applied_now = []
    for migration in migrations:
        if migration.version in applied_versions:
            logger.info(f"Skipping migration {migration.version}: already applied")
            continue
        apply_migration(db, migration)
        applied_now.append(migration.version)
    return applied_now


def main(argv: Optional[list[str]] = None) -> int:
    """
    Migration runner entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Apply audit collection migrations")
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate the audit collections (purges all records)",
    )
    parser.add_argument("--migrations-dir", type=Path, default=MIGRATIONS_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        settings = MongoSettings()
        lens = LensSettings()
        client = MongoClient(settings.connection_string, serverSelectionTimeoutMS=lens.timeout_ms)
        try:
            applied = run_migrations(
                client[settings.database], args.migrations_dir, recreate=args.recreate
            )
        finally:
            client.close()
    except Exception:
        logger.exception("Migration run failed")
        return 1

    logger.info(f"Migrations complete ({len(applied)} applied)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
