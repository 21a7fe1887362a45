"""
Unit tests for the audit collection migration runner.

Discovery and loading use temporary migration files; the run loop is
exercised against mongomock.
"""

import mongomock
import pytest

from scripts.migrate_db import (
    MIGRATIONS_DIR,
    SCHEMA_MIGRATIONS,
    discover_migrations,
    get_applied_versions,
    load_migration_module,
    main,
    run_migrations,
)

MARKER_MIGRATION = (
    'VERSION = "{version}"\n'
    "def up(db):\n"
    '    db["markers"].insert_one({{"version": "{version}"}})\n'
    "def down(db):\n"
    '    db["markers"].delete_many({{"version": "{version}"}})\n'
)


@pytest.fixture
def migrations_dir(tmp_path):
    for version, name in [("001", "first"), ("002", "second")]:
        (tmp_path / f"{version}_{name}.py").write_text(MARKER_MIGRATION.format(version=version))
    return tmp_path


@pytest.fixture
def db():
    return mongomock.MongoClient()["build_lens"]


class TestMigrationDiscovery:
    """Test migration file discovery."""

    def test_discover_migrations_sorted(self, migrations_dir):
        (migrations_dir / "010_third.py").write_text(MARKER_MIGRATION.format(version="010"))
        (migrations_dir / "__init__.py").write_text("")
        (migrations_dir / "notes.py").write_text("")

        versions = [version for version, _ in discover_migrations(migrations_dir)]

        assert versions == ["001", "002", "010"]

    def test_duplicate_versions_raise(self, migrations_dir):
        (migrations_dir / "001_duplicate.py").write_text(MARKER_MIGRATION.format(version="001"))
        with pytest.raises(ValueError, match="Duplicate migration version"):
            discover_migrations(migrations_dir)

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            discover_migrations(tmp_path / "missing")


class TestMigrationLoading:
    """Test migration module loading."""

    def test_valid_module(self, migrations_dir):
        migration = load_migration_module(migrations_dir / "001_first.py")
        assert migration.version == "001"
        assert callable(migration.up)
        assert callable(migration.down)

    def test_down_is_optional(self, tmp_path):
        path = tmp_path / "001_test.py"
        path.write_text('VERSION = "001"\ndef up(db): pass\n')
        assert load_migration_module(path).down is None

    def test_missing_version(self, tmp_path):
        path = tmp_path / "001_test.py"
        path.write_text("def up(db): pass\n")
        with pytest.raises(ValueError, match="missing VERSION"):
            load_migration_module(path)

    def test_missing_up(self, tmp_path):
        path = tmp_path / "001_test.py"
        path.write_text('VERSION = "001"\n')
        with pytest.raises(ValueError, match="missing up"):
            load_migration_module(path)

    def test_version_type(self, tmp_path):
        path = tmp_path / "001_test.py"
        path.write_text("VERSION = 1\ndef up(db): pass\n")
        with pytest.raises(ValueError, match="VERSION must be a string"):
            load_migration_module(path)

    def test_version_must_match_filename(self, tmp_path):
        path = tmp_path / "002_test.py"
        path.write_text('VERSION = "001"\ndef up(db): pass\n')
        with pytest.raises(ValueError, match="does not match filename"):
            load_migration_module(path)

    def test_shipped_migrations_load(self):
        migrations = [load_migration_module(path) for _, path in discover_migrations(MIGRATIONS_DIR)]
        assert [m.version for m in migrations] == ["001", "002"]
        assert all(m.down is not None for m in migrations)


class TestRunMigrations:

    def test_applies_pending_in_order(self, db, migrations_dir):
        applied = run_migrations(db, migrations_dir)

        assert applied == ["001", "002"]
        assert get_applied_versions(db) == {"001", "002"}
        assert [doc["version"] for doc in db["markers"].find()] == ["001", "002"]
        assert all("duration_ms" in doc for doc in db[SCHEMA_MIGRATIONS].find())

    def test_applied_migrations_are_skipped(self, db, migrations_dir):
        run_migrations(db, migrations_dir)
        assert run_migrations(db, migrations_dir) == []
        assert db["markers"].count_documents({}) == 2

    def test_recreate_reverts_first(self, db, migrations_dir):
        run_migrations(db, migrations_dir)
        db["markers"].insert_one({"version": "manual"})

        applied = run_migrations(db, migrations_dir, recreate=True)

        assert applied == ["001", "002"]
        assert db["markers"].count_documents({"version": {"$in": ["001", "002"]}}) == 2

    def test_failed_migration_not_recorded(self, db, migrations_dir):
        (migrations_dir / "003_broken.py").write_text(
            'VERSION = "003"\ndef up(db):\n    raise RuntimeError("boom")\n'
        )

        with pytest.raises(RuntimeError, match="boom"):
            run_migrations(db, migrations_dir)

        assert get_applied_versions(db) == {"001", "002"}

    def test_empty_directory(self, db, tmp_path):
        with pytest.raises(ValueError, match="No migrations found"):
            run_migrations(db, tmp_path)


class TestMain:

    def test_failure_exit_code(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MONGO_INITDB_ROOT_USERNAME", "mongo")
        monkeypatch.setenv("MONGO_INITDB_ROOT_PASSWORD", "secret")
        monkeypatch.setattr(
            "scripts.migrate_db.MongoClient", lambda *args, **kwargs: mongomock.MongoClient()
        )
        assert main(["--migrations-dir", str(tmp_path / "missing")]) == 1

    def test_success_exit_code(self, monkeypatch, migrations_dir):
        monkeypatch.setenv("MONGO_INITDB_ROOT_USERNAME", "mongo")
        monkeypatch.setenv("MONGO_INITDB_ROOT_PASSWORD", "secret")
        client = mongomock.MongoClient()
        monkeypatch.setattr("scripts.migrate_db.MongoClient", lambda *args, **kwargs: client)

        assert main(["--migrations-dir", str(migrations_dir)]) == 0
        assert client["build_lens"]["markers"].count_documents({}) == 2
