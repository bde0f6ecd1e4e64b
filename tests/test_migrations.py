import os

os.environ.setdefault("DB_BACKEND", "sqlite")

import pytest

from conftest import FailingStore, make_photo, make_record
from core import error_codes
from core.data_migrations import build_default_registry
from core.errors import ErrorSeverity, MigrationRegistrationError
from core.services.data_version import get_data_version
from core.services.migrations import Migration, MigrationManager, MigrationRegistry


def _marker(key):
    def up(tx):
        tx.put_setting(key, "done")
    return up


def _boom(tx):
    raise RuntimeError("boom")


def _registry(*migrations):
    return MigrationRegistry(migrations)


def test_duplicate_registration_is_rejected():
    with pytest.raises(MigrationRegistrationError) as excinfo:
        _registry(
            Migration("a", "1.0.0", "first", _marker("a")),
            Migration("a", "1.0.1", "again", _marker("a2")),
        )
    assert excinfo.value.migration_id == "a"


def test_failure_rolls_back_whole_run(store):
    manager = MigrationManager(_registry(
        Migration("m1", "1.0.0", "writes marker", _marker("m1")),
        Migration("m2", "1.0.1", "fails", _boom),
        Migration("m3", "1.0.2", "writes marker", _marker("m3")),
    ), store=store)

    result = manager.run_migrations()
    assert not result.success
    assert result.error.code == error_codes.MIGRATION_EXECUTION_FAILED
    assert result.error.severity == ErrorSeverity.critical
    assert result.error.details["errors"] == ["m2"]
    assert result.error.details["appliedMigrations"] == []
    assert result.error.details["messages"] == {"m2": "boom"}

    assert store.get_setting("m1") is None
    pending = manager.get_pending_migrations()
    assert [m.id for m in pending.data] == ["m1", "m2", "m3"]
    assert get_data_version(store).data.migrations_applied == ()


def test_run_is_idempotent_and_ordered(store):
    calls = []

    def track(name):
        def up(tx):
            calls.append(name)
        return up

    manager = MigrationManager(_registry(
        Migration("b_first", "2.0.0", "registered first", track("b_first")),
        Migration("a_second", "1.0.0", "registered second", track("a_second")),
    ), store=store)

    first = manager.run_migrations()
    assert first.success and first.data.success
    assert first.data.applied_migrations == ["b_first", "a_second"]
    assert calls == ["b_first", "a_second"]

    second = manager.run_migrations()
    assert second.data.success
    assert second.data.applied_migrations == []
    assert calls == ["b_first", "a_second"]

    version = get_data_version(store).data
    assert version.migrations_applied == ("b_first", "a_second")
    assert version.last_migration_date is not None


def test_dry_run_touches_nothing(store):
    manager = MigrationManager(_registry(Migration("m1", "1.0.0", "marker", _marker("m1"))), store=store)
    result = manager.run_migrations(dry_run=True)
    assert result.data.skipped_migrations == ["m1"]
    assert result.data.applied_migrations == []
    assert store.get_setting("m1") is None
    assert [m.id for m in manager.get_pending_migrations().data] == ["m1"]


def test_schema_version_never_decreases(store):
    MigrationManager(_registry(Migration("m1", "1.0.0", "marker", _marker("m1"))),
                     store=store, target_schema_version=5).run_migrations()
    assert get_data_version(store).data.schema_version == 5

    MigrationManager(_registry(Migration("m2", "1.0.0", "marker", _marker("m2"))),
                     store=store, target_schema_version=3).run_migrations()
    version = get_data_version(store).data
    assert version.schema_version == 5
    assert version.migrations_applied == ("m1", "m2")


def test_rollback_rules(store):
    undo_calls = []
    manager = MigrationManager(_registry(
        Migration("no_down", "1.0.0", "irreversible", _marker("no_down")),
        Migration("with_down", "1.0.1", "reversible", _marker("with_down"), down=lambda tx: undo_calls.append(1)),
    ), store=store)

    assert manager.rollback_migration("unknown").error.code == error_codes.MIGRATION_NOT_FOUND
    assert manager.rollback_migration("no_down").error.code == error_codes.ROLLBACK_NOT_SUPPORTED
    not_applied = manager.rollback_migration("with_down")
    assert not_applied.error.code == error_codes.MIGRATION_NOT_APPLIED
    assert undo_calls == []

    manager.run_migrations()
    result = manager.rollback_migration("with_down")
    assert result.success
    assert undo_calls == [1]
    assert get_data_version(store).data.migrations_applied == ("no_down",)
    assert [m.id for m in manager.get_pending_migrations().data] == ["with_down"]


def test_failed_rollback_is_critical(store):
    def bad_down(tx):
        raise RuntimeError("cannot undo")

    manager = MigrationManager(_registry(
        Migration("m1", "1.0.0", "marker", _marker("m1"), down=bad_down),
    ), store=store)
    manager.run_migrations()

    result = manager.rollback_migration("m1")
    assert result.error.code == error_codes.ROLLBACK_FAILED
    assert result.error.severity == ErrorSeverity.critical
    assert get_data_version(store).data.migrations_applied == ("m1",)


def test_version_write_failure_does_not_rerun(server_db):
    calls = []
    failing = FailingStore(fail_settings_write=True)
    manager = MigrationManager(_registry(
        Migration("m1", "1.0.0", "counted", lambda tx: calls.append("m1")),
    ), store=failing)

    first = manager.run_migrations()
    assert first.success
    assert first.data.success is False
    assert first.data.version_recorded is False
    assert first.data.applied_migrations == ["m1"]
    assert manager.get_pending_migrations().data == []

    again = manager.run_migrations()
    assert again.data.success is False
    assert calls == ["m1"]

    failing.fail_settings_write = False
    recorded = manager.record_applied_migrations()
    assert recorded.data == ["m1"]
    assert get_data_version(failing).data.migrations_applied == ("m1",)

    final = manager.run_migrations()
    assert final.data.success
    assert final.data.applied_migrations == []
    assert calls == ["m1"]


def test_shipped_migrations_trim_and_backfill(store):
    record = make_record(location="  Tokyo Bay  ", fish_species="Seabass ", weather=" rain")
    store.add("fishing_records", record)
    store.add("photos", make_photo("p1", blob=b"12345", file_size=None))

    manager = MigrationManager(build_default_registry(), store=store)
    result = manager.run_migrations()
    assert result.data.applied_migrations == ["0001_trim_text_fields", "0002_backfill_photo_file_size"]

    migrated = store.get("fishing_records", record["id"])
    assert migrated["location"] == "Tokyo Bay"
    assert migrated["fish_species"] == "Seabass"
    assert migrated["weather"] == "rain"
    assert store.get("photos", "p1")["file_size"] == 5

    assert manager.rollback_migration("0001_trim_text_fields").success
    restored = store.get("fishing_records", record["id"])
    assert restored["location"] == "  Tokyo Bay  "
    assert manager.rollback_migration("0002_backfill_photo_file_size").error.code == error_codes.ROLLBACK_NOT_SUPPORTED
