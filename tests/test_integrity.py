import os
import time
from concurrent.futures import ThreadPoolExecutor

os.environ.setdefault("DB_BACKEND", "sqlite")

from conftest import make_photo, make_record
from core.data_migrations import build_default_registry
from core.services.migrations import MigrationManager


def _manager(store):
    return MigrationManager(build_default_registry(), store=store)


def test_clean_database_is_valid(store):
    store.add("photos", make_photo("p1"))
    store.add("fishing_records", make_record(photo_id="p1"))

    report = _manager(store).check_data_integrity()
    assert report.success
    assert report.data.is_valid
    assert report.data.issues == []


def test_orphans_and_dangling_references_reported(store):
    store.add("photos", make_photo("orphan"))
    dangling = make_record(photo_id="gone")
    store.add("fishing_records", dangling)
    bad_size = make_record(size=1500)
    store.add("fishing_records", bad_size)

    report = _manager(store).check_data_integrity().data
    assert not report.is_valid
    assert report.orphaned_photos == 1
    assert report.orphaned_photo_ids == ["orphan"]
    assert report.invalid_records == 2
    assert set(report.invalid_record_ids) == {dangling["id"], bad_size["id"]}
    assert any("gone" in issue for issue in report.issues)
    assert any("size" in issue for issue in report.issues)


def test_cleanup_dry_run_then_delete(store):
    store.add("photos", make_photo("kept"))
    store.add("photos", make_photo("orphan-a"))
    store.add("photos", make_photo("orphan-b"))
    store.add("fishing_records", make_record(photo_id="kept"))
    manager = _manager(store)

    preview = manager.cleanup_orphaned_photos(dry_run=True)
    assert preview.data.deleted_count == 2
    assert preview.data.dry_run
    assert store.count("photos") == 3

    cleaned = manager.cleanup_orphaned_photos()
    assert sorted(cleaned.data.deleted_ids) == ["orphan-a", "orphan-b"]
    assert store.count("photos") == 1
    assert store.get("photos", "kept") is not None

    again = manager.cleanup_orphaned_photos()
    assert again.data.deleted_count == 0


def test_cleanup_keeps_photo_referenced_while_waiting(store):
    store.add("photos", make_photo("late"))
    manager = _manager(store)

    with ThreadPoolExecutor(max_workers=1) as executor:
        with store.exclusive():
            pending = executor.submit(manager.cleanup_orphaned_photos)
            time.sleep(0.2)
            assert not pending.done()
            store.add("fishing_records", make_record(photo_id="late"))
        cleaned = pending.result()

    assert cleaned.success
    assert cleaned.data.deleted_count == 0
    assert store.get("photos", "late") is not None
