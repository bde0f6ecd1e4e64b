import os

os.environ.setdefault("DB_BACKEND", "sqlite")

from datetime import datetime, timezone

from core import error_codes
from core.services import records as record_service


def _form(**overrides):
    form = {
        "date": "2024-05-10T06:30:00Z",
        "location": "Tokyo Bay",
        "fish_species": "Seabass",
        "size": 45,
        "coordinates": {"latitude": 35.5, "longitude": 139.8},
    }
    form.update(overrides)
    return form


def test_create_and_get_record(store):
    created = record_service.create_record(_form(), store=store)
    assert created.success
    record = created.data
    assert record["date"] == datetime(2024, 5, 10, 6, 30, tzinfo=timezone.utc)
    assert record["coordinates"] == {"latitude": 35.5, "longitude": 139.8}

    fetched = record_service.get_record(record["id"], store=store)
    assert fetched.data["location"] == "Tokyo Bay"


def test_create_rejects_invalid_record(store):
    result = record_service.create_record(_form(size=-1, location=""), store=store)
    assert result.error.code == error_codes.VALIDATION_ERROR
    assert result.error.details["is_valid"] is False
    assert store.count("fishing_records") == 0


def test_create_allows_dangling_photo_reference(store):
    result = record_service.create_record(_form(photo_id="not-there"), store=store)
    assert result.success


def test_missing_ids_are_not_found(store):
    assert record_service.get_record("nope", store=store).error.code == error_codes.NOT_FOUND
    assert record_service.update_record("nope", {"size": 1}, store=store).error.code == error_codes.NOT_FOUND
    assert record_service.delete_record("nope", store=store).error.code == error_codes.NOT_FOUND
    assert record_service.get_photo("nope", store=store).error.code == error_codes.NOT_FOUND


def test_update_validates_merged_record(store):
    record = record_service.create_record(_form(), store=store).data

    updated = record_service.update_record(record["id"], {"size": 60, "id": "hijack"}, store=store)
    assert updated.data["size"] == 60
    assert updated.data["id"] == record["id"]

    rejected = record_service.update_record(record["id"], {"fish_species": "  "}, store=store)
    assert rejected.error.code == error_codes.VALIDATION_ERROR
    assert record_service.get_record(record["id"], store=store).data["fish_species"] == "Seabass"


def test_list_sort_filter_and_paginate(store):
    for day, species, size in [(3, "Bream", 30), (1, "Seabass", 50), (2, "Seabass", None)]:
        record_service.create_record(
            _form(date=f"2024-05-0{day}T00:00:00Z", fish_species=species, size=size),
            store=store,
        )

    by_date = record_service.list_records(store=store).data
    assert [r["date"].day for r in by_date] == [1, 2, 3]

    desc = record_service.list_records(sort_by="size", sort_order="desc", store=store).data
    assert [r["size"] for r in desc] == [None, 50, 30]

    seabass = record_service.list_records(species="seabass", store=store).data
    assert len(seabass) == 2

    page = record_service.list_records(limit=1, offset=1, store=store).data
    assert [r["date"].day for r in page] == [2]

    bad = record_service.list_records(sort_by="notes", store=store)
    assert bad.error.code == error_codes.VALIDATION_ERROR


def test_photo_lifecycle(store):
    saved = record_service.save_photo({"blob": b"jpegbytes", "mime_type": "image/jpeg"}, store=store)
    assert saved.success
    assert saved.data["file_size"] == 9

    assert record_service.get_photo(saved.data["id"], store=store).data["blob"] == b"jpegbytes"
    assert record_service.delete_photo(saved.data["id"], store=store).success

    rejected = record_service.save_photo({"blob": b"x", "mime_type": "image/gif"}, store=store)
    assert rejected.error.code == error_codes.VALIDATION_ERROR
