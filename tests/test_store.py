import os

os.environ.setdefault("DB_BACKEND", "sqlite")

import pytest

from conftest import make_photo, make_record
from core.errors import StoreError


def test_crud_round_trip(store):
    record = make_record()
    store.add("fishing_records", record)

    fetched = store.get("fishing_records", record["id"])
    assert fetched["coordinates"] == {"latitude": 35.5, "longitude": 139.8, "accuracy": 10.0}
    assert fetched["date"] == record["date"]

    assert store.update("fishing_records", record["id"], {"notes": "released"})
    assert store.get("fishing_records", record["id"])["notes"] == "released"
    assert not store.update("fishing_records", "missing", {"notes": "x"})

    assert store.delete("fishing_records", record["id"])
    assert not store.delete("fishing_records", record["id"])


def test_add_rejects_existing_id(store):
    store.add("photos", make_photo("p1"))
    with pytest.raises(StoreError):
        store.add("photos", make_photo("p1"))
    store.put("photos", make_photo("p1", filename="renamed.jpg"))
    assert store.get("photos", "p1")["filename"] == "renamed.jpg"
    assert store.count("photos") == 1


def test_bulk_delete_and_to_array(store):
    for photo_id in ("c", "a", "b"):
        store.add("photos", make_photo(photo_id))
    assert [photo["id"] for photo in store.to_array("photos")] == ["a", "b", "c"]
    assert store.bulk_delete("photos", ["a", "c", "zzz"]) == 2
    assert store.bulk_delete("photos", []) == 0
    assert store.count("photos") == 1


def test_transaction_rolls_back_every_write(store):
    record = make_record()
    with pytest.raises(RuntimeError):
        with store.transaction("fishing_records", "app_settings") as tx:
            tx.add("fishing_records", record)
            tx.put_setting("marker", "1")
            raise RuntimeError("abort")

    assert store.get("fishing_records", record["id"]) is None
    assert store.get_setting("marker") is None


def test_transaction_scope_and_mode_enforced(store):
    with store.transaction("photos") as tx:
        with pytest.raises(StoreError):
            tx.get("fishing_records", "x")

    with store.transaction("photos", mode="r") as tx:
        with pytest.raises(StoreError):
            tx.add("photos", make_photo("p1"))

    with pytest.raises(StoreError):
        with store.transaction("no_such_table"):
            pass

    with pytest.raises(ValueError):
        with store.transaction("photos", mode="w"):
            pass


def test_settings_sub_store(store):
    assert store.get_setting("missing") is None
    store.put_setting("theme", "dark")
    store.put_setting("theme", "light")
    assert store.get_setting("theme") == "light"
    assert store.get("app_settings", "theme")["type"] == "string"
